"""
Passenger price derivation tests.

total = base_price(type) + tax + surcharge + infant_count * infant_rate
"""

from decimal import Decimal

from ticketing.entities import AirlineRecord, SettingsRecord, normalize_settings
from ticketing.services import backend, pricing_service


BOOK = pricing_service.PriceBook(
    adult=Decimal("130"), child=Decimal("90"), infant=Decimal("20"),
    tax=Decimal("10"), surcharge=Decimal("10"),
)


class TestCalculateTotal:
    """Pure price arithmetic."""

    def test_adult_with_infants(self):
        assert pricing_service.calculate_total("Adult", 10, 10, 2, BOOK) == Decimal("190")

    def test_child_ignores_infants(self):
        assert pricing_service.calculate_total("Child", 10, 10, 3, BOOK) == Decimal("110")

    def test_missing_tax_counts_as_zero(self):
        assert pricing_service.calculate_total("Adult", None, None, 0, BOOK) == Decimal("130")

    def test_decimal_strings(self):
        assert pricing_service.calculate_total("Adult", "12.50", "7.25", 1, BOOK) == Decimal("169.75")


class TestPriceBook:
    """Airline prices override account defaults where set."""

    def test_settings_only(self):
        book = pricing_service.resolve_price_book(SettingsRecord())
        assert book == BOOK

    def test_airline_overrides(self):
        airline = AirlineRecord(id=1, name="Daallo", adult_price=Decimal("200"), infant_price=Decimal("0"))
        book = pricing_service.resolve_price_book(SettingsRecord(), airline)
        assert book.adult == Decimal("200")
        assert book.infant == Decimal("0")
        assert book.child == Decimal("90")
        assert book.tax == Decimal("10")

    def test_zero_settings_fall_back_to_defaults(self):
        settings = normalize_settings({"adult_price": "0", "tax": None, "agency_name": ""})
        assert settings.adult_price == Decimal("130")
        assert settings.tax == Decimal("10")
        assert settings.agency_name == "AREYS"


class TestQuote:
    """Quotes against the console snapshot."""

    def test_quote_uses_airline(self, owner, owner_console):
        from ticketing.services import flight_service

        backend.insert("airlines", {"user_id": owner.id, "name": "Daallo", "adult_price": "200", "tax": "15"})
        owner_console.reload()
        flight = flight_service.create_flight(owner_console, {"airline": "Daallo", "date": "2026-03-01"})

        quote = pricing_service.quote(owner_console, flight, passenger_type="Adult", infant_count=1)
        assert Decimal(quote["base_price"]) == Decimal("200")
        assert Decimal(quote["tax"]) == Decimal("15")
        assert Decimal(quote["total_price"]) == Decimal("245")

    def test_child_quote_forces_zero_infants(self, owner_console):
        quote = pricing_service.quote(owner_console, None, passenger_type="Child", infant_count=2)
        assert quote["infant_count"] == 0
        assert Decimal(quote["total_price"]) == Decimal("110")
