# Overview: Client-assist price derivation and new-passenger form defaults.

"""
Passenger Pricing

total = base_price(type) + tax + surcharge + infant_count * infant_rate

Prices come from the flight's airline when it defines them, otherwise
from the account settings. The result is an input assist: callers may
override the total before saving and nothing re-verifies it later.
Children never carry infants, so their infant count is always zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..entities import AirlineRecord, FlightRecord, SettingsRecord
from ..time_utils import today


DEFAULT_BOOKING_REFERENCE = "AIEW07"
FALLBACK_AGENCY_LABEL = "Us"


@dataclass(frozen=True)
class PriceBook:
    adult: Decimal
    child: Decimal
    infant: Decimal
    tax: Decimal
    surcharge: Decimal

    def base_price(self, passenger_type: str) -> Decimal:
        return self.child if passenger_type == "Child" else self.adult

    def to_dict(self) -> dict:
        return {
            "adult": str(self.adult),
            "child": str(self.child),
            "infant": str(self.infant),
            "tax": str(self.tax),
            "surcharge": str(self.surcharge),
        }


def resolve_price_book(settings: SettingsRecord, airline: AirlineRecord | None = None) -> PriceBook:
    """Airline prices where set, account defaults otherwise."""
    def choose(airline_value, default):
        return default if airline_value is None else airline_value

    if airline is None:
        return PriceBook(
            adult=settings.adult_price,
            child=settings.child_price,
            infant=settings.infant_price,
            tax=settings.tax,
            surcharge=settings.surcharge,
        )
    return PriceBook(
        adult=choose(airline.adult_price, settings.adult_price),
        child=choose(airline.child_price, settings.child_price),
        infant=choose(airline.infant_price, settings.infant_price),
        tax=choose(airline.tax, settings.tax),
        surcharge=choose(airline.surcharge, settings.surcharge),
    )


def calculate_total(passenger_type: str, tax, surcharge, infant_count: int, book: PriceBook) -> Decimal:
    if passenger_type == "Child":
        infant_count = 0
    return (
        book.base_price(passenger_type)
        + Decimal(str(tax or 0))
        + Decimal(str(surcharge or 0))
        + infant_count * book.infant
    )


def price_book_for(store, flight: FlightRecord | None = None) -> PriceBook:
    airline = store.get_airline(flight.airline) if flight is not None else None
    return resolve_price_book(store.snapshot.settings, airline)


def quote(store, flight: FlightRecord | None, *, passenger_type: str = "Adult", tax=None, surcharge=None, infant_count: int = 0) -> dict:
    """Price breakdown for the passenger form; tax/surcharge default to the price book."""
    book = price_book_for(store, flight)
    tax = book.tax if tax is None else Decimal(str(tax))
    surcharge = book.surcharge if surcharge is None else Decimal(str(surcharge))
    if passenger_type == "Child":
        infant_count = 0
    return {
        "type": passenger_type,
        "base_price": str(book.base_price(passenger_type)),
        "infant_price": str(book.infant),
        "infant_count": infant_count,
        "tax": str(tax),
        "surcharge": str(surcharge),
        "total_price": str(calculate_total(passenger_type, tax, surcharge, infant_count, book)),
    }


def passenger_defaults(store, flight: FlightRecord) -> dict:
    """Values a new passenger starts with on the given flight."""
    airline = store.get_airline(flight.airline)
    book = resolve_price_book(store.snapshot.settings, airline)
    booking_reference = (airline.default_booking_reference if airline else None) or DEFAULT_BOOKING_REFERENCE
    flight_number = flight.flight_number or (airline.default_flight_number if airline else None)
    agency = store.actor.agency_name or store.snapshot.settings.agency_name or FALLBACK_AGENCY_LABEL
    return {
        "type": "Adult",
        "gender": "M",
        "name": "",
        "infants": [],
        "phone_number": None,
        "booking_reference": booking_reference,
        "flight_number": flight_number,
        "ticket_price": book.adult,
        "infant_price": book.infant,
        "tax": book.tax,
        "surcharge": book.surcharge,
        "total_price": calculate_total("Adult", book.tax, book.surcharge, 0, book),
        "agency": agency,
        "date": flight.date,
        "date_of_issue": today(),
    }
