"""
Document hand-off and search tests.
"""

from datetime import date

import pytest

from conftest import make_staff, open_console
from ticketing.errors import DocumentError, NotFoundError, PermissionDeniedError, ValidationError
from ticketing.permissions import build_matrix
from ticketing.services import backend, catalog_service, document_service, flight_service, search_service


@pytest.fixture
def booked(owner_console):
    """Daallo flight with an adult (two infants) and a child."""
    catalog_service.add_airline(owner_console, {
        "name": "Daallo",
        "ticket_template": "tpl/ticket.docx",
        "manifest_template": "tpl/manifest.docx",
        "manifest_us": "tpl/manifest-us.docx",
    })
    flight = flight_service.create_flight(owner_console, {
        "airline": "Daallo", "flight_number": "D3 100", "date": "2026-01-05", "route": "MGQ-DXB",
    })
    adult = flight_service.save_passenger(owner_console, flight.uuid, {
        "name": "Amina Yusuf", "gender": "F", "infants": ["Hodan", "Ayan"], "phone_number": "615000000",
        "booking_reference": "BR123",
    })
    child = flight_service.save_passenger(owner_console, flight.uuid, {"name": "Omar Yusuf", "type": "Child"})
    return flight, adult, child


class TestTickets:
    """Ticket rows for the renderer."""

    def test_batch(self, owner_console, booked):
        flight, adult, child = booked
        document = document_service.build_ticket_batch(owner_console, flight.uuid)
        assert document["template_ref"] == "tpl/ticket.docx"
        assert document["flight"]["date"] == "5-1-2026"

        first, second = document["passengers"]
        assert first["name"] == "MRS AMINA YUSUF"
        assert first["IFNT1"] == "IFNT HODAN"
        assert first["IFNT2"] == "IFNT AYAN"
        assert first["IFNT3"] == ""
        assert first["is_last"] is False
        assert second["name"] == "CH OMAR YUSUF"
        assert second["is_last"] is True

    def test_unknown_passenger(self, owner_console, booked):
        flight, _, _ = booked
        with pytest.raises(NotFoundError):
            document_service.build_ticket_batch(owner_console, flight.uuid, ["nope"])

    def test_missing_template(self, owner_console):
        flight = flight_service.create_flight(owner_console, {"airline": "Unknown Air", "date": "2026-01-05"})
        flight_service.save_passenger(owner_console, flight.uuid, {"name": "X"})
        with pytest.raises(DocumentError):
            document_service.build_ticket_batch(owner_console, flight.uuid)

    def test_staff_cannot_batch(self, owner, staff):
        store = open_console(staff)
        try:
            flight = flight_service.create_flight(store, {"airline": "Daallo", "date": "2026-01-05"})
            flight_service.save_passenger(store, flight.uuid, {"name": "One"})
            flight_service.save_passenger(store, flight.uuid, {"name": "Two"})
            with pytest.raises(PermissionDeniedError):
                document_service.build_ticket_batch(store, flight.uuid)
        finally:
            store.close()

    def test_single_download_needs_download_right(self, owner, owner_console, booked):
        flight, adult, _ = booked
        backend.insert("role_permissions", {
            "role": "Printer",
            "permissions": build_matrix({
                "flight": ["view_any"],
                "passenger": ["view_any"],
                "generating": ["ticket"],
            }),
        })
        printer = make_staff(owner, "printer@agency.test", "Printer", "Pat Printer")
        single = flight_service.create_flight(owner_console, {"airline": "Daallo", "date": "2026-01-06"})
        flight_service.save_passenger(owner_console, single.uuid, {"name": "Solo Traveller"})

        store = open_console(printer)
        try:
            with pytest.raises(PermissionDeniedError) as excinfo:
                document_service.build_ticket_batch(store, flight.uuid, [adult.id])
            assert excinfo.value.action == "download"

            document = document_service.build_ticket_batch(store, single.uuid)
            assert len(document["passengers"]) == 1
        finally:
            store.close()

    def test_staff_downloads_own_passenger(self, booked, staff):
        store = open_console(staff)
        try:
            flight = flight_service.create_flight(store, {"airline": "Daallo", "date": "2026-01-07"})
            passenger = flight_service.save_passenger(store, flight.uuid, {"name": "Sahra Ali", "gender": "F"})
            document = document_service.build_ticket_batch(store, flight.uuid, [passenger.id])
            assert document["passengers"][0]["name"] == "MRS SAHRA ALI"
        finally:
            store.close()


class TestManifest:
    """Manifest rows by kind."""

    def test_general_manifest(self, owner_console, booked):
        flight, adult, child = booked
        document = document_service.build_manifest(owner_console, flight.uuid)
        assert document["kind"] == "manifest:general"
        rows = document["passengers"]
        assert [r["index"] for r in rows] == [1, 2]
        assert rows[0]["gender"] == "F"
        assert rows[0]["infants"] == "IFNT HODAN\nIFNT AYAN"
        assert rows[1]["gender"] == "CH"
        assert rows[1]["phone_number"] == "-"

    def test_us_manifest(self, owner_console, booked):
        flight, _, _ = booked
        assert document_service.build_manifest(owner_console, flight.uuid, "us")["template_ref"] == "tpl/manifest-us.docx"

    def test_missing_kind_template(self, owner_console, booked):
        flight, _, _ = booked
        with pytest.raises(DocumentError):
            document_service.build_manifest(owner_console, flight.uuid, "airport")

    def test_invalid_kind(self, owner_console, booked):
        flight, _, _ = booked
        with pytest.raises(ValidationError):
            document_service.build_manifest(owner_console, flight.uuid, "cargo")


class TestSearch:
    """Passenger and flight search."""

    def test_upcoming_by_name(self, owner_console, booked):
        hits = search_service.search_flights(owner_console, "amina", today=date(2026, 1, 1))
        assert [(f.airline, p.name) for f, p in hits] == [("Daallo", "Amina Yusuf")]

    def test_past_excludes_upcoming(self, owner_console, booked):
        assert search_service.search_flights(owner_console, "amina", when="past", today=date(2026, 1, 1)) == []
        hits = search_service.search_flights(owner_console, "", when="past", today=date(2026, 2, 1))
        assert len(hits) == 2

    def test_flight_match_returns_all_passengers(self, owner_console, booked):
        hits = search_service.search_flights(owner_console, "mgq-dxb", when="all")
        assert len(hits) == 2

    def test_empty_flight_listed(self, owner_console):
        flight_service.create_flight(owner_console, {"airline": "Jubba", "date": "2026-05-01"})
        hits = search_service.search_flights(owner_console, "jubba", today=date(2026, 1, 1))
        assert len(hits) == 1
        assert hits[0][1] is None

    def test_staff_cannot_search_past(self, staff_console):
        with pytest.raises(PermissionDeniedError):
            search_service.search_flights(staff_console, "", when="past")

    def test_invalid_when(self, owner_console):
        with pytest.raises(ValidationError):
            search_service.search_flights(owner_console, "", when="tomorrow")
