# Overview: Ticket and manifest data hand-off; builds plain rows for the document renderer.

"""
Document Hand-off

The console does not render files. It hands the renderer a finalized,
permission-checked payload:

    {"template_ref", "kind", "flight": {...}, "passengers": [row, ...]}

Rows carry display-ready values (salutation, upper-cased names, infant
labels, D-M-YYYY dates) and the resolved prices of the passenger's type.
"""

from __future__ import annotations

from ..entities import FlightRecord, PassengerRecord
from ..errors import DocumentError, NotFoundError, ValidationError
from ..permissions import PermissionCategory
from ..time_utils import format_dmy
from . import pricing_service


MAX_INFANT_SLOTS = 5
MANIFEST_KINDS = ("general", "us", "airport")
PLACEHOLDER = "-"


def salutation(passenger: PassengerRecord) -> str:
    if passenger.is_child:
        return "CH"
    return "MRS" if passenger.gender == "F" else "MR"


def display_name(passenger: PassengerRecord) -> str:
    return f"{salutation(passenger)} {(passenger.name or '').upper()}"


def infant_labels(passenger: PassengerRecord) -> list[str]:
    return [f"IFNT {name.upper()}" for name in passenger.infants]


def _money(value) -> str | None:
    return None if value is None else str(value)


def _flight_info(flight: FlightRecord) -> dict:
    return {
        "airline": flight.airline,
        "flight_number": flight.flight_number,
        "route": flight.route,
        "date": format_dmy(flight.date),
    }


def _select_passengers(flight: FlightRecord, passenger_ids) -> list[PassengerRecord]:
    if passenger_ids is None:
        return list(flight.passengers)
    selected = []
    for passenger_id in passenger_ids:
        passenger = flight.find_passenger(str(passenger_id))
        if passenger is None:
            raise NotFoundError(f"Passenger not found: {passenger_id}")
        selected.append(passenger)
    return selected


def _priced(passenger: PassengerRecord, book: pricing_service.PriceBook) -> dict:
    base = book.base_price(passenger.type)
    infant_total = len(passenger.infants) * book.infant
    return {
        "base_price": _money(base),
        "infant_price": _money(book.infant),
        "price": _money(base + infant_total),
        "tax": _money(passenger.tax),
        "surcharge": _money(passenger.surcharge),
        "total_price": _money(passenger.total_price),
    }


def ticket_row(passenger: PassengerRecord, flight: FlightRecord, book, *, is_last: bool = False) -> dict:
    labels = infant_labels(passenger)
    row = {
        "id": passenger.id,
        "name": display_name(passenger),
        "infant_list": labels,
        "is_last": is_last,
        "date": format_dmy(flight.date),
        "booking_reference": passenger.booking_reference or "",
        "flight_number": flight.flight_number or passenger.flight_number or "",
        "airline": flight.airline,
        "route": flight.route or "",
        "agency": passenger.agency or PLACEHOLDER,
        "date_of_issue": format_dmy(passenger.date_of_issue),
    }
    for slot in range(1, MAX_INFANT_SLOTS + 1):
        row[f"IFNT{slot}"] = labels[slot - 1] if slot <= len(labels) else ""
    row.update(_priced(passenger, book))
    return row


def manifest_row(index: int, passenger: PassengerRecord, flight: FlightRecord, book) -> dict:
    row = {
        "index": index,
        "id": passenger.id,
        "name": display_name(passenger),
        "gender": "CH" if passenger.is_child else (passenger.gender or "M"),
        "phone_number": passenger.phone_number or PLACEHOLDER,
        "infants": "\n".join(infant_labels(passenger)),
        "place": flight.route or PLACEHOLDER,
        "agency": passenger.agency or PLACEHOLDER,
    }
    row.update(_priced(passenger, book))
    return row


def build_ticket_batch(store, flight_ref, passenger_ids=None) -> dict:
    """
    Ticket data for the selected passengers (all visible ones by default).

    Several passengers need generating.batch. One passenger picked by id is
    a single download and needs generating.download; otherwise
    generating.ticket.
    """
    flight = store.require_flight(flight_ref)
    passengers = _select_passengers(flight, passenger_ids)
    if not passengers:
        raise ValidationError("Select at least one passenger")

    if len(passengers) > 1:
        action = "batch"
    elif passenger_ids is not None:
        action = "download"
    else:
        action = "ticket"
    store.require(PermissionCategory.GENERATING, action, message="You do not have permission to generate tickets")

    airline = store.get_airline(flight.airline)
    template_ref = airline.ticket_template if airline else None
    if not template_ref:
        raise DocumentError(f"No ticket template configured for {flight.airline}")

    book = pricing_service.resolve_price_book(store.snapshot.settings, airline)
    last = len(passengers) - 1
    return {
        "kind": "ticket",
        "template_ref": template_ref,
        "flight": _flight_info(flight),
        "passengers": [ticket_row(p, flight, book, is_last=i == last) for i, p in enumerate(passengers)],
    }


def build_manifest(store, flight_ref, kind: str = "general", passenger_ids=None) -> dict:
    if kind not in MANIFEST_KINDS:
        raise ValidationError(f"kind must be one of: {', '.join(MANIFEST_KINDS)}")
    flight = store.require_flight(flight_ref)
    store.require(PermissionCategory.GENERATING, "manifest", message="You do not have permission to generate manifests")
    passengers = _select_passengers(flight, passenger_ids)

    airline = store.get_airline(flight.airline)
    template_ref = airline.manifest_ref(kind) if airline else None
    if not template_ref:
        raise DocumentError(f"No {kind} manifest template configured for {flight.airline}")

    book = pricing_service.resolve_price_book(store.snapshot.settings, airline)
    return {
        "kind": f"manifest:{kind}",
        "template_ref": template_ref,
        "flight": _flight_info(flight),
        "passengers": [manifest_row(i, p, flight, book) for i, p in enumerate(passengers, start=1)],
    }
