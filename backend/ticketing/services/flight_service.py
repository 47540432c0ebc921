# Overview: Flight and passenger mutations with permission checks and optimistic snapshot patches.

"""
Flight & Passenger Mutations

Every operation follows the same order:

1. Resolve the target in the current snapshot (NotFoundError if absent)
2. Check permission locally, with the ownership fallback for updates and
   deletes (PermissionDeniedError, nothing is sent)
3. Validate and write through the backend gateway (RemoteWriteError leaves
   the snapshot untouched)
4. Patch the snapshot from the backend's response
5. Log activity, best-effort

Passenger saves are upserts: an id that looks like a backend UUID updates
that passenger, anything else (missing, blank, or a client temporary id)
inserts a new one. A passenger's infants are replaced wholesale on every
save. Children never carry infants or a gender.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from decimal import Decimal

from ..entities import (
    GENDERS,
    PASSENGER_TYPES,
    FlightRecord,
    PassengerRecord,
    normalize_flight,
    normalize_passenger,
)
from ..errors import NotFoundError, ValidationError
from ..permissions import PermissionCategory
from ..time_utils import to_iso_date
from ..validation import has_any, optional_text, parse_date_field, parse_money, pick, require_text
from . import activity_service, backend, pricing_service


logger = logging.getLogger(__name__)

MAX_INFANTS = 5
MAX_INFANT_NAME_LENGTH = 255

_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)

FLIGHT_FIELDS = (
    ("airline", "airline"),
    ("flight_number", "flightNumber"),
    ("date", "date"),
    ("route", "route"),
)


def is_persisted_id(value) -> bool:
    """True for ids issued by the backend; temporary client ids are never UUIDs."""
    return isinstance(value, str) and bool(_UUID_RE.match(value.strip()))


def _flight_label(flight: FlightRecord) -> str:
    return f"{flight.airline} {flight.flight_number or ''}".strip()


# =============================================================================
# FLIGHTS
# =============================================================================

def _flight_values(payload: dict, *, partial: bool) -> dict:
    values = {}
    if not partial or has_any(payload, "airline"):
        values["airline"] = require_text(pick(payload, "airline"), "airline")
    if not partial or has_any(payload, "date"):
        values["date"] = parse_date_field(pick(payload, "date"), "date", required=True)
    if not partial or has_any(payload, "flight_number", "flightNumber"):
        values["flight_number"] = optional_text(pick(payload, "flight_number", "flightNumber"))
    if not partial or has_any(payload, "route"):
        values["route"] = optional_text(pick(payload, "route"))
    return values


def create_flight(store, payload: dict) -> FlightRecord:
    store.require(PermissionCategory.FLIGHT, "create", message="You do not have permission to create flights")
    values = _flight_values(payload, partial=False)

    row = backend.insert("flights", {**values, "user_id": store.scope, "created_by": store.actor.id})
    flight = normalize_flight(row)
    store.put_flight(flight)

    activity_service.log_activity(
        store, activity_service.ACTION_CREATE, activity_service.ENTITY_FLIGHT, flight.id,
        f"Created flight {_flight_label(flight)} on {to_iso_date(flight.date)}",
        {"airline": flight.airline, "flight_number": flight.flight_number, "date": flight.date, "route": flight.route},
    )
    return store.get_flight(flight.uuid) or flight


def update_flight(store, flight_ref, payload: dict) -> FlightRecord:
    flight = store.require_flight(flight_ref)
    store.require(
        PermissionCategory.FLIGHT, "delete", owner_id=flight.created_by,
        message="You do not have permission to edit flights created by others",
    )
    values = _flight_values(payload, partial=True)
    if not values:
        return flight

    rows = backend.update("flights", values, id=flight.id, user_id=store.scope)
    if not rows:
        raise NotFoundError("Flight not found")
    updated = normalize_flight(rows[0])
    store.put_flight(updated)

    before = {key: getattr(flight, key) for key in values}
    after = {key: getattr(updated, key) for key in values}
    activity_service.log_activity(
        store, activity_service.ACTION_UPDATE, activity_service.ENTITY_FLIGHT, flight.id,
        f"Updated flight {_flight_label(updated)}",
        {"before": before, "after": after},
    )
    return store.get_flight(updated.uuid) or updated


def delete_flight(store, flight_ref) -> None:
    """Delete a flight; its passengers and their infants go with it."""
    flight = store.require_flight(flight_ref)
    store.require(
        PermissionCategory.FLIGHT, "delete", owner_id=flight.created_by,
        message="You do not have permission to delete flights created by others",
    )
    backend.delete("flights", id=flight.id, user_id=store.scope)
    store.drop_flight(flight.uuid)

    activity_service.log_activity(
        store, activity_service.ACTION_DELETE, activity_service.ENTITY_FLIGHT, flight.id,
        f"Deleted flight {_flight_label(flight)} on {to_iso_date(flight.date)}",
        {"passengers": len(flight.passengers)},
    )


# =============================================================================
# PASSENGERS
# =============================================================================

def _infant_names(raw) -> list[str]:
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        raise ValidationError("infants must be a list of names")
    # Blank entries are empty form rows, not infants
    names = [str(value).strip() for value in raw if value is not None and str(value).strip()]
    if len(names) > MAX_INFANTS:
        raise ValidationError(f"A passenger can carry at most {MAX_INFANTS} infants")
    for name in names:
        if len(name) > MAX_INFANT_NAME_LENGTH:
            raise ValidationError(f"Infant names are limited to {MAX_INFANT_NAME_LENGTH} characters")
    return names


def _base_values(store, flight: FlightRecord, existing: PassengerRecord | None) -> dict:
    if existing is None:
        return pricing_service.passenger_defaults(store, flight)
    return {
        "name": existing.name,
        "type": existing.type,
        "gender": existing.gender,
        "phone_number": existing.phone_number,
        "agency": existing.agency,
        "flight_number": existing.flight_number,
        "booking_reference": existing.booking_reference,
        "ticket_price": existing.ticket_price,
        "tax": existing.tax,
        "surcharge": existing.surcharge,
        "total_price": existing.total_price,
        "date_of_issue": existing.date_of_issue,
        "infants": list(existing.infants),
    }


def passenger_values(store, flight: FlightRecord, payload: dict,
                     existing: PassengerRecord | None = None) -> tuple[dict, list[str]]:
    """
    Validated column values and infant names for a passenger save.

    Fields missing from the payload keep the existing passenger's value
    (or the new-passenger default). The total is recomputed whenever a
    pricing input is given without an explicit total.
    """
    base = _base_values(store, flight, existing)

    def field(name, *aliases):
        if has_any(payload, name, *aliases):
            return pick(payload, name, *aliases)
        return base.get(name)

    name = require_text(field("name"), "name")

    passenger_type = field("type") or "Adult"
    if passenger_type not in PASSENGER_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(PASSENGER_TYPES)}")

    if passenger_type == "Child":
        gender = None
        infants = []
    else:
        gender = field("gender") or "M"
        if gender not in GENDERS:
            raise ValidationError(f"gender must be one of: {', '.join(GENDERS)}")
        infants = _infant_names(field("infants"))

    book = pricing_service.price_book_for(store, flight)
    tax = parse_money(field("tax"), "tax")
    tax = book.tax if tax is None else tax
    surcharge = parse_money(field("surcharge"), "surcharge")
    surcharge = book.surcharge if surcharge is None else surcharge

    type_changed = existing is not None and passenger_type != existing.type
    ticket_price = None
    if has_any(payload, "ticket_price", "ticketPrice", "base_price", "basePrice"):
        ticket_price = parse_money(pick(payload, "ticket_price", "ticketPrice", "base_price", "basePrice"), "ticket_price")
    elif existing is not None and not type_changed:
        ticket_price = existing.ticket_price
    if ticket_price is None:
        ticket_price = book.base_price(passenger_type)

    pricing_inputs = has_any(payload, "type", "tax", "surcharge", "infants", "ticket_price", "ticketPrice",
                             "base_price", "basePrice")
    total_price = parse_money(pick(payload, "total_price", "totalPrice"), "total_price")
    if total_price is None:
        if existing is not None and not pricing_inputs and existing.total_price is not None:
            total_price = existing.total_price
        else:
            total_price = ticket_price + tax + surcharge + len(infants) * book.infant

    values = {
        "name": name,
        "type": passenger_type,
        "gender": gender,
        "phone_number": optional_text(field("phone_number", "phoneNumber")),
        "agency": optional_text(field("agency")),
        "flight_number": optional_text(field("flight_number", "flightNumber")) or flight.flight_number,
        "booking_reference": optional_text(field("booking_reference", "bookingReference")),
        "ticket_price": ticket_price,
        "tax": tax,
        "surcharge": surcharge,
        "total_price": total_price,
        "date_of_issue": parse_date_field(field("date_of_issue", "dateOfIssue"), "date_of_issue"),
    }
    return values, infants


def _replace_infants(store, passenger_id: str, names: list[str]) -> None:
    backend.delete("infants", passenger_id=passenger_id, user_id=store.scope)
    if names:
        backend.insert_many("infants", [
            {"passenger_id": passenger_id, "user_id": store.scope, "name": name, "created_by": store.actor.id}
            for name in names
        ])


def _stored_passenger(store, flight: FlightRecord, passenger_id: str) -> PassengerRecord:
    """The saved passenger when the snapshot hides it from this actor."""
    row = backend.select_one("passengers", id=passenger_id, flight_id=flight.uuid, user_id=store.scope)
    if row is None:
        raise NotFoundError("Passenger not found")
    infants = backend.select("infants", passenger_id=passenger_id, user_id=store.scope)
    return normalize_passenger(row, [infant["name"] for infant in infants])


def _diff(existing: PassengerRecord, updated: PassengerRecord) -> dict:
    changes = {}
    for key in ("name", "type", "gender", "phone_number", "agency", "booking_reference", "total_price"):
        before, after = getattr(existing, key), getattr(updated, key)
        if before != after:
            changes[key] = {"before": before, "after": after}
    if existing.infants != updated.infants:
        changes["infants"] = {"before": list(existing.infants), "after": list(updated.infants)}
    return changes


def save_passenger(store, flight_ref, payload: dict) -> PassengerRecord:
    """Insert or update a passenger on a flight, replacing its infants."""
    flight = store.require_flight(flight_ref)
    passenger_id = pick(payload, "id")

    if is_persisted_id(passenger_id):
        return _update_passenger(store, flight, passenger_id.strip(), payload)
    return _insert_passenger(store, flight, payload)


def _insert_passenger(store, flight: FlightRecord, payload: dict) -> PassengerRecord:
    store.require(PermissionCategory.PASSENGER, "create", message="You do not have permission to add passengers")
    values, infants = passenger_values(store, flight, payload)

    with backend.transaction("passengers"):
        row = backend.insert("passengers", {
            **values,
            "flight_id": flight.uuid,
            "user_id": store.scope,
            "created_by": store.actor.id,
            "updated_by": store.actor.id,
        })
        _replace_infants(store, row["id"], infants)
    passenger = normalize_passenger(row, infants)
    store.put_passenger(flight.uuid, passenger)

    activity_service.log_activity(
        store, activity_service.ACTION_CREATE, activity_service.ENTITY_PASSENGER, passenger.id,
        f"Added passenger {passenger.name} to {_flight_label(flight)}",
        {"flight": _flight_label(flight), "date": flight.date, "type": passenger.type, "infants": len(infants)},
    )
    return passenger


def _update_passenger(store, flight: FlightRecord, passenger_id: str, payload: dict) -> PassengerRecord:
    existing = flight.find_passenger(passenger_id) or _stored_passenger(store, flight, passenger_id)
    store.require(
        PermissionCategory.PASSENGER, "delete", owner_id=existing.created_by,
        message="You do not have permission to edit passengers added by others",
    )
    values, infants = passenger_values(store, flight, payload, existing)

    with backend.transaction("passengers"):
        rows = backend.update(
            "passengers", {**values, "updated_by": store.actor.id},
            id=passenger_id, flight_id=flight.uuid, user_id=store.scope,
        )
        if not rows:
            raise NotFoundError("Passenger not found")
        _replace_infants(store, passenger_id, infants)
    passenger = normalize_passenger(rows[0], infants)
    store.put_passenger(flight.uuid, passenger)

    changes = _diff(existing, passenger)
    activity_service.log_activity(
        store, activity_service.ACTION_UPDATE, activity_service.ENTITY_PASSENGER, passenger.id,
        f"Updated passenger {passenger.name} on {_flight_label(flight)}",
        {"flight": _flight_label(flight), "changes": changes},
    )
    return passenger


def remove_passenger(store, flight_ref, passenger_id: str) -> None:
    """Delete a passenger and its infants."""
    flight = store.require_flight(flight_ref)
    passenger = flight.find_passenger(passenger_id)
    store.require(
        PermissionCategory.PASSENGER, "delete", owner_id=passenger.created_by if passenger else None,
        message="You do not have permission to remove passengers added by others",
    )
    backend.delete("passengers", id=passenger_id, flight_id=flight.uuid, user_id=store.scope)
    store.drop_passenger(flight.uuid, passenger_id)

    activity_service.log_activity(
        store, activity_service.ACTION_DELETE, activity_service.ENTITY_PASSENGER, passenger_id,
        f"Removed passenger {passenger.name if passenger else passenger_id} from {_flight_label(flight)}",
        {"flight": _flight_label(flight), "date": flight.date},
    )


def new_passenger_template(store, flight_ref) -> dict:
    """Defaults for the add-passenger form of a flight."""
    flight = store.require_flight(flight_ref)
    store.require(PermissionCategory.PASSENGER, "create", message="You do not have permission to add passengers")
    defaults = pricing_service.passenger_defaults(store, flight)
    return {key: _wire(value) for key, value in defaults.items()}


def _wire(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return to_iso_date(value)
    return value
