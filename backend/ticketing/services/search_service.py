# Overview: Passenger search over the current console snapshot.

from __future__ import annotations

from ..errors import ValidationError
from ..permissions import PermissionCategory
from ..time_utils import today as utc_today


WHEN_CHOICES = ("upcoming", "past", "all")


def _required_actions(when: str) -> tuple[str, ...]:
    if when == "all":
        return ("upcoming", "past")
    return (when,)


def _flight_text(flight) -> str:
    return " ".join(filter(None, (flight.airline, flight.flight_number, flight.route))).lower()


def _passenger_text(passenger) -> str:
    return " ".join(filter(None, (
        passenger.name, passenger.phone_number, passenger.booking_reference, passenger.flight_number,
    ))).lower()


def search_flights(store, query: str = "", when: str = "upcoming", today=None) -> list[tuple]:
    """
    (flight, passenger) hits in snapshot order.

    Upcoming flights are those dated today or later. A flight that matches
    on its own fields contributes all its passengers; a matching flight
    without passengers is returned as (flight, None).
    """
    if when not in WHEN_CHOICES:
        raise ValidationError(f"when must be one of: {', '.join(WHEN_CHOICES)}")
    for action in _required_actions(when):
        store.require(PermissionCategory.SEARCHING, action, message=f"You do not have permission to search {action} flights")

    today = today or utc_today()
    needle = (query or "").strip().lower()
    hits = []
    for flight in store.snapshot.flights:
        if when == "upcoming" and flight.date < today:
            continue
        if when == "past" and flight.date >= today:
            continue

        flight_hit = not needle or needle in _flight_text(flight)
        matched = [p for p in flight.passengers if flight_hit or needle in _passenger_text(p)]
        if matched:
            hits.extend((flight, passenger) for passenger in matched)
        elif flight_hit:
            hits.append((flight, None))
    return hits
