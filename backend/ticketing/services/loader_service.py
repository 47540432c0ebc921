# Overview: Account data loader; fetches, joins, filters, sorts and names one account's data set.

"""
Account Loader

Builds a Snapshot from independent dataset reads:

1. Fetch every dataset for the scope. Each read may fail on its own.
2. Join infants -> passengers -> flights in memory.
3. Filter by visibility (view_any / view_own per category).
4. Sort flights by date, newest first (stable for equal dates).
5. Resolve display names for every user id the snapshot references.

PARTIAL FAILURE: a dataset that fails keeps its value from the previous
snapshot of the same scope (or its empty default on first load). Flights,
passengers and infants form one aggregate and degrade together so a flight
never shows a partially joined passenger list. Only when every dataset
fails is the load itself reported as failed.

The loader is read-only and idempotent: loading twice with no remote
changes yields equal snapshots.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace

from ..entities import (
    Actor,
    FlightRecord,
    Snapshot,
    normalize_account_user,
    normalize_agency,
    normalize_airline,
    normalize_flight,
    normalize_infant,
    normalize_managed_user,
    normalize_passenger,
    normalize_role_definition,
    normalize_settings,
)
from ..errors import PartialLoadError, RemoteReadError
from ..permissions import PermissionCategory
from . import backend
from .permission_service import has_permission


logger = logging.getLogger(__name__)

FLIGHT_AGGREGATE = ("flights", "passengers", "infants")

SYSTEM_LABEL = "System"
SELF_LABEL = "Me"
UNKNOWN_LABEL = "User"


def _fetchers(scope: str) -> dict:
    return {
        "flights": lambda: backend.select("flights", user_id=scope),
        "passengers": lambda: backend.select("passengers", user_id=scope, order_by=("created_at", "id")),
        "infants": lambda: backend.select("infants", user_id=scope),
        "airlines": lambda: backend.select("airlines", user_id=scope, order_by=("name", "id")),
        "agencies": lambda: backend.select("agencies", user_id=scope, order_by=("name", "id")),
        "settings": lambda: backend.select_one("settings", user_id=scope),
        "managed_users": lambda: backend.select("managed_users", user_id=scope),
        "role_definitions": lambda: backend.select("role_permissions", order_by=("role",)),
        "account_users": lambda: backend.select_any("user_roles", {"user_id": scope, "created_by": scope}),
    }


DATASETS = tuple(_fetchers("").keys())


def fetch_datasets(scope: str) -> tuple[dict, dict]:
    """Read every dataset; returns (results, errors) keyed by dataset name."""
    results, errors = {}, {}
    for name, fetch in _fetchers(scope).items():
        try:
            results[name] = fetch()
        except RemoteReadError as exc:
            logger.warning("Dataset %s failed to load for account %s: %s", name, scope, exc)
            errors[name] = exc
    return results, errors


def join_flights(flight_rows, passenger_rows, infant_rows) -> list[FlightRecord]:
    """Attach infants to passengers and passengers to flights; orphans are dropped."""
    infants_by_passenger = defaultdict(list)
    for row in infant_rows:
        infant = normalize_infant(row)
        infants_by_passenger[infant.passenger_id].append(infant.name)

    passengers_by_flight = defaultdict(list)
    for row in passenger_rows:
        passenger = normalize_passenger(row, infants_by_passenger.get(row["id"], ()))
        passengers_by_flight[passenger.flight_id].append(passenger)

    return [normalize_flight(row, passengers_by_flight.get(row["uuid"], ())) for row in flight_rows]


def filter_visible(flights, actor: Actor, role_definitions) -> list[FlightRecord]:
    """
    Drop what the actor may not see.

    Flights: view_any shows all, view_own shows the actor's own, neither
    shows none. Passengers are filtered the same way inside each visible
    flight. Admin sees everything.
    """
    if actor.is_admin:
        return list(flights)

    def allowed(category, action):
        return has_permission(actor.role, category, action, role_definitions)

    if not allowed(PermissionCategory.FLIGHT, "view_any"):
        if allowed(PermissionCategory.FLIGHT, "view_own"):
            flights = [f for f in flights if f.created_by == actor.id]
        else:
            flights = []

    any_passenger = allowed(PermissionCategory.PASSENGER, "view_any")
    own_passenger = allowed(PermissionCategory.PASSENGER, "view_own")
    if any_passenger:
        return list(flights)

    def visible(passenger):
        return own_passenger and passenger.created_by == actor.id

    return [replace(f, passengers=tuple(p for p in f.passengers if visible(p))) for f in flights]


def sort_flights(flights) -> list[FlightRecord]:
    """Newest date first; equal dates keep their fetched order."""
    return sorted(flights, key=lambda f: f.date, reverse=True)


def build_directory(managed_users, account_users) -> dict:
    """user id -> name, managed-user names first, role rows filling the gaps."""
    names = {}
    for user in managed_users:
        if user.managed_user_id and user.name:
            names[user.managed_user_id] = user.name
    for user in account_users:
        names.setdefault(user.user_id, user.display_name)
    return names


def resolve_display_name(user_id: str | None, actor_id: str, directory: dict) -> str:
    if not user_id:
        return SYSTEM_LABEL
    if user_id == actor_id:
        return SELF_LABEL
    return directory.get(user_id) or UNKNOWN_LABEL


def referenced_user_ids(flights, airlines, agencies, settings) -> set:
    ids = set()
    for flight in flights:
        ids.add(flight.created_by)
        for passenger in flight.passengers:
            ids.add(passenger.created_by)
            ids.add(passenger.updated_by)
    ids.update(a.updated_by for a in airlines)
    ids.update(a.updated_by for a in agencies)
    ids.add(settings.updated_by)
    ids.discard(None)
    return ids


def load_all(actor: Actor, scope: str, previous: Snapshot | None = None, version: int = 0) -> Snapshot:
    """
    Load and reconcile every dataset of the scope.

    Raises PartialLoadError only when no dataset could be read at all.
    """
    results, errors = fetch_datasets(scope)
    if len(errors) == len(DATASETS):
        raise PartialLoadError("Failed to load account data", datasets=sorted(errors))

    prev = previous if previous is not None and previous.scope == scope else Snapshot(scope=scope)

    def dataset(name, build, fallback):
        if name in errors:
            return fallback
        return build(results[name])

    role_definitions = dataset(
        "role_definitions",
        lambda rows: tuple(normalize_role_definition(r) for r in rows),
        prev.role_definitions,
    )

    if any(name in errors for name in FLIGHT_AGGREGATE):
        flights = prev.flights
    else:
        joined = join_flights(results["flights"], results["passengers"], results["infants"])
        flights = tuple(sort_flights(filter_visible(joined, actor, role_definitions)))

    airlines = dataset("airlines", lambda rows: tuple(normalize_airline(r) for r in rows), prev.airlines)
    agencies = dataset("agencies", lambda rows: tuple(normalize_agency(r) for r in rows), prev.agencies)
    settings = dataset("settings", normalize_settings, prev.settings)
    managed_users = dataset(
        "managed_users", lambda rows: tuple(normalize_managed_user(r) for r in rows), prev.managed_users
    )
    account_users = dataset(
        "account_users", lambda rows: tuple(normalize_account_user(r) for r in rows), prev.account_users
    )

    directory = build_directory(managed_users, account_users)
    display_names = {
        user_id: resolve_display_name(user_id, actor.id, directory)
        for user_id in referenced_user_ids(flights, airlines, agencies, settings)
    }

    if errors:
        logger.info("Loaded account %s with stale datasets: %s", scope, ", ".join(sorted(errors)))

    return Snapshot(
        scope=scope,
        flights=flights,
        airlines=airlines,
        agencies=agencies,
        settings=settings,
        managed_users=managed_users,
        role_definitions=role_definitions,
        account_users=account_users,
        display_names=display_names,
        version=version,
    )
