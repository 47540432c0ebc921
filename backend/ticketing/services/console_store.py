# Overview: Per-session console state; owns the current snapshot, the load token and the change listener.

"""
Console Store

One ConsoleStore exists per signed-in session. It holds the last
reconciled Snapshot and is the only place that snapshot is replaced.

LOADS:
- Every reload takes a new token from a monotonic counter. When the load
  finishes, its result is installed only if no newer load has started
  since; otherwise it is discarded.
- reload() re-resolves the actor and scope. A failed role lookup keeps
  the previously resolved actor.

CHANGES:
- While open, the store subscribes to the change feed for its scope.
  Any committed change to flights, passengers or infants of that scope
  triggers a full reload.
- Mutations apply optimistic patches. Patches merge by id, so applying
  the same patch after a reload already picked the change up is harmless.

LIFECYCLE: close() releases the subscription exactly once. Any operation
on a closed store raises ConsoleError.
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import replace

from ..entities import AirlineRecord, FlightRecord, PassengerRecord, Snapshot
from ..errors import AccountDeactivatedError, ConsoleError, NotFoundError, RemoteReadError
from . import change_feed, loader_service, permission_service, scope_service


logger = logging.getLogger(__name__)


def _merge_by_id(items, record, key=lambda r: r.id):
    """Replace the item with record's key, or append it."""
    record_key = key(record)
    merged, found = [], False
    for item in items:
        if key(item) == record_key:
            merged.append(record)
            found = True
        else:
            merged.append(item)
    if not found:
        merged.append(record)
    return tuple(merged)


def _without_id(items, record_id, key=lambda r: r.id):
    return tuple(item for item in items if key(item) != record_id)


class ConsoleStore:
    def __init__(self, user_id: str, *, listen: bool = True):
        self.user_id = user_id
        self._listen = listen
        self._actor = None
        self._scope = None
        self._snapshot = None
        self._subscription = None
        self._tokens = itertools.count(1)
        self._latest_token = 0
        self._lock = threading.RLock()
        self._closed = False

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def open(self) -> "ConsoleStore":
        """Resolve the actor, subscribe to its scope and run the first load."""
        actor = scope_service.resolve_actor(self.user_id)
        if not actor.active:
            raise AccountDeactivatedError("This account has been deactivated. Contact your administrator.")
        self._actor = actor
        self._scope = scope_service.resolve_scope(actor)
        self._snapshot = Snapshot(scope=self._scope)
        if self._listen:
            self._subscribe()
        try:
            self._load(refresh_actor=False)
        except ConsoleError:
            self.close()
            raise
        logger.info("Console opened for %s (role=%s, scope=%s)", self.user_id, actor.role, self._scope)
        return self

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._subscription is not None:
                self._subscription.unsubscribe()
                self._subscription = None
            self._snapshot = None
        logger.info("Console closed for %s", self.user_id)

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self):
        if self._closed:
            raise ConsoleError("Console session closed")

    def _subscribe(self):
        if self._subscription is not None:
            self._subscription.unsubscribe()
        self._subscription = change_feed.subscribe(self._scope, self._on_changes)

    def _on_changes(self, changes):
        if self._closed:
            return
        logger.debug("Reloading %s after %d change(s)", self.user_id, len(changes))
        try:
            self.reload()
        except ConsoleError:
            logger.warning("Background reload failed for %s", self.user_id, exc_info=True)

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def actor(self):
        self._ensure_open()
        return self._actor

    @property
    def scope(self) -> str:
        self._ensure_open()
        return self._scope

    @property
    def snapshot(self) -> Snapshot:
        self._ensure_open()
        return self._snapshot

    @property
    def latest_token(self) -> int:
        return self._latest_token

    def next_token(self) -> int:
        with self._lock:
            token = next(self._tokens)
            self._latest_token = token
            return token

    def is_current(self, token: int) -> bool:
        return not self._closed and token == self._latest_token

    def reload(self) -> Snapshot:
        """Full reload; returns the installed snapshot."""
        self._ensure_open()
        return self._load(refresh_actor=True)

    def _load(self, *, refresh_actor: bool) -> Snapshot:
        token = self.next_token()
        actor = self._actor
        if refresh_actor:
            try:
                actor = scope_service.lookup_actor(self.user_id)
            except RemoteReadError:
                logger.warning("Role lookup failed for %s; keeping previous role", self.user_id)
        if not actor.active:
            self.close()
            raise AccountDeactivatedError("This account has been deactivated. Contact your administrator.")

        scope = scope_service.resolve_scope(actor)
        snapshot = loader_service.load_all(actor, scope, previous=self._snapshot, version=token)
        return self.install(token, snapshot, actor=actor)

    def install(self, token: int, snapshot: Snapshot, *, actor=None) -> Snapshot:
        """Install a loaded snapshot unless a newer load started after token was issued."""
        with self._lock:
            if not self.is_current(token):
                logger.debug("Discarding superseded load %s (latest %s)", token, self._latest_token)
                return self._snapshot
            if actor is not None:
                self._actor = actor
            if snapshot.scope != self._scope:
                logger.info("Scope changed for %s: %s -> %s", self.user_id, self._scope, snapshot.scope)
                self._scope = snapshot.scope
                if self._listen:
                    self._subscribe()
            self._snapshot = snapshot
            return snapshot

    def patch(self, **changes) -> Snapshot:
        with self._lock:
            self._ensure_open()
            self._snapshot = replace(self._snapshot, **changes)
            return self._snapshot

    # -------------------------------------------------------------------------
    # Permissions
    # -------------------------------------------------------------------------

    def has_permission(self, category: str, action: str) -> bool:
        return permission_service.has_permission(
            self.actor.role, category, action, self.snapshot.role_definitions
        )

    def require(self, category: str, action: str, *, owner_id: str | None = None, message: str | None = None):
        permission_service.require_permission(
            self.actor, category, action, self.snapshot.role_definitions,
            owner_id=owner_id, message=message,
        )

    def permissions(self) -> dict:
        return permission_service.effective_permissions(self.actor.role, self.snapshot.role_definitions)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def get_flight(self, ref) -> FlightRecord | None:
        for flight in self.snapshot.flights:
            if flight.matches(ref):
                return flight
        return None

    def require_flight(self, ref) -> FlightRecord:
        flight = self.get_flight(ref)
        if flight is None:
            raise NotFoundError("Flight not found")
        return flight

    def get_airline(self, ref) -> AirlineRecord | None:
        """Airline by id, or by name (flights reference airlines by name)."""
        if ref is None:
            return None
        for airline in self.snapshot.airlines:
            if airline.id == ref or airline.name == ref or str(airline.id) == str(ref):
                return airline
        return None

    def resolve_user_name(self, user_id: str | None) -> str:
        snapshot = self.snapshot
        if user_id in snapshot.display_names:
            return snapshot.display_names[user_id]
        directory = loader_service.build_directory(snapshot.managed_users, snapshot.account_users)
        return loader_service.resolve_display_name(user_id, self.actor.id, directory)

    # -------------------------------------------------------------------------
    # Optimistic patches
    # -------------------------------------------------------------------------

    def _remember_names(self, display_names: dict, *user_ids) -> dict:
        names = dict(display_names)
        for user_id in user_ids:
            if user_id and user_id not in names:
                names[user_id] = self.resolve_user_name(user_id)
        return names

    def _visible(self, flight: FlightRecord) -> FlightRecord | None:
        """The flight as a reload would show it to this actor, or None when hidden."""
        shown = loader_service.filter_visible([flight], self.actor, self.snapshot.role_definitions)
        return shown[0] if shown else None

    def put_flight(self, flight: FlightRecord) -> Snapshot:
        """
        Insert or replace a flight; an existing flight keeps its current passengers.

        A flight the actor may not see is removed instead, matching what the
        next reload produces.
        """
        with self._lock:
            snapshot = self.snapshot
            existing = self.get_flight(flight.uuid)
            if existing is not None:
                flight = replace(flight, passengers=existing.passengers)
            flight = self._visible(flight)
            if flight is None:
                if existing is None:
                    return snapshot
                return self.patch(flights=_without_id(snapshot.flights, existing.uuid, key=lambda f: f.uuid))
            flights = _merge_by_id(snapshot.flights, flight, key=lambda f: f.uuid)
            return self.patch(
                flights=tuple(loader_service.sort_flights(flights)),
                display_names=self._remember_names(snapshot.display_names, flight.created_by),
            )

    def drop_flight(self, flight_uuid: str) -> Snapshot:
        with self._lock:
            return self.patch(flights=_without_id(self.snapshot.flights, flight_uuid, key=lambda f: f.uuid))

    def put_passenger(self, flight_uuid: str, passenger: PassengerRecord) -> Snapshot:
        with self._lock:
            snapshot = self.snapshot
            flight = self.get_flight(flight_uuid)
            if flight is None:
                return snapshot
            updated = self._visible(replace(flight, passengers=_merge_by_id(flight.passengers, passenger)))
            if updated is None:
                return snapshot
            if passenger not in updated.passengers:
                return self.patch(flights=_merge_by_id(snapshot.flights, updated, key=lambda f: f.uuid))
            return self.patch(
                flights=_merge_by_id(snapshot.flights, updated, key=lambda f: f.uuid),
                display_names=self._remember_names(
                    snapshot.display_names, passenger.created_by, passenger.updated_by
                ),
            )

    def drop_passenger(self, flight_uuid: str, passenger_id: str) -> Snapshot:
        with self._lock:
            snapshot = self.snapshot
            flight = self.get_flight(flight_uuid)
            if flight is None:
                return snapshot
            updated = replace(flight, passengers=_without_id(flight.passengers, passenger_id))
            return self.patch(flights=_merge_by_id(snapshot.flights, updated, key=lambda f: f.uuid))

    def put_record(self, collection: str, record) -> Snapshot:
        """Merge an airline/agency/managed user/role definition into its collection."""
        with self._lock:
            snapshot = self.snapshot
            changes = {collection: _merge_by_id(getattr(snapshot, collection), record)}
            updated_by = getattr(record, "updated_by", None)
            if updated_by:
                changes["display_names"] = self._remember_names(snapshot.display_names, updated_by)
            return self.patch(**changes)

    def drop_record(self, collection: str, record_id) -> Snapshot:
        with self._lock:
            return self.patch(**{collection: _without_id(getattr(self.snapshot, collection), record_id)})
