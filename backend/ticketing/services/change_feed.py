# Overview: Row-change notifications for flight-related tables, filtered by account owner.

"""
Change Feed

Collects inserts, updates and deletes of watched tables at flush time,
keeps them until the transaction commits, and hands each subscriber the
committed events for the account it watches. Rolled-back changes are
dropped and never published.

Subscribers receive one batch per commit, not one call per row, so a
single write touching a passenger and its infants triggers one reload.

Events carry no row payload beyond identifiers: consumers reload rather
than patch from events.
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass

from sqlalchemy import event
from sqlalchemy.orm import Session


logger = logging.getLogger(__name__)

WATCHED_TABLES = frozenset({"flights", "passengers", "infants"})

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"

_PENDING_KEY = "change_feed.pending"
_COMMITTED_KEY = "change_feed.committed"


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    event_type: str
    owner_id: str | None
    record_id: str | None


class Subscription:
    """Handle returned by subscribe(); unsubscribe() is idempotent."""

    def __init__(self, subscription_id: int, owner_id: str, tables: frozenset, callback):
        self.id = subscription_id
        self.owner_id = owner_id
        self.tables = tables
        self.callback = callback
        self.active = True

    def wants(self, change: ChangeEvent) -> bool:
        return change.table in self.tables and change.owner_id == self.owner_id

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        with _lock:
            _subscriptions.pop(self.id, None)

    def __repr__(self) -> str:
        return f"<Subscription id={self.id} owner={self.owner_id!r} active={self.active}>"


_subscriptions: dict[int, Subscription] = {}
_lock = threading.Lock()
_ids = itertools.count(1)


def subscribe(owner_id: str, callback, tables=WATCHED_TABLES) -> Subscription:
    """Deliver committed changes of ``tables`` owned by ``owner_id`` to callback(events)."""
    unknown = set(tables) - WATCHED_TABLES
    if unknown:
        raise ValueError(f"Tables are not watched: {', '.join(sorted(unknown))}")
    subscription = Subscription(next(_ids), owner_id, frozenset(tables), callback)
    with _lock:
        _subscriptions[subscription.id] = subscription
    logger.debug("Subscribed %r", subscription)
    return subscription


def subscription_count() -> int:
    with _lock:
        return len(_subscriptions)


def publish(changes: list[ChangeEvent]) -> None:
    """Dispatch changes to matching subscribers. Subscriber failures are logged, never raised."""
    if not changes:
        return
    with _lock:
        subscribers = list(_subscriptions.values())
    for subscription in subscribers:
        if not subscription.active:
            continue
        matching = [change for change in changes if subscription.wants(change)]
        if not matching:
            continue
        try:
            subscription.callback(matching)
        except Exception:
            logger.exception("Change subscriber %r failed", subscription)


def take_committed(session) -> list[ChangeEvent]:
    """Detach the changes staged by the session's last commit."""
    return session.info.pop(_COMMITTED_KEY, None) or []


def _describe(obj, event_type: str) -> ChangeEvent | None:
    table = getattr(obj, "__tablename__", None)
    if table not in WATCHED_TABLES:
        return None
    record_id = getattr(obj, "id", None)
    return ChangeEvent(
        table=table,
        event_type=event_type,
        owner_id=getattr(obj, "user_id", None),
        record_id=None if record_id is None else str(record_id),
    )


@event.listens_for(Session, "after_flush")
def _collect(session, flush_context):
    pending = session.info.setdefault(_PENDING_KEY, [])
    for obj in session.new:
        change = _describe(obj, INSERT)
        if change:
            pending.append(change)
    for obj in session.dirty:
        if not session.is_modified(obj, include_collections=False):
            continue
        change = _describe(obj, UPDATE)
        if change:
            pending.append(change)
    for obj in session.deleted:
        change = _describe(obj, DELETE)
        if change:
            pending.append(change)


@event.listens_for(Session, "after_commit")
def _stage(session):
    pending = session.info.pop(_PENDING_KEY, None)
    if pending:
        session.info.setdefault(_COMMITTED_KEY, []).extend(pending)


@event.listens_for(Session, "after_rollback")
def _discard(session):
    session.info.pop(_PENDING_KEY, None)


@event.listens_for(Session, "after_begin")
def _drop_stale(session, transaction, connection):
    # Commits made outside the gateway are never published.
    session.info.pop(_COMMITTED_KEY, None)
