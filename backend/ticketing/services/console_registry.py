# Overview: Process-wide registry of open console sessions keyed by user id.

"""
Console Registry

Keeps one ConsoleStore per signed-in identity. Stores are opened lazily on
the first console request and torn down when the identity signs out, its
session expires, or its profile changes (the next request opens a fresh
store with the updated role).
"""

from __future__ import annotations

import logging
import threading

from . import auth_service
from .console_store import ConsoleStore


logger = logging.getLogger(__name__)

_stores: dict[str, ConsoleStore] = {}
_lock = threading.RLock()
_unsubscribe = None


def get_console(user_id: str) -> ConsoleStore:
    """The open store for user_id, opening one if needed."""
    with _lock:
        store = _stores.get(user_id)
        if store is not None and not store.closed:
            return store
        store = ConsoleStore(user_id).open()
        _stores[user_id] = store
        return store


def peek_console(user_id: str) -> ConsoleStore | None:
    with _lock:
        store = _stores.get(user_id)
        return store if store is not None and not store.closed else None


def close_console(user_id: str) -> bool:
    with _lock:
        store = _stores.pop(user_id, None)
    if store is None:
        return False
    store.close()
    return True


def close_all() -> int:
    with _lock:
        stores = list(_stores.values())
        _stores.clear()
    for store in stores:
        store.close()
    return len(stores)


def open_count() -> int:
    with _lock:
        return len(_stores)


def _on_auth_event(event: str, user_id: str) -> None:
    if event in (auth_service.SIGNED_OUT, auth_service.USER_UPDATED):
        if close_console(user_id):
            logger.info("Closed console for %s after %s", user_id, event)


def install() -> None:
    """Listen for auth events (idempotent)."""
    global _unsubscribe
    with _lock:
        if _unsubscribe is None:
            _unsubscribe = auth_service.on_auth_state_change(_on_auth_event)


def uninstall() -> None:
    global _unsubscribe
    with _lock:
        if _unsubscribe is not None:
            _unsubscribe()
            _unsubscribe = None
    close_all()
