# Overview: Best-effort audit trail of console mutations.

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal

from ..errors import PermissionDeniedError
from . import backend


logger = logging.getLogger(__name__)

ACTION_CREATE = "CREATE"
ACTION_UPDATE = "UPDATE"
ACTION_DELETE = "DELETE"

ENTITY_FLIGHT = "FLIGHT"
ENTITY_PASSENGER = "PASSENGER"
ENTITY_AIRLINE = "AIRLINE"
ENTITY_AGENCY = "AGENCY"
ENTITY_SETTINGS = "SETTINGS"
ENTITY_USER = "USER"
ENTITY_ROLE = "ROLE"


def _jsonable(value):
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def log_activity(store, action_type: str, entity_type: str, entity_id, description: str, details: dict | None = None) -> bool:
    """
    Append an activity entry for the store's account.

    Never raises: a failed write is logged and reported as False. The
    mutation that triggered it has already committed and is not affected.
    """
    try:
        backend.insert("activity_logs", {
            "user_id": store.scope,
            "action_type": action_type,
            "entity_type": entity_type,
            "entity_id": None if entity_id is None else str(entity_id),
            "description": description,
            "details": _jsonable(details or {}),
            "created_by": store.actor.id,
        })
        return True
    except Exception:
        logger.warning(
            "Failed to log activity %s %s %s", action_type, entity_type, entity_id,
            exc_info=True,
        )
        return False


def list_activity(store, *, entity_type: str | None = None, limit: int = 100) -> list[dict]:
    """Most recent entries for the account, newest first (Admin only)."""
    if not store.actor.is_admin:
        raise PermissionDeniedError("Only account administrators can review activity", category="activity", action="view")
    filters = {"user_id": store.scope}
    if entity_type:
        filters["entity_type"] = entity_type.upper()
    rows = backend.select("activity_logs", order_by=("-created_at", "-id"), **filters)
    return rows[: max(1, min(limit, 500))]
