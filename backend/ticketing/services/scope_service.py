# Overview: Account-scope resolution; decides whose data set an actor loads.

"""
Account Scope Resolution

An Admin, or any identity without a creator, IS its own account. A
managed/staff identity works inside the data set of the account that
created it.

FAILURE POLICY: if the actor's role row cannot be read, the actor is
treated as a role-less identity scoped to itself. It sees only its own
(usually empty) account and holds no permissions. It is never promoted
to Admin.
"""

from __future__ import annotations

import logging

from ..entities import Actor, normalize_actor
from ..errors import RemoteReadError
from . import backend


logger = logging.getLogger(__name__)


def resolve_scope(actor: Actor) -> str:
    """Account owner id whose data the actor loads."""
    if actor.is_admin or not actor.created_by:
        return actor.id
    return actor.created_by


def lookup_actor(user_id: str) -> Actor:
    """Read the actor's role row. Raises RemoteReadError when the lookup fails."""
    row = backend.select_one("user_roles", user_id=user_id)
    return normalize_actor(user_id, row)


def resolve_actor(user_id: str) -> Actor:
    """Role lookup that fails closed: an unreadable role yields a role-less actor."""
    try:
        return lookup_actor(user_id)
    except RemoteReadError:
        logger.warning("Role lookup failed for %s; continuing without permissions", user_id, exc_info=True)
        return Actor(id=user_id, role=None)
