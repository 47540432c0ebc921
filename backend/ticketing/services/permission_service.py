# Overview: Permission resolution for console actors; pure lookups over loaded role definitions.

"""
Permission Resolver

WHY: Every mutation checks the acting role before anything is written.

DESIGN PRINCIPLES:
- Admin bypasses the matrix entirely
- Fail closed: a role without a definition, or a (category, action) pair
  missing from its matrix, is denied
- No caching: evaluated per call against the role definitions currently
  held by the console snapshot
- Ownership fallback: flights and passengers may be edited by their
  creator even without the category-wide permission. Account-wide
  resources (airlines, agencies, settings, roles) have no such fallback
- Denials are logged; grants are not
"""

from __future__ import annotations

import logging

from ..entities import Actor, RoleDefinitionRecord
from ..errors import PermissionDeniedError
from ..permissions import ADMIN_ROLE


logger = logging.getLogger(__name__)


def find_role_definition(role: str | None, role_definitions) -> RoleDefinitionRecord | None:
    if not role:
        return None
    for definition in role_definitions:
        if definition.role == role:
            return definition
    return None


def has_permission(role: str | None, category: str, action: str, role_definitions) -> bool:
    """
    Check a (category, action) pair for a role.

    Returns True for Admin, otherwise only when the role's definition
    explicitly grants the action.
    """
    if role == ADMIN_ROLE:
        return True
    definition = find_role_definition(role, role_definitions)
    if definition is None:
        return False
    return definition.allows(category, action)


def is_owner(actor: Actor, owner_id: str | None) -> bool:
    return owner_id is not None and owner_id == actor.id


def can_modify(actor: Actor, category: str, action: str, owner_id: str | None, role_definitions) -> bool:
    """Category permission, or ownership of the targeted record."""
    return has_permission(actor.role, category, action, role_definitions) or is_owner(actor, owner_id)


def require_permission(
    actor: Actor,
    category: str,
    action: str,
    role_definitions,
    *,
    owner_id: str | None = None,
    message: str | None = None,
) -> None:
    """
    Require permission (or ownership when owner_id is given), raise PermissionDeniedError if not.

    Usage:
        require_permission(actor, "flight", "delete", defs, owner_id=flight.created_by)
    """
    if can_modify(actor, category, action, owner_id, role_definitions):
        return

    # Log only denials (policy: no granted logs)
    logger.warning(
        "Permission denied: user=%s role=%s needs %s.%s",
        actor.id, actor.role, category, action,
    )
    raise PermissionDeniedError(
        message or f"Permission denied: {category}.{action}",
        category=category,
        action=action,
    )


def effective_permissions(role: str | None, role_definitions) -> dict:
    """The full {category: {action: bool}} matrix the role resolves to (for UI filtering)."""
    from ..permissions import get_actions, get_all_categories

    return {
        category: {
            action: has_permission(role, category, action, role_definitions)
            for action in get_actions(category)
        }
        for category in get_all_categories()
    }
