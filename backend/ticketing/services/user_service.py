# Overview: Managed (staff) identities and role definitions of an account.

"""
Managed Users & Roles

A managed user is an identity created from inside an account. Its role row
names the account it works in (created_by = the account owner), which is
what scope resolution reads. The managed_users row is the account's own
listing of its staff and carries the display name used for attribution.

Role and active changes are mirrored onto the role row. The staff
member's open console is closed so the next request sees the new role.
"""

from __future__ import annotations

import logging

from ..entities import ManagedUserRecord, RoleDefinitionRecord, normalize_managed_user, normalize_role_definition
from ..errors import ConsoleError, NotFoundError, ValidationError
from ..permissions import ADMIN_ROLE, NEW_ROLE_GRANTS, PermissionCategory, build_matrix, validate_matrix
from ..validation import has_any, optional_text, pick, require_text
from . import activity_service, auth_service, backend, console_registry


logger = logging.getLogger(__name__)


def _require_managed_user(store, managed_id) -> ManagedUserRecord:
    for user in store.snapshot.managed_users:
        if str(user.id) == str(managed_id):
            return user
    raise NotFoundError("User not found")


def _require_assignable_role(store, role) -> str:
    role = require_text(role, "role")
    if role == ADMIN_ROLE:
        raise ValidationError("The Admin role cannot be assigned to managed users")
    if not any(definition.role == role for definition in store.snapshot.role_definitions):
        raise ValidationError(f"Unknown role: {role}")
    return role


def _mirror_to_role_row(user_id: str, values: dict) -> None:
    try:
        backend.update("user_roles", values, user_id=user_id)
    except ConsoleError:
        logger.warning("Could not sync %s to user_roles for %s", ", ".join(values), user_id, exc_info=True)


# =============================================================================
# MANAGED USERS
# =============================================================================

def create_managed_user(store, payload: dict) -> ManagedUserRecord:
    """
    Create a staff identity working inside the store's account.

    The identity and its role row must both be written; the managed_users
    listing row is best-effort.
    """
    store.require(PermissionCategory.SETTINGS, "user_create", message="You do not have permission to create users")
    email = auth_service.normalize_email(pick(payload, "email"))
    name = require_text(pick(payload, "name"), "name")
    role = _require_assignable_role(store, pick(payload, "role"))
    agency_name = optional_text(pick(payload, "agency_name", "agencyName"))

    identity = auth_service.create_identity(email, pick(payload, "password"), display_name=name)
    try:
        backend.insert("user_roles", {
            "user_id": identity.id,
            "email": email,
            "name": name,
            "role": role,
            "active": True,
            "created_by": store.scope,
            "agency_name": agency_name,
        })
    except ConsoleError:
        logger.error("Role row for new user %s failed; removing identity", identity.id)
        auth_service.delete_identity(identity.id)
        raise

    record = None
    try:
        row = backend.insert("managed_users", {
            "user_id": store.scope,
            "managed_user_id": identity.id,
            "name": name,
            "email": email,
            "role": role,
            "active": True,
            "agency_name": agency_name,
        })
        record = normalize_managed_user(row)
        store.put_record("managed_users", record)
    except ConsoleError:
        logger.warning("Could not record managed user %s for %s", identity.id, store.scope, exc_info=True)

    activity_service.log_activity(
        store, activity_service.ACTION_CREATE, activity_service.ENTITY_USER, identity.id,
        f"Created user {name} ({role})",
    )
    if record is None:
        return ManagedUserRecord(
            id=0, managed_user_id=identity.id, name=name, email=email, role=role, agency_name=agency_name
        )
    return record


def _apply_user_update(store, existing: ManagedUserRecord, values: dict) -> ManagedUserRecord:
    rows = backend.update("managed_users", values, id=existing.id, user_id=store.scope)
    if not rows:
        raise NotFoundError("User not found")
    updated = normalize_managed_user(rows[0])

    mirrored = {key: values[key] for key in ("name", "role", "active") if key in values}
    if mirrored:
        _mirror_to_role_row(existing.managed_user_id, mirrored)
    store.put_record("managed_users", updated)
    console_registry.close_console(existing.managed_user_id)
    return updated


def _require_status_permission(store, active: bool):
    action = "user_activate" if active else "user_deactivate"
    verb = "activate" if active else "deactivate"
    store.require(PermissionCategory.SETTINGS, action, message=f"You do not have permission to {verb} users")


def update_user(store, managed_id, payload: dict) -> ManagedUserRecord:
    existing = _require_managed_user(store, managed_id)
    store.require(PermissionCategory.SETTINGS, "user_create", message="You do not have permission to edit users")

    values = {}
    if has_any(payload, "name"):
        values["name"] = require_text(pick(payload, "name"), "name")
    if has_any(payload, "email"):
        values["email"] = auth_service.normalize_email(pick(payload, "email"))
    if has_any(payload, "role"):
        values["role"] = _require_assignable_role(store, pick(payload, "role"))
    if has_any(payload, "agency_name", "agencyName"):
        values["agency_name"] = optional_text(pick(payload, "agency_name", "agencyName"))
    if has_any(payload, "active"):
        active = pick(payload, "active")
        if not isinstance(active, bool):
            raise ValidationError("active must be true or false")
        if active != existing.active:
            _require_status_permission(store, active)
        values["active"] = active
    if not values:
        return existing

    updated = _apply_user_update(store, existing, values)
    if "agency_name" in values:
        _mirror_to_role_row(existing.managed_user_id, {"agency_name": values["agency_name"]})
    activity_service.log_activity(
        store, activity_service.ACTION_UPDATE, activity_service.ENTITY_USER, existing.managed_user_id,
        f"Updated user {updated.name or updated.email}",
        {"before": existing.to_dict(), "after": updated.to_dict()},
    )
    return updated


def toggle_user_status(store, managed_id) -> ManagedUserRecord:
    existing = _require_managed_user(store, managed_id)
    active = not existing.active
    _require_status_permission(store, active)

    updated = _apply_user_update(store, existing, {"active": active})
    activity_service.log_activity(
        store, activity_service.ACTION_UPDATE, activity_service.ENTITY_USER, existing.managed_user_id,
        f"{'Activated' if active else 'Deactivated'} user {updated.name or updated.email}",
    )
    return updated


# =============================================================================
# ROLES
# =============================================================================

def _require_role_admin(store):
    store.require(PermissionCategory.SETTINGS, "user_create", message="You do not have permission to manage roles")


def add_role(store, name) -> RoleDefinitionRecord:
    """New role that may only view its own flights and passengers."""
    _require_role_admin(store)
    name = require_text(name, "role")
    if name == ADMIN_ROLE:
        raise ValidationError("Admin is a reserved role name")
    if any(definition.role == name for definition in store.snapshot.role_definitions):
        raise ValidationError(f"Role '{name}' already exists")

    row = backend.insert("role_permissions", {"role": name, "permissions": build_matrix(NEW_ROLE_GRANTS)})
    definition = normalize_role_definition(row)
    store.put_record("role_definitions", definition)
    activity_service.log_activity(
        store, activity_service.ACTION_CREATE, activity_service.ENTITY_ROLE, definition.id,
        f"Created role {name}",
    )
    return definition


def update_role_permissions(store, role_id, permissions) -> RoleDefinitionRecord:
    """Replace a role's matrix; actions absent from the submission become false."""
    _require_role_admin(store)
    existing = None
    for definition in store.snapshot.role_definitions:
        if str(definition.id) == str(role_id):
            existing = definition
            break
    if existing is None:
        raise NotFoundError("Role not found")

    problems = validate_matrix(permissions)
    if problems:
        raise ValidationError("Invalid permissions", problems=problems)
    grants = {
        category: [action for action, granted in actions.items() if granted]
        for category, actions in permissions.items()
    }
    matrix = build_matrix(grants)

    rows = backend.update("role_permissions", {"permissions": matrix}, id=existing.id)
    if not rows:
        raise NotFoundError("Role not found")
    definition = normalize_role_definition(rows[0])
    store.put_record("role_definitions", definition)
    activity_service.log_activity(
        store, activity_service.ACTION_UPDATE, activity_service.ENTITY_ROLE, definition.id,
        f"Updated permissions of role {definition.role}",
        {"before": existing.permissions, "after": definition.permissions},
    )
    return definition
