"""
Permission resolution and account scope tests.

Verifies:
- Admin bypasses every check
- Roles without a definition (or without a granted action) are denied
- Ownership allows edits without the category-wide permission
- Staff identities work inside the account that created them
- A failed role lookup never grants anything
"""

import pytest

from ticketing.entities import Actor, RoleDefinitionRecord
from ticketing.errors import PermissionDeniedError, RemoteReadError
from ticketing.permissions import DEFAULT_ROLE_PERMISSIONS, build_matrix, validate_matrix
from ticketing.services import permission_service, scope_service


STAFF = RoleDefinitionRecord(id=1, role="Staff", permissions=DEFAULT_ROLE_PERMISSIONS["Staff"])
MANAGER = RoleDefinitionRecord(id=2, role="Manager", permissions=DEFAULT_ROLE_PERMISSIONS["Manager"])
DEFINITIONS = (STAFF, MANAGER)


# =============================================================================
# ROLE RESOLUTION
# =============================================================================


class TestHasPermission:
    """Matrix lookups, Admin bypass and fail-closed behavior."""

    @pytest.mark.parametrize("category,action", [
        ("flight", "delete"),
        ("settings", "user_create"),
        ("settings", "not_in_catalog"),
        ("unknown", "anything"),
    ])
    def test_admin_bypasses_matrix(self, category, action):
        assert permission_service.has_permission("Admin", category, action, ()) is True

    def test_granted_action(self):
        assert permission_service.has_permission("Staff", "flight", "create", DEFINITIONS) is True

    def test_denied_action(self):
        assert permission_service.has_permission("Staff", "flight", "delete", DEFINITIONS) is False

    def test_role_without_definition_is_denied(self):
        assert permission_service.has_permission("Ghost", "flight", "view_own", DEFINITIONS) is False

    def test_missing_role_is_denied(self):
        assert permission_service.has_permission(None, "flight", "view_own", DEFINITIONS) is False

    def test_missing_category_is_denied(self):
        partial = RoleDefinitionRecord(id=3, role="Partial", permissions={"flight": {"create": True}})
        assert permission_service.has_permission("Partial", "passenger", "create", (partial,)) is False

    def test_non_boolean_grant_is_denied(self):
        odd = RoleDefinitionRecord(id=4, role="Odd", permissions={"flight": {"create": "yes"}})
        assert permission_service.has_permission("Odd", "flight", "create", (odd,)) is False

    def test_effective_permissions_covers_catalog(self):
        matrix = permission_service.effective_permissions("Staff", DEFINITIONS)
        assert matrix["flight"]["create"] is True
        assert matrix["flight"]["view_any"] is False
        assert set(matrix) == {"flight", "passenger", "generating", "searching", "settings"}


class TestOwnershipFallback:
    """Edits of flights and passengers fall back to ownership."""

    def test_owner_may_modify_without_permission(self):
        actor = Actor(id="staff-1", role="Staff", created_by="owner-1")
        assert permission_service.can_modify(actor, "flight", "delete", "staff-1", DEFINITIONS) is True

    def test_non_owner_denied(self):
        actor = Actor(id="staff-1", role="Staff", created_by="owner-1")
        assert permission_service.can_modify(actor, "flight", "delete", "staff-2", DEFINITIONS) is False

    def test_unknown_owner_never_matches(self):
        actor = Actor(id="staff-1", role="Staff", created_by="owner-1")
        assert permission_service.can_modify(actor, "flight", "delete", None, DEFINITIONS) is False

    def test_require_permission_raises_with_category(self):
        actor = Actor(id="staff-1", role="Staff", created_by="owner-1")
        with pytest.raises(PermissionDeniedError) as exc_info:
            permission_service.require_permission(actor, "settings", "pricing_edit", DEFINITIONS)
        assert exc_info.value.status_code == 403
        assert exc_info.value.category == "settings"
        assert exc_info.value.action == "pricing_edit"

    def test_require_permission_custom_message(self):
        actor = Actor(id="u", role=None)
        with pytest.raises(PermissionDeniedError, match="No flights for you"):
            permission_service.require_permission(actor, "flight", "create", DEFINITIONS, message="No flights for you")


class TestMatrixValidation:
    """Submitted matrices are checked against the catalog."""

    def test_build_matrix_fills_every_action(self):
        matrix = build_matrix({"flight": ["view_own"]})
        assert matrix["flight"]["view_own"] is True
        assert matrix["passenger"]["view_own"] is False
        assert all(isinstance(v, bool) for actions in matrix.values() for v in actions.values())

    def test_valid_matrix(self):
        assert validate_matrix(DEFAULT_ROLE_PERMISSIONS["Manager"]) == []

    def test_unknown_entries_reported(self):
        problems = validate_matrix({"flight": {"fly": True}, "weather": {}, "passenger": {"create": "true"}})
        assert "Unknown permission: flight.fly" in problems
        assert "Unknown permission category: weather" in problems
        assert "passenger.create must be true or false" in problems


# =============================================================================
# ACCOUNT SCOPE
# =============================================================================


class TestResolveScope:
    """Whose data set an actor loads."""

    def test_admin_is_own_scope(self):
        assert scope_service.resolve_scope(Actor(id="a", role="Admin", created_by="someone")) == "a"

    def test_uncreated_identity_is_own_scope(self):
        assert scope_service.resolve_scope(Actor(id="a", role="Staff")) == "a"

    def test_staff_uses_creator_scope(self):
        assert scope_service.resolve_scope(Actor(id="s", role="Staff", created_by="o")) == "o"

    def test_role_lookup_reads_role_row(self, owner, staff):
        actor = scope_service.lookup_actor(staff.id)
        assert actor.role == "Staff"
        assert actor.created_by == owner.id
        assert actor.name == "Sam Staff"

    def test_failed_lookup_fails_closed(self, db_session, monkeypatch):
        def broken(*args, **kwargs):
            raise RemoteReadError("connection lost", table="user_roles")

        monkeypatch.setattr(scope_service.backend, "select_one", broken)
        actor = scope_service.resolve_actor("user-x")
        assert actor.role is None
        assert actor.is_admin is False
        assert scope_service.resolve_scope(actor) == "user-x"
