# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

"""
Admin routes for managed users and role definitions.

Provides endpoints for:
- Managed users (list, create, update, activate/deactivate)
- Roles (list, create, replace permission matrix)
- The permission catalog

All endpoints require authentication. Permission checks happen in the
services against the caller's console.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_console
from ..errors import ConsoleError
from ..permissions import PERMISSION_DEFINITIONS, get_all_categories
from ..services import user_service


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


def _json_body() -> dict:
    return request.get_json(silent=True) or {}


# =============================================================================
# USER MANAGEMENT
# =============================================================================

@admin_bp.get("/users")
@require_auth
@require_console
def list_users():
    """
    List managed users of the account.

    Query params:
    - include_inactive: bool (default true) - include deactivated users
    """
    include_inactive = request.args.get("include_inactive", "true").lower() == "true"
    users = [
        u.to_dict() for u in g.console.snapshot.managed_users
        if include_inactive or u.active
    ]
    return jsonify({"users": users, "count": len(users)})


@admin_bp.post("/users")
@require_auth
@require_console
def create_user():
    """
    Create a managed user.

    Request body:
    - email: str (required)
    - password: str (required)
    - name: str (required)
    - role: str (required) - a defined role other than Admin
    - agency_name: str (optional)
    """
    try:
        data = _json_body()
        if not all([data.get("email"), data.get("password"), data.get("name"), data.get("role")]):
            return jsonify({"error": "email, password, name and role required"}), 400

        user = user_service.create_managed_user(g.console, data)
        return jsonify({"user": user.to_dict()}), 201

    except ConsoleError:
        raise
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.patch("/users/<int:managed_id>")
@require_auth
@require_console
def update_user(managed_id: int):
    """
    Update a managed user.

    Request body (all optional): name, email, role, active, agency_name
    """
    user = user_service.update_user(g.console, managed_id, _json_body())
    return jsonify({"user": user.to_dict()})


@admin_bp.post("/users/<int:managed_id>/toggle-status")
@require_auth
@require_console
def toggle_user_status(managed_id: int):
    user = user_service.toggle_user_status(g.console, managed_id)
    state = "activated" if user.active else "deactivated"
    return jsonify({"user": user.to_dict(), "message": f"User {state} successfully"})


# =============================================================================
# ROLE MANAGEMENT
# =============================================================================

@admin_bp.get("/roles")
@require_auth
@require_console
def list_roles():
    roles = [r.to_dict() for r in g.console.snapshot.role_definitions]
    return jsonify({"roles": roles, "count": len(roles)})


@admin_bp.post("/roles")
@require_auth
@require_console
def create_role():
    """
    Create a role.

    Request body:
    - name: str (required)
    """
    data = _json_body()
    if not data.get("name"):
        return jsonify({"error": "name required"}), 400

    role = user_service.add_role(g.console, data["name"])
    return jsonify({"role": role.to_dict()}), 201


@admin_bp.put("/roles/<int:role_id>/permissions")
@require_auth
@require_console
def update_role_permissions(role_id: int):
    """
    Replace a role's permission matrix.

    Request body:
    - permissions: {category: {action: bool}}
    """
    data = _json_body()
    if "permissions" not in data:
        return jsonify({"error": "permissions required"}), 400

    role = user_service.update_role_permissions(g.console, role_id, data["permissions"])
    return jsonify({"role": role.to_dict()})


@admin_bp.get("/permissions")
@require_auth
def list_permissions():
    """The permission catalog grouped by category."""
    catalog = {category: [] for category in get_all_categories()}
    for action, name, description, category in PERMISSION_DEFINITIONS:
        catalog[category].append({"action": action, "name": name, "description": description})
    return jsonify({"permissions": catalog})
