# Overview: Permission catalog package.
# Re-exports the catalog, default roles and lookup helpers.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    FLIGHT_PERMISSIONS,
    PASSENGER_PERMISSIONS,
    GENERATING_PERMISSIONS,
    SEARCHING_PERMISSIONS,
    SETTINGS_PERMISSIONS,
)
from .helpers import (
    build_matrix,
    get_actions,
    get_all_categories,
    get_permission_definition,
    get_permissions_by_category,
    validate_matrix,
    validate_permission,
)
from .roles import ADMIN_ROLE, DEFAULT_ROLE_PERMISSIONS, NEW_ROLE_GRANTS

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "FLIGHT_PERMISSIONS",
    "PASSENGER_PERMISSIONS",
    "GENERATING_PERMISSIONS",
    "SEARCHING_PERMISSIONS",
    "SETTINGS_PERMISSIONS",
    "ADMIN_ROLE",
    "DEFAULT_ROLE_PERMISSIONS",
    "NEW_ROLE_GRANTS",
    "build_matrix",
    "get_actions",
    "get_all_categories",
    "get_permission_definition",
    "get_permissions_by_category",
    "validate_matrix",
    "validate_permission",
]
