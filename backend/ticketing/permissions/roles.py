# Overview: Privileged role name and the default role matrices seeded by the CLI.

from .helpers import build_matrix

# The privileged role is implicit: it never has a RoleDefinition row and
# bypasses every check.
ADMIN_ROLE = "Admin"

# New roles start with nothing but the right to see their own records.
NEW_ROLE_GRANTS = {
    "flight": ["view_own"],
    "passenger": ["view_own"],
}

DEFAULT_ROLE_PERMISSIONS = {
    "Manager": build_matrix({
        "flight": ["create", "delete", "delete_own", "view_own", "view_any"],
        "passenger": ["create", "delete", "delete_own", "view_own", "view_any"],
        "generating": ["batch", "manifest", "ticket", "download"],
        "searching": ["past", "upcoming"],
        "settings": ["airline_create", "airline_update", "agency_create", "agency_update", "pricing_edit"],
    }),
    "Staff": build_matrix({
        "flight": ["create", "delete_own", "view_own"],
        "passenger": ["create", "delete_own", "view_own"],
        "generating": ["ticket", "download"],
        "searching": ["upcoming"],
    }),
}
