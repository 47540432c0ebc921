# Overview: Utility functions for permission lookups and matrix validation.

from .definitions import PERMISSION_DEFINITIONS


def get_all_categories():
    """Categories in catalog order."""
    seen = []
    for perm in PERMISSION_DEFINITIONS:
        if perm[3] not in seen:
            seen.append(perm[3])
    return seen


def get_permissions_by_category(category):
    """Get all permissions in a category."""
    return [perm for perm in PERMISSION_DEFINITIONS if perm[3] == category]


def get_actions(category):
    return [perm[0] for perm in get_permissions_by_category(category)]


def get_permission_definition(category, action):
    """Get full definition for a (category, action) pair."""
    for perm in PERMISSION_DEFINITIONS:
        if perm[3] == category and perm[0] == action:
            return {
                "action": perm[0],
                "name": perm[1],
                "description": perm[2],
                "category": perm[3],
            }
    return None


def validate_permission(category, action):
    """Check if a (category, action) pair exists in the catalog."""
    return get_permission_definition(category, action) is not None


def build_matrix(grants=None):
    """Full matrix with every catalog action, True only where granted."""
    grants = grants or {}
    return {
        category: {action: action in grants.get(category, ()) for action in get_actions(category)}
        for category in get_all_categories()
    }


def validate_matrix(matrix):
    """
    Check a submitted matrix against the catalog.

    Returns a list of problems (empty when valid). Values must be booleans;
    unknown categories or actions are rejected.
    """
    problems = []
    if not isinstance(matrix, dict):
        return ["permissions must be an object of {category: {action: bool}}"]
    for category, actions in matrix.items():
        if category not in get_all_categories():
            problems.append(f"Unknown permission category: {category}")
            continue
        if not isinstance(actions, dict):
            problems.append(f"{category} must be an object of {{action: bool}}")
            continue
        for action, value in actions.items():
            if not validate_permission(category, action):
                problems.append(f"Unknown permission: {category}.{action}")
            elif not isinstance(value, bool):
                problems.append(f"{category}.{action} must be true or false")
    return problems
