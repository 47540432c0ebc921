# Overview: Permission category constants (top-level keys of a role matrix).


class PermissionCategory:
    """Permission categories for matrix keys and UI grouping."""
    FLIGHT = "flight"
    PASSENGER = "passenger"
    GENERATING = "generating"
    SEARCHING = "searching"
    SETTINGS = "settings"
