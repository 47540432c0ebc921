# Overview: All permission definitions organized by category.
# Each permission is defined as: (action, name, description, category)

from .categories import PermissionCategory


# -- FLIGHTS --

FLIGHT_PERMISSIONS = [
    ("create", "Create Flights", "Create new flights", PermissionCategory.FLIGHT),
    ("delete", "Edit/Delete Any Flight", "Edit or delete flights created by anyone", PermissionCategory.FLIGHT),
    ("delete_own", "Delete Own Flights", "Delete flights the user created", PermissionCategory.FLIGHT),
    ("view_own", "View Own Flights", "See flights the user created", PermissionCategory.FLIGHT),
    ("view_any", "View All Flights", "See every flight of the account", PermissionCategory.FLIGHT),
]


# -- PASSENGERS --

PASSENGER_PERMISSIONS = [
    ("create", "Add Passengers", "Add passengers to flights", PermissionCategory.PASSENGER),
    ("delete", "Edit/Remove Any Passenger", "Edit or remove passengers added by anyone", PermissionCategory.PASSENGER),
    ("delete_own", "Remove Own Passengers", "Remove passengers the user added", PermissionCategory.PASSENGER),
    ("view_own", "View Own Passengers", "See passengers the user added", PermissionCategory.PASSENGER),
    ("view_any", "View All Passengers", "See every passenger on visible flights", PermissionCategory.PASSENGER),
]


# -- DOCUMENT GENERATION --

GENERATING_PERMISSIONS = [
    ("batch", "Batch Tickets", "Generate tickets for several passengers at once", PermissionCategory.GENERATING),
    ("manifest", "Manifests", "Generate flight manifests", PermissionCategory.GENERATING),
    ("ticket", "Tickets", "Generate a single passenger ticket", PermissionCategory.GENERATING),
    ("download", "Download", "Download generated documents", PermissionCategory.GENERATING),
]


# -- SEARCH --

SEARCHING_PERMISSIONS = [
    ("past", "Search Past Flights", "Search flights dated before today", PermissionCategory.SEARCHING),
    ("upcoming", "Search Upcoming Flights", "Search flights dated today or later", PermissionCategory.SEARCHING),
]


# -- SETTINGS --

SETTINGS_PERMISSIONS = [
    ("airline_create", "Add Airlines", "Create airline configurations", PermissionCategory.SETTINGS),
    ("airline_update", "Edit Airlines", "Edit airline pricing and templates", PermissionCategory.SETTINGS),
    ("airline_delete", "Delete Airlines", "Delete airline configurations", PermissionCategory.SETTINGS),
    ("pricing_edit", "Edit Pricing", "Edit default prices and agency branding", PermissionCategory.SETTINGS),
    ("agency_create", "Add Agencies", "Create booking agencies", PermissionCategory.SETTINGS),
    ("agency_update", "Edit Agencies", "Edit booking agencies", PermissionCategory.SETTINGS),
    ("agency_delete", "Delete Agencies", "Delete booking agencies", PermissionCategory.SETTINGS),
    ("user_create", "Create Users", "Create staff users and manage roles", PermissionCategory.SETTINGS),
    ("user_activate", "Activate Users", "Re-activate deactivated staff users", PermissionCategory.SETTINGS),
    ("user_deactivate", "Deactivate Users", "Deactivate staff users", PermissionCategory.SETTINGS),
]


PERMISSION_DEFINITIONS = (
    FLIGHT_PERMISSIONS
    + PASSENGER_PERMISSIONS
    + GENERATING_PERMISSIONS
    + SEARCHING_PERMISSIONS
    + SETTINGS_PERMISSIONS
)
