# Overview: Account catalog mutations; airlines, agencies, default prices and agency branding.

from __future__ import annotations

import logging

from ..entities import (
    AgencyRecord,
    AirlineRecord,
    SettingsRecord,
    normalize_agency,
    normalize_airline,
    normalize_settings,
)
from ..errors import NotFoundError
from ..permissions import PermissionCategory
from ..validation import has_any, optional_text, parse_money, pick, require_text
from . import activity_service, backend


logger = logging.getLogger(__name__)

AIRLINE_TEXT_FIELDS = (
    ("ticket_template", "ticketTemplate"),
    ("manifest_template", "manifestTemplate"),
    ("manifest_us", "manifestUs"),
    ("manifest_airport", "manifestAirport"),
    ("default_booking_reference", "defaultBookingReference"),
    ("default_flight_number", "defaultFlightNumber"),
)
AIRLINE_PRICE_FIELDS = (
    ("adult_price", "adultPrice"),
    ("child_price", "childPrice"),
    ("infant_price", "infantPrice"),
    ("tax", "tax"),
    ("surcharge", "surcharge"),
)
MANIFEST_KINDS = {"general": "manifest_template", "us": "manifest_us", "airport": "manifest_airport"}

AGENCY_TEXT_FIELDS = (
    ("phone", "phone"),
    ("manager_name", "managerName"),
    ("manager_phone", "managerPhone"),
)

PRICE_FIELDS = (
    ("adult_price", "adult", "adultPrice"),
    ("child_price", "child", "childPrice"),
    ("infant_price", "infant", "infantPrice"),
    ("tax", "tax", "tax"),
    ("surcharge", "surcharge", "surcharge"),
)


def _require_record(records, record_id, label):
    for record in records:
        if str(record.id) == str(record_id):
            return record
    raise NotFoundError(f"{label} not found")


# =============================================================================
# AIRLINES
# =============================================================================

def _airline_values(payload: dict, *, partial: bool) -> dict:
    values = {}
    if not partial or has_any(payload, "name"):
        values["name"] = require_text(pick(payload, "name"), "name")
    for key, alias in AIRLINE_TEXT_FIELDS:
        if not partial or has_any(payload, key, alias):
            values[key] = optional_text(pick(payload, key, alias))
    # Nested form: {"manifest_templates": {"general": ..., "us": ..., "airport": ...}}
    templates = pick(payload, "manifest_templates", "manifestTemplates")
    if isinstance(templates, dict):
        for kind, column in MANIFEST_KINDS.items():
            if kind in templates:
                values[column] = optional_text(templates[kind])
    for key, alias in AIRLINE_PRICE_FIELDS:
        if not partial or has_any(payload, key, alias):
            values[key] = parse_money(pick(payload, key, alias), key)
    return values


def add_airline(store, payload: dict) -> AirlineRecord:
    store.require(PermissionCategory.SETTINGS, "airline_create", message="You do not have permission to add airlines")
    values = _airline_values(payload, partial=False)
    row = backend.insert("airlines", {**values, "user_id": store.scope, "updated_by": store.actor.id})
    airline = normalize_airline(row)
    store.put_record("airlines", airline)
    activity_service.log_activity(
        store, activity_service.ACTION_CREATE, activity_service.ENTITY_AIRLINE, airline.id,
        f"Added airline {airline.name}",
    )
    return airline


def update_airline(store, airline_id, payload: dict) -> AirlineRecord:
    store.require(PermissionCategory.SETTINGS, "airline_update", message="You do not have permission to edit airlines")
    existing = _require_record(store.snapshot.airlines, airline_id, "Airline")
    values = _airline_values(payload, partial=True)
    if not values:
        return existing

    rows = backend.update(
        "airlines", {**values, "updated_by": store.actor.id}, id=existing.id, user_id=store.scope
    )
    if not rows:
        raise NotFoundError("Airline not found")
    airline = normalize_airline(rows[0])
    store.put_record("airlines", airline)
    activity_service.log_activity(
        store, activity_service.ACTION_UPDATE, activity_service.ENTITY_AIRLINE, airline.id,
        f"Updated airline {airline.name} settings",
        {"before": existing.to_dict(), "after": airline.to_dict()},
    )
    return airline


def delete_airline(store, airline_id) -> None:
    store.require(PermissionCategory.SETTINGS, "airline_delete", message="You do not have permission to delete airlines")
    existing = _require_record(store.snapshot.airlines, airline_id, "Airline")
    backend.delete("airlines", id=existing.id, user_id=store.scope)
    store.drop_record("airlines", existing.id)
    activity_service.log_activity(
        store, activity_service.ACTION_DELETE, activity_service.ENTITY_AIRLINE, existing.id,
        f"Deleted airline {existing.name}",
    )


# =============================================================================
# AGENCIES
# =============================================================================

def _agency_values(payload: dict, *, partial: bool) -> dict:
    values = {}
    if not partial or has_any(payload, "name"):
        values["name"] = require_text(pick(payload, "name"), "name")
    for key, alias in AGENCY_TEXT_FIELDS:
        if not partial or has_any(payload, key, alias):
            values[key] = optional_text(pick(payload, key, alias))
    return values


def add_agency(store, payload: dict) -> AgencyRecord:
    store.require(PermissionCategory.SETTINGS, "agency_create", message="You do not have permission to add agencies")
    values = _agency_values(payload, partial=False)
    row = backend.insert("agencies", {**values, "user_id": store.scope, "updated_by": store.actor.id})
    agency = normalize_agency(row)
    store.put_record("agencies", agency)
    activity_service.log_activity(
        store, activity_service.ACTION_CREATE, activity_service.ENTITY_AGENCY, agency.id,
        f"Added agency {agency.name}",
    )
    return agency


def update_agency(store, agency_id, payload: dict) -> AgencyRecord:
    store.require(PermissionCategory.SETTINGS, "agency_update", message="You do not have permission to edit agencies")
    existing = _require_record(store.snapshot.agencies, agency_id, "Agency")
    values = _agency_values(payload, partial=True)
    if not values:
        return existing

    rows = backend.update(
        "agencies", {**values, "updated_by": store.actor.id}, id=existing.id, user_id=store.scope
    )
    if not rows:
        raise NotFoundError("Agency not found")
    agency = normalize_agency(rows[0])
    store.put_record("agencies", agency)
    activity_service.log_activity(
        store, activity_service.ACTION_UPDATE, activity_service.ENTITY_AGENCY, agency.id,
        f"Updated agency {agency.name} details",
        {"before": existing.to_dict(), "after": agency.to_dict()},
    )
    return agency


def delete_agency(store, agency_id) -> None:
    store.require(PermissionCategory.SETTINGS, "agency_delete", message="You do not have permission to delete agencies")
    existing = _require_record(store.snapshot.agencies, agency_id, "Agency")
    backend.delete("agencies", id=existing.id, user_id=store.scope)
    store.drop_record("agencies", existing.id)
    activity_service.log_activity(
        store, activity_service.ACTION_DELETE, activity_service.ENTITY_AGENCY, existing.id,
        f"Deleted agency {existing.name}",
    )


# =============================================================================
# SETTINGS
# =============================================================================

def update_prices(store, payload: dict) -> SettingsRecord:
    """
    Replace the account's default prices.

    A missing or zero price keeps the current value.
    """
    store.require(PermissionCategory.SETTINGS, "pricing_edit", message="You do not have permission to edit prices")
    current = store.snapshot.settings
    values = {}
    for column, short, alias in PRICE_FIELDS:
        amount = parse_money(pick(payload, column, short, alias), column)
        values[column] = amount if amount else getattr(current, column)

    row = backend.upsert(
        "settings", {**values, "user_id": store.scope, "updated_by": store.actor.id}, on_conflict="user_id"
    )
    settings = normalize_settings(row)
    store.patch(settings=settings)
    activity_service.log_activity(
        store, activity_service.ACTION_UPDATE, activity_service.ENTITY_SETTINGS, store.scope,
        "Updated default prices",
        {"before": current.to_dict(), "after": settings.to_dict()},
    )
    return settings


def update_branding(store, name, tagline) -> SettingsRecord:
    store.require(PermissionCategory.SETTINGS, "pricing_edit", message="You do not have permission to edit agency branding")
    name = require_text(name, "agency_name")
    tagline = optional_text(tagline)

    row = backend.upsert(
        "settings",
        {"user_id": store.scope, "agency_name": name, "agency_tagline": tagline, "updated_by": store.actor.id},
        on_conflict="user_id",
    )
    settings = normalize_settings(row)
    store.patch(settings=settings)
    activity_service.log_activity(
        store, activity_service.ACTION_UPDATE, activity_service.ENTITY_SETTINGS, store.scope,
        f"Updated global agency branding: {settings.agency_name} - {settings.agency_tagline}",
    )
    return settings
