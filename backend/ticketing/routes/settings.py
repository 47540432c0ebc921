# Overview: Flask API routes for account settings; airlines, agencies, prices and branding.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_console
from ..services import catalog_service


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


def _json_body() -> dict:
    return request.get_json(silent=True) or {}


@settings_bp.get("")
@require_auth
@require_console
def get_settings():
    snapshot = g.console.snapshot
    return jsonify({
        "settings": snapshot.settings.to_dict(),
        "airlines": [a.to_dict() for a in snapshot.airlines],
        "agencies": [a.to_dict() for a in snapshot.agencies],
    })


@settings_bp.put("/prices")
@require_auth
@require_console
def update_prices():
    """
    Update default prices.

    Request body: adult, child, infant, tax, surcharge (missing or 0 keeps current)
    """
    settings = catalog_service.update_prices(g.console, _json_body())
    return jsonify({"settings": settings.to_dict()})


@settings_bp.put("/branding")
@require_auth
@require_console
def update_branding():
    data = _json_body()
    settings = catalog_service.update_branding(
        g.console, data.get("agency_name") or data.get("name"), data.get("agency_tagline") or data.get("tagline")
    )
    return jsonify({"settings": settings.to_dict()})


# =============================================================================
# AIRLINES
# =============================================================================

@settings_bp.post("/airlines")
@require_auth
@require_console
def add_airline():
    airline = catalog_service.add_airline(g.console, _json_body())
    return jsonify({"airline": airline.to_dict()}), 201


@settings_bp.patch("/airlines/<int:airline_id>")
@require_auth
@require_console
def update_airline(airline_id: int):
    airline = catalog_service.update_airline(g.console, airline_id, _json_body())
    return jsonify({"airline": airline.to_dict()})


@settings_bp.delete("/airlines/<int:airline_id>")
@require_auth
@require_console
def delete_airline(airline_id: int):
    catalog_service.delete_airline(g.console, airline_id)
    return jsonify({"message": "Airline deleted"})


# =============================================================================
# AGENCIES
# =============================================================================

@settings_bp.post("/agencies")
@require_auth
@require_console
def add_agency():
    agency = catalog_service.add_agency(g.console, _json_body())
    return jsonify({"agency": agency.to_dict()}), 201


@settings_bp.patch("/agencies/<int:agency_id>")
@require_auth
@require_console
def update_agency(agency_id: int):
    agency = catalog_service.update_agency(g.console, agency_id, _json_body())
    return jsonify({"agency": agency.to_dict()})


@settings_bp.delete("/agencies/<int:agency_id>")
@require_auth
@require_console
def delete_agency(agency_id: int):
    catalog_service.delete_agency(g.console, agency_id)
    return jsonify({"message": "Agency deleted"})
