# Overview: Flask API routes for the console snapshot; reload, permissions, search and activity.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_console
from ..services import activity_service, search_service
from ..time_utils import parse_iso_date


console_bp = Blueprint("console", __name__, url_prefix="/api/console")


def _console_payload(store, snapshot) -> dict:
    return {
        "actor": store.actor.to_dict(),
        "scope": store.scope,
        "permissions": store.permissions(),
        "snapshot": snapshot.to_dict(),
    }


@console_bp.get("/snapshot")
@require_auth
@require_console
def snapshot_route():
    """
    Current reconciled view of the caller's account.

    Query params:
    - refresh: bool (default false) - run a full reload first
    """
    store = g.console
    if request.args.get("refresh", "false").lower() == "true":
        snapshot = store.reload()
    else:
        snapshot = store.snapshot
    return jsonify(_console_payload(store, snapshot))


@console_bp.post("/reload")
@require_auth
@require_console
def reload_route():
    store = g.console
    return jsonify(_console_payload(store, store.reload()))


@console_bp.get("/permissions")
@require_auth
@require_console
def permissions_route():
    store = g.console
    return jsonify({"role": store.actor.role, "permissions": store.permissions()})


@console_bp.get("/users/<user_id>/name")
@require_auth
@require_console
def user_name_route(user_id: str):
    return jsonify({"user_id": user_id, "name": g.console.resolve_user_name(user_id)})


@console_bp.get("/search")
@require_auth
@require_console
def search_route():
    """
    Search passengers and flights.

    Query params:
    - q: str - text to match (name, phone, booking reference, flight, airline, route)
    - when: upcoming | past | all (default upcoming)
    - today: YYYY-MM-DD (optional) - reference date
    """
    hits = search_service.search_flights(
        g.console,
        request.args.get("q", ""),
        when=request.args.get("when", "upcoming"),
        today=parse_iso_date(request.args.get("today")) if request.args.get("today") else None,
    )
    results = []
    for flight, passenger in hits:
        flight_data = flight.to_dict()
        flight_data.pop("passengers")
        results.append({
            "flight": flight_data,
            "passenger": passenger.to_dict() if passenger else None,
        })
    return jsonify({"results": results, "count": len(results)})


@console_bp.get("/activity")
@require_auth
@require_console
def activity_route():
    """Recent activity of the account (Admin only)."""
    rows = activity_service.list_activity(
        g.console,
        entity_type=request.args.get("entity_type"),
        limit=request.args.get("limit", 100, type=int),
    )
    return jsonify({"activity": rows, "count": len(rows)})
