# Overview: Flask API routes for flights and passengers; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_console
from ..entities import PASSENGER_TYPES
from ..errors import ValidationError
from ..services import document_service, flight_service, pricing_service
from ..validation import parse_money


flights_bp = Blueprint("flights", __name__, url_prefix="/api/flights")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


@flights_bp.get("")
@require_auth
@require_console
def list_flights():
    flights = [f.to_dict() for f in g.console.snapshot.flights]
    return jsonify({"flights": flights, "count": len(flights)})


@flights_bp.post("")
@require_auth
@require_console
def create_flight():
    """
    Create a flight.

    Request body: airline (required), date (required, YYYY-MM-DD),
    flight_number, route
    """
    flight = flight_service.create_flight(g.console, _json_body())
    return jsonify({"flight": flight.to_dict()}), 201


@flights_bp.get("/<flight_ref>")
@require_auth
@require_console
def get_flight(flight_ref: str):
    flight = g.console.require_flight(flight_ref)
    return jsonify({"flight": flight.to_dict()})


@flights_bp.patch("/<flight_ref>")
@require_auth
@require_console
def update_flight(flight_ref: str):
    flight = flight_service.update_flight(g.console, flight_ref, _json_body())
    return jsonify({"flight": flight.to_dict()})


@flights_bp.delete("/<flight_ref>")
@require_auth
@require_console
def delete_flight(flight_ref: str):
    flight_service.delete_flight(g.console, flight_ref)
    return jsonify({"message": "Flight deleted"})


# =============================================================================
# PASSENGERS
# =============================================================================

@flights_bp.get("/<flight_ref>/passenger-template")
@require_auth
@require_console
def passenger_template(flight_ref: str):
    """Defaults for a new passenger on this flight."""
    return jsonify({"passenger": flight_service.new_passenger_template(g.console, flight_ref)})


@flights_bp.get("/<flight_ref>/quote")
@require_auth
@require_console
def quote(flight_ref: str):
    """
    Price breakdown for the passenger form.

    Query params: type (Adult|Child), tax, surcharge, infants (count)
    """
    store = g.console
    flight = store.require_flight(flight_ref)
    infants = request.args.get("infants", 0, type=int)
    if infants < 0:
        raise ValidationError("infants must be >= 0")
    passenger_type = request.args.get("type", "Adult")
    if passenger_type not in PASSENGER_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(PASSENGER_TYPES)}")
    result = pricing_service.quote(
        store,
        flight,
        passenger_type=passenger_type,
        tax=parse_money(request.args.get("tax"), "tax"),
        surcharge=parse_money(request.args.get("surcharge"), "surcharge"),
        infant_count=infants,
    )
    return jsonify({"quote": result})


@flights_bp.post("/<flight_ref>/passengers")
@require_auth
@require_console
def save_passenger(flight_ref: str):
    """
    Add or update a passenger.

    A body id that is a persisted passenger id updates that passenger;
    no id (or a temporary client id) adds a new one.
    """
    data = _json_body()
    is_update = flight_service.is_persisted_id(data.get("id"))
    passenger = flight_service.save_passenger(g.console, flight_ref, data)
    return jsonify({"passenger": passenger.to_dict()}), 200 if is_update else 201


@flights_bp.put("/<flight_ref>/passengers/<passenger_id>")
@require_auth
@require_console
def update_passenger(flight_ref: str, passenger_id: str):
    data = _json_body()
    data["id"] = passenger_id
    if not flight_service.is_persisted_id(passenger_id):
        raise ValidationError("Invalid passenger id")
    passenger = flight_service.save_passenger(g.console, flight_ref, data)
    return jsonify({"passenger": passenger.to_dict()})


@flights_bp.delete("/<flight_ref>/passengers/<passenger_id>")
@require_auth
@require_console
def remove_passenger(flight_ref: str, passenger_id: str):
    flight_service.remove_passenger(g.console, flight_ref, passenger_id)
    return jsonify({"message": "Passenger removed"})


# =============================================================================
# DOCUMENTS
# =============================================================================

@flights_bp.post("/<flight_ref>/tickets")
@require_auth
@require_console
def tickets(flight_ref: str):
    """Ticket data for passenger_ids (all passengers when omitted)."""
    data = _json_body()
    document = document_service.build_ticket_batch(g.console, flight_ref, data.get("passenger_ids"))
    return jsonify({"document": document})


@flights_bp.post("/<flight_ref>/manifest")
@require_auth
@require_console
def manifest(flight_ref: str):
    """Manifest data; body kind is general, us or airport."""
    data = _json_body()
    document = document_service.build_manifest(
        g.console, flight_ref, data.get("kind", "general"), data.get("passenger_ids")
    )
    return jsonify({"document": document})
