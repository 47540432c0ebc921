# Overview: Flask API routes for system health.

"""
System health endpoint.

Checks the database and the session table, and reports how many console
sessions and change-feed subscriptions this process holds.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import AuthUser, RoleDefinition, SessionToken
from ..services import change_feed, console_registry
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        user_count = db.session.query(AuthUser).count()
        role_count = db.session.query(RoleDefinition).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy" if role_count else "degraded",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "users": user_count,
                "roles": role_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_session_service_health() -> dict:
    """
    Check session service health by verifying session table accessibility.
    """
    start_time = time.time()
    try:
        active_sessions = db.session.query(SessionToken).filter_by(
            is_revoked=False
        ).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "active_sessions": active_sessions,
                "open_consoles": console_registry.open_count(),
                "change_subscriptions": change_feed.subscription_count(),
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Session service health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Session service error"
        }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded (no roles seeded yet)
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    session_health = check_session_service_health()

    all_checks = [database_health, session_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "session_service": session_health,
        }
    }

    return response, http_status
