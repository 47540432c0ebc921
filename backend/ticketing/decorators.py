# Overview: Request decorators for API routes; authentication and console session binding.

from functools import wraps
from flask import request, jsonify, g

from .services import auth_service, console_registry


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid, unexpired session.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated AuthUser
    - g.session_context: The full SessionContext object
    - g.token: The plaintext bearer token of this request

    Returns 401 if the header is missing or the token is invalid, revoked,
    idle for too long or past its absolute lifetime.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = auth_service.get_current_session(token)
        if not context:
            return jsonify({
                "error": "Invalid or expired token",
                "code": "session_expired",
            }), 401

        g.current_user = context.user
        g.session_context = context
        g.token = token

        return f(*args, **kwargs)

    return decorated_function


def require_console(f):
    """
    Bind the caller's console store to g.console.

    Must be used after @require_auth. A deactivated identity gets 403 from
    the AccountDeactivatedError handler.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not hasattr(g, "current_user"):
            return jsonify({"error": "Authentication required"}), 401

        g.console = console_registry.get_console(g.current_user.id)
        return f(*args, **kwargs)

    return decorated_function
