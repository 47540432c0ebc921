# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- Self-registration (creates an account owned by the new identity)
- Sign-in / sign-out with bearer session tokens
- Token validation and refresh under the session lifetime policy
- Profile changes (credentials, display name) and password reset
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import bearer_token, require_auth
from ..errors import AuthError, ConsoleError
from ..services import auth_service, scope_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _json_body() -> dict:
    return request.get_json(silent=True) or {}


def _auth_error(exc: AuthError):
    body = exc.to_dict()
    body["message"] = auth_service.friendly_auth_message(exc)
    return jsonify(body), exc.status_code


@auth_bp.post("/register")
def register_route():
    """
    Self-registration.

    Request body: email, password, name (optional)

    Returns 201 with a session token, or 202 when the email must be
    confirmed before the first sign-in.
    """
    try:
        data = _json_body()
        result = auth_service.sign_up(
            data.get("email"),
            data.get("password"),
            display_name=data.get("name"),
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
        status = 202 if result.requires_email_confirmation else 201
        return jsonify(result.to_dict()), status

    except AuthError as exc:
        return _auth_error(exc)
    except ConsoleError:
        raise
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    A deactivated identity signs in with active=false and cannot open a
    console.
    """
    try:
        data = _json_body()
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        result = auth_service.sign_in(
            email,
            password,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
        body = result.to_dict()
        body["message"] = "Login successful"
        return jsonify(body), 200

    except AuthError as exc:
        return _auth_error(exc)
    except ConsoleError:
        raise
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke session token (logout).

    Expects Authorization header: Bearer <token>
    """
    try:
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authorization header required"}), 401

        if not auth_service.sign_out(token):
            return jsonify({"error": "Invalid or expired token"}), 401

        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/validate")
@require_auth
def validate_route():
    """
    Validate session token and return the identity with its role.

    Returns user, role, active, scope and the resolved permission matrix
    so the UI can hide what the actor may not do.
    """
    actor = scope_service.resolve_actor(g.current_user.id)
    return jsonify({
        "user": g.current_user.to_dict(),
        "role": actor.role,
        "active": actor.active,
        "agency_name": actor.agency_name,
        "scope": scope_service.resolve_scope(actor),
        "session": g.session_context.session.to_dict(),
        "message": "Token is valid",
    }), 200


@auth_bp.post("/refresh")
@require_auth
def refresh_route():
    """Exchange the current token for a new one (same absolute lifetime)."""
    token = auth_service.refresh_token(g.token)
    if not token:
        return jsonify({"error": "Invalid or expired token"}), 401
    return jsonify({"token": token}), 200


@auth_bp.post("/confirm-email")
def confirm_email_route():
    data = _json_body()
    if not data.get("email"):
        return jsonify({"error": "email required"}), 400
    try:
        confirmed = auth_service.confirm_email(data["email"])
    except AuthError as exc:
        return _auth_error(exc)
    if not confirmed:
        return jsonify({"error": "User not found"}), 404
    return jsonify({"message": "Email confirmed"}), 200


@auth_bp.post("/password-reset")
def password_reset_route():
    """Always answers 200 so the endpoint cannot be used to probe accounts."""
    auth_service.request_password_reset(_json_body().get("email"))
    return jsonify({"message": "If the account exists, a reset link has been sent"}), 200


@auth_bp.put("/credentials")
@require_auth
def update_credentials_route():
    """
    Change email and/or password.

    Request body: current_password (required), email, new_password
    """
    data = _json_body()
    if not data.get("current_password"):
        return jsonify({"error": "current_password required"}), 400
    if data.get("new_password") and data.get("confirm_password") not in (None, data["new_password"]):
        return jsonify({"error": "Passwords do not match"}), 400

    try:
        user = auth_service.update_credentials(
            g.current_user.id,
            current_password=data["current_password"],
            email=data.get("email"),
            password=data.get("new_password"),
            keep_token=g.token,
        )
    except AuthError as exc:
        return _auth_error(exc)
    return jsonify({"user": user.to_dict(), "message": "Credentials updated"}), 200


@auth_bp.put("/profile")
@require_auth
def update_profile_route():
    data = _json_body()
    user = auth_service.update_display_name(g.current_user.id, data.get("name"))
    return jsonify({"user": user.to_dict(), "message": "Profile updated"}), 200

