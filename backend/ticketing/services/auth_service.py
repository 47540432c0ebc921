# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Identity Provider

WHY: Every console action is attributed to an authenticated identity.
Passwords are hashed with bcrypt; sessions are issued by session_service.

IDENTITIES AND ROLES:
- sign_up creates a self-owned account: the identity plus an Admin role
  row whose created_by is the identity itself
- Managed (staff) identities are created by user_service and carry the
  creating account's id in created_by
- sign_in provisions an Admin role row for an identity that has none
  (accounts confirmed by email before their first sign-in)
- A role row with active=False still signs in but gets no console

AUTH EVENTS: SIGNED_IN, SIGNED_OUT, TOKEN_REFRESHED and USER_UPDATED are
announced to listeners registered with on_auth_state_change. The console
registry listens to tear down and rebuild console sessions.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

import bcrypt
from flask import current_app

from ..errors import AuthError, ConsoleError, RemoteReadError
from ..extensions import db
from ..models import AuthUser
from ..permissions import ADMIN_ROLE
from ..time_utils import utcnow
from ..validation import require_text
from . import backend, session_service


logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
TOKEN_REFRESHED = "TOKEN_REFRESHED"
USER_UPDATED = "USER_UPDATED"

EMAIL_NOT_CONFIRMED_MESSAGE = (
    "Email not confirmed. Please check your email and click the confirmation link before signing in."
)

FRIENDLY_MESSAGES = {
    "email_not_confirmed": EMAIL_NOT_CONFIRMED_MESSAGE,
    "invalid_credentials": "Invalid email or password",
    "already_registered": "Email already registered",
    "invalid_email": "Invalid email format",
    "weak_password": f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
    "signup_disabled": "Registration is currently disabled",
    "session_expired": "Your session has expired. Please sign in again.",
}

_listeners: list = []
_listeners_lock = threading.Lock()


@dataclass
class AuthResult:
    user: AuthUser | None
    token: str | None = None
    requires_email_confirmation: bool = False
    active: bool = True

    def to_dict(self) -> dict:
        return {
            "active": self.active,
            "user": self.user.to_dict() if self.user else None,
            "token": self.token,
            "requires_email_confirmation": self.requires_email_confirmation,
        }


# =============================================================================
# AUTH EVENTS
# =============================================================================

def on_auth_state_change(callback):
    """
    Register callback(event, user_id). Returns an unsubscribe function.
    """
    with _listeners_lock:
        _listeners.append(callback)

    def unsubscribe():
        with _listeners_lock:
            if callback in _listeners:
                _listeners.remove(callback)

    return unsubscribe


def _emit(event: str, user_id: str) -> None:
    with _listeners_lock:
        listeners = list(_listeners)
    logger.info("Auth event %s for %s", event, user_id)
    for callback in listeners:
        try:
            callback(event, user_id)
        except Exception:
            logger.exception("Auth listener failed for %s", event)


# =============================================================================
# PASSWORDS
# =============================================================================

def validate_password_strength(password: str) -> None:
    """Raises AuthError(code="weak_password") when the password is too short."""
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise AuthError(FRIENDLY_MESSAGES["weak_password"], code="weak_password", status_code=400)


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_LOG_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed hash never verifies.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


# =============================================================================
# IDENTITIES
# =============================================================================

def normalize_email(email) -> str:
    value = (email or "").strip().lower()
    if "@" not in value or value.startswith("@") or value.endswith("@"):
        raise AuthError(FRIENDLY_MESSAGES["invalid_email"], code="invalid_email", status_code=400)
    return value


def get_user_by_email(email: str) -> AuthUser | None:
    return db.session.query(AuthUser).filter_by(email=email).first()


def create_identity(email: str, password: str, *, display_name: str | None = None, confirmed: bool = True) -> AuthUser:
    """
    Create an auth identity. Raises AuthError for a taken email or weak password.
    """
    email = normalize_email(email)
    if get_user_by_email(email) is not None:
        raise AuthError("User already registered", code="already_registered", status_code=409)

    user = AuthUser(
        email=email,
        password_hash=hash_password(password),
        display_name=display_name,
        email_confirmed=confirmed,
    )
    db.session.add(user)
    db.session.commit()
    return user


def delete_identity(user_id: str) -> None:
    """Remove an identity that never got a role row (failed managed-user creation)."""
    user = db.session.get(AuthUser, user_id)
    if user is not None:
        db.session.delete(user)
        db.session.commit()


def _provision_owner_role(user: AuthUser) -> dict | None:
    try:
        return backend.insert("user_roles", {
            "user_id": user.id,
            "email": user.email,
            "name": user.display_name,
            "role": ADMIN_ROLE,
            "active": True,
            "created_by": user.id,
        })
    except ConsoleError:
        logger.error("Failed to create role for %s", user.id, exc_info=True)
        return None


def sign_up(email: str, password: str, *, display_name: str | None = None,
            user_agent: str | None = None, ip_address: str | None = None) -> AuthResult:
    """
    Self-registration. Creates a new account owned by the identity.

    With REQUIRE_EMAIL_CONFIRMATION the identity is created unconfirmed, no
    session is issued and the role row is provisioned at first sign-in.
    """
    if not current_app.config.get("ALLOW_SIGN_UP", True):
        raise AuthError(FRIENDLY_MESSAGES["signup_disabled"], code="signup_disabled", status_code=403)

    requires_confirmation = current_app.config.get("REQUIRE_EMAIL_CONFIRMATION", False)
    user = create_identity(email, password, display_name=display_name, confirmed=not requires_confirmation)
    logger.info("Registered %s (confirmation required: %s)", user.id, requires_confirmation)

    if requires_confirmation:
        return AuthResult(user=None, requires_email_confirmation=True)

    _provision_owner_role(user)
    _, token = session_service.create_session(user.id, user_agent=user_agent, ip_address=ip_address)
    _emit(SIGNED_IN, user.id)
    return AuthResult(user=user, token=token)


def confirm_email(email: str) -> bool:
    """Mark an identity's email as confirmed (the confirmation link target)."""
    user = get_user_by_email(normalize_email(email))
    if user is None:
        return False
    user.email_confirmed = True
    db.session.commit()
    return True


def sign_in(email: str, password: str, *, user_agent: str | None = None,
            ip_address: str | None = None) -> AuthResult:
    """
    Authenticate and issue a session.

    Raises AuthError for bad credentials or an unconfirmed email. A
    deactivated identity still signs in; result.active is False and the
    console refuses to open for it.
    """
    try:
        email = normalize_email(email)
    except AuthError:
        raise AuthError("Invalid login credentials", code="invalid_credentials")

    user = get_user_by_email(email)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Failed sign-in for %s", email)
        raise AuthError("Invalid login credentials", code="invalid_credentials")

    if not user.email_confirmed:
        raise AuthError(EMAIL_NOT_CONFIRMED_MESSAGE, code="email_not_confirmed")

    active = True
    try:
        role_row = backend.select_one("user_roles", user_id=user.id)
    except RemoteReadError:
        logger.warning("Role lookup failed at sign-in for %s", user.id, exc_info=True)
    else:
        if role_row is None:
            logger.info("No role for %s; provisioning account owner", user.id)
            role_row = _provision_owner_role(user)
        if role_row is not None and role_row.get("active") is False:
            logger.info("Deactivated identity %s signed in", user.id)
            active = False

    user.last_sign_in_at = utcnow()
    db.session.commit()

    _, token = session_service.create_session(user.id, user_agent=user_agent, ip_address=ip_address)
    _emit(SIGNED_IN, user.id)
    return AuthResult(user=user, token=token, active=active)


def sign_out(token: str) -> bool:
    session = session_service.revoke_session(token)
    if session is None:
        return False
    _emit(SIGNED_OUT, session.user_id)
    return True


def _expired(user_id: str, reason: str) -> None:
    _emit(SIGNED_OUT, user_id)


def get_current_session(token: str) -> session_service.SessionContext | None:
    """Validate a token; an expired session is revoked and announced as SIGNED_OUT."""
    return session_service.validate_session(token, on_revoked=_expired)


def refresh_token(token: str) -> str | None:
    refreshed = session_service.refresh_session(token)
    if refreshed is None:
        return None
    session, new_token = refreshed
    _emit(TOKEN_REFRESHED, session.user_id)
    return new_token


# =============================================================================
# PROFILE
# =============================================================================

def update_credentials(user_id: str, *, current_password: str, email: str | None = None,
                       password: str | None = None, keep_token: str | None = None) -> AuthUser:
    """
    Change email and/or password after re-checking the current password.

    A password change revokes every other session of the identity.
    """
    user = db.session.get(AuthUser, user_id)
    if user is None or not verify_password(current_password, user.password_hash):
        raise AuthError("Incorrect current password", code="invalid_credentials", status_code=400)

    if email is not None:
        new_email = normalize_email(email)
        if new_email != user.email:
            if get_user_by_email(new_email) is not None:
                raise AuthError("User already registered", code="already_registered", status_code=409)
            user.email = new_email
    if password is not None:
        user.password_hash = hash_password(password)
    db.session.commit()

    if email is not None:
        backend.update("user_roles", {"email": user.email}, user_id=user.id)
        backend.update("managed_users", {"email": user.email}, managed_user_id=user.id)
    if password is not None:
        session_service.revoke_all_user_sessions(user.id, reason="Password changed", keep_token=keep_token)

    _emit(USER_UPDATED, user.id)
    return user


def update_display_name(user_id: str, name) -> AuthUser:
    """Rename the identity and mirror the name onto its role and managed-user rows."""
    name = require_text(name, "name")
    user = db.session.get(AuthUser, user_id)
    if user is None:
        raise AuthError("User not found", code="auth_failed", status_code=404)

    user.display_name = name
    db.session.commit()
    try:
        backend.update("user_roles", {"name": name}, user_id=user.id)
        backend.update("managed_users", {"name": name}, managed_user_id=user.id)
    except ConsoleError:
        logger.warning("Could not sync display name of %s to its role row", user.id, exc_info=True)

    _emit(USER_UPDATED, user.id)
    return user


def request_password_reset(email: str) -> bool:
    """
    Start a password reset. Always reports success so callers cannot probe
    which emails exist; delivery of the reset link is outside this service.
    """
    try:
        address = normalize_email(email)
    except AuthError:
        return True
    if get_user_by_email(address) is not None:
        logger.info("Password reset requested for %s", address)
    return True


def reset_password(email: str, new_password: str) -> bool:
    """Set a new password for the identity (reset link target); revokes all its sessions."""
    user = get_user_by_email(normalize_email(email))
    if user is None:
        return False
    user.password_hash = hash_password(new_password)
    db.session.commit()
    session_service.revoke_all_user_sessions(user.id, reason="Password reset")
    _emit(USER_UPDATED, user.id)
    return True


def friendly_auth_message(error) -> str:
    """User-facing text for an auth failure."""
    code = getattr(error, "code", None)
    if code in FRIENDLY_MESSAGES:
        return FRIENDLY_MESSAGES[code]
    message = str(error) if error else ""
    if "Email not confirmed" in message or "email_not_confirmed" in message:
        return FRIENDLY_MESSAGES["email_not_confirmed"]
    if "Invalid login credentials" in message or "Invalid email or password" in message:
        return FRIENDLY_MESSAGES["invalid_credentials"]
    if "already registered" in message or "already exists" in message:
        return FRIENDLY_MESSAGES["already_registered"]
    if "Password" in message:
        return FRIENDLY_MESSAGES["weak_password"]
    return message or "Authentication failed. Please try again."
