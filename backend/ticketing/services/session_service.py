# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management Service

WHY: Secure session management with automatic timeout and revocation.
Tokens are cryptographically secure, hashed in database, and time-limited.

EXPIRY POLICY (checked on every validation):
- Idle timeout: no activity for SESSION_IDLE_TIMEOUT_MINUTES (default 2h)
- Absolute timeout: SESSION_ABSOLUTE_TIMEOUT_MINUTES since sign-in
  (default 12h), whatever the activity
Either one revokes the session; the caller must sign in again.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Revocable on logout or security events
- Tracks client IP and user agent for security monitoring
- Refreshing a token keeps the original sign-in time, so refreshes
  never extend the absolute window
"""

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from flask import current_app

from ..extensions import db
from ..models import AuthUser, SessionToken
from ..time_utils import utcnow


logger = logging.getLogger(__name__)

REASON_IDLE = "Idle timeout"
REASON_ABSOLUTE = "Session expired"
REASON_LOGOUT = "User logout"
REASON_REFRESHED = "Token refreshed"


@dataclass
class SessionContext:
    """Identity of a validated session."""
    user: AuthUser
    session: SessionToken

    @property
    def user_id(self) -> str:
        return self.user.id


def idle_timeout() -> timedelta:
    return timedelta(minutes=current_app.config["SESSION_IDLE_TIMEOUT_MINUTES"])


def absolute_timeout() -> timedelta:
    return timedelta(minutes=current_app.config["SESSION_ABSOLUTE_TIMEOUT_MINUTES"])


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)  # 32 bytes = 64 hex characters


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are already high-entropy (unlike passwords), so SHA-256 is
    sufficient. Returns hex-encoded hash string.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def expiry_reason(session: SessionToken, now: datetime) -> str | None:
    """Why the session is past its lifetime, or None while it is still valid."""
    if now - session.created_at > absolute_timeout():
        return REASON_ABSOLUTE
    if now - session.last_activity_at > idle_timeout():
        return REASON_IDLE
    return None


def create_session(
    user_id: str,
    user_agent: str | None = None,
    ip_address: str | None = None,
    started_at: datetime | None = None,
) -> tuple[SessionToken, str]:
    """
    Create new session token for user.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    started_at carries the original sign-in time across token refreshes.

    Raises ValueError if the user does not exist.
    """
    user = db.session.get(AuthUser, user_id)
    if not user:
        raise ValueError("User not found")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        created_at=started_at or now,
        last_activity_at=now,
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str, now: datetime) -> None:
    session.is_revoked = True
    session.revoked_at = now
    session.revoked_reason = reason


def validate_session(token: str, on_revoked=None) -> SessionContext | None:
    """
    Validate session token and return SessionContext if valid.

    Returns None if the token is unknown, revoked or past either timeout.
    A session found expired is revoked on the spot and on_revoked(user_id,
    reason) is called, so the caller can announce the sign-out.

    Updates last_activity_at on successful validation (activity tracking).
    """
    if not token:
        return None

    now = utcnow()

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return None

    reason = expiry_reason(session, now)
    if reason is None and not session.user:
        reason = "User not found"

    if reason is not None:
        _revoke(session, reason, now)
        db.session.commit()
        logger.info("Session %s for %s revoked: %s", session.id, session.user_id, reason)
        if on_revoked is not None:
            on_revoked(session.user_id, reason)
        return None

    # Valid session - update activity timestamp
    session.last_activity_at = now
    db.session.commit()

    return SessionContext(user=session.user, session=session)


def refresh_session(token: str) -> tuple[SessionToken, str] | None:
    """
    Exchange a valid token for a new one within the same absolute window.

    Returns None if the token is not valid.
    """
    context = validate_session(token)
    if context is None:
        return None

    old = context.session
    _revoke(old, REASON_REFRESHED, utcnow())
    db.session.commit()
    return create_session(
        old.user_id,
        user_agent=old.user_agent,
        ip_address=old.ip_address,
        started_at=old.created_at,
    )


def revoke_session(token: str, reason: str = REASON_LOGOUT) -> SessionToken | None:
    """
    Revoke session token.

    Returns the revoked session, or None if no active session matched.
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return None

    _revoke(session, reason, utcnow())
    db.session.commit()
    return session


def revoke_all_user_sessions(user_id: str, reason: str = "Revoke all sessions", keep_token: str | None = None) -> int:
    """
    Revoke all active sessions for a user, optionally sparing one token.

    Returns count of sessions revoked.
    """
    now = utcnow()
    keep_hash = hash_token(keep_token) if keep_token else None

    sessions = db.session.query(SessionToken).filter_by(
        user_id=user_id,
        is_revoked=False
    ).all()

    count = 0
    for session in sessions:
        if session.token_hash == keep_hash:
            continue
        _revoke(session, reason, now)
        count += 1

    db.session.commit()
    return count


def cleanup_expired_sessions() -> int:
    """
    Delete revoked or expired sessions older than 30 days.

    Returns count of sessions deleted.
    """
    now = utcnow()
    cutoff = now - timedelta(days=30)

    deleted = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.created_at < now - absolute_timeout(),
            SessionToken.is_revoked.is_(True)
        ),
        SessionToken.created_at < cutoff
    ).delete(synchronize_session=False)

    db.session.commit()
    return deleted
