from __future__ import annotations

import uuid

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


def new_uuid() -> str:
    return str(uuid.uuid4())


class AuthUser(db.Model):
    """
    Identity-provider account (email + bcrypt password).

    The id is a UUID string; every ownership column in the console
    (user_id, created_by, updated_by) refers to it.
    """
    __tablename__ = "auth_users"

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    display_name = db.Column(db.String(255), nullable=True)
    email_confirmed = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    last_sign_in_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "display_name": self.display_name,
            "email_confirmed": self.email_confirmed,
            "created_at": to_utc_z(self.created_at),
            "last_sign_in_at": to_utc_z(self.last_sign_in_at),
        }


class UserRole(db.Model):
    """
    Role row for an identity.

    created_by is the account owner for managed/staff identities and the
    identity itself for self-registered owners.
    """
    __tablename__ = "user_roles"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey("auth_users.id"), nullable=False, unique=True, index=True)

    email = db.Column(db.String(255), nullable=True)
    name = db.Column(db.String(255), nullable=True)
    role = db.Column(db.String(64), nullable=False)
    active = db.Column(db.Boolean, nullable=False, default=True)
    created_by = db.Column(db.String(36), nullable=True, index=True)
    agency_name = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "active": self.active,
            "created_by": self.created_by,
            "agency_name": self.agency_name,
            "created_at": to_utc_z(self.created_at),
        }


class SessionToken(db.Model):
    """
    Session tokens for authentication.

    The plaintext token is never stored, only its SHA-256 hash. Expiry is
    evaluated against created_at (absolute window) and last_activity_at
    (idle window) by the session service.
    """
    __tablename__ = "session_tokens"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey("auth_users.id"), nullable=False, index=True)

    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    last_activity_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(255), nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)

    user = db.relationship("AuthUser", backref=db.backref("sessions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "last_activity_at": to_utc_z(self.last_activity_at),
            "is_revoked": self.is_revoked,
            "revoked_at": to_utc_z(self.revoked_at),
            "revoked_reason": self.revoked_reason,
        }
