from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class RoleDefinition(db.Model):
    """
    Permission matrix for a non-privileged role: {category: {action: bool}}.

    The catalog is global (not account-scoped). "Admin" never has a row;
    it bypasses the matrix.
    """
    __tablename__ = "role_permissions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    role = db.Column(db.String(64), nullable=False, unique=True, index=True)
    permissions = db.Column(db.JSON, nullable=False, default=dict)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role,
            "permissions": self.permissions or {},
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ManagedUser(db.Model):
    """Staff-facing view of an identity created by an account owner."""
    __tablename__ = "managed_users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), nullable=False, index=True)  # owning account
    managed_user_id = db.Column(db.String(36), db.ForeignKey("auth_users.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    role = db.Column(db.String(64), nullable=False)
    active = db.Column(db.Boolean, nullable=False, default=True)
    agency_name = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "managed_user_id": self.managed_user_id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "active": self.active,
            "agency_name": self.agency_name,
            "created_at": to_utc_z(self.created_at),
        }
