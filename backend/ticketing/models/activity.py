from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class ActivityLog(db.Model):
    """
    Append-only audit trail of console mutations.

    Rows are never updated or deleted by the application. details holds
    {before, after} snapshots for UPDATE actions.
    """
    __tablename__ = "activity_logs"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), nullable=False, index=True)  # owning account

    action_type = db.Column(db.String(16), nullable=False)  # CREATE, UPDATE, DELETE
    entity_type = db.Column(db.String(32), nullable=False)  # FLIGHT, PASSENGER, AIRLINE, ...
    entity_id = db.Column(db.String(64), nullable=True)
    description = db.Column(db.Text, nullable=True)
    details = db.Column(db.JSON, nullable=True)

    created_by = db.Column(db.String(36), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "action_type": self.action_type,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details or {},
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }
