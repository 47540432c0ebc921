from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class Airline(db.Model):
    """Per-account airline pricing and document-template configuration."""
    __tablename__ = "airlines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)

    # Document template references (opaque to the console)
    ticket_template = db.Column(db.Text, nullable=True)
    manifest_template = db.Column(db.Text, nullable=True)
    manifest_us = db.Column(db.Text, nullable=True)
    manifest_airport = db.Column(db.Text, nullable=True)

    default_booking_reference = db.Column(db.String(64), nullable=True)
    default_flight_number = db.Column(db.String(64), nullable=True)

    adult_price = db.Column(db.Numeric(10, 2), nullable=True)
    child_price = db.Column(db.Numeric(10, 2), nullable=True)
    infant_price = db.Column(db.Numeric(10, 2), nullable=True)
    tax = db.Column(db.Numeric(10, 2), nullable=True)
    surcharge = db.Column(db.Numeric(10, 2), nullable=True)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    updated_by = db.Column(db.String(36), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "ticket_template": self.ticket_template,
            "manifest_template": self.manifest_template,
            "manifest_us": self.manifest_us,
            "manifest_airport": self.manifest_airport,
            "default_booking_reference": self.default_booking_reference,
            "default_flight_number": self.default_flight_number,
            "adult_price": self.adult_price,
            "child_price": self.child_price,
            "infant_price": self.infant_price,
            "tax": self.tax,
            "surcharge": self.surcharge,
            "updated_at": to_utc_z(self.updated_at),
            "updated_by": self.updated_by,
        }


class Agency(db.Model):
    """Booking-channel label attachable to passengers."""
    __tablename__ = "agencies"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(64), nullable=True)
    manager_name = db.Column(db.String(255), nullable=True)
    manager_phone = db.Column(db.String(64), nullable=True)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    updated_by = db.Column(db.String(36), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "phone": self.phone,
            "manager_name": self.manager_name,
            "manager_phone": self.manager_phone,
            "updated_at": to_utc_z(self.updated_at),
            "updated_by": self.updated_by,
        }


class AccountSettings(db.Model):
    """One row per account: default prices and agency branding."""
    __tablename__ = "settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), nullable=False, unique=True, index=True)

    adult_price = db.Column(db.Numeric(10, 2), nullable=True)
    child_price = db.Column(db.Numeric(10, 2), nullable=True)
    infant_price = db.Column(db.Numeric(10, 2), nullable=True)
    tax = db.Column(db.Numeric(10, 2), nullable=True)
    surcharge = db.Column(db.Numeric(10, 2), nullable=True)

    agency_name = db.Column(db.String(255), nullable=True)
    agency_tagline = db.Column(db.String(255), nullable=True)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    updated_by = db.Column(db.String(36), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "adult_price": self.adult_price,
            "child_price": self.child_price,
            "infant_price": self.infant_price,
            "tax": self.tax,
            "surcharge": self.surcharge,
            "agency_name": self.agency_name,
            "agency_tagline": self.agency_tagline,
            "updated_at": to_utc_z(self.updated_at),
            "updated_by": self.updated_by,
        }
