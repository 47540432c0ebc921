from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z, utcnow
from .auth import new_uuid


class Flight(db.Model):
    """
    A flight owned by an account (user_id).

    uuid is the stable join key used by passengers; the numeric id is only
    a surrogate for lookups and is never used as a foreign key.
    """
    __tablename__ = "flights"
    __table_args__ = (
        db.Index("ix_flights_user_date", "user_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(db.String(36), nullable=False, unique=True, default=new_uuid)
    user_id = db.Column(db.String(36), nullable=False, index=True)

    airline = db.Column(db.String(255), nullable=False)
    flight_number = db.Column(db.String(64), nullable=True)
    date = db.Column(db.Date, nullable=False)
    route = db.Column(db.String(255), nullable=True)

    created_by = db.Column(db.String(36), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    passengers = db.relationship(
        "Passenger",
        backref="flight",
        lazy=True,
        cascade="all, delete-orphan",
        primaryjoin="Flight.uuid == Passenger.flight_id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "uuid": self.uuid,
            "user_id": self.user_id,
            "airline": self.airline,
            "flight_number": self.flight_number,
            "date": to_iso_date(self.date),
            "route": self.route,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }


class Passenger(db.Model):
    """
    Passenger booked on a flight; flight_id references flights.uuid.

    Prices are stored as entered; total_price is an input-assist value and
    is not re-verified here.
    """
    __tablename__ = "passengers"

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    flight_id = db.Column(db.String(36), db.ForeignKey("flights.uuid", ondelete="CASCADE"), nullable=False, index=True)
    user_id = db.Column(db.String(36), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(16), nullable=False, default="Adult")  # Adult, Child
    gender = db.Column(db.String(1), nullable=True)  # M, F (adults only)
    phone_number = db.Column(db.String(64), nullable=True)
    agency = db.Column(db.String(255), nullable=True)
    flight_number = db.Column(db.String(64), nullable=True)
    booking_reference = db.Column(db.String(64), nullable=True)

    ticket_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    tax = db.Column(db.Numeric(10, 2), nullable=True)
    surcharge = db.Column(db.Numeric(10, 2), nullable=True)
    total_price = db.Column(db.Numeric(10, 2), nullable=True)
    date_of_issue = db.Column(db.Date, nullable=True)

    created_by = db.Column(db.String(36), nullable=True)
    updated_by = db.Column(db.String(36), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    infants = db.relationship(
        "Infant",
        backref="passenger",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="Infant.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "flight_id": self.flight_id,
            "user_id": self.user_id,
            "name": self.name,
            "type": self.type,
            "gender": self.gender,
            "phone_number": self.phone_number,
            "agency": self.agency,
            "flight_number": self.flight_number,
            "booking_reference": self.booking_reference,
            "ticket_price": self.ticket_price,
            "tax": self.tax,
            "surcharge": self.surcharge,
            "total_price": self.total_price,
            "date_of_issue": to_iso_date(self.date_of_issue),
            "created_by": self.created_by,
            "updated_by": self.updated_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Infant(db.Model):
    """Infant travelling on a passenger's lap. Replaced wholesale on every passenger write."""
    __tablename__ = "infants"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    passenger_id = db.Column(db.String(36), db.ForeignKey("passengers.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = db.Column(db.String(36), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    created_by = db.Column(db.String(36), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "passenger_id": self.passenger_id,
            "user_id": self.user_id,
            "name": self.name,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }
