# Overview: Typed in-memory records for the console snapshot and the
# normalization functions that build them from backend rows.

"""
Canonical in-memory shapes.

Backend rows arrive as snake_case dicts (the wire shape); API payloads may
use camelCase. Each normalize_* function is the single place a wire shape
becomes a record, and is applied on load and on every mutation response.
Records are frozen; the console replaces them rather than editing them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from .permissions import ADMIN_ROLE
from .time_utils import parse_iso_date, to_iso_date
from .validation import pick


PASSENGER_TYPES = ("Adult", "Child")
GENDERS = ("M", "F")

DEFAULT_PRICES = {
    "adult": Decimal("130"),
    "child": Decimal("90"),
    "infant": Decimal("20"),
    "tax": Decimal("10"),
    "surcharge": Decimal("10"),
}
DEFAULT_AGENCY_NAME = "AREYS"
DEFAULT_AGENCY_TAGLINE = "Travel Agency"


def _money(value) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return Decimal(str(value))


def _money_str(value: Optional[Decimal]) -> Optional[str]:
    return None if value is None else str(value)


def _date(value) -> Optional[date]:
    return parse_iso_date(value) if value else None


@dataclass(frozen=True)
class Actor:
    """The authenticated identity a console acts for."""
    id: str
    role: Optional[str]
    created_by: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    agency_name: Optional[str] = None
    active: bool = True

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role,
            "created_by": self.created_by,
            "email": self.email,
            "name": self.name,
            "agency_name": self.agency_name,
            "active": self.active,
        }


@dataclass(frozen=True)
class InfantRecord:
    id: int
    passenger_id: str
    name: str


@dataclass(frozen=True)
class PassengerRecord:
    id: str
    flight_id: str
    name: str
    type: str = "Adult"
    gender: Optional[str] = None
    phone_number: Optional[str] = None
    agency: Optional[str] = None
    flight_number: Optional[str] = None
    booking_reference: Optional[str] = None
    ticket_price: Decimal = Decimal("0")
    tax: Optional[Decimal] = None
    surcharge: Optional[Decimal] = None
    total_price: Optional[Decimal] = None
    date_of_issue: Optional[date] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    infants: tuple[str, ...] = ()

    @property
    def is_child(self) -> bool:
        return self.type == "Child"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "flight_id": self.flight_id,
            "name": self.name,
            "type": self.type,
            "gender": self.gender,
            "phone_number": self.phone_number,
            "agency": self.agency,
            "flight_number": self.flight_number,
            "booking_reference": self.booking_reference,
            "ticket_price": _money_str(self.ticket_price),
            "tax": _money_str(self.tax),
            "surcharge": _money_str(self.surcharge),
            "total_price": _money_str(self.total_price),
            "date_of_issue": to_iso_date(self.date_of_issue),
            "created_by": self.created_by,
            "updated_by": self.updated_by,
            "infants": list(self.infants),
        }


@dataclass(frozen=True)
class FlightRecord:
    id: int
    uuid: str
    airline: str
    date: date
    flight_number: Optional[str] = None
    route: Optional[str] = None
    created_by: Optional[str] = None
    passengers: tuple[PassengerRecord, ...] = ()

    def matches(self, ref) -> bool:
        """True when ref is this flight's uuid or its numeric id (int or digit string)."""
        if ref is None:
            return False
        if ref == self.uuid:
            return True
        s = str(ref).strip()
        return s.isdigit() and int(s) == self.id

    def find_passenger(self, passenger_id: str) -> Optional[PassengerRecord]:
        for passenger in self.passengers:
            if passenger.id == passenger_id:
                return passenger
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "uuid": self.uuid,
            "airline": self.airline,
            "flight_number": self.flight_number,
            "date": to_iso_date(self.date),
            "route": self.route,
            "created_by": self.created_by,
            "passengers": [p.to_dict() for p in self.passengers],
        }


@dataclass(frozen=True)
class AirlineRecord:
    id: int
    name: str
    ticket_template: Optional[str] = None
    manifest_template: Optional[str] = None
    manifest_us: Optional[str] = None
    manifest_airport: Optional[str] = None
    default_booking_reference: Optional[str] = None
    default_flight_number: Optional[str] = None
    adult_price: Optional[Decimal] = None
    child_price: Optional[Decimal] = None
    infant_price: Optional[Decimal] = None
    tax: Optional[Decimal] = None
    surcharge: Optional[Decimal] = None
    updated_at: Optional[str] = None
    updated_by: Optional[str] = None

    def manifest_ref(self, kind: str) -> Optional[str]:
        return {
            "general": self.manifest_template,
            "us": self.manifest_us,
            "airport": self.manifest_airport,
        }.get(kind)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "ticket_template": self.ticket_template,
            "manifest_templates": {
                "general": self.manifest_template,
                "us": self.manifest_us,
                "airport": self.manifest_airport,
            },
            "default_booking_reference": self.default_booking_reference,
            "default_flight_number": self.default_flight_number,
            "adult_price": _money_str(self.adult_price),
            "child_price": _money_str(self.child_price),
            "infant_price": _money_str(self.infant_price),
            "tax": _money_str(self.tax),
            "surcharge": _money_str(self.surcharge),
            "updated_at": self.updated_at,
            "updated_by": self.updated_by,
        }


@dataclass(frozen=True)
class AgencyRecord:
    id: int
    name: str
    phone: Optional[str] = None
    manager_name: Optional[str] = None
    manager_phone: Optional[str] = None
    updated_at: Optional[str] = None
    updated_by: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "manager_name": self.manager_name,
            "manager_phone": self.manager_phone,
            "updated_at": self.updated_at,
            "updated_by": self.updated_by,
        }


@dataclass(frozen=True)
class SettingsRecord:
    """Account defaults. An account without a settings row gets the built-in defaults."""
    adult_price: Decimal = DEFAULT_PRICES["adult"]
    child_price: Decimal = DEFAULT_PRICES["child"]
    infant_price: Decimal = DEFAULT_PRICES["infant"]
    tax: Decimal = DEFAULT_PRICES["tax"]
    surcharge: Decimal = DEFAULT_PRICES["surcharge"]
    agency_name: str = DEFAULT_AGENCY_NAME
    agency_tagline: str = DEFAULT_AGENCY_TAGLINE
    updated_at: Optional[str] = None
    updated_by: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "adult_price": _money_str(self.adult_price),
            "child_price": _money_str(self.child_price),
            "infant_price": _money_str(self.infant_price),
            "tax": _money_str(self.tax),
            "surcharge": _money_str(self.surcharge),
            "agency_name": self.agency_name,
            "agency_tagline": self.agency_tagline,
            "updated_at": self.updated_at,
            "updated_by": self.updated_by,
        }


@dataclass(frozen=True)
class ManagedUserRecord:
    id: int
    managed_user_id: str
    name: Optional[str]
    email: Optional[str]
    role: str
    active: bool = True
    agency_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "managed_user_id": self.managed_user_id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "active": self.active,
            "agency_name": self.agency_name,
        }


@dataclass(frozen=True)
class RoleDefinitionRecord:
    id: int
    role: str
    permissions: dict = field(default_factory=dict)

    def allows(self, category: str, action: str) -> bool:
        actions = self.permissions.get(category)
        if not isinstance(actions, dict):
            return False
        return actions.get(action) is True

    def to_dict(self) -> dict:
        return {"id": self.id, "role": self.role, "permissions": self.permissions}


@dataclass(frozen=True)
class AccountUserRecord:
    """Role row of an identity belonging to the account (owner or staff), used for names."""
    user_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    agency_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        if self.email:
            return self.email.split("@")[0]
        return "Unknown"


@dataclass(frozen=True)
class Snapshot:
    """
    Reconciled view of one account, rendered by the UI until the next load.

    version is the load token that produced it and is excluded from
    equality so two loads of unchanged data compare equal.
    """
    scope: str
    flights: tuple[FlightRecord, ...] = ()
    airlines: tuple[AirlineRecord, ...] = ()
    agencies: tuple[AgencyRecord, ...] = ()
    settings: SettingsRecord = field(default_factory=SettingsRecord)
    managed_users: tuple[ManagedUserRecord, ...] = ()
    role_definitions: tuple[RoleDefinitionRecord, ...] = ()
    account_users: tuple[AccountUserRecord, ...] = ()
    display_names: dict = field(default_factory=dict)
    version: int = field(default=0, compare=False)

    def to_dict(self) -> dict:
        return {
            "scope": self.scope,
            "version": self.version,
            "flights": [f.to_dict() for f in self.flights],
            "airlines": [a.to_dict() for a in self.airlines],
            "agencies": [a.to_dict() for a in self.agencies],
            "settings": self.settings.to_dict(),
            "users": [u.to_dict() for u in self.managed_users],
            "role_definitions": [r.to_dict() for r in self.role_definitions],
            "display_names": dict(self.display_names),
        }


# =============================================================================
# NORMALIZATION BOUNDARY
# =============================================================================

def normalize_actor(user_id: str, role_row: Optional[dict]) -> Actor:
    """Actor from a user_roles row; a missing row yields a role-less actor."""
    if not role_row:
        return Actor(id=user_id, role=None)
    active = pick(role_row, "active", default=True)
    return Actor(
        id=user_id,
        role=pick(role_row, "role"),
        created_by=pick(role_row, "created_by", "createdBy"),
        email=pick(role_row, "email"),
        name=pick(role_row, "name"),
        agency_name=pick(role_row, "agency_name", "agencyName"),
        active=active is not False,
    )


def normalize_infant(row: dict) -> InfantRecord:
    return InfantRecord(
        id=row["id"],
        passenger_id=pick(row, "passenger_id", "passengerId"),
        name=row["name"],
    )


def normalize_passenger(row: dict, infants=()) -> PassengerRecord:
    passenger_type = pick(row, "type", default="Adult") or "Adult"
    return PassengerRecord(
        id=row["id"],
        flight_id=pick(row, "flight_id", "flightId"),
        name=row["name"],
        type=passenger_type,
        gender=None if passenger_type == "Child" else pick(row, "gender"),
        phone_number=pick(row, "phone_number", "phoneNumber"),
        agency=pick(row, "agency"),
        flight_number=pick(row, "flight_number", "flightNumber"),
        booking_reference=pick(row, "booking_reference", "bookingReference"),
        ticket_price=_money(pick(row, "ticket_price", "ticketPrice")) or Decimal("0"),
        tax=_money(pick(row, "tax")),
        surcharge=_money(pick(row, "surcharge")),
        total_price=_money(pick(row, "total_price", "totalPrice")),
        date_of_issue=_date(pick(row, "date_of_issue", "dateOfIssue")),
        created_by=pick(row, "created_by", "createdBy"),
        updated_by=pick(row, "updated_by", "updatedBy"),
        infants=tuple(infants),
    )


def normalize_flight(row: dict, passengers=()) -> FlightRecord:
    return FlightRecord(
        id=row["id"],
        uuid=row["uuid"],
        airline=row["airline"],
        date=_date(row["date"]),
        flight_number=pick(row, "flight_number", "flightNumber"),
        route=pick(row, "route"),
        created_by=pick(row, "created_by", "createdBy"),
        passengers=tuple(passengers),
    )


def normalize_airline(row: dict) -> AirlineRecord:
    return AirlineRecord(
        id=row["id"],
        name=row["name"],
        ticket_template=pick(row, "ticket_template", "ticketTemplate"),
        manifest_template=pick(row, "manifest_template", "manifestTemplate"),
        manifest_us=pick(row, "manifest_us", "manifestUs"),
        manifest_airport=pick(row, "manifest_airport", "manifestAirport"),
        default_booking_reference=pick(row, "default_booking_reference", "defaultBookingReference"),
        default_flight_number=pick(row, "default_flight_number", "defaultFlightNumber"),
        adult_price=_money(pick(row, "adult_price", "adultPrice")),
        child_price=_money(pick(row, "child_price", "childPrice")),
        infant_price=_money(pick(row, "infant_price", "infantPrice")),
        tax=_money(pick(row, "tax")),
        surcharge=_money(pick(row, "surcharge")),
        updated_at=pick(row, "updated_at", "updatedAt"),
        updated_by=pick(row, "updated_by", "updatedBy"),
    )


def normalize_agency(row: dict) -> AgencyRecord:
    return AgencyRecord(
        id=row["id"],
        name=row["name"],
        phone=pick(row, "phone"),
        manager_name=pick(row, "manager_name", "managerName"),
        manager_phone=pick(row, "manager_phone", "managerPhone"),
        updated_at=pick(row, "updated_at", "updatedAt"),
        updated_by=pick(row, "updated_by", "updatedBy"),
    )


def normalize_settings(row: Optional[dict]) -> SettingsRecord:
    """Settings row over built-in defaults; zero or missing values fall back to the default."""
    if not row:
        return SettingsRecord()
    defaults = SettingsRecord()

    def price(key, fallback):
        value = _money(row.get(key))
        return value if value else fallback

    return SettingsRecord(
        adult_price=price("adult_price", defaults.adult_price),
        child_price=price("child_price", defaults.child_price),
        infant_price=price("infant_price", defaults.infant_price),
        tax=price("tax", defaults.tax),
        surcharge=price("surcharge", defaults.surcharge),
        agency_name=row.get("agency_name") or defaults.agency_name,
        agency_tagline=row.get("agency_tagline") or defaults.agency_tagline,
        updated_at=row.get("updated_at"),
        updated_by=row.get("updated_by"),
    )


def normalize_managed_user(row: dict) -> ManagedUserRecord:
    return ManagedUserRecord(
        id=row["id"],
        managed_user_id=pick(row, "managed_user_id", "managedUserId"),
        name=pick(row, "name"),
        email=pick(row, "email"),
        role=row["role"],
        active=pick(row, "active", default=True) is not False,
        agency_name=pick(row, "agency_name", "agencyName"),
    )


def normalize_role_definition(row: dict) -> RoleDefinitionRecord:
    permissions = row.get("permissions")
    return RoleDefinitionRecord(
        id=row["id"],
        role=row["role"],
        permissions=permissions if isinstance(permissions, dict) else {},
    )


def normalize_account_user(row: dict) -> AccountUserRecord:
    return AccountUserRecord(
        user_id=row["user_id"],
        name=row.get("name"),
        email=row.get("email"),
        agency_name=row.get("agency_name"),
    )
