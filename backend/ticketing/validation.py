from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import JSON, Boolean, Date, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .time_utils import parse_iso_date, parse_iso_datetime


# Maximum price: 9,999,999.99 (fits Numeric(10, 2))
MAX_PRICE = Decimal("9999999.99")

_MISSING = object()


def pick(payload: dict, *keys: str, default: Any = None) -> Any:
    """
    Read the first present key from a payload.

    Payloads arrive from the UI in camelCase and from the backend in
    snake_case; callers list both spellings, e.g.
    pick(payload, "flight_number", "flightNumber").
    """
    for key in keys:
        value = payload.get(key, _MISSING)
        if value is not _MISSING:
            return value
    return default


def has_any(payload: dict, *keys: str) -> bool:
    return any(key in payload for key in keys)


def require_text(value: Any, field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required")
    return str(value).strip()


def optional_text(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def parse_money(value: Any, field: str, *, allow_none: bool = True) -> Decimal | None:
    """Parse a non-negative amount. Blank strings count as missing."""
    if value is None or (isinstance(value, str) and not value.strip()):
        if allow_none:
            return None
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    if amount < 0:
        raise ValidationError(f"{field} must be >= 0")
    if amount > MAX_PRICE:
        raise ValidationError(f"{field} cannot exceed {MAX_PRICE:,}")
    return amount


def parse_date_field(value: Any, field: str, *, required: bool = False) -> date | None:
    try:
        parsed = parse_iso_date(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an ISO-8601 date (YYYY-MM-DD)")
    if parsed is None and required:
        raise ValidationError(f"{field} is required")
    return parsed


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - reject floats and decimal strings
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lstrip("-").isdigit():
            return int(value.strip())
        raise ValidationError(f"{col.key} must be an integer")

    # Money and other fixed-point columns
    if isinstance(coltype, Numeric):
        if isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a number")
        try:
            return Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise ValidationError(f"{col.key} must be a number")

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        # fallback: truthiness
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Calendar dates
    if isinstance(coltype, Date):
        try:
            d = parse_iso_date(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{col.key} must be an ISO-8601 date")
        if d is None:
            raise ValidationError(f"{col.key} must be an ISO-8601 date")
        return d

    if isinstance(coltype, JSON):
        return value

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def coerce_row(model: DeclarativeMeta, values: dict) -> dict:
    """
    Validate + normalize a row against SQLAlchemy column metadata:
    unknown columns, nullability, types and String(n) lengths.
    Returns a cleaned dict ready to assign onto a model instance.
    """
    if not isinstance(values, dict):
        raise ValidationError("Row values must be an object")

    cols = _columns_by_key(model)
    row: dict = {}

    for k, raw in values.items():
        if k not in cols:
            raise ValidationError(f"Unknown column: {model.__tablename__}.{k}")
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable and not col.primary_key and col.default is None:
                raise ValidationError(f"{k} cannot be null")
            row[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        row[k] = val

    return row
