# Overview: Backend gateway; table-level select/insert/update/delete scoped by column filters.

"""
Backend Data Gateway

WHY: The console core never reaches into the ORM from its reconciliation
logic. Every read and write goes through these table-level primitives, the
same shape a managed row store exposes (select / insert / update / delete /
upsert, filtered by column equality). Rows go out as plain snake_case dicts.

ERRORS:
- Read failures raise RemoteReadError
- Write failures (constraint violations, bad values, connection loss) roll
  the session back and raise RemoteWriteError with the backend's message

Writes are committed individually unless they run inside transaction(),
which stages every write of the block and commits them once. After a
successful commit the change feed is asked to publish what the commit
touched.
"""

from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from ..errors import RemoteReadError, RemoteWriteError, ValidationError
from ..extensions import db
from ..models import (
    ActivityLog,
    AccountSettings,
    Agency,
    Airline,
    Flight,
    Infant,
    ManagedUser,
    Passenger,
    RoleDefinition,
    UserRole,
)
from ..validation import coerce_row
from . import change_feed


_STAGING_KEY = "backend.staging"

TABLES = {
    "flights": Flight,
    "passengers": Passenger,
    "infants": Infant,
    "airlines": Airline,
    "agencies": Agency,
    "settings": AccountSettings,
    "managed_users": ManagedUser,
    "role_permissions": RoleDefinition,
    "user_roles": UserRole,
    "activity_logs": ActivityLog,
}


def _model(table: str):
    try:
        return TABLES[table]
    except KeyError:
        raise RemoteReadError(f"Unknown table: {table}", table=table)


def _detail(exc: Exception) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig or exc)


def _column(model, key: str):
    column = model.__table__.columns.get(key)
    if column is None:
        raise ValidationError(f"Unknown column: {model.__tablename__}.{key}")
    return getattr(model, key)


def _apply_filters(query, model, filters: dict):
    for key, value in filters.items():
        column = _column(model, key)
        if isinstance(value, (list, tuple, set, frozenset)):
            query = query.filter(column.in_(list(value)))
        else:
            query = query.filter(column == value)
    return query


def _apply_order(query, model, order_by):
    for key in order_by:
        descending = key.startswith("-")
        column = _column(model, key.lstrip("-"))
        query = query.order_by(column.desc() if descending else column.asc())
    return query


def _read(table: str, fn):
    try:
        return fn()
    except ValidationError as exc:
        raise RemoteReadError(str(exc), table=table) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise RemoteReadError(f"Failed to read {table}: {_detail(exc)}", table=table) from exc


def _staging() -> bool:
    return db.session.info.get(_STAGING_KEY, False)


def _write(table: str, fn):
    """Run fn (which stages changes), commit, publish changes, return fn's rows as dicts."""
    try:
        rows = fn()
        if _staging():
            return [row.to_dict() for row in rows]
        db.session.commit()
        changes = change_feed.take_committed(db.session)
        result = [row.to_dict() for row in rows]
    except ValidationError as exc:
        db.session.rollback()
        raise RemoteWriteError(str(exc), table=table) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise RemoteWriteError(_detail(exc), table=table) from exc
    change_feed.publish(changes)
    return result


# =============================================================================
# READS
# =============================================================================

def select(table: str, *, order_by=("id",), **filters) -> list[dict]:
    """All rows matching every equality filter (list values mean IN)."""
    model = _model(table)

    def _op():
        query = _apply_filters(db.session.query(model), model, filters)
        return [row.to_dict() for row in _apply_order(query, model, order_by).all()]

    return _read(table, _op)


def select_one(table: str, **filters) -> dict | None:
    """Zero or one row; more than one match is a read error."""
    rows = select(table, **filters)
    if len(rows) > 1:
        raise RemoteReadError(f"Expected at most one {table} row, found {len(rows)}", table=table)
    return rows[0] if rows else None


def select_any(table: str, conditions: dict, *, order_by=("id",)) -> list[dict]:
    """Rows matching ANY of the given column == value conditions."""
    model = _model(table)

    def _op():
        clauses = [_column(model, key) == value for key, value in conditions.items()]
        query = db.session.query(model).filter(or_(*clauses))
        return [row.to_dict() for row in _apply_order(query, model, order_by).all()]

    return _read(table, _op)


# =============================================================================
# WRITES
# =============================================================================

def insert(table: str, values: dict) -> dict:
    return insert_many(table, [values])[0]


def insert_many(table: str, rows: list[dict]) -> list[dict]:
    model = _model(table)

    def _op():
        created = [model(**coerce_row(model, values)) for values in rows]
        db.session.add_all(created)
        db.session.flush()
        return created

    return _write(table, _op)


def update(table: str, values: dict, **filters) -> list[dict]:
    """Update every matching row; returns the updated rows (possibly empty)."""
    if not filters:
        raise RemoteWriteError(f"Refusing unfiltered update on {table}", table=table)
    model = _model(table)

    def _op():
        patch = coerce_row(model, values)
        rows = _apply_filters(db.session.query(model), model, filters).all()
        for row in rows:
            for key, value in patch.items():
                setattr(row, key, value)
        db.session.flush()
        return rows

    return _write(table, _op)


def delete(table: str, **filters) -> int:
    """Delete matching rows (ORM cascades apply); returns the number deleted."""
    if not filters:
        raise RemoteWriteError(f"Refusing unfiltered delete on {table}", table=table)
    model = _model(table)
    deleted = []

    def _op():
        rows = _apply_filters(db.session.query(model), model, filters).all()
        for row in rows:
            db.session.delete(row)
            deleted.append(row)
        db.session.flush()
        return []

    _write(table, _op)
    return len(deleted)


def upsert(table: str, values: dict, *, on_conflict: str) -> dict:
    """Insert, or update the row whose on_conflict column equals values[on_conflict]."""
    model = _model(table)
    if on_conflict not in values:
        raise RemoteWriteError(f"Upsert on {table} requires {on_conflict}", table=table)

    def _op():
        patch = coerce_row(model, values)
        row = _apply_filters(db.session.query(model), model, {on_conflict: patch[on_conflict]}).first()
        if row is None:
            row = model(**patch)
            db.session.add(row)
        else:
            for key, value in patch.items():
                setattr(row, key, value)
        db.session.flush()
        return [row]

    return _write(table, _op)[0]


@contextmanager
def transaction(table: str = "transaction"):
    """
    Stage every gateway write made inside the block and commit them once.

    A failure anywhere in the block rolls all of them back, so callers see
    either every write or none. Changes are published after the single
    commit. Nested blocks join the outer one.
    """
    if _staging():
        yield
        return

    db.session.info[_STAGING_KEY] = True
    try:
        yield
        db.session.commit()
        changes = change_feed.take_committed(db.session)
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise RemoteWriteError(_detail(exc), table=table) from exc
    except Exception:
        db.session.rollback()
        raise
    finally:
        db.session.info.pop(_STAGING_KEY, None)
    change_feed.publish(changes)
