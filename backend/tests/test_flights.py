"""
Flight and passenger mutation tests.

Verifies:
- Creating a flight and adding a passenger with infants (defaults priced)
- Ownership fallback for edits and deletes
- Infants are replaced, never merged
- Children never carry infants or a gender
- Remote failures leave the snapshot untouched
- Activity logging is best-effort
"""

from decimal import Decimal

import pytest

from conftest import make_staff, open_console
from ticketing.errors import NotFoundError, PermissionDeniedError, RemoteWriteError, ValidationError
from ticketing.extensions import db
from ticketing.models import ActivityLog, Infant, Passenger
from ticketing.permissions import build_matrix
from ticketing.services import activity_service, backend, flight_service


FLIGHT = {"airline": "FlyCo", "flightNumber": "FC100", "date": "2026-01-10", "route": "AAA-BBB"}


@pytest.fixture
def viewer(owner):
    """Role that sees everything and may create, but holds no delete rights."""
    backend.insert("role_permissions", {
        "role": "Viewer",
        "permissions": build_matrix({
            "flight": ["create", "view_any"],
            "passenger": ["create", "view_any"],
        }),
    })
    return make_staff(owner, "viewer@agency.test", "Viewer", "Vera Viewer")


# =============================================================================
# SCENARIO
# =============================================================================


class TestCreateAndBook:
    """Admin creates a flight and books a passenger with an infant."""

    def test_scenario(self, owner_console):
        flight = flight_service.create_flight(owner_console, FLIGHT)
        assert flight.passengers == ()
        assert owner_console.get_flight(flight.uuid) is not None

        passenger = flight_service.save_passenger(owner_console, flight.uuid, {
            "name": "John Doe", "type": "Adult", "infants": ["Baby Doe"],
        })

        [stored] = owner_console.get_flight(flight.uuid).passengers
        assert stored.id == passenger.id
        assert stored.infants == ("Baby Doe",)
        # 130 + 10 + 10 + 1 * 20
        assert stored.total_price == Decimal("170")
        assert stored.gender == "M"
        assert stored.flight_number == "FC100"
        assert stored.booking_reference == "AIEW07"

    def test_flight_lookup_by_numeric_id(self, owner_console):
        flight = flight_service.create_flight(owner_console, FLIGHT)
        assert owner_console.require_flight(str(flight.id)).uuid == flight.uuid

    def test_flight_requires_airline_and_date(self, owner_console):
        with pytest.raises(ValidationError):
            flight_service.create_flight(owner_console, {"airline": "FlyCo"})
        with pytest.raises(ValidationError):
            flight_service.create_flight(owner_console, {"date": "2026-01-10"})
        assert owner_console.snapshot.flights == ()

    def test_unknown_flight(self, owner_console):
        with pytest.raises(NotFoundError):
            flight_service.save_passenger(owner_console, "no-such-flight", {"name": "X"})

    def test_activity_logged(self, owner_console):
        flight = flight_service.create_flight(owner_console, FLIGHT)
        flight_service.save_passenger(owner_console, flight.uuid, {"name": "John Doe"})
        entries = activity_service.list_activity(owner_console)
        assert [e["entity_type"] for e in entries] == ["PASSENGER", "FLIGHT"]
        assert entries[1]["description"] == "Created flight FlyCo FC100 on 2026-01-10"


# =============================================================================
# OWNERSHIP
# =============================================================================


class TestOwnershipFallback:
    """Creators may edit their own records without the category-wide right."""

    def test_staff_edits_own_flight(self, staff_console):
        flight = flight_service.create_flight(staff_console, FLIGHT)
        updated = flight_service.update_flight(staff_console, flight.uuid, {"route": "AAA-CCC"})
        assert updated.route == "AAA-CCC"
        flight_service.delete_flight(staff_console, flight.uuid)
        assert staff_console.snapshot.flights == ()

    def test_non_creator_without_delete_is_denied(self, owner_console, viewer):
        flight = flight_service.create_flight(owner_console, FLIGHT)
        store = open_console(viewer)
        try:
            with pytest.raises(PermissionDeniedError):
                flight_service.update_flight(store, flight.uuid, {"route": "X"})
            with pytest.raises(PermissionDeniedError):
                flight_service.delete_flight(store, flight.uuid)
            assert store.get_flight(flight.uuid).route == "AAA-BBB"
        finally:
            store.close()

    def test_passenger_edit_by_non_creator_denied(self, owner_console, viewer):
        flight = flight_service.create_flight(owner_console, FLIGHT)
        passenger = flight_service.save_passenger(owner_console, flight.uuid, {"name": "John Doe"})
        store = open_console(viewer)
        try:
            with pytest.raises(PermissionDeniedError):
                flight_service.save_passenger(store, flight.uuid, {"id": passenger.id, "name": "Changed"})
            with pytest.raises(PermissionDeniedError):
                flight_service.remove_passenger(store, flight.uuid, passenger.id)
        finally:
            store.close()
        assert db.session.get(Passenger, passenger.id).name == "John Doe"

    def test_manager_edits_any_flight(self, owner_console, manager):
        flight = flight_service.create_flight(owner_console, FLIGHT)
        store = open_console(manager)
        try:
            updated = flight_service.update_flight(store, flight.uuid, {"flight_number": "FC200"})
            assert updated.flight_number == "FC200"
        finally:
            store.close()

    def test_role_without_create_denied(self, owner, seed_roles):
        nobody = make_staff(owner, "nobody@agency.test", "Ghost", "No Role")
        store = open_console(nobody)
        try:
            with pytest.raises(PermissionDeniedError):
                flight_service.create_flight(store, FLIGHT)
        finally:
            store.close()


# =============================================================================
# PASSENGERS
# =============================================================================


class TestPassengerSave:
    """Upsert rules, infant replacement and pricing recompute."""

    @pytest.fixture
    def flight(self, owner_console):
        return flight_service.create_flight(owner_console, FLIGHT)

    def test_infants_replaced_not_merged(self, owner_console, flight):
        passenger = flight_service.save_passenger(owner_console, flight.uuid, {
            "name": "John Doe", "infants": ["A", "B"],
        })
        updated = flight_service.save_passenger(owner_console, flight.uuid, {
            "id": passenger.id, "infants": ["A"],
        })
        assert updated.infants == ("A",)
        assert db.session.query(Infant).filter_by(passenger_id=passenger.id).count() == 1

    def test_temporary_id_inserts(self, owner_console, flight):
        flight_service.save_passenger(owner_console, flight.uuid, {"id": "tmp-1", "name": "One"})
        flight_service.save_passenger(owner_console, flight.uuid, {"id": "tmp-1", "name": "Two"})
        assert len(owner_console.get_flight(flight.uuid).passengers) == 2

    def test_child_has_no_infants_or_gender(self, owner_console, flight):
        child = flight_service.save_passenger(owner_console, flight.uuid, {
            "name": "Little One", "type": "Child", "gender": "F", "infants": ["X"],
        })
        assert child.gender is None
        assert child.infants == ()
        assert child.total_price == Decimal("110")

    def test_adult_to_child_drops_infants(self, owner_console, flight):
        adult = flight_service.save_passenger(owner_console, flight.uuid, {
            "name": "John Doe", "infants": ["A", "B"],
        })
        child = flight_service.save_passenger(owner_console, flight.uuid, {"id": adult.id, "type": "Child"})
        assert child.infants == ()
        assert child.ticket_price == Decimal("90")
        assert db.session.query(Infant).filter_by(passenger_id=adult.id).count() == 0

    def test_blank_infants_dropped(self, owner_console, flight):
        passenger = flight_service.save_passenger(owner_console, flight.uuid, {
            "name": "John Doe", "infants": ["  ", "Baby", None, ""],
        })
        assert passenger.infants == ("Baby",)

    def test_too_many_infants(self, owner_console, flight):
        with pytest.raises(ValidationError):
            flight_service.save_passenger(owner_console, flight.uuid, {
                "name": "John Doe", "infants": ["1", "2", "3", "4", "5", "6"],
            })

    def test_invalid_gender(self, owner_console, flight):
        with pytest.raises(ValidationError):
            flight_service.save_passenger(owner_console, flight.uuid, {"name": "John", "gender": "X"})

    def test_explicit_total_kept(self, owner_console, flight):
        passenger = flight_service.save_passenger(owner_console, flight.uuid, {
            "name": "Discounted", "totalPrice": "99.50",
        })
        assert passenger.total_price == Decimal("99.50")

    def test_update_without_pricing_inputs_keeps_total(self, owner_console, flight):
        passenger = flight_service.save_passenger(owner_console, flight.uuid, {
            "name": "Discounted", "total_price": "99.50",
        })
        renamed = flight_service.save_passenger(owner_console, flight.uuid, {
            "id": passenger.id, "phone_number": "+252 61 000",
        })
        assert renamed.total_price == Decimal("99.50")
        assert renamed.name == "Discounted"

    def test_remove_passenger_removes_infants(self, owner_console, flight):
        passenger = flight_service.save_passenger(owner_console, flight.uuid, {
            "name": "John Doe", "infants": ["A"],
        })
        flight_service.remove_passenger(owner_console, flight.uuid, passenger.id)
        assert owner_console.get_flight(flight.uuid).passengers == ()
        assert db.session.query(Infant).count() == 0

    def test_delete_flight_cascades(self, owner_console, flight):
        flight_service.save_passenger(owner_console, flight.uuid, {"name": "John Doe", "infants": ["A"]})
        flight_service.delete_flight(owner_console, flight.uuid)
        assert db.session.query(Passenger).count() == 0
        assert db.session.query(Infant).count() == 0

    def test_template_defaults(self, owner_console, flight):
        template = flight_service.new_passenger_template(owner_console, flight.uuid)
        assert template["type"] == "Adult"
        assert template["total_price"] == "150"
        assert template["agency"] == "AREYS"
        assert template["flight_number"] == "FC100"


# =============================================================================
# FAILURES
# =============================================================================


class TestFailures:
    """Remote failures and best-effort logging."""

    def test_remote_failure_leaves_snapshot(self, owner_console, monkeypatch):
        before = owner_console.snapshot

        def broken(table, values):
            raise RemoteWriteError("insert rejected", table=table)

        monkeypatch.setattr(backend, "insert", broken)
        with pytest.raises(RemoteWriteError):
            flight_service.create_flight(owner_console, FLIGHT)
        assert owner_console.snapshot == before

    def test_activity_failure_does_not_affect_mutation(self, owner_console, monkeypatch):
        class BrokenBackend:
            def insert(self, table, values):
                raise RemoteWriteError("activity_logs unavailable", table=table)

        monkeypatch.setattr(activity_service, "backend", BrokenBackend())
        flight = flight_service.create_flight(owner_console, FLIGHT)
        assert flight.airline == "FlyCo"
        assert owner_console.get_flight(flight.uuid) is not None
        assert db.session.query(ActivityLog).count() == 0

    def test_log_activity_reports_failure(self, owner_console, monkeypatch):
        class BrokenBackend:
            def insert(self, table, values):
                raise RuntimeError("boom")

        monkeypatch.setattr(activity_service, "backend", BrokenBackend())
        assert activity_service.log_activity(owner_console, "CREATE", "FLIGHT", 1, "x") is False


# =============================================================================
# ATOMIC PASSENGER SAVES
# =============================================================================


class TestPassengerSaveIsAtomic:
    """The passenger row and its infants commit together or not at all."""

    @pytest.fixture
    def flight(self, owner_console):
        return flight_service.create_flight(owner_console, FLIGHT)

    @staticmethod
    def reject_infants(monkeypatch):
        real_insert_many = backend.insert_many

        def insert_many(table, rows):
            if table == "infants":
                raise RemoteWriteError("infants rejected", table=table)
            return real_insert_many(table, rows)

        monkeypatch.setattr(backend, "insert_many", insert_many)

    def test_failed_insert_leaves_no_passenger(self, owner_console, flight, monkeypatch):
        self.reject_infants(monkeypatch)
        with pytest.raises(RemoteWriteError):
            flight_service.save_passenger(owner_console, flight.uuid, {"name": "John Doe", "infants": ["A"]})

        assert db.session.query(Passenger).count() == 0
        assert owner_console.get_flight(flight.uuid).passengers == ()

    def test_failed_update_keeps_infants(self, owner_console, flight, monkeypatch):
        passenger = flight_service.save_passenger(owner_console, flight.uuid, {
            "name": "John Doe", "infants": ["A", "B"],
        })
        self.reject_infants(monkeypatch)
        with pytest.raises(RemoteWriteError):
            flight_service.save_passenger(owner_console, flight.uuid, {
                "id": passenger.id, "name": "Jane Doe", "infants": ["A", "C"],
            })

        infants = db.session.query(Infant).filter_by(passenger_id=passenger.id).order_by(Infant.id).all()
        assert [i.name for i in infants] == ["A", "B"]
        assert db.session.get(Passenger, passenger.id).name == "John Doe"
        assert owner_console.get_flight(flight.uuid).find_passenger(passenger.id).infants == ("A", "B")

    def test_overlong_infant_name_rejected_before_write(self, owner_console, flight):
        with pytest.raises(ValidationError):
            flight_service.save_passenger(owner_console, flight.uuid, {"name": "John Doe", "infants": ["x" * 300]})
        assert db.session.query(Passenger).count() == 0

    def test_one_reload_per_save(self, owner_console, flight, monkeypatch):
        reloads = []
        real_reload = owner_console.reload

        def counting_reload(*args, **kwargs):
            reloads.append(1)
            return real_reload(*args, **kwargs)

        monkeypatch.setattr(owner_console, "reload", counting_reload)
        flight_service.save_passenger(owner_console, flight.uuid, {"name": "John Doe", "infants": ["A", "B"]})
        assert len(reloads) == 1


# =============================================================================
# VISIBILITY OF OPTIMISTIC PATCHES
# =============================================================================


def add_role(name, grants):
    backend.insert("role_permissions", {"role": name, "permissions": build_matrix(grants)})


class TestPatchesRespectVisibility:
    """After a mutation the snapshot shows what a reload would show."""

    def test_created_flight_hidden_without_view_rights(self, owner):
        add_role("Clerk", {"flight": ["create"], "passenger": ["create"]})
        clerk = make_staff(owner, "clerk@agency.test", "Clerk", "Cleo Clerk")
        store = open_console(clerk)
        try:
            flight = flight_service.create_flight(store, FLIGHT)
            assert store.get_flight(flight.uuid) is None
            after_mutation = store.snapshot.flights
            assert after_mutation == store.reload().flights
        finally:
            store.close()

    def test_added_passenger_hidden_without_view_rights(self, owner_console, owner):
        add_role("Booker", {"flight": ["view_any"], "passenger": ["create"]})
        booker = make_staff(owner, "booker@agency.test", "Booker", "Bo Booker")
        flight = flight_service.create_flight(owner_console, FLIGHT)
        store = open_console(booker)
        try:
            flight_service.save_passenger(store, flight.uuid, {"name": "John Doe"})
            assert store.get_flight(flight.uuid).passengers == ()
            after_mutation = store.snapshot.flights
            assert after_mutation == store.reload().flights
        finally:
            store.close()

        assert len(owner_console.get_flight(flight.uuid).passengers) == 1


# =============================================================================
# UPDATES OF PASSENGERS THE SNAPSHOT HIDES
# =============================================================================


class TestHiddenPassengerUpdate:
    """A partial update of a passenger outside the snapshot keeps its stored values."""

    @pytest.fixture
    def editor(self, owner):
        add_role("Editor", {"flight": ["view_any"], "passenger": ["create", "delete", "view_own"]})
        return make_staff(owner, "editor@agency.test", "Editor", "Eddie Editor")

    def test_partial_update_keeps_stored_fields(self, owner_console, editor):
        flight = flight_service.create_flight(owner_console, FLIGHT)
        passenger = flight_service.save_passenger(owner_console, flight.uuid, {
            "name": "John Doe", "phone_number": "615000000", "booking_reference": "BR123",
            "ticket_price": "300", "date_of_issue": "2026-01-01", "infants": ["A"],
        })
        store = open_console(editor)
        try:
            assert store.get_flight(flight.uuid).passengers == ()
            updated = flight_service.save_passenger(store, flight.uuid, {"id": passenger.id, "name": "Jon Doe"})
        finally:
            store.close()

        assert updated.name == "Jon Doe"
        assert updated.phone_number == "615000000"
        assert updated.booking_reference == "BR123"
        assert updated.ticket_price == Decimal("300")
        assert updated.total_price == passenger.total_price
        assert updated.date_of_issue == passenger.date_of_issue
        assert updated.infants == ("A",)
        assert updated.created_by == owner_console.actor.id

    def test_unknown_passenger_id(self, owner_console):
        flight = flight_service.create_flight(owner_console, FLIGHT)
        with pytest.raises(NotFoundError):
            flight_service.save_passenger(owner_console, flight.uuid, {
                "id": "00000000-0000-4000-8000-000000000000", "name": "Ghost",
            })
