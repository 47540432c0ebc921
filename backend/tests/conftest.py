"""
Pytest fixtures for the ticketing console backend tests.

Provides the test app, a clean database per test, seeded roles, an account
owner with staff identities, and helpers for opening consoles and signing
in through the API.
"""

import pytest
from ticketing import create_app
from ticketing.cli import create_account_owner, seed_default_roles
from ticketing.extensions import db
from ticketing.services import auth_service, backend, console_registry
from ticketing.services.console_store import ConsoleStore


PASSWORD = "secret123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_LOG_ROUNDS': 4,
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()
        yield app
        console_registry.close_all()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        console_registry.close_all()
        app.config.update({
            'ALLOW_SIGN_UP': True,
            'REQUIRE_EMAIL_CONFIRMATION': False,
            'SESSION_IDLE_TIMEOUT_MINUTES': 120,
            'SESSION_ABSOLUTE_TIMEOUT_MINUTES': 720,
        })

        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        console_registry.close_all()
        db.session.rollback()


@pytest.fixture(scope='function')
def seed_roles(db_session):
    """Default Manager and Staff role definitions."""
    seed_default_roles()


@pytest.fixture(scope='function')
def owner(db_session, seed_roles):
    """Self-registered account owner (Admin)."""
    return create_account_owner("owner@agency.test", PASSWORD, "Olivia Owner")


def make_staff(owner, email: str, role: str, name: str, active: bool = True):
    """Identity working inside owner's account, with its role row and managed-user listing."""
    user = auth_service.create_identity(email, PASSWORD, display_name=name)
    backend.insert("user_roles", {
        "user_id": user.id,
        "email": user.email,
        "name": name,
        "role": role,
        "active": active,
        "created_by": owner.id,
    })
    backend.insert("managed_users", {
        "user_id": owner.id,
        "managed_user_id": user.id,
        "name": name,
        "email": user.email,
        "role": role,
        "active": active,
    })
    return user


@pytest.fixture(scope='function')
def manager(owner):
    return make_staff(owner, "manager@agency.test", "Manager", "Mona Manager")


@pytest.fixture(scope='function')
def staff(owner):
    return make_staff(owner, "staff@agency.test", "Staff", "Sam Staff")


@pytest.fixture(scope='function')
def second_staff(owner):
    return make_staff(owner, "staff2@agency.test", "Staff", "Tess Staff")


def open_console(user, listen: bool = True) -> ConsoleStore:
    return ConsoleStore(user.id, listen=listen).open()


@pytest.fixture(scope='function')
def owner_console(owner):
    store = open_console(owner)
    yield store
    store.close()


@pytest.fixture(scope='function')
def staff_console(staff):
    store = open_console(staff)
    yield store
    store.close()


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def owner_headers(client, owner):
    return auth_headers(get_auth_token(client, owner.email))


@pytest.fixture(scope='function')
def staff_headers(client, staff):
    return auth_headers(get_auth_token(client, staff.email))


@pytest.fixture(scope='function')
def manager_headers(client, manager):
    return auth_headers(get_auth_token(client, manager.email))
