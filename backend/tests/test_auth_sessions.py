"""
Authentication and session lifetime tests.

Verifies:
- Self-registration creates an Admin account owning itself
- Email confirmation gate and friendly error messages
- Idle (2h) and absolute (12h) session expiry
- Token refresh keeps the original sign-in time
- Deactivated identities sign in but cannot open a console
"""

from datetime import timedelta

import pytest

from conftest import PASSWORD, make_staff
from ticketing.errors import AccountDeactivatedError, AuthError
from ticketing.extensions import db
from ticketing.models import SessionToken, UserRole
from ticketing.services import auth_service, console_registry, session_service
from ticketing.time_utils import utcnow


def age_session(token, *, idle=None, total=None):
    session = db.session.query(SessionToken).filter_by(token_hash=session_service.hash_token(token)).one()
    now = utcnow()
    if idle is not None:
        session.last_activity_at = now - idle
    if total is not None:
        session.created_at = now - total
    db.session.commit()
    return session


# =============================================================================
# REGISTRATION / SIGN-IN
# =============================================================================


class TestSignUp:
    """Self-registration."""

    def test_sign_up_creates_owner(self, db_session):
        result = auth_service.sign_up("New@Agency.test", PASSWORD, display_name="New Owner")
        assert result.token
        assert result.user.email == "new@agency.test"
        role = db.session.query(UserRole).filter_by(user_id=result.user.id).one()
        assert role.role == "Admin"
        assert role.created_by == result.user.id

    def test_duplicate_email(self, owner):
        with pytest.raises(AuthError) as exc_info:
            auth_service.sign_up(owner.email, PASSWORD)
        assert exc_info.value.code == "already_registered"
        assert exc_info.value.status_code == 409

    def test_weak_password(self, db_session):
        with pytest.raises(AuthError) as exc_info:
            auth_service.sign_up("weak@agency.test", "123")
        assert exc_info.value.code == "weak_password"

    def test_sign_up_disabled(self, app, db_session):
        app.config["ALLOW_SIGN_UP"] = False
        with pytest.raises(AuthError) as exc_info:
            auth_service.sign_up("closed@agency.test", PASSWORD)
        assert exc_info.value.status_code == 403

    def test_confirmation_required(self, app, db_session):
        app.config["REQUIRE_EMAIL_CONFIRMATION"] = True
        result = auth_service.sign_up("pending@agency.test", PASSWORD)
        assert result.requires_email_confirmation is True
        assert result.token is None

        with pytest.raises(AuthError) as exc_info:
            auth_service.sign_in("pending@agency.test", PASSWORD)
        assert exc_info.value.code == "email_not_confirmed"
        assert "confirmation link" in auth_service.friendly_auth_message(exc_info.value)

        assert auth_service.confirm_email("pending@agency.test") is True
        signed_in = auth_service.sign_in("pending@agency.test", PASSWORD)
        role = db.session.query(UserRole).filter_by(user_id=signed_in.user.id).one()
        assert role.role == "Admin"


class TestSignIn:
    """Credentials, events and deactivation."""

    def test_invalid_credentials(self, owner):
        with pytest.raises(AuthError) as exc_info:
            auth_service.sign_in(owner.email, "wrong-password")
        assert exc_info.value.code == "invalid_credentials"
        assert auth_service.friendly_auth_message(exc_info.value) == "Invalid email or password"

    def test_sign_in_emits_event(self, owner):
        events = []
        unsubscribe = auth_service.on_auth_state_change(lambda event, user_id: events.append((event, user_id)))
        try:
            result = auth_service.sign_in(owner.email, PASSWORD)
            auth_service.sign_out(result.token)
        finally:
            unsubscribe()
        assert events == [(auth_service.SIGNED_IN, owner.id), (auth_service.SIGNED_OUT, owner.id)]

    def test_deactivated_signs_in_inactive(self, owner):
        inactive = make_staff(owner, "inactive@agency.test", "Staff", "Ina Active", active=False)
        result = auth_service.sign_in(inactive.email, PASSWORD)
        assert result.active is False
        with pytest.raises(AccountDeactivatedError):
            console_registry.get_console(inactive.id)


# =============================================================================
# SESSION LIFETIME
# =============================================================================


class TestSessionExpiry:
    """Forced logout after 2h idle or 12h total."""

    def test_valid_session_touches_activity(self, owner):
        _, token = session_service.create_session(owner.id)
        session = age_session(token, idle=timedelta(minutes=30))
        before = session.last_activity_at
        context = session_service.validate_session(token)
        assert context is not None
        assert context.user_id == owner.id
        assert context.session.last_activity_at > before

    def test_idle_timeout(self, owner):
        _, token = session_service.create_session(owner.id)
        session = age_session(token, idle=timedelta(hours=2, minutes=1))
        assert session_service.validate_session(token) is None
        assert session.is_revoked is True
        assert session.revoked_reason == "Idle timeout"

    def test_absolute_timeout_despite_activity(self, owner):
        _, token = session_service.create_session(owner.id)
        session = age_session(token, idle=timedelta(minutes=1), total=timedelta(hours=12, minutes=1))
        assert session_service.validate_session(token) is None
        assert session.revoked_reason == "Session expired"

    def test_expiry_announced_as_sign_out(self, owner):
        result = auth_service.sign_in(owner.email, PASSWORD)
        store = console_registry.get_console(owner.id)
        age_session(result.token, idle=timedelta(hours=3))
        assert auth_service.get_current_session(result.token) is None
        assert store.closed

    def test_refresh_keeps_original_start(self, owner):
        session, token = session_service.create_session(owner.id)
        age_session(token, total=timedelta(hours=5))
        started = db.session.query(SessionToken).filter_by(id=session.id).one().created_at

        new_token = auth_service.refresh_token(token)
        assert new_token and new_token != token
        assert session_service.validate_session(token) is None
        renewed = session_service.validate_session(new_token)
        assert renewed.session.created_at == started

    def test_revoked_token_rejected(self, owner):
        _, token = session_service.create_session(owner.id)
        assert session_service.revoke_session(token) is not None
        assert session_service.validate_session(token) is None
        assert session_service.revoke_session(token) is None

    def test_cleanup(self, owner):
        _, token = session_service.create_session(owner.id)
        session_service.revoke_session(token)
        age_session_row = db.session.query(SessionToken).one()
        age_session_row.created_at = utcnow() - timedelta(days=31)
        db.session.commit()
        assert session_service.cleanup_expired_sessions() == 1


# =============================================================================
# PROFILE
# =============================================================================


class TestProfile:
    """Credential and display-name changes."""

    def test_password_change_revokes_other_sessions(self, owner):
        _, keep = session_service.create_session(owner.id)
        _, other = session_service.create_session(owner.id)
        auth_service.update_credentials(owner.id, current_password=PASSWORD, password="newsecret", keep_token=keep)
        assert session_service.validate_session(keep) is not None
        assert session_service.validate_session(other) is None
        assert auth_service.sign_in(owner.email, "newsecret").token

    def test_wrong_current_password(self, owner):
        with pytest.raises(AuthError) as exc_info:
            auth_service.update_credentials(owner.id, current_password="nope", email="x@agency.test")
        assert exc_info.value.status_code == 400

    def test_email_change_mirrors_role_row(self, owner, staff):
        auth_service.update_credentials(staff.id, current_password=PASSWORD, email="renamed@agency.test")
        role = db.session.query(UserRole).filter_by(user_id=staff.id).one()
        assert role.email == "renamed@agency.test"

    def test_display_name_mirrors(self, owner, staff):
        auth_service.update_display_name(staff.id, "Samira Staff")
        role = db.session.query(UserRole).filter_by(user_id=staff.id).one()
        assert role.name == "Samira Staff"

    def test_password_reset_never_reveals_accounts(self, db_session):
        assert auth_service.request_password_reset("nobody@agency.test") is True
        assert auth_service.request_password_reset("not-an-email") is True
