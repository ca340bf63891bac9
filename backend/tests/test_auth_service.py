# Overview: Pytest coverage for password hashing, user creation and sessions.

from datetime import timedelta

import pytest

from stockroom.models import SessionToken
from stockroom.services import session_service
from stockroom.services.auth_service import (
    PasswordValidationError,
    authenticate,
    create_user,
    hash_password,
    verify_password,
)
from stockroom.time_utils import utcnow
from stockroom.validation import ConflictError, ValidationError

from conftest import PASSWORD


class TestPasswords:

    @pytest.mark.parametrize("password", [
        "Sh0rt!",
        "alllowercase1!",
        "ALLUPPERCASE1!",
        "NoDigitsHere!",
        "NoSpecials123",
    ])
    def test_weak_passwords_rejected(self, app, password):
        with app.app_context():
            with pytest.raises(PasswordValidationError):
                hash_password(password)

    def test_hash_and_verify(self, app):
        with app.app_context():
            hashed = hash_password(PASSWORD)
        assert hashed != PASSWORD
        assert verify_password(PASSWORD, hashed)
        assert not verify_password("Password124!", hashed)
        assert not verify_password(PASSWORD, "not-a-bcrypt-hash")


class TestUsers:

    def test_email_is_normalized_and_unique_per_tenant(self, db_session, tenant_a, owner_a):
        assert owner_a.email == "owner@acme.test"
        with pytest.raises(ConflictError):
            create_user(tenant_id=tenant_a.id, name="Dup", email="Owner@Acme.test", password=PASSWORD)

    def test_invalid_role(self, db_session, tenant_a):
        with pytest.raises(ValidationError):
            create_user(tenant_id=tenant_a.id, name="X", email="x@acme.test", password=PASSWORD, role="ROOT")

    def test_authenticate_updates_last_login(self, db_session, owner_a):
        assert owner_a.last_login_at is None
        user = authenticate(owner_a.email, PASSWORD)
        assert user.id == owner_a.id
        assert user.last_login_at is not None

    def test_inactive_user_cannot_authenticate(self, db_session, owner_a):
        owner_a.is_active = False
        db_session.commit()
        assert authenticate(owner_a.email, PASSWORD) is None

    def test_inactive_tenant_cannot_authenticate(self, db_session, tenant_a, owner_a):
        tenant_a.is_active = False
        db_session.commit()
        assert authenticate(owner_a.email, PASSWORD) is None


class TestSessions:

    def test_token_stored_hashed(self, db_session, owner_a):
        session, token = session_service.create_session(owner_a.id)
        assert session.token_hash == session_service.hash_token(token)
        assert db_session.query(SessionToken).filter_by(token_hash=token).first() is None

        context = session_service.validate_session(token)
        assert context.user.id == owner_a.id
        assert context.tenant_id == owner_a.tenant_id

    def test_idle_session_is_revoked(self, db_session, owner_a):
        session, token = session_service.create_session(owner_a.id)
        session.last_used_at = utcnow() - timedelta(hours=3)
        db_session.commit()

        assert session_service.validate_session(token) is None
        db_session.refresh(session)
        assert session.is_revoked
        assert session.revoked_reason == "Idle timeout"

    def test_expired_session_rejected(self, db_session, owner_a):
        session, token = session_service.create_session(owner_a.id)
        session.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()
        assert session_service.validate_session(token) is None

    def test_revoke(self, db_session, owner_a):
        _, token = session_service.create_session(owner_a.id)
        assert session_service.revoke_session(token) is True
        assert session_service.revoke_session(token) is False
        assert session_service.validate_session(token) is None
