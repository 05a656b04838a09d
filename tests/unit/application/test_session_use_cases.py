"""
Name: Login / Session / Identity / Key Check Use Case Tests

Responsibilities:
  - LoginUserUseCase: username or email + password, generic failure message
  - VerifySessionUseCase: token -> current profile (disabled / deleted aware)
  - VerifyIdentityTokenUseCase: external credential -> registered profile
  - ValidateKeyUseCase: key state reported without consuming it
  - ensure_bootstrap_admin_key: idempotent admin key seed
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import jwt
import pytest

from darksphere.application.bootstrap_admin_key import ensure_bootstrap_admin_key
from darksphere.application.usecases.registration import (
    LoginUserUseCase,
    RegistrationErrorCode,
    ValidateKeyUseCase,
    VerifyIdentityTokenUseCase,
    VerifySessionUseCase,
)
from darksphere.crosscutting.exceptions import AuthenticationError, ServiceUnavailableError
from darksphere.domain.entities import KeyTier
from darksphere.identity.auth_users import create_session_token, hash_password
from darksphere.identity.external_identity import ExternalIdentity
from darksphere.infrastructure.repositories import (
    InMemorySecurityKeyRepository,
    InMemoryUserRepository,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def users():
    return InMemoryUserRepository()


@pytest.fixture
def keys():
    return InMemorySecurityKeyRepository()


class _Verifier:
    def __init__(self, identity=None, error=None):
        self._identity = identity
        self._error = error

    def verify(self, identity_token):
        if self._error:
            raise self._error
        return self._identity


class TestLogin:
    @pytest.fixture
    def alice(self, users, user_factory, strong_password):
        return users.create_user(
            user_factory(username="Alice", password_hash=hash_password(strong_password))
        )

    def test_login_by_username(self, users, alice, strong_password):
        result = LoginUserUseCase(users).execute("alice", strong_password)

        assert result.error is None
        assert result.user.id == alice.id
        assert result.access_token

    def test_login_by_email(self, users, alice, strong_password):
        result = LoginUserUseCase(users).execute(" ALICE@example.com ", strong_password)
        assert result.user.id == alice.id

    def test_wrong_password_and_unknown_user_look_the_same(self, users, alice):
        wrong = LoginUserUseCase(users).execute("alice", "Wr0ng!Pass")
        unknown = LoginUserUseCase(users).execute("nobody", "Wr0ng!Pass")

        assert wrong.error == unknown.error
        assert wrong.error.code == RegistrationErrorCode.INVALID_CREDENTIAL

    def test_disabled_account(self, users, alice, strong_password):
        users.set_user_disabled(alice.id, True)

        result = LoginUserUseCase(users).execute("alice", strong_password)

        assert result.error.code == RegistrationErrorCode.DISABLED

    def test_external_identity_cannot_use_password_login(self, users, user_factory):
        users.create_user(user_factory(username="ext_user", external_id="ext-1"))

        result = LoginUserUseCase(users).execute("ext_user", "anything")

        assert result.error.code == RegistrationErrorCode.INVALID_CREDENTIAL

    def test_missing_fields(self, users):
        result = LoginUserUseCase(users).execute("  ", "")
        assert result.error.code == RegistrationErrorCode.VALIDATION_ERROR


class TestVerifySession:
    def test_returns_current_profile(self, users, user_factory):
        user = users.create_user(user_factory())
        token, _ = create_session_token(user)

        result = VerifySessionUseCase(users).execute(token)

        assert result.user.id == user.id

    def test_disabled_after_issue(self, users, user_factory):
        user = users.create_user(user_factory())
        token, _ = create_session_token(user)
        users.set_user_disabled(user.id, True)

        result = VerifySessionUseCase(users).execute(token)

        assert result.error.code == RegistrationErrorCode.DISABLED

    def test_deleted_after_issue(self, users, user_factory):
        user = users.create_user(user_factory())
        token, _ = create_session_token(user)
        users.delete_user(user.id)

        result = VerifySessionUseCase(users).execute(token)

        assert result.error.code == RegistrationErrorCode.NOT_REGISTERED

    def test_tampered_token(self, users, user_factory):
        user = users.create_user(user_factory())
        token, _ = create_session_token(user)

        result = VerifySessionUseCase(users).execute(token[:-2] + "xx")

        assert result.error.code == RegistrationErrorCode.INVALID_CREDENTIAL

    def test_expired_token(self, users, user_factory):
        user = users.create_user(user_factory())
        past = datetime.now(timezone.utc) - timedelta(days=2)
        token = jwt.encode(
            {
                "sub": str(user.id),
                "email": user.email,
                "role": user.role.value,
                "iat": int(past.timestamp()),
                "exp": int((past + timedelta(hours=1)).timestamp()),
                "typ": "session",
            },
            "test-secret-with-enough-length-for-hs256!",
            algorithm="HS256",
        )

        result = VerifySessionUseCase(users).execute(token)

        assert result.error.code == RegistrationErrorCode.INVALID_CREDENTIAL
        assert "expired" in result.error.message.lower()

    def test_empty_token(self, users):
        result = VerifySessionUseCase(users).execute("")
        assert result.error.code == RegistrationErrorCode.INVALID_CREDENTIAL


class TestVerifyIdentityToken:
    def test_registered_identity(self, users, user_factory):
        user = users.create_user(user_factory(external_id="ext-9"))
        verifier = _Verifier(ExternalIdentity(external_id="ext-9", email=user.email))

        result = VerifyIdentityTokenUseCase(users, verifier).execute("token")

        assert result.user.id == user.id

    def test_valid_credential_without_profile(self, users):
        verifier = _Verifier(ExternalIdentity(external_id="ext-new", email="n@example.com"))

        result = VerifyIdentityTokenUseCase(users, verifier).execute("token")

        assert result.error.code == RegistrationErrorCode.NOT_REGISTERED

    def test_invalid_credential(self, users):
        verifier = _Verifier(error=AuthenticationError("Invalid or expired identity token"))

        result = VerifyIdentityTokenUseCase(users, verifier).execute("token")

        assert result.error.code == RegistrationErrorCode.INVALID_CREDENTIAL

    def test_provider_down(self, users):
        verifier = _Verifier(error=ServiceUnavailableError("Identity provider unavailable"))

        result = VerifyIdentityTokenUseCase(users, verifier).execute("token")

        assert result.error.code == RegistrationErrorCode.SERVICE_UNAVAILABLE

    def test_not_configured(self, users):
        result = VerifyIdentityTokenUseCase(users, None).execute("token")
        assert result.error.code == RegistrationErrorCode.SERVICE_UNAVAILABLE

    def test_disabled_identity(self, users, user_factory):
        user = users.create_user(user_factory(external_id="ext-9", is_disabled=True))
        verifier = _Verifier(ExternalIdentity(external_id="ext-9", email=user.email))

        result = VerifyIdentityTokenUseCase(users, verifier).execute("token")

        assert result.error.code == RegistrationErrorCode.DISABLED


class TestValidateKey:
    def test_valid_key_reports_tier(self, keys, key_factory):
        keys.add_keys([key_factory("ADMIN-KEY-1", tier=KeyTier.ADMIN)])

        result = ValidateKeyUseCase(keys).execute("ADMIN-KEY-1")

        assert result.valid is True
        assert result.key_type == KeyTier.ADMIN

    def test_validation_does_not_consume(self, keys, key_factory):
        keys.add_keys([key_factory("CHECK-KEY")])

        ValidateKeyUseCase(keys).execute("CHECK-KEY")
        ValidateKeyUseCase(keys).execute("CHECK-KEY")

        assert keys.get_by_value("CHECK-KEY").is_used is False

    def test_unknown_key(self, keys):
        result = ValidateKeyUseCase(keys).execute("MISSING-KEY")

        assert result.valid is False
        assert result.error.code == RegistrationErrorCode.INVALID_KEY

    def test_used_key(self, keys, key_factory):
        keys.add_keys([key_factory("USED-KEY")])
        keys.consume("USED-KEY", uuid4(), now=datetime.now(timezone.utc))

        result = ValidateKeyUseCase(keys).execute("USED-KEY")

        assert result.valid is False
        assert result.error.code == RegistrationErrorCode.KEY_ALREADY_USED

    def test_expired_key(self, keys, key_factory):
        keys.add_keys([key_factory("OLD-KEY", expires_in_days=5)])
        later = datetime.now(timezone.utc) + timedelta(days=6)

        result = ValidateKeyUseCase(keys, clock=lambda: later).execute("OLD-KEY")

        assert result.valid is False
        assert result.error.code == RegistrationErrorCode.KEY_EXPIRED
        assert "expired" in result.message

    def test_empty_key(self, keys):
        result = ValidateKeyUseCase(keys).execute("  ")
        assert result.error.code == RegistrationErrorCode.VALIDATION_ERROR


class TestBootstrapAdminKey:
    def test_creates_admin_key_once(self, keys):
        assert ensure_bootstrap_admin_key(keys, "FIRST-ADMIN") is True
        assert ensure_bootstrap_admin_key(keys, "FIRST-ADMIN") is False

        key = keys.get_by_value("FIRST-ADMIN")
        assert key.tier == KeyTier.ADMIN
        assert key.expires_at is None
        assert len(keys.list_keys()) == 1

    def test_empty_value_is_noop(self, keys):
        assert ensure_bootstrap_admin_key(keys, "") is False
        assert ensure_bootstrap_admin_key(keys, None) is False
        assert keys.list_keys() == []

    def test_invalid_format_is_ignored(self, keys):
        assert ensure_bootstrap_admin_key(keys, "bad value!") is False
        assert keys.list_keys() == []

    def test_used_key_is_not_recreated(self, keys):
        ensure_bootstrap_admin_key(keys, "FIRST-ADMIN")
        keys.consume("FIRST-ADMIN", uuid4(), now=datetime.now(timezone.utc))

        assert ensure_bootstrap_admin_key(keys, "FIRST-ADMIN") is False
        assert len(keys.list_keys()) == 1
