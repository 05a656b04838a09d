"""
Name: Session Auth Tests (Argon2 passwords + HS256 session tokens)
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from darksphere.crosscutting.exceptions import AuthenticationError
from darksphere.identity.auth_users import (
    AuthSettings,
    create_session_token,
    decode_session_token,
    hash_password,
    verify_password,
)
from darksphere.identity.users import UserRole

pytestmark = pytest.mark.unit

SECRET = "another-secret-that-is-long-enough-1234"


@pytest.fixture
def auth_settings():
    return AuthSettings(
        jwt_secret=SECRET,
        session_ttl_days=7,
        jwt_cookie_name="darksphere_session",
        jwt_cookie_secure=False,
    )


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = hash_password("Str0ng!Pass")

        assert hashed.startswith("$argon2")
        assert verify_password("Str0ng!Pass", hashed) is True
        assert verify_password("str0ng!pass", hashed) is False

    def test_missing_hash_never_verifies(self):
        assert verify_password("anything", None) is False
        assert verify_password("anything", "") is False

    def test_garbage_hash_is_rejected(self):
        assert verify_password("anything", "not-a-hash") is False


class TestSessionTokens:
    def test_round_trip(self, user_factory, auth_settings):
        user = user_factory(role=UserRole.ADMIN)

        token, expires_in = create_session_token(user, auth_settings)
        claims = decode_session_token(token, auth_settings)

        assert expires_in == 7 * 24 * 3600
        assert claims.user_id == user.id
        assert claims.email == user.email
        assert claims.role == UserRole.ADMIN

    def test_wrong_secret(self, user_factory, auth_settings):
        token, _ = create_session_token(user_factory(), auth_settings)
        other = AuthSettings(
            jwt_secret="a-completely-different-secret-value-xyz",
            session_ttl_days=7,
            jwt_cookie_name="x",
            jwt_cookie_secure=False,
        )

        with pytest.raises(AuthenticationError):
            decode_session_token(token, other)

    def test_expired(self, user_factory, auth_settings):
        user = user_factory()
        past = datetime.now(timezone.utc) - timedelta(days=1)
        token = jwt.encode(
            {
                "sub": str(user.id),
                "email": user.email,
                "role": "user",
                "exp": int(past.timestamp()),
                "typ": "session",
            },
            SECRET,
            algorithm="HS256",
        )

        with pytest.raises(AuthenticationError, match="expired"):
            decode_session_token(token, auth_settings)

    def test_wrong_token_type(self, user_factory, auth_settings):
        user = user_factory()
        future = datetime.now(timezone.utc) + timedelta(days=1)
        token = jwt.encode(
            {
                "sub": str(user.id),
                "email": user.email,
                "role": "user",
                "exp": int(future.timestamp()),
                "typ": "refresh",
            },
            SECRET,
            algorithm="HS256",
        )

        with pytest.raises(AuthenticationError, match="type"):
            decode_session_token(token, auth_settings)

    def test_missing_claims(self, auth_settings):
        future = datetime.now(timezone.utc) + timedelta(days=1)
        token = jwt.encode({"exp": int(future.timestamp())}, SECRET, algorithm="HS256")

        with pytest.raises(AuthenticationError):
            decode_session_token(token, auth_settings)

    def test_unknown_role(self, user_factory, auth_settings):
        user = user_factory()
        future = datetime.now(timezone.utc) + timedelta(days=1)
        token = jwt.encode(
            {
                "sub": str(user.id),
                "email": user.email,
                "role": "superuser",
                "exp": int(future.timestamp()),
                "typ": "session",
            },
            SECRET,
            algorithm="HS256",
        )

        with pytest.raises(AuthenticationError):
            decode_session_token(token, auth_settings)
