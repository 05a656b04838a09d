"""
Name: Pytest Configuration and Shared Fixtures

Responsibilities:
  - Configure the test environment (APP_ENV=test, no .env file, no rate limit)
  - Reset process-wide singletons between tests (settings, container, limiter)
  - Provide user/key factories and an authenticated TestClient helper

Collaborators:
  - pytest: Test framework
  - darksphere.container: composition root (in-memory store under APP_ENV=test)
  - darksphere.identity.auth_users: session tokens for API tests

Notes:
  - Every test gets fresh in-memory repositories and empty caches
  - Rate limiting is disabled globally; rate limit tests patch settings
"""

import os
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = ""
os.environ["RATE_LIMIT_RPS"] = "0"
os.environ["JWT_SECRET"] = "test-secret-with-enough-length-for-hs256!"
os.environ["ADMIN_EMAIL"] = ""
os.environ["BOOTSTRAP_ADMIN_KEY"] = ""
os.environ["IDENTITY_JWKS_URL"] = ""

from darksphere.crosscutting import config as app_config  # noqa: E402

app_config.Settings.model_config["env_file"] = None

from darksphere.container import reset_container  # noqa: E402
from darksphere.crosscutting.config import get_settings  # noqa: E402
from darksphere.crosscutting.rate_limit import reset_rate_limiter  # noqa: E402
from darksphere.domain.entities import KeyTier, SecurityKey  # noqa: E402
from darksphere.identity.auth_users import create_session_token  # noqa: E402
from darksphere.identity.users import User, UserRole  # noqa: E402


def pytest_configure(config) -> None:
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )


@pytest.fixture(autouse=True)
def _isolated_singletons():
    """R: Fresh settings, repositories, caches and rate limiter per test."""
    get_settings.cache_clear()
    reset_container()
    reset_rate_limiter()
    yield
    get_settings.cache_clear()
    reset_container()
    reset_rate_limiter()


# ============================================================================
# Factories
# ============================================================================


STRONG_PASSWORD = "Str0ng!Pass"


def make_user(
    *,
    username: str | None = None,
    email: str | None = None,
    role: UserRole = UserRole.USER,
    is_disabled: bool = False,
    password_hash: str | None = None,
    external_id: str | None = None,
) -> User:
    suffix = uuid4().hex[:8]
    username = username or f"user_{suffix}"
    return User(
        id=uuid4(),
        username=username,
        email=email or f"{username.lower()}@example.com",
        display_name=username,
        role=role,
        password_hash=password_hash,
        is_disabled=is_disabled,
        external_id=external_id,
    )


def make_key(
    value: str | None = None,
    *,
    tier: KeyTier = KeyTier.USER,
    expires_in_days: float | None = 5,
    created_at: datetime | None = None,
) -> SecurityKey:
    now = datetime.now(timezone.utc)
    return SecurityKey(
        id=uuid4(),
        key_value=value or uuid4().hex.upper(),
        tier=tier,
        created_at=created_at or now,
        expires_at=(now + timedelta(days=expires_in_days))
        if expires_in_days is not None
        else None,
    )


def make_auth_headers(user: User) -> dict[str, str]:
    token, _ = create_session_token(user)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_factory():
    return make_user


@pytest.fixture
def key_factory():
    return make_key


@pytest.fixture
def auth_headers():
    return make_auth_headers


@pytest.fixture
def strong_password() -> str:
    return STRONG_PASSWORD
