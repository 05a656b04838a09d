"""
Name: API Test Fixtures

Responsibilities:
  - Build a fresh ASGI app per test (settings are read at build time)
  - Seed users / keys directly through the container repositories
"""

import pytest
from fastapi.testclient import TestClient

from darksphere.api.main import create_app
from darksphere.container import get_security_key_repository, get_user_repository
from darksphere.identity.auth_users import hash_password
from darksphere.identity.users import UserRole


@pytest.fixture
def client():
    # Sin "with": el lifespan (pool, bootstrap, sweeper) no corre en unit tests.
    return TestClient(create_app())


@pytest.fixture
def seed_user(user_factory, strong_password):
    def _seed(**kwargs):
        kwargs.setdefault("password_hash", hash_password(strong_password))
        return get_user_repository().create_user(user_factory(**kwargs))

    return _seed


@pytest.fixture
def seed_keys(key_factory):
    def _seed(*values, **kwargs):
        return get_security_key_repository().add_keys(
            [key_factory(value, **kwargs) for value in values]
        )

    return _seed


@pytest.fixture
def admin(seed_user):
    return seed_user(username="site_admin", role=UserRole.ADMIN)


@pytest.fixture
def member(seed_user):
    return seed_user(username="member_one")


@pytest.fixture
def admin_headers(admin, auth_headers):
    return auth_headers(admin)


@pytest.fixture
def member_headers(member, auth_headers):
    return auth_headers(member)
