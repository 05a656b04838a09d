"""
Name: Settings Validation Tests

Responsibilities:
  - Production hardening (secret strength, secure cookie, DATABASE_URL)
  - Parsing helpers (CORS origins, admin email, in-memory store switch)
"""

import pytest
from pydantic import ValidationError

from darksphere.crosscutting.config import Settings

pytestmark = pytest.mark.unit

STRONG_SECRET = "x" * 40


def _production(**overrides) -> Settings:
    values = {
        "app_env": "production",
        "jwt_secret": STRONG_SECRET,
        "jwt_cookie_secure": True,
        "database_url": "postgresql://user:pass@db:5432/darksphere",
    }
    values.update(overrides)
    return Settings(**values)


class TestProductionHardening:
    def test_valid_production_settings(self):
        settings = _production()

        assert settings.is_production() is True
        assert settings.uses_in_memory_store() is False

    @pytest.mark.parametrize("secret", ["dev-secret", "changeme", "", "short-secret"])
    def test_rejects_weak_secret(self, secret):
        with pytest.raises(ValidationError):
            _production(jwt_secret=secret)

    def test_rejects_insecure_cookie(self):
        with pytest.raises(ValidationError, match="JWT_COOKIE_SECURE"):
            _production(jwt_cookie_secure=False)

    def test_requires_database_url(self):
        with pytest.raises(ValidationError, match="DATABASE_URL"):
            _production(database_url="")

    def test_development_accepts_defaults(self):
        settings = Settings(app_env="development", jwt_secret="dev-secret")

        assert settings.is_production() is False


class TestFieldValidation:
    def test_admin_email_is_normalized(self):
        settings = Settings(admin_email="  Admin@DarkSphere.Example ")

        assert settings.admin_email == "admin@darksphere.example"

    def test_key_validity_zero_means_no_expiry(self):
        assert Settings(key_validity_days=0).key_validity_days == 0

    def test_negative_key_validity_rejected(self):
        with pytest.raises(ValidationError):
            Settings(key_validity_days=-1)

    def test_batch_limit_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(max_keys_per_batch=0)

    def test_registration_defaults(self):
        settings = Settings()

        assert settings.key_validity_days == 5
        assert settings.max_keys_per_batch == 50
        assert settings.session_ttl_days == 7


class TestHelpers:
    def test_allowed_origins_list(self):
        settings = Settings(allowed_origins=" http://a.test , ,http://b.test ")

        assert settings.get_allowed_origins_list() == ["http://a.test", "http://b.test"]

    def test_empty_database_url_uses_memory(self):
        settings = Settings(app_env="development", database_url="")

        assert settings.uses_in_memory_store() is True

    def test_test_env_always_uses_memory(self):
        settings = Settings(app_env="test", database_url="postgresql://x/y")

        assert settings.uses_in_memory_store() is True
