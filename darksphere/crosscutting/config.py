"""
Name: Application Configuration (Settings)

Responsibilities:
  - Centralized, typed configuration using pydantic-settings
  - Validate environment variables at startup
  - Provide defaults for registration, caches, DB pool and rate limits

Collaborators:
  - api/main.py: reads settings for CORS, lifespan and cache sweeper
  - container.py: decides in-memory vs Postgres repositories, cache sizes
  - identity/auth_users.py: JWT secret, session TTL, cookie settings

Constraints:
  - Lives in crosscutting layer, NOT in domain/application
  - No business logic, pure configuration

Notes:
  - Singleton via lru_cache
  - Empty DATABASE_URL means in-memory repositories (local dev / tests)
"""

from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        database_url: PostgreSQL connection string ("" = in-memory repositories)
        app_env: Application environment (development/test/production)
        allowed_origins: Comma-separated CORS origins
        jwt_secret: Secret for signing session tokens (HS256)
        session_ttl_days: Session token lifetime (default: 7 days)
        admin_email: Email that always registers with admin role
        key_validity_days: Validity window of new security keys (0 = no expiry)
        max_keys_per_batch: Upper bound for bulk key generation
        bootstrap_admin_key: Optional admin-tier key seeded at startup
        identity_jwks_url: JWKS endpoint for external identity tokens (optional)
        cache_*: Capacity / TTL per entity cache
        rate_limit_rps: Requests per second (default: 10)
        rate_limit_burst: Max burst tokens (default: 20)
    """

    database_url: str = ""

    # Environment
    app_env: str = "development"
    log_level: str = "INFO"
    log_json: bool = True

    # CORS configuration
    allowed_origins: str = "http://localhost:3000"
    cors_allow_credentials: bool = True

    # Security - Rate Limiting
    rate_limit_rps: float = 10.0
    rate_limit_burst: int = 20

    # Security - Hardening
    max_body_bytes: int = 1024 * 1024  # 1MB
    metrics_require_auth: bool = False

    # Security - Session tokens
    jwt_secret: str = "dev-secret"
    session_ttl_days: int = 7
    jwt_cookie_name: str = "darksphere_session"
    jwt_cookie_secure: bool = False

    # Registration / security keys
    admin_email: str = ""
    key_validity_days: int = 5
    max_keys_per_batch: int = 50
    bootstrap_admin_key: str = ""

    # External identity provider (JWKS)
    identity_jwks_url: str = ""
    identity_audience: str = ""
    identity_issuer: str = ""
    identity_timeout_seconds: float = 5.0

    # Database - Connection Pool
    db_pool_min_size: int = 2
    db_pool_max_size: int = 10
    db_pool_timeout_seconds: float = 5.0
    db_connect_timeout_seconds: int = 5
    db_statement_timeout_ms: int = 5000
    slow_query_ms: int = 1000

    # Retry/Resilience (store calls)
    db_retry_attempts: int = 3
    retry_base_delay_seconds: float = 0.1
    retry_max_delay_seconds: float = 2.0

    # Caches (per entity type)
    cache_user_max_size: int = 500
    cache_user_ttl_seconds: float = 600
    cache_post_max_size: int = 1000
    cache_post_ttl_seconds: float = 300
    cache_post_list_ttl_seconds: float = 180
    cache_announcement_max_size: int = 100
    cache_announcement_ttl_seconds: float = 900
    cache_sweep_interval_seconds: float = 60

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("session_ttl_days", "max_keys_per_batch")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("value must be greater than 0")
        return v

    @field_validator("key_validity_days")
    @classmethod
    def key_validity_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("key_validity_days must be >= 0")
        return v

    @field_validator(
        "cache_user_max_size", "cache_post_max_size", "cache_announcement_max_size"
    )
    @classmethod
    def cache_size_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("cache max size must be greater than 0")
        return v

    @field_validator("admin_email")
    @classmethod
    def normalize_admin_email(cls, v: str) -> str:
        return (v or "").strip().lower()

    def get_allowed_origins_list(self) -> list[str]:
        """Parse comma-separated origins into a list."""
        return [
            origin.strip()
            for origin in self.allowed_origins.split(",")
            if origin.strip()
        ]

    @model_validator(mode="after")
    def validate_security_requirements(self):
        if not self.is_production():
            return self

        insecure_secrets = {"dev-secret", "changeme", "change-me", "password"}
        jwt_secret = (self.jwt_secret or "").strip()
        if not jwt_secret or jwt_secret in insecure_secrets:
            raise ValueError(
                "JWT_SECRET must be set to a strong, non-default value in production"
            )
        if len(jwt_secret) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters in production")
        if not self.jwt_cookie_secure:
            raise ValueError("JWT_COOKIE_SECURE must be true in production")
        if not self.database_url:
            raise ValueError("DATABASE_URL is required in production")

        return self

    def is_production(self) -> bool:
        return self.app_env.strip().lower() == "production"

    def is_test(self) -> bool:
        return self.app_env.strip().lower() in {"test", "testing", "ci"}

    def uses_in_memory_store(self) -> bool:
        return self.is_test() or not self.database_url.strip()


@lru_cache
def get_settings() -> Settings:
    return Settings()
