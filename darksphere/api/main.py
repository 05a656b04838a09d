"""
Name: FastAPI Application Entry Point

Responsibilities:
  - Build the FastAPI application (create_app) with metadata and routers
  - Configure middleware (CORS, security headers, body limit, request context)
  - Run startup/shutdown: DB pool, bootstrap admin key, cache sweeper task
  - Expose /health, /readyz and /metrics

Collaborators:
  - container: repositories, entity caches
  - application.bootstrap_admin_key: idempotent seed of the first admin key
  - infrastructure.cache.run_cache_sweeper: periodic expiry sweep
  - crosscutting.*: middleware, rate limit, error handlers, metrics

Constraints:
  - Settings are validated when first loaded (production rejects weak secrets)
  - Empty DATABASE_URL (or APP_ENV=test) runs on in-memory repositories and
    never touches the pool

Notes:
  - Middleware order matters: RateLimit (outermost ASGI wrapper) → BodyLimit
    → SecurityHeaders → RequestContext → CORS → routes
  - /health and /readyz follow the Kubernetes probe convention
"""

import asyncio
import contextlib
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Header, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from ..application.bootstrap_admin_key import ensure_bootstrap_admin_key
from ..container import (
    get_entity_caches,
    get_security_key_repository,
    get_user_repository,
)
from ..crosscutting.config import get_settings
from ..crosscutting.logger import logger
from ..crosscutting.metrics import get_metrics_response
from ..crosscutting.middleware import BodyLimitMiddleware, RequestContextMiddleware
from ..crosscutting.rate_limit import RateLimitMiddleware
from ..crosscutting.security import SecurityHeadersMiddleware
from ..identity.auth_users import require_role
from ..identity.users import UserRole
from ..infrastructure.cache import run_cache_sweeper
from ..infrastructure.db.pool import close_pool, init_pool
from .admin_routes import router as admin_router
from .auth_routes import router as auth_router
from .content_routes import router as content_router
from .exception_handlers import register_exception_handlers
from .key_routes import router as key_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle. Initializes pool, seeds admin key, runs sweeper."""
    settings = get_settings()
    in_memory = settings.uses_in_memory_store()

    if not in_memory:
        # R: Pool must exist before any Postgres repository is used
        init_pool(
            database_url=settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            timeout_seconds=settings.db_pool_timeout_seconds,
            connect_timeout_seconds=settings.db_connect_timeout_seconds,
        )

    sweeper: asyncio.Task | None = None
    try:
        try:
            ensure_bootstrap_admin_key(
                get_security_key_repository(), settings.bootstrap_admin_key
            )
        except Exception as e:
            logger.error(f"Startup failed: {e}")
            raise

        if settings.cache_sweep_interval_seconds > 0:
            sweeper = asyncio.create_task(
                run_cache_sweeper(
                    get_entity_caches(), settings.cache_sweep_interval_seconds
                )
            )

        logger.info(
            "DarkSphere API starting up",
            extra={
                "app_env": settings.app_env,
                "store": "memory" if in_memory else "postgres",
                "rate_limit_rps": settings.rate_limit_rps,
                "cache_sweep_interval_seconds": settings.cache_sweep_interval_seconds,
                "identity_provider": bool(settings.identity_jwks_url.strip()),
            },
        )

        yield

    finally:
        if sweeper is not None:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper
        if not in_memory:
            close_pool()
        logger.info("DarkSphere API shutting down")


async def require_metrics_access(
    request: Request,
    authorization: str | None = Header(None, alias="Authorization"),
) -> None:
    """R: /metrics es público salvo METRICS_REQUIRE_AUTH=true (entonces solo admin)."""
    if not get_settings().metrics_require_auth:
        return None
    await require_role(UserRole.ADMIN)(request, authorization)
    return None


def _check_store() -> str:
    try:
        if get_user_repository().ping():
            return "connected"
    except Exception as e:
        logger.warning("Health check: store unavailable", extra={"error": str(e)})
    return "disconnected"


def create_app():
    """Build the ASGI application (FastAPI wrapped by the rate limiter)."""
    settings = get_settings()

    app = FastAPI(
        title="DarkSphere API",
        version="0.1.0",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "auth", "description": "Key-gated registration and sessions"},
            {"name": "registration", "description": "Security key pre-validation"},
            {"name": "admin", "description": "Keys, users, flags and audit (admin)"},
            {"name": "posts", "description": "Feed, likes, comments and flags"},
            {"name": "users", "description": "Public profiles"},
            {"name": "announcements", "description": "Site-wide announcements"},
        ],
    )

    # R: Middleware order (bottom = first to execute):
    # 1. RateLimitMiddleware (ASGI wrapper, below)
    # 2. BodyLimitMiddleware - rejects oversized bodies early
    # 3. SecurityHeadersMiddleware
    # 4. RequestContextMiddleware - sets request_id
    # 5. CORSMiddleware - handles preflight
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_allowed_origins_list(),
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-Id"],
    )
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(BodyLimitMiddleware, max_bytes=settings.max_body_bytes)

    app.include_router(auth_router)
    app.include_router(key_router)
    app.include_router(admin_router)
    app.include_router(content_router)

    register_exception_handlers(app)

    @app.get("/health")
    def health(request: Request):
        """
        R: Health check: store connectivity + cache stats.

        Returns:
            ok: True if the store answers
            db: "connected" or "disconnected"
            caches: per-cache stats (entries, hits, misses, hit_rate, ...)
            request_id: Correlation ID for this request
        """
        db_status = _check_store()
        return {
            "ok": db_status == "connected",
            "db": db_status,
            "caches": get_entity_caches().stats(),
            "request_id": getattr(request.state, "request_id", None),
        }

    @app.get("/readyz")
    def readyz(request: Request):
        """R: Minimal readiness check for the store only."""
        db_status = _check_store()
        return {
            "ok": db_status == "connected",
            "db": db_status,
            "request_id": getattr(request.state, "request_id", None),
        }

    @app.get("/metrics")
    def metrics(_auth: None = Depends(require_metrics_access)):
        """R: Expose Prometheus metrics (text format)."""
        body, content_type = get_metrics_response()
        return Response(content=body, media_type=content_type)

    # R: Wrap app with rate limit middleware (ASGI-style); must be last
    return RateLimitMiddleware(app)


app = create_app()
