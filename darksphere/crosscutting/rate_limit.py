# darksphere/crosscutting/rate_limit.py
"""
===============================================================================
MÓDULO: Rate limiting (Token Bucket) - in-memory
===============================================================================

Limita abuso por IP (o X-Forwarded-For). Los endpoints que aceptan una
security key (/auth/register, /validate-key) y /auth/login usan un bucket
propio y más estricto: adivinar keys por fuerza bruta debe ser caro.

Incluye:
- Token bucket (suaviza bursts)
- Headers x-ratelimit-remaining / x-ratelimit-limit
- Respuesta RFC7807 con Retry-After

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Componentes:
  - TokenBucket
  - RateLimitMiddleware

Colaboradores:
  - crosscutting.config
  - crosscutting.error_responses
  - crosscutting.logger
===============================================================================
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional

from .error_responses import app_exception_handler, rate_limited
from .logger import logger

# Rutas sensibles: bucket separado con rps/burst reducidos.
SENSITIVE_PATHS = frozenset({"/auth/register", "/auth/login", "/validate-key"})
SENSITIVE_DIVISOR = 4


@dataclass
class Bucket:
    tokens: float
    last_refill: float
    last_seen: float


class TokenBucket:
    """
    ----------------------------------------------------------------------------
    CRC (Class Card)
    ----------------------------------------------------------------------------
    Clase:
      TokenBucket

    Responsabilidades:
      - Algoritmo token-bucket por key con refill por tiempo
      - TTL cleanup amortizado y eviction por máximo de buckets
    ----------------------------------------------------------------------------
    """

    def __init__(
        self,
        rps: float,
        burst: int,
        *,
        ttl_seconds: int = 3600,
        max_buckets: int = 10_000,
    ):
        if rps <= 0:
            raise ValueError("rps must be > 0")
        if burst <= 0:
            raise ValueError("burst must be > 0")
        self.rps = float(rps)
        self.burst = int(burst)
        self.ttl_seconds = int(ttl_seconds)
        self.max_buckets = int(max_buckets)

        self._buckets: "OrderedDict[str, Bucket]" = OrderedDict()
        self._lock = threading.Lock()
        self._ops = 0

    def consume(self, key: str) -> tuple[bool, float]:
        with self._lock:
            now = time.monotonic()
            self._ops += 1
            self._cleanup_if_needed(now)

            bucket = self._get_or_create_bucket(key, now)
            self._refill(bucket, now)
            bucket.last_seen = now
            self._buckets.move_to_end(key, last=True)

            if bucket.tokens >= 1:
                bucket.tokens -= 1
                return True, 0.0

            return False, (1 - bucket.tokens) / self.rps

    def get_remaining(self, key: str) -> int:
        with self._lock:
            b = self._buckets.get(key)
            if not b:
                return self.burst
            self._refill(b, time.monotonic())
            return int(b.tokens)

    def clear(self) -> None:
        with self._lock:
            self._buckets.clear()

    def _get_or_create_bucket(self, key: str, now: float) -> Bucket:
        b = self._buckets.get(key)
        if b:
            return b
        if len(self._buckets) >= self.max_buckets:
            self._buckets.popitem(last=False)
        b = Bucket(tokens=float(self.burst), last_refill=now, last_seen=now)
        self._buckets[key] = b
        return b

    def _refill(self, bucket: Bucket, now: float) -> None:
        elapsed = now - bucket.last_refill
        if elapsed <= 0:
            return
        bucket.tokens = min(self.burst, bucket.tokens + elapsed * self.rps)
        bucket.last_refill = now

    def _cleanup_if_needed(self, now: float) -> None:
        # Cada ~256 operaciones, para amortizar costo
        if (self._ops & 0xFF) != 0 or self.ttl_seconds <= 0:
            return

        stale = []
        for k, b in self._buckets.items():
            if now - b.last_seen <= self.ttl_seconds:
                break
            stale.append(k)
        for k in stale:
            self._buckets.pop(k, None)


_rate_limiter: Optional[TokenBucket] = None
_sensitive_limiter: Optional[TokenBucket] = None
_limiter_lock = threading.Lock()


def get_rate_limiter(*, sensitive: bool = False) -> TokenBucket:
    global _rate_limiter, _sensitive_limiter
    with _limiter_lock:
        if _rate_limiter is None or _sensitive_limiter is None:
            from .config import get_settings

            s = get_settings()
            _rate_limiter = TokenBucket(rps=s.rate_limit_rps, burst=s.rate_limit_burst)
            _sensitive_limiter = TokenBucket(
                rps=s.rate_limit_rps / SENSITIVE_DIVISOR,
                burst=max(1, s.rate_limit_burst // SENSITIVE_DIVISOR),
            )
        return _sensitive_limiter if sensitive else _rate_limiter


def reset_rate_limiter() -> None:
    global _rate_limiter, _sensitive_limiter
    with _limiter_lock:
        _rate_limiter = None
        _sensitive_limiter = None


def is_rate_limiting_enabled() -> bool:
    from .config import get_settings

    s = get_settings()
    return s.rate_limit_rps > 0 and s.rate_limit_burst > 0


def get_client_identifier(request) -> str:
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return f"ip:{forwarded_for.split(',')[0].strip()}"

    client = request.client
    if client:
        return f"ip:{client.host}"

    return "ip:unknown"


class RateLimitMiddleware:
    """
    ASGI middleware de rate limit.

    - Excluye endpoints de infraestructura.
    - Evita overhead cuando está deshabilitado.
    """

    EXCLUDED_PATHS = {"/health", "/readyz", "/metrics", "/openapi.json", "/docs"}

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or not is_rate_limiting_enabled():
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        if path in self.EXCLUDED_PATHS or scope.get("method", "").upper() == "OPTIONS":
            await self.app(scope, receive, send)
            return

        from starlette.requests import Request

        request = Request(scope, receive)
        client_id = get_client_identifier(request)

        limiter = get_rate_limiter(sensitive=path in SENSITIVE_PATHS)
        allowed, retry_after = limiter.consume(client_id)

        if not allowed:
            retry_after_int = max(1, int(retry_after) + 1)
            logger.warning(
                "rate limit exceeded",
                extra={"client_id": client_id, "retry_after": retry_after_int},
            )

            exc = rate_limited(retry_after_int)
            exc.headers = {
                **(exc.headers or {}),
                "x-ratelimit-remaining": "0",
                "x-ratelimit-limit": str(limiter.burst),
            }
            response = await app_exception_handler(request, exc)
            await response(scope, receive, send)
            return

        remaining = limiter.get_remaining(client_id)

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                hdrs = list(message.get("headers", []))
                hdrs.append((b"x-ratelimit-remaining", str(remaining).encode()))
                hdrs.append((b"x-ratelimit-limit", str(limiter.burst).encode()))
                message["headers"] = hdrs
            await send(message)

        await self.app(scope, receive, send_with_headers)
