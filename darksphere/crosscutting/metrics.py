"""
===============================================================================
ARCHIVO: crosscutting/metrics.py
===============================================================================

CRC CARD (Módulo)
-------------------------------------------------------------------------------
Nombre:
    Métricas (Prometheus)

Responsabilidades:
    - Definir métricas Prometheus en un registry propio.
    - Proveer funciones pequeñas y estables para registrar eventos/duraciones.
    - Cuidar cardinalidad (NO user_id, NO valores de keys, NO IDs dinámicos).
    - Exponer helpers para generar la respuesta /metrics.

Colaboradores:
    - crosscutting.middleware: latencia y conteo HTTP.
    - infrastructure.repositories.cached: hits/misses por cache.
    - application.usecases.registration: resultados de registro / consumo de keys.
===============================================================================
"""

from __future__ import annotations

import re

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

_registry = CollectorRegistry()

_requests_total = Counter(
    "darksphere_requests_total",
    "Total HTTP requests",
    ["endpoint", "method", "status"],
    registry=_registry,
)

_request_latency = Histogram(
    "darksphere_request_latency_seconds",
    "HTTP request latency (seconds)",
    ["endpoint", "method"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
    registry=_registry,
)

_cache_hits = Counter(
    "darksphere_cache_hit_total",
    "Cache hits per entity cache",
    ["cache"],
    registry=_registry,
)

_cache_misses = Counter(
    "darksphere_cache_miss_total",
    "Cache misses per entity cache",
    ["cache"],
    registry=_registry,
)

_cache_swept = Counter(
    "darksphere_cache_swept_total",
    "Expired entries removed by the background sweep",
    ["cache"],
    registry=_registry,
)

_registrations_total = Counter(
    "darksphere_registrations_total",
    "Registration attempts by outcome",
    ["outcome"],
    registry=_registry,
)

_key_consume_conflicts = Counter(
    "darksphere_key_consume_conflict_total",
    "Key consumptions lost to a concurrent registration",
    registry=_registry,
)

_db_query_duration = Histogram(
    "darksphere_db_query_duration_seconds",
    "Store operation latency (seconds)",
    ["operation"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0),
    registry=_registry,
)

_UUID_RE = re.compile(
    r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"
)
_NUM_RE = re.compile(r"/\d+(?=/|$)")


def _normalize_endpoint(path: str) -> str:
    """/posts/<uuid>/like -> /posts/{id}/like (evita explosión de cardinalidad)."""
    normalized = _UUID_RE.sub("{id}", path or "")
    return _NUM_RE.sub("/{n}", normalized)


def record_request_metrics(
    *, endpoint: str, method: str, status_code: int, latency_seconds: float
) -> None:
    normalized = _normalize_endpoint(endpoint)
    _requests_total.labels(
        endpoint=normalized, method=method, status=str(status_code)
    ).inc()
    _request_latency.labels(endpoint=normalized, method=method).observe(
        latency_seconds
    )


def record_cache_hit(cache: str) -> None:
    _cache_hits.labels(cache=cache).inc()


def record_cache_miss(cache: str) -> None:
    _cache_misses.labels(cache=cache).inc()


def record_cache_swept(cache: str, removed: int) -> None:
    if removed > 0:
        _cache_swept.labels(cache=cache).inc(removed)


def record_registration(outcome: str) -> None:
    _registrations_total.labels(outcome=outcome).inc()


def record_key_consume_conflict() -> None:
    _key_consume_conflicts.inc()


def observe_db_query(operation: str, seconds: float) -> None:
    _db_query_duration.labels(operation=operation).observe(seconds)


def get_metrics_response() -> tuple[bytes, str]:
    return generate_latest(_registry), CONTENT_TYPE_LATEST
