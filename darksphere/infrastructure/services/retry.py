"""darksphere.infrastructure.services.retry

Name: Retry Helper with Exponential Backoff + Jitter

Qué es
------
Utilidad de **resiliencia** para llamadas al store (PostgreSQL):
  - Clasificación de errores: **transient** (reintentar) vs **permanent** (fail-fast)
  - Decorator de `tenacity` con exponential backoff + jitter
  - Logging estructurado de cada reintento

CRC (Component Card)
--------------------
Component: retry helper
Responsibilities:
  - Decidir qué errores son reintentables
  - Proveer un decorator estándar (tenacity) con backoff+jitter
Collaborators:
  - tenacity (motor de retry)
  - crosscutting.config.get_settings (attempts / delays)
  - infrastructure.repositories.postgres.base (consumidor)
Constraints:
  - Reintentar SOLO fallas transitorias (conexión caída/reseteada, timeouts de red)
  - Nunca reintentar conflictos lógicos (unique violation, key ya usada)
  - Nunca reintentar statement_timeout: la query ya consumió su presupuesto
"""

from __future__ import annotations

from typing import Callable, Optional, TypeVar

import psycopg
from psycopg import errors as pg_errors
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from ...crosscutting.config import get_settings
from ...crosscutting.logger import logger

T = TypeVar("T")


def is_transient_error(exception: BaseException) -> bool:
    """R: Decide si un error del store es transitorio.

    Reglas (en orden):
      1) Conflictos de integridad y statement_timeout: False.
      2) psycopg.OperationalError (conexión perdida, server reiniciando): True.
      3) Built-ins de red/timeout: True.
      4) Default: fail-fast (False).
    """
    if isinstance(exception, (psycopg.IntegrityError, pg_errors.QueryCanceled)):
        return False

    if isinstance(exception, psycopg.OperationalError):
        return True

    if isinstance(exception, (TimeoutError, ConnectionError)):
        return True

    message = str(exception).lower()
    return any(
        p in message
        for p in ("connection reset", "connection refused", "server closed the connection")
    )


def _log_retry(retry_state: RetryCallState) -> None:
    fn = getattr(retry_state, "fn", None)
    wait_time = (
        retry_state.next_action.sleep
        if getattr(retry_state, "next_action", None) is not None
        else 0
    )

    exc: Optional[BaseException] = None
    if getattr(retry_state, "outcome", None) is not None:
        exc = retry_state.outcome.exception()

    logger.warning(
        "Retrying store call",
        extra={
            "function": getattr(fn, "__name__", "unknown"),
            "attempt": retry_state.attempt_number,
            "wait_seconds": round(float(wait_time), 3),
            "error": str(exc) if exc else None,
            "error_type": type(exc).__name__ if exc else None,
        },
    )


def create_retry_decorator(
    max_attempts: int | None = None,
    base_delay: float | None = None,
    max_delay: float | None = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """R: Decorator `tenacity` con exponential backoff + jitter.

    - stop: `stop_after_attempt(max_attempts)`
    - retry: solo si `is_transient_error(exception)`
    - reraise: True (propaga la última excepción original)
    """
    settings = get_settings()

    _max_attempts = settings.db_retry_attempts if max_attempts is None else max_attempts
    _base_delay = (
        settings.retry_base_delay_seconds if base_delay is None else float(base_delay)
    )
    _max_delay = (
        settings.retry_max_delay_seconds if max_delay is None else float(max_delay)
    )

    if _max_attempts <= 0:
        raise ValueError("max_attempts must be > 0")
    if _base_delay < 0:
        raise ValueError("base_delay must be >= 0")
    if _max_delay <= 0:
        raise ValueError("max_delay must be > 0")

    return retry(
        stop=stop_after_attempt(_max_attempts),
        wait=wait_exponential_jitter(
            initial=_base_delay, max=_max_delay, jitter=_base_delay
        ),
        retry=retry_if_exception(is_transient_error),
        before_sleep=_log_retry,
        reraise=True,
    )
