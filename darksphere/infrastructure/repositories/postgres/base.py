"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/base.py
============================================================
Class: PostgresRepository (base)

Responsibilities:
  - Resolver el pool (inyectado o global).
  - Ejecutar una unidad de trabajo dentro de `pool.connection()` (una transacción:
    commit al salir, rollback si hay excepción).
  - Reintentar fallas transitorias (tenacity) solo cuando la operación es
    idempotente (lecturas, UPDATEs condicionales re-ejecutables).
  - Traducir errores de psycopg a errores tipados:
      UniqueViolation -> DuplicateRecordError (409, nunca se reintenta)
      PoolTimeout     -> ServiceUnavailableError (503)
      resto           -> DatabaseError (503)
  - Medir latencia por operación y loguear queries lentas.

Collaborators:
  - psycopg / psycopg_pool
  - infrastructure.services.retry.create_retry_decorator
  - crosscutting.exceptions, crosscutting.logger, crosscutting.metrics
============================================================
"""

from __future__ import annotations

import time
from typing import Any, Callable, TypeVar

from psycopg import errors as pg_errors
from psycopg_pool import ConnectionPool, PoolTimeout

from ....crosscutting.config import get_settings
from ....crosscutting.exceptions import (
    DarkSphereError,
    DatabaseError,
    DuplicateRecordError,
    ServiceUnavailableError,
)
from ....crosscutting.logger import logger
from ....crosscutting.metrics import observe_db_query
from ...services.retry import create_retry_decorator

T = TypeVar("T")


class PostgresRepository:
    """Base de repositorios PostgreSQL (pool inyectable)."""

    def __init__(self, pool: ConnectionPool | None = None):
        self._pool = pool

    def _get_pool(self) -> ConnectionPool:
        if self._pool is not None:
            return self._pool

        from ...db.pool import get_pool

        return get_pool()

    def _run(
        self,
        operation: str,
        work: Callable[[Any], T],
        *,
        retry: bool = True,
        extra: dict[str, object] | None = None,
    ) -> T:
        """Ejecuta `work(conn)` en una transacción con manejo de errores uniforme."""
        log_extra = {"operation": f"{type(self).__name__}.{operation}", **(extra or {})}

        def attempt() -> T:
            with self._get_pool().connection() as conn:
                return work(conn)

        call = create_retry_decorator()(attempt) if retry else attempt
        start = time.perf_counter()
        try:
            return call()
        except pg_errors.UniqueViolation as exc:
            logger.info("unique violation", extra={**log_extra, "constraint": _constraint(exc)})
            raise DuplicateRecordError(
                f"Duplicate record ({_constraint(exc) or 'unique'})", original_error=exc
            ) from exc
        except PoolTimeout as exc:
            logger.error("database pool exhausted", extra=log_extra)
            raise ServiceUnavailableError(
                "Database temporarily unavailable", original_error=exc
            ) from exc
        except DarkSphereError:
            raise
        except Exception as exc:
            logger.exception("store operation failed", extra={**log_extra, "error": str(exc)})
            raise DatabaseError(f"{operation} failed", original_error=exc) from exc
        finally:
            elapsed = time.perf_counter() - start
            observe_db_query(operation, elapsed)
            if elapsed * 1000 > get_settings().slow_query_ms:
                logger.warning(
                    "slow store operation",
                    extra={**log_extra, "duration_ms": round(elapsed * 1000, 2)},
                )


def _constraint(exc: Exception) -> str | None:
    diag = getattr(exc, "diag", None)
    return getattr(diag, "constraint_name", None) if diag is not None else None
