"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/security_key.py
============================================================
Class: PostgresSecurityKeyRepository

Responsibilities:
  - Persistir security keys (tabla `security_keys`).
  - consume(): check-and-set atómico en UN solo UPDATE condicional
    (WHERE is_used = false AND is_active = true ... RETURNING). Dos requests
    concurrentes -> exactamente una fila devuelta; vale también con varias
    instancias del server compartiendo la DB.
  - release(): vuelve a "unused" las keys consumidas por un usuario eliminado.
  - Unicidad de valores activos vía índice parcial
    (uq_security_keys_active_value ... WHERE is_active).

Collaborators:
  - PostgresRepository (pool, retry, errores tipados)
  - domain.entities.SecurityKey / KeyTier

Notes:
  - add_keys y consume NO se reintentan (no idempotentes ante un commit perdido).
============================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from ....crosscutting.exceptions import DatabaseError
from ....domain.entities import KeyTier, SecurityKey
from .base import PostgresRepository

_KEY_COLUMNS = (
    "id, key_value, tier, is_used, used_by, used_at, is_active, created_by, "
    "created_at, expires_at, deactivated_by, deactivated_at"
)


def _row_to_key(row: tuple) -> SecurityKey:
    try:
        tier = KeyTier(row[2])
    except ValueError as exc:
        raise DatabaseError(f"Invalid key tier in database: {row[2]}") from exc

    return SecurityKey(
        id=row[0],
        key_value=row[1],
        tier=tier,
        is_used=row[3],
        used_by=row[4],
        used_at=row[5],
        is_active=row[6],
        created_by=row[7],
        created_at=row[8],
        expires_at=row[9],
        deactivated_by=row[10],
        deactivated_at=row[11],
    )


class PostgresSecurityKeyRepository(PostgresRepository):
    """Repositorio PostgreSQL para security keys / passcodes."""

    def add_keys(self, keys: List[SecurityKey]) -> List[SecurityKey]:
        if not keys:
            return []

        def work(conn) -> List[SecurityKey]:
            created: List[SecurityKey] = []
            for key in keys:
                row = conn.execute(
                    f"""
                    INSERT INTO security_keys
                        (id, key_value, tier, is_used, is_active, created_by, expires_at)
                    VALUES (%s, %s, %s, false, true, %s, %s)
                    RETURNING {_KEY_COLUMNS}
                    """,
                    (key.id, key.key_value, key.tier.value, key.created_by, key.expires_at),
                ).fetchone()
                created.append(_row_to_key(row))
            return created

        return self._run("add_keys", work, retry=False, extra={"count": len(keys)})

    def get_by_value(self, key_value: str) -> Optional[SecurityKey]:
        row = self._run(
            "get_by_value",
            lambda conn: conn.execute(
                f"""
                SELECT {_KEY_COLUMNS}
                FROM security_keys
                WHERE key_value = %s
                ORDER BY is_active DESC, created_at DESC
                LIMIT 1
                """,
                (key_value,),
            ).fetchone(),
        )
        return _row_to_key(row) if row else None

    def get_by_id(self, key_id: UUID) -> Optional[SecurityKey]:
        row = self._run(
            "get_by_id",
            lambda conn: conn.execute(
                f"SELECT {_KEY_COLUMNS} FROM security_keys WHERE id = %s",
                (key_id,),
            ).fetchone(),
            extra={"key_id": str(key_id)},
        )
        return _row_to_key(row) if row else None

    def consume(
        self, key_value: str, user_id: UUID, *, now: datetime
    ) -> Optional[SecurityKey]:
        row = self._run(
            "consume",
            lambda conn: conn.execute(
                f"""
                UPDATE security_keys
                SET is_used = true, used_by = %s, used_at = %s
                WHERE key_value = %s
                  AND is_active = true
                  AND is_used = false
                  AND (expires_at IS NULL OR expires_at >= %s)
                RETURNING {_KEY_COLUMNS}
                """,
                (user_id, now, key_value, now),
            ).fetchone(),
            retry=False,
            extra={"user_id": str(user_id)},
        )
        return _row_to_key(row) if row else None

    def release(self, user_id: UUID) -> int:
        return self._run(
            "release",
            lambda conn: conn.execute(
                """
                UPDATE security_keys
                SET is_used = false, used_by = NULL, used_at = NULL
                WHERE used_by = %s
                """,
                (user_id,),
            ).rowcount,
            extra={"user_id": str(user_id)},
        )

    def deactivate(
        self, key_id: UUID, *, deactivated_by: UUID | None, now: datetime
    ) -> Optional[SecurityKey]:
        def work(conn):
            row = conn.execute(
                f"""
                UPDATE security_keys
                SET is_active = false, deactivated_by = %s, deactivated_at = %s
                WHERE id = %s AND is_active = true AND is_used = false
                RETURNING {_KEY_COLUMNS}
                """,
                (deactivated_by, now, key_id),
            ).fetchone()
            if row is not None:
                return row
            # Ya inactiva, usada o inexistente: se devuelve el estado actual.
            return conn.execute(
                f"SELECT {_KEY_COLUMNS} FROM security_keys WHERE id = %s", (key_id,)
            ).fetchone()

        row = self._run("deactivate", work, extra={"key_id": str(key_id)})
        return _row_to_key(row) if row else None

    def list_keys(
        self,
        *,
        tier: KeyTier | None = None,
        limit: int = 200,
        offset: int = 0,
    ) -> List[SecurityKey]:
        if limit <= 0:
            return []
        conditions = ""
        params: list[object] = []
        if tier is not None:
            conditions = "WHERE tier = %s"
            params.append(tier.value)
        params.extend([limit, max(offset, 0)])

        rows = self._run(
            "list_keys",
            lambda conn: conn.execute(
                f"""
                SELECT {_KEY_COLUMNS}
                FROM security_keys
                {conditions}
                ORDER BY created_at DESC, id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params),
            ).fetchall(),
        )
        return [_row_to_key(r) for r in rows]
