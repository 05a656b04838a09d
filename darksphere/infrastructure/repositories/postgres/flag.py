"""
===============================================================================
TARJETA CRC — infrastructure/repositories/postgres/flag.py
===============================================================================

Responsabilidades:
    - Persistir reportes de moderación (`post_flags`).
    - resolve_flag(): transición atómica pending -> resolved (UPDATE condicional);
      dos admins resolviendo a la vez -> solo uno obtiene la fila.

Colaboradores:
    - PostgresRepository
    - domain.entities.Flag / FlagStatus / FlagAction
===============================================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from ....domain.entities import Flag, FlagAction, FlagStatus
from .base import PostgresRepository

_FLAG_COLUMNS = (
    "id, post_id, reporter_id, reason, status, resolved_by, resolved_at, action, created_at"
)


def _row_to_flag(row: tuple) -> Flag:
    return Flag(
        id=row[0],
        post_id=row[1],
        reporter_id=row[2],
        reason=row[3],
        status=FlagStatus(row[4]),
        resolved_by=row[5],
        resolved_at=row[6],
        action=FlagAction(row[7]) if row[7] else None,
        created_at=row[8],
    )


class PostgresFlagRepository(PostgresRepository):
    """Repositorio PostgreSQL para la cola de moderación."""

    def create_flag(self, flag: Flag) -> Flag:
        row = self._run(
            "create_flag",
            lambda conn: conn.execute(
                f"""
                INSERT INTO post_flags (id, post_id, reporter_id, reason, status)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING {_FLAG_COLUMNS}
                """,
                (flag.id, flag.post_id, flag.reporter_id, flag.reason, flag.status.value),
            ).fetchone(),
            retry=False,
        )
        return _row_to_flag(row)

    def get_flag(self, flag_id: UUID) -> Optional[Flag]:
        row = self._run(
            "get_flag",
            lambda conn: conn.execute(
                f"SELECT {_FLAG_COLUMNS} FROM post_flags WHERE id = %s", (flag_id,)
            ).fetchone(),
        )
        return _row_to_flag(row) if row else None

    def find_pending_flag(self, post_id: UUID, reporter_id: UUID) -> Optional[Flag]:
        row = self._run(
            "find_pending_flag",
            lambda conn: conn.execute(
                f"""
                SELECT {_FLAG_COLUMNS}
                FROM post_flags
                WHERE post_id = %s AND reporter_id = %s AND status = 'pending'
                LIMIT 1
                """,
                (post_id, reporter_id),
            ).fetchone(),
        )
        return _row_to_flag(row) if row else None

    def list_flags(
        self,
        *,
        status: FlagStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Flag]:
        if limit <= 0:
            return []
        conditions = ""
        params: list[object] = []
        if status is not None:
            conditions = "WHERE status = %s"
            params.append(status.value)
        params.extend([limit, max(offset, 0)])

        rows = self._run(
            "list_flags",
            lambda conn: conn.execute(
                f"""
                SELECT {_FLAG_COLUMNS}
                FROM post_flags
                {conditions}
                ORDER BY created_at DESC, id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params),
            ).fetchall(),
        )
        return [_row_to_flag(r) for r in rows]

    def resolve_flag(
        self,
        flag_id: UUID,
        *,
        resolved_by: UUID,
        action: FlagAction,
        now: datetime,
    ) -> Optional[Flag]:
        row = self._run(
            "resolve_flag",
            lambda conn: conn.execute(
                f"""
                UPDATE post_flags
                SET status = 'resolved', resolved_by = %s, resolved_at = %s, action = %s
                WHERE id = %s AND status = 'pending'
                RETURNING {_FLAG_COLUMNS}
                """,
                (resolved_by, now, action.value, flag_id),
            ).fetchone(),
            retry=False,
            extra={"flag_id": str(flag_id)},
        )
        return _row_to_flag(row) if row else None
