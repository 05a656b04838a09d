"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/audit_event.py
============================================================
Class: PostgresAuditEventRepository

Responsibilities:
  - Persistir eventos de auditoría en PostgreSQL (tabla audit_events).
  - Listar eventos con filtros opcionales (actor, action, target_id).
  - Orden estable (created_at DESC, id DESC) para APIs/tests.

Collaborators:
  - domain.audit.AuditEvent
  - PostgresRepository
  - psycopg.types.json.Json (metadata JSONB)

Constraints / Notes:
  - Append-only: no hay update ni delete.
  - actor sigue la convención "user:<uuid>" / "system" / "anonymous".
============================================================
"""

from __future__ import annotations

from typing import List
from uuid import UUID

from psycopg.types.json import Json

from ....domain.audit import AuditEvent
from .base import PostgresRepository


class PostgresAuditEventRepository(PostgresRepository):
    """Repositorio PostgreSQL para auditoría (audit_events)."""

    def record_event(self, event: AuditEvent) -> None:
        self._run(
            "record_event",
            lambda conn: conn.execute(
                """
                INSERT INTO audit_events (id, actor, action, target_type, target_id, metadata)
                VALUES (%s, %s, %s, %s, %s, %s)
                """,
                (
                    event.id,
                    event.actor,
                    event.action,
                    event.target_type,
                    event.target_id,
                    Json(event.metadata or {}),
                ),
            ),
            retry=False,
            extra={"action": event.action},
        )

    def list_events(
        self,
        *,
        actor: str | None = None,
        action: str | None = None,
        target_id: UUID | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[AuditEvent]:
        if limit <= 0:
            return []

        conditions: list[str] = []
        params: list[object] = []

        # actor: "user:<uuid>" exacto, o id crudo -> match por sufijo
        if actor:
            if ":" in actor:
                conditions.append("actor = %s")
                params.append(actor)
            else:
                conditions.append("actor LIKE %s")
                params.append(f"%:{actor}")

        if action:
            conditions.append("action = %s")
            params.append(action)

        if target_id is not None:
            conditions.append("target_id = %s")
            params.append(target_id)

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        params.extend([limit, max(offset, 0)])

        rows = self._run(
            "list_events",
            lambda conn: conn.execute(
                f"""
                SELECT id, actor, action, target_type, target_id, metadata, created_at
                FROM audit_events
                {where_clause}
                ORDER BY created_at DESC, id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params),
            ).fetchall(),
        )

        return [
            AuditEvent(
                id=event_id,
                actor=event_actor,
                action=event_action,
                target_type=target_type,
                target_id=event_target,
                metadata=metadata or {},
                created_at=created_at,
            )
            for event_id, event_actor, event_action, target_type, event_target, metadata, created_at in rows
        ]
