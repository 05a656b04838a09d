"""
In-Memory Audit Event Repository for testing and development.

NOT FOR PRODUCTION USE - data is lost on restart.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from threading import Lock
from typing import List
from uuid import UUID

from ....domain.audit import AuditEvent


class InMemoryAuditEventRepository:
    """Append-only list of AuditEvent, newest first on read."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._events: List[AuditEvent] = []

    def record_event(self, event: AuditEvent) -> None:
        stored = replace(
            event,
            metadata=dict(event.metadata or {}),
            created_at=event.created_at or datetime.now(timezone.utc),
        )
        with self._lock:
            self._events.append(stored)

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
        with self._lock:
            results = list(reversed(self._events))

        if actor:
            if ":" in actor:
                results = [e for e in results if e.actor == actor]
            else:
                results = [e for e in results if e.actor.endswith(f":{actor}")]
        if action:
            results = [e for e in results if e.action == action]
        if target_id is not None:
            results = [e for e in results if e.target_id == target_id]

        start = max(offset, 0)
        return results[start : start + limit]

    # -------------------------------------------------------------------------
    # Testing helpers
    # -------------------------------------------------------------------------
    def get_all_events(self) -> List[AuditEvent]:
        with self._lock:
            return list(self._events)
