"""
============================================================
TARJETA CRC — infrastructure/repositories/in_memory/flag.py
============================================================
Class: InMemoryFlagRepository

Responsibilities:
  - Cola de moderación en memoria.
  - resolve_flag(): pending -> resolved bajo Lock (un solo ganador).
============================================================
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from itertools import count
from threading import Lock
from typing import Dict, List, Optional
from uuid import UUID

from ....domain.entities import Flag, FlagAction, FlagStatus


class InMemoryFlagRepository:
    def __init__(self) -> None:
        self._lock = Lock()
        self._flags: Dict[UUID, Flag] = {}
        self._sequence: Dict[UUID, int] = {}
        self._counter = count()

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def create_flag(self, flag: Flag) -> Flag:
        stored = replace(flag, created_at=flag.created_at or self._now())
        with self._lock:
            self._flags[stored.id] = stored
            self._sequence[stored.id] = next(self._counter)
        return stored

    def get_flag(self, flag_id: UUID) -> Optional[Flag]:
        with self._lock:
            return self._flags.get(flag_id)

    def find_pending_flag(self, post_id: UUID, reporter_id: UUID) -> Optional[Flag]:
        with self._lock:
            return next(
                (
                    f
                    for f in self._flags.values()
                    if f.post_id == post_id
                    and f.reporter_id == reporter_id
                    and f.status == FlagStatus.PENDING
                ),
                None,
            )

    def list_flags(
        self,
        *,
        status: FlagStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Flag]:
        if limit <= 0:
            return []
        with self._lock:
            values = [f for f in self._flags.values() if status is None or f.status == status]
            values.sort(key=lambda f: self._sequence[f.id], reverse=True)
        start = max(offset, 0)
        return values[start : start + limit]

    def resolve_flag(
        self,
        flag_id: UUID,
        *,
        resolved_by: UUID,
        action: FlagAction,
        now: datetime,
    ) -> Optional[Flag]:
        with self._lock:
            flag = self._flags.get(flag_id)
            if flag is None or flag.status != FlagStatus.PENDING:
                return None
            resolved = replace(
                flag,
                status=FlagStatus.RESOLVED,
                resolved_by=resolved_by,
                resolved_at=now,
                action=action,
            )
            self._flags[flag_id] = resolved
            return resolved

