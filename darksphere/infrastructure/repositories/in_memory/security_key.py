"""
============================================================
TARJETA CRC — infrastructure/repositories/in_memory/security_key.py
============================================================
Class: InMemorySecurityKeyRepository

Responsibilities:
  - Almacenar security keys en memoria (tests / local dev).
  - consume(): check-and-set bajo Lock -> exactamente un ganador entre
    threads concurrentes (misma garantía que el UPDATE condicional de Postgres).
  - Unicidad de valores ACTIVOS (una key desactivada libera su valor).

Collaborators:
  - domain.entities.SecurityKey / KeyTier
  - crosscutting.exceptions.DuplicateRecordError

Constraints / Notes:
  - Thread-safe: todas las lecturas/escrituras bajo el mismo Lock.
  - Orden "newest first" estable: created_at DESC, luego orden de inserción DESC.
============================================================
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from itertools import count
from threading import Lock
from typing import Dict, List, Optional
from uuid import UUID

from ....crosscutting.exceptions import DuplicateRecordError
from ....domain.entities import KeyTier, SecurityKey


class InMemorySecurityKeyRepository:
    """Repositorio in-memory, thread-safe, para security keys."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._keys: Dict[UUID, SecurityKey] = {}
        self._sequence: Dict[UUID, int] = {}
        self._counter = count()

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def _find_locked(self, key_value: str, *, active_only: bool) -> Optional[SecurityKey]:
        matches = [k for k in self._keys.values() if k.key_value == key_value]
        active = [k for k in matches if k.is_active]
        if active:
            return active[0]
        if active_only or not matches:
            return None
        return max(matches, key=lambda k: self._sequence[k.id])

    def add_keys(self, keys: List[SecurityKey]) -> List[SecurityKey]:
        if not keys:
            return []

        with self._lock:
            # R: all-or-nothing; validar todo antes de escribir.
            batch_values: set[str] = set()
            for key in keys:
                if key.key_value in batch_values or self._find_locked(
                    key.key_value, active_only=True
                ):
                    raise DuplicateRecordError(
                        "Duplicate record (uq_security_keys_active_value)"
                    )
                batch_values.add(key.key_value)

            now = self._now()
            created: List[SecurityKey] = []
            for key in keys:
                stored = replace(
                    key,
                    is_used=False,
                    used_by=None,
                    used_at=None,
                    is_active=True,
                    created_at=key.created_at or now,
                )
                self._keys[stored.id] = stored
                self._sequence[stored.id] = next(self._counter)
                created.append(stored)
            return created

    def get_by_value(self, key_value: str) -> Optional[SecurityKey]:
        with self._lock:
            return self._find_locked(key_value, active_only=False)

    def get_by_id(self, key_id: UUID) -> Optional[SecurityKey]:
        with self._lock:
            return self._keys.get(key_id)

    def consume(
        self, key_value: str, user_id: UUID, *, now: datetime
    ) -> Optional[SecurityKey]:
        with self._lock:
            key = self._find_locked(key_value, active_only=True)
            if key is None or key.is_used or key.is_expired(now):
                return None
            consumed = replace(key, is_used=True, used_by=user_id, used_at=now)
            self._keys[key.id] = consumed
            return consumed

    def release(self, user_id: UUID) -> int:
        released = 0
        with self._lock:
            for key_id, key in list(self._keys.items()):
                if key.used_by == user_id:
                    self._keys[key_id] = replace(
                        key, is_used=False, used_by=None, used_at=None
                    )
                    released += 1
        return released

    def deactivate(
        self, key_id: UUID, *, deactivated_by: UUID | None, now: datetime
    ) -> Optional[SecurityKey]:
        with self._lock:
            key = self._keys.get(key_id)
            if key is None:
                return None
            if not key.is_active or key.is_used:
                return key
            updated = replace(
                key, is_active=False, deactivated_by=deactivated_by, deactivated_at=now
            )
            self._keys[key_id] = updated
            return updated

    def list_keys(
        self,
        *,
        tier: KeyTier | None = None,
        limit: int = 200,
        offset: int = 0,
    ) -> List[SecurityKey]:
        if limit <= 0:
            return []
        with self._lock:
            values = [k for k in self._keys.values() if tier is None or k.tier == tier]
            values.sort(
                key=lambda k: (
                    k.created_at or datetime.min.replace(tzinfo=timezone.utc),
                    self._sequence[k.id],
                ),
                reverse=True,
            )
        start = max(offset, 0)
        return values[start : start + limit]
