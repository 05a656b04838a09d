"""
============================================================
TARJETA CRC — infrastructure/repositories/in_memory/user.py
============================================================
Class: InMemoryUserRepository

Responsibilities:
  - Almacenar usuarios en memoria (tests / local dev).
  - Replicar las constraints de unicidad de Postgres
    (username case-insensitive, email, external_id).

Collaborators:
  - identity.users.User
  - crosscutting.exceptions.DuplicateRecordError

Constraints / Notes:
  - Thread-safe: acceso protegido por Lock.
============================================================
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from threading import Lock
from typing import Dict, List, Optional
from uuid import UUID

from ....crosscutting.exceptions import DuplicateRecordError
from ....identity.users import User


class InMemoryUserRepository:
    def __init__(self) -> None:
        self._lock = Lock()
        self._users: Dict[UUID, User] = {}

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def _conflict_locked(self, user: User) -> str | None:
        for existing in self._users.values():
            if existing.id == user.id:
                return "users_pkey"
            if existing.username.lower() == user.username.lower():
                return "uq_users_username_lower"
            if existing.email == user.email:
                return "uq_users_email"
            if user.external_id and existing.external_id == user.external_id:
                return "uq_users_external_id"
        return None

    def create_user(self, user: User) -> User:
        with self._lock:
            constraint = self._conflict_locked(user)
            if constraint:
                raise DuplicateRecordError(f"Duplicate record ({constraint})")
            stored = replace(user, created_at=user.created_at or self._now())
            self._users[stored.id] = stored
            return stored

    def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        with self._lock:
            return self._users.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        wanted = username.strip().lower()
        with self._lock:
            return next(
                (u for u in self._users.values() if u.username.lower() == wanted), None
            )

    def get_user_by_email(self, email: str) -> Optional[User]:
        wanted = email.strip().lower()
        with self._lock:
            return next((u for u in self._users.values() if u.email == wanted), None)

    def get_user_by_external_id(self, external_id: str) -> Optional[User]:
        with self._lock:
            return next(
                (u for u in self._users.values() if u.external_id == external_id), None
            )

    def list_users(self, *, limit: int = 200, offset: int = 0) -> List[User]:
        if limit <= 0:
            return []
        with self._lock:
            values = list(self._users.values())
        values.sort(
            key=lambda u: u.created_at or datetime.min.replace(tzinfo=timezone.utc),
            reverse=True,
        )
        start = max(offset, 0)
        return values[start : start + limit]

    def set_user_disabled(self, user_id: UUID, disabled: bool) -> Optional[User]:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            updated = replace(user, is_disabled=disabled)
            self._users[user_id] = updated
            return updated

    def delete_user(self, user_id: UUID) -> bool:
        with self._lock:
            return self._users.pop(user_id, None) is not None

    def ping(self) -> bool:
        return True
