"""
In-memory announcements (tests / local dev). Thread-safe, newest first.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from itertools import count
from threading import Lock
from typing import Dict, List
from uuid import UUID

from ....domain.entities import Announcement


class InMemoryAnnouncementRepository:
    def __init__(self) -> None:
        self._lock = Lock()
        self._items: Dict[UUID, Announcement] = {}
        self._sequence: Dict[UUID, int] = {}
        self._counter = count()

    def list_announcements(self, *, limit: int = 50) -> List[Announcement]:
        if limit <= 0:
            return []
        with self._lock:
            values = list(self._items.values())
            values.sort(key=lambda a: self._sequence[a.id], reverse=True)
        return values[:limit]

    def create_announcement(self, announcement: Announcement) -> Announcement:
        stored = replace(
            announcement,
            created_at=announcement.created_at or datetime.now(timezone.utc),
        )
        with self._lock:
            self._items[stored.id] = stored
            self._sequence[stored.id] = next(self._counter)
        return stored

    def delete_announcement(self, announcement_id: UUID) -> bool:
        with self._lock:
            return self._items.pop(announcement_id, None) is not None
