"""
===============================================================================
TARJETA CRC — domain/entities.py
===============================================================================

Módulo:
    Entidades de dominio (security keys + contenido)

Responsabilidades:
    - SecurityKey: token de registro de un solo uso (tier admin|user).
    - Post / Comment / Flag / Announcement: contenido moderable.

Invariantes (SecurityKey):
    - unused -> used ocurre exactamente una vez (consume atómico en el repo).
    - "release" (used -> unused) solo cuando se elimina el usuario dueño.
    - Desactivación es terminal.
    - La expiración es derivada (is_expired), nunca un estado persistido.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID


class KeyTier(str, Enum):
    ADMIN = "admin"
    USER = "user"


class KeyState(str, Enum):
    """Estado observable de una key (derivado de sus flags)."""

    ACTIVE_UNUSED = "active_unused"
    ACTIVE_USED = "active_used"
    INACTIVE = "inactive"


@dataclass(frozen=True, slots=True)
class SecurityKey:
    id: UUID
    key_value: str
    tier: KeyTier
    is_used: bool = False
    used_by: UUID | None = None
    used_at: datetime | None = None
    is_active: bool = True
    created_by: UUID | None = None
    created_at: datetime | None = None
    expires_at: datetime | None = None
    deactivated_by: UUID | None = None
    deactivated_at: datetime | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or datetime.now(timezone.utc)) > self.expires_at

    @property
    def state(self) -> KeyState:
        if not self.is_active:
            return KeyState.INACTIVE
        return KeyState.ACTIVE_USED if self.is_used else KeyState.ACTIVE_UNUSED


class FlagStatus(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"


class FlagAction(str, Enum):
    DISMISS = "dismiss"
    DELETE = "delete"


class AnnouncementType(str, Enum):
    INFO = "info"
    WARNING = "warning"
    SUCCESS = "success"


@dataclass(frozen=True, slots=True)
class Post:
    id: UUID
    author_id: UUID
    content: str
    image_url: str | None = None
    likes_count: int = 0
    comments_count: int = 0
    created_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class Comment:
    id: UUID
    post_id: UUID
    author_id: UUID
    content: str
    created_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class Flag:
    id: UUID
    post_id: UUID | None
    reporter_id: UUID | None
    reason: str
    status: FlagStatus = FlagStatus.PENDING
    resolved_by: UUID | None = None
    resolved_at: datetime | None = None
    action: FlagAction | None = None
    created_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class Announcement:
    id: UUID
    title: str
    content: str
    announcement_type: AnnouncementType = AnnouncementType.INFO
    created_by: UUID | None = None
    created_at: datetime | None = None
