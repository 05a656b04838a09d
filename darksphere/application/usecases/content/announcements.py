"""
===============================================================================
USE CASES: Announcements (list / create / delete)
===============================================================================

Notas:
    - Crear y eliminar son acciones admin y quedan auditadas.
    - El cache de anuncios se invalida en el decorador del repositorio.
===============================================================================
"""

from __future__ import annotations

from typing import List
from uuid import UUID, uuid4

from ....audit import ANNOUNCEMENT_CREATED, ANNOUNCEMENT_DELETED, emit_audit_event
from ....domain.entities import Announcement, AnnouncementType
from ....domain.repositories import AnnouncementRepository, AuditEventRepository
from ....identity.users import User
from .content_results import (
    AnnouncementResult,
    ContentError,
    ContentErrorCode,
    DeleteResult,
    invalid,
    not_found,
)

MAX_TITLE_LENGTH = 200
MAX_CONTENT_LENGTH = 2000

_ADMIN_ONLY = ContentError(ContentErrorCode.FORBIDDEN, "Admin role required")


class ListAnnouncementsUseCase:
    def __init__(self, announcements: AnnouncementRepository) -> None:
        self._announcements = announcements

    def execute(self, *, limit: int = 50) -> List[Announcement]:
        return self._announcements.list_announcements(limit=limit)


class CreateAnnouncementUseCase:
    def __init__(
        self,
        announcements: AnnouncementRepository,
        audit_repo: AuditEventRepository | None = None,
    ) -> None:
        self._announcements = announcements
        self._audit = audit_repo

    def execute(
        self,
        actor: User,
        *,
        title: str,
        content: str,
        announcement_type: AnnouncementType = AnnouncementType.INFO,
    ) -> AnnouncementResult:
        if not actor.is_admin:
            return AnnouncementResult(error=_ADMIN_ONLY)

        title = (title or "").strip()
        content = (content or "").strip()
        if not title or len(title) > MAX_TITLE_LENGTH:
            return AnnouncementResult(
                error=invalid(f"Title is required (max {MAX_TITLE_LENGTH} characters)")
            )
        if not content or len(content) > MAX_CONTENT_LENGTH:
            return AnnouncementResult(
                error=invalid(f"Content is required (max {MAX_CONTENT_LENGTH} characters)")
            )

        created = self._announcements.create_announcement(
            Announcement(
                id=uuid4(),
                title=title,
                content=content,
                announcement_type=announcement_type,
                created_by=actor.id,
            )
        )
        emit_audit_event(
            self._audit,
            action=ANNOUNCEMENT_CREATED,
            actor_user=actor,
            target_type="announcement",
            target_id=created.id,
            metadata={"type": announcement_type.value},
        )
        return AnnouncementResult(announcement=created)


class DeleteAnnouncementUseCase:
    def __init__(
        self,
        announcements: AnnouncementRepository,
        audit_repo: AuditEventRepository | None = None,
    ) -> None:
        self._announcements = announcements
        self._audit = audit_repo

    def execute(self, actor: User, announcement_id: UUID) -> DeleteResult:
        if not actor.is_admin:
            return DeleteResult(error=_ADMIN_ONLY)

        if not self._announcements.delete_announcement(announcement_id):
            return DeleteResult(error=not_found("Announcement"))

        emit_audit_event(
            self._audit,
            action=ANNOUNCEMENT_DELETED,
            actor_user=actor,
            target_type="announcement",
            target_id=announcement_id,
        )
        return DeleteResult(deleted=True)
