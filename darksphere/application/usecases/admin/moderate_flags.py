"""
===============================================================================
USE CASES: Moderate Flags (list / resolve)
===============================================================================

Business Goal:
    Resolver reportes de contenido: descartar el reporte o eliminar el post.

Notas:
    - resolve_flag es un check-and-set atómico en el repo: si dos admins
      resuelven a la vez, el segundo recibe CONFLICT y no borra nada.
    - Eliminar el post invalida su entrada y los listados (CachingPostRepository).
===============================================================================
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, List
from uuid import UUID

from ....audit import FLAG_DISMISSED, POST_DELETED, emit_audit_event
from ....domain.entities import Flag, FlagAction, FlagStatus
from ....domain.repositories import AuditEventRepository, FlagRepository, PostRepository
from ....identity.users import User
from .admin_results import AdminError, AdminErrorCode, FlagResult, forbidden_non_admin


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ListFlagsUseCase:
    def __init__(self, flags: FlagRepository) -> None:
        self._flags = flags

    def execute(
        self,
        *,
        status: FlagStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Flag]:
        return self._flags.list_flags(status=status, limit=limit, offset=offset)


class ResolveFlagUseCase:
    def __init__(
        self,
        flags: FlagRepository,
        posts: PostRepository,
        audit_repo: AuditEventRepository | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._flags = flags
        self._posts = posts
        self._audit = audit_repo
        self._clock = clock

    def execute(self, actor: User, flag_id: UUID, action: FlagAction) -> FlagResult:
        error = forbidden_non_admin(actor)
        if error:
            return FlagResult(error=error)

        flag = self._flags.get_flag(flag_id)
        if flag is None:
            return FlagResult(error=AdminError(AdminErrorCode.NOT_FOUND, "Flag not found"))

        resolved = self._flags.resolve_flag(
            flag_id, resolved_by=actor.id, action=action, now=self._clock()
        )
        if resolved is None:
            return FlagResult(
                error=AdminError(AdminErrorCode.CONFLICT, "Flag is already resolved")
            )

        if action == FlagAction.DELETE:
            # R: post_id es NULL si el post ya no existe (ON DELETE SET NULL).
            post_deleted = (
                self._posts.delete_post(resolved.post_id)
                if resolved.post_id is not None
                else False
            )
            emit_audit_event(
                self._audit,
                action=POST_DELETED,
                actor_user=actor,
                target_type="post",
                target_id=resolved.post_id,
                metadata={
                    "flag_id": str(flag_id),
                    "reason": resolved.reason,
                    "post_deleted": post_deleted,
                },
            )
            return FlagResult(flag=resolved, post_deleted=post_deleted)

        emit_audit_event(
            self._audit,
            action=FLAG_DISMISSED,
            actor_user=actor,
            target_type="flag",
            target_id=flag_id,
            metadata={"post_id": str(resolved.post_id) if resolved.post_id else None},
        )
        return FlagResult(flag=resolved)
