"""
USE CASE: List Audit Events (admin, read-only).
"""

from __future__ import annotations

from uuid import UUID

from ....domain.repositories import AuditEventRepository
from ....identity.users import User
from .admin_results import AuditListResult, forbidden_non_admin

MAX_AUDIT_PAGE = 200


class ListAuditEventsUseCase:
    def __init__(self, audit_repo: AuditEventRepository) -> None:
        self._audit = audit_repo

    def execute(
        self,
        actor: User,
        *,
        actor_filter: str | None = None,
        action: str | None = None,
        target_id: UUID | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> AuditListResult:
        error = forbidden_non_admin(actor)
        if error:
            return AuditListResult(error=error)

        events = self._audit.list_events(
            actor=actor_filter,
            action=action,
            target_id=target_id,
            limit=min(max(limit, 1), MAX_AUDIT_PAGE),
            offset=max(offset, 0),
        )
        return AuditListResult(events=events)
