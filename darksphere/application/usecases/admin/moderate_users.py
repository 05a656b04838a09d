"""
===============================================================================
USE CASES: Moderate Users (list / disable / delete)
===============================================================================

Business Goal:
    Permitir a un admin deshabilitar o eliminar cuentas manteniendo la
    integridad de keys, contenido y cache.

Why (Context / Intención):
    - Eliminar un usuario libera su key: el privilegio vuelve a quedar
      disponible para otra persona.
    - La cascada va de hojas a raíz (likes, comentarios, posts, usuario) y la
      liberación de keys ocurre solo si el usuario efectivamente se eliminó.
    - Un admin no puede deshabilitarse ni eliminarse a sí mismo.

-------------------------------------------------------------------------------
CRC CARD
-------------------------------------------------------------------------------
Classes:
    ListUsersUseCase, DisableUserUseCase, DeleteUserUseCase

Collaborators:
    - UserRepository / PostRepository (decoradores cache-aside: invalidan)
    - SecurityKeyRepository.release
    - IdentityProviderAdmin (opcional)
    - emit_audit_event
===============================================================================
"""

from __future__ import annotations

from typing import List
from uuid import UUID

from ....audit import USER_DELETED, USER_DISABLED, USER_ENABLED, emit_audit_event
from ....crosscutting.logger import logger
from ....domain.repositories import (
    AuditEventRepository,
    PostRepository,
    SecurityKeyRepository,
    UserRepository,
)
from ....identity.external_identity import IdentityProviderAdmin
from ....identity.users import User
from .admin_results import (
    AdminError,
    AdminErrorCode,
    DeleteUserResult,
    UserResult,
    forbidden_non_admin,
)

_SELF_ACTION = AdminError(
    AdminErrorCode.FORBIDDEN, "Admins cannot perform this action on their own account"
)
_NOT_FOUND = AdminError(AdminErrorCode.NOT_FOUND, "User not found")


class ListUsersUseCase:
    def __init__(self, users: UserRepository) -> None:
        self._users = users

    def execute(self, *, limit: int = 200, offset: int = 0) -> List[User]:
        return self._users.list_users(limit=limit, offset=offset)


class DisableUserUseCase:
    def __init__(
        self,
        users: UserRepository,
        audit_repo: AuditEventRepository | None = None,
        *,
        identity_admin: IdentityProviderAdmin | None = None,
    ) -> None:
        self._users = users
        self._audit = audit_repo
        self._identity_admin = identity_admin

    def execute(self, actor: User, user_id: UUID, disabled: bool) -> UserResult:
        error = forbidden_non_admin(actor)
        if error:
            return UserResult(error=error)
        if actor.id == user_id:
            return UserResult(error=_SELF_ACTION)

        updated = self._users.set_user_disabled(user_id, disabled)
        if updated is None:
            return UserResult(error=_NOT_FOUND)

        if self._identity_admin is not None and updated.external_id:
            self._identity_admin.set_disabled(updated.external_id, disabled)

        emit_audit_event(
            self._audit,
            action=USER_DISABLED if disabled else USER_ENABLED,
            actor_user=actor,
            target_type="user",
            target_id=user_id,
            metadata={"username": updated.username},
        )
        return UserResult(user=updated)


class DeleteUserUseCase:
    def __init__(
        self,
        users: UserRepository,
        posts: PostRepository,
        keys: SecurityKeyRepository,
        audit_repo: AuditEventRepository | None = None,
        *,
        identity_admin: IdentityProviderAdmin | None = None,
    ) -> None:
        self._users = users
        self._posts = posts
        self._keys = keys
        self._audit = audit_repo
        self._identity_admin = identity_admin

    def execute(self, actor: User, user_id: UUID) -> DeleteUserResult:
        error = forbidden_non_admin(actor)
        if error:
            return DeleteUserResult(error=error)
        if actor.id == user_id:
            return DeleteUserResult(error=_SELF_ACTION)

        target = self._users.get_user_by_id(user_id)
        if target is None:
            return DeleteUserResult(error=_NOT_FOUND)

        # Cascada: hojas -> raíz
        likes_deleted = self._posts.delete_likes_by_user(user_id)
        comments_deleted = self._posts.delete_comments_by_user(user_id)
        posts_deleted = self._posts.delete_posts_by_author(user_id)

        if not self._users.delete_user(user_id):
            # Otra request ganó la eliminación.
            return DeleteUserResult(error=_NOT_FOUND)

        keys_released = self._keys.release(user_id)

        if self._identity_admin is not None and target.external_id:
            try:
                self._identity_admin.delete_identity(target.external_id)
            except Exception as exc:
                logger.warning(
                    "Identity provider account removal failed",
                    extra={"user_id": str(user_id), "error": str(exc)},
                )

        emit_audit_event(
            self._audit,
            action=USER_DELETED,
            actor_user=actor,
            target_type="user",
            target_id=user_id,
            metadata={
                "username": target.username,
                "posts_deleted": posts_deleted,
                "keys_released": keys_released,
            },
        )
        logger.info(
            "User deleted",
            extra={
                "user_id": str(user_id),
                "posts_deleted": posts_deleted,
                "keys_released": keys_released,
            },
        )
        return DeleteUserResult(
            deleted=True,
            posts_deleted=posts_deleted,
            comments_deleted=comments_deleted,
            likes_deleted=likes_deleted,
            keys_released=keys_released,
        )
