"""
===============================================================================
TARJETA CRC — darksphere/api/admin_routes.py (Administración)
===============================================================================

Responsabilidades:
  - Exponer endpoints admin: passcodes (security keys), usuarios, flags,
    auditoría y estadísticas de cache.
  - Reutilizar casos de uso (sin lógica de negocio en la capa HTTP).
  - Aplicar autorización estricta (rol admin vía session token).

Patrones aplicados:
  - Thin Controller: orquesta dependencias, no contiene reglas de negocio.
  - Dependency Injection (FastAPI Depends): inyección explícita de use cases.
  - Error Mapping: AdminErrorCode -> HTTP (RFC7807).

Colaboradores:
  - application.usecases.admin.*
  - identity.auth_users.require_role
  - container (factories + get_entity_caches)
===============================================================================
"""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ..application.usecases.admin import (
    AdminError,
    AdminErrorCode,
    DeactivateSecurityKeyUseCase,
    DeleteUserUseCase,
    DisableUserUseCase,
    GenerateKeysInput,
    GenerateSecurityKeysUseCase,
    ListAuditEventsUseCase,
    ListFlagsUseCase,
    ListSecurityKeysUseCase,
    ListUsersUseCase,
    ResolveFlagUseCase,
)
from ..container import (
    get_deactivate_key_use_case,
    get_delete_user_use_case,
    get_disable_user_use_case,
    get_entity_caches,
    get_generate_keys_use_case,
    get_list_audit_events_use_case,
    get_list_flags_use_case,
    get_list_keys_use_case,
    get_list_users_use_case,
    get_resolve_flag_use_case,
)
from ..crosscutting.error_responses import (
    OPENAPI_ERROR_RESPONSES,
    AppHTTPException,
    ErrorCode,
    conflict,
    forbidden,
    validation_error,
)
from ..domain.entities import FlagAction, FlagStatus, KeyTier
from ..identity.auth_users import require_role
from ..identity.users import User, UserRole
from .schemas import (
    AuditEventResponse,
    FlagResponse,
    SecurityKeyResponse,
    UserResponse,
    to_audit_event_response,
    to_flag_response,
    to_key_response,
    to_user_response,
)

router = APIRouter(prefix="/admin", tags=["admin"], responses=OPENAPI_ERROR_RESPONSES)

require_admin = require_role(UserRole.ADMIN)


# -----------------------------------------------------------------------------
# DTOs
# -----------------------------------------------------------------------------


class GenerateKeysReq(BaseModel):
    """Request: generar un lote de keys (o una key con valor custom)."""

    count: int = Field(default=1, description="Cantidad de keys (1..max_keys_per_batch)")
    tier: KeyTier = Field(default=KeyTier.USER)
    custom_value: str | None = Field(default=None, max_length=128)


class KeysListRes(BaseModel):
    keys: list[SecurityKeyResponse]


class UsersListRes(BaseModel):
    users: list[UserResponse]


class DisableUserReq(BaseModel):
    disabled: bool


class DeleteUserRes(BaseModel):
    deleted: bool
    posts_deleted: int
    comments_deleted: int
    likes_deleted: int
    keys_released: int


class FlagsListRes(BaseModel):
    flags: list[FlagResponse]


class ResolveFlagReq(BaseModel):
    action: FlagAction


class ResolveFlagRes(BaseModel):
    flag: FlagResponse
    post_deleted: bool


class AuditListRes(BaseModel):
    events: list[AuditEventResponse]


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def _raise_for_admin_error(error: AdminError) -> None:
    """Traduce AdminError (caso de uso) a HTTP."""
    if error.code == AdminErrorCode.VALIDATION_ERROR:
        raise validation_error(error.message)
    if error.code == AdminErrorCode.CONFLICT:
        raise conflict(error.message)
    if error.code == AdminErrorCode.NOT_FOUND:
        raise AppHTTPException(404, ErrorCode.NOT_FOUND, error.message)
    if error.code == AdminErrorCode.FORBIDDEN:
        raise forbidden(error.message)

    raise validation_error(error.message)


# -----------------------------------------------------------------------------
# Passcodes (security keys)
# -----------------------------------------------------------------------------


@router.get("/passcodes", response_model=KeysListRes, summary="Listar security keys")
def list_passcodes(
    tier: KeyTier | None = None,
    limit: int = Query(default=200, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    _admin: User = Depends(require_admin),
    use_case: ListSecurityKeysUseCase = Depends(get_list_keys_use_case),
):
    keys = use_case.execute(tier=tier, limit=limit, offset=offset)
    now = datetime.now(timezone.utc)
    return KeysListRes(keys=[to_key_response(k, now) for k in keys])


@router.post(
    "/passcodes",
    response_model=KeysListRes,
    status_code=201,
    summary="Generar security keys",
)
def generate_passcodes(
    req: GenerateKeysReq,
    actor: User = Depends(require_admin),
    use_case: GenerateSecurityKeysUseCase = Depends(get_generate_keys_use_case),
):
    """
    Genera keys de un solo uso.

    Reglas:
      - count en [1, max_keys_per_batch].
      - custom_value solo con count = 1; no puede duplicar una key activa.
    """
    result = use_case.execute(
        GenerateKeysInput(
            actor=actor,
            count=req.count,
            tier=req.tier,
            custom_value=req.custom_value,
        )
    )
    if result.error:
        _raise_for_admin_error(result.error)

    now = datetime.now(timezone.utc)
    return KeysListRes(keys=[to_key_response(k, now) for k in result.keys])


@router.delete(
    "/passcodes/{key_id}",
    response_model=SecurityKeyResponse,
    summary="Desactivar security key",
)
def deactivate_passcode(
    key_id: UUID,
    actor: User = Depends(require_admin),
    use_case: DeactivateSecurityKeyUseCase = Depends(get_deactivate_key_use_case),
):
    result = use_case.execute(actor, key_id)
    if result.error:
        _raise_for_admin_error(result.error)
    return to_key_response(result.key)


# -----------------------------------------------------------------------------
# Usuarios
# -----------------------------------------------------------------------------


@router.get("/users", response_model=UsersListRes, summary="Listar usuarios")
def list_users(
    limit: int = Query(default=200, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    _admin: User = Depends(require_admin),
    use_case: ListUsersUseCase = Depends(get_list_users_use_case),
):
    users = use_case.execute(limit=limit, offset=offset)
    return UsersListRes(users=[to_user_response(u) for u in users])


@router.post(
    "/users/{user_id}/disable",
    response_model=UserResponse,
    summary="Deshabilitar / habilitar usuario",
)
def disable_user(
    user_id: UUID,
    req: DisableUserReq,
    actor: User = Depends(require_admin),
    use_case: DisableUserUseCase = Depends(get_disable_user_use_case),
):
    result = use_case.execute(actor, user_id, req.disabled)
    if result.error:
        _raise_for_admin_error(result.error)
    return to_user_response(result.user)


@router.delete(
    "/users/{user_id}", response_model=DeleteUserRes, summary="Eliminar usuario"
)
def delete_user(
    user_id: UUID,
    actor: User = Depends(require_admin),
    use_case: DeleteUserUseCase = Depends(get_delete_user_use_case),
):
    """Elimina usuario + likes/comentarios/posts y libera su key."""
    result = use_case.execute(actor, user_id)
    if result.error:
        _raise_for_admin_error(result.error)
    return DeleteUserRes(
        deleted=result.deleted,
        posts_deleted=result.posts_deleted,
        comments_deleted=result.comments_deleted,
        likes_deleted=result.likes_deleted,
        keys_released=result.keys_released,
    )


# -----------------------------------------------------------------------------
# Flags
# -----------------------------------------------------------------------------


@router.get("/flags", response_model=FlagsListRes, summary="Listar flags")
def list_flags(
    status: FlagStatus | None = None,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    _admin: User = Depends(require_admin),
    use_case: ListFlagsUseCase = Depends(get_list_flags_use_case),
):
    flags = use_case.execute(status=status, limit=limit, offset=offset)
    return FlagsListRes(flags=[to_flag_response(f) for f in flags])


@router.post(
    "/flags/{flag_id}/resolve",
    response_model=ResolveFlagRes,
    summary="Resolver flag (dismiss | delete)",
)
def resolve_flag(
    flag_id: UUID,
    req: ResolveFlagReq,
    actor: User = Depends(require_admin),
    use_case: ResolveFlagUseCase = Depends(get_resolve_flag_use_case),
):
    result = use_case.execute(actor, flag_id, req.action)
    if result.error:
        _raise_for_admin_error(result.error)
    return ResolveFlagRes(
        flag=to_flag_response(result.flag), post_deleted=result.post_deleted
    )


# -----------------------------------------------------------------------------
# Auditoría / cache
# -----------------------------------------------------------------------------


@router.get("/audit", response_model=AuditListRes, summary="Listar eventos de auditoría")
def list_audit_events(
    actor_id: str | None = Query(default=None, alias="actor"),
    action: str | None = None,
    target_id: UUID | None = None,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    actor: User = Depends(require_admin),
    use_case: ListAuditEventsUseCase = Depends(get_list_audit_events_use_case),
):
    result = use_case.execute(
        actor,
        actor_filter=actor_id,
        action=action,
        target_id=target_id,
        limit=limit,
        offset=offset,
    )
    if result.error:
        _raise_for_admin_error(result.error)
    return AuditListRes(events=[to_audit_event_response(e) for e in result.events])


@router.get("/cache/stats", summary="Estadísticas de caches")
def cache_stats(_admin: User = Depends(require_admin)):
    return {"caches": get_entity_caches().stats()}
