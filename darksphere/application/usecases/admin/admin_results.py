"""
===============================================================================
ADMIN USE CASE RESULTS (Shared Result / Error Models)
===============================================================================

Business Goal:
    Contrato común de errores y resultados para los casos de uso de
    administración (keys, usuarios, flags, auditoría).

-------------------------------------------------------------------------------
CRC CARD
-------------------------------------------------------------------------------
Responsibilities:
    - AdminErrorCode: categorías estables.
    - AdminError: code + message.
    - Resultados tipados por comando / query.

Collaborators:
    - domain.entities (SecurityKey, Flag), identity.users.User, domain.audit
    - api.admin_routes (mapeo a HTTP)
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List

from ....domain.audit import AuditEvent
from ....domain.entities import Flag, SecurityKey
from ....identity.users import User


class AdminErrorCode(str, Enum):
    """
    Códigos:
      - VALIDATION_ERROR: input inválido (count fuera de rango, key custom mal formada).
      - FORBIDDEN: actor sin rol admin, o acción sobre la propia cuenta.
      - NOT_FOUND: recurso inexistente (o eliminado por una request concurrente).
      - CONFLICT: duplicado / ya resuelto.
    """

    VALIDATION_ERROR = "VALIDATION_ERROR"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"


@dataclass(frozen=True)
class AdminError:
    code: AdminErrorCode
    message: str


@dataclass
class KeyBatchResult:
    keys: List[SecurityKey] = field(default_factory=list)
    error: AdminError | None = None


@dataclass
class KeyResult:
    key: SecurityKey | None = None
    error: AdminError | None = None


@dataclass
class UserResult:
    user: User | None = None
    error: AdminError | None = None


@dataclass
class DeleteUserResult:
    """Resultado de la cascada de eliminación de usuario."""

    deleted: bool = False
    posts_deleted: int = 0
    comments_deleted: int = 0
    likes_deleted: int = 0
    keys_released: int = 0
    error: AdminError | None = None


@dataclass
class FlagResult:
    flag: Flag | None = None
    post_deleted: bool = False
    error: AdminError | None = None


@dataclass
class AuditListResult:
    events: List[AuditEvent] = field(default_factory=list)
    error: AdminError | None = None


def forbidden_non_admin(actor: User | None) -> AdminError | None:
    """R: Defensa en profundidad; el router ya exige rol admin."""
    if actor is None or not actor.is_admin or actor.is_disabled:
        return AdminError(AdminErrorCode.FORBIDDEN, "Admin role required")
    return None
