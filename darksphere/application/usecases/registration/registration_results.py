"""
===============================================================================
REGISTRATION USE CASE RESULTS (Shared Result / Error Models)
===============================================================================

Name:
    Registration Use Case Results

Business Goal:
    Contrato estable de resultados y errores para registro, login, verificación
    de sesión / identidad externa y validación de keys.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Component:
    registration_results models (module)

Responsibilities:
    - Definir RegistrationErrorCode (categorías estables, no mensajes).
    - Representar RegistrationError (code + message).
    - Representar resultados: RegistrationResult, SessionResult, KeyCheckResult.

Collaborators:
    - identity.users.User
    - domain.entities.KeyTier
    - api.auth_routes / api.key_routes (mapeo a HTTP)
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ....domain.entities import KeyTier
from ....identity.users import User


class RegistrationErrorCode(str, Enum):
    """
    Códigos:
      - VALIDATION_ERROR: input faltante o mal formado.
      - INVALID_KEY: key inexistente o desactivada.
      - KEY_ALREADY_USED: key consumida (o carrera perdida al consumir).
      - KEY_EXPIRED: key vencida (expires_at en el pasado).
      - INVALID_CREDENTIAL: token / password inválido o expirado.
      - DUPLICATE: username/email ya registrados con otra credencial.
      - NOT_REGISTERED: credencial válida sin perfil.
      - DISABLED: cuenta deshabilitada por un admin.
      - SERVICE_UNAVAILABLE: proveedor de identidad inalcanzable.
    """

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_KEY = "INVALID_KEY"
    KEY_ALREADY_USED = "KEY_ALREADY_USED"
    KEY_EXPIRED = "KEY_EXPIRED"
    INVALID_CREDENTIAL = "INVALID_CREDENTIAL"
    DUPLICATE = "DUPLICATE"
    NOT_REGISTERED = "NOT_REGISTERED"
    DISABLED = "DISABLED"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


@dataclass(frozen=True)
class RegistrationError:
    code: RegistrationErrorCode
    message: str


@dataclass
class RegistrationResult:
    """
    Resultado de registro / login.

    Contrato:
      - éxito: user + access_token + expires_in
      - already_registered=True: replay idempotente (no se consumió key)
    """

    user: User | None = None
    access_token: str | None = None
    expires_in: int = 0
    already_registered: bool = False
    error: RegistrationError | None = None


@dataclass
class SessionResult:
    """Resultado de verificación (session token o identidad externa)."""

    user: User | None = None
    error: RegistrationError | None = None


@dataclass
class KeyCheckResult:
    """Resultado de /validate-key (nunca consume)."""

    valid: bool
    key_type: KeyTier | None = None
    message: str = ""
    error: RegistrationError | None = None
