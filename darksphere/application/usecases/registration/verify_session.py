"""
===============================================================================
USE CASE: Verify Session
===============================================================================

Business Goal:
    Validar un session token y devolver el perfil ACTUAL del usuario
    (re-leído vía cache), detectando cuentas deshabilitadas o eliminadas
    después de emitido el token.

Error Mapping:
    - INVALID_CREDENTIAL: token mal formado / firma inválida / expirado
    - NOT_REGISTERED: el token es válido pero el perfil ya no existe
    - DISABLED: la cuenta fue deshabilitada
===============================================================================
"""

from __future__ import annotations

from ....crosscutting.exceptions import AuthenticationError
from ....domain.repositories import UserRepository
from ....identity.auth_users import decode_session_token
from .registration_results import RegistrationError, RegistrationErrorCode, SessionResult


class VerifySessionUseCase:
    def __init__(self, users: UserRepository) -> None:
        self._users = users

    def execute(self, token: str) -> SessionResult:
        if not (token or "").strip():
            return SessionResult(
                error=RegistrationError(
                    RegistrationErrorCode.INVALID_CREDENTIAL, "Session token is required"
                )
            )

        try:
            claims = decode_session_token(token.strip())
        except AuthenticationError as exc:
            return SessionResult(
                error=RegistrationError(RegistrationErrorCode.INVALID_CREDENTIAL, exc.message)
            )

        user = self._users.get_user_by_id(claims.user_id)
        if user is None:
            return SessionResult(
                error=RegistrationError(
                    RegistrationErrorCode.NOT_REGISTERED, "User profile not found"
                )
            )
        if user.is_disabled:
            return SessionResult(
                error=RegistrationError(RegistrationErrorCode.DISABLED, "Account is disabled")
            )
        return SessionResult(user=user)
