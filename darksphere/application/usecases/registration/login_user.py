"""
===============================================================================
USE CASE: Login User
===============================================================================

Business Goal:
    Autenticar por username o email + password y emitir una sesión nueva.

Seguridad:
    - No diferenciamos "usuario no existe" vs "password incorrecto".
    - Identidades externas (sin password_hash) no pueden loguearse por acá.
===============================================================================
"""

from __future__ import annotations

from typing import Callable

from ....crosscutting.logger import logger
from ....domain.registration_policy import normalize_email
from ....domain.repositories import UserRepository
from ....identity.auth_users import create_session_token, verify_password
from ....identity.users import User
from .registration_results import (
    RegistrationError,
    RegistrationErrorCode,
    RegistrationResult,
)

_INVALID = RegistrationError(
    RegistrationErrorCode.INVALID_CREDENTIAL, "Invalid username/email or password"
)


class LoginUserUseCase:
    def __init__(
        self,
        users: UserRepository,
        *,
        token_issuer: Callable[[User], tuple[str, int]] = create_session_token,
    ) -> None:
        self._users = users
        self._issue_token = token_issuer

    def execute(self, identifier: str, password: str) -> RegistrationResult:
        identifier = (identifier or "").strip()
        if not identifier or not password:
            return RegistrationResult(
                error=RegistrationError(
                    RegistrationErrorCode.VALIDATION_ERROR,
                    "Username/email and password are required",
                )
            )

        if "@" in identifier:
            user = self._users.get_user_by_email(normalize_email(identifier))
        else:
            user = self._users.get_user_by_username(identifier)

        if user is None or not verify_password(password, user.password_hash):
            return RegistrationResult(error=_INVALID)

        if user.is_disabled:
            logger.warning("Login rejected: disabled account", extra={"user_id": str(user.id)})
            return RegistrationResult(
                error=RegistrationError(RegistrationErrorCode.DISABLED, "Account is disabled")
            )

        token, expires_in = self._issue_token(user)
        return RegistrationResult(user=user, access_token=token, expires_in=expires_in)
