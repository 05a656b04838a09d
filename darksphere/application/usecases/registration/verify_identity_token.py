"""
===============================================================================
USE CASE: Verify Identity Token
===============================================================================

Business Goal:
    Resolver un token del proveedor externo a un perfil registrado. Permite al
    cliente distinguir "credencial válida pero sin perfil" (debe registrarse
    con una key) de "credencial inválida".

Error Mapping:
    - INVALID_CREDENTIAL: token inválido / expirado
    - SERVICE_UNAVAILABLE: proveedor inalcanzable o no configurado
    - NOT_REGISTERED: no existe perfil con ese external_id
    - DISABLED: cuenta deshabilitada
===============================================================================
"""

from __future__ import annotations

from ....crosscutting.exceptions import AuthenticationError, ServiceUnavailableError
from ....domain.repositories import UserRepository
from ....identity.external_identity import ExternalIdentityVerifier
from .registration_results import RegistrationError, RegistrationErrorCode, SessionResult


class VerifyIdentityTokenUseCase:
    def __init__(
        self,
        users: UserRepository,
        verifier: ExternalIdentityVerifier | None,
    ) -> None:
        self._users = users
        self._verifier = verifier

    def execute(self, identity_token: str) -> SessionResult:
        if self._verifier is None:
            return SessionResult(
                error=RegistrationError(
                    RegistrationErrorCode.SERVICE_UNAVAILABLE,
                    "External identity provider is not configured",
                )
            )

        try:
            identity = self._verifier.verify(identity_token)
        except AuthenticationError as exc:
            return SessionResult(
                error=RegistrationError(RegistrationErrorCode.INVALID_CREDENTIAL, exc.message)
            )
        except ServiceUnavailableError as exc:
            return SessionResult(
                error=RegistrationError(RegistrationErrorCode.SERVICE_UNAVAILABLE, exc.message)
            )

        user = self._users.get_user_by_external_id(identity.external_id)
        if user is None:
            return SessionResult(
                error=RegistrationError(
                    RegistrationErrorCode.NOT_REGISTERED,
                    "User not registered. Please complete registration with a security key.",
                )
            )
        if user.is_disabled:
            return SessionResult(
                error=RegistrationError(RegistrationErrorCode.DISABLED, "Account is disabled")
            )
        return SessionResult(user=user)
