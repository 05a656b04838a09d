"""
===============================================================================
TARJETA CRC — identity/external_identity.py
===============================================================================

Módulo:
    Verificación de identidad externa (tokens OIDC firmados, JWKS)

Responsabilidades:
    - Definir el puerto ExternalIdentityVerifier (token -> ExternalIdentity).
    - Implementación JWKS con PyJWKClient (RS256/ES256) y timeout acotado.
    - Traducir fallas:
        * token inválido / expirado / audience o issuer incorrectos -> AuthenticationError
        * JWKS inalcanzable / timeout -> ServiceUnavailableError
    - Definir el puerto opcional IdentityProviderAdmin (reflejar disable/delete
      en el proveedor externo).

Colaboradores:
    - PyJWT (jwt.PyJWKClient, jwt.decode)
    - application.usecases.registration.register_user / verify_identity_token
    - application.usecases.admin.moderate_users (IdentityProviderAdmin)
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import jwt
from jwt import PyJWKClient
from jwt.exceptions import InvalidTokenError, PyJWKClientConnectionError, PyJWKClientError

from ..crosscutting.exceptions import AuthenticationError, ServiceUnavailableError
from ..crosscutting.logger import logger

SUPPORTED_ALGORITHMS = ["RS256", "ES256"]
LEEWAY_SECONDS = 60


@dataclass(frozen=True, slots=True)
class ExternalIdentity:
    """Identidad verificada por el proveedor externo."""

    external_id: str
    email: str
    display_name: str | None = None


class ExternalIdentityVerifier(Protocol):
    def verify(self, identity_token: str) -> ExternalIdentity:
        """R: AuthenticationError / ServiceUnavailableError ante fallas."""
        ...


class IdentityProviderAdmin(Protocol):
    """R: Operaciones administrativas en el proveedor externo (opcional)."""

    def set_disabled(self, external_id: str, disabled: bool) -> None: ...

    def delete_identity(self, external_id: str) -> None: ...


class JWKSIdentityVerifier:
    """Verifica tokens firmados contra el JWKS del proveedor."""

    def __init__(
        self,
        jwks_url: str,
        *,
        audience: str | None = None,
        issuer: str | None = None,
        timeout_seconds: float = 5.0,
        jwk_client: PyJWKClient | None = None,
    ) -> None:
        self._audience = audience or None
        self._issuer = issuer or None
        self._client = jwk_client or PyJWKClient(
            jwks_url, cache_keys=True, timeout=int(max(timeout_seconds, 1))
        )

    def verify(self, identity_token: str) -> ExternalIdentity:
        token = (identity_token or "").strip()
        if not token:
            raise AuthenticationError("Identity token is required")

        try:
            signing_key = self._client.get_signing_key_from_jwt(token).key
            payload = jwt.decode(
                token,
                signing_key,
                algorithms=SUPPORTED_ALGORITHMS,
                audience=self._audience,
                issuer=self._issuer,
                leeway=LEEWAY_SECONDS,
                options={
                    "require": ["sub", "exp"],
                    "verify_aud": self._audience is not None,
                },
            )
        except PyJWKClientConnectionError as exc:
            logger.error("Identity provider unreachable", extra={"error": str(exc)})
            raise ServiceUnavailableError(
                "Identity provider unavailable", original_error=exc
            ) from exc
        except PyJWKClientError as exc:
            # Key id desconocido en el JWKS: credencial no verificable.
            raise AuthenticationError("Unknown signing key", original_error=exc) from exc
        except InvalidTokenError as exc:
            raise AuthenticationError(
                "Invalid or expired identity token", original_error=exc
            ) from exc

        email = payload.get("email")
        if not isinstance(email, str) or not email.strip():
            raise AuthenticationError("Identity token missing email")

        name = payload.get("name")
        return ExternalIdentity(
            external_id=str(payload["sub"]),
            email=email.strip().lower(),
            display_name=name if isinstance(name, str) and name.strip() else None,
        )
