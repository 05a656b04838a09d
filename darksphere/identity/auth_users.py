"""
===============================================================================
TARJETA CRC — identity/auth_users.py
===============================================================================

Módulo:
    Autenticación de Usuarios (session JWT)

Responsabilidades:
    - Hashear/verificar passwords (Argon2).
    - Emitir session tokens HS256 (vida: session_ttl_days, default 7 días).
    - Decodificar y validar session tokens (firma, exp, claims mínimos).
    - Extraer token desde Authorization: Bearer o cookie httpOnly.
    - Exponer dependencias FastAPI (require_user, require_role) que resuelven
      el usuario vía el repo cacheado del container.

Colaboradores:
    - crosscutting.config.get_settings: secreto, TTL, cookie.
    - crosscutting.error_responses: unauthorized / forbidden estándar.
    - crosscutting.exceptions.AuthenticationError: token inválido (helpers puros).
    - container.get_user_repository: lookup de usuario (cache-aside).
    - identity.users: User / UserRole.

Decisiones de diseño:
    - La lógica criptográfica vive acá (borde de identidad), NO en dominio.
    - Los helpers puros levantan AuthenticationError; las dependencias FastAPI
      la traducen a 401.
    - No loguear secretos ni tokens.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable
from uuid import UUID

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from fastapi import Header, Request

from ..context import set_user_context
from ..crosscutting.config import get_settings
from ..crosscutting.error_responses import ErrorCode, forbidden, unauthorized
from ..crosscutting.exceptions import AuthenticationError
from ..crosscutting.logger import logger
from .users import User, UserRole

# ---------------------------------------------------------------------------
# Constantes
# ---------------------------------------------------------------------------

JWT_ALGORITHM: str = "HS256"

DEFAULT_SESSION_COOKIE: str = "darksphere_session"

CLAIM_SUB: str = "sub"
CLAIM_USERNAME: str = "username"
CLAIM_EMAIL: str = "email"
CLAIM_ROLE: str = "role"
CLAIM_IAT: str = "iat"
CLAIM_EXP: str = "exp"
CLAIM_TYP: str = "typ"

TOKEN_TYPE_SESSION: str = "session"

_password_hasher = PasswordHasher()


# ---------------------------------------------------------------------------
# Contratos internos
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AuthSettings:
    """Settings de auth (snapshot)."""

    jwt_secret: str
    session_ttl_days: int
    jwt_cookie_name: str
    jwt_cookie_secure: bool


@dataclass(frozen=True, slots=True)
class SessionClaims:
    """Claims mínimos que esperamos de un session token."""

    user_id: UUID
    username: str
    email: str
    role: UserRole


def get_auth_settings() -> AuthSettings:
    s = get_settings()
    return AuthSettings(
        jwt_secret=s.jwt_secret,
        session_ttl_days=s.session_ttl_days,
        jwt_cookie_name=s.jwt_cookie_name,
        jwt_cookie_secure=s.jwt_cookie_secure,
    )


# ---------------------------------------------------------------------------
# Passwords (Argon2)
# ---------------------------------------------------------------------------


def hash_password(password: str) -> str:
    return _password_hasher.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """Verifica password vs hash. Sin hash (identidad externa) -> False."""
    if not password_hash:
        return False
    try:
        return _password_hasher.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


# ---------------------------------------------------------------------------
# Session tokens (emitir / decodificar)
# ---------------------------------------------------------------------------


def create_session_token(
    user: User, settings: AuthSettings | None = None
) -> tuple[str, int]:
    """Crea un session token firmado.

    Retorna:
        (token, expires_in_seconds)
    """
    auth_settings = settings or get_auth_settings()

    now = datetime.now(timezone.utc)
    expires_in = int(timedelta(days=auth_settings.session_ttl_days).total_seconds())

    payload: dict[str, object] = {
        CLAIM_SUB: str(user.id),
        CLAIM_USERNAME: user.username,
        CLAIM_EMAIL: user.email,
        CLAIM_ROLE: user.role.value,
        CLAIM_IAT: int(now.timestamp()),
        CLAIM_EXP: int((now + timedelta(seconds=expires_in)).timestamp()),
        CLAIM_TYP: TOKEN_TYPE_SESSION,
    }

    token = jwt.encode(payload, auth_settings.jwt_secret, algorithm=JWT_ALGORITHM)
    return token, expires_in


def decode_session_token(
    token: str, settings: AuthSettings | None = None
) -> SessionClaims:
    """Decodifica y valida un session token.

    Errores:
        - AuthenticationError si expiró, la firma es inválida o faltan claims.
    """
    auth_settings = settings or get_auth_settings()

    try:
        payload = jwt.decode(
            token,
            auth_settings.jwt_secret,
            algorithms=[JWT_ALGORITHM],
            options={"require": [CLAIM_SUB, CLAIM_EMAIL, CLAIM_ROLE, CLAIM_EXP]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationError("Session token expired", original_error=exc) from exc
    except jwt.InvalidTokenError as exc:
        raise AuthenticationError("Invalid session token", original_error=exc) from exc

    if payload.get(CLAIM_TYP) != TOKEN_TYPE_SESSION:
        raise AuthenticationError("Invalid token type")

    try:
        return SessionClaims(
            user_id=UUID(str(payload[CLAIM_SUB])),
            username=str(payload.get(CLAIM_USERNAME) or ""),
            email=str(payload[CLAIM_EMAIL]),
            role=UserRole(str(payload[CLAIM_ROLE])),
        )
    except ValueError as exc:
        raise AuthenticationError("Invalid session token", original_error=exc) from exc


# ---------------------------------------------------------------------------
# Extracción de token (header/cookie)
# ---------------------------------------------------------------------------


def _extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    parts = authorization.strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1].strip() or None


def extract_access_token(request: Request, authorization: str | None) -> str | None:
    """Resuelve token desde Authorization o cookie."""
    token = _extract_bearer_token(authorization)
    if token:
        return token

    cookie_name = (
        get_auth_settings().jwt_cookie_name or ""
    ).strip() or DEFAULT_SESSION_COOKIE
    return request.cookies.get(cookie_name)


# ---------------------------------------------------------------------------
# Usuario actual + dependencias FastAPI
# ---------------------------------------------------------------------------


def get_current_user(token: str) -> User:
    """Resuelve el usuario actual (token -> claims -> repo cacheado)."""
    from ..container import get_user_repository

    try:
        claims = decode_session_token(token)
    except AuthenticationError as exc:
        raise unauthorized(exc.message) from exc

    user = get_user_repository().get_user_by_id(claims.user_id)
    if user is None:
        raise unauthorized("Invalid session token")
    if user.is_disabled:
        logger.warning("Auth rejected: disabled account", extra={"user_id": str(user.id)})
        raise forbidden("Account is disabled", code=ErrorCode.ACCOUNT_DISABLED)
    return user


def require_user() -> Callable:
    """Dependency FastAPI: requiere usuario autenticado por session token."""

    async def dependency(
        request: Request,
        authorization: str | None = Header(None, alias="Authorization"),
    ) -> User:
        token = extract_access_token(request, authorization)
        if not token:
            raise unauthorized("Missing session token")

        user = get_current_user(token)
        request.state.user = user
        set_user_context(str(user.id))
        return user

    return dependency


def require_role(role: UserRole | str) -> Callable:
    """Dependency FastAPI: requiere un rol específico."""
    required_role = UserRole(role)

    async def dependency(
        request: Request,
        authorization: str | None = Header(None, alias="Authorization"),
    ) -> User:
        user = await require_user()(request, authorization)
        if user.role != required_role:
            raise forbidden("Insufficient role")
        return user

    return dependency
