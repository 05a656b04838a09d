"""
===============================================================================
USE CASE: Register User (key-gated)
===============================================================================

Name:
    Register User Use Case

Business Goal:
    Dar de alta un usuario SOLO si presenta una security key válida, sin usar
    y no vencida; consumir la key exactamente una vez y emitir una sesión.

Why (Context / Intención):
    - La key es un privilegio de un solo uso: dos registros no pueden compartir
      la misma key (ni su tier).
    - Crear usuario y consumir key son dos escrituras: si la segunda falla, la
      primera se compensa (se elimina el usuario) para no dejar un usuario
      "colgado" de una key que no consumió.
    - Un reintento del mismo cliente (mismo external_id, o mismo username/email
      con el mismo password) es idempotente: devuelve el perfil existente sin
      consumir otra key.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    RegisterUserUseCase

Responsibilities:
    - Validar input (key no vacía, username/email/password/display name).
    - Resolver la key contra el store (nunca desde cache).
    - Verificar identidad externa si viene identity_token.
    - Cortocircuitar registros ya existentes (idempotencia).
    - Derivar rol (admin_email > tier de la key).
    - Crear usuario + consumir key atómicamente, con compensación.
    - Emitir session token.

Collaborators:
    - SecurityKeyRepository (get_by_value, consume)
    - UserRepository (cache-aside; create/get/delete)
    - ExternalIdentityVerifier (opcional)
    - identity.auth_users (hash/verify password, create_session_token)
    - domain.registration_policy (validaciones y derive_role)
    - crosscutting.metrics (outcomes de registro, conflictos de consumo)

-------------------------------------------------------------------------------
ERROR MAPPING
-------------------------------------------------------------------------------
    VALIDATION_ERROR     -> input inválido
    INVALID_KEY          -> key inexistente / desactivada
    INVALID_CREDENTIAL   -> identity token inválido / expirado
    SERVICE_UNAVAILABLE  -> proveedor de identidad inalcanzable
    DUPLICATE            -> username/email tomados con otra credencial
    DISABLED             -> replay de una cuenta deshabilitada
    KEY_ALREADY_USED     -> key usada o carrera perdida en consume
    KEY_EXPIRED          -> key vencida
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable
from uuid import uuid4

from ....crosscutting.exceptions import (
    AuthenticationError,
    DuplicateRecordError,
    ServiceUnavailableError,
)
from ....crosscutting.logger import logger
from ....crosscutting.metrics import record_key_consume_conflict, record_registration
from ....domain.entities import SecurityKey
from ....domain.registration_policy import (
    derive_role,
    normalize_email,
    normalize_key_value,
    username_from_email,
    validate_display_name,
    validate_email,
    validate_password,
    validate_username,
)
from ....domain.repositories import SecurityKeyRepository, UserRepository
from ....identity.auth_users import create_session_token, hash_password, verify_password
from ....identity.external_identity import ExternalIdentity, ExternalIdentityVerifier
from ....identity.users import User
from .registration_results import (
    RegistrationError,
    RegistrationErrorCode,
    RegistrationResult,
)


@dataclass(frozen=True)
class RegistrationInput:
    """
    DTO de entrada.

    Dos formas de identidad:
      - username + email + password (+ display_name opcional)
      - identity_token (verificado contra el proveedor externo)
    """

    key: str
    username: str | None = None
    email: str | None = None
    password: str | None = None
    display_name: str | None = None
    identity_token: str | None = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RegisterUserUseCase:
    def __init__(
        self,
        keys: SecurityKeyRepository,
        users: UserRepository,
        *,
        admin_email: str = "",
        identity_verifier: ExternalIdentityVerifier | None = None,
        token_issuer: Callable[[User], tuple[str, int]] = create_session_token,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._keys = keys
        self._users = users
        self._admin_email = admin_email
        self._verifier = identity_verifier
        self._issue_token = token_issuer
        self._clock = clock

    # ---------------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------------
    def _fail(self, code: RegistrationErrorCode, message: str) -> RegistrationResult:
        record_registration(code.value.lower())
        return RegistrationResult(error=RegistrationError(code=code, message=message))

    def _success(self, user: User, *, already_registered: bool) -> RegistrationResult:
        token, expires_in = self._issue_token(user)
        record_registration("replay" if already_registered else "created")
        return RegistrationResult(
            user=user,
            access_token=token,
            expires_in=expires_in,
            already_registered=already_registered,
        )

    def _validate_credentials(self, data: RegistrationInput) -> str | None:
        for message in (
            validate_username(data.username or ""),
            validate_email(normalize_email(data.email)),
            validate_password(data.password or ""),
        ):
            if message:
                return message
        if data.display_name is not None:
            return validate_display_name(data.display_name)
        return None

    def _find_existing(
        self, data: RegistrationInput, identity: ExternalIdentity | None
    ) -> tuple[User | None, RegistrationResult | None]:
        """
        R: Cortocircuito de idempotencia.

        Retorna (usuario existente reutilizable, None) o (None, resultado de error).
        """
        if identity is not None:
            existing = self._users.get_user_by_external_id(identity.external_id)
            if existing is not None:
                return existing, None
            if self._users.get_user_by_email(identity.email) is not None:
                return None, self._fail(
                    RegistrationErrorCode.DUPLICATE, "Email is already registered"
                )
            return None, None

        by_username = self._users.get_user_by_username(data.username or "")
        by_email = self._users.get_user_by_email(normalize_email(data.email))
        if by_username is None and by_email is None:
            return None, None

        if (
            by_username is not None
            and by_email is not None
            and by_username.id == by_email.id
            and verify_password(data.password or "", by_username.password_hash)
        ):
            return by_username, None

        field = "Username" if by_username is not None else "Email"
        return None, self._fail(
            RegistrationErrorCode.DUPLICATE, f"{field} is already registered"
        )

    def _build_user(
        self,
        data: RegistrationInput,
        key: SecurityKey,
        identity: ExternalIdentity | None,
    ) -> User:
        email = identity.email if identity else normalize_email(data.email)
        if identity is not None:
            username = (data.username or "").strip() or username_from_email(email)
            display_name = (data.display_name or identity.display_name or username).strip()
            password_hash = None
        else:
            username = (data.username or "").strip()
            display_name = (data.display_name or username).strip()
            password_hash = hash_password(data.password or "")

        return User(
            id=uuid4(),
            username=username,
            email=email,
            display_name=display_name,
            role=derive_role(email=email, key_tier=key.tier, admin_email=self._admin_email),
            password_hash=password_hash,
            external_id=identity.external_id if identity else None,
            security_key_id=key.id,
        )

    def _consume_failure(self, key_value: str) -> RegistrationResult:
        """R: Relee la key para reportar la causa real (desactivada, vencida o usada)."""
        key = self._keys.get_by_value(key_value)
        if key is None or not key.is_active:
            return self._fail(RegistrationErrorCode.INVALID_KEY, "Invalid security key")
        if not key.is_used and key.is_expired(self._clock()):
            return self._fail(RegistrationErrorCode.KEY_EXPIRED, "Security key has expired")

        record_key_consume_conflict()
        return self._fail(
            RegistrationErrorCode.KEY_ALREADY_USED, "Security key has already been used"
        )

    def _compensate(self, user: User) -> None:
        """R: Deshace la creación del usuario cuando consume no se concretó."""
        try:
            self._users.delete_user(user.id)
        except Exception:
            logger.exception(
                "Registration compensation failed; orphan user requires cleanup",
                extra={"user_id": str(user.id)},
            )
            raise

    # ---------------------------------------------------------------------
    # Caso de uso
    # ---------------------------------------------------------------------
    def execute(self, data: RegistrationInput) -> RegistrationResult:
        # 1) Validación de input
        key_value = normalize_key_value(data.key)
        if not key_value:
            return self._fail(
                RegistrationErrorCode.VALIDATION_ERROR, "Security key is required"
            )

        if not data.identity_token:
            message = self._validate_credentials(data)
            if message:
                return self._fail(RegistrationErrorCode.VALIDATION_ERROR, message)
        elif data.username is not None and validate_username(data.username):
            return self._fail(
                RegistrationErrorCode.VALIDATION_ERROR, validate_username(data.username)
            )

        # 2) Key (siempre contra el store)
        key = self._keys.get_by_value(key_value)
        if key is None or not key.is_active:
            return self._fail(RegistrationErrorCode.INVALID_KEY, "Invalid security key")

        # 3) Identidad externa
        identity: ExternalIdentity | None = None
        if data.identity_token:
            if self._verifier is None:
                return self._fail(
                    RegistrationErrorCode.SERVICE_UNAVAILABLE,
                    "External identity provider is not configured",
                )
            try:
                identity = self._verifier.verify(data.identity_token)
            except AuthenticationError as exc:
                return self._fail(RegistrationErrorCode.INVALID_CREDENTIAL, exc.message)
            except ServiceUnavailableError as exc:
                return self._fail(RegistrationErrorCode.SERVICE_UNAVAILABLE, exc.message)

        # 4) Idempotencia: perfil ya existente
        existing, failure = self._find_existing(data, identity)
        if failure is not None:
            return failure
        if existing is not None:
            if existing.is_disabled:
                return self._fail(RegistrationErrorCode.DISABLED, "Account is disabled")
            logger.info(
                "Registration replay: returning existing profile",
                extra={"user_id": str(existing.id)},
            )
            return self._success(existing, already_registered=True)

        # 5) Estado de la key
        now = self._clock()
        if key.is_used:
            return self._fail(
                RegistrationErrorCode.KEY_ALREADY_USED, "Security key has already been used"
            )
        if key.is_expired(now):
            return self._fail(RegistrationErrorCode.KEY_EXPIRED, "Security key has expired")

        # 6) + 7) Crear usuario y consumir key
        user = self._build_user(data, key, identity)
        try:
            created = self._users.create_user(user)
        except DuplicateRecordError:
            return self._fail(
                RegistrationErrorCode.DUPLICATE, "Username or email is already registered"
            )

        try:
            consumed = self._keys.consume(key_value, created.id, now=now)
        except Exception:
            self._compensate(created)
            raise

        if consumed is None:
            self._compensate(created)
            logger.info(
                "Key consumption lost; registration rolled back",
                extra={"user_id": str(created.id)},
            )
            return self._consume_failure(key_value)

        logger.info(
            "User registered",
            extra={"user_id": str(created.id), "role": created.role.value},
        )

        # 8) Sesión
        return self._success(created, already_registered=False)
