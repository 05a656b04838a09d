"""
===============================================================================
USE CASES: Manage Security Keys (generate / list / deactivate)
===============================================================================

Business Goal:
    Permitir a un admin emitir keys de registro (en lote o con valor custom),
    listarlas y revocarlas.

-------------------------------------------------------------------------------
CRC CARD
-------------------------------------------------------------------------------
Classes:
    GenerateSecurityKeysUseCase
    ListSecurityKeysUseCase
    DeactivateSecurityKeyUseCase

Responsibilities:
    - Validar count (1..max_keys_per_batch) y valor custom (formato, count == 1).
    - Generar valores aleatorios (32 hex upper, secrets.token_hex).
    - Fijar expires_at = now + key_validity_days (0 = sin vencimiento).
    - Persistir todo-o-nada; duplicado activo -> CONFLICT.
    - Desactivar solo keys activas sin usar (terminal) y auditar.
      Usada -> CONFLICT; ya inactiva -> no-op sin auditoría.

Collaborators:
    - SecurityKeyRepository
    - AuditEventRepository (vía emit_audit_event)
    - domain.registration_policy.validate_custom_key_value

Notas:
    - Las keys nunca pasan por el cache: el store es la única verdad.
    - La metadata de auditoría NO incluye los valores de las keys.
===============================================================================
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, List
from uuid import UUID, uuid4

from ....audit import KEY_DEACTIVATED, KEYS_GENERATED, emit_audit_event
from ....crosscutting.exceptions import DuplicateRecordError
from ....crosscutting.logger import logger
from ....domain.entities import KeyTier, SecurityKey
from ....domain.registration_policy import normalize_key_value, validate_custom_key_value
from ....domain.repositories import AuditEventRepository, SecurityKeyRepository
from ....identity.users import User
from .admin_results import (
    AdminError,
    AdminErrorCode,
    KeyBatchResult,
    KeyResult,
    forbidden_non_admin,
)

GENERATED_KEY_BYTES = 16


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_key_value() -> str:
    return secrets.token_hex(GENERATED_KEY_BYTES).upper()


@dataclass(frozen=True)
class GenerateKeysInput:
    actor: User
    count: int = 1
    tier: KeyTier = KeyTier.USER
    custom_value: str | None = None


class GenerateSecurityKeysUseCase:
    def __init__(
        self,
        keys: SecurityKeyRepository,
        audit_repo: AuditEventRepository | None = None,
        *,
        max_batch: int = 50,
        validity_days: int = 5,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._keys = keys
        self._audit = audit_repo
        self._max_batch = max_batch
        self._validity_days = validity_days
        self._clock = clock

    def _validate(self, data: GenerateKeysInput) -> AdminError | None:
        if not 1 <= data.count <= self._max_batch:
            return AdminError(
                AdminErrorCode.VALIDATION_ERROR,
                f"count must be between 1 and {self._max_batch}",
            )
        if data.custom_value is not None:
            if data.count != 1:
                return AdminError(
                    AdminErrorCode.VALIDATION_ERROR,
                    "A custom key value can only be used with count = 1",
                )
            message = validate_custom_key_value(normalize_key_value(data.custom_value))
            if message:
                return AdminError(AdminErrorCode.VALIDATION_ERROR, message)
        return None

    def execute(self, data: GenerateKeysInput) -> KeyBatchResult:
        error = forbidden_non_admin(data.actor) or self._validate(data)
        if error:
            return KeyBatchResult(error=error)

        now = self._clock()
        expires_at = (
            now + timedelta(days=self._validity_days) if self._validity_days > 0 else None
        )

        if data.custom_value is not None:
            values: List[str] = [normalize_key_value(data.custom_value)]
        else:
            values = [generate_key_value() for _ in range(data.count)]

        batch = [
            SecurityKey(
                id=uuid4(),
                key_value=value,
                tier=data.tier,
                created_by=data.actor.id,
                created_at=now,
                expires_at=expires_at,
            )
            for value in values
        ]

        try:
            created = self._keys.add_keys(batch)
        except DuplicateRecordError:
            return KeyBatchResult(
                error=AdminError(AdminErrorCode.CONFLICT, "Security key value already exists")
            )

        emit_audit_event(
            self._audit,
            action=KEYS_GENERATED,
            actor_user=data.actor,
            target_type="security_key",
            metadata={
                "count": len(created),
                "tier": data.tier.value,
                "custom": data.custom_value is not None,
                "key_ids": [str(k.id) for k in created],
            },
        )
        logger.info(
            "Security keys generated",
            extra={"count": len(created), "tier": data.tier.value},
        )
        return KeyBatchResult(keys=created)


class ListSecurityKeysUseCase:
    def __init__(self, keys: SecurityKeyRepository) -> None:
        self._keys = keys

    def execute(
        self,
        *,
        tier: KeyTier | None = None,
        limit: int = 200,
        offset: int = 0,
    ) -> List[SecurityKey]:
        return self._keys.list_keys(tier=tier, limit=limit, offset=offset)


class DeactivateSecurityKeyUseCase:
    def __init__(
        self,
        keys: SecurityKeyRepository,
        audit_repo: AuditEventRepository | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._keys = keys
        self._audit = audit_repo
        self._clock = clock

    def execute(self, actor: User, key_id: UUID) -> KeyResult:
        error = forbidden_non_admin(actor)
        if error:
            return KeyResult(error=error)

        current = self._keys.get_by_id(key_id)
        if current is None:
            return KeyResult(
                error=AdminError(AdminErrorCode.NOT_FOUND, "Security key not found")
            )
        if not current.is_active:
            # R: Ya inactiva: no-op, sin evento de auditoría.
            return KeyResult(key=current)
        if current.is_used:
            return KeyResult(
                error=AdminError(
                    AdminErrorCode.CONFLICT, "Used keys cannot be deactivated"
                )
            )

        now = self._clock()
        key = self._keys.deactivate(key_id, deactivated_by=actor.id, now=now)
        if key is None:
            return KeyResult(
                error=AdminError(AdminErrorCode.NOT_FOUND, "Security key not found")
            )
        if key.is_active:
            # R: Un registro consumió la key entre la lectura y el UPDATE.
            return KeyResult(
                error=AdminError(
                    AdminErrorCode.CONFLICT, "Used keys cannot be deactivated"
                )
            )
        if key.deactivated_at != now:
            return KeyResult(key=key)

        emit_audit_event(
            self._audit,
            action=KEY_DEACTIVATED,
            actor_user=actor,
            target_type="security_key",
            target_id=key.id,
            metadata={"tier": key.tier.value},
        )
        return KeyResult(key=key)
