"""
===============================================================================
USE CASE: Validate Key (pre-registration check)
===============================================================================

Business Goal:
    Informar si una key puede usarse para registrarse, y de qué tier es, SIN
    consumirla. El resultado es orientativo: el registro vuelve a validar y
    consume atómicamente.
===============================================================================
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from ....domain.registration_policy import normalize_key_value
from ....domain.repositories import SecurityKeyRepository
from .registration_results import KeyCheckResult, RegistrationError, RegistrationErrorCode


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ValidateKeyUseCase:
    def __init__(
        self,
        keys: SecurityKeyRepository,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._keys = keys
        self._clock = clock

    @staticmethod
    def _invalid(code: RegistrationErrorCode, message: str) -> KeyCheckResult:
        return KeyCheckResult(
            valid=False, message=message, error=RegistrationError(code, message)
        )

    def execute(self, key: str) -> KeyCheckResult:
        value = normalize_key_value(key)
        if not value:
            return self._invalid(
                RegistrationErrorCode.VALIDATION_ERROR, "Security key is required"
            )

        found = self._keys.get_by_value(value)
        if found is None or not found.is_active:
            return self._invalid(RegistrationErrorCode.INVALID_KEY, "Invalid security key")
        if found.is_used:
            return self._invalid(
                RegistrationErrorCode.KEY_ALREADY_USED, "Security key has already been used"
            )
        if found.is_expired(self._clock()):
            return self._invalid(
                RegistrationErrorCode.KEY_EXPIRED,
                "Security key has expired. Please request a new one.",
            )

        return KeyCheckResult(
            valid=True, key_type=found.tier, message="Security key is valid"
        )
