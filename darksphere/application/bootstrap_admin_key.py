"""
===============================================================================
TASK: Bootstrap Admin Key
===============================================================================

Qué es:
    Asegura que exista una security key de tier admin con el valor configurado
    en BOOTSTRAP_ADMIN_KEY, para que el primer admin pueda registrarse en una
    instalación vacía.

Patrones:
    - Task orchestration (seed) ejecutado en el lifespan
    - Idempotencia: si ya existe un registro con ese valor (usado, activo o
      desactivado) no se toca

CRC:
    Component: ensure_bootstrap_admin_key
    Responsibilities:
      - Validar formato del valor
      - Crear la key si no existe (sin vencimiento)
    Collaborators:
      - SecurityKeyRepository
      - domain.registration_policy.validate_custom_key_value
===============================================================================
"""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from ..crosscutting.exceptions import DuplicateRecordError
from ..crosscutting.logger import logger
from ..domain.entities import KeyTier, SecurityKey
from ..domain.registration_policy import normalize_key_value, validate_custom_key_value
from ..domain.repositories import SecurityKeyRepository


def ensure_bootstrap_admin_key(keys: SecurityKeyRepository, value: str | None) -> bool:
    """Retorna True si creó la key en esta llamada."""
    key_value = normalize_key_value(value)
    if not key_value:
        return False

    message = validate_custom_key_value(key_value)
    if message:
        logger.error("Bootstrap admin key ignored: invalid format", extra={"reason": message})
        return False

    if keys.get_by_value(key_value) is not None:
        logger.info("Bootstrap admin key already present")
        return False

    try:
        keys.add_keys(
            [
                SecurityKey(
                    id=uuid4(),
                    key_value=key_value,
                    tier=KeyTier.ADMIN,
                    created_at=datetime.now(timezone.utc),
                )
            ]
        )
    except DuplicateRecordError:
        # Otra instancia la creó primero.
        return False

    logger.info("Bootstrap admin key created")
    return True
