"""
===============================================================================
TARJETA CRC — darksphere/audit.py (Emisión de auditoría)
===============================================================================

Responsabilidades:
  - Construir eventos con formato consistente (actor/action/target/metadata).
  - Normalizar actor a partir del User que ejecuta la acción.
  - Persistir vía AuditEventRepository (puerto del dominio).
  - "Best-effort": si falla la persistencia, NO rompe el flujo de negocio.

Colaboradores:
  - domain.audit.AuditEvent
  - domain.repositories.AuditEventRepository
  - identity.users.User
  - crosscutting.logger.logger

Decisiones de seguridad:
  - No se guardan valores de keys, passwords ni tokens en metadata.
  - Metadata se sanitiza a valores serializables; lo demás se stringifica.
===============================================================================
"""

from __future__ import annotations

from typing import Any
from uuid import UUID, uuid4

from .crosscutting.logger import logger
from .domain.audit import AuditEvent
from .domain.repositories import AuditEventRepository
from .identity.users import User

SYSTEM_ACTOR = "system"

# Acciones administrativas auditadas
KEYS_GENERATED = "keys_generated"
KEY_DEACTIVATED = "key_deactivated"
USER_DISABLED = "user_disabled"
USER_ENABLED = "user_enabled"
USER_DELETED = "user_deleted"
FLAG_DISMISSED = "flag_dismissed"
POST_DELETED = "post_deleted"
ANNOUNCEMENT_CREATED = "announcement_created"
ANNOUNCEMENT_DELETED = "announcement_deleted"


def actor_from_user(user: User | None) -> str:
    """Formato: user:{uuid} | system."""
    if user is None:
        return SYSTEM_ACTOR
    return f"user:{user.id}"


def _sanitize(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value

    if isinstance(value, dict):
        return {str(k): _sanitize(v) for k, v in value.items()}

    if isinstance(value, (list, tuple)):
        return [_sanitize(v) for v in value]

    return str(value)


def emit_audit_event(
    repository: AuditEventRepository | None,
    *,
    action: str,
    actor_user: User | None = None,
    actor: str | None = None,
    target_type: str | None = None,
    target_id: UUID | None = None,
    metadata: dict[str, Any] | None = None,
) -> None:
    """
    Emite un evento de auditoría.

    Regla clave:
      - Si repository es None o falla al escribir, NO se lanza excepción.
    """
    if repository is None:
        return

    payload: dict[str, Any] = dict(metadata or {})
    if actor_user is not None:
        payload.setdefault("actor_role", actor_user.role.value)

    event = AuditEvent(
        id=uuid4(),
        actor=actor or actor_from_user(actor_user),
        action=action,
        target_type=target_type,
        target_id=target_id,
        metadata=_sanitize(payload),
    )

    try:
        repository.record_event(event)
    except Exception as exc:
        logger.warning(
            "Audit event write failed",
            extra={"action": action, "error": str(exc)},
        )
