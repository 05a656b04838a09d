"""
===============================================================================
TARJETA CRC — domain/audit.py
===============================================================================

Módulo:
    Modelos de Auditoría (Dominio)

Responsabilidades:
    - Definir AuditEvent (acción administrativa registrada).

Colaboradores:
    - domain.repositories.AuditEventRepository: persiste y lista eventos.
    - darksphere/audit.py: emite eventos.

Notas:
    - Append-only: no existe update ni delete en ninguna capa.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID


@dataclass(slots=True)
class AuditEvent:
    """Evento de auditoría del sistema."""

    id: UUID
    actor: str
    action: str
    target_type: str | None = None
    target_id: UUID | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
