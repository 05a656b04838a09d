"""
===============================================================================
TARJETA CRC — identity/users.py
===============================================================================

Módulo:
    Modelos de Usuario

Responsabilidades:
    - Definir el enum de roles (derivado del tier de la security key).
    - Definir el dataclass User usado por registro, login y moderación.

Colaboradores:
    - identity/auth_users.py: emite/valida session tokens para User.
    - infrastructure/repositories: mapean filas -> User.
    - application/usecases: crean / deshabilitan / eliminan usuarios.

Notas:
    - Este módulo NO contiene lógica de negocio: solo "shapes" de datos.
    - User es inmutable: los repos devuelven copias nuevas (dataclasses.replace),
      por eso es seguro compartir instancias desde el cache.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID


class UserRole(str, Enum):
    """Roles soportados. Coinciden 1:1 con KeyTier."""

    ADMIN = "admin"
    USER = "user"


@dataclass(frozen=True, slots=True)
class User:
    """Perfil de usuario registrado."""

    id: UUID
    username: str
    email: str
    display_name: str
    role: UserRole
    password_hash: str | None = None
    is_disabled: bool = False
    external_id: str | None = None
    security_key_id: UUID | None = None
    bio: str | None = None
    location: str | None = None
    website: str | None = None
    created_at: datetime | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
