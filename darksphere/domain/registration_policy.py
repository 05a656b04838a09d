"""
===============================================================================
TARJETA CRC — domain/registration_policy.py
===============================================================================

Responsabilidades:
  - Reglas puras de validación de credenciales y perfil (username, email,
    password, security key).
  - Derivar el rol de un nuevo usuario (override por email admin > tier de key).

Colaboradores:
  - application.usecases.registration.register_user
  - application.usecases.admin.manage_keys (formato de valores custom)

Notas:
  - Funciones puras: sin IO, fáciles de testear.
  - Devuelven el mensaje de error (str) o None si es válido.
===============================================================================
"""

from __future__ import annotations

import re

from ..identity.users import UserRole
from .entities import KeyTier

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]{3,20}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
KEY_VALUE_PATTERN = re.compile(r"^[A-Za-z0-9_-]{6,64}$")
_SPECIAL_CHARS = set("!@#$%^&*(),.?\":{}|<>")

MIN_PASSWORD_LENGTH = 8
MAX_DISPLAY_NAME_LENGTH = 100


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def normalize_key_value(value: str | None) -> str:
    return (value or "").strip()


def validate_username(username: str) -> str | None:
    if not USERNAME_PATTERN.match(username or ""):
        return (
            "Username must be 3-20 characters long and contain only letters, "
            "numbers, and underscores."
        )
    return None


def validate_email(email: str) -> str | None:
    if not EMAIL_PATTERN.match(email or ""):
        return "Email address is not valid."
    return None


def validate_password(password: str) -> str | None:
    """Fuerza mínima: 8+ chars, mayúscula, minúscula, dígito y símbolo."""
    password = password or ""
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters long."
    if not any(c.isupper() for c in password):
        return "Password must contain at least one uppercase letter."
    if not any(c.islower() for c in password):
        return "Password must contain at least one lowercase letter."
    if not any(c.isdigit() for c in password):
        return "Password must contain at least one number."
    if not any(c in _SPECIAL_CHARS for c in password):
        return "Password must contain at least one special character."
    return None


def validate_display_name(display_name: str) -> str | None:
    name = (display_name or "").strip()
    if not name:
        return "Display name is required."
    if len(name) > MAX_DISPLAY_NAME_LENGTH:
        return f"Display name must be at most {MAX_DISPLAY_NAME_LENGTH} characters."
    return None


def validate_custom_key_value(value: str) -> str | None:
    if not KEY_VALUE_PATTERN.match(value or ""):
        return (
            "Custom key must be 6-64 characters: letters, numbers, '-' or '_'."
        )
    return None


def derive_role(*, email: str, key_tier: KeyTier, admin_email: str) -> UserRole:
    """El override por email admin se evalúa antes que el tier de la key."""
    if admin_email and normalize_email(email) == normalize_email(admin_email):
        return UserRole.ADMIN
    return UserRole(key_tier.value)


def username_from_email(email: str) -> str:
    """Prefijo del email saneado a un username válido (para identidades externas)."""
    prefix = normalize_email(email).split("@", 1)[0]
    cleaned = re.sub(r"[^a-zA-Z0-9_]", "_", prefix)[:20]
    return cleaned if len(cleaned) >= 3 else f"{cleaned}_user"[:20]
