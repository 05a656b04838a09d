"""Identity: user model, session tokens, external identity verification."""

from .users import User, UserRole

__all__ = ["User", "UserRole"]
