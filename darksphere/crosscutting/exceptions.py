# darksphere/crosscutting/exceptions.py
"""
===============================================================================
MÓDULO: Excepciones tipadas del backend (errores internos)
===============================================================================

Objetivo
--------
Excepciones internas coherentes, con:
- error_code estable
- error_id para correlación con logs
- message "humana" (sin filtrar secretos)

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Componente:
  DarkSphereError + subclases

Responsabilidades:
  - Estandarizar errores de infraestructura / identidad que luego se mapean a HTTP
  - Generar error_id para rastreo

Colaboradores:
  - api/exception_handlers.py (mapea a AppHTTPException)
  - infrastructure/repositories/postgres (DatabaseError, DuplicateRecordError)
  - identity (AuthenticationError, ServiceUnavailableError)
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import uuid4


@dataclass(frozen=True)
class ErrorResponse:
    error_code: str
    message: str
    error_id: str

    def to_dict(self) -> dict:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "error_id": self.error_id,
        }


class DarkSphereError(Exception):
    """Base para errores internos del sistema (error_code + error_id + message)."""

    error_code: str = "DARKSPHERE_ERROR"

    def __init__(
        self,
        message: str,
        error_id: str | None = None,
        original_error: Exception | None = None,
    ):
        self.message = message
        self.error_id = error_id or str(uuid4())
        self.original_error = original_error
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            error_code=self.error_code, message=self.message, error_id=self.error_id
        )


class DatabaseError(DarkSphereError):
    """Errores de DB (conexión, query, statement timeout)."""

    error_code: str = "DATABASE_ERROR"


class DuplicateRecordError(DarkSphereError):
    """Violación de unicidad (username/email/key_value). Nunca se reintenta."""

    error_code: str = "DUPLICATE"


class ServiceUnavailableError(DarkSphereError):
    """Dependencia externa no disponible (pool agotado, proveedor de identidad)."""

    error_code: str = "SERVICE_UNAVAILABLE"


class AuthenticationError(DarkSphereError):
    """Credencial inválida, expirada o mal formada."""

    error_code: str = "AUTHENTICATION_ERROR"
