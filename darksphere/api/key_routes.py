"""
===============================================================================
TARJETA CRC — darksphere/api/key_routes.py (Pre-validación de security keys)
===============================================================================

Responsabilidades:
  - Exponer POST /validate-key: el cliente chequea una key antes de pedir
    el resto del formulario de registro.
  - Nunca consumir la key (solo lectura contra el store).

Colaboradores:
  - application.usecases.registration.ValidateKeyUseCase
  - container.get_validate_key_use_case

Notas:
  - Respuesta plana {valid, key_type, message} (no problem+json): el frontend
    muestra "message" tal cual.
  - Endpoint sensible: RateLimitMiddleware le aplica un bucket más estricto.
===============================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..application.usecases.registration import (
    RegistrationErrorCode,
    ValidateKeyUseCase,
)
from ..container import get_validate_key_use_case
from ..domain.entities import KeyTier

router = APIRouter()


class ValidateKeyRequest(BaseModel):
    key: str = Field(..., max_length=128)


class ValidateKeyResponse(BaseModel):
    valid: bool
    key_type: KeyTier | None = None
    message: str
    code: str | None = None


_STATUS_BY_CODE = {
    RegistrationErrorCode.INVALID_KEY: 404,
    RegistrationErrorCode.KEY_ALREADY_USED: 400,
    RegistrationErrorCode.KEY_EXPIRED: 400,
    RegistrationErrorCode.VALIDATION_ERROR: 400,
}


@router.post(
    "/validate-key",
    response_model=ValidateKeyResponse,
    responses={400: {"model": ValidateKeyResponse}, 404: {"model": ValidateKeyResponse}},
    tags=["registration"],
)
def validate_key(
    req: ValidateKeyRequest,
    use_case: ValidateKeyUseCase = Depends(get_validate_key_use_case),
):
    result = use_case.execute(req.key)
    body = ValidateKeyResponse(
        valid=result.valid,
        key_type=result.key_type,
        message=result.message,
        code=result.error.code.value if result.error else None,
    )
    if result.error:
        return JSONResponse(
            status_code=_STATUS_BY_CODE.get(result.error.code, 400),
            content=body.model_dump(mode="json", exclude_none=True),
        )
    return body
