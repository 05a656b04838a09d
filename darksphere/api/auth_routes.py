"""
===============================================================================
TARJETA CRC — darksphere/api/auth_routes.py (Registro y Sesión)
===============================================================================

Responsabilidades:
  - Exponer registro gated por security key, login/logout/me y verificación
    de sesión / identidad externa.
  - Gestionar cookie httpOnly de sesión de forma consistente.
  - Traducir RegistrationErrorCode -> HTTP (RFC7807).

Patrones aplicados:
  - Adapter / Presentation Layer: traduce HTTP <-> caso de uso.
  - Fail-safe security: si la autenticación falla, se deniega por defecto.

Colaboradores:
  - application.usecases.registration (Register/Login/VerifySession/VerifyIdentityToken)
  - identity.auth_users: require_user, get_auth_settings
  - container: factories de casos de uso
===============================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from ..application.usecases.registration import (
    LoginUserUseCase,
    RegisterUserUseCase,
    RegistrationError,
    RegistrationErrorCode,
    RegistrationInput,
    VerifyIdentityTokenUseCase,
    VerifySessionUseCase,
)
from ..container import (
    get_login_user_use_case,
    get_register_user_use_case,
    get_verify_identity_token_use_case,
    get_verify_session_use_case,
)
from ..crosscutting.error_responses import (
    OPENAPI_ERROR_RESPONSES,
    AppHTTPException,
    ErrorCode,
)
from ..identity.auth_users import DEFAULT_SESSION_COOKIE, get_auth_settings, require_user
from ..identity.users import User
from .schemas import UserResponse, to_user_response

router = APIRouter(responses=OPENAPI_ERROR_RESPONSES)


# -----------------------------------------------------------------------------
# Modelos HTTP (DTOs)
# -----------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    key: str = Field(..., max_length=128)
    username: str | None = Field(default=None, max_length=64)
    email: str | None = Field(default=None, max_length=320)
    password: str | None = Field(default=None, max_length=512)
    display_name: str | None = Field(default=None, max_length=100)
    identity_token: str | None = Field(default=None, max_length=8192)


class LoginRequest(BaseModel):
    identifier: str = Field(..., min_length=1, max_length=320)
    password: str = Field(..., min_length=1, max_length=512)

    @field_validator("identifier")
    @classmethod
    def normalizar_identifier(cls, v: str) -> str:
        return v.strip()


class VerifyRequest(BaseModel):
    token: str = Field(..., max_length=8192)


class VerifyIdentityRequest(BaseModel):
    identity_token: str = Field(..., max_length=8192)


class SessionResponse(BaseModel):
    user: UserResponse
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    already_registered: bool = False


class VerifyResponse(BaseModel):
    registered: bool = True
    user: UserResponse


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

_REGISTRATION_HTTP: dict[RegistrationErrorCode, tuple[int, ErrorCode]] = {
    RegistrationErrorCode.VALIDATION_ERROR: (400, ErrorCode.VALIDATION_ERROR),
    RegistrationErrorCode.INVALID_KEY: (400, ErrorCode.INVALID_KEY),
    RegistrationErrorCode.KEY_ALREADY_USED: (409, ErrorCode.KEY_ALREADY_USED),
    RegistrationErrorCode.KEY_EXPIRED: (400, ErrorCode.KEY_EXPIRED),
    RegistrationErrorCode.INVALID_CREDENTIAL: (401, ErrorCode.UNAUTHORIZED),
    RegistrationErrorCode.DUPLICATE: (409, ErrorCode.CONFLICT),
    RegistrationErrorCode.NOT_REGISTERED: (404, ErrorCode.NOT_REGISTERED),
    RegistrationErrorCode.DISABLED: (403, ErrorCode.ACCOUNT_DISABLED),
    RegistrationErrorCode.SERVICE_UNAVAILABLE: (503, ErrorCode.SERVICE_UNAVAILABLE),
}


def _raise_registration_error(error: RegistrationError) -> None:
    status_code, code = _REGISTRATION_HTTP.get(
        error.code, (400, ErrorCode.VALIDATION_ERROR)
    )
    raise AppHTTPException(status_code=status_code, code=code, detail=error.message)


def _cookie_name() -> str:
    return get_auth_settings().jwt_cookie_name or DEFAULT_SESSION_COOKIE


def _set_auth_cookie(response: Response, token: str, expires_in: int) -> None:
    """Setea cookie httpOnly de sesión."""
    settings = get_auth_settings()
    response.set_cookie(
        key=_cookie_name(),
        value=token,
        httponly=True,
        secure=settings.jwt_cookie_secure,
        samesite="lax",
        max_age=expires_in,
        path="/",
    )


def _clear_auth_cookie(response: Response) -> None:
    response.delete_cookie(
        key=_cookie_name(),
        path="/",
        samesite="lax",
        secure=get_auth_settings().jwt_cookie_secure,
    )


# -----------------------------------------------------------------------------
# Endpoints
# -----------------------------------------------------------------------------


@router.post(
    "/auth/register", response_model=SessionResponse, status_code=201, tags=["auth"]
)
def register(
    req: RegisterRequest,
    response: Response,
    use_case: RegisterUserUseCase = Depends(get_register_user_use_case),
):
    """
    Registra un usuario consumiendo una security key.

    - 201: usuario creado, key consumida.
    - 200 + already_registered: replay idempotente (no consume key).
    """
    result = use_case.execute(
        RegistrationInput(
            key=req.key,
            username=req.username,
            email=req.email,
            password=req.password,
            display_name=req.display_name,
            identity_token=req.identity_token,
        )
    )
    if result.error:
        _raise_registration_error(result.error)

    if result.already_registered:
        response.status_code = 200

    _set_auth_cookie(response, result.access_token, result.expires_in)
    return SessionResponse(
        user=to_user_response(result.user),
        access_token=result.access_token,
        expires_in=result.expires_in,
        already_registered=result.already_registered,
    )


@router.post("/auth/login", response_model=SessionResponse, tags=["auth"])
def login(
    req: LoginRequest,
    response: Response,
    use_case: LoginUserUseCase = Depends(get_login_user_use_case),
):
    """Login con username o email + password; setea cookie httpOnly."""
    result = use_case.execute(req.identifier, req.password)
    if result.error:
        _raise_registration_error(result.error)

    _set_auth_cookie(response, result.access_token, result.expires_in)
    return SessionResponse(
        user=to_user_response(result.user),
        access_token=result.access_token,
        expires_in=result.expires_in,
    )


@router.post("/auth/logout", tags=["auth"])
def logout(response: Response):
    """Cierra sesión. Idempotente: siempre borra la cookie."""
    _clear_auth_cookie(response)
    return {"ok": True}


@router.get("/auth/me", response_model=UserResponse, tags=["auth"])
def me(user: User = Depends(require_user())):
    """Devuelve el usuario autenticado (Bearer o cookie)."""
    return to_user_response(user)


@router.post("/auth/verify", response_model=VerifyResponse, tags=["auth"])
def verify_session(
    req: VerifyRequest,
    use_case: VerifySessionUseCase = Depends(get_verify_session_use_case),
):
    """Valida un session token y devuelve el perfil actual (vía cache)."""
    result = use_case.execute(req.token)
    if result.error:
        _raise_registration_error(result.error)
    return VerifyResponse(user=to_user_response(result.user))


@router.post("/auth/verify-token", response_model=VerifyResponse, tags=["auth"])
def verify_identity_token(
    req: VerifyIdentityRequest,
    use_case: VerifyIdentityTokenUseCase = Depends(get_verify_identity_token_use_case),
):
    """
    Verifica un token del proveedor de identidad externo.

    - 404 con registered=false si la identidad no tiene perfil.
    """
    result = use_case.execute(req.identity_token)
    if result.error:
        if result.error.code == RegistrationErrorCode.NOT_REGISTERED:
            return JSONResponse(
                status_code=404,
                content={
                    "registered": False,
                    "code": ErrorCode.NOT_REGISTERED.value,
                    "detail": result.error.message,
                },
            )
        _raise_registration_error(result.error)
    return VerifyResponse(user=to_user_response(result.user))
