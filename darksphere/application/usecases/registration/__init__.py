from .login_user import LoginUserUseCase
from .register_user import RegisterUserUseCase, RegistrationInput
from .registration_results import (
    KeyCheckResult,
    RegistrationError,
    RegistrationErrorCode,
    RegistrationResult,
    SessionResult,
)
from .validate_key import ValidateKeyUseCase
from .verify_identity_token import VerifyIdentityTokenUseCase
from .verify_session import VerifySessionUseCase

__all__ = [
    "RegisterUserUseCase",
    "RegistrationInput",
    "LoginUserUseCase",
    "VerifySessionUseCase",
    "VerifyIdentityTokenUseCase",
    "ValidateKeyUseCase",
    "RegistrationErrorCode",
    "RegistrationError",
    "RegistrationResult",
    "SessionResult",
    "KeyCheckResult",
]
