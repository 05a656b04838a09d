from .admin_results import (
    AdminError,
    AdminErrorCode,
    AuditListResult,
    DeleteUserResult,
    FlagResult,
    KeyBatchResult,
    KeyResult,
    UserResult,
)
from .list_audit import ListAuditEventsUseCase
from .manage_keys import (
    DeactivateSecurityKeyUseCase,
    GenerateKeysInput,
    GenerateSecurityKeysUseCase,
    ListSecurityKeysUseCase,
)
from .moderate_flags import ListFlagsUseCase, ResolveFlagUseCase
from .moderate_users import DeleteUserUseCase, DisableUserUseCase, ListUsersUseCase

__all__ = [
    # Keys
    "GenerateSecurityKeysUseCase",
    "GenerateKeysInput",
    "ListSecurityKeysUseCase",
    "DeactivateSecurityKeyUseCase",
    # Users
    "ListUsersUseCase",
    "DisableUserUseCase",
    "DeleteUserUseCase",
    # Flags
    "ListFlagsUseCase",
    "ResolveFlagUseCase",
    # Audit
    "ListAuditEventsUseCase",
    # Results
    "AdminError",
    "AdminErrorCode",
    "KeyBatchResult",
    "KeyResult",
    "UserResult",
    "DeleteUserResult",
    "FlagResult",
    "AuditListResult",
]
