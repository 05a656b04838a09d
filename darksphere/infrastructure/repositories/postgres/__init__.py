from .announcement import PostgresAnnouncementRepository
from .audit_event import PostgresAuditEventRepository
from .flag import PostgresFlagRepository
from .post import PostgresPostRepository
from .security_key import PostgresSecurityKeyRepository
from .user import PostgresUserRepository

__all__ = [
    "PostgresAnnouncementRepository",
    "PostgresAuditEventRepository",
    "PostgresFlagRepository",
    "PostgresPostRepository",
    "PostgresSecurityKeyRepository",
    "PostgresUserRepository",
]
