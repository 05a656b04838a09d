from .cached import (
    CachingAnnouncementRepository,
    CachingPostRepository,
    CachingUserRepository,
)
from .in_memory import (
    InMemoryAnnouncementRepository,
    InMemoryAuditEventRepository,
    InMemoryFlagRepository,
    InMemoryPostRepository,
    InMemorySecurityKeyRepository,
    InMemoryUserRepository,
)
from .postgres import (
    PostgresAnnouncementRepository,
    PostgresAuditEventRepository,
    PostgresFlagRepository,
    PostgresPostRepository,
    PostgresSecurityKeyRepository,
    PostgresUserRepository,
)

__all__ = [
    # Cache-aside decorators
    "CachingUserRepository",
    "CachingPostRepository",
    "CachingAnnouncementRepository",
    # In-memory
    "InMemorySecurityKeyRepository",
    "InMemoryUserRepository",
    "InMemoryPostRepository",
    "InMemoryFlagRepository",
    "InMemoryAnnouncementRepository",
    "InMemoryAuditEventRepository",
    # PostgreSQL
    "PostgresSecurityKeyRepository",
    "PostgresUserRepository",
    "PostgresPostRepository",
    "PostgresFlagRepository",
    "PostgresAnnouncementRepository",
    "PostgresAuditEventRepository",
]
