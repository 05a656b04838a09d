"""
In-Memory Repository Implementations.

For testing and local development. NOT FOR PRODUCTION.
Data is lost on process restart.
"""

from .announcement import InMemoryAnnouncementRepository
from .audit_event import InMemoryAuditEventRepository
from .flag import InMemoryFlagRepository
from .post import InMemoryPostRepository
from .security_key import InMemorySecurityKeyRepository
from .user import InMemoryUserRepository

__all__ = [
    # Registration
    "InMemorySecurityKeyRepository",
    "InMemoryUserRepository",
    # Content
    "InMemoryPostRepository",
    "InMemoryFlagRepository",
    "InMemoryAnnouncementRepository",
    # Audit
    "InMemoryAuditEventRepository",
]
