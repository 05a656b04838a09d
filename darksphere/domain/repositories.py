"""
CRC — domain/repositories.py

Name
- Domain Repository Interfaces (Protocols)

Responsibilities
- Define persistence contracts (ports) for keys, users, content and audit.
- Keep application code independent from infrastructure (PostgreSQL, in-memory).
- Enable dependency inversion and straightforward unit testing.

Collaborators
- domain.entities, domain.audit, identity.users
- infrastructure.repositories: postgres/*, in_memory/*, cached decorators

Constraints
- Pure interfaces only: no side effects, no SQL.
- "Not found" is returned as None / False, never raised.
- Unique violations raise crosscutting.exceptions.DuplicateRecordError.
- Conditional writes (consume, resolve_flag) MUST be atomic check-and-set at the
  store level; callers never do read-then-write to decide them.
"""

from datetime import datetime
from typing import List, Optional, Protocol
from uuid import UUID

from ..identity.users import User
from .audit import AuditEvent
from .entities import (
    Announcement,
    Comment,
    Flag,
    FlagAction,
    FlagStatus,
    KeyTier,
    Post,
    SecurityKey,
)


class SecurityKeyRepository(Protocol):
    """
    R: Durable source of truth for one-time registration keys.

    Keys are never cached: every read goes to the store.
    """

    def add_keys(self, keys: List[SecurityKey]) -> List[SecurityKey]:
        """R: Persist keys all-or-nothing. Active duplicate value -> DuplicateRecordError."""
        ...

    def get_by_value(self, key_value: str) -> Optional[SecurityKey]:
        """R: Lookup by value. Prefers the active record when values repeat."""
        ...

    def get_by_id(self, key_id: UUID) -> Optional[SecurityKey]: ...

    def consume(
        self, key_value: str, user_id: UUID, *, now: datetime
    ) -> Optional[SecurityKey]:
        """
        R: Atomic unused -> used transition bound to user_id.

        Returns the consumed key, or None if the key is missing, inactive,
        expired at `now`, or another consumer won the race.
        """
        ...

    def release(self, user_id: UUID) -> int:
        """R: Reset keys used by user_id back to unused. Returns count released."""
        ...

    def deactivate(
        self, key_id: UUID, *, deactivated_by: UUID | None, now: datetime
    ) -> Optional[SecurityKey]:
        """
        R: Atomic active+unused -> inactive transition.

        Returns the key in its current state; a used or already inactive key
        comes back unchanged. None if the key does not exist.
        """
        ...

    def list_keys(
        self,
        *,
        tier: KeyTier | None = None,
        limit: int = 200,
        offset: int = 0,
    ) -> List[SecurityKey]:
        """R: Newest first."""
        ...


class UserRepository(Protocol):
    """R: User profile persistence."""

    def create_user(self, user: User) -> User:
        """R: Unique username/email/external_id -> DuplicateRecordError."""
        ...

    def get_user_by_id(self, user_id: UUID) -> Optional[User]: ...

    def get_user_by_username(self, username: str) -> Optional[User]:
        """R: Case-insensitive match."""
        ...

    def get_user_by_email(self, email: str) -> Optional[User]: ...

    def get_user_by_external_id(self, external_id: str) -> Optional[User]: ...

    def list_users(self, *, limit: int = 200, offset: int = 0) -> List[User]: ...

    def set_user_disabled(self, user_id: UUID, disabled: bool) -> Optional[User]: ...

    def delete_user(self, user_id: UUID) -> bool:
        """R: True only for the caller that actually removed the row."""
        ...

    def ping(self) -> bool: ...


class PostRepository(Protocol):
    """R: Posts, likes and comments."""

    def create_post(self, post: Post) -> Post: ...

    def get_post(self, post_id: UUID) -> Optional[Post]: ...

    def list_posts(self, *, limit: int = 20, offset: int = 0) -> List[Post]:
        """R: Newest first."""
        ...

    def list_posts_by_author(self, author_id: UUID, *, limit: int = 50) -> List[Post]: ...

    def delete_post(self, post_id: UUID) -> bool:
        """R: Removes the post with its comments and likes."""
        ...

    def delete_posts_by_author(self, author_id: UUID) -> int: ...

    def toggle_like(self, post_id: UUID, user_id: UUID) -> Optional[tuple[bool, int]]:
        """R: Returns (liked, likes_count) or None if the post does not exist."""
        ...

    def delete_likes_by_user(self, user_id: UUID) -> int:
        """R: Also decrements likes_count on affected posts."""
        ...

    def add_comment(self, comment: Comment) -> Optional[Comment]:
        """R: None if the post does not exist. Increments comments_count."""
        ...

    def list_comments(self, post_id: UUID) -> List[Comment]:
        """R: Oldest first (conversation order)."""
        ...

    def delete_comments_by_user(self, user_id: UUID) -> int:
        """R: Also decrements comments_count on affected posts."""
        ...


class FlagRepository(Protocol):
    """R: Moderation queue."""

    def create_flag(self, flag: Flag) -> Flag: ...

    def get_flag(self, flag_id: UUID) -> Optional[Flag]: ...

    def find_pending_flag(self, post_id: UUID, reporter_id: UUID) -> Optional[Flag]: ...

    def list_flags(
        self,
        *,
        status: FlagStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Flag]: ...

    def resolve_flag(
        self,
        flag_id: UUID,
        *,
        resolved_by: UUID,
        action: FlagAction,
        now: datetime,
    ) -> Optional[Flag]:
        """R: Atomic pending -> resolved. None if missing or already resolved."""
        ...


class AnnouncementRepository(Protocol):
    def list_announcements(self, *, limit: int = 50) -> List[Announcement]: ...

    def create_announcement(self, announcement: Announcement) -> Announcement: ...

    def delete_announcement(self, announcement_id: UUID) -> bool: ...


class AuditEventRepository(Protocol):
    """R: Append-only audit log (no update / delete by contract)."""

    def record_event(self, event: AuditEvent) -> None: ...

    def list_events(
        self,
        *,
        actor: str | None = None,
        action: str | None = None,
        target_id: UUID | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[AuditEvent]: ...
