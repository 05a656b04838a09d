"""
============================================================
TARJETA CRC — infrastructure/repositories/cached.py
============================================================
Module: Cache-aside decorators (Decorator pattern sobre los repos)

Responsibilities:
  - Envolver UserRepository / PostRepository / AnnouncementRepository con un
    TTLCache: lectura -> cache hit o store + populate; escritura -> store y
    luego invalidación de todas las claves afectadas.
  - Registrar hit/miss en Prometheus por cache.

Collaborators:
  - infrastructure.cache.TTLCache / CacheKeys
  - crosscutting.metrics.record_cache_hit / record_cache_miss
  - repos concretos (Postgres o in-memory)

Policy / Design Notes:
  - Las security keys NO se cachean (consumo atómico siempre contra el store).
  - "Not found" nunca se cachea: un miss siempre vuelve a consultar.
  - Invalidación después de escribir: una lectura concurrente puede repoblar
    un valor viejo hasta el próximo write o TTL (staleness acotada).
============================================================
"""

from __future__ import annotations

from typing import Callable, List, Optional, TypeVar
from uuid import UUID

from ...crosscutting.metrics import record_cache_hit, record_cache_miss
from ...domain.entities import Announcement, Comment, Post
from ...domain.repositories import (
    AnnouncementRepository,
    PostRepository,
    UserRepository,
)
from ...identity.users import User
from ..cache import CacheKeys, TTLCache

T = TypeVar("T")


def _cached(
    cache: TTLCache,
    key: str,
    loader: Callable[[], T],
    ttl_seconds: float | None = None,
) -> T:
    """R: cache-aside genérico; valores None no se guardan."""
    value = cache.get(key)
    if value is not None:
        record_cache_hit(cache.name)
        return value

    record_cache_miss(cache.name)
    value = loader()
    if value is not None:
        cache.set(key, value, ttl_seconds)
    return value


class CachingUserRepository:
    """UserRepository + cache por id / username / email."""

    def __init__(self, inner: UserRepository, cache: TTLCache) -> None:
        self._inner = inner
        self._cache = cache

    def _invalidate(self, user: User | None) -> None:
        if user is not None:
            self._cache.delete_many(
                [
                    CacheKeys.user_by_id(user.id),
                    CacheKeys.user_by_username(user.username),
                    CacheKeys.user_by_email(user.email),
                ]
            )
        self._cache.delete_prefix(CacheKeys.USERS_ALL)

    def create_user(self, user: User) -> User:
        created = self._inner.create_user(user)
        self._invalidate(created)
        return created

    def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        return _cached(
            self._cache,
            CacheKeys.user_by_id(user_id),
            lambda: self._inner.get_user_by_id(user_id),
        )

    def get_user_by_username(self, username: str) -> Optional[User]:
        return _cached(
            self._cache,
            CacheKeys.user_by_username(username),
            lambda: self._inner.get_user_by_username(username),
        )

    def get_user_by_email(self, email: str) -> Optional[User]:
        return _cached(
            self._cache,
            CacheKeys.user_by_email(email),
            lambda: self._inner.get_user_by_email(email),
        )

    def get_user_by_external_id(self, external_id: str) -> Optional[User]:
        return self._inner.get_user_by_external_id(external_id)

    def list_users(self, *, limit: int = 200, offset: int = 0) -> List[User]:
        return _cached(
            self._cache,
            f"{CacheKeys.USERS_ALL}:{limit}:{offset}",
            lambda: self._inner.list_users(limit=limit, offset=offset),
        )

    def set_user_disabled(self, user_id: UUID, disabled: bool) -> Optional[User]:
        updated = self._inner.set_user_disabled(user_id, disabled)
        self._cache.delete(CacheKeys.user_by_id(user_id))
        self._invalidate(updated)
        return updated

    def delete_user(self, user_id: UUID) -> bool:
        existing = self._inner.get_user_by_id(user_id)
        deleted = self._inner.delete_user(user_id)
        self._cache.delete(CacheKeys.user_by_id(user_id))
        self._invalidate(existing)
        return deleted

    def ping(self) -> bool:
        return self._inner.ping()


class CachingPostRepository:
    """PostRepository + cache de post por id y de páginas de listados."""

    def __init__(
        self,
        inner: PostRepository,
        cache: TTLCache,
        *,
        list_ttl_seconds: float | None = None,
    ) -> None:
        self._inner = inner
        self._cache = cache
        self._list_ttl = list_ttl_seconds

    def _invalidate(self, post_id: UUID | None = None) -> None:
        if post_id is not None:
            self._cache.delete(CacheKeys.post_by_id(post_id))
        self._cache.delete_prefix(CacheKeys.POSTS_PREFIX)

    def _invalidate_all(self) -> None:
        self._cache.delete_prefix("post:")
        self._cache.delete_prefix(CacheKeys.POSTS_PREFIX)

    def create_post(self, post: Post) -> Post:
        created = self._inner.create_post(post)
        self._invalidate()
        return created

    def get_post(self, post_id: UUID) -> Optional[Post]:
        return _cached(
            self._cache,
            CacheKeys.post_by_id(post_id),
            lambda: self._inner.get_post(post_id),
        )

    def list_posts(self, *, limit: int = 20, offset: int = 0) -> List[Post]:
        return _cached(
            self._cache,
            CacheKeys.posts_page(limit, offset),
            lambda: self._inner.list_posts(limit=limit, offset=offset),
            self._list_ttl,
        )

    def list_posts_by_author(self, author_id: UUID, *, limit: int = 50) -> List[Post]:
        return _cached(
            self._cache,
            f"{CacheKeys.posts_by_author(author_id)}:{limit}",
            lambda: self._inner.list_posts_by_author(author_id, limit=limit),
            self._list_ttl,
        )

    def delete_post(self, post_id: UUID) -> bool:
        deleted = self._inner.delete_post(post_id)
        self._invalidate(post_id)
        return deleted

    def delete_posts_by_author(self, author_id: UUID) -> int:
        removed = self._inner.delete_posts_by_author(author_id)
        self._invalidate_all()
        return removed

    def toggle_like(self, post_id: UUID, user_id: UUID) -> Optional[tuple[bool, int]]:
        result = self._inner.toggle_like(post_id, user_id)
        self._invalidate(post_id)
        return result

    def delete_likes_by_user(self, user_id: UUID) -> int:
        removed = self._inner.delete_likes_by_user(user_id)
        if removed:
            self._invalidate_all()
        return removed

    def add_comment(self, comment: Comment) -> Optional[Comment]:
        created = self._inner.add_comment(comment)
        self._invalidate(comment.post_id)
        return created

    def list_comments(self, post_id: UUID) -> List[Comment]:
        return self._inner.list_comments(post_id)

    def delete_comments_by_user(self, user_id: UUID) -> int:
        removed = self._inner.delete_comments_by_user(user_id)
        if removed:
            self._invalidate_all()
        return removed


class CachingAnnouncementRepository:
    def __init__(self, inner: AnnouncementRepository, cache: TTLCache) -> None:
        self._inner = inner
        self._cache = cache

    def list_announcements(self, *, limit: int = 50) -> List[Announcement]:
        return _cached(
            self._cache,
            f"{CacheKeys.ANNOUNCEMENTS_ALL}:{limit}",
            lambda: self._inner.list_announcements(limit=limit),
        )

    def create_announcement(self, announcement: Announcement) -> Announcement:
        created = self._inner.create_announcement(announcement)
        self._cache.delete_prefix(CacheKeys.ANNOUNCEMENTS_ALL)
        return created

    def delete_announcement(self, announcement_id: UUID) -> bool:
        deleted = self._inner.delete_announcement(announcement_id)
        self._cache.delete_prefix(CacheKeys.ANNOUNCEMENTS_ALL)
        return deleted


__all__ = [
    "CachingUserRepository",
    "CachingPostRepository",
    "CachingAnnouncementRepository",
]
