"""
============================================================
TARJETA CRC — infrastructure/repositories/in_memory/post.py
============================================================
Class: InMemoryPostRepository

Responsibilities:
  - Posts, likes y comentarios en memoria (tests / local dev).
  - Mantener likes_count / comments_count consistentes con las filas hijas.
  - Replicar ON DELETE CASCADE (borrar un post borra likes y comentarios).

Collaborators:
  - domain.entities.Post / Comment

Constraints / Notes:
  - Thread-safe: un Lock para las tres "tablas".
  - Orden de posts alineado con Postgres: created_at DESC (+ inserción DESC).
============================================================
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from itertools import count
from threading import Lock
from typing import Dict, List, Optional, Set, Tuple
from uuid import UUID

from ....domain.entities import Comment, Post


class InMemoryPostRepository:
    def __init__(self) -> None:
        self._lock = Lock()
        self._posts: Dict[UUID, Post] = {}
        self._likes: Set[Tuple[UUID, UUID]] = set()
        self._comments: Dict[UUID, Comment] = {}
        self._sequence: Dict[UUID, int] = {}
        self._counter = count()

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def _newest_first(self, items: List[Post]) -> List[Post]:
        return sorted(
            items,
            key=lambda p: (
                p.created_at or datetime.min.replace(tzinfo=timezone.utc),
                self._sequence.get(p.id, 0),
            ),
            reverse=True,
        )

    def _bump_locked(self, post_id: UUID, *, likes: int = 0, comments: int = 0) -> None:
        post = self._posts.get(post_id)
        if post is None:
            return
        self._posts[post_id] = replace(
            post,
            likes_count=max(post.likes_count + likes, 0),
            comments_count=max(post.comments_count + comments, 0),
        )

    def _drop_post_locked(self, post_id: UUID) -> bool:
        if self._posts.pop(post_id, None) is None:
            return False
        self._likes = {pair for pair in self._likes if pair[0] != post_id}
        self._comments = {
            cid: c for cid, c in self._comments.items() if c.post_id != post_id
        }
        return True

    # =========================================================
    # Posts
    # =========================================================
    def create_post(self, post: Post) -> Post:
        stored = replace(
            post,
            likes_count=0,
            comments_count=0,
            created_at=post.created_at or self._now(),
        )
        with self._lock:
            self._posts[stored.id] = stored
            self._sequence[stored.id] = next(self._counter)
        return stored

    def get_post(self, post_id: UUID) -> Optional[Post]:
        with self._lock:
            return self._posts.get(post_id)

    def list_posts(self, *, limit: int = 20, offset: int = 0) -> List[Post]:
        if limit <= 0:
            return []
        with self._lock:
            values = list(self._posts.values())
        start = max(offset, 0)
        return self._newest_first(values)[start : start + limit]

    def list_posts_by_author(self, author_id: UUID, *, limit: int = 50) -> List[Post]:
        if limit <= 0:
            return []
        with self._lock:
            values = [p for p in self._posts.values() if p.author_id == author_id]
        return self._newest_first(values)[:limit]

    def delete_post(self, post_id: UUID) -> bool:
        with self._lock:
            return self._drop_post_locked(post_id)

    def delete_posts_by_author(self, author_id: UUID) -> int:
        with self._lock:
            owned = [pid for pid, p in self._posts.items() if p.author_id == author_id]
            for post_id in owned:
                self._drop_post_locked(post_id)
            return len(owned)

    # =========================================================
    # Likes
    # =========================================================
    def toggle_like(self, post_id: UUID, user_id: UUID) -> Optional[tuple[bool, int]]:
        with self._lock:
            if post_id not in self._posts:
                return None
            pair = (post_id, user_id)
            if pair in self._likes:
                self._likes.discard(pair)
                self._bump_locked(post_id, likes=-1)
                liked = False
            else:
                self._likes.add(pair)
                self._bump_locked(post_id, likes=1)
                liked = True
            return liked, self._posts[post_id].likes_count

    def delete_likes_by_user(self, user_id: UUID) -> int:
        with self._lock:
            mine = [pair for pair in self._likes if pair[1] == user_id]
            for pair in mine:
                self._likes.discard(pair)
                self._bump_locked(pair[0], likes=-1)
            return len(mine)

    # =========================================================
    # Comments
    # =========================================================
    def add_comment(self, comment: Comment) -> Optional[Comment]:
        with self._lock:
            if comment.post_id not in self._posts:
                return None
            stored = replace(comment, created_at=comment.created_at or self._now())
            self._comments[stored.id] = stored
            self._sequence[stored.id] = next(self._counter)
            self._bump_locked(comment.post_id, comments=1)
            return stored

    def list_comments(self, post_id: UUID) -> List[Comment]:
        with self._lock:
            values = [c for c in self._comments.values() if c.post_id == post_id]
            return sorted(values, key=lambda c: self._sequence.get(c.id, 0))

    def delete_comments_by_user(self, user_id: UUID) -> int:
        with self._lock:
            mine = [c for c in self._comments.values() if c.author_id == user_id]
            for comment in mine:
                del self._comments[comment.id]
                self._bump_locked(comment.post_id, comments=-1)
            return len(mine)
