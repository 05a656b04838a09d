"""
===============================================================================
USE CASES: Posts, likes, comments, flags and public profiles
===============================================================================

Business Goal:
    Operaciones de contenido del feed, todas sobre PostRepository decorado con
    cache-aside (las escrituras invalidan post:id:<id> y los listados posts:*).

-------------------------------------------------------------------------------
CRC CARD
-------------------------------------------------------------------------------
Classes:
    CreatePostUseCase, ListPostsUseCase, GetPostUseCase, DeletePostUseCase,
    ToggleLikeUseCase, AddCommentUseCase, ListCommentsUseCase,
    FlagPostUseCase, GetUserProfileUseCase

Reglas:
    - Contenido de post 1..2000 chars; comentario 1..500; motivo de flag 1..500.
    - Solo el autor o un admin eliminan un post (el borrado admin se audita).
    - Un único flag pendiente por (post, reporter).
===============================================================================
"""

from __future__ import annotations

from typing import List
from uuid import UUID, uuid4

from ....audit import POST_DELETED, emit_audit_event
from ....domain.entities import Comment, Flag, FlagStatus, Post
from ....domain.repositories import (
    AuditEventRepository,
    FlagRepository,
    PostRepository,
    UserRepository,
)
from ....identity.users import User
from .content_results import (
    CommentListResult,
    CommentResult,
    ContentError,
    ContentErrorCode,
    DeleteResult,
    FlagCreatedResult,
    LikeResult,
    PostResult,
    ProfileResult,
    invalid,
    not_found,
)

MAX_POST_LENGTH = 2000
MAX_COMMENT_LENGTH = 500
MAX_REASON_LENGTH = 500
MAX_PAGE_SIZE = 50
MAX_IMAGE_URL_LENGTH = 2048


def _check_text(value: str | None, *, field: str, max_length: int) -> str | ContentError:
    text = (value or "").strip()
    if not text:
        return invalid(f"{field} is required")
    if len(text) > max_length:
        return invalid(f"{field} must be at most {max_length} characters")
    return text


class CreatePostUseCase:
    def __init__(self, posts: PostRepository) -> None:
        self._posts = posts

    def execute(self, author: User, content: str, image_url: str | None = None) -> PostResult:
        text = _check_text(content, field="Content", max_length=MAX_POST_LENGTH)
        if isinstance(text, ContentError):
            return PostResult(error=text)

        url = (image_url or "").strip() or None
        if url is not None and (
            not url.startswith(("http://", "https://")) or len(url) > MAX_IMAGE_URL_LENGTH
        ):
            return PostResult(error=invalid("image_url must be an http(s) URL"))

        post = self._posts.create_post(
            Post(id=uuid4(), author_id=author.id, content=text, image_url=url)
        )
        return PostResult(post=post)


class ListPostsUseCase:
    def __init__(self, posts: PostRepository) -> None:
        self._posts = posts

    def execute(self, *, limit: int = 20, offset: int = 0) -> List[Post]:
        return self._posts.list_posts(
            limit=min(max(limit, 1), MAX_PAGE_SIZE), offset=max(offset, 0)
        )


class GetPostUseCase:
    def __init__(self, posts: PostRepository) -> None:
        self._posts = posts

    def execute(self, post_id: UUID) -> PostResult:
        post = self._posts.get_post(post_id)
        if post is None:
            return PostResult(error=not_found("Post"))
        return PostResult(post=post)


class DeletePostUseCase:
    def __init__(
        self,
        posts: PostRepository,
        audit_repo: AuditEventRepository | None = None,
    ) -> None:
        self._posts = posts
        self._audit = audit_repo

    def execute(self, actor: User, post_id: UUID) -> DeleteResult:
        post = self._posts.get_post(post_id)
        if post is None:
            return DeleteResult(error=not_found("Post"))

        is_author = post.author_id == actor.id
        if not is_author and not actor.is_admin:
            return DeleteResult(
                error=ContentError(ContentErrorCode.FORBIDDEN, "Only the author or an admin can delete this post")
            )

        if not self._posts.delete_post(post_id):
            return DeleteResult(error=not_found("Post"))

        if not is_author:
            emit_audit_event(
                self._audit,
                action=POST_DELETED,
                actor_user=actor,
                target_type="post",
                target_id=post_id,
                metadata={"author_id": str(post.author_id)},
            )
        return DeleteResult(deleted=True)


class ToggleLikeUseCase:
    def __init__(self, posts: PostRepository) -> None:
        self._posts = posts

    def execute(self, user: User, post_id: UUID) -> LikeResult:
        outcome = self._posts.toggle_like(post_id, user.id)
        if outcome is None:
            return LikeResult(error=not_found("Post"))
        liked, count = outcome
        return LikeResult(liked=liked, likes_count=count)


class AddCommentUseCase:
    def __init__(self, posts: PostRepository) -> None:
        self._posts = posts

    def execute(self, author: User, post_id: UUID, content: str) -> CommentResult:
        text = _check_text(content, field="Comment", max_length=MAX_COMMENT_LENGTH)
        if isinstance(text, ContentError):
            return CommentResult(error=text)

        comment = self._posts.add_comment(
            Comment(id=uuid4(), post_id=post_id, author_id=author.id, content=text)
        )
        if comment is None:
            return CommentResult(error=not_found("Post"))
        return CommentResult(comment=comment)


class ListCommentsUseCase:
    def __init__(self, posts: PostRepository) -> None:
        self._posts = posts

    def execute(self, post_id: UUID) -> CommentListResult:
        if self._posts.get_post(post_id) is None:
            return CommentListResult(error=not_found("Post"))
        return CommentListResult(comments=self._posts.list_comments(post_id))


class FlagPostUseCase:
    def __init__(self, posts: PostRepository, flags: FlagRepository) -> None:
        self._posts = posts
        self._flags = flags

    def execute(self, reporter: User, post_id: UUID, reason: str) -> FlagCreatedResult:
        text = _check_text(reason, field="Reason", max_length=MAX_REASON_LENGTH)
        if isinstance(text, ContentError):
            return FlagCreatedResult(error=text)

        if self._posts.get_post(post_id) is None:
            return FlagCreatedResult(error=not_found("Post"))

        if self._flags.find_pending_flag(post_id, reporter.id) is not None:
            return FlagCreatedResult(
                error=ContentError(
                    ContentErrorCode.CONFLICT, "You already have a pending report for this post"
                )
            )

        flag = self._flags.create_flag(
            Flag(
                id=uuid4(),
                post_id=post_id,
                reporter_id=reporter.id,
                reason=text,
                status=FlagStatus.PENDING,
            )
        )
        return FlagCreatedResult(flag=flag)


class GetUserProfileUseCase:
    def __init__(self, users: UserRepository, posts: PostRepository) -> None:
        self._users = users
        self._posts = posts

    def execute(self, username: str, *, posts_limit: int = 50) -> ProfileResult:
        user = self._users.get_user_by_username((username or "").strip())
        if user is None or user.is_disabled:
            return ProfileResult(error=not_found("User"))
        return ProfileResult(
            user=user,
            posts=self._posts.list_posts_by_author(user.id, limit=posts_limit),
        )
