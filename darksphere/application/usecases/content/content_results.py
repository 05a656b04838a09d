"""
===============================================================================
CONTENT USE CASE RESULTS
===============================================================================

Responsibilities:
    - ContentErrorCode / ContentError compartidos por posts, comentarios,
      flags, perfiles y anuncios.
    - Resultados tipados por operación.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List

from ....domain.entities import Announcement, Comment, Flag, Post
from ....identity.users import User


class ContentErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"


@dataclass(frozen=True)
class ContentError:
    code: ContentErrorCode
    message: str


@dataclass
class PostResult:
    post: Post | None = None
    error: ContentError | None = None


@dataclass
class DeleteResult:
    deleted: bool = False
    error: ContentError | None = None


@dataclass
class LikeResult:
    liked: bool = False
    likes_count: int = 0
    error: ContentError | None = None


@dataclass
class CommentResult:
    comment: Comment | None = None
    error: ContentError | None = None


@dataclass
class CommentListResult:
    comments: List[Comment] = field(default_factory=list)
    error: ContentError | None = None


@dataclass
class FlagCreatedResult:
    flag: Flag | None = None
    error: ContentError | None = None


@dataclass
class ProfileResult:
    user: User | None = None
    posts: List[Post] = field(default_factory=list)
    error: ContentError | None = None


@dataclass
class AnnouncementResult:
    announcement: Announcement | None = None
    error: ContentError | None = None


def not_found(resource: str) -> ContentError:
    return ContentError(ContentErrorCode.NOT_FOUND, f"{resource} not found")


def invalid(message: str) -> ContentError:
    return ContentError(ContentErrorCode.VALIDATION_ERROR, message)
