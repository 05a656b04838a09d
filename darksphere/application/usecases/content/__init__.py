from .announcements import (
    CreateAnnouncementUseCase,
    DeleteAnnouncementUseCase,
    ListAnnouncementsUseCase,
)
from .content_results import ContentError, ContentErrorCode
from .posts import (
    AddCommentUseCase,
    CreatePostUseCase,
    DeletePostUseCase,
    FlagPostUseCase,
    GetPostUseCase,
    GetUserProfileUseCase,
    ListCommentsUseCase,
    ListPostsUseCase,
    ToggleLikeUseCase,
)

__all__ = [
    "CreatePostUseCase",
    "ListPostsUseCase",
    "GetPostUseCase",
    "DeletePostUseCase",
    "ToggleLikeUseCase",
    "AddCommentUseCase",
    "ListCommentsUseCase",
    "FlagPostUseCase",
    "GetUserProfileUseCase",
    "ListAnnouncementsUseCase",
    "CreateAnnouncementUseCase",
    "DeleteAnnouncementUseCase",
    "ContentError",
    "ContentErrorCode",
]
