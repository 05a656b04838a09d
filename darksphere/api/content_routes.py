"""
===============================================================================
TARJETA CRC — darksphere/api/content_routes.py (Feed, perfiles y anuncios)
===============================================================================

Responsabilidades:
  - Exponer posts, likes, comentarios, flags, perfiles públicos y anuncios.
  - Requerir sesión para escribir; lecturas de feed también autenticadas
    (la red es cerrada: solo usuarios registrados con key).

Colaboradores:
  - application.usecases.content.*
  - identity.auth_users.require_user / require_role
  - container (factories)
===============================================================================
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ..application.usecases.content import (
    AddCommentUseCase,
    ContentError,
    ContentErrorCode,
    CreateAnnouncementUseCase,
    CreatePostUseCase,
    DeleteAnnouncementUseCase,
    DeletePostUseCase,
    FlagPostUseCase,
    GetPostUseCase,
    GetUserProfileUseCase,
    ListAnnouncementsUseCase,
    ListCommentsUseCase,
    ListPostsUseCase,
    ToggleLikeUseCase,
)
from ..container import (
    get_add_comment_use_case,
    get_create_announcement_use_case,
    get_create_post_use_case,
    get_delete_announcement_use_case,
    get_delete_post_use_case,
    get_flag_post_use_case,
    get_get_post_use_case,
    get_list_announcements_use_case,
    get_list_comments_use_case,
    get_list_posts_use_case,
    get_toggle_like_use_case,
    get_user_profile_use_case,
)
from ..crosscutting.error_responses import (
    OPENAPI_ERROR_RESPONSES,
    AppHTTPException,
    ErrorCode,
    conflict,
    forbidden,
    validation_error,
)
from ..domain.entities import AnnouncementType
from ..identity.auth_users import require_role, require_user
from ..identity.users import User, UserRole
from .schemas import (
    AnnouncementResponse,
    CommentResponse,
    FlagResponse,
    PostResponse,
    PublicProfileResponse,
    to_announcement_response,
    to_comment_response,
    to_flag_response,
    to_post_response,
    to_public_profile,
)

router = APIRouter(responses=OPENAPI_ERROR_RESPONSES)


# -----------------------------------------------------------------------------
# DTOs
# -----------------------------------------------------------------------------


class CreatePostReq(BaseModel):
    content: str = Field(..., max_length=5000)
    image_url: str | None = Field(default=None, max_length=2048)


class PostsListRes(BaseModel):
    posts: list[PostResponse]


class LikeRes(BaseModel):
    liked: bool
    likes_count: int


class CreateCommentReq(BaseModel):
    content: str = Field(..., max_length=2000)


class CommentsListRes(BaseModel):
    comments: list[CommentResponse]


class FlagPostReq(BaseModel):
    reason: str = Field(..., max_length=1000)


class ProfileRes(BaseModel):
    user: PublicProfileResponse
    posts: list[PostResponse]


class CreateAnnouncementReq(BaseModel):
    title: str = Field(..., max_length=200)
    content: str = Field(..., max_length=5000)
    announcement_type: AnnouncementType = AnnouncementType.INFO


class AnnouncementsListRes(BaseModel):
    announcements: list[AnnouncementResponse]


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def _raise_for_content_error(error: ContentError) -> None:
    if error.code == ContentErrorCode.VALIDATION_ERROR:
        raise validation_error(error.message)
    if error.code == ContentErrorCode.NOT_FOUND:
        raise AppHTTPException(404, ErrorCode.NOT_FOUND, error.message)
    if error.code == ContentErrorCode.FORBIDDEN:
        raise forbidden(error.message)
    if error.code == ContentErrorCode.CONFLICT:
        raise conflict(error.message)

    raise validation_error(error.message)


# -----------------------------------------------------------------------------
# Posts
# -----------------------------------------------------------------------------


@router.get("/posts", response_model=PostsListRes, tags=["posts"])
def list_posts(
    limit: int = Query(default=20, ge=1, le=50),
    offset: int = Query(default=0, ge=0),
    _user: User = Depends(require_user()),
    use_case: ListPostsUseCase = Depends(get_list_posts_use_case),
):
    posts = use_case.execute(limit=limit, offset=offset)
    return PostsListRes(posts=[to_post_response(p) for p in posts])


@router.post("/posts", response_model=PostResponse, status_code=201, tags=["posts"])
def create_post(
    req: CreatePostReq,
    user: User = Depends(require_user()),
    use_case: CreatePostUseCase = Depends(get_create_post_use_case),
):
    result = use_case.execute(user, req.content, req.image_url)
    if result.error:
        _raise_for_content_error(result.error)
    return to_post_response(result.post)


@router.get("/posts/{post_id}", response_model=PostResponse, tags=["posts"])
def get_post(
    post_id: UUID,
    _user: User = Depends(require_user()),
    use_case: GetPostUseCase = Depends(get_get_post_use_case),
):
    result = use_case.execute(post_id)
    if result.error:
        _raise_for_content_error(result.error)
    return to_post_response(result.post)


@router.delete("/posts/{post_id}", tags=["posts"])
def delete_post(
    post_id: UUID,
    user: User = Depends(require_user()),
    use_case: DeletePostUseCase = Depends(get_delete_post_use_case),
):
    """Elimina un post (autor o admin)."""
    result = use_case.execute(user, post_id)
    if result.error:
        _raise_for_content_error(result.error)
    return {"deleted": result.deleted}


@router.post("/posts/{post_id}/like", response_model=LikeRes, tags=["posts"])
def toggle_like(
    post_id: UUID,
    user: User = Depends(require_user()),
    use_case: ToggleLikeUseCase = Depends(get_toggle_like_use_case),
):
    result = use_case.execute(user, post_id)
    if result.error:
        _raise_for_content_error(result.error)
    return LikeRes(liked=result.liked, likes_count=result.likes_count)


@router.get(
    "/posts/{post_id}/comments", response_model=CommentsListRes, tags=["posts"]
)
def list_comments(
    post_id: UUID,
    _user: User = Depends(require_user()),
    use_case: ListCommentsUseCase = Depends(get_list_comments_use_case),
):
    result = use_case.execute(post_id)
    if result.error:
        _raise_for_content_error(result.error)
    return CommentsListRes(comments=[to_comment_response(c) for c in result.comments])


@router.post(
    "/posts/{post_id}/comments",
    response_model=CommentResponse,
    status_code=201,
    tags=["posts"],
)
def add_comment(
    post_id: UUID,
    req: CreateCommentReq,
    user: User = Depends(require_user()),
    use_case: AddCommentUseCase = Depends(get_add_comment_use_case),
):
    result = use_case.execute(user, post_id, req.content)
    if result.error:
        _raise_for_content_error(result.error)
    return to_comment_response(result.comment)


@router.post(
    "/posts/{post_id}/flag",
    response_model=FlagResponse,
    status_code=201,
    tags=["posts"],
)
def flag_post(
    post_id: UUID,
    req: FlagPostReq,
    user: User = Depends(require_user()),
    use_case: FlagPostUseCase = Depends(get_flag_post_use_case),
):
    """Reporta un post. Un solo flag pendiente por (post, reporter)."""
    result = use_case.execute(user, post_id, req.reason)
    if result.error:
        _raise_for_content_error(result.error)
    return to_flag_response(result.flag)


# -----------------------------------------------------------------------------
# Perfiles
# -----------------------------------------------------------------------------


@router.get("/users/{username}", response_model=ProfileRes, tags=["users"])
def get_profile(
    username: str,
    _user: User = Depends(require_user()),
    use_case: GetUserProfileUseCase = Depends(get_user_profile_use_case),
):
    result = use_case.execute(username)
    if result.error:
        _raise_for_content_error(result.error)
    return ProfileRes(
        user=to_public_profile(result.user),
        posts=[to_post_response(p) for p in result.posts],
    )


# -----------------------------------------------------------------------------
# Anuncios
# -----------------------------------------------------------------------------


@router.get(
    "/announcements", response_model=AnnouncementsListRes, tags=["announcements"]
)
def list_announcements(
    limit: int = Query(default=50, ge=1, le=100),
    _user: User = Depends(require_user()),
    use_case: ListAnnouncementsUseCase = Depends(get_list_announcements_use_case),
):
    items = use_case.execute(limit=limit)
    return AnnouncementsListRes(
        announcements=[to_announcement_response(a) for a in items]
    )


@router.post(
    "/announcements",
    response_model=AnnouncementResponse,
    status_code=201,
    tags=["announcements"],
)
def create_announcement(
    req: CreateAnnouncementReq,
    actor: User = Depends(require_role(UserRole.ADMIN)),
    use_case: CreateAnnouncementUseCase = Depends(get_create_announcement_use_case),
):
    result = use_case.execute(
        actor,
        title=req.title,
        content=req.content,
        announcement_type=req.announcement_type,
    )
    if result.error:
        _raise_for_content_error(result.error)
    return to_announcement_response(result.announcement)


@router.delete("/announcements/{announcement_id}", tags=["announcements"])
def delete_announcement(
    announcement_id: UUID,
    actor: User = Depends(require_role(UserRole.ADMIN)),
    use_case: DeleteAnnouncementUseCase = Depends(get_delete_announcement_use_case),
):
    result = use_case.execute(actor, announcement_id)
    if result.error:
        _raise_for_content_error(result.error)
    return {"deleted": result.deleted}
