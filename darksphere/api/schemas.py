"""
===============================================================================
TARJETA CRC — darksphere/api/schemas.py (DTOs HTTP compartidos)
===============================================================================

Responsabilidades:
  - Definir modelos de respuesta reutilizados por varios routers.
  - Convertir entidades de dominio a DTOs (sin exponer password_hash).

Colaboradores:
  - identity.users.User
  - domain.entities (Post, Comment, Flag, Announcement, SecurityKey)
  - domain.audit.AuditEvent
===============================================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from ..domain.audit import AuditEvent
from ..domain.entities import (
    Announcement,
    AnnouncementType,
    Comment,
    Flag,
    FlagAction,
    FlagStatus,
    KeyState,
    KeyTier,
    Post,
    SecurityKey,
)
from ..identity.users import User, UserRole


class UserResponse(BaseModel):
    id: UUID
    username: str
    email: str
    display_name: str
    role: UserRole
    is_disabled: bool
    bio: str | None = None
    location: str | None = None
    website: str | None = None
    created_at: datetime | None = None


class PublicProfileResponse(BaseModel):
    """Perfil público: sin email."""

    id: UUID
    username: str
    display_name: str
    role: UserRole
    bio: str | None = None
    location: str | None = None
    website: str | None = None
    created_at: datetime | None = None


class PostResponse(BaseModel):
    id: UUID
    author_id: UUID
    content: str
    image_url: str | None = None
    likes_count: int
    comments_count: int
    created_at: datetime | None = None


class CommentResponse(BaseModel):
    id: UUID
    post_id: UUID
    author_id: UUID
    content: str
    created_at: datetime | None = None


class FlagResponse(BaseModel):
    id: UUID
    post_id: UUID | None
    reporter_id: UUID | None
    reason: str
    status: FlagStatus
    action: FlagAction | None = None
    resolved_by: UUID | None = None
    resolved_at: datetime | None = None
    created_at: datetime | None = None


class AnnouncementResponse(BaseModel):
    id: UUID
    title: str
    content: str
    announcement_type: AnnouncementType
    created_by: UUID | None = None
    created_at: datetime | None = None


class SecurityKeyResponse(BaseModel):
    id: UUID
    key_value: str
    tier: KeyTier
    state: KeyState
    is_used: bool
    is_active: bool
    is_expired: bool
    used_by: UUID | None = None
    used_at: datetime | None = None
    created_by: UUID | None = None
    created_at: datetime | None = None
    expires_at: datetime | None = None
    deactivated_at: datetime | None = None


class AuditEventResponse(BaseModel):
    id: UUID
    actor: str
    action: str
    target_type: str | None = None
    target_id: UUID | None = None
    metadata: dict[str, Any]
    created_at: datetime | None = None


# -----------------------------------------------------------------------------
# Mappers
# -----------------------------------------------------------------------------


def to_user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        username=user.username,
        email=user.email,
        display_name=user.display_name,
        role=user.role,
        is_disabled=user.is_disabled,
        bio=user.bio,
        location=user.location,
        website=user.website,
        created_at=user.created_at,
    )


def to_public_profile(user: User) -> PublicProfileResponse:
    return PublicProfileResponse(
        id=user.id,
        username=user.username,
        display_name=user.display_name,
        role=user.role,
        bio=user.bio,
        location=user.location,
        website=user.website,
        created_at=user.created_at,
    )


def to_post_response(post: Post) -> PostResponse:
    return PostResponse(
        id=post.id,
        author_id=post.author_id,
        content=post.content,
        image_url=post.image_url,
        likes_count=post.likes_count,
        comments_count=post.comments_count,
        created_at=post.created_at,
    )


def to_comment_response(comment: Comment) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        post_id=comment.post_id,
        author_id=comment.author_id,
        content=comment.content,
        created_at=comment.created_at,
    )


def to_flag_response(flag: Flag) -> FlagResponse:
    return FlagResponse(
        id=flag.id,
        post_id=flag.post_id,
        reporter_id=flag.reporter_id,
        reason=flag.reason,
        status=flag.status,
        action=flag.action,
        resolved_by=flag.resolved_by,
        resolved_at=flag.resolved_at,
        created_at=flag.created_at,
    )


def to_announcement_response(announcement: Announcement) -> AnnouncementResponse:
    return AnnouncementResponse(
        id=announcement.id,
        title=announcement.title,
        content=announcement.content,
        announcement_type=announcement.announcement_type,
        created_by=announcement.created_by,
        created_at=announcement.created_at,
    )


def to_key_response(key: SecurityKey, now: datetime | None = None) -> SecurityKeyResponse:
    # R: is_expired se calcula al leer; nunca se persiste.
    return SecurityKeyResponse(
        id=key.id,
        key_value=key.key_value,
        tier=key.tier,
        state=key.state,
        is_used=key.is_used,
        is_active=key.is_active,
        is_expired=key.is_expired(now),
        used_by=key.used_by,
        used_at=key.used_at,
        created_by=key.created_by,
        created_at=key.created_at,
        expires_at=key.expires_at,
        deactivated_at=key.deactivated_at,
    )


def to_audit_event_response(event: AuditEvent) -> AuditEventResponse:
    return AuditEventResponse(
        id=event.id,
        actor=event.actor,
        action=event.action,
        target_type=event.target_type,
        target_id=event.target_id,
        metadata=dict(event.metadata or {}),
        created_at=event.created_at,
    )
