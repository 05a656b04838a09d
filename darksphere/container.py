"""
===============================================================================
TARJETA CRC — darksphere/container.py (Composition Root / DI manual)
===============================================================================

Responsabilidades:
  - Componer repositorios (in-memory o Postgres), caches y casos de uso.
  - Envolver users / posts / announcements con los decoradores cache-aside;
    las security keys van SIEMPRE directo al store.
  - Mantener singletons con lru_cache (un set de caches por proceso).
  - Exponer factories para FastAPI (Depends) y para scripts.

Colaboradores:
  - crosscutting.config.get_settings
  - domain.repositories (puertos)
  - infrastructure.repositories / infrastructure.cache
  - identity.external_identity
  - application.usecases.*

Notas:
  - Este archivo NO contiene lógica de negocio.
  - Este archivo NO depende de FastAPI.
  - reset_container() limpia los singletons (tests).
===============================================================================
"""

from __future__ import annotations

from functools import lru_cache

from .application.usecases.admin import (
    DeactivateSecurityKeyUseCase,
    DeleteUserUseCase,
    DisableUserUseCase,
    GenerateSecurityKeysUseCase,
    ListAuditEventsUseCase,
    ListFlagsUseCase,
    ListSecurityKeysUseCase,
    ListUsersUseCase,
    ResolveFlagUseCase,
)
from .application.usecases.content import (
    AddCommentUseCase,
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
from .application.usecases.registration import (
    LoginUserUseCase,
    RegisterUserUseCase,
    ValidateKeyUseCase,
    VerifyIdentityTokenUseCase,
    VerifySessionUseCase,
)
from .crosscutting.config import get_settings
from .domain.repositories import (
    AnnouncementRepository,
    AuditEventRepository,
    FlagRepository,
    PostRepository,
    SecurityKeyRepository,
    UserRepository,
)
from .identity.external_identity import (
    ExternalIdentityVerifier,
    IdentityProviderAdmin,
    JWKSIdentityVerifier,
)
from .infrastructure.cache import EntityCaches, build_entity_caches
from .infrastructure.repositories import (
    CachingAnnouncementRepository,
    CachingPostRepository,
    CachingUserRepository,
    InMemoryAnnouncementRepository,
    InMemoryAuditEventRepository,
    InMemoryFlagRepository,
    InMemoryPostRepository,
    InMemorySecurityKeyRepository,
    InMemoryUserRepository,
    PostgresAnnouncementRepository,
    PostgresAuditEventRepository,
    PostgresFlagRepository,
    PostgresPostRepository,
    PostgresSecurityKeyRepository,
    PostgresUserRepository,
)

# =============================================================================
# Helpers internos
# =============================================================================


def _in_memory() -> bool:
    """Tests o DATABASE_URL vacío => repositorios in-memory."""
    return get_settings().uses_in_memory_store()


# =============================================================================
# Caches (singleton por proceso)
# =============================================================================


@lru_cache(maxsize=1)
def get_entity_caches() -> EntityCaches:
    return build_entity_caches(get_settings())


# =============================================================================
# Repositorios (singletons)
# =============================================================================


@lru_cache(maxsize=1)
def get_security_key_repository() -> SecurityKeyRepository:
    """Keys: sin cache (consumo atómico contra el store)."""
    if _in_memory():
        return InMemorySecurityKeyRepository()
    return PostgresSecurityKeyRepository()


@lru_cache(maxsize=1)
def get_user_repository() -> UserRepository:
    inner: UserRepository = (
        InMemoryUserRepository() if _in_memory() else PostgresUserRepository()
    )
    return CachingUserRepository(inner, get_entity_caches().users)


@lru_cache(maxsize=1)
def get_post_repository() -> PostRepository:
    caches = get_entity_caches()
    inner: PostRepository = (
        InMemoryPostRepository() if _in_memory() else PostgresPostRepository()
    )
    return CachingPostRepository(
        inner, caches.posts, list_ttl_seconds=caches.post_list_ttl_seconds
    )


@lru_cache(maxsize=1)
def get_flag_repository() -> FlagRepository:
    if _in_memory():
        return InMemoryFlagRepository()
    return PostgresFlagRepository()


@lru_cache(maxsize=1)
def get_announcement_repository() -> AnnouncementRepository:
    inner: AnnouncementRepository = (
        InMemoryAnnouncementRepository()
        if _in_memory()
        else PostgresAnnouncementRepository()
    )
    return CachingAnnouncementRepository(inner, get_entity_caches().announcements)


@lru_cache(maxsize=1)
def get_audit_repository() -> AuditEventRepository:
    if _in_memory():
        return InMemoryAuditEventRepository()
    return PostgresAuditEventRepository()


# =============================================================================
# Identidad externa (opcional)
# =============================================================================


@lru_cache(maxsize=1)
def get_identity_verifier() -> ExternalIdentityVerifier | None:
    settings = get_settings()
    if not settings.identity_jwks_url.strip():
        return None
    return JWKSIdentityVerifier(
        settings.identity_jwks_url,
        audience=settings.identity_audience,
        issuer=settings.identity_issuer,
        timeout_seconds=settings.identity_timeout_seconds,
    )


def get_identity_provider_admin() -> IdentityProviderAdmin | None:
    """Sin adapter de administración configurado (ver DESIGN.md)."""
    return None


# =============================================================================
# Casos de uso: registro / auth
# =============================================================================


def get_register_user_use_case() -> RegisterUserUseCase:
    return RegisterUserUseCase(
        get_security_key_repository(),
        get_user_repository(),
        admin_email=get_settings().admin_email,
        identity_verifier=get_identity_verifier(),
    )


def get_login_user_use_case() -> LoginUserUseCase:
    return LoginUserUseCase(get_user_repository())


def get_verify_session_use_case() -> VerifySessionUseCase:
    return VerifySessionUseCase(get_user_repository())


def get_verify_identity_token_use_case() -> VerifyIdentityTokenUseCase:
    return VerifyIdentityTokenUseCase(get_user_repository(), get_identity_verifier())


def get_validate_key_use_case() -> ValidateKeyUseCase:
    return ValidateKeyUseCase(get_security_key_repository())


# =============================================================================
# Casos de uso: admin
# =============================================================================


def get_generate_keys_use_case() -> GenerateSecurityKeysUseCase:
    settings = get_settings()
    return GenerateSecurityKeysUseCase(
        get_security_key_repository(),
        get_audit_repository(),
        max_batch=settings.max_keys_per_batch,
        validity_days=settings.key_validity_days,
    )


def get_list_keys_use_case() -> ListSecurityKeysUseCase:
    return ListSecurityKeysUseCase(get_security_key_repository())


def get_deactivate_key_use_case() -> DeactivateSecurityKeyUseCase:
    return DeactivateSecurityKeyUseCase(
        get_security_key_repository(), get_audit_repository()
    )


def get_list_users_use_case() -> ListUsersUseCase:
    return ListUsersUseCase(get_user_repository())


def get_disable_user_use_case() -> DisableUserUseCase:
    return DisableUserUseCase(
        get_user_repository(),
        get_audit_repository(),
        identity_admin=get_identity_provider_admin(),
    )


def get_delete_user_use_case() -> DeleteUserUseCase:
    return DeleteUserUseCase(
        get_user_repository(),
        get_post_repository(),
        get_security_key_repository(),
        get_audit_repository(),
        identity_admin=get_identity_provider_admin(),
    )


def get_list_flags_use_case() -> ListFlagsUseCase:
    return ListFlagsUseCase(get_flag_repository())


def get_resolve_flag_use_case() -> ResolveFlagUseCase:
    return ResolveFlagUseCase(
        get_flag_repository(), get_post_repository(), get_audit_repository()
    )


def get_list_audit_events_use_case() -> ListAuditEventsUseCase:
    return ListAuditEventsUseCase(get_audit_repository())


# =============================================================================
# Casos de uso: contenido
# =============================================================================


def get_create_post_use_case() -> CreatePostUseCase:
    return CreatePostUseCase(get_post_repository())


def get_list_posts_use_case() -> ListPostsUseCase:
    return ListPostsUseCase(get_post_repository())


def get_get_post_use_case() -> GetPostUseCase:
    return GetPostUseCase(get_post_repository())


def get_delete_post_use_case() -> DeletePostUseCase:
    return DeletePostUseCase(get_post_repository(), get_audit_repository())


def get_toggle_like_use_case() -> ToggleLikeUseCase:
    return ToggleLikeUseCase(get_post_repository())


def get_add_comment_use_case() -> AddCommentUseCase:
    return AddCommentUseCase(get_post_repository())


def get_list_comments_use_case() -> ListCommentsUseCase:
    return ListCommentsUseCase(get_post_repository())


def get_flag_post_use_case() -> FlagPostUseCase:
    return FlagPostUseCase(get_post_repository(), get_flag_repository())


def get_user_profile_use_case() -> GetUserProfileUseCase:
    return GetUserProfileUseCase(get_user_repository(), get_post_repository())


def get_list_announcements_use_case() -> ListAnnouncementsUseCase:
    return ListAnnouncementsUseCase(get_announcement_repository())


def get_create_announcement_use_case() -> CreateAnnouncementUseCase:
    return CreateAnnouncementUseCase(
        get_announcement_repository(), get_audit_repository()
    )


def get_delete_announcement_use_case() -> DeleteAnnouncementUseCase:
    return DeleteAnnouncementUseCase(
        get_announcement_repository(), get_audit_repository()
    )


# =============================================================================
# Tests
# =============================================================================


def reset_container() -> None:
    """Limpia singletons (caches, repos, verifier) entre tests."""
    for factory in (
        get_entity_caches,
        get_security_key_repository,
        get_user_repository,
        get_post_repository,
        get_flag_repository,
        get_announcement_repository,
        get_audit_repository,
        get_identity_verifier,
    ):
        factory.cache_clear()
