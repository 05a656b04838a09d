"""
Name: Admin Use Case Tests

Responsibilities:
  - Key generation (batch / custom / limits / conflicts), listing, deactivation
  - User disable / delete cascade (content removed, key released, audited)
  - Flag resolution (dismiss / delete, already-resolved conflict)
  - Audit listing filters
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from darksphere.application.usecases.admin import (
    AdminErrorCode,
    DeactivateSecurityKeyUseCase,
    DeleteUserUseCase,
    DisableUserUseCase,
    GenerateKeysInput,
    GenerateSecurityKeysUseCase,
    ListAuditEventsUseCase,
    ListSecurityKeysUseCase,
    ListUsersUseCase,
    ResolveFlagUseCase,
)
from darksphere.domain.entities import (
    Comment,
    Flag,
    FlagAction,
    FlagStatus,
    KeyState,
    KeyTier,
    Post,
)
from darksphere.identity.users import UserRole
from darksphere.infrastructure.repositories import (
    InMemoryAuditEventRepository,
    InMemoryFlagRepository,
    InMemoryPostRepository,
    InMemorySecurityKeyRepository,
    InMemoryUserRepository,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def keys():
    return InMemorySecurityKeyRepository()


@pytest.fixture
def users():
    return InMemoryUserRepository()


@pytest.fixture
def posts():
    return InMemoryPostRepository()


@pytest.fixture
def flags():
    return InMemoryFlagRepository()


@pytest.fixture
def audit():
    return InMemoryAuditEventRepository()


@pytest.fixture
def admin(users, user_factory):
    return users.create_user(user_factory(username="root_admin", role=UserRole.ADMIN))


# ============================================================================
# Keys
# ============================================================================


class TestGenerateKeys:
    def test_three_user_keys_are_distinct_and_unused(self, keys, audit, admin):
        use_case = GenerateSecurityKeysUseCase(keys, audit)

        result = use_case.execute(GenerateKeysInput(actor=admin, count=3))

        assert result.error is None
        assert len(result.keys) == 3
        listed = ListSecurityKeysUseCase(keys).execute()
        assert len(listed) == 3
        assert len({k.key_value for k in listed}) == 3
        assert all(k.tier == KeyTier.USER for k in listed)
        assert all(k.state == KeyState.ACTIVE_UNUSED for k in listed)
        assert all(k.created_by == admin.id for k in listed)

    def test_generated_values_are_32_hex_upper(self, keys, admin):
        result = GenerateSecurityKeysUseCase(keys).execute(
            GenerateKeysInput(actor=admin, count=2)
        )
        for key in result.keys:
            assert len(key.key_value) == 32
            assert key.key_value == key.key_value.upper()
            int(key.key_value, 16)

    def test_expiry_uses_validity_days(self, keys, admin):
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        use_case = GenerateSecurityKeysUseCase(keys, validity_days=5, clock=lambda: now)

        (key,) = use_case.execute(GenerateKeysInput(actor=admin)).keys

        assert key.expires_at == now + timedelta(days=5)

    def test_zero_validity_means_no_expiry(self, keys, admin):
        use_case = GenerateSecurityKeysUseCase(keys, validity_days=0)

        (key,) = use_case.execute(GenerateKeysInput(actor=admin)).keys

        assert key.expires_at is None

    def test_custom_value(self, keys, admin):
        result = GenerateSecurityKeysUseCase(keys).execute(
            GenerateKeysInput(actor=admin, tier=KeyTier.ADMIN, custom_value=" STAFF-2026 ")
        )

        assert [k.key_value for k in result.keys] == ["STAFF-2026"]
        assert result.keys[0].tier == KeyTier.ADMIN

    def test_custom_value_duplicate_is_conflict(self, keys, admin):
        use_case = GenerateSecurityKeysUseCase(keys)
        use_case.execute(GenerateKeysInput(actor=admin, custom_value="STAFF-2026"))

        result = use_case.execute(GenerateKeysInput(actor=admin, custom_value="STAFF-2026"))

        assert result.error.code == AdminErrorCode.CONFLICT

    @pytest.mark.parametrize(
        "data",
        [
            {"count": 0},
            {"count": 51},
            {"count": 2, "custom_value": "STAFF-2026"},
            {"custom_value": "bad!"},
        ],
    )
    def test_invalid_requests(self, keys, admin, data):
        result = GenerateSecurityKeysUseCase(keys).execute(
            GenerateKeysInput(actor=admin, **data)
        )

        assert result.error.code == AdminErrorCode.VALIDATION_ERROR
        assert keys.list_keys() == []

    def test_non_admin_is_forbidden(self, keys, users, user_factory):
        member = users.create_user(user_factory())

        result = GenerateSecurityKeysUseCase(keys).execute(GenerateKeysInput(actor=member))

        assert result.error.code == AdminErrorCode.FORBIDDEN

    def test_audit_metadata_never_contains_key_values(self, keys, audit, admin):
        result = GenerateSecurityKeysUseCase(keys, audit).execute(
            GenerateKeysInput(actor=admin, custom_value="SECRET-VALUE")
        )

        (event,) = audit.get_all_events()
        assert event.action == "keys_generated"
        assert event.actor == f"user:{admin.id}"
        assert "SECRET-VALUE" not in str(event.metadata)
        assert event.metadata["key_ids"] == [str(result.keys[0].id)]


class TestDeactivateKey:
    def test_deactivate_is_audited(self, keys, audit, admin, key_factory):
        (key,) = keys.add_keys([key_factory("OLD-VALUE")])

        result = DeactivateSecurityKeyUseCase(keys, audit).execute(admin, key.id)

        assert result.key.state == KeyState.INACTIVE
        assert result.key.deactivated_by == admin.id
        assert audit.get_all_events()[0].action == "key_deactivated"

    def test_unknown_key(self, keys, admin):
        result = DeactivateSecurityKeyUseCase(keys).execute(admin, uuid4())
        assert result.error.code == AdminErrorCode.NOT_FOUND

    def test_used_key_is_conflict(self, keys, audit, admin, key_factory):
        (key,) = keys.add_keys([key_factory("SPENT-KEY")])
        keys.consume("SPENT-KEY", uuid4(), now=datetime.now(timezone.utc))

        result = DeactivateSecurityKeyUseCase(keys, audit).execute(admin, key.id)

        assert result.error.code == AdminErrorCode.CONFLICT
        assert "Used keys" in result.error.message
        stored = keys.get_by_id(key.id)
        assert stored.is_active is True
        assert stored.is_used is True
        assert audit.get_all_events() == []

    def test_consumed_between_read_and_update_is_conflict(
        self, keys, audit, admin, key_factory
    ):
        (key,) = keys.add_keys([key_factory("RACE-KEY")])
        racing = MagicMock(wraps=keys)

        def consume_first(key_id, **kwargs):
            keys.consume("RACE-KEY", uuid4(), now=datetime.now(timezone.utc))
            return keys.deactivate(key_id, **kwargs)

        racing.deactivate.side_effect = consume_first

        result = DeactivateSecurityKeyUseCase(racing, audit).execute(admin, key.id)

        assert result.error.code == AdminErrorCode.CONFLICT
        assert keys.get_by_id(key.id).is_active is True
        assert audit.get_all_events() == []

    def test_repeated_deactivation_is_not_audited_again(
        self, keys, audit, admin, key_factory
    ):
        (key,) = keys.add_keys([key_factory("ONCE-KEY")])
        use_case = DeactivateSecurityKeyUseCase(keys, audit)
        first = use_case.execute(admin, key.id)

        again = use_case.execute(admin, key.id)

        assert again.error is None
        assert again.key.deactivated_at == first.key.deactivated_at
        assert [e.action for e in audit.get_all_events()] == ["key_deactivated"]


# ============================================================================
# Users
# ============================================================================


def _seed_member_with_content(users, posts, keys, user_factory, key_factory):
    (key,) = keys.add_keys([key_factory("ALICE-KEY")])
    alice = users.create_user(user_factory(username="Alice"))
    keys.consume("ALICE-KEY", alice.id, now=datetime.now(timezone.utc))

    other = users.create_user(user_factory(username="bob"))
    own_post = posts.create_post(Post(id=uuid4(), author_id=alice.id, content="mine"))
    other_post = posts.create_post(Post(id=uuid4(), author_id=other.id, content="bob"))
    posts.toggle_like(other_post.id, alice.id)
    posts.add_comment(
        Comment(id=uuid4(), post_id=other_post.id, author_id=alice.id, content="hey")
    )
    return alice, key, own_post, other_post


class TestDeleteUser:
    def test_delete_cascades_and_releases_key(
        self, users, posts, keys, audit, admin, user_factory, key_factory
    ):
        alice, key, own_post, other_post = _seed_member_with_content(
            users, posts, keys, user_factory, key_factory
        )

        result = DeleteUserUseCase(users, posts, keys, audit).execute(admin, alice.id)

        assert result.error is None
        assert result.deleted is True
        assert result.posts_deleted == 1
        assert result.likes_deleted == 1
        assert result.comments_deleted == 1
        assert result.keys_released == 1

        assert users.get_user_by_id(alice.id) is None
        assert posts.get_post(own_post.id) is None
        remaining = posts.get_post(other_post.id)
        assert remaining.likes_count == 0
        assert remaining.comments_count == 0

        released = keys.get_by_id(key.id)
        assert released.is_used is False
        assert released.used_by is None

        events = [e for e in audit.get_all_events() if e.action == "user_deleted"]
        assert len(events) == 1
        assert events[0].target_id == alice.id

    def test_admin_cannot_delete_self(self, users, posts, keys, admin):
        result = DeleteUserUseCase(users, posts, keys).execute(admin, admin.id)

        assert result.error.code == AdminErrorCode.FORBIDDEN
        assert users.get_user_by_id(admin.id) is not None

    def test_unknown_user(self, users, posts, keys, admin):
        result = DeleteUserUseCase(users, posts, keys).execute(admin, uuid4())
        assert result.error.code == AdminErrorCode.NOT_FOUND

    def test_identity_provider_failure_does_not_abort(
        self, users, posts, keys, admin, user_factory
    ):
        member = users.create_user(user_factory(external_id="ext-7"))
        identity_admin = MagicMock()
        identity_admin.delete_identity.side_effect = RuntimeError("provider down")

        result = DeleteUserUseCase(
            users, posts, keys, identity_admin=identity_admin
        ).execute(admin, member.id)

        assert result.deleted is True
        identity_admin.delete_identity.assert_called_once_with("ext-7")


class TestDisableUser:
    def test_disable_and_enable(self, users, audit, admin, user_factory):
        member = users.create_user(user_factory())
        use_case = DisableUserUseCase(users, audit)

        assert use_case.execute(admin, member.id, True).user.is_disabled is True
        assert use_case.execute(admin, member.id, False).user.is_disabled is False
        assert [e.action for e in audit.get_all_events()] == [
            "user_disabled",
            "user_enabled",
        ]

    def test_cannot_disable_self(self, users, admin):
        result = DisableUserUseCase(users).execute(admin, admin.id, True)
        assert result.error.code == AdminErrorCode.FORBIDDEN

    def test_unknown_user(self, users, admin):
        result = DisableUserUseCase(users).execute(admin, uuid4(), True)
        assert result.error.code == AdminErrorCode.NOT_FOUND

    def test_propagates_to_identity_provider(self, users, admin, user_factory):
        member = users.create_user(user_factory(external_id="ext-3"))
        identity_admin = MagicMock()

        DisableUserUseCase(users, identity_admin=identity_admin).execute(
            admin, member.id, True
        )

        identity_admin.set_disabled.assert_called_once_with("ext-3", True)

    def test_list_users(self, users, admin, user_factory):
        users.create_user(user_factory())
        assert len(ListUsersUseCase(users).execute()) == 2


# ============================================================================
# Flags
# ============================================================================


@pytest.fixture
def flagged_post(posts, flags, user_factory):
    author = user_factory()
    post = posts.create_post(Post(id=uuid4(), author_id=author.id, content="spam"))
    flag = flags.create_flag(
        Flag(id=uuid4(), post_id=post.id, reporter_id=uuid4(), reason="spam")
    )
    return post, flag


class TestResolveFlag:
    def test_dismiss_keeps_post(self, flags, posts, audit, admin, flagged_post):
        post, flag = flagged_post

        result = ResolveFlagUseCase(flags, posts, audit).execute(
            admin, flag.id, FlagAction.DISMISS
        )

        assert result.flag.status == FlagStatus.RESOLVED
        assert result.flag.action == FlagAction.DISMISS
        assert result.post_deleted is False
        assert posts.get_post(post.id) is not None
        assert audit.get_all_events()[0].action == "flag_dismissed"

    def test_delete_removes_post(self, flags, posts, audit, admin, flagged_post):
        post, flag = flagged_post

        result = ResolveFlagUseCase(flags, posts, audit).execute(
            admin, flag.id, FlagAction.DELETE
        )

        assert result.post_deleted is True
        assert posts.get_post(post.id) is None
        assert audit.get_all_events()[0].action == "post_deleted"

    def test_delete_without_post_is_audited_as_delete(self, flags, posts, audit, admin):
        orphan = flags.create_flag(
            Flag(id=uuid4(), post_id=None, reporter_id=uuid4(), reason="gone already")
        )

        result = ResolveFlagUseCase(flags, posts, audit).execute(
            admin, orphan.id, FlagAction.DELETE
        )

        assert result.flag.action == FlagAction.DELETE
        assert result.post_deleted is False
        (event,) = audit.get_all_events()
        assert event.action == "post_deleted"
        assert event.target_id is None
        assert event.metadata["flag_id"] == str(orphan.id)
        assert event.metadata["post_deleted"] is False

    def test_second_resolution_is_conflict(self, flags, posts, admin, flagged_post):
        _, flag = flagged_post
        use_case = ResolveFlagUseCase(flags, posts)
        use_case.execute(admin, flag.id, FlagAction.DISMISS)

        result = use_case.execute(admin, flag.id, FlagAction.DELETE)

        assert result.error.code == AdminErrorCode.CONFLICT

    def test_unknown_flag(self, flags, posts, admin):
        result = ResolveFlagUseCase(flags, posts).execute(admin, uuid4(), FlagAction.DISMISS)
        assert result.error.code == AdminErrorCode.NOT_FOUND


# ============================================================================
# Audit
# ============================================================================


class TestListAudit:
    def test_filters_by_action_and_actor(self, keys, users, audit, admin, user_factory):
        GenerateSecurityKeysUseCase(keys, audit).execute(GenerateKeysInput(actor=admin))
        member = users.create_user(user_factory())
        DisableUserUseCase(users, audit).execute(admin, member.id, True)
        use_case = ListAuditEventsUseCase(audit)

        everything = use_case.execute(admin).events
        assert [e.action for e in everything] == ["user_disabled", "keys_generated"]

        by_action = use_case.execute(admin, action="keys_generated").events
        assert len(by_action) == 1

        by_actor = use_case.execute(admin, actor_filter=str(admin.id)).events
        assert len(by_actor) == 2

        by_target = use_case.execute(admin, target_id=member.id).events
        assert [e.action for e in by_target] == ["user_disabled"]

    def test_non_admin_is_forbidden(self, audit, users, user_factory):
        member = users.create_user(user_factory())
        result = ListAuditEventsUseCase(audit).execute(member)
        assert result.error.code == AdminErrorCode.FORBIDDEN
