"""
Name: Content Use Case Tests (posts, likes, comments, flags, profiles, announcements)
"""

from uuid import uuid4

import pytest

from darksphere.application.usecases.content import (
    AddCommentUseCase,
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
from darksphere.domain.entities import AnnouncementType, FlagStatus
from darksphere.identity.users import UserRole
from darksphere.infrastructure.repositories import (
    InMemoryAnnouncementRepository,
    InMemoryAuditEventRepository,
    InMemoryFlagRepository,
    InMemoryPostRepository,
    InMemoryUserRepository,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def posts():
    return InMemoryPostRepository()


@pytest.fixture
def users():
    return InMemoryUserRepository()


@pytest.fixture
def author(users, user_factory):
    return users.create_user(user_factory(username="writer"))


@pytest.fixture
def post(posts, author):
    return CreatePostUseCase(posts).execute(author, "first post").post


class TestPosts:
    def test_create_trims_content(self, posts, author):
        result = CreatePostUseCase(posts).execute(author, "  hello  ")

        assert result.post.content == "hello"
        assert result.post.author_id == author.id
        assert result.post.likes_count == 0

    @pytest.mark.parametrize("content", ["", "   ", "x" * 2001])
    def test_create_rejects_bad_content(self, posts, author, content):
        result = CreatePostUseCase(posts).execute(author, content)
        assert result.error.code == ContentErrorCode.VALIDATION_ERROR

    def test_create_rejects_non_http_image(self, posts, author):
        result = CreatePostUseCase(posts).execute(author, "pic", "javascript:alert(1)")
        assert result.error.code == ContentErrorCode.VALIDATION_ERROR

    def test_list_is_newest_first_and_clamped(self, posts, author):
        use_case = CreatePostUseCase(posts)
        for i in range(3):
            use_case.execute(author, f"post {i}")

        listed = ListPostsUseCase(posts).execute(limit=500)

        assert [p.content for p in listed] == ["post 2", "post 1", "post 0"]

    def test_get_unknown_post(self, posts):
        result = GetPostUseCase(posts).execute(uuid4())
        assert result.error.code == ContentErrorCode.NOT_FOUND

    def test_author_can_delete(self, posts, author, post):
        assert DeletePostUseCase(posts).execute(author, post.id).deleted is True
        assert posts.get_post(post.id) is None

    def test_other_member_cannot_delete(self, posts, users, user_factory, post):
        intruder = users.create_user(user_factory())

        result = DeletePostUseCase(posts).execute(intruder, post.id)

        assert result.error.code == ContentErrorCode.FORBIDDEN
        assert posts.get_post(post.id) is not None

    def test_admin_delete_is_audited(self, posts, users, user_factory, post):
        admin = users.create_user(user_factory(role=UserRole.ADMIN))
        audit = InMemoryAuditEventRepository()

        result = DeletePostUseCase(posts, audit).execute(admin, post.id)

        assert result.deleted is True
        (event,) = audit.get_all_events()
        assert event.action == "post_deleted"
        assert event.target_id == post.id


class TestLikesAndComments:
    def test_like_toggles(self, posts, author, post):
        use_case = ToggleLikeUseCase(posts)

        first = use_case.execute(author, post.id)
        second = use_case.execute(author, post.id)

        assert (first.liked, first.likes_count) == (True, 1)
        assert (second.liked, second.likes_count) == (False, 0)

    def test_like_unknown_post(self, posts, author):
        result = ToggleLikeUseCase(posts).execute(author, uuid4())
        assert result.error.code == ContentErrorCode.NOT_FOUND

    def test_comments_in_creation_order(self, posts, author, post):
        use_case = AddCommentUseCase(posts)
        use_case.execute(author, post.id, "one")
        use_case.execute(author, post.id, "two")

        result = ListCommentsUseCase(posts).execute(post.id)

        assert [c.content for c in result.comments] == ["one", "two"]
        assert posts.get_post(post.id).comments_count == 2

    def test_comment_on_unknown_post(self, posts, author):
        result = AddCommentUseCase(posts).execute(author, uuid4(), "hi")
        assert result.error.code == ContentErrorCode.NOT_FOUND

    def test_comment_too_long(self, posts, author, post):
        result = AddCommentUseCase(posts).execute(author, post.id, "x" * 501)
        assert result.error.code == ContentErrorCode.VALIDATION_ERROR

    def test_list_comments_unknown_post(self, posts):
        result = ListCommentsUseCase(posts).execute(uuid4())
        assert result.error.code == ContentErrorCode.NOT_FOUND


class TestFlags:
    def test_flag_once_per_reporter(self, posts, author, post):
        flags = InMemoryFlagRepository()
        use_case = FlagPostUseCase(posts, flags)

        created = use_case.execute(author, post.id, "spam")
        duplicate = use_case.execute(author, post.id, "spam again")

        assert created.flag.status == FlagStatus.PENDING
        assert created.flag.reporter_id == author.id
        assert duplicate.error.code == ContentErrorCode.CONFLICT

    def test_flag_unknown_post(self, posts, author):
        result = FlagPostUseCase(posts, InMemoryFlagRepository()).execute(
            author, uuid4(), "spam"
        )
        assert result.error.code == ContentErrorCode.NOT_FOUND

    def test_flag_requires_reason(self, posts, author, post):
        result = FlagPostUseCase(posts, InMemoryFlagRepository()).execute(
            author, post.id, "  "
        )
        assert result.error.code == ContentErrorCode.VALIDATION_ERROR


class TestProfiles:
    def test_profile_with_posts(self, users, posts, author, post):
        result = GetUserProfileUseCase(users, posts).execute("WRITER")

        assert result.user.id == author.id
        assert [p.id for p in result.posts] == [post.id]

    def test_disabled_profile_is_hidden(self, users, posts, author):
        users.set_user_disabled(author.id, True)

        result = GetUserProfileUseCase(users, posts).execute("writer")

        assert result.error.code == ContentErrorCode.NOT_FOUND

    def test_unknown_profile(self, users, posts):
        result = GetUserProfileUseCase(users, posts).execute("ghost")
        assert result.error.code == ContentErrorCode.NOT_FOUND


class TestAnnouncements:
    def test_admin_lifecycle(self, users, user_factory):
        admin = users.create_user(user_factory(role=UserRole.ADMIN))
        repo = InMemoryAnnouncementRepository()
        audit = InMemoryAuditEventRepository()

        created = CreateAnnouncementUseCase(repo, audit).execute(
            admin,
            title="Maintenance",
            content="Tonight",
            announcement_type=AnnouncementType.WARNING,
        )
        assert created.announcement.created_by == admin.id
        assert [a.title for a in ListAnnouncementsUseCase(repo).execute()] == ["Maintenance"]

        deleted = DeleteAnnouncementUseCase(repo, audit).execute(
            admin, created.announcement.id
        )
        assert deleted.deleted is True
        assert ListAnnouncementsUseCase(repo).execute() == []
        assert [e.action for e in audit.get_all_events()] == [
            "announcement_created",
            "announcement_deleted",
        ]

    def test_member_cannot_create(self, author):
        result = CreateAnnouncementUseCase(InMemoryAnnouncementRepository()).execute(
            author, title="Hi", content="there"
        )
        assert result.error.code == ContentErrorCode.FORBIDDEN

    def test_requires_title(self, users, user_factory):
        admin = users.create_user(user_factory(role=UserRole.ADMIN))
        result = CreateAnnouncementUseCase(InMemoryAnnouncementRepository()).execute(
            admin, title=" ", content="body"
        )
        assert result.error.code == ContentErrorCode.VALIDATION_ERROR

    def test_delete_unknown(self, users, user_factory):
        admin = users.create_user(user_factory(role=UserRole.ADMIN))
        result = DeleteAnnouncementUseCase(InMemoryAnnouncementRepository()).execute(
            admin, uuid4()
        )
        assert result.error.code == ContentErrorCode.NOT_FOUND
