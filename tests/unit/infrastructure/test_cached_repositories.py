"""
Name: Cache-aside Repository Decorator Tests

Responsibilities:
  - Reads hit the store once and then the cache
  - Writes invalidate every key that could hold the stale entity
  - "Not found" results are never cached
"""

from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from darksphere.domain.entities import Announcement, Comment, Post
from darksphere.infrastructure.cache import CacheKeys, TTLCache
from darksphere.infrastructure.repositories import (
    CachingAnnouncementRepository,
    CachingPostRepository,
    CachingUserRepository,
    InMemoryAnnouncementRepository,
    InMemoryPostRepository,
    InMemoryUserRepository,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def user_store():
    return MagicMock(wraps=InMemoryUserRepository())


@pytest.fixture
def users(user_store):
    return CachingUserRepository(user_store, TTLCache("users", max_size=100))


@pytest.fixture
def post_store():
    return MagicMock(wraps=InMemoryPostRepository())


@pytest.fixture
def posts(post_store):
    return CachingPostRepository(
        post_store, TTLCache("posts", max_size=100), list_ttl_seconds=30
    )


def _post(author_id, content="hello") -> Post:
    return Post(id=uuid4(), author_id=author_id, content=content)


class TestCachingUserRepository:
    def test_second_read_is_served_from_cache(self, users, user_store, user_factory):
        user = users.create_user(user_factory())

        assert users.get_user_by_id(user.id) == user
        assert users.get_user_by_id(user.id) == user
        assert user_store.get_user_by_id.call_count == 1

    def test_username_lookup_is_case_insensitive_and_cached(
        self, users, user_store, user_factory
    ):
        user = users.create_user(user_factory(username="Alice"))

        assert users.get_user_by_username("alice").id == user.id
        assert users.get_user_by_username("ALICE").id == user.id
        assert user_store.get_user_by_username.call_count == 1

    def test_missing_user_is_not_cached(self, users, user_store, user_factory):
        user = user_factory(username="later")
        assert users.get_user_by_username("later") is None

        users.create_user(user)

        assert users.get_user_by_username("later").id == user.id
        assert user_store.get_user_by_username.call_count == 2

    def test_disable_invalidates_all_lookups(self, users, user_factory):
        user = users.create_user(user_factory())
        users.get_user_by_id(user.id)
        users.get_user_by_email(user.email)
        users.get_user_by_username(user.username)
        users.list_users()

        users.set_user_disabled(user.id, True)

        assert users.get_user_by_id(user.id).is_disabled is True
        assert users.get_user_by_email(user.email).is_disabled is True
        assert users.get_user_by_username(user.username).is_disabled is True
        assert users.list_users()[0].is_disabled is True

    def test_delete_removes_every_cached_key(self, users, user_factory):
        user = users.create_user(user_factory())
        users.get_user_by_id(user.id)
        users.get_user_by_email(user.email)
        users.list_users()

        assert users.delete_user(user.id) is True

        assert users.get_user_by_id(user.id) is None
        assert users.get_user_by_email(user.email) is None
        assert users.list_users() == []

    def test_external_id_lookup_bypasses_cache(self, users, user_store, user_factory):
        users.create_user(user_factory(external_id="ext-1"))
        users.get_user_by_external_id("ext-1")
        users.get_user_by_external_id("ext-1")
        assert user_store.get_user_by_external_id.call_count == 2


class TestCachingPostRepository:
    def test_listing_is_cached_until_a_new_post(self, posts, post_store):
        author = uuid4()
        posts.create_post(_post(author, "first"))

        assert len(posts.list_posts()) == 1
        assert len(posts.list_posts()) == 1
        assert post_store.list_posts.call_count == 1

        posts.create_post(_post(author, "second"))

        assert [p.content for p in posts.list_posts()] == ["second", "first"]
        assert post_store.list_posts.call_count == 2

    def test_like_invalidates_post_and_pages(self, posts):
        author = uuid4()
        post = posts.create_post(_post(author))
        posts.get_post(post.id)
        posts.list_posts()

        assert posts.toggle_like(post.id, uuid4()) == (True, 1)

        assert posts.get_post(post.id).likes_count == 1
        assert posts.list_posts()[0].likes_count == 1

    def test_comment_updates_cached_counter(self, posts):
        post = posts.create_post(_post(uuid4()))
        posts.get_post(post.id)

        posts.add_comment(
            Comment(id=uuid4(), post_id=post.id, author_id=uuid4(), content="hi")
        )

        assert posts.get_post(post.id).comments_count == 1

    def test_deleting_author_posts_clears_single_post_entries(self, posts):
        author = uuid4()
        post = posts.create_post(_post(author))
        posts.get_post(post.id)
        posts.list_posts_by_author(author)

        assert posts.delete_posts_by_author(author) == 1

        assert posts.get_post(post.id) is None
        assert posts.list_posts_by_author(author) == []

    def test_delete_post_invalidates_entry(self, posts):
        post = posts.create_post(_post(uuid4()))
        posts.get_post(post.id)

        assert posts.delete_post(post.id) is True
        assert posts.get_post(post.id) is None

    def test_page_key_format_is_shared_with_invalidation(self):
        assert CacheKeys.posts_page(20, 0).startswith(CacheKeys.POSTS_PREFIX)


class TestCachingAnnouncementRepository:
    def test_create_and_delete_invalidate_listing(self):
        store = MagicMock(wraps=InMemoryAnnouncementRepository())
        repo = CachingAnnouncementRepository(store, TTLCache("announcements"))

        assert repo.list_announcements() == []
        created = repo.create_announcement(
            Announcement(id=uuid4(), title="Hi", content="Welcome")
        )
        assert [a.id for a in repo.list_announcements()] == [created.id]
        assert repo.list_announcements()[0].title == "Hi"

        repo.delete_announcement(created.id)
        assert repo.list_announcements() == []
        assert store.list_announcements.call_count == 3
