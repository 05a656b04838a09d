"""
Name: Content Endpoint Tests (feed, likes, comments, profiles, announcements)
"""

import pytest

pytestmark = pytest.mark.unit


@pytest.fixture
def post(client, member_headers):
    return client.post(
        "/posts", json={"content": "first"}, headers=member_headers
    ).json()


class TestFeed:
    def test_feed_requires_session(self, client):
        assert client.get("/posts").status_code == 401

    def test_create_and_list(self, client, member_headers, post):
        client.post("/posts", json={"content": "second"}, headers=member_headers)

        posts = client.get("/posts", headers=member_headers).json()["posts"]

        assert [p["content"] for p in posts] == ["second", "first"]
        assert posts[1]["id"] == post["id"]

    def test_limit_bounds(self, client, member_headers):
        response = client.get("/posts", params={"limit": 0}, headers=member_headers)
        assert response.status_code == 400

    def test_empty_content(self, client, member_headers):
        response = client.post("/posts", json={"content": "  "}, headers=member_headers)
        assert response.status_code == 400

    def test_like_toggle_updates_feed(self, client, member_headers, post):
        liked = client.post(f"/posts/{post['id']}/like", headers=member_headers).json()
        assert liked == {"liked": True, "likes_count": 1}

        fetched = client.get(f"/posts/{post['id']}", headers=member_headers).json()
        assert fetched["likes_count"] == 1

        unliked = client.post(f"/posts/{post['id']}/like", headers=member_headers).json()
        assert unliked == {"liked": False, "likes_count": 0}

    def test_comments(self, client, member_headers, post):
        created = client.post(
            f"/posts/{post['id']}/comments",
            json={"content": "nice"},
            headers=member_headers,
        )
        assert created.status_code == 201

        comments = client.get(
            f"/posts/{post['id']}/comments", headers=member_headers
        ).json()["comments"]
        assert [c["content"] for c in comments] == ["nice"]

    def test_only_author_or_admin_deletes(
        self, client, seed_user, auth_headers, admin_headers, post
    ):
        stranger = auth_headers(seed_user())

        assert (
            client.delete(f"/posts/{post['id']}", headers=stranger).status_code == 403
        )
        response = client.delete(f"/posts/{post['id']}", headers=admin_headers)
        assert response.json() == {"deleted": True}

    def test_duplicate_flag_is_conflict(self, client, member_headers, post):
        url = f"/posts/{post['id']}/flag"
        assert client.post(url, json={"reason": "spam"}, headers=member_headers).status_code == 201
        assert client.post(url, json={"reason": "spam"}, headers=member_headers).status_code == 409

    def test_unknown_post(self, client, member_headers):
        response = client.get(
            "/posts/00000000-0000-0000-0000-000000000000", headers=member_headers
        )
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"


class TestProfiles:
    def test_public_profile_hides_email(self, client, member, member_headers, post):
        response = client.get(f"/users/{member.username}", headers=member_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["user"]["username"] == member.username
        assert "email" not in body["user"]
        assert [p["id"] for p in body["posts"]] == [post["id"]]

    def test_unknown_profile(self, client, member_headers):
        assert client.get("/users/ghost_user", headers=member_headers).status_code == 404


class TestAnnouncements:
    def test_admin_posts_members_read(self, client, admin_headers, member_headers):
        created = client.post(
            "/announcements",
            json={"title": "Welcome", "content": "Be nice", "announcement_type": "success"},
            headers=admin_headers,
        )
        assert created.status_code == 201

        listed = client.get("/announcements", headers=member_headers).json()["announcements"]
        assert [a["title"] for a in listed] == ["Welcome"]
        assert listed[0]["announcement_type"] == "success"

        deleted = client.delete(
            f"/announcements/{created.json()['id']}", headers=admin_headers
        )
        assert deleted.json() == {"deleted": True}
        assert client.get("/announcements", headers=member_headers).json()["announcements"] == []

    def test_members_cannot_post(self, client, member_headers):
        response = client.post(
            "/announcements", json={"title": "x", "content": "y"}, headers=member_headers
        )
        assert response.status_code == 403
