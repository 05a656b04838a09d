"""
Name: Admin Endpoint Tests

Responsibilities:
  - Admin-only access (401 without session, 403 for members)
  - Passcode generation / listing / deactivation
  - End-to-end: generate keys -> register -> delete user releases the key
  - Flags, audit and cache stats endpoints
"""

import pytest

from darksphere.container import get_post_repository

pytestmark = pytest.mark.unit

PASSWORD = "Str0ng!Pass"


class TestAccessControl:
    def test_requires_session(self, client):
        assert client.get("/admin/passcodes").status_code == 401

    def test_members_are_forbidden(self, client, member_headers):
        response = client.get("/admin/passcodes", headers=member_headers)

        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"


class TestPasscodes:
    def test_generate_three_user_keys(self, client, admin_headers):
        response = client.post(
            "/admin/passcodes", json={"count": 3, "tier": "user"}, headers=admin_headers
        )

        assert response.status_code == 201
        created = response.json()["keys"]
        assert len(created) == 3

        listed = client.get("/admin/passcodes", headers=admin_headers).json()["keys"]
        assert len(listed) == 3
        assert len({k["key_value"] for k in listed}) == 3
        assert all(k["state"] == "active_unused" for k in listed)
        assert all(k["is_expired"] is False for k in listed)

    def test_tier_filter(self, client, admin_headers):
        client.post("/admin/passcodes", json={"count": 2}, headers=admin_headers)
        client.post(
            "/admin/passcodes",
            json={"tier": "admin", "custom_value": "STAFF-ONLY"},
            headers=admin_headers,
        )

        admins = client.get(
            "/admin/passcodes", params={"tier": "admin"}, headers=admin_headers
        ).json()["keys"]

        assert [k["key_value"] for k in admins] == ["STAFF-ONLY"]

    def test_batch_too_large(self, client, admin_headers):
        response = client.post(
            "/admin/passcodes", json={"count": 500}, headers=admin_headers
        )
        assert response.status_code == 400

    def test_duplicate_custom_value(self, client, admin_headers):
        body = {"custom_value": "TWICE-VALUE"}
        client.post("/admin/passcodes", json=body, headers=admin_headers)

        response = client.post("/admin/passcodes", json=body, headers=admin_headers)

        assert response.status_code == 409

    def test_deactivate(self, client, admin_headers):
        (key,) = client.post(
            "/admin/passcodes", json={"count": 1}, headers=admin_headers
        ).json()["keys"]

        response = client.delete(f"/admin/passcodes/{key['id']}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["state"] == "inactive"

        check = client.post("/validate-key", json={"key": key["key_value"]})
        assert check.json()["valid"] is False

    def test_deactivate_used_key_is_conflict(self, client, admin_headers):
        (key,) = client.post(
            "/admin/passcodes", json={"count": 1}, headers=admin_headers
        ).json()["keys"]
        client.post(
            "/auth/register",
            json={
                "key": key["key_value"],
                "username": "keyholder",
                "email": "keyholder@example.com",
                "password": PASSWORD,
            },
        )

        response = client.delete(f"/admin/passcodes/{key['id']}", headers=admin_headers)

        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"

    def test_deactivate_unknown(self, client, admin_headers):
        response = client.delete(
            "/admin/passcodes/00000000-0000-0000-0000-000000000000",
            headers=admin_headers,
        )
        assert response.status_code == 404


class TestUserLifecycle:
    def test_register_then_delete_releases_key(self, client, admin_headers):
        (key,) = client.post(
            "/admin/passcodes", json={"count": 1}, headers=admin_headers
        ).json()["keys"]

        registered = client.post(
            "/auth/register",
            json={
                "key": key["key_value"],
                "username": "Alice",
                "email": "alice@example.com",
                "password": PASSWORD,
            },
        )
        assert registered.status_code == 201
        alice = registered.json()["user"]
        assert alice["role"] == "user"
        alice_headers = {"Authorization": f"Bearer {registered.json()['access_token']}"}

        listed = client.get("/admin/passcodes", headers=admin_headers).json()["keys"]
        assert listed[0]["is_used"] is True
        assert listed[0]["used_by"] == alice["id"]

        client.post("/posts", json={"content": "hello"}, headers=alice_headers)
        client.post("/posts", json={"content": "again"}, headers=alice_headers)

        deleted = client.delete(f"/admin/users/{alice['id']}", headers=admin_headers)

        assert deleted.status_code == 200
        assert deleted.json()["posts_deleted"] == 2
        assert deleted.json()["keys_released"] == 1
        assert get_post_repository().list_posts() == []

        listed = client.get("/admin/passcodes", headers=admin_headers).json()["keys"]
        assert listed[0]["is_used"] is False
        assert listed[0]["used_by"] is None

        audit = client.get(
            "/admin/audit", params={"action": "user_deleted"}, headers=admin_headers
        ).json()["events"]
        assert len(audit) == 1
        assert audit[0]["target_id"] == alice["id"]

    def test_disable_blocks_session(self, client, admin_headers, member, member_headers):
        response = client.post(
            f"/admin/users/{member.id}/disable",
            json={"disabled": True},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["is_disabled"] is True
        assert client.get("/auth/me", headers=member_headers).status_code == 403

    def test_admin_cannot_delete_self(self, client, admin, admin_headers):
        response = client.delete(f"/admin/users/{admin.id}", headers=admin_headers)
        assert response.status_code == 403

    def test_list_users(self, client, admin_headers, member):
        users = client.get("/admin/users", headers=admin_headers).json()["users"]
        assert {u["username"] for u in users} == {"site_admin", member.username}
        assert all("password_hash" not in u for u in users)


class TestFlagsAndAudit:
    def test_flag_then_resolve_delete(self, client, admin_headers, member_headers):
        post = client.post("/posts", json={"content": "spam"}, headers=member_headers).json()
        flag = client.post(
            f"/posts/{post['id']}/flag", json={"reason": "spam"}, headers=member_headers
        ).json()

        pending = client.get(
            "/admin/flags", params={"status": "pending"}, headers=admin_headers
        ).json()["flags"]
        assert [f["id"] for f in pending] == [flag["id"]]

        resolved = client.post(
            f"/admin/flags/{flag['id']}/resolve",
            json={"action": "delete"},
            headers=admin_headers,
        )
        assert resolved.status_code == 200
        assert resolved.json()["post_deleted"] is True
        assert client.get(f"/posts/{post['id']}", headers=member_headers).status_code == 404

        again = client.post(
            f"/admin/flags/{flag['id']}/resolve",
            json={"action": "dismiss"},
            headers=admin_headers,
        )
        assert again.status_code == 409

    def test_cache_stats(self, client, admin_headers):
        response = client.get("/admin/cache/stats", headers=admin_headers)

        assert response.status_code == 200
        names = {c["name"] for c in response.json()["caches"]}
        assert {"users", "posts", "announcements"} <= names

    def test_user_reads_are_served_from_cache(self, client, admin_headers, member):
        client.get("/admin/users", headers=admin_headers)
        client.get("/admin/users", headers=admin_headers)

        stats = {
            c["name"]: c
            for c in client.get("/admin/cache/stats", headers=admin_headers).json()["caches"]
        }
        assert stats["users"]["hits"] >= 1
