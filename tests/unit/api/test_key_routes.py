"""
Name: /validate-key Endpoint Tests
"""

import pytest

from darksphere.container import get_security_key_repository

pytestmark = pytest.mark.unit


def test_valid_key(client, seed_keys):
    seed_keys("WELCOME-KEY")

    response = client.post("/validate-key", json={"key": "WELCOME-KEY"})

    assert response.status_code == 200
    assert response.json() == {
        "valid": True,
        "key_type": "user",
        "message": "Security key is valid",
        "code": None,
    }


def test_validation_never_consumes(client, seed_keys):
    seed_keys("WELCOME-KEY")

    client.post("/validate-key", json={"key": "WELCOME-KEY"})

    assert get_security_key_repository().get_by_value("WELCOME-KEY").is_used is False


def test_expired_key_reports_expiry(client, seed_keys):
    seed_keys("OLD-KEY", expires_in_days=-0.5)

    response = client.post("/validate-key", json={"key": "OLD-KEY"})

    assert response.status_code == 400
    body = response.json()
    assert body["valid"] is False
    assert body["code"] == "KEY_EXPIRED"
    assert "expired" in body["message"].lower()


def test_unknown_key(client):
    response = client.post("/validate-key", json={"key": "MISSING-KEY"})

    assert response.status_code == 404
    assert response.json()["valid"] is False
    assert response.json()["code"] == "INVALID_KEY"


def test_used_key(client, seed_keys):
    from datetime import datetime, timezone
    from uuid import uuid4

    seed_keys("USED-KEY")
    get_security_key_repository().consume("USED-KEY", uuid4(), now=datetime.now(timezone.utc))

    response = client.post("/validate-key", json={"key": "USED-KEY"})

    assert response.status_code == 400
    assert response.json()["code"] == "KEY_ALREADY_USED"


def test_missing_body_field_is_problem_json(client):
    response = client.post("/validate-key", json={})

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"
