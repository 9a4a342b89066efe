"""
Authentication tests.

Verifies:
- Registration statuses and per-role verification defaults
- Login, refresh and /me
- Lockout after repeated failures
- 401 / 403 error envelopes
"""

import pytest

from conftest import PASSWORD


def register(client, **overrides):
    payload = {
        "email": "new@example.com",
        "password": PASSWORD,
        "first_name": "Esi",
        "last_name": "Appiah",
        "user_type": "buyer",
    }
    payload.update(overrides)
    return client.post("/api/v1/auth/register", json=payload)


# =============================================================================
# REGISTRATION
# =============================================================================


class TestRegister:

    def test_buyer_is_approved_on_creation(self, client, db_session):
        resp = register(client)
        assert resp.status_code == 201
        body = resp.json
        assert body["success"] is True
        assert body["data"]["user_type"] == "buyer"
        assert body["data"]["verification_status"] == "approved"
        assert "password_hash" not in body["data"]

    def test_farmer_starts_unverified(self, client, db_session):
        resp = register(client, email="grower@example.com", user_type="farmer")
        assert resp.status_code == 201
        assert resp.json["data"]["verification_status"] == "unverified"
        assert resp.json["data"]["is_verified"] is False

    def test_email_is_normalized(self, client, db_session):
        resp = register(client, email="  Mixed@Example.COM ")
        assert resp.status_code == 201
        assert resp.json["data"]["email"] == "mixed@example.com"

    def test_duplicate_email(self, client, db_session):
        assert register(client).status_code == 201
        resp = register(client, email="NEW@example.com")
        assert resp.status_code == 409
        assert resp.json["error"]["code"] == "DUPLICATE_EMAIL"

    def test_weak_password(self, client, db_session):
        resp = register(client, password="password")
        assert resp.status_code == 422
        assert resp.json["error"]["code"] == "WEAK_PASSWORD"
        assert resp.json["error"]["details"]["strength"] == 2

    def test_invalid_email(self, client, db_session):
        resp = register(client, email="not-an-email")
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "INVALID_EMAIL"

    def test_missing_fields(self, client, db_session):
        resp = client.post("/api/v1/auth/register", json={"email": "x@example.com"})
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "MISSING_FIELDS"
        assert "password" in resp.json["error"]["details"]["fields"]

    def test_admin_cannot_self_register(self, client, db_session):
        resp = register(client, user_type="admin")
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "INVALID_USER_TYPE"


# =============================================================================
# LOGIN / TOKENS
# =============================================================================


class TestLogin:

    def test_login_returns_tokens(self, client, buyer):
        resp = client.post("/api/v1/auth/login", json={"email": buyer.email, "password": PASSWORD})
        assert resp.status_code == 200
        data = resp.json["data"]
        assert data["access_token"]
        assert data["refresh_token"]
        assert data["user"]["id"] == buyer.id
        assert data["requires_verification"] is False

    def test_farmer_login_requires_verification(self, client, farmer):
        resp = client.post("/api/v1/auth/login", json={"email": farmer.email, "password": PASSWORD})
        assert resp.status_code == 200
        assert resp.json["data"]["requires_verification"] is True

    def test_wrong_password(self, client, buyer):
        resp = client.post("/api/v1/auth/login", json={"email": buyer.email, "password": "Wrong1234"})
        assert resp.status_code == 401
        assert resp.json["error"]["code"] == "INVALID_CREDENTIALS"

    def test_unknown_email(self, client, db_session):
        resp = client.post("/api/v1/auth/login", json={"email": "ghost@example.com", "password": PASSWORD})
        assert resp.status_code == 401
        assert resp.json["error"]["code"] == "INVALID_CREDENTIALS"

    def test_me_with_access_token(self, client, buyer):
        login = client.post("/api/v1/auth/login", json={"email": buyer.email, "password": PASSWORD})
        token = login.json["data"]["access_token"]
        resp = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json["data"]["email"] == buyer.email

    def test_refresh_issues_new_access_token(self, client, buyer):
        login = client.post("/api/v1/auth/login", json={"email": buyer.email, "password": PASSWORD})
        resp = client.post("/api/v1/auth/refresh", json={"refresh_token": login.json["data"]["refresh_token"]})
        assert resp.status_code == 200
        token = resp.json["data"]["access_token"]
        assert client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"}).status_code == 200

    def test_access_token_rejected_as_refresh_token(self, client, buyer):
        login = client.post("/api/v1/auth/login", json={"email": buyer.email, "password": PASSWORD})
        resp = client.post("/api/v1/auth/refresh", json={"refresh_token": login.json["data"]["access_token"]})
        assert resp.status_code == 401
        assert resp.json["error"]["code"] == "INVALID_TOKEN"


# =============================================================================
# LOCKOUT
# =============================================================================


class TestLockout:

    def test_locks_after_max_failures(self, client, buyer, admin_headers):
        for _ in range(5):
            resp = client.post("/api/v1/auth/login", json={"email": buyer.email, "password": "Wrong1234"})
            assert resp.status_code == 401

        # Correct password is refused while locked
        resp = client.post("/api/v1/auth/login", json={"email": buyer.email, "password": PASSWORD})
        assert resp.status_code == 429
        assert resp.json["error"]["code"] == "ACCOUNT_LOCKED"
        # LOCKOUT_MINUTES = 15
        assert 880 < resp.json["error"]["details"]["retry_after_seconds"] <= 900

        status = client.get("/api/v1/auth/lockout-status", query_string={"email": buyer.email},
                            headers=admin_headers)
        assert status.json["data"]["locked"] is True
        assert status.json["data"]["failed_attempts"] == 5

    def test_success_resets_counter(self, client, buyer, admin_headers):
        for _ in range(3):
            client.post("/api/v1/auth/login", json={"email": buyer.email, "password": "Wrong1234"})
        assert client.post("/api/v1/auth/login", json={"email": buyer.email, "password": PASSWORD}).status_code == 200

        status = client.get("/api/v1/auth/lockout-status", query_string={"email": buyer.email},
                            headers=admin_headers)
        assert status.json["data"]["failed_attempts"] == 0
        assert status.json["data"]["locked"] is False

    def test_lockout_status_is_admin_only(self, client, buyer, buyer_headers):
        assert client.get("/api/v1/auth/lockout-status", query_string={"email": buyer.email}).status_code == 401
        resp = client.get("/api/v1/auth/lockout-status", query_string={"email": buyer.email}, headers=buyer_headers)
        assert resp.status_code == 403


# =============================================================================
# 401 / 403
# =============================================================================


class TestAccessControl:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/v1/auth/me"),
            ("GET", "/api/v1/users/profile"),
            ("GET", "/api/v1/cart"),
            ("POST", "/api/v1/orders"),
            ("GET", "/api/v1/notifications"),
            ("GET", "/api/v1/admin/users"),
            ("POST", "/api/v1/farmers/verify/initiate"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.json["success"] is False
        assert resp.json["error"]["code"] == "UNAUTHORIZED"

    def test_tampered_token(self, client, buyer_headers):
        headers = {"Authorization": buyer_headers["Authorization"] + "x"}
        resp = client.get("/api/v1/auth/me", headers=headers)
        assert resp.status_code == 401
        assert resp.json["error"]["code"] == "INVALID_TOKEN"

    def test_buyer_cannot_list_users(self, client, buyer_headers):
        resp = client.get("/api/v1/admin/users", headers=buyer_headers)
        assert resp.status_code == 403
        assert resp.json["error"]["code"] == "FORBIDDEN"

    def test_buyer_cannot_create_product(self, client, buyer_headers, category):
        resp = client.post(
            "/api/v1/products",
            json={"category_id": category.id, "name": "Yam", "price": 10, "quantity_available": 5},
            headers=buyer_headers,
        )
        assert resp.status_code == 403

    def test_admin_lists_users(self, client, admin_headers, buyer, farmer):
        resp = client.get("/api/v1/admin/users", query_string={"user_type": "farmer"}, headers=admin_headers)
        assert resp.status_code == 200
        assert [u["email"] for u in resp.json["data"]] == [farmer.email]
        assert resp.json["pagination"]["total"] == 1

    def test_unknown_route_envelope(self, client, db_session):
        resp = client.get("/api/v1/does-not-exist")
        assert resp.status_code == 404
        assert resp.json["error"]["code"] == "NOT_FOUND"
