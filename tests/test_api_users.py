"""
User and session API tests (memory backend)
"""

import pytest

from docstore.container import AppContext
from docstore.core.exceptions import InvalidCredentials
from docstore.core.logging import LogContext
from docstore.models import Collections
from docstore.services.auth import AuthTokenManager

BASE = "/api/acme/users"
USER_ONE = {"email": "andrew@example.com", "password": "userOnePass"}
USER_TWO = {"email": "jen@example.com", "password": "userTwoPass"}


async def _stored_user(email: str, tenant: str = "acme") -> dict:
    users = await AppContext.get_instance().resolver.resolve(tenant, Collections.USERS)
    return await users.find_one({"email": email})


async def _signup(client, body=USER_ONE) -> str:
    response = await client.post(BASE, json=body)
    assert response.status_code == 200
    return response.headers["x-auth"]


# =============================================================================
# POST /{tenant}/users
# =============================================================================


class TestCreateUser:

    @pytest.mark.asyncio
    async def test_create(self, app_client):
        response = await app_client.post(BASE, json=USER_ONE)

        assert response.status_code == 200
        assert response.headers["x-auth"]
        body = response.json()
        assert body["email"] == USER_ONE["email"]
        assert body["_id"]
        assert "password" not in body and "tokens" not in body

        stored = await _stored_user(USER_ONE["email"])
        assert str(stored["_id"]) == body["_id"]
        assert stored["password"] != USER_ONE["password"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {"email": "not-an-email", "password": "123"},
        {"email": "a@example.com", "password": "123"},
        {"email": "a@example.com"},
    ])
    async def test_validation_errors(self, app_client, body):
        response = await app_client.post(BASE, json=body)

        assert response.status_code == 400
        assert response.json()["statusCode"] == 400
        assert "x-auth" not in response.headers

    @pytest.mark.asyncio
    async def test_duplicate_email(self, app_client):
        await _signup(app_client)

        response = await app_client.post(BASE, json=USER_ONE)

        assert response.status_code == 400
        assert "x-auth" not in response.headers

    @pytest.mark.asyncio
    async def test_invalid_tenant(self, app_client):
        response = await app_client.post("/api/bad$tenant/users", json=USER_ONE)
        assert response.status_code == 400


# =============================================================================
# POST /{tenant}/users/login
# =============================================================================


class TestLogin:

    @pytest.mark.asyncio
    async def test_login_adds_session(self, app_client):
        await _signup(app_client)

        response = await app_client.post(f"{BASE}/login", json=USER_ONE)

        assert response.status_code == 200
        token = response.headers["x-auth"]
        stored = await _stored_user(USER_ONE["email"])
        assert stored["tokens"][1] == {"access": "auth", "token": token}

    @pytest.mark.asyncio
    async def test_wrong_password(self, app_client):
        await _signup(app_client)

        response = await app_client.post(
            f"{BASE}/login",
            json={"email": USER_ONE["email"], "password": USER_ONE["password"] + "1"},
        )

        assert response.status_code == 400
        assert "x-auth" not in response.headers
        stored = await _stored_user(USER_ONE["email"])
        assert len(stored["tokens"]) == 1

    @pytest.mark.asyncio
    async def test_unknown_email(self, app_client):
        response = await app_client.post(f"{BASE}/login", json=USER_TWO)

        assert response.status_code == 400
        assert response.json() == {"statusCode": 400, "ERROR": "Invalid credentials"}

    @pytest.mark.asyncio
    async def test_login_runs_in_tenant_log_context(self, app_client, monkeypatch):
        seen = {}

        async def recording_login(self, tenant, email, password):
            seen["tenant"] = LogContext.get("tenant")
            raise InvalidCredentials()

        monkeypatch.setattr(AuthTokenManager, "login", recording_login)
        response = await app_client.post(f"{BASE}/login", json=USER_ONE)

        assert response.status_code == 400
        assert seen == {"tenant": "acme"}


# =============================================================================
# Authenticated routes
# =============================================================================


class TestSessions:

    @pytest.mark.asyncio
    async def test_me(self, app_client):
        token = await _signup(app_client)

        response = await app_client.get(f"{BASE}/me", headers={"x-auth": token})

        assert response.status_code == 200
        assert response.json()["email"] == USER_ONE["email"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("headers", [{}, {"x-auth": "garbage"}])
    async def test_me_unauthorized(self, app_client, headers):
        response = await app_client.get(f"{BASE}/me", headers=headers)

        assert response.status_code == 401
        assert response.json()["statusCode"] == 401

    @pytest.mark.asyncio
    async def test_token_of_other_tenant_rejected(self, app_client):
        token = await _signup(app_client)

        response = await app_client.get("/api/globex/users/me", headers={"x-auth": token})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_removes_only_current_session(self, app_client):
        first = await _signup(app_client)
        second = (await app_client.post(f"{BASE}/login", json=USER_ONE)).headers["x-auth"]

        response = await app_client.delete(f"{BASE}/token", headers={"x-auth": first})

        assert response.status_code == 200
        assert response.content == b""
        assert (await app_client.get(f"{BASE}/me", headers={"x-auth": first})).status_code == 401
        assert (await app_client.get(f"{BASE}/me", headers={"x-auth": second})).status_code == 200

        stored = await _stored_user(USER_ONE["email"])
        assert [t["token"] for t in stored["tokens"]] == [second]

    @pytest.mark.asyncio
    async def test_logout_twice(self, app_client):
        token = await _signup(app_client)

        await app_client.delete(f"{BASE}/token", headers={"x-auth": token})
        response = await app_client.delete(f"{BASE}/token", headers={"x-auth": token})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_storage_failure(self, app_client, monkeypatch):
        token = await _signup(app_client)

        async def failing_revoke(self, tenant, user, token):
            raise RuntimeError("storage down")

        monkeypatch.setattr(AuthTokenManager, "revoke", failing_revoke)
        response = await app_client.delete(f"{BASE}/token", headers={"x-auth": token})

        assert response.status_code == 400
        assert response.json() == {"statusCode": 400, "ERROR": "Logout failed"}

    @pytest.mark.asyncio
    async def test_list_sessions(self, app_client):
        await _signup(app_client)
        token = (await app_client.post(f"{BASE}/login", json=USER_ONE)).headers["x-auth"]

        response = await app_client.get(f"{BASE}/me/tokens", headers={"x-auth": token})

        assert response.status_code == 200
        assert response.json() == [
            {"access": "auth", "current": False},
            {"access": "auth", "current": True},
        ]

    @pytest.mark.asyncio
    async def test_delete_account(self, app_client):
        token = await _signup(app_client)

        response = await app_client.delete(f"{BASE}/me", headers={"x-auth": token})

        assert response.status_code == 200
        assert response.json()["email"] == USER_ONE["email"]
        assert await _stored_user(USER_ONE["email"]) is None
        assert (await app_client.get(f"{BASE}/me", headers={"x-auth": token})).status_code == 401

        # the email is free again
        await _signup(app_client)
