import time
from datetime import UTC, datetime

import pytest
from httpx import AsyncClient

from config import ApplicationConfig
from src.api.utils.jwt import TokenService


@pytest.mark.asyncio
async def test_missing_authorization_header(client: AsyncClient):
    response = await client.get("/profile")

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTH_HEADER_MISSING"


@pytest.mark.asyncio
async def test_non_bearer_scheme(client: AsyncClient):
    response = await client.get("/profile", headers={"Authorization": "Basic dXNlcjpwYXNz"})

    assert response.json()["error"]["code"] == "AUTH_HEADER_MISSING"


@pytest.mark.asyncio
async def test_bearer_without_token(client: AsyncClient):
    response = await client.get("/profile", headers={"Authorization": "Bearer"})

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "TOKEN_MISSING"


@pytest.mark.asyncio
async def test_expired_token(client: AsyncClient, auth):
    issued_an_hour_ago = TokenService(ApplicationConfig.JWT_SECRET, clock=lambda: time.time() - 3600)
    token = issued_an_hour_ago.issue(auth["user"]["id"], "customer", ttl=60)

    response = await client.get("/profile", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "TOKEN_EXPIRED"
    expired_at = datetime.fromisoformat(response.json()["error"]["details"]["expired_at"])
    assert expired_at < datetime.now(UTC)


@pytest.mark.asyncio
async def test_token_with_foreign_signature(client: AsyncClient, auth):
    token = TokenService("some-other-secret").issue(auth["user"]["id"], "customer")

    response = await client.get("/profile", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "TOKEN_INVALID"


@pytest.mark.asyncio
async def test_token_with_non_uuid_subject(client: AsyncClient):
    token = TokenService(ApplicationConfig.JWT_SECRET).issue("not-a-uuid", "customer")

    response = await client.get("/profile", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "TOKEN_INVALID"
