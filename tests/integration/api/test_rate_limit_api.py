import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_allowed_responses_carry_rate_limit_headers(client: AsyncClient):
    response = await client.post("/auth/login", json={
        "email": "nobody@example.com",
        "password": "WrongPass123",
    })

    assert response.status_code == 401
    ok = await client.post("/auth/otp/request", json={"email": "nobody@example.com"})
    assert ok.status_code == 200
    assert ok.headers["RateLimit-Limit"] == "8"
    assert ok.headers["RateLimit-Remaining"] == "6"
    assert int(ok.headers["RateLimit-Reset"]) > 0


@pytest.mark.asyncio
async def test_ninth_auth_request_is_rejected(client: AsyncClient):
    for _ in range(8):
        response = await client.post("/auth/login", json={
            "email": "nobody@example.com",
            "password": "WrongPass123",
        })
        assert response.status_code == 401

    rejected = await client.post("/auth/login", json={
        "email": "nobody@example.com",
        "password": "WrongPass123",
    })

    assert rejected.status_code == 429
    body = rejected.json()["error"]
    assert body["code"] == "RATE_LIMITED"
    assert body["retry_after"] > 0
    assert int(rejected.headers["Retry-After"]) == body["retry_after"]


@pytest.mark.asyncio
async def test_auth_limit_does_not_consume_api_quota(client: AsyncClient, auth_headers):
    for _ in range(8):
        await client.post("/auth/otp/request", json={"email": "nobody@example.com"})

    response = await client.get("/favorites", headers=auth_headers)

    assert response.status_code == 200
    assert response.headers["RateLimit-Limit"] == "60"
