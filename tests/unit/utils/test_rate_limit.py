import asyncio

import pytest
from limits.aio.storage import MemoryStorage, RedisStorage
from starlette.requests import Request

from src.api.utils.rate_limit import (
    RateLimiter,
    build_storage,
    client_address,
    derive_rate_limit_key,
    network_key,
)


def make_request(client_host="203.0.113.7", headers=None) -> Request:
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/",
            "headers": raw_headers,
            "client": (client_host, 50000) if client_host else None,
        }
    )


@pytest.fixture
def limiter():
    return RateLimiter(MemoryStorage())


@pytest.mark.asyncio
async def test_requests_beyond_max_are_rejected(limiter):
    for remaining in (2, 1, 0):
        decision = await limiter.check_and_increment("ip:1.2.3.4", 60, 3)
        assert decision.allowed is True
        assert decision.remaining == remaining
        assert 0 < decision.reset_after <= 60

    rejected = await limiter.check_and_increment("ip:1.2.3.4", 60, 3)

    assert rejected.allowed is False
    assert rejected.remaining == 0
    assert 0 < rejected.retry_after <= 60
    assert rejected.retry_after == rejected.reset_after


@pytest.mark.asyncio
async def test_window_reopens_after_it_elapses(limiter):
    assert (await limiter.check_and_increment("ip:1.2.3.4", 1, 1)).allowed is True
    assert (await limiter.check_and_increment("ip:1.2.3.4", 1, 1)).allowed is False

    await asyncio.sleep(1.2)

    reopened = await limiter.check_and_increment("ip:1.2.3.4", 1, 1)
    assert reopened.allowed is True
    assert reopened.remaining == 0


@pytest.mark.asyncio
async def test_keys_have_independent_counters(limiter):
    assert (await limiter.check_and_increment("ip:1.1.1.1", 60, 1)).allowed is True
    assert (await limiter.check_and_increment("ip:1.1.1.1", 60, 1)).allowed is False
    assert (await limiter.check_and_increment("ip:2.2.2.2", 60, 1)).allowed is True


@pytest.mark.asyncio
async def test_policies_with_different_limits_count_separately(limiter):
    assert (await limiter.check_and_increment("auth:ip:1.1.1.1", 900, 1)).allowed is True
    assert (await limiter.check_and_increment("api:ip:1.1.1.1", 60, 5)).remaining == 4


@pytest.mark.asyncio
async def test_concurrent_hits_admit_exactly_max(limiter):
    decisions = await asyncio.gather(
        *[limiter.check_and_increment("identity:u1", 60, 10) for _ in range(50)]
    )

    assert sum(1 for d in decisions if d.allowed) == 10


def test_memory_backend_by_default():
    assert isinstance(build_storage("memory"), MemoryStorage)


def test_redis_backend_uses_redis_url():
    assert isinstance(build_storage("redis", "redis://localhost:6379/0"), RedisStorage)


def test_redis_backend_requires_url():
    with pytest.raises(ValueError):
        build_storage("redis", None)


def test_network_key_ipv4():
    assert network_key("198.51.100.23") == "ip:198.51.100.23"


def test_network_key_masks_ipv6_to_64():
    first = network_key("2001:db8:abcd:12:1::1")
    second = network_key("2001:db8:abcd:12:ffff:ffff:ffff:fffe")

    assert first == second == "ip:2001:db8:abcd:12::/64"
    assert network_key("2001:db8:abcd:13::1") != first


def test_network_key_unwraps_ipv4_mapped_ipv6():
    assert network_key("::ffff:192.0.2.1") == "ip:192.0.2.1"


def test_forwarded_header_only_used_when_trusted():
    request = make_request(headers={"X-Forwarded-For": "192.0.2.50, 198.51.100.9"})

    assert client_address(request, trusted_proxy_hops=0) == "203.0.113.7"
    assert client_address(request, trusted_proxy_hops=1) == "198.51.100.9"
    assert client_address(request, trusted_proxy_hops=2) == "192.0.2.50"


def test_forged_forwarded_entries_share_one_bucket(tokens):
    keys = {
        derive_rate_limit_key(
            make_request(
                client_host="10.0.0.1",
                headers={"X-Forwarded-For": f"198.51.100.{i}, 203.0.113.20"},
            ),
            tokens,
            trusted_proxy_hops=1,
        )
        for i in range(5)
    }

    assert keys == {"ip:203.0.113.20"}


def test_more_hops_than_entries_uses_leftmost():
    request = make_request(headers={"X-Forwarded-For": "192.0.2.50"})

    assert client_address(request, trusted_proxy_hops=3) == "192.0.2.50"


def test_missing_client_is_unknown():
    assert client_address(make_request(client_host=None)) == "unknown"


def test_authenticated_caller_keyed_by_identity(tokens):
    token = tokens.issue("user-42", "customer")
    request = make_request(headers={"Authorization": f"Bearer {token}"})

    assert derive_rate_limit_key(request, tokens) == "identity:user-42"


def test_invalid_token_falls_back_to_address(tokens):
    request = make_request(headers={"Authorization": "Bearer forged"})

    assert derive_rate_limit_key(request, tokens) == "ip:203.0.113.7"


def test_access_cookie_identifies_caller(tokens):
    token = tokens.issue("user-7", "customer")
    request = make_request(headers={"Cookie": f"accessToken={token}"})

    assert derive_rate_limit_key(request, tokens, cookie_name="accessToken") == "identity:user-7"
    assert derive_rate_limit_key(request, tokens) == "ip:203.0.113.7"
