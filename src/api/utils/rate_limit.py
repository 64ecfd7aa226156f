"""
Fixed-window rate limiting

Every request is charged against a key derived from who is calling:
authenticated callers by identity, anonymous callers by network address.
IPv6 addresses are collapsed to their /64 so rotating addresses inside one
allocation does not reset the quota.

Counting is delegated to ``limits``: its fixed-window strategy over either
the in-process memory storage or Redis, so several workers can share one
set of counters.
"""

import ipaddress
import logging
import math
import time
from dataclasses import dataclass
from typing import Optional

from limits import RateLimitItemPerSecond
from limits.aio.storage import MemoryStorage, Storage
from limits.aio.strategies import FixedWindowRateLimiter
from limits.storage import storage_from_string
from starlette.requests import Request

from src.api.utils.jwt import TokenService

logger = logging.getLogger(__name__)

IPV6_PREFIX_LENGTH = 64


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_after: int
    retry_after: int = 0


def build_storage(backend: str, redis_url: Optional[str] = None) -> Storage:
    """Counter storage for ``CACHE_BACKEND`` (``memory`` or ``redis``)"""
    if backend == "redis":
        if not redis_url:
            raise ValueError("REDIS_URL is required when CACHE_BACKEND is redis")
        return storage_from_string(f"async+{redis_url}")
    return MemoryStorage()


class RateLimiter:
    def __init__(self, storage: Storage):
        self.storage = storage
        self._strategy = FixedWindowRateLimiter(storage)

    async def check_and_increment(
        self, key: str, window_seconds: int, max_requests: int
    ) -> RateLimitDecision:
        """
        Charge one request to ``key`` and decide whether it is admitted.

        The storage increments atomically, so concurrent requests each see a
        distinct count and at most ``max_requests`` of them are admitted per
        window. The window opens on the key's first hit; rejected hits still
        count.
        """
        item = RateLimitItemPerSecond(max_requests, window_seconds)
        allowed = await self._strategy.hit(item, key)
        stats = await self._strategy.get_window_stats(item, key)
        reset_after = max(1, math.ceil(stats.reset_time - time.time()))

        if not allowed:
            return RateLimitDecision(
                allowed=False,
                limit=max_requests,
                remaining=0,
                reset_after=reset_after,
                retry_after=reset_after,
            )

        return RateLimitDecision(
            allowed=True,
            limit=max_requests,
            remaining=stats.remaining,
            reset_after=reset_after,
        )


def network_key(address: str) -> str:
    """Mask an address to the unit that is limited as one caller"""
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return f"ip:{address}"

    if isinstance(ip, ipaddress.IPv6Address):
        if ip.ipv4_mapped is not None:
            return f"ip:{ip.ipv4_mapped}"
        network = ipaddress.IPv6Network(f"{ip}/{IPV6_PREFIX_LENGTH}", strict=False)
        return f"ip:{network}"

    return f"ip:{ip}"


def client_address(request: Request, trusted_proxy_hops: int = 0) -> str:
    """
    Address of the caller as seen by the outermost trusted proxy.

    With ``trusted_proxy_hops`` proxies in front of the app, only the last
    ``trusted_proxy_hops`` X-Forwarded-For entries were written by them;
    anything further left came from the client and is ignored.
    """
    if trusted_proxy_hops > 0:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
            if hops:
                return hops[max(0, len(hops) - trusted_proxy_hops)]
    if request.client is None:
        return "unknown"
    return request.client.host


def bearer_token(request: Request, cookie_name: Optional[str] = None) -> Optional[str]:
    header = request.headers.get("Authorization")
    if header and header.startswith("Bearer "):
        return header[len("Bearer "):].strip() or None
    if cookie_name:
        return request.cookies.get(cookie_name) or None
    return None


def derive_rate_limit_key(
    request: Request,
    token_service: Optional[TokenService],
    trusted_proxy_hops: int = 0,
    cookie_name: Optional[str] = None,
) -> str:
    """
    ``identity:<sub>`` for a valid access token, the masked network address
    otherwise. Invalid tokens fall back to the address so they cannot be used
    to mint fresh buckets.
    """
    token = bearer_token(request, cookie_name)
    if token and token_service is not None:
        result = token_service.verify(token)
        if result.is_ok():
            return f"identity:{result.value.sub}"
    return network_key(client_address(request, trusted_proxy_hops))
