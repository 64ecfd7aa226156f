"""
Bearer token issuance and verification.

Tokens are HS256-signed JWTs carrying ``{sub, role, iat, exp}``. The
algorithm is pinned: a token whose header names any other algorithm
(including ``none``) is rejected before its signature is even considered.
Expiry is checked against an injected clock so verification stays pure.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Optional

from jose import JWTError, jwt

from src.api.error import ConfigurationError
from src.libs.clock import Clock, system_clock
from src.libs.result import Error, Result, Return

security_logger = logging.getLogger("security")

ALGORITHM = "HS256"
DEFAULT_TTL_SECONDS = 15 * 60

TOKEN_MISSING = "TOKEN_MISSING"
TOKEN_EXPIRED = "TOKEN_EXPIRED"
TOKEN_INVALID = "TOKEN_INVALID"


@dataclass(frozen=True)
class TokenClaims:
    sub: str
    role: str
    iat: int
    exp: int


class TokenService:
    """Issues and verifies signed, time-bounded access tokens"""

    def __init__(
        self,
        secret: Optional[str],
        default_ttl: int = DEFAULT_TTL_SECONDS,
        clock: Clock = system_clock,
    ):
        if not secret:
            raise ConfigurationError("JWT_SECRET is not configured")
        self._secret = secret
        self.default_ttl = default_ttl
        self._clock = clock

    def issue(self, subject_id: str, role: str, ttl: Optional[int] = None) -> str:
        """
        Create a signed access token

        Args:
            subject_id: User id placed in ``sub``
            role: User role placed in ``role``
            ttl: Lifetime in seconds (defaults to ACCESS_TOKEN_TTL_SECONDS)

        Returns:
            JWT string (HS256)
        """
        now = int(self._clock())
        payload = {
            "sub": str(subject_id),
            "role": role,
            "iat": now,
            "exp": now + (ttl if ttl is not None else self.default_ttl),
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify(self, token: Optional[str]) -> Result[TokenClaims]:
        """
        Verify and decode a token

        Returns:
            Result with TokenClaims, or Error with code TOKEN_MISSING,
            TOKEN_EXPIRED or TOKEN_INVALID
        """
        if not token:
            return Return.err(Error(TOKEN_MISSING, "Authentication required - token not provided"))

        invalid = Error(TOKEN_INVALID, "Invalid authentication token")

        try:
            header = jwt.get_unverified_header(token)
        except JWTError:
            return Return.err(invalid)

        if header.get("alg") != ALGORITHM:
            security_logger.warning(f"Rejected token with disallowed algorithm: {header.get('alg')!r}")
            return Return.err(invalid)

        try:
            # Expiry is evaluated below against the injected clock
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            security_logger.warning(f"Rejected token: {exc}")
            return Return.err(invalid)

        sub = payload.get("sub")
        exp = payload.get("exp")
        if not sub or not isinstance(exp, int) or isinstance(exp, bool):
            return Return.err(invalid)

        if self._clock() >= exp:
            return Return.err(
                Error(
                    TOKEN_EXPIRED,
                    "Session expired - please log in again",
                    details={"expired_at": datetime.fromtimestamp(exp, UTC).isoformat()},
                )
            )

        return Return.ok(
            TokenClaims(
                sub=str(sub),
                role=str(payload.get("role", "")),
                iat=int(payload.get("iat", 0)),
                exp=exp,
            )
        )
