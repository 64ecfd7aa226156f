"""
Password hashing

bcrypt with a configurable cost factor. The cost is embedded in every hash
(``$2b$<cost>$...``) so the factor can be raised over time without
invalidating existing credentials; ``needs_rehash`` tells the login flow when
to upgrade a stored hash.
"""

from typing import Optional

import anyio
import bcrypt

from src.api.error import ConfigurationError

MIN_ROUNDS = 4
MAX_ROUNDS = 31
# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


class CredentialStore:
    """
    One-way password hashing and verification.

    CPU-bound work is exposed twice: ``hash``/``verify`` run inline, while
    ``hash_async``/``verify_async`` run on a bounded worker pool so a slow
    hash never stalls the event loop.
    """

    def __init__(self, rounds: Optional[int], workers: int = 4):
        if rounds is None or rounds == "":
            raise ConfigurationError("BCRYPT_ROUNDS is not configured")
        try:
            rounds = int(rounds)
        except (TypeError, ValueError):
            raise ConfigurationError(f"BCRYPT_ROUNDS must be an integer, got {rounds!r}")
        if not MIN_ROUNDS <= rounds <= MAX_ROUNDS:
            raise ConfigurationError(
                f"BCRYPT_ROUNDS must be between {MIN_ROUNDS} and {MAX_ROUNDS}"
            )
        self.rounds = rounds
        self.workers = max(1, workers)
        self._limiter: Optional[anyio.CapacityLimiter] = None
        self._dummy_hash = bcrypt.hashpw(b"dummy_password", bcrypt.gensalt(rounds))

    def hash(self, password: str) -> str:
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise ValueError("Password exceeds 72 bytes")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(self.rounds)).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except (ValueError, TypeError, AttributeError):
            # Malformed hash or over-long password: a mismatch, not a crash
            return False

    def dummy_verify(self) -> None:
        """Spend one verification so unknown accounts cost the same as wrong passwords"""
        bcrypt.checkpw(b"not_the_password", self._dummy_hash)

    @staticmethod
    def cost_of(password_hash: str) -> Optional[int]:
        parts = password_hash.split("$")
        if len(parts) < 4:
            return None
        try:
            return int(parts[2])
        except ValueError:
            return None

    def needs_rehash(self, password_hash: str) -> bool:
        cost = self.cost_of(password_hash)
        return cost is None or cost < self.rounds

    def _worker_limiter(self) -> anyio.CapacityLimiter:
        # Created lazily: the limiter binds to the running event loop
        if self._limiter is None:
            self._limiter = anyio.CapacityLimiter(self.workers)
        return self._limiter

    async def hash_async(self, password: str) -> str:
        return await anyio.to_thread.run_sync(
            self.hash, password, limiter=self._worker_limiter()
        )

    async def verify_async(self, password: str, password_hash: str) -> bool:
        return await anyio.to_thread.run_sync(
            self.verify, password, password_hash, limiter=self._worker_limiter()
        )

    async def dummy_verify_async(self) -> None:
        await anyio.to_thread.run_sync(self.dummy_verify, limiter=self._worker_limiter())
