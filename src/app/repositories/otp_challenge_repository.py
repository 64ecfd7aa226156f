from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from src.domain.entities import OtpChallenge


class IOtpChallengeRepository(ABC):
    """OtpChallenge repository interface - application layer"""

    @abstractmethod
    async def get_active_by_email(self, email: str) -> Optional[OtpChallenge]:
        """Get the unused challenge for an email, if any"""
        pass

    @abstractmethod
    async def replace_active(self, challenge: OtpChallenge) -> Optional[OtpChallenge]:
        """
        Mark any unused challenge for the same email as used and insert the
        new one, in the current transaction.

        Returns:
            The stored challenge, or None if a concurrent issuance for the
            same email committed first
        """
        pass

    @abstractmethod
    async def increment_attempts(self, challenge_id: UUID, max_attempts: int) -> Optional[int]:
        """
        Atomically add one failed attempt if the challenge is unused and
        below max_attempts.

        Returns:
            The new attempt count, or None if the guard did not hold
        """
        pass

    @abstractmethod
    async def mark_used(self, challenge_id: UUID, max_attempts: int) -> bool:
        """
        Atomically consume the challenge if it is unused and below
        max_attempts. Returns False if another request got there first.
        """
        pass
