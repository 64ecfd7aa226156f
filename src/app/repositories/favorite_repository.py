from abc import ABC, abstractmethod
from typing import List
from uuid import UUID


class IFavoriteRepository(ABC):
    """Favorite repository interface - application layer"""

    @abstractmethod
    async def exists(self, user_id: UUID, post_id: UUID) -> bool:
        """Check whether the (user, post) pair is present"""
        pass

    @abstractmethod
    async def add(self, user_id: UUID, post_id: UUID) -> bool:
        """
        Insert the pair.

        Returns:
            False if the pair already existed (including a concurrent insert
            that won the race), True otherwise
        """
        pass

    @abstractmethod
    async def remove(self, user_id: UUID, post_id: UUID) -> bool:
        """Delete the pair; False if it was not present"""
        pass

    @abstractmethod
    async def list_post_ids(self, user_id: UUID) -> List[UUID]:
        """Post IDs in the user's favorites"""
        pass
