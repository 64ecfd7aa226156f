from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from src.domain.entities import Post


class IPostRepository(ABC):
    """Post repository interface - only what the favorites flow needs"""

    @abstractmethod
    async def get_by_id(self, post_id: UUID) -> Optional[Post]:
        """Get post by ID"""
        pass

    @abstractmethod
    async def create(self, post: Post) -> Post:
        """Create a new post"""
        pass
