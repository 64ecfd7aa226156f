"""
Remove Favorite Use Case
"""

from uuid import UUID

from src.app.services.unit_of_work import UnitOfWork
from src.libs.result import Error, Result, Return
from .dtos import FavoriteResponse


class RemoveFavoriteUseCase:
    """Removing a pair that is not present is a CONFLICT, not a silent success"""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(self, user_id: UUID, post_id: UUID) -> Result[FavoriteResponse]:
        async with self.uow:
            removed = await self.uow.favorites.remove(user_id, post_id)
            if not removed:
                return Return.err(Error("FAVORITE_NOT_PRESENT", "Post is not in favorites"))

            await self.uow.commit()

        return Return.ok(FavoriteResponse(status="removed", post_id=str(post_id)))
