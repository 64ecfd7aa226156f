"""
Add Favorite Use Case
"""

from uuid import UUID

from src.app.services.unit_of_work import UnitOfWork
from src.libs.result import Error, Result, Return
from .dtos import FavoriteResponse


class AddFavoriteUseCase:
    """
    Business Rules:
    - Post must exist (NOT_FOUND otherwise)
    - A pair already present is reported as CONFLICT, never silently accepted,
      so clients can detect stale UI state
    - A concurrent duplicate insert is caught by the primary key and also
      reported as CONFLICT
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(self, user_id: UUID, post_id: UUID) -> Result[FavoriteResponse]:
        async with self.uow:
            post = await self.uow.posts.get_by_id(post_id)
            if post is None:
                return Return.err(Error("POST_NOT_FOUND", "Post not found"))

            conflict = Error("FAVORITE_ALREADY_EXISTS", "Post is already in favorites")

            if await self.uow.favorites.exists(user_id, post_id):
                return Return.err(conflict)

            if not await self.uow.favorites.add(user_id, post_id):
                return Return.err(conflict)

            await self.uow.commit()

        return Return.ok(FavoriteResponse(status="added", post_id=str(post_id)))
