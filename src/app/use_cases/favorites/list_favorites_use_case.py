from uuid import UUID

from src.app.services.unit_of_work import UnitOfWork
from src.libs.result import Result, Return
from .dtos import FavoritesListResponse


class ListFavoritesUseCase:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(self, user_id: UUID) -> Result[FavoritesListResponse]:
        async with self.uow:
            post_ids = await self.uow.favorites.list_post_ids(user_id)

        return Return.ok(FavoritesListResponse(post_ids=[str(p) for p in post_ids]))
