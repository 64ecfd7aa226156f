import logging
from typing import List
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlmodel import delete, select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.favorite_repository import IFavoriteRepository
from src.domain.entities import Favorite

logger = logging.getLogger(__name__)


class FavoriteRepository(IFavoriteRepository):
    """Favorite repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def exists(self, user_id: UUID, post_id: UUID) -> bool:
        stmt = select(Favorite).where(
            Favorite.user_id == user_id, Favorite.post_id == post_id
        )
        result = await self.session.exec(stmt)
        return result.one_or_none() is not None

    async def add(self, user_id: UUID, post_id: UUID) -> bool:
        """Insert the pair; the primary key rejects a concurrent duplicate"""
        self.session.add(Favorite(user_id=user_id, post_id=post_id))
        try:
            await self.session.flush()
        except IntegrityError:
            await self.session.rollback()
            logger.info(f"Duplicate favorite rejected by primary key: user={user_id} post={post_id}")
            return False
        return True

    async def remove(self, user_id: UUID, post_id: UUID) -> bool:
        stmt = delete(Favorite).where(
            Favorite.user_id == user_id, Favorite.post_id == post_id
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0

    async def list_post_ids(self, user_id: UUID) -> List[UUID]:
        stmt = (
            select(Favorite.post_id)
            .where(Favorite.user_id == user_id)
            .order_by(Favorite.created_at.desc())
        )
        result = await self.session.exec(stmt)
        return list(result.all())
