from typing import List

from pydantic import BaseModel


class FavoriteResponse(BaseModel):
    """Response for favorite add/remove"""

    status: str
    post_id: str


class FavoritesListResponse(BaseModel):
    """Post IDs in the caller's favorites"""

    post_ids: List[str]
