from uuid import UUID

from fastapi import APIRouter, Depends, status

from src.api.error import ClientError, ServerError
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.favorites import (
    AddFavoriteUseCase,
    FavoriteResponse,
    FavoritesListResponse,
    ListFavoritesUseCase,
    RemoveFavoriteUseCase,
)
from src.depends import api_rate_limit, get_current_user_id, get_unit_of_work

router = APIRouter(prefix="/favorites", tags=["Favorites"], dependencies=[Depends(api_rate_limit)])

FAVORITE_ERROR_STATUS = {
    "POST_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "FAVORITE_ALREADY_EXISTS": status.HTTP_409_CONFLICT,
    "FAVORITE_NOT_PRESENT": status.HTTP_409_CONFLICT,
}


def _raise_for(error):
    if error.code in FAVORITE_ERROR_STATUS:
        raise ClientError(error, status_code=FAVORITE_ERROR_STATUS[error.code])
    raise ServerError(error)


@router.get("", status_code=status.HTTP_200_OK, response_model=FavoritesListResponse)
async def list_favorites(
    user_id: UUID = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    result = await ListFavoritesUseCase(uow).execute(user_id)
    if result.is_err():
        _raise_for(result.error)
    return result.value


@router.post("/{item_id}", status_code=status.HTTP_201_CREATED, response_model=FavoriteResponse)
async def add_favorite(
    item_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Add a post to the caller's favorites

    Raises:
        - 404 Not Found: Post does not exist
        - 409 Conflict: Post already in favorites
    """
    result = await AddFavoriteUseCase(uow).execute(user_id, item_id)
    if result.is_err():
        _raise_for(result.error)
    return result.value


@router.delete("/{item_id}", status_code=status.HTTP_200_OK, response_model=FavoriteResponse)
async def remove_favorite(
    item_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Remove a post from the caller's favorites

    Raises:
        - 409 Conflict: Post not in favorites
    """
    result = await RemoveFavoriteUseCase(uow).execute(user_id, item_id)
    if result.is_err():
        _raise_for(result.error)
    return result.value
