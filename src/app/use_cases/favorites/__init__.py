"""
Favorites Use Cases

Set semantics for (user, post) pairs.
"""

from .add_favorite_use_case import AddFavoriteUseCase
from .remove_favorite_use_case import RemoveFavoriteUseCase
from .list_favorites_use_case import ListFavoritesUseCase
from .dtos import FavoriteResponse, FavoritesListResponse

__all__ = [
    "AddFavoriteUseCase",
    "RemoveFavoriteUseCase",
    "ListFavoritesUseCase",
    "FavoriteResponse",
    "FavoritesListResponse",
]
