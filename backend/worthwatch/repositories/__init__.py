from .base_repository import BaseRepository, Page
from .saga import Saga, SagaStep
from .user_repository import UserRepository
from .movie_repository import MovieRepository
from .show_repository import ShowRepository
from .watchlist_item_repository import WatchlistItemRepository
from .watchlist_repository import WatchlistRepository
from .like_repository import LikeRepository

__all__ = [
    "BaseRepository",
    "Page",
    "Saga",
    "SagaStep",
    "UserRepository",
    "MovieRepository",
    "ShowRepository",
    "WatchlistItemRepository",
    "WatchlistRepository",
    "LikeRepository"
]
