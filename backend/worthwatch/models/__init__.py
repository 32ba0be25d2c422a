from .registry import (
    EntityDefinition, StoredEntity, definition_for, entity_from_item, registered_types
)
from .user import User
from .movie import Movie
from .show import Show
from .watchlist import Watchlist, WatchlistItem
from .like import Like

__all__ = [
    'EntityDefinition', 'StoredEntity', 'definition_for', 'entity_from_item',
    'registered_types', 'User', 'Movie', 'Show', 'Watchlist', 'WatchlistItem', 'Like'
]
