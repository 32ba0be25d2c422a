from enum import Enum


class EntityType(str, Enum):
    """Discriminator stored in the ``entityType`` attribute of every row"""
    USER = "USER"
    WATCHLIST = "WATCHLIST"
    WATCHLIST_ITEM = "WATCHLIST_ITEM"
    MOVIE = "MOVIE"
    SHOW = "SHOW"
    LIKE = "LIKE"


class EntityKind(str, Enum):
    """Key prefixes used when encoding partition keys"""
    USER = "USER"
    WATCHLIST = "WATCHLIST"
    MOVIE = "MOVIE"
    SHOW = "SHOW"


class ContentType(str, Enum):
    """Content that can be added to a watchlist"""
    MOVIE = "MOVIE"
    SHOW = "SHOW"


class ShowStatus(str, Enum):
    ONGOING = "ongoing"
    ENDED = "ended"
    CANCELLED = "cancelled"


class CuratorStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    SUSPENDED = "suspended"

