from typing import List, Optional

from boto3.dynamodb.conditions import Attr

from worthwatch.core import keys
from worthwatch.core.exceptions import AlreadyExistsException
from worthwatch.models.like import Like
from worthwatch.repositories.base_repository import BaseRepository


class LikeRepository(BaseRepository[Like]):
    """Likes are single rows keyed by the user/watchlist pair.

    Listings have no index of their own: the type index narrows to like rows
    and the projected PK is filtered.
    """

    def __init__(self, table, **kwargs):
        super().__init__(Like, table, **kwargs)

    def like(self, user_id: str, watchlist_id: str) -> bool:
        """Idempotent; returns True only when the like is new"""
        now = self.clock()
        try:
            self.create(Like(user_id=user_id, watchlist_id=watchlist_id, created_at=now, updated_at=now))
        except AlreadyExistsException:
            return False
        return True

    def unlike(self, user_id: str, watchlist_id: str) -> bool:
        """Returns True only when a like was removed"""
        key = keys.encode_like_key(user_id, watchlist_id)
        return self.delete(key, key)

    def has_liked(self, user_id: str, watchlist_id: str) -> bool:
        key = keys.encode_like_key(user_id, watchlist_id)
        return self.get(key, key) is not None

    def list_by_user(self, user_id: str, limit: Optional[int] = None) -> List[Like]:
        return self.filter_by_type(
            lambda like: like.user_id == user_id,
            limit=limit,
            filter_expression=Attr("PK").begins_with(keys.like_key_prefix(user_id)),
        )

    def list_by_watchlist(self, watchlist_id: str, limit: Optional[int] = None) -> List[Like]:
        # contains() also matches longer ids sharing the suffix; the predicate settles it
        return self.filter_by_type(
            lambda like: like.watchlist_id == watchlist_id,
            limit=limit,
            filter_expression=Attr("PK").contains(keys.like_key_suffix(watchlist_id)),
        )
