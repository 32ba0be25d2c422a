import logging
from typing import Any, Dict, List, Optional
from uuid import uuid4

from boto3.dynamodb.conditions import Attr, Key

from worthwatch.core import keys
from worthwatch.core.enums import EntityKind
from worthwatch.models.watchlist import Watchlist, visibility_key
from worthwatch.repositories.base_repository import BaseRepository, Page
from worthwatch.repositories.indexes import CURATOR_INDEX, VISIBILITY_INDEX
from worthwatch.repositories.like_repository import LikeRepository
from worthwatch.repositories.saga import Saga
from worthwatch.repositories.watchlist_item_repository import WatchlistItemRepository

logger = logging.getLogger(__name__)

LIKE_COUNT_ATTRIBUTE = "likeCount"


class WatchlistRepository(BaseRepository[Watchlist]):
    """Repository for watchlist metadata rows"""

    def __init__(self, table, **kwargs):
        super().__init__(Watchlist, table, **kwargs)
        self.items = WatchlistItemRepository(table, **kwargs)
        self.likes = LikeRepository(table, **kwargs)

    def _pk(self, watchlist_id: str) -> str:
        return keys.encode(EntityKind.WATCHLIST, watchlist_id)

    def create_watchlist(self, curator_id: str, title: str, description: Optional[str] = None,
                         cover_image_url: Optional[str] = None, is_public: bool = True,
                         tags: Optional[List[str]] = None, watchlist_id: Optional[str] = None) -> Watchlist:
        """Create an empty watchlist"""
        now = self.clock()
        watchlist = Watchlist(
            watchlist_id=keys.validate_id(watchlist_id or str(uuid4())),
            curator_id=curator_id,
            title=title,
            description=description,
            cover_image_url=cover_image_url,
            is_public=is_public,
            tags=tags or [],
            item_count=0,
            like_count=0,
            created_at=now,
            updated_at=now,
        )
        return self.create(watchlist)

    def get_by_id(self, watchlist_id: str) -> Optional[Watchlist]:
        return self.get(self._pk(watchlist_id), keys.METADATA_SK)

    def list_by_curator(self, curator_id: str, limit: int = 20, cursor: Optional[str] = None,
                        public_only: bool = False) -> Page[Watchlist]:
        """Curator's watchlists, newest first"""
        return self.query_page(
            Key(CURATOR_INDEX.partition_key).eq(curator_id),
            index=CURATOR_INDEX,
            filter_expression=Attr("isPublic").eq(True) if public_only else None,
            limit=limit,
            scan_forward=False,
            cursor=cursor,
        )

    def list_public(self, limit: int = 20, cursor: Optional[str] = None) -> Page[Watchlist]:
        """Public feed, newest first"""
        return self.query_page(
            Key(VISIBILITY_INDEX.partition_key).eq(visibility_key(True)),
            index=VISIBILITY_INDEX,
            limit=limit,
            scan_forward=False,
            cursor=cursor,
        )

    def list_by_tag(self, tag: str, public_only: bool = True, limit: Optional[int] = None) -> List[Watchlist]:
        return self.filter_by_type(
            lambda watchlist: tag in watchlist.tags and (watchlist.is_public or not public_only),
            limit=limit,
        )

    def update_watchlist(self, watchlist_id: str, fields: Dict[str, Any]) -> Watchlist:
        """Patch the given fields, keeping the visibility shadow in step"""
        attributes = self.stored_attributes(fields)
        if "isPublic" in attributes:
            attributes["isPublicStr"] = visibility_key(bool(attributes["isPublic"]))
        return self.update(self._pk(watchlist_id), keys.METADATA_SK, attributes)

    def increment_like_count(self, watchlist_id: str, delta: int = 1) -> int:
        return self.increment_counter(self._pk(watchlist_id), keys.METADATA_SK, LIKE_COUNT_ATTRIBUTE, delta)

    def build_delete_saga(self, watchlist_id: str) -> Saga:
        """Item and like rows first, metadata last, so a stopped run never orphans them"""
        pk = self._pk(watchlist_id)
        saga = Saga(f"delete watchlist {watchlist_id}")
        for item in self.items.list_by_watchlist(watchlist_id):
            sk = keys.encode_item_sk(item.content_type, item.content_id)
            saga.add_step(f"delete item {item.content_type}#{item.content_id}",
                          lambda sk=sk: self.items.delete(pk, sk))
        for like in self.likes.list_by_watchlist(watchlist_id):
            saga.add_step(f"delete like by {like.user_id}",
                          lambda user_id=like.user_id: self.likes.unlike(user_id, watchlist_id))
        saga.add_step("delete metadata", lambda: self.delete(pk, keys.METADATA_SK))
        return saga

    def delete_watchlist(self, watchlist_id: str) -> bool:
        """Cascade delete; returns whether the watchlist existed"""
        existed = self.get_by_id(watchlist_id) is not None
        self.build_delete_saga(watchlist_id).run()
        if existed:
            logger.info(f"Deleted watchlist {watchlist_id}")
        return existed
