import logging
from typing import List, Optional, Sequence, Tuple

from boto3.dynamodb.conditions import Key

from worthwatch.core import keys
from worthwatch.core.enums import ContentType, EntityKind
from worthwatch.core.exceptions import NotFoundException, ValidationException
from worthwatch.models.watchlist import WatchlistItem
from worthwatch.repositories.base_repository import BaseRepository
from worthwatch.repositories.saga import Saga

logger = logging.getLogger(__name__)

ITEM_COUNT_ATTRIBUTE = "itemCount"


class WatchlistItemRepository(BaseRepository[WatchlistItem]):
    """Items live in their watchlist's partition, so the parent and its
    ``itemCount`` are addressed from here as well."""

    def __init__(self, table, **kwargs):
        super().__init__(WatchlistItem, table, **kwargs)

    def _watchlist_pk(self, watchlist_id: str) -> str:
        return keys.encode(EntityKind.WATCHLIST, watchlist_id)

    def add_item(self, watchlist_id: str, content_type: ContentType, content_id: str,
                 position: Optional[int] = None, curator_note: Optional[str] = None) -> WatchlistItem:
        """Create the item row and bump the parent's item count.

        Raises NotFoundException if the watchlist does not exist and
        AlreadyExistsException if the content is already on it.
        """
        pk = self._watchlist_pk(watchlist_id)
        parent = self.get(pk, keys.METADATA_SK)
        if parent is None:
            raise NotFoundException("Watchlist not found")

        now = self.clock()
        item = WatchlistItem(
            watchlist_id=watchlist_id,
            content_type=content_type,
            content_id=content_id,
            position=parent.item_count if position is None else position,
            curator_note=curator_note,
            added_at=now,
            created_at=now,
            updated_at=now,
        )
        self.create(item)
        try:
            self.increment_counter(pk, keys.METADATA_SK, ITEM_COUNT_ATTRIBUTE, 1)
        except NotFoundException:
            # Parent deleted between the check and the increment
            self.delete(pk, item.key()["SK"])
            raise NotFoundException("Watchlist not found")
        logger.info(f"Added {item.content_type} {content_id} to watchlist {watchlist_id}")
        return item

    def remove_item(self, watchlist_id: str, content_type: ContentType, content_id: str) -> bool:
        """Delete the item row; the count only moves if a row was removed"""
        pk = self._watchlist_pk(watchlist_id)
        existed = self.delete(pk, keys.encode_item_sk(content_type, content_id))
        if existed:
            try:
                self.decrement_counter(pk, keys.METADATA_SK, ITEM_COUNT_ATTRIBUTE)
            except NotFoundException:
                logger.warning(f"Watchlist {watchlist_id} vanished while removing item {content_id}")
        return existed

    def get_item(self, watchlist_id: str, content_type: ContentType, content_id: str) -> Optional[WatchlistItem]:
        return self.get(self._watchlist_pk(watchlist_id), keys.encode_item_sk(content_type, content_id))

    def update_item_note(self, watchlist_id: str, content_type: ContentType, content_id: str,
                         curator_note: Optional[str]) -> WatchlistItem:
        return self.update(
            self._watchlist_pk(watchlist_id),
            keys.encode_item_sk(content_type, content_id),
            {"curatorNote": curator_note},
        )

    def list_by_watchlist(self, watchlist_id: str) -> List[WatchlistItem]:
        """All items of a watchlist ordered by position"""
        condition = Key("PK").eq(self._watchlist_pk(watchlist_id)) & Key("SK").begins_with(keys.ITEM_SK_PREFIX)
        items = list(self.query(condition))
        return sorted(items, key=lambda item: (item.position, item.added_at))

    def build_reorder_saga(self, watchlist_id: str, order: Sequence[Tuple[ContentType, str]]) -> Saga:
        """One position update per item; every current item must appear exactly once"""
        current = {(item.content_type, item.content_id) for item in self.list_by_watchlist(watchlist_id)}
        requested = [(ContentType(content_type).value, content_id) for content_type, content_id in order]
        if len(set(requested)) != len(requested) or set(requested) != current:
            raise ValidationException("Order must list every item of the watchlist exactly once")

        pk = self._watchlist_pk(watchlist_id)
        saga = Saga(f"reorder watchlist {watchlist_id}")
        for position, (content_type, content_id) in enumerate(requested):
            sk = keys.encode_item_sk(content_type, content_id)
            saga.add_step(
                f"set position {position} for {content_type}#{content_id}",
                lambda sk=sk, position=position: self.update(pk, sk, {"position": position}),
            )
        return saga

    def reorder(self, watchlist_id: str, order: Sequence[Tuple[ContentType, str]]) -> List[WatchlistItem]:
        self.build_reorder_saga(watchlist_id, order).run()
        return self.list_by_watchlist(watchlist_id)
