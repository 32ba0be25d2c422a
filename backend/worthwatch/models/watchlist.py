from typing import Any, ClassVar, Dict, List, Optional

from pydantic import Field

from worthwatch.core import keys
from worthwatch.core.enums import ContentType, EntityKind, EntityType
from worthwatch.models.registry import EntityDefinition, StoredEntity, register


class Watchlist(StoredEntity):
    """Metadata row: WATCHLIST#<watchlistId> / METADATA"""
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.WATCHLIST

    watchlist_id: str
    curator_id: str
    title: str
    description: Optional[str] = None
    cover_image_url: Optional[str] = None
    is_public: bool = True
    tags: List[str] = Field(default_factory=list)
    item_count: int = 0
    like_count: int = 0

    def storage_attributes(self) -> Dict[str, Any]:
        # GSI3 partitions on a string, so the flag is shadowed
        return {"isPublicStr": visibility_key(self.is_public)}


class WatchlistItem(StoredEntity):
    """Child row sharing the watchlist partition: ITEM#<contentType>#<contentId>"""
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.WATCHLIST_ITEM

    watchlist_id: str
    content_type: ContentType
    content_id: str
    position: int
    curator_note: Optional[str] = None
    added_at: str


def visibility_key(is_public: bool) -> str:
    return "true" if is_public else "false"


register(EntityDefinition(
    entity_type=EntityType.WATCHLIST,
    model=Watchlist,
    pk_builder=lambda watchlist: keys.encode(EntityKind.WATCHLIST, watchlist.watchlist_id),
    sk_builder=lambda watchlist: keys.METADATA_SK,
))

register(EntityDefinition(
    entity_type=EntityType.WATCHLIST_ITEM,
    model=WatchlistItem,
    pk_builder=lambda item: keys.encode(EntityKind.WATCHLIST, item.watchlist_id),
    sk_builder=lambda item: keys.encode_item_sk(item.content_type, item.content_id),
))
