from typing import ClassVar

from worthwatch.core import keys
from worthwatch.core.enums import EntityType
from worthwatch.models.registry import EntityDefinition, StoredEntity, register


class Like(StoredEntity):
    """Single-item row whose PK and SK are both the user/watchlist composite"""
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.LIKE

    user_id: str
    watchlist_id: str


register(EntityDefinition(
    entity_type=EntityType.LIKE,
    model=Like,
    pk_builder=lambda like: keys.encode_like_key(like.user_id, like.watchlist_id),
    sk_builder=lambda like: keys.encode_like_key(like.user_id, like.watchlist_id),
))
