from typing import ClassVar, Optional

from worthwatch.core import keys
from worthwatch.core.enums import CuratorStatus, EntityKind, EntityType
from worthwatch.models.registry import EntityDefinition, StoredEntity, register


class User(StoredEntity):
    """Profile row: USER#<userId> / PROFILE"""
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.USER

    user_id: str
    email: str
    username: str
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    is_curator: bool = False
    curator_status: Optional[CuratorStatus] = None


register(EntityDefinition(
    entity_type=EntityType.USER,
    model=User,
    pk_builder=lambda user: keys.encode(EntityKind.USER, user.user_id),
    sk_builder=lambda user: keys.PROFILE_SK,
))
