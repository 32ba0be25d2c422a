from typing import ClassVar, FrozenSet, List, Optional

from pydantic import Field

from worthwatch.core import keys
from worthwatch.core.enums import EntityKind, EntityType, ShowStatus
from worthwatch.models.registry import EntityDefinition, StoredEntity, register


class Show(StoredEntity):
    """Catalog row: SHOW#<showId> / METADATA"""
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.SHOW
    NULLABLE_ATTRIBUTES: ClassVar[FrozenSet[str]] = frozenset({"endYear"})

    show_id: str
    title: str
    start_year: Optional[int] = None
    end_year: Optional[int] = None  # null while the show is still running
    genres: List[str] = Field(default_factory=list)
    creators: List[str] = Field(default_factory=list)
    cast: List[str] = Field(default_factory=list)
    synopsis: Optional[str] = None
    poster_url: Optional[str] = None
    number_of_seasons: Optional[int] = None
    number_of_episodes: Optional[int] = None
    status: ShowStatus = ShowStatus.ONGOING
    rating: Optional[float] = None
    tmdb_id: Optional[str] = None
    imdb_id: Optional[str] = None


register(EntityDefinition(
    entity_type=EntityType.SHOW,
    model=Show,
    pk_builder=lambda show: keys.encode(EntityKind.SHOW, show.show_id),
    sk_builder=lambda show: keys.METADATA_SK,
))
