from typing import ClassVar, List, Optional

from pydantic import Field

from worthwatch.core import keys
from worthwatch.core.enums import EntityKind, EntityType
from worthwatch.models.registry import EntityDefinition, StoredEntity, register


class Movie(StoredEntity):
    """Catalog row: MOVIE#<movieId> / METADATA"""
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.MOVIE

    movie_id: str
    title: str
    release_year: Optional[int] = None
    genres: List[str] = Field(default_factory=list)
    directors: List[str] = Field(default_factory=list)
    cast: List[str] = Field(default_factory=list)
    synopsis: Optional[str] = None
    poster_url: Optional[str] = None
    runtime: Optional[int] = None  # minutes
    rating: Optional[float] = None
    tmdb_id: Optional[str] = None
    imdb_id: Optional[str] = None


register(EntityDefinition(
    entity_type=EntityType.MOVIE,
    model=Movie,
    pk_builder=lambda movie: keys.encode(EntityKind.MOVIE, movie.movie_id),
    sk_builder=lambda movie: keys.METADATA_SK,
))
