from typing import ClassVar, FrozenSet, List, Optional

from pydantic import Field

from worthwatch.schemas.base import PatchModel, RequestModel


class MovieCreate(RequestModel):
    """Catalog movie"""
    title: str = Field(..., min_length=1, max_length=300)
    release_year: Optional[int] = Field(None, ge=1870, le=2100)
    genres: List[str] = Field(default_factory=list, max_length=20)
    directors: List[str] = Field(default_factory=list, max_length=20)
    cast: List[str] = Field(default_factory=list, max_length=100)
    synopsis: Optional[str] = Field(None, max_length=5000)
    poster_url: Optional[str] = Field(None, max_length=2048)
    runtime: Optional[int] = Field(None, ge=1, description="Runtime in minutes")
    rating: Optional[float] = Field(None, ge=0, le=10)
    tmdb_id: Optional[str] = None
    imdb_id: Optional[str] = None


class MovieUpdate(PatchModel):
    NULLABLE_FIELDS: ClassVar[FrozenSet[str]] = frozenset({
        "release_year", "synopsis", "poster_url", "runtime", "rating", "tmdb_id", "imdb_id"
    })

    title: Optional[str] = Field(None, min_length=1, max_length=300)
    release_year: Optional[int] = Field(None, ge=1870, le=2100)
    genres: Optional[List[str]] = Field(None, max_length=20)
    directors: Optional[List[str]] = Field(None, max_length=20)
    cast: Optional[List[str]] = Field(None, max_length=100)
    synopsis: Optional[str] = Field(None, max_length=5000)
    poster_url: Optional[str] = Field(None, max_length=2048)
    runtime: Optional[int] = Field(None, ge=1)
    rating: Optional[float] = Field(None, ge=0, le=10)
    tmdb_id: Optional[str] = None
    imdb_id: Optional[str] = None
