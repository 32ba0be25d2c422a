from typing import ClassVar, FrozenSet, List, Optional

from pydantic import Field, model_validator

from worthwatch.core.enums import ShowStatus
from worthwatch.schemas.base import PatchModel, RequestModel


class ShowCreate(RequestModel):
    """Catalog show; leave end_year empty while it is still running"""
    title: str = Field(..., min_length=1, max_length=300)
    start_year: Optional[int] = Field(None, ge=1900, le=2100)
    end_year: Optional[int] = Field(None, ge=1900, le=2100)
    genres: List[str] = Field(default_factory=list, max_length=20)
    creators: List[str] = Field(default_factory=list, max_length=20)
    cast: List[str] = Field(default_factory=list, max_length=100)
    synopsis: Optional[str] = Field(None, max_length=5000)
    poster_url: Optional[str] = Field(None, max_length=2048)
    number_of_seasons: Optional[int] = Field(None, ge=1)
    number_of_episodes: Optional[int] = Field(None, ge=1)
    status: ShowStatus = ShowStatus.ONGOING
    rating: Optional[float] = Field(None, ge=0, le=10)
    tmdb_id: Optional[str] = None
    imdb_id: Optional[str] = None

    @model_validator(mode="after")
    def check_years(self):
        if self.start_year and self.end_year and self.end_year < self.start_year:
            raise ValueError("endYear must not be before startYear")
        return self


class ShowUpdate(PatchModel):
    NULLABLE_FIELDS: ClassVar[FrozenSet[str]] = frozenset({
        "start_year", "end_year", "synopsis", "poster_url", "number_of_seasons",
        "number_of_episodes", "rating", "tmdb_id", "imdb_id"
    })

    title: Optional[str] = Field(None, min_length=1, max_length=300)
    start_year: Optional[int] = Field(None, ge=1900, le=2100)
    end_year: Optional[int] = Field(None, ge=1900, le=2100)
    genres: Optional[List[str]] = Field(None, max_length=20)
    creators: Optional[List[str]] = Field(None, max_length=20)
    cast: Optional[List[str]] = Field(None, max_length=100)
    synopsis: Optional[str] = Field(None, max_length=5000)
    poster_url: Optional[str] = Field(None, max_length=2048)
    number_of_seasons: Optional[int] = Field(None, ge=1)
    number_of_episodes: Optional[int] = Field(None, ge=1)
    status: Optional[ShowStatus] = None
    rating: Optional[float] = Field(None, ge=0, le=10)
    tmdb_id: Optional[str] = None
    imdb_id: Optional[str] = None
