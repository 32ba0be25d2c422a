from typing import ClassVar, FrozenSet, List, Optional

from pydantic import Field

from worthwatch.core.enums import ContentType
from worthwatch.schemas.base import PatchModel, RequestModel


class WatchlistCreate(RequestModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    cover_image_url: Optional[str] = Field(None, max_length=2048)
    is_public: bool = True
    tags: List[str] = Field(default_factory=list, max_length=20)


class WatchlistUpdate(PatchModel):
    NULLABLE_FIELDS: ClassVar[FrozenSet[str]] = frozenset({"description", "cover_image_url"})

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    cover_image_url: Optional[str] = Field(None, max_length=2048)
    is_public: Optional[bool] = None
    tags: Optional[List[str]] = Field(None, max_length=20)


class WatchlistItemCreate(RequestModel):
    """Add a movie or show; position defaults to the end of the list"""
    content_type: ContentType
    content_id: str = Field(..., min_length=1, max_length=128)
    position: Optional[int] = Field(None, ge=0)
    curator_note: Optional[str] = Field(None, max_length=1000)


class WatchlistItemUpdate(PatchModel):
    NULLABLE_FIELDS: ClassVar[FrozenSet[str]] = frozenset({"curator_note"})

    curator_note: Optional[str] = Field(None, max_length=1000)


class ItemReference(RequestModel):
    content_type: ContentType
    content_id: str = Field(..., min_length=1, max_length=128)


class WatchlistReorder(RequestModel):
    """Complete new order of the watchlist's items"""
    items: List[ItemReference]
