from typing import ClassVar, FrozenSet, Optional

from pydantic import EmailStr, Field

from worthwatch.schemas.base import PatchModel, RequestModel


class UserCreate(RequestModel):
    """Profile for the authenticated caller; email defaults to the token's"""
    username: str = Field(..., min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    bio: Optional[str] = Field(None, max_length=500)
    avatar_url: Optional[str] = Field(None, max_length=2048)


class UserUpdate(PatchModel):
    NULLABLE_FIELDS: ClassVar[FrozenSet[str]] = frozenset({"bio", "avatar_url"})

    username: Optional[str] = Field(None, min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    bio: Optional[str] = Field(None, max_length=500)
    avatar_url: Optional[str] = Field(None, max_length=2048)
