from typing import Any, Dict, Optional
from uuid import uuid4

from boto3.dynamodb.conditions import Key

from worthwatch.core import keys
from worthwatch.core.enums import CuratorStatus, EntityKind
from worthwatch.models.user import User
from worthwatch.repositories.base_repository import BaseRepository
from worthwatch.repositories.indexes import EMAIL_INDEX


class UserRepository(BaseRepository[User]):
    """User repository with user-specific operations"""

    def __init__(self, table, **kwargs):
        super().__init__(User, table, **kwargs)

    def _pk(self, user_id: str) -> str:
        return keys.encode(EntityKind.USER, user_id)

    def get_by_id(self, user_id: str) -> Optional[User]:
        """Get user by ID"""
        return self.get(self._pk(user_id), keys.PROFILE_SK)

    def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email"""
        for user in self.query(Key(EMAIL_INDEX.partition_key).eq(email), index=EMAIL_INDEX, limit=1):
            return user
        return None

    def email_exists(self, email: str) -> bool:
        """Check if email exists"""
        return self.get_by_email(email) is not None

    def create_user(self, email: str, username: str, user_id: Optional[str] = None, bio: Optional[str] = None,
                    avatar_url: Optional[str] = None, is_curator: bool = False,
                    curator_status: Optional[CuratorStatus] = None) -> User:
        """Create new user"""
        now = self.clock()
        user = User(
            user_id=keys.validate_id(user_id or str(uuid4())),
            email=email,
            username=username,
            bio=bio,
            avatar_url=avatar_url,
            is_curator=is_curator,
            curator_status=curator_status,
            created_at=now,
            updated_at=now,
        )
        return self.create(user)

    def update_user(self, user_id: str, fields: Dict[str, Any]) -> User:
        """Update user with given fields"""
        return self.update(self._pk(user_id), keys.PROFILE_SK, self.stored_attributes(fields))

    def delete_user(self, user_id: str) -> bool:
        return self.delete(self._pk(user_id), keys.PROFILE_SK)
