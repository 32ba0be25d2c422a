import logging

from worthwatch.core.auth import AuthenticatedUser
from worthwatch.core.exceptions import AlreadyExistsException, NotFoundException, ValidationException
from worthwatch.models.user import User
from worthwatch.repositories.user_repository import UserRepository
from worthwatch.schemas.user import UserCreate, UserUpdate

logger = logging.getLogger(__name__)


class UserService:
    """Profiles of authenticated callers; the profile id is the token subject"""

    def __init__(self, table, **kwargs):
        self.user_repository = UserRepository(table, **kwargs)

    def get_user_by_id(self, user_id: str) -> User:
        """Get user by ID"""
        user = self.user_repository.get_by_id(user_id)
        if not user:
            raise NotFoundException("User not found")
        return user

    def create_user(self, caller: AuthenticatedUser, user_data: UserCreate) -> User:
        """Create the caller's profile"""
        email = user_data.email or caller.email
        if not email:
            raise ValidationException(
                "Email is required",
                details=[{"field": "email", "message": "no email in request or token"}],
            )
        logger.info(f"Creating user {caller.sub}")

        # Check if email already exists
        if self.user_repository.email_exists(email):
            raise AlreadyExistsException("Email already registered")

        return self.user_repository.create_user(
            user_id=caller.sub,
            email=email,
            username=user_data.username,
            bio=user_data.bio,
            avatar_url=user_data.avatar_url,
        )

    def update_user(self, user_id: str, user_data: UserUpdate) -> User:
        changes = user_data.to_fields()
        if "email" in changes:
            owner = self.user_repository.get_by_email(changes["email"])
            if owner and owner.user_id != user_id:
                raise AlreadyExistsException("Email already registered")
        return self.user_repository.update_user(user_id, changes)

    def delete_user(self, user_id: str) -> None:
        if not self.user_repository.delete_user(user_id):
            raise NotFoundException("User not found")
        logger.info(f"Deleted user {user_id}")
