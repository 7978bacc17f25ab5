# marketplace/services/user_service.py
import logging
import uuid

from sqlmodel import Session

from marketplace.core.errors import InvalidInput, NotFound
from marketplace.models.user import User
from marketplace.repositories.user_repo import UserRepository
from marketplace.schemas.user import UserRoleUpdate

logger = logging.getLogger(__name__)


class UserService:
    """
    Business logic for User.

    Responsibilities:
      - expose the caller's own profile
      - admin listing and role assignment (merchant, driver, admin
        roles are only granted here)
    """

    def __init__(self, repo: UserRepository):
        self.repo = repo

    # ----- Self profile -----

    def get_me(self, current_user: User) -> User:
        """Return the current authenticated user."""
        return current_user

    # ----- Admin operations -----

    def list_users(self, session: Session, skip: int, limit: int) -> list[User]:
        """List users with pagination (admin only)."""
        return self.repo.list(session, skip=skip, limit=limit)

    def get_user(self, session: Session, user_id: uuid.UUID) -> User:
        """
        Get a user by id (admin only).

        Raises:
            NotFound: if not found.
        """
        user = self.repo.get_by_id(session, user_id)
        if not user:
            raise NotFound("User not found")
        return user

    def update_role(
        self,
        session: Session,
        admin: User,
        user_id: uuid.UUID,
        payload: UserRoleUpdate,
    ) -> User:
        """
        Change a user's role (admin only).

        An admin cannot demote themselves, so at least one admin remains.
        """
        user = self.get_user(session, user_id)
        if user.id == admin.id and payload.role != user.role:
            raise InvalidInput("Admins cannot change their own role")

        previous = user.role
        user.role = payload.role
        user = self.repo.update(session, user)
        logger.info("User %s role changed %s -> %s", user.id, previous.value, user.role.value)
        return user
