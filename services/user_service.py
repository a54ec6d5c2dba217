"""User lookup and profile updates."""

import logging

from docverify.core.exceptions import ResourceNotFoundError
from docverify.database.ports import Repository
from docverify.models.dto import User

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, repository: Repository):
        self.repository = repository

    async def get_user(self, user_id: str) -> User:
        user = await self.repository.get_user_by_id(user_id)
        if user is None:
            raise ResourceNotFoundError("User", user_id)
        return user

    async def update_user(self, user_id: str, name: str, email: str) -> User:
        """Update name and email; a taken email raises DuplicateUser."""
        await self.get_user(user_id)
        user = await self.repository.update_user(user_id, name, email)
        if user is None:
            raise ResourceNotFoundError("User", user_id)
        logger.info("User updated", extra={"user_id": user_id})
        return user
