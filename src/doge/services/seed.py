"""Startup data seeding."""

import logging

from doge.domain.models import User
from doge.services.users import UserRepository

logger = logging.getLogger(__name__)

SEED_USERS = (
    User(id="philwebb", name="Phil Webb"),
    User(id="joshlong", name="Josh Long"),
)


def seed_users(repository: UserRepository) -> list[User]:
    """Save the demo users and log the resulting user list.

    Saving is an upsert by username, so running this against a store that
    already holds the demo users leaves it unchanged.
    """
    for user in SEED_USERS:
        repository.save(user)
    users = repository.find_all()
    for user in users:
        logger.info("User: %s (%s)", user.id, user.name)
    return users
