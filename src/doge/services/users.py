"""User persistence interface."""

from typing import Protocol

from doge.domain.models import User


class UserRepository(Protocol):
    """Persistence interface for user records."""

    def save(self, user: User) -> User:
        """Insert or replace a user by id and return it."""

    def find_all(self) -> list[User]:
        """Return every stored user."""

    def find_one(self, user_id: str) -> User | None:
        """Return the user with the given id, if present."""
