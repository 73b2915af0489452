"""MongoDB-backed user repository."""

from dataclasses import dataclass

from pymongo.database import Database

from doge.domain.models import User
from doge.services.users import UserRepository


@dataclass
class MongoUserRepository(UserRepository):
    """MongoDB implementation for user persistence."""

    database: Database
    collection_name: str = "user"

    def save(self, user: User) -> User:
        """Upsert a user document keyed by username."""
        self.database[self.collection_name].replace_one(
            {"_id": user.id},
            {"_id": user.id, "name": user.name},
            upsert=True,
        )
        return user

    def find_all(self) -> list[User]:
        """Return all user documents."""
        return [
            User(id=document["_id"], name=document["name"])
            for document in self.database[self.collection_name].find()
        ]

    def find_one(self, user_id: str) -> User | None:
        """Return the user with the given username, if present."""
        document = self.database[self.collection_name].find_one({"_id": user_id})
        if document is None:
            return None
        return User(id=document["_id"], name=document["name"])
