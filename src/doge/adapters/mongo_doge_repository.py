"""MongoDB-backed doge photo repository."""

from dataclasses import dataclass

from pymongo.database import Database

from doge.domain.models import DogePhoto
from doge.services.doges import DogePhotoRepository


@dataclass
class MongoDogePhotoRepository(DogePhotoRepository):
    """MongoDB implementation for doge photo records."""

    database: Database
    collection_name: str = "dogePhoto"

    def save(self, photo: DogePhoto) -> DogePhoto:
        """Upsert a doge photo document keyed by id."""
        self.database[self.collection_name].replace_one(
            {"_id": photo.id},
            {"_id": photo.id, "userId": photo.user_id, "fileRef": photo.file_ref},
            upsert=True,
        )
        return photo

    def find_one(self, doge_id: str) -> DogePhoto | None:
        """Return a doge photo document, if present."""
        document = self.database[self.collection_name].find_one({"_id": doge_id})
        if document is None:
            return None
        return _to_photo(document)

    def find_by_user(self, user_id: str) -> list[DogePhoto]:
        """Return all doge photos owned by a user."""
        return [
            _to_photo(document)
            for document in self.database[self.collection_name].find(
                {"userId": user_id}
            )
        ]


def _to_photo(document: dict) -> DogePhoto:
    return DogePhoto(
        id=document["_id"],
        user_id=document["userId"],
        file_ref=document["fileRef"],
    )
