"""GridFS-backed photo folders."""

from collections.abc import Callable
from dataclasses import dataclass

from bson import ObjectId
from bson.errors import InvalidId
from gridfs import GridFSBucket
from gridfs.errors import NoFile
from pymongo.database import Database

from doge.domain.models import StoredPhoto
from doge.services.doges import PhotoFolder, PhotoStore


@dataclass
class MongoFolder(PhotoFolder):
    """A GridFS bucket used as a flat folder of photos."""

    bucket: GridFSBucket

    def write(self, filename: str, data: bytes, content_type: str) -> str:
        """Upload bytes into the bucket and return the file id."""
        file_id = self.bucket.upload_from_stream(
            filename, data, metadata={"contentType": content_type}
        )
        return str(file_id)

    def read(self, file_id: str) -> StoredPhoto | None:
        """Download a file by id, if present."""
        try:
            stream = self.bucket.open_download_stream(ObjectId(file_id))
        except (InvalidId, NoFile):
            return None
        metadata = stream.metadata or {}
        return StoredPhoto(
            file_id=file_id,
            filename=stream.filename,
            content_type=metadata.get("contentType", "application/octet-stream"),
            data=stream.read(),
        )


@dataclass
class MongoPhotoStore(PhotoStore):
    """Exposes named GridFS buckets of a database as folders."""

    database: Database
    bucket_factory: Callable[..., GridFSBucket] = GridFSBucket

    def folder(self, name: str) -> MongoFolder:
        """Return a folder scoped to the bucket with the given name."""
        return MongoFolder(self.bucket_factory(self.database, bucket_name=name))
