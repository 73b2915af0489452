"""Doge photo uploads."""

import json
import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import uuid4

from doge.domain.models import DogePhoto, StoredPhoto, User
from doge.messaging.broker import SimpleBroker
from doge.services.manipulator import DogePhotoManipulator
from doge.services.metrics import AppMetrics

logger = logging.getLogger(__name__)

ALARMS_DESTINATION = "/topic/alarms"


class DogePhotoRepository(Protocol):
    """Persistence interface for doge photo records."""

    def save(self, photo: DogePhoto) -> DogePhoto:
        """Insert or replace a doge photo record by id."""

    def find_one(self, doge_id: str) -> DogePhoto | None:
        """Return a doge photo record, if present."""

    def find_by_user(self, user_id: str) -> list[DogePhoto]:
        """Return the doge photo records owned by a user."""


class PhotoFolder(Protocol):
    """A named partition of binary photo storage."""

    def write(self, filename: str, data: bytes, content_type: str) -> str:
        """Store bytes and return the new file id."""

    def read(self, file_id: str) -> StoredPhoto | None:
        """Return a stored photo, if present."""


class PhotoStore(Protocol):
    """Hands out photo folders by name."""

    def folder(self, name: str) -> PhotoFolder:
        """Return the folder with the given name."""


def doge_photo_uri(user_id: str, doge_id: str) -> str:
    """Return the HTTP path a doge photo is served from."""
    return f"/users/{user_id}/doge/{doge_id}"


@dataclass
class DogeService:
    """Dogifies uploads, stores them and announces them to subscribers."""

    repository: DogePhotoRepository
    photo_store: PhotoStore
    manipulator: DogePhotoManipulator
    broker: SimpleBroker
    metrics: AppMetrics
    folder_name: str = "photos"

    async def add_doge_photo(self, user: User, data: bytes) -> DogePhoto:
        """Manipulate and persist an uploaded photo for a user."""
        manipulated = self.manipulator.manipulate(data)
        doge_id = uuid4().hex
        folder = self.photo_store.folder(self.folder_name)
        file_ref = folder.write(f"{user.id}-{doge_id}.jpg", manipulated, "image/jpeg")
        photo = self.repository.save(
            DogePhoto(id=doge_id, user_id=user.id, file_ref=file_ref)
        )
        self.metrics.record_upload()
        uri = doge_photo_uri(user.id, photo.id)
        logger.info("Stored doge photo %s for %s", photo.id, user.id)
        await self.broker.publish(
            ALARMS_DESTINATION,
            json.dumps({"dogePhotoUri": uri, "userId": user.id, "dogeId": photo.id}),
            {"content-type": "application/json"},
        )
        return photo

    def list_doge_photos(self, user_id: str) -> list[DogePhoto]:
        """Return the doge photo records owned by a user."""
        return self.repository.find_by_user(user_id)

    def get_doge_photo(self, user_id: str, doge_id: str) -> StoredPhoto | None:
        """Return the stored image for a user's doge photo, if present."""
        photo = self.repository.find_one(doge_id)
        if photo is None or photo.user_id != user_id:
            return None
        return self.photo_store.folder(self.folder_name).read(photo.file_ref)
