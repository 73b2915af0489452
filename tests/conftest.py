"""Shared test fixtures."""

import io
from dataclasses import dataclass, field

import pytest
from bson import ObjectId
from gridfs.errors import NoFile
from PIL import Image

from doge.config import Settings
from doge.containers import AppContainer
from doge.domain.models import DogePhoto, StoredPhoto, User
from doge.messaging.broker import SimpleBroker
from doge.messaging.dispatch import DispatchPool, TaskScheduler
from doge.messaging.transports import PollingSessionRegistry
from doge.services.doges import DogePhotoRepository, DogeService, PhotoFolder
from doge.services.health import MongoHealthIndicator
from doge.services.manipulator import DogePhotoManipulator
from doge.services.metrics import Disabled, build_metrics
from doge.services.users import UserRepository


@dataclass
class FakeCollection:
    """Dict-backed stand-in for a pymongo collection."""

    documents: dict[object, dict[str, object]] = field(default_factory=dict)

    def replace_one(  # type: ignore[no-untyped-def]
        self, filter_, replacement, upsert=False
    ):
        key = filter_["_id"]
        if key in self.documents or upsert:
            self.documents[key] = dict(replacement)

    def find_one(self, filter_):  # type: ignore[no-untyped-def]
        for document in self.find(filter_):
            return document
        return None

    def find(self, filter_=None):  # type: ignore[no-untyped-def]
        filter_ = filter_ or {}
        return [
            dict(document)
            for document in self.documents.values()
            if all(document.get(key) == value for key, value in filter_.items())
        ]


@dataclass
class FakeDatabase:
    collections: dict[str, FakeCollection] = field(default_factory=dict)

    def __getitem__(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection())


@dataclass
class FakeMongoClient:
    error: Exception | None = None
    closed: bool = False

    def list_database_names(self) -> list[str]:
        if self.error is not None:
            raise self.error
        return ["admin", "doge", "photos"]

    def close(self) -> None:
        self.closed = True


@dataclass
class FakeGridOut:
    filename: str
    metadata: dict[str, object] | None
    data: bytes

    def read(self) -> bytes:
        return self.data


@dataclass
class FakeGridFSBucket:
    """Stand-in for gridfs.GridFSBucket."""

    bucket_name: str
    files: dict[ObjectId, FakeGridOut] = field(default_factory=dict)

    def upload_from_stream(  # type: ignore[no-untyped-def]
        self, filename, source, metadata=None
    ):
        file_id = ObjectId()
        self.files[file_id] = FakeGridOut(filename, metadata, bytes(source))
        return file_id

    def open_download_stream(self, file_id):  # type: ignore[no-untyped-def]
        if file_id not in self.files:
            raise NoFile(f"no file with id {file_id}")
        return self.files[file_id]


@dataclass
class InMemoryUserRepository(UserRepository):
    """In-memory user repository for tests."""

    users: dict[str, User] = field(default_factory=dict)

    def save(self, user: User) -> User:
        self.users[user.id] = user
        return user

    def find_all(self) -> list[User]:
        return list(self.users.values())

    def find_one(self, user_id: str) -> User | None:
        return self.users.get(user_id)


@dataclass
class InMemoryDogePhotoRepository(DogePhotoRepository):
    """In-memory doge photo repository for tests."""

    photos: dict[str, DogePhoto] = field(default_factory=dict)

    def save(self, photo: DogePhoto) -> DogePhoto:
        self.photos[photo.id] = photo
        return photo

    def find_one(self, doge_id: str) -> DogePhoto | None:
        return self.photos.get(doge_id)

    def find_by_user(self, user_id: str) -> list[DogePhoto]:
        return [photo for photo in self.photos.values() if photo.user_id == user_id]


@dataclass
class InMemoryFolder(PhotoFolder):
    """In-memory photo folder for tests."""

    files: dict[str, StoredPhoto] = field(default_factory=dict)

    def write(self, filename: str, data: bytes, content_type: str) -> str:
        file_id = f"file-{len(self.files) + 1}"
        self.files[file_id] = StoredPhoto(file_id, filename, content_type, data)
        return file_id

    def read(self, file_id: str) -> StoredPhoto | None:
        return self.files.get(file_id)


@dataclass
class InMemoryPhotoStore:
    """In-memory photo store handing out one folder per name."""

    folders: dict[str, InMemoryFolder] = field(default_factory=dict)

    def folder(self, name: str) -> InMemoryFolder:
        return self.folders.setdefault(name, InMemoryFolder())


@dataclass
class RecordingSession:
    """Broker session that records every frame sent to it."""

    session_id: str
    sent: list[str] = field(default_factory=list)
    closed: bool = False

    async def send(self, text: str) -> None:
        self.sent.append(text)

    async def close(self) -> None:
        self.closed = True


def make_image_bytes(size: tuple[int, int] = (64, 48), fmt: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color=(200, 160, 60)).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        mongodb_uri="mongodb://localhost:27017/doge-test",
        max_upload_bytes=64 * 1024,
        polling_timeout_seconds=0.2,
    )


@pytest.fixture
def user_repository() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def photo_store() -> InMemoryPhotoStore:
    return InMemoryPhotoStore()


@pytest.fixture
def mongo_client() -> FakeMongoClient:
    return FakeMongoClient()


@pytest.fixture
def container(
    settings: Settings,
    user_repository: InMemoryUserRepository,
    photo_store: InMemoryPhotoStore,
    mongo_client: FakeMongoClient,
) -> AppContainer:
    metrics = build_metrics()
    dispatch_pool = DispatchPool(
        core_size=settings.dispatch_core_pool_size,
        max_size=settings.dispatch_max_pool_size,
    )
    broker = SimpleBroker(pool=dispatch_pool, metrics=metrics)
    doge_service = DogeService(
        repository=InMemoryDogePhotoRepository(),
        photo_store=photo_store,
        manipulator=DogePhotoManipulator(),
        broker=broker,
        metrics=metrics,
        folder_name=settings.photo_folder,
    )

    async def close_resources() -> None:
        mongo_client.close()

    return AppContainer(
        settings=settings,
        user_repository=user_repository,
        health_indicator=MongoHealthIndicator(mongo_client),
        doge_service=doge_service,
        dispatch_pool=dispatch_pool,
        scheduler=TaskScheduler(dispatch_pool),
        broker=broker,
        polling_sessions=PollingSessionRegistry(
            ttl_seconds=settings.polling_session_ttl_seconds
        ),
        metrics=metrics,
        metrics_decision=Disabled(),
        close_resources=close_resources,
    )
