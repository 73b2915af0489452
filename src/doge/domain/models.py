"""Domain models for the doge service."""

from dataclasses import dataclass


@dataclass(frozen=True)
class User:
    """A user, identified by a unique username."""

    id: str
    name: str


@dataclass(frozen=True)
class DogePhoto:
    """Links a user to a dogified photo stored in the photo folder."""

    id: str
    user_id: str
    file_ref: str


@dataclass(frozen=True)
class StoredPhoto:
    """Binary photo content read back from a folder."""

    file_id: str
    filename: str
    content_type: str
    data: bytes
