"""User and doge photo endpoints."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import (
    APIRouter,
    Depends,
    File,
    HTTPException,
    Request,
    UploadFile,
    status,
)
from fastapi.responses import JSONResponse, Response

from doge.services.doges import doge_photo_uri
from doge.services.manipulator import InvalidPhotoError

if TYPE_CHECKING:
    from doge.containers import AppContainer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["doges"])


def _get_max_upload_bytes(request: Request) -> int:
    container: AppContainer = request.app.state.container
    return container.settings.max_upload_bytes


async def bounded_upload(
    file: UploadFile = File(...),
    max_upload_bytes: int = Depends(_get_max_upload_bytes),
) -> UploadFile:
    """Resolve the uploaded file part, refusing files over the size limit."""
    if file.size is not None and file.size > max_upload_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Upload too large",
        )
    return file


@router.get("")
async def list_users(request: Request) -> dict[str, object]:
    """Return every known user."""
    container: AppContainer = request.app.state.container
    users = container.user_repository.find_all()
    return {"users": [{"id": user.id, "name": user.name} for user in users]}


@router.post("/{user_id}/doge", status_code=status.HTTP_201_CREATED)
async def upload_doge(
    user_id: str, request: Request, file: UploadFile = Depends(bounded_upload)
) -> JSONResponse:
    """Dogify an uploaded photo and store it for the user."""
    container: AppContainer = request.app.state.container
    user = container.user_repository.find_one(user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Unknown user"
        )
    data = await file.read()
    try:
        photo = await container.doge_service.add_doge_photo(user, data)
    except InvalidPhotoError as exc:
        logger.info("Rejected upload for %s: %s", user_id, exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    uri = doge_photo_uri(user.id, photo.id)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={"id": photo.id, "userId": user.id, "uri": uri},
        headers={"Location": uri},
    )


@router.get("/{user_id}/doge")
async def list_doges(user_id: str, request: Request) -> dict[str, object]:
    """List the doge photos a user has uploaded."""
    container: AppContainer = request.app.state.container
    if container.user_repository.find_one(user_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Unknown user"
        )
    photos = container.doge_service.list_doge_photos(user_id)
    return {
        "doges": [
            {"id": photo.id, "uri": doge_photo_uri(user_id, photo.id)}
            for photo in photos
        ]
    }


@router.get("/{user_id}/doge/{doge_id}")
async def get_doge(user_id: str, doge_id: str, request: Request) -> Response:
    """Serve a stored doge photo."""
    container: AppContainer = request.app.state.container
    photo = container.doge_service.get_doge_photo(user_id, doge_id)
    if photo is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return Response(content=photo.data, media_type=photo.content_type)
