"""Media library API endpoints."""

from __future__ import annotations

import logging
from pathlib import Path as FilePath
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.deps import get_media_host, get_session, get_settings, require_auth
from backend.config import Settings
from backend.models.user import User
from backend.schemas.media import MediaItemResponse
from backend.services.media_service import MediaHostClient, add_media, delete_media, list_media

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/media", tags=["media"])


@router.get("", response_model=list[MediaItemResponse])
async def list_media_endpoint(
    session: Annotated[AsyncSession, Depends(get_session)],
    _user: Annotated[User, Depends(require_auth)],
) -> list[MediaItemResponse]:
    """List gallery images, newest first."""
    return await list_media(session)


@router.post("", response_model=MediaItemResponse, status_code=201)
async def upload_media(
    file: UploadFile,
    session: Annotated[AsyncSession, Depends(get_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    media_host: Annotated[MediaHostClient, Depends(get_media_host)],
    user: Annotated[User, Depends(require_auth)],
) -> MediaItemResponse:
    """Upload an image to the media host and add it to the gallery."""
    if not settings.media_configured:
        raise HTTPException(status_code=503, detail="Media host is not configured")

    content_type = file.content_type or ""
    if not content_type.startswith("image/"):
        raise HTTPException(status_code=415, detail="Only image uploads are accepted")

    data = await file.read()
    if not data:
        raise HTTPException(status_code=422, detail="Uploaded file is empty")
    if len(data) > settings.media_max_upload_bytes:
        raise HTTPException(status_code=413, detail=f"File too large: {file.filename}")

    name = FilePath(file.filename or "upload").name
    image = await media_host.upload(name, data, content_type)
    logger.info("User %s uploaded %s to the media host", user.username, name)
    return await add_media(session, name, image)


@router.delete("/{media_id}", status_code=204)
async def delete_media_endpoint(
    media_id: int,
    session: Annotated[AsyncSession, Depends(get_session)],
    _user: Annotated[User, Depends(require_auth)],
) -> Response:
    """Remove an image from the gallery."""
    if not await delete_media(session, media_id):
        raise HTTPException(status_code=404, detail="Media item not found")
    return Response(status_code=204)
