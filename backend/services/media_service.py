"""Media library: uploads to the hosted image service and the local gallery index."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx
from sqlalchemy import select

from backend.exceptions import MediaUploadError
from backend.models.media import MediaItem
from backend.schemas.media import MediaItemResponse
from backend.services.datetime_service import format_iso, now_utc

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from backend.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class UploadedImage:
    url: str
    public_id: str | None = None


class MediaHostClient:
    """Unsigned image uploads to a Cloudinary-compatible endpoint."""

    def __init__(
        self,
        base_url: str,
        cloud_name: str,
        upload_preset: str,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._upload_url = f"{base_url.rstrip('/')}/v1_1/{cloud_name}/image/upload"
        self._upload_preset = upload_preset
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> MediaHostClient:
        return cls(
            settings.media_upload_url,
            settings.media_cloud_name,
            settings.media_upload_preset,
            timeout=settings.media_timeout_seconds,
            transport=transport,
        )

    async def upload(self, filename: str, data: bytes, content_type: str) -> UploadedImage:
        """Upload image bytes; returns the public URL assigned by the host."""
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(
                    self._upload_url,
                    data={"upload_preset": self._upload_preset},
                    files={"file": (filename, data, content_type)},
                )
        except httpx.HTTPError as exc:
            logger.error("Media host request failed for %s: %s", filename, exc)
            raise MediaUploadError(f"Media host unreachable: {exc}") from exc

        if resp.status_code >= 400:
            logger.error(
                "Media host rejected %s: HTTP %d %s", filename, resp.status_code, resp.text[:200]
            )
            raise MediaUploadError(f"Media host rejected upload (HTTP {resp.status_code})")
        try:
            payload = resp.json()
        except ValueError as exc:
            raise MediaUploadError("Media host returned invalid JSON") from exc

        url = payload.get("secure_url") or payload.get("url")
        if not isinstance(url, str) or not url:
            raise MediaUploadError("Media host response has no image URL")
        public_id = payload.get("public_id")
        return UploadedImage(url=url, public_id=public_id if isinstance(public_id, str) else None)


def _to_response(item: MediaItem) -> MediaItemResponse:
    return MediaItemResponse(
        id=item.id,
        url=item.url,
        name=item.name,
        public_id=item.public_id,
        uploaded_at=format_iso(item.uploaded_at),
    )


async def list_media(session: AsyncSession) -> list[MediaItemResponse]:
    """All gallery images, most recent upload first."""
    result = await session.execute(
        select(MediaItem).order_by(MediaItem.uploaded_at.desc(), MediaItem.id.desc())
    )
    return [_to_response(item) for item in result.scalars().all()]


async def add_media(session: AsyncSession, name: str, image: UploadedImage) -> MediaItemResponse:
    item = MediaItem(url=image.url, name=name, public_id=image.public_id, uploaded_at=now_utc())
    session.add(item)
    await session.commit()
    await session.refresh(item)
    logger.info("Added media item %d (%s)", item.id, name)
    return _to_response(item)


async def get_media(session: AsyncSession, media_id: int) -> MediaItemResponse | None:
    item = await session.get(MediaItem, media_id)
    return _to_response(item) if item is not None else None


async def delete_media(session: AsyncSession, media_id: int) -> bool:
    """Remove an image from the gallery.

    The hosted file is left in place; pages that reference its URL keep working.
    """
    item = await session.get(MediaItem, media_id)
    if item is None:
        return False
    await session.delete(item)
    await session.commit()
    return True


class MediaLibraryPicker:
    """Media picker that resolves gallery items to their hosted URL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def select_image(self, media_id: int) -> str:
        item = await self._session.get(MediaItem, media_id)
        if item is None:
            raise ValueError(f"Media item {media_id} not found")
        return item.url
