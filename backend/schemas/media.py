"""Media library schemas."""

from __future__ import annotations

from pydantic import BaseModel


class MediaItemResponse(BaseModel):
    id: int
    url: str
    name: str
    public_id: str | None = None
    uploaded_at: str
