"""Page and editor schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from backend.blocks.editor import Direction, EditorState
from backend.blocks.model import BlockType
from backend.blocks.renderer import RenderState

MAX_BLOCK_CONTENT = 100_000


class BlockSchema(BaseModel):
    """Wire form of a block."""

    id: str
    type: BlockType
    content: str


class RenderedPageResponse(BaseModel):
    """Read-only rendered page."""

    page_id: str
    state: RenderState
    html: str
    block_count: int = Field(default=0, ge=0)


class PageDocumentResponse(BaseModel):
    """Stored page document as persisted."""

    page_id: str
    blocks: list[Any]
    revision: int
    updated_at: str | None = None


class PageListResponse(BaseModel):
    page_ids: list[str]


class EditorOpenRequest(BaseModel):
    page_id: str = Field(min_length=1, max_length=200, pattern=r"^[a-zA-Z0-9_-]+$")


class EditorSessionResponse(BaseModel):
    """Snapshot of an editing session's working copy."""

    token: str
    page_id: str
    state: EditorState
    blocks: list[BlockSchema]
    dirty: bool
    revision: int | None = None
    focus_block_id: str | None = None


class AddBlockRequest(BaseModel):
    type: BlockType


class EditBlockRequest(BaseModel):
    content: str = Field(max_length=MAX_BLOCK_CONTENT)


class MoveBlockRequest(BaseModel):
    direction: Direction


class ReorderRequest(BaseModel):
    dragged_id: str = Field(min_length=1)
    target_id: str = Field(min_length=1)


class SelectImageRequest(BaseModel):
    media_id: int = Field(ge=1)


class SaveResponse(BaseModel):
    page_id: str
    revision: int
    block_count: int
    overwrote_newer_revision: bool = False
    session: EditorSessionResponse
