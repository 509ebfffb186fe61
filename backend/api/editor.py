"""Page editor API: open an editing session and mutate its working copy."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.deps import (
    get_document_store,
    get_editor_sessions,
    get_session,
    get_settings,
    require_auth,
)
from backend.blocks.editor import PageEditor
from backend.blocks.sessions import EditorSessionRegistry
from backend.blocks.store import DocumentStore
from backend.config import Settings
from backend.models.user import User
from backend.schemas.page import (
    AddBlockRequest,
    BlockSchema,
    EditBlockRequest,
    EditorOpenRequest,
    EditorSessionResponse,
    MoveBlockRequest,
    ReorderRequest,
    SaveResponse,
    SelectImageRequest,
)
from backend.services.media_service import MediaLibraryPicker, get_media

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/editor/sessions", tags=["editor"])


def _snapshot(
    token: str, editor: PageEditor, focus_block_id: str | None = None
) -> EditorSessionResponse:
    return EditorSessionResponse(
        token=token,
        page_id=editor.page_id,
        state=editor.state,
        blocks=[BlockSchema(id=b.id, type=b.type, content=b.content) for b in editor.blocks],
        dirty=editor.dirty,
        revision=editor.revision,
        focus_block_id=focus_block_id,
    )


def _get_editor(registry: EditorSessionRegistry, token: str, user: User) -> PageEditor:
    editor = registry.get(token, user.id)
    if editor is None:
        raise HTTPException(status_code=404, detail="Editor session not found")
    return editor


@router.post("", response_model=EditorSessionResponse, status_code=201)
async def open_session(
    body: EditorOpenRequest,
    store: Annotated[DocumentStore, Depends(get_document_store)],
    registry: Annotated[EditorSessionRegistry, Depends(get_editor_sessions)],
    settings: Annotated[Settings, Depends(get_settings)],
    user: Annotated[User, Depends(require_auth)],
) -> EditorSessionResponse:
    """Load a page into a new working copy."""
    editor = PageEditor(body.page_id, store, placeholder_title=settings.default_page_title)
    await editor.load()
    token = registry.open(editor, user.id)
    logger.info("User %s opened editor for page %s", user.username, body.page_id)
    return _snapshot(token, editor)


@router.get("/{token}", response_model=EditorSessionResponse)
async def get_session_snapshot(
    token: str,
    registry: Annotated[EditorSessionRegistry, Depends(get_editor_sessions)],
    user: Annotated[User, Depends(require_auth)],
) -> EditorSessionResponse:
    return _snapshot(token, _get_editor(registry, token, user))


@router.delete("/{token}", status_code=204)
async def close_session(
    token: str,
    registry: Annotated[EditorSessionRegistry, Depends(get_editor_sessions)],
    user: Annotated[User, Depends(require_auth)],
) -> Response:
    """Discard the working copy; unsaved edits are lost."""
    if not registry.close(token, user.id):
        raise HTTPException(status_code=404, detail="Editor session not found")
    return Response(status_code=204)


@router.post("/{token}/blocks", response_model=EditorSessionResponse, status_code=201)
async def add_block(
    token: str,
    body: AddBlockRequest,
    registry: Annotated[EditorSessionRegistry, Depends(get_editor_sessions)],
    user: Annotated[User, Depends(require_auth)],
) -> EditorSessionResponse:
    """Append a block; ``focus_block_id`` names the block to bring into view."""
    editor = _get_editor(registry, token, user)
    block = editor.add_block(body.type)
    return _snapshot(token, editor, focus_block_id=block.id)


@router.put("/{token}/blocks/{block_id}", response_model=EditorSessionResponse)
async def edit_block(
    token: str,
    block_id: str,
    body: EditBlockRequest,
    registry: Annotated[EditorSessionRegistry, Depends(get_editor_sessions)],
    user: Annotated[User, Depends(require_auth)],
) -> EditorSessionResponse:
    editor = _get_editor(registry, token, user)
    editor.edit_block(block_id, body.content)
    return _snapshot(token, editor)


@router.delete("/{token}/blocks/{block_id}", response_model=EditorSessionResponse)
async def delete_block(
    token: str,
    block_id: str,
    registry: Annotated[EditorSessionRegistry, Depends(get_editor_sessions)],
    user: Annotated[User, Depends(require_auth)],
) -> EditorSessionResponse:
    """Delete a block; refused with 409 for the last block of the page."""
    editor = _get_editor(registry, token, user)
    editor.delete_block(block_id)
    return _snapshot(token, editor)


@router.post("/{token}/blocks/{block_id}/move", response_model=EditorSessionResponse)
async def move_block(
    token: str,
    block_id: str,
    body: MoveBlockRequest,
    registry: Annotated[EditorSessionRegistry, Depends(get_editor_sessions)],
    user: Annotated[User, Depends(require_auth)],
) -> EditorSessionResponse:
    editor = _get_editor(registry, token, user)
    editor.move_block(block_id, body.direction)
    return _snapshot(token, editor)


@router.post("/{token}/reorder", response_model=EditorSessionResponse)
async def reorder_blocks(
    token: str,
    body: ReorderRequest,
    registry: Annotated[EditorSessionRegistry, Depends(get_editor_sessions)],
    user: Annotated[User, Depends(require_auth)],
) -> EditorSessionResponse:
    """Drop ``dragged_id`` onto ``target_id``."""
    editor = _get_editor(registry, token, user)
    editor.reorder(body.dragged_id, body.target_id)
    return _snapshot(token, editor)


@router.post("/{token}/blocks/{block_id}/image", response_model=EditorSessionResponse)
async def select_image(
    token: str,
    block_id: str,
    body: SelectImageRequest,
    registry: Annotated[EditorSessionRegistry, Depends(get_editor_sessions)],
    session: Annotated[AsyncSession, Depends(get_session)],
    user: Annotated[User, Depends(require_auth)],
) -> EditorSessionResponse:
    """Set a block's content to the URL of a gallery image."""
    editor = _get_editor(registry, token, user)
    if await get_media(session, body.media_id) is None:
        raise HTTPException(status_code=404, detail="Media item not found")
    await editor.select_image(block_id, MediaLibraryPicker(session), body.media_id)
    return _snapshot(token, editor)


@router.post("/{token}/save", response_model=SaveResponse)
async def save_page(
    token: str,
    registry: Annotated[EditorSessionRegistry, Depends(get_editor_sessions)],
    user: Annotated[User, Depends(require_auth)],
) -> SaveResponse:
    """Overwrite the stored page with the working copy.

    Returns 409 while another save of this session is running and 502 when
    the store write fails; the working copy is kept in both cases.
    """
    editor = _get_editor(registry, token, user)
    result = await editor.save()
    return SaveResponse(
        page_id=result.page_id,
        revision=result.revision,
        block_count=result.block_count,
        overwrote_newer_revision=result.overwrote_newer_revision,
        session=_snapshot(token, editor),
    )
