"""Page service: rendered views and raw documents of stored pages."""

from __future__ import annotations

from typing import TYPE_CHECKING

from backend.blocks.renderer import PageRenderer
from backend.schemas.page import PageDocumentResponse, RenderedPageResponse

if TYPE_CHECKING:
    from backend.blocks.store import DocumentStore


async def render_page(store: DocumentStore, page_id: str) -> RenderedPageResponse:
    """Render a page; absent pages come back in the empty state."""
    view = await PageRenderer(page_id, store).load()
    return RenderedPageResponse(
        page_id=view.page_id,
        state=view.state,
        html=view.html,
        block_count=view.block_count,
    )


async def get_page_document(store: DocumentStore, page_id: str) -> PageDocumentResponse | None:
    """Return the stored document as-is, or None when the page was never saved."""
    stored = await store.get_document(page_id)
    if stored is None:
        return None
    return PageDocumentResponse(
        page_id=stored.page_id,
        blocks=stored.blocks,
        revision=stored.revision,
        updated_at=stored.updated_at,
    )
