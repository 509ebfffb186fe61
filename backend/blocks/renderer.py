"""Read-only projection of stored page documents to HTML."""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, assert_never
from urllib.parse import urlparse

from backend.blocks.model import Block, BlockType, block_from_dict

if TYPE_CHECKING:
    from collections.abc import Iterable

    from backend.blocks.store import DocumentStore

logger = logging.getLogger(__name__)

LOADING_HTML = '<p class="page-loading">Loading…</p>'
EMPTY_HTML = '<p class="page-empty">This page has no content yet.</p>'

_HEADING_TAGS: dict[BlockType, str] = {
    BlockType.HEADING_1: "h1",
    BlockType.HEADING_2: "h2",
    BlockType.HEADING_3: "h3",
}


class RenderState(StrEnum):
    LOADING = "loading"
    EMPTY = "empty"
    CONTENT = "content"


@dataclass(frozen=True)
class RenderedPage:
    page_id: str
    state: RenderState
    html: str
    block_count: int = 0


def _is_safe_image_url(url: str) -> bool:
    """Accept http(s) and relative image sources; reject other schemes."""
    value = url.strip()
    if not value:
        return False
    if value.startswith("//"):
        return False
    if value.startswith(("/", "./", "../")):
        return True
    parsed = urlparse(value)
    if not parsed.scheme:
        return True
    return parsed.scheme.lower() in {"http", "https"} and bool(parsed.netloc)


def render_block(block: Block) -> str:
    """Render one block; returns an empty string for blocks that show nothing."""
    match block.type:
        case BlockType.HEADING_1 | BlockType.HEADING_2 | BlockType.HEADING_3:
            tag = _HEADING_TAGS[block.type]
            return f'<{tag} class="block-{block.type}">{html.escape(block.content)}</{tag}>'
        case BlockType.PARAGRAPH:
            return f'<p class="block-paragraph">{html.escape(block.content)}</p>'
        case BlockType.IMAGE:
            if not block.content.strip():
                return ""
            if not _is_safe_image_url(block.content):
                logger.debug("Skipping image block %s with unsupported URL", block.id)
                return ""
            src = html.escape(block.content.strip(), quote=True)
            return f'<img class="block-image" src="{src}" alt="" />'
        case _:
            assert_never(block.type)


def _parse_renderable(raw_blocks: Iterable[Any]) -> list[Block]:
    blocks: list[Block] = []
    for raw in raw_blocks:
        try:
            blocks.append(block_from_dict(raw))
        except ValueError as exc:
            # Unknown or damaged entries are not shown
            logger.debug("Skipping unrenderable block: %s", exc)
    return blocks


def _join_rendered(blocks: Iterable[Block]) -> str:
    parts = (render_block(block) for block in blocks)
    return "\n".join(part for part in parts if part)


def render_blocks(raw_blocks: Iterable[Any]) -> str:
    """Render stored blocks in sequence order.

    Entries that are malformed or of an unknown type produce no output.
    """
    return _join_rendered(_parse_renderable(raw_blocks))


class PageRenderer:
    """Loads a page document and exposes its display state."""

    def __init__(self, page_id: str, store: DocumentStore) -> None:
        self.page_id = page_id
        self._store = store
        self._view = RenderedPage(page_id=page_id, state=RenderState.LOADING, html=LOADING_HTML)

    @property
    def view(self) -> RenderedPage:
        return self._view

    async def load(self) -> RenderedPage:
        """Fetch the document and render it.

        Raises ``LoadFailure`` when the store cannot be read.
        """
        stored = await self._store.get_document(self.page_id)
        raw_blocks = stored.blocks if stored is not None else []
        if not raw_blocks:
            self._view = RenderedPage(page_id=self.page_id, state=RenderState.EMPTY, html=EMPTY_HTML)
            return self._view

        blocks = _parse_renderable(raw_blocks)
        self._view = RenderedPage(
            page_id=self.page_id,
            state=RenderState.CONTENT,
            html=_join_rendered(blocks),
            block_count=len(blocks),
        )
        return self._view
