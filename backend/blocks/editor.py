"""Page editor: the in-memory working copy of one page and its mutation operations.

All mutations are synchronous and apply immediately to the working copy.  Only
``load`` and ``save`` touch the document store.  A failed save leaves the
working copy as it was, so the operator can retry.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

from backend.blocks.model import (
    Block,
    BlockType,
    blocks_from_dicts,
    create_block,
    default_blocks,
    is_removable,
)
from backend.exceptions import GuardRejection, LoadFailure, SaveInProgress

if TYPE_CHECKING:
    from backend.blocks.store import DocumentStore

logger = logging.getLogger(__name__)

DEFAULT_PAGE_TITLE = "Untitled page"
LAST_BLOCK_WARNING = "A page must keep at least one block"


class EditorState(StrEnum):
    LOADING = "loading"
    READY = "ready"
    SAVING = "saving"


class Direction(StrEnum):
    UP = "up"
    DOWN = "down"


class MediaPicker(Protocol):
    """Supplies an image URL for an image block."""

    async def select_image(self, media_id: int) -> str:
        """Return the URL of the chosen image."""
        ...


@dataclass
class SaveResult:
    """Outcome of a successful save."""

    page_id: str
    revision: int
    block_count: int
    overwrote_newer_revision: bool = False


class PageEditor:
    """Working copy of one page's blocks."""

    def __init__(
        self,
        page_id: str,
        store: DocumentStore,
        *,
        placeholder_title: str = DEFAULT_PAGE_TITLE,
    ) -> None:
        self.page_id = page_id
        self._store = store
        self._placeholder_title = placeholder_title
        self._blocks: list[Block] = []
        self._state = EditorState.LOADING
        self._save_lock = asyncio.Lock()
        self._dirty = False
        # Store revision the working copy is based on; None when never stored.
        self._base_revision: int | None = None

    @classmethod
    def from_blocks(cls, page_id: str, store: DocumentStore, blocks: list[Block]) -> PageEditor:
        """Create a ready editor over an existing sequence without hitting the store."""
        if not blocks:
            raise ValueError("An editor needs at least one block")
        seen: set[str] = set()
        for block in blocks:
            if block.id in seen:
                raise ValueError(f"Duplicate block id: {block.id}")
            seen.add(block.id)
        editor = cls(page_id, store)
        editor._blocks = list(blocks)
        editor._state = EditorState.READY
        return editor

    @property
    def state(self) -> EditorState:
        return self._state

    @property
    def blocks(self) -> tuple[Block, ...]:
        return tuple(self._blocks)

    @property
    def dirty(self) -> bool:
        """Whether the working copy has changes that were not saved."""
        return self._dirty

    @property
    def revision(self) -> int | None:
        return self._base_revision

    async def load(self) -> None:
        """Fetch the stored document into the working copy.

        A page with no stored document starts as a single heading block.
        """
        self._state = EditorState.LOADING
        stored = await self._store.get_document(self.page_id)
        if stored is None:
            logger.info("Page %s has no stored document, starting from placeholder", self.page_id)
            self._blocks = default_blocks(self._placeholder_title)
            self._base_revision = None
        else:
            try:
                blocks = blocks_from_dicts(stored.blocks)
            except ValueError as exc:
                logger.error("Stored document for page %s is malformed: %s", self.page_id, exc)
                raise LoadFailure(self.page_id, str(exc)) from exc
            # An emptied document still has to satisfy the one-block minimum
            self._blocks = blocks or default_blocks(self._placeholder_title)
            self._base_revision = stored.revision
        self._dirty = False
        self._state = EditorState.READY

    def _index_of(self, block_id: str) -> int | None:
        for index, block in enumerate(self._blocks):
            if block.id == block_id:
                return index
        return None

    def add_block(self, block_type: BlockType) -> Block:
        """Append a new empty block and return it so the caller can bring it into view."""
        block = create_block(block_type)
        self._blocks.append(block)
        self._dirty = True
        return block

    def edit_block(self, block_id: str, content: str) -> None:
        index = self._index_of(block_id)
        if index is None:
            return
        self._blocks[index] = self._blocks[index].with_content(content)
        self._dirty = True

    def delete_block(self, block_id: str) -> None:
        """Remove a block.

        Raises ``GuardRejection`` when it is the last block of the page.
        """
        if not is_removable(self._blocks):
            logger.info("Refused to delete the last block of page %s", self.page_id)
            raise GuardRejection(LAST_BLOCK_WARNING)
        index = self._index_of(block_id)
        if index is None:
            return
        del self._blocks[index]
        self._dirty = True

    def move_block(self, block_id: str, direction: Direction) -> None:
        """Swap a block with its neighbour; no-op at the boundary."""
        index = self._index_of(block_id)
        if index is None:
            return
        neighbour = index - 1 if direction is Direction.UP else index + 1
        if neighbour < 0 or neighbour >= len(self._blocks):
            return
        blocks = self._blocks
        blocks[index], blocks[neighbour] = blocks[neighbour], blocks[index]
        self._dirty = True

    def reorder(self, dragged_id: str, target_id: str) -> None:
        """Move ``dragged_id`` into the slot ``target_id`` occupied at drop time.

        The dragged block is removed and reinserted at the target's index, so
        the blocks in between shift by one.
        """
        if dragged_id == target_id:
            return
        source = self._index_of(dragged_id)
        target = self._index_of(target_id)
        if source is None or target is None:
            return
        block = self._blocks.pop(source)
        self._blocks.insert(target, block)
        self._dirty = True

    async def select_image(self, block_id: str, picker: MediaPicker, media_id: int) -> None:
        """Fill an image block with a URL chosen through the media picker.

        The URL is applied exactly like typed content.
        """
        url = await picker.select_image(media_id)
        self.edit_block(block_id, url)

    async def save(self) -> SaveResult:
        """Overwrite the stored document with the working copy.

        Raises ``SaveInProgress`` if a save of this editor is already running
        and ``SaveFailure`` if the store write fails.
        """
        if self._save_lock.locked():
            raise SaveInProgress(self.page_id)
        async with self._save_lock:
            self._state = EditorState.SAVING
            snapshot = list(self._blocks)
            try:
                overwrote = await self._check_concurrent_write()
                revision = await self._store.put_document(self.page_id, snapshot)
            finally:
                self._state = EditorState.READY

        self._base_revision = revision
        # Edits made while the write was in flight are still unsaved
        self._dirty = self._blocks != snapshot
        logger.info("Saved page %s (revision %d, %d blocks)", self.page_id, revision, len(snapshot))
        return SaveResult(
            page_id=self.page_id,
            revision=revision,
            block_count=len(snapshot),
            overwrote_newer_revision=overwrote,
        )

    async def _check_concurrent_write(self) -> bool:
        """Detect a save by another session since this working copy was loaded.

        The save still goes ahead (last writer wins); this only reports it.
        """
        try:
            current = await self._store.get_document(self.page_id)
        except LoadFailure as exc:
            logger.warning("Could not read current revision of page %s: %s", self.page_id, exc)
            return False
        current_revision = current.revision if current is not None else None
        if current_revision is None or current_revision == self._base_revision:
            return False
        logger.warning(
            "Saving page %s over revision %d; this session started from revision %s",
            self.page_id,
            current_revision,
            self._base_revision,
        )
        return True
