"""Block document model: typed content blocks and their sequence invariants."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence


class BlockType(StrEnum):
    """Closed set of block variants."""

    HEADING_1 = "heading-1"
    HEADING_2 = "heading-2"
    HEADING_3 = "heading-3"
    PARAGRAPH = "paragraph"
    IMAGE = "image"


HEADING_TYPES: frozenset[BlockType] = frozenset(
    {BlockType.HEADING_1, BlockType.HEADING_2, BlockType.HEADING_3}
)


@dataclass(frozen=True, slots=True)
class Block:
    """A single content unit.

    ``content`` holds text for heading and paragraph blocks and an image URL
    for image blocks.  Blocks are immutable values: editing content produces a
    new ``Block`` with the same ``id`` and ``type``.
    """

    id: str
    type: BlockType
    content: str = ""

    def with_content(self, content: str) -> Block:
        return Block(id=self.id, type=self.type, content=content)


def new_block_id() -> str:
    """Return a fresh opaque block identifier."""
    return uuid.uuid4().hex


def create_block(block_type: BlockType) -> Block:
    """Create an empty block of the given variant with a fresh id."""
    return Block(id=new_block_id(), type=block_type, content="")


def is_removable(blocks: Sequence[Block]) -> bool:
    """Whether a block may be deleted from ``blocks`` without emptying it."""
    return len(blocks) != 1


def default_blocks(title: str) -> list[Block]:
    """Initial sequence for a page that has never been saved."""
    return [Block(id=new_block_id(), type=BlockType.HEADING_1, content=title)]


def block_from_dict(raw: Any) -> Block:
    """Parse the stored ``{id, type, content}`` form of a block.

    Raises ``ValueError`` for anything that is not a well-formed block of a
    known type.
    """
    if not isinstance(raw, dict):
        raise ValueError(f"Block must be an object, got {type(raw).__name__}")
    block_id = raw.get("id")
    if isinstance(block_id, int) and not isinstance(block_id, bool):
        # Older documents used numeric ids
        block_id = str(block_id)
    if not isinstance(block_id, str) or not block_id:
        raise ValueError("Block id must be a non-empty string")
    try:
        block_type = BlockType(raw.get("type"))
    except ValueError as exc:
        raise ValueError(f"Unknown block type: {raw.get('type')!r}") from exc
    content = raw.get("content", "")
    if content is None:
        content = ""
    if not isinstance(content, str):
        raise ValueError(f"Block content must be a string (block {block_id})")
    return Block(id=block_id, type=block_type, content=content)


def blocks_from_dicts(raw_blocks: Iterable[Any]) -> list[Block]:
    """Parse a stored block array, rejecting duplicate ids."""
    blocks: list[Block] = []
    seen: set[str] = set()
    for raw in raw_blocks:
        block = block_from_dict(raw)
        if block.id in seen:
            raise ValueError(f"Duplicate block id: {block.id}")
        seen.add(block.id)
        blocks.append(block)
    return blocks


def block_to_dict(block: Block) -> dict[str, str]:
    return {"id": block.id, "type": block.type.value, "content": block.content}


def blocks_to_dicts(blocks: Iterable[Block]) -> list[dict[str, str]]:
    return [block_to_dict(b) for b in blocks]
