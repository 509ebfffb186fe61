"""Fixtures for block editor and renderer tests."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import pytest

from backend.blocks.model import blocks_to_dicts
from backend.blocks.store import StoredDocument
from backend.exceptions import LoadFailure, SaveFailure

if TYPE_CHECKING:
    from collections.abc import Sequence

    from backend.blocks.model import Block


class MemoryDocumentStore:
    """Dict-backed document store with switches for simulating outages."""

    def __init__(self) -> None:
        self.documents: dict[str, StoredDocument] = {}
        self.fail_reads = False
        self.fail_writes = False
        self.write_gate: asyncio.Event | None = None
        self.put_calls = 0

    def seed(self, page_id: str, blocks: list[Any], revision: int = 1) -> None:
        self.documents[page_id] = StoredDocument(page_id=page_id, blocks=blocks, revision=revision)

    async def get_document(self, page_id: str) -> StoredDocument | None:
        if self.fail_reads:
            raise LoadFailure(page_id, "store offline")
        return self.documents.get(page_id)

    async def put_document(self, page_id: str, blocks: Sequence[Block]) -> int:
        self.put_calls += 1
        if self.write_gate is not None:
            await self.write_gate.wait()
        if self.fail_writes:
            raise SaveFailure(page_id, "store offline")
        previous = self.documents.get(page_id)
        revision = previous.revision + 1 if previous is not None else 1
        self.documents[page_id] = StoredDocument(
            page_id=page_id, blocks=blocks_to_dicts(blocks), revision=revision
        )
        return revision

    async def delete_document(self, page_id: str) -> bool:
        return self.documents.pop(page_id, None) is not None

    async def list_page_ids(self) -> list[str]:
        return sorted(self.documents)


class StaticPicker:
    """Media picker returning URLs from a fixed table."""

    def __init__(self, urls: dict[int, str]) -> None:
        self.urls = urls

    async def select_image(self, media_id: int) -> str:
        try:
            return self.urls[media_id]
        except KeyError:
            raise ValueError(f"Media item {media_id} not found") from None


@pytest.fixture
def memory_store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture
def picker() -> StaticPicker:
    return StaticPicker({1: "https://img.example.com/cat.jpg"})
