"""Tests for the page editor working copy."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from backend.blocks.editor import (
    DEFAULT_PAGE_TITLE,
    LAST_BLOCK_WARNING,
    Direction,
    EditorState,
    PageEditor,
)
from backend.blocks.model import Block, BlockType
from backend.exceptions import GuardRejection, LoadFailure, SaveFailure, SaveInProgress

if TYPE_CHECKING:
    from tests.test_blocks.conftest import MemoryDocumentStore, StaticPicker


def _ids(editor: PageEditor) -> list[str]:
    return [b.id for b in editor.blocks]


def _three_block_editor(store: MemoryDocumentStore) -> PageEditor:
    return PageEditor.from_blocks(
        "home",
        store,
        [
            Block("a", BlockType.HEADING_1, "Title"),
            Block("b", BlockType.PARAGRAPH, "Body"),
            Block("c", BlockType.IMAGE, ""),
        ],
    )


class TestLoad:
    async def test_new_editor_is_loading(self, memory_store: MemoryDocumentStore) -> None:
        editor = PageEditor("home", memory_store)
        assert editor.state is EditorState.LOADING
        assert editor.blocks == ()

    async def test_absent_page_gets_placeholder_heading(
        self, memory_store: MemoryDocumentStore
    ) -> None:
        editor = PageEditor("never-saved", memory_store)
        await editor.load()
        assert editor.state is EditorState.READY
        assert len(editor.blocks) == 1
        assert editor.blocks[0].type is BlockType.HEADING_1
        assert editor.blocks[0].content == DEFAULT_PAGE_TITLE
        assert editor.revision is None
        assert not editor.dirty

    async def test_custom_placeholder_title(self, memory_store: MemoryDocumentStore) -> None:
        editor = PageEditor("p", memory_store, placeholder_title="Nouvelle page")
        await editor.load()
        assert editor.blocks[0].content == "Nouvelle page"

    async def test_loads_stored_blocks_in_order(self, memory_store: MemoryDocumentStore) -> None:
        memory_store.seed(
            "home",
            [
                {"id": "1", "type": "heading-1", "content": "Titre"},
                {"id": "2", "type": "paragraph", "content": "Bonjour"},
            ],
            revision=4,
        )
        editor = PageEditor("home", memory_store)
        await editor.load()
        assert editor.blocks == (
            Block("1", BlockType.HEADING_1, "Titre"),
            Block("2", BlockType.PARAGRAPH, "Bonjour"),
        )
        assert editor.revision == 4

    async def test_empty_stored_document_gets_placeholder(
        self, memory_store: MemoryDocumentStore
    ) -> None:
        memory_store.seed("home", [])
        editor = PageEditor("home", memory_store)
        await editor.load()
        assert len(editor.blocks) == 1
        assert editor.blocks[0].type is BlockType.HEADING_1

    async def test_malformed_document_raises_load_failure(
        self, memory_store: MemoryDocumentStore
    ) -> None:
        memory_store.seed("home", [{"id": "1", "type": "video", "content": ""}])
        editor = PageEditor("home", memory_store)
        with pytest.raises(LoadFailure):
            await editor.load()

    async def test_store_outage_raises_load_failure(
        self, memory_store: MemoryDocumentStore
    ) -> None:
        memory_store.fail_reads = True
        editor = PageEditor("home", memory_store)
        with pytest.raises(LoadFailure):
            await editor.load()
        assert editor.state is EditorState.LOADING

    async def test_from_blocks_rejects_empty(self, memory_store: MemoryDocumentStore) -> None:
        with pytest.raises(ValueError):
            PageEditor.from_blocks("home", memory_store, [])

    async def test_from_blocks_rejects_duplicate_ids(
        self, memory_store: MemoryDocumentStore
    ) -> None:
        blocks = [Block("a", BlockType.HEADING_1, "T"), Block("a", BlockType.PARAGRAPH, "p")]
        with pytest.raises(ValueError, match="Duplicate block id"):
            PageEditor.from_blocks("home", memory_store, blocks)


class TestScenario:
    async def test_full_editing_scenario(self, memory_store: MemoryDocumentStore) -> None:
        editor = PageEditor.from_blocks(
            "home", memory_store, [Block("h1", BlockType.HEADING_1, "Titre")]
        )

        paragraph = editor.add_block(BlockType.PARAGRAPH)
        assert [(b.type, b.content) for b in editor.blocks] == [
            (BlockType.HEADING_1, "Titre"),
            (BlockType.PARAGRAPH, ""),
        ]

        editor.edit_block(paragraph.id, "Bonjour")
        assert editor.blocks[1].content == "Bonjour"

        editor.move_block(paragraph.id, Direction.UP)
        assert _ids(editor) == [paragraph.id, "h1"]

        editor.delete_block("h1")
        assert editor.blocks == (Block(paragraph.id, BlockType.PARAGRAPH, "Bonjour"),)

        with pytest.raises(GuardRejection) as exc_info:
            editor.delete_block(paragraph.id)
        assert exc_info.value.warning == LAST_BLOCK_WARNING
        assert editor.blocks == (Block(paragraph.id, BlockType.PARAGRAPH, "Bonjour"),)


class TestMutations:
    async def test_add_block_appends_and_marks_dirty(
        self, memory_store: MemoryDocumentStore
    ) -> None:
        editor = _three_block_editor(memory_store)
        block = editor.add_block(BlockType.HEADING_2)
        assert editor.blocks[-1] == block
        assert len(editor.blocks) == 4
        assert editor.dirty

    async def test_edit_unknown_id_is_noop(self, memory_store: MemoryDocumentStore) -> None:
        editor = _three_block_editor(memory_store)
        before = editor.blocks
        editor.edit_block("missing", "text")
        assert editor.blocks == before
        assert not editor.dirty

    async def test_edit_keeps_type_and_position(self, memory_store: MemoryDocumentStore) -> None:
        editor = _three_block_editor(memory_store)
        editor.edit_block("b", "New body")
        assert editor.blocks[1] == Block("b", BlockType.PARAGRAPH, "New body")

    async def test_delete_unknown_id_is_noop(self, memory_store: MemoryDocumentStore) -> None:
        editor = _three_block_editor(memory_store)
        editor.delete_block("missing")
        assert _ids(editor) == ["a", "b", "c"]
        assert not editor.dirty

    async def test_delete_last_block_unknown_id_still_rejected(
        self, memory_store: MemoryDocumentStore
    ) -> None:
        editor = PageEditor.from_blocks("p", memory_store, [Block("a", BlockType.PARAGRAPH)])
        with pytest.raises(GuardRejection):
            editor.delete_block("missing")

    async def test_delete_middle_block(self, memory_store: MemoryDocumentStore) -> None:
        editor = _three_block_editor(memory_store)
        editor.delete_block("b")
        assert _ids(editor) == ["a", "c"]

    async def test_move_down(self, memory_store: MemoryDocumentStore) -> None:
        editor = _three_block_editor(memory_store)
        editor.move_block("a", Direction.DOWN)
        assert _ids(editor) == ["b", "a", "c"]

    async def test_move_first_up_is_noop(self, memory_store: MemoryDocumentStore) -> None:
        editor = _three_block_editor(memory_store)
        editor.move_block("a", Direction.UP)
        assert _ids(editor) == ["a", "b", "c"]
        assert not editor.dirty

    async def test_move_last_down_is_noop(self, memory_store: MemoryDocumentStore) -> None:
        editor = _three_block_editor(memory_store)
        editor.move_block("c", Direction.DOWN)
        assert _ids(editor) == ["a", "b", "c"]

    async def test_move_unknown_is_noop(self, memory_store: MemoryDocumentStore) -> None:
        editor = _three_block_editor(memory_store)
        editor.move_block("zzz", Direction.UP)
        assert _ids(editor) == ["a", "b", "c"]

    async def test_reorder_forward_takes_target_slot(
        self, memory_store: MemoryDocumentStore
    ) -> None:
        editor = _three_block_editor(memory_store)
        editor.reorder("a", "c")
        assert _ids(editor) == ["b", "c", "a"]

    async def test_reorder_backward_takes_target_slot(
        self, memory_store: MemoryDocumentStore
    ) -> None:
        editor = _three_block_editor(memory_store)
        editor.reorder("c", "a")
        assert _ids(editor) == ["c", "a", "b"]

    async def test_reorder_onto_itself_is_noop(self, memory_store: MemoryDocumentStore) -> None:
        editor = _three_block_editor(memory_store)
        editor.reorder("b", "b")
        assert _ids(editor) == ["a", "b", "c"]
        assert not editor.dirty

    async def test_reorder_unknown_is_noop(self, memory_store: MemoryDocumentStore) -> None:
        editor = _three_block_editor(memory_store)
        editor.reorder("a", "missing")
        editor.reorder("missing", "a")
        assert _ids(editor) == ["a", "b", "c"]

    async def test_blocks_property_is_a_snapshot(self, memory_store: MemoryDocumentStore) -> None:
        editor = _three_block_editor(memory_store)
        snapshot = editor.blocks
        editor.delete_block("a")
        assert len(snapshot) == 3


class TestSelectImage:
    async def test_sets_image_url(
        self, memory_store: MemoryDocumentStore, picker: StaticPicker
    ) -> None:
        editor = _three_block_editor(memory_store)
        await editor.select_image("c", picker, 1)
        assert editor.blocks[2].content == "https://img.example.com/cat.jpg"
        assert editor.dirty

    async def test_unknown_media_leaves_block(
        self, memory_store: MemoryDocumentStore, picker: StaticPicker
    ) -> None:
        editor = _three_block_editor(memory_store)
        with pytest.raises(ValueError):
            await editor.select_image("c", picker, 99)
        assert editor.blocks[2].content == ""

    async def test_unknown_block_is_noop(
        self, memory_store: MemoryDocumentStore, picker: StaticPicker
    ) -> None:
        editor = _three_block_editor(memory_store)
        await editor.select_image("missing", picker, 1)
        assert [b.content for b in editor.blocks] == ["Title", "Body", ""]


class TestSave:
    async def test_save_then_load_round_trip(self, memory_store: MemoryDocumentStore) -> None:
        editor = _three_block_editor(memory_store)
        editor.edit_block("c", "https://img.example.com/dog.png")
        result = await editor.save()
        assert result.revision == 1
        assert result.block_count == 3
        assert not result.overwrote_newer_revision
        assert not editor.dirty
        assert editor.state is EditorState.READY

        reloaded = PageEditor("home", memory_store)
        await reloaded.load()
        assert reloaded.blocks == editor.blocks
        assert reloaded.revision == 1

    async def test_revision_increments(self, memory_store: MemoryDocumentStore) -> None:
        editor = _three_block_editor(memory_store)
        await editor.save()
        editor.edit_block("b", "Second")
        result = await editor.save()
        assert result.revision == 2
        assert editor.revision == 2

    async def test_save_failure_keeps_working_copy(
        self, memory_store: MemoryDocumentStore
    ) -> None:
        editor = _three_block_editor(memory_store)
        editor.edit_block("b", "Unsaved")
        memory_store.fail_writes = True

        with pytest.raises(SaveFailure):
            await editor.save()

        assert editor.state is EditorState.READY
        assert editor.blocks[1].content == "Unsaved"
        assert editor.dirty

        memory_store.fail_writes = False
        await editor.save()
        assert memory_store.documents["home"].blocks[1]["content"] == "Unsaved"

    async def test_concurrent_save_rejected(self, memory_store: MemoryDocumentStore) -> None:
        editor = _three_block_editor(memory_store)
        memory_store.write_gate = asyncio.Event()

        first = asyncio.create_task(editor.save())
        while memory_store.put_calls == 0:
            await asyncio.sleep(0)
        assert editor.state is EditorState.SAVING

        with pytest.raises(SaveInProgress):
            await editor.save()

        memory_store.write_gate.set()
        result = await first
        assert result.revision == 1
        assert memory_store.put_calls == 1
        assert editor.state is EditorState.READY

    async def test_edit_during_save_stays_dirty(self, memory_store: MemoryDocumentStore) -> None:
        editor = _three_block_editor(memory_store)
        memory_store.write_gate = asyncio.Event()

        task = asyncio.create_task(editor.save())
        while memory_store.put_calls == 0:
            await asyncio.sleep(0)
        editor.edit_block("b", "Typed while saving")
        memory_store.write_gate.set()
        await task

        assert editor.dirty
        assert memory_store.documents["home"].blocks[1]["content"] == "Body"

    async def test_reports_overwrite_of_newer_revision(
        self, memory_store: MemoryDocumentStore
    ) -> None:
        memory_store.seed("home", [{"id": "a", "type": "heading-1", "content": "v1"}])
        first = PageEditor("home", memory_store)
        second = PageEditor("home", memory_store)
        await first.load()
        await second.load()

        first.edit_block("a", "from first")
        await first.save()
        second.edit_block("a", "from second")
        result = await second.save()

        assert result.overwrote_newer_revision
        assert result.revision == 3
        assert memory_store.documents["home"].blocks[0]["content"] == "from second"

    async def test_unreadable_current_revision_does_not_block_save(
        self, memory_store: MemoryDocumentStore
    ) -> None:
        editor = _three_block_editor(memory_store)
        memory_store.fail_reads = True
        result = await editor.save()
        assert result.revision == 1
        assert not result.overwrote_newer_revision
