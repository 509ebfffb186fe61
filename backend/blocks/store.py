"""Page document store: the narrow persistence interface used by the editor and renderer."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from sqlalchemy import delete, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError

from backend.blocks.model import blocks_to_dicts
from backend.exceptions import LoadFailure, SaveFailure
from backend.models.page import PageDocumentRecord
from backend.services.datetime_service import format_iso, now_utc

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from backend.blocks.model import Block

logger = logging.getLogger(__name__)


@dataclass
class StoredDocument:
    """A page document as read from the store.

    ``blocks`` is the raw stored array; callers decide how strictly to parse it.
    """

    page_id: str
    blocks: list[Any] = field(default_factory=list)
    revision: int = 1
    updated_at: str | None = None


@runtime_checkable
class DocumentStore(Protocol):
    """Keyed document storage with full-overwrite writes."""

    async def get_document(self, page_id: str) -> StoredDocument | None:
        """Return the stored document, or None when nothing is stored under ``page_id``."""
        ...

    async def put_document(self, page_id: str, blocks: Sequence[Block]) -> int:
        """Overwrite the document with ``blocks``. Returns the new revision."""
        ...

    async def delete_document(self, page_id: str) -> bool:
        """Delete the document. Returns True if one existed."""
        ...

    async def list_page_ids(self) -> list[str]:
        """Return the ids of all stored documents."""
        ...


class SqlDocumentStore:
    """``DocumentStore`` backed by the ``page_documents`` table.

    Every write replaces the whole block array in a single upsert statement;
    there is no merge and no revision check, so the last writer wins.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_document(self, page_id: str) -> StoredDocument | None:
        try:
            async with self._session_factory() as session:
                record = await session.get(PageDocumentRecord, page_id)
        except SQLAlchemyError as exc:
            logger.error("Document fetch failed for page %s: %s", page_id, exc)
            raise LoadFailure(page_id, "document store unavailable") from exc
        if record is None:
            return None

        try:
            blocks = json.loads(record.blocks_json)
        except json.JSONDecodeError as exc:
            logger.error("Stored document for page %s is not valid JSON: %s", page_id, exc)
            raise LoadFailure(page_id, "stored document is corrupted") from exc
        if not isinstance(blocks, list):
            raise LoadFailure(page_id, "stored blocks are not an array")
        return StoredDocument(
            page_id=record.page_id,
            blocks=blocks,
            revision=record.revision,
            updated_at=record.updated_at,
        )

    async def put_document(self, page_id: str, blocks: Sequence[Block]) -> int:
        payload = json.dumps(blocks_to_dicts(blocks), ensure_ascii=False)
        now = format_iso(now_utc())
        stmt = sqlite_insert(PageDocumentRecord).values(
            page_id=page_id, blocks_json=payload, revision=1, updated_at=now
        )
        # Revision increments in SQL; overlapping writers never share one
        stmt = stmt.on_conflict_do_update(
            index_elements=[PageDocumentRecord.page_id],
            set_={
                "blocks_json": stmt.excluded.blocks_json,
                "revision": PageDocumentRecord.revision + 1,
                "updated_at": stmt.excluded.updated_at,
            },
        ).returning(PageDocumentRecord.revision)
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                revision = result.scalar_one()
                await session.commit()
        except SQLAlchemyError as exc:
            logger.error("Document write failed for page %s: %s", page_id, exc)
            raise SaveFailure(page_id, "document store unavailable") from exc
        logger.debug("Stored page %s at revision %d (%d blocks)", page_id, revision, len(blocks))
        return revision

    async def delete_document(self, page_id: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                delete(PageDocumentRecord).where(PageDocumentRecord.page_id == page_id)
            )
            await session.commit()
        return bool(result.rowcount)

    async def list_page_ids(self) -> list[str]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(PageDocumentRecord.page_id).order_by(PageDocumentRecord.page_id)
            )
            return [row[0] for row in result.all()]
