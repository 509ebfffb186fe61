"""Stored page documents."""

from __future__ import annotations

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from backend.models.base import Base


class PageDocumentRecord(Base):
    """One page document: its ordered blocks serialized as a JSON array.

    The array order is the rendering order; there is no per-block sort column.
    """

    __tablename__ = "page_documents"

    page_id: Mapped[str] = mapped_column(String, primary_key=True)
    blocks_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    updated_at: Mapped[str] = mapped_column(Text, nullable=False)
