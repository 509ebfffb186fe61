"""Time-limited in-memory registry of open page editing sessions."""

from __future__ import annotations

import logging
import secrets
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from backend.blocks.editor import PageEditor

logger = logging.getLogger(__name__)


class EditorSessionRegistry:
    """Hold each operator's working copy under an opaque session token.

    Sessions expire after ``ttl_seconds`` without use.  Unsaved edits of an
    expired or evicted session are discarded.  State is lost on restart.
    """

    def __init__(self, ttl_seconds: int = 4 * 60 * 60, max_entries: int = 200) -> None:
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._entries: dict[str, tuple[PageEditor, int, float]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def open(self, editor: PageEditor, owner_id: int) -> str:
        """Register a loaded editor and return its session token."""
        self.cleanup()
        if len(self._entries) >= self._max_entries:
            oldest = min(self._entries, key=lambda k: self._entries[k][2])
            evicted = self._entries.pop(oldest)[0]
            logger.warning(
                "Evicted editor session for page %s (dirty=%s)", evicted.page_id, evicted.dirty
            )
        token = secrets.token_urlsafe(24)
        self._entries[token] = (editor, owner_id, time.time())
        return token

    def get(self, token: str, owner_id: int) -> PageEditor | None:
        """Return the session's editor and refresh its expiry.

        Tokens belonging to another operator are treated as unknown.
        """
        entry = self._entries.get(token)
        if entry is None:
            return None
        editor, owner, last_used = entry
        if owner != owner_id:
            return None
        if time.time() - last_used > self._ttl:
            del self._entries[token]
            return None
        self._entries[token] = (editor, owner, time.time())
        return editor

    def close(self, token: str, owner_id: int) -> bool:
        """Discard a session and its working copy."""
        entry = self._entries.get(token)
        if entry is None or entry[1] != owner_id:
            return False
        del self._entries[token]
        return True

    def cleanup(self) -> None:
        """Remove expired sessions."""
        now = time.time()
        expired = [k for k, (_, _, t) in self._entries.items() if now - t > self._ttl]
        for k in expired:
            del self._entries[k]
