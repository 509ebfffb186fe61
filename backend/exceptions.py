"""Application-level exception types.

Convention:
- ``InternalServerError``: for errors whose details must never reach clients.
  The global handler logs the full message at ERROR and returns a generic
  "Internal server error" (500) to the client.
- ``ValueError``: for *business logic* validation errors that are safe to
  forward to clients.  The global ``ValueError`` handler returns ``str(exc)``
  as the 422 detail.
- ``LoadFailure`` / ``SaveFailure``: the document store could not be read or
  written.  Mapped to 502; the editor's working copy is never discarded.
- ``GuardRejection``: an editor operation would break a structural invariant
  of the page (e.g. deleting its last block).  Mapped to 409 with the operator
  warning as detail; no state change has happened.
"""

from __future__ import annotations


class InternalServerError(Exception):
    """Raised for internal errors whose details must not be exposed to clients.

    The global exception handler in ``backend/main.py`` catches this, logs
    the full message server-side, and returns HTTP 500 with a generic
    ``"Internal server error"`` detail.
    """


class LoadFailure(Exception):
    """The stored page document could not be fetched or is malformed."""

    def __init__(self, page_id: str, reason: str) -> None:
        super().__init__(f"Failed to load page {page_id!r}: {reason}")
        self.page_id = page_id
        self.reason = reason


class SaveFailure(Exception):
    """Writing the page document to the store failed."""

    def __init__(self, page_id: str, reason: str) -> None:
        super().__init__(f"Failed to save page {page_id!r}: {reason}")
        self.page_id = page_id
        self.reason = reason


class GuardRejection(Exception):
    """An editor operation was refused because it would violate an invariant."""

    def __init__(self, warning: str) -> None:
        super().__init__(warning)
        self.warning = warning


class SaveInProgress(GuardRejection):
    """A save was requested while another save of the same page is in flight."""

    def __init__(self, page_id: str) -> None:
        super().__init__(f"A save of page {page_id!r} is already in progress")
        self.page_id = page_id


class MediaUploadError(RuntimeError):
    """Raised when the media host rejects or fails an upload."""
