"""SQLAlchemy ORM models for Blockpanel."""

from backend.models.base import Base
from backend.models.media import MediaItem
from backend.models.page import PageDocumentRecord
from backend.models.post import BlogPost
from backend.models.user import RefreshToken, User

__all__ = [
    "Base",
    "BlogPost",
    "MediaItem",
    "PageDocumentRecord",
    "RefreshToken",
    "User",
]
