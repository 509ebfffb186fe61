"""Blog post schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class PostSummary(BaseModel):
    """Post list entry; ``slug`` is the page id of the post body."""

    id: int
    title: str
    slug: str
    created_at: str


class PostCreate(BaseModel):
    """Request to create a new post."""

    title: str = Field(min_length=1, max_length=500, description="Post title")

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v: str) -> str:
        return v.strip() if isinstance(v, str) else v


class PostListResponse(BaseModel):
    """Paginated post list response."""

    posts: list[PostSummary]
    total: int = Field(ge=0)
    page: int = Field(ge=1)
    per_page: int = Field(ge=1)
    total_pages: int = Field(ge=0)
