"""Blog post service: listing, creation and deletion of posts."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from sqlalchemy import func, select

from backend.models.post import BlogPost
from backend.schemas.post import PostListResponse, PostSummary
from backend.services.datetime_service import format_iso, now_utc
from backend.services.slug_service import generate_post_slug

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from backend.blocks.store import DocumentStore

logger = logging.getLogger(__name__)


def _to_summary(post: BlogPost) -> PostSummary:
    return PostSummary(
        id=post.id,
        title=post.title,
        slug=post.slug,
        created_at=format_iso(post.created_at),
    )


async def list_posts(
    session: AsyncSession,
    *,
    page: int = 1,
    per_page: int = 20,
) -> PostListResponse:
    """List posts, newest first."""
    total = (await session.execute(select(func.count()).select_from(BlogPost))).scalar() or 0

    stmt = (
        select(BlogPost)
        .order_by(BlogPost.created_at.desc(), BlogPost.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    posts = (await session.execute(stmt)).scalars().all()
    return PostListResponse(
        posts=[_to_summary(p) for p in posts],
        total=total,
        page=page,
        per_page=per_page,
        total_pages=math.ceil(total / per_page) if total else 0,
    )


async def create_post(session: AsyncSession, title: str) -> PostSummary:
    """Create a post entry. Its page document is created on the first editor save."""
    title = title.strip()
    if not title:
        raise ValueError("Post title must not be empty")

    slug = generate_post_slug(title)
    while (
        await session.execute(select(BlogPost.id).where(BlogPost.slug == slug))
    ).scalar_one_or_none() is not None:
        slug = generate_post_slug(title)

    post = BlogPost(title=title, slug=slug, created_at=now_utc())
    session.add(post)
    await session.commit()
    await session.refresh(post)
    logger.info("Created post %d (%s)", post.id, post.slug)
    return _to_summary(post)


async def get_post(session: AsyncSession, post_id: int) -> PostSummary | None:
    post = await session.get(BlogPost, post_id)
    return _to_summary(post) if post is not None else None


async def delete_post(session: AsyncSession, store: DocumentStore, post_id: int) -> bool:
    """Delete a post and its page document.

    A post whose page was never saved has no document; that is not an error.
    """
    post = await session.get(BlogPost, post_id)
    if post is None:
        return False
    slug = post.slug
    await session.delete(post)
    await session.commit()

    removed = await store.delete_document(slug)
    logger.info("Deleted post %d (%s, page document removed=%s)", post_id, slug, removed)
    return True
