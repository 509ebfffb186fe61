"""Blog post API endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.deps import get_document_store, get_session, require_auth
from backend.blocks.store import DocumentStore
from backend.models.user import User
from backend.schemas.post import PostCreate, PostListResponse, PostSummary
from backend.services.post_service import create_post, delete_post, get_post, list_posts

router = APIRouter(prefix="/api/posts", tags=["posts"])


@router.get("", response_model=PostListResponse)
async def list_posts_endpoint(
    session: Annotated[AsyncSession, Depends(get_session)],
    _user: Annotated[User, Depends(require_auth)],
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
) -> PostListResponse:
    """List posts, newest first."""
    return await list_posts(session, page=page, per_page=per_page)


@router.post("", response_model=PostSummary, status_code=201)
async def create_post_endpoint(
    body: PostCreate,
    session: Annotated[AsyncSession, Depends(get_session)],
    _user: Annotated[User, Depends(require_auth)],
) -> PostSummary:
    """Create a post. Open an editor session on its ``slug`` to write the body."""
    return await create_post(session, body.title)


@router.get("/{post_id}", response_model=PostSummary)
async def get_post_endpoint(
    post_id: int,
    session: Annotated[AsyncSession, Depends(get_session)],
    _user: Annotated[User, Depends(require_auth)],
) -> PostSummary:
    post = await get_post(session, post_id)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


@router.delete("/{post_id}", status_code=204)
async def delete_post_endpoint(
    post_id: int,
    session: Annotated[AsyncSession, Depends(get_session)],
    store: Annotated[DocumentStore, Depends(get_document_store)],
    _user: Annotated[User, Depends(require_auth)],
) -> Response:
    """Delete a post together with its page document."""
    if not await delete_post(session, store, post_id):
        raise HTTPException(status_code=404, detail="Post not found")
    return Response(status_code=204)
