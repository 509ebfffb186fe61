"""Page API endpoints: rendered pages and stored documents."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from backend.api.deps import get_document_store, require_auth
from backend.blocks.store import DocumentStore
from backend.models.user import User
from backend.schemas.page import PageDocumentResponse, PageListResponse, RenderedPageResponse
from backend.services.page_service import get_page_document, render_page
from backend.services.slug_service import is_valid_page_id

router = APIRouter(prefix="/api/pages", tags=["pages"])


def _check_page_id(page_id: str) -> None:
    if not is_valid_page_id(page_id):
        raise HTTPException(status_code=400, detail="Invalid page ID")


@router.get("", response_model=PageListResponse)
async def list_pages(
    store: Annotated[DocumentStore, Depends(get_document_store)],
    _user: Annotated[User, Depends(require_auth)],
) -> PageListResponse:
    """List the ids of all stored pages."""
    return PageListResponse(page_ids=await store.list_page_ids())


@router.get("/{page_id}", response_model=RenderedPageResponse)
async def get_rendered_page(
    page_id: str,
    store: Annotated[DocumentStore, Depends(get_document_store)],
    _user: Annotated[User, Depends(require_auth)],
) -> RenderedPageResponse:
    """Render a page read-only. A page that was never saved is reported as empty."""
    _check_page_id(page_id)
    return await render_page(store, page_id)


@router.get("/{page_id}/document", response_model=PageDocumentResponse)
async def get_document(
    page_id: str,
    store: Annotated[DocumentStore, Depends(get_document_store)],
    _user: Annotated[User, Depends(require_auth)],
) -> PageDocumentResponse:
    _check_page_id(page_id)
    document = await get_page_document(store, page_id)
    if document is None:
        raise HTTPException(status_code=404, detail="Page not found")
    return document
