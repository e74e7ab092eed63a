"""Bookmark listing, import, and deletion endpoints."""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from ..core.bookmark_manager import BookmarkNotFoundError, ImportResult
from ..core.import_parsers import parse_bookmarks_html, parse_url_list
from ..core.kv_store import StorageError
from ..models.bookmark import Bookmark, BookmarkStatus, Category

logger = logging.getLogger(__name__)

router = APIRouter()


# Request/Response Models
class ImportUrlsRequest(BaseModel):
    """Newline-separated URLs."""

    text: str


class ImportHtmlRequest(BaseModel):
    """Contents of an exported bookmarks HTML file."""

    html: str


class ImportResponse(BaseModel):
    added: int
    skipped: int
    invalid: int = 0
    bookmarks: List[Bookmark]


def _import_response(result: ImportResult) -> ImportResponse:
    return ImportResponse(
        added=len(result.added),
        skipped=result.skipped,
        invalid=result.invalid,
        bookmarks=result.added,
    )


# Endpoints
@router.get("/bookmarks", response_model=dict)
async def list_bookmarks(
    status: Optional[BookmarkStatus] = Query(None, description="Filter by status"),
    category: Optional[Category] = Query(None, description="Filter by category"),
):
    """List bookmarks, newest first."""
    try:
        from . import bookmark_manager

        bookmarks = bookmark_manager.list_bookmarks(status=status, category=category)

        return {
            "bookmarks": bookmarks,
            "total": len(bookmarks),
        }

    except Exception as e:
        logger.error(f"Failed to list bookmarks: {e}")
        raise HTTPException(status_code=500, detail=f"Internal error: {e}")


@router.get("/bookmarks/{bookmark_id}", response_model=Bookmark)
async def get_bookmark(bookmark_id: str):
    """Get a specific bookmark by ID."""
    try:
        from . import bookmark_manager

        return bookmark_manager.get_bookmark(bookmark_id)

    except BookmarkNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to get bookmark {bookmark_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Internal error: {e}")


@router.post("/bookmarks/import/urls", response_model=ImportResponse, status_code=201)
async def import_urls(request: ImportUrlsRequest):
    """Import a pasted list of URLs, one per line."""
    try:
        from . import bookmark_manager

        result = bookmark_manager.import_candidates(parse_url_list(request.text))
        return _import_response(result)

    except StorageError as e:
        raise HTTPException(status_code=500, detail=f"Storage error: {e}")
    except Exception as e:
        logger.error(f"Failed to import URLs: {e}")
        raise HTTPException(status_code=500, detail=f"Internal error: {e}")


@router.post("/bookmarks/import/html", response_model=ImportResponse, status_code=201)
async def import_html(request: ImportHtmlRequest):
    """Import a browser bookmark export."""
    try:
        from . import bookmark_manager

        result = bookmark_manager.import_candidates(parse_bookmarks_html(request.html))
        return _import_response(result)

    except StorageError as e:
        raise HTTPException(status_code=500, detail=f"Storage error: {e}")
    except Exception as e:
        logger.error(f"Failed to import bookmark HTML: {e}")
        raise HTTPException(status_code=500, detail=f"Internal error: {e}")


@router.delete("/bookmarks/{bookmark_id}", status_code=204)
async def delete_bookmark(bookmark_id: str):
    """Permanently delete a bookmark."""
    try:
        from . import bookmark_manager

        bookmark_manager.delete_bookmark(bookmark_id)

    except BookmarkNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to delete bookmark {bookmark_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Internal error: {e}")


@router.delete("/bookmarks", response_model=dict)
async def clear_bookmarks():
    """Delete every bookmark."""
    try:
        from . import bookmark_manager

        removed = bookmark_manager.clear_all()
        return {"removed": removed}

    except Exception as e:
        logger.error(f"Failed to clear bookmarks: {e}")
        raise HTTPException(status_code=500, detail=f"Internal error: {e}")
