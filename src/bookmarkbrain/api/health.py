"""Health check endpoint."""

from fastapi import APIRouter

from .. import __version__

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    # Read live globals from api module at request time.
    from bookmarkbrain import api

    try:
        stats = api.bookmark_manager.get_stats()
        storage_accessible = True
    except Exception:
        stats = {"total": 0, "by_status": {}, "categories": {}}
        storage_accessible = False

    processing = bool(api.batch_summarizer and api.batch_summarizer.is_processing)

    return {
        "status": "healthy" if storage_accessible else "degraded",
        "version": __version__,
        "storage_accessible": storage_accessible,
        "bookmark_count": stats["total"],
        "by_status": stats["by_status"],
        "processing": processing,
    }
