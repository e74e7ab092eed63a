"""Summarization endpoints: raw summarize, per-bookmark, and background batch runs."""

import asyncio
import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..core.batch_pipeline import BatchRunResult, CancellationToken
from ..core.bookmark_manager import BookmarkNotFoundError
from ..core.summarizer import SummarizerError
from ..models.bookmark import Bookmark, SummaryResult

logger = logging.getLogger(__name__)

router = APIRouter()

# Background batch job state
batch_task: Optional[asyncio.Task] = None
batch_token: Optional[CancellationToken] = None
last_result: Optional[BatchRunResult] = None


class SummarizeRequest(BaseModel):
    url: Optional[str] = None


def _job_running() -> bool:
    return batch_task is not None and not batch_task.done()


async def _run_batch(token: CancellationToken) -> None:
    global last_result
    from . import batch_summarizer

    try:
        last_result = await batch_summarizer.summarize_all(cancel_token=token)
    except Exception as e:
        logger.error(f"Batch summarization run failed: {e}")


async def cancel_batch_job(wait: bool = False) -> None:
    """Request cancellation of the running batch job, optionally awaiting it."""
    if batch_token is not None:
        batch_token.cancel()
    if wait and _job_running():
        await batch_task


@router.post("/summarize", response_model=SummaryResult)
async def summarize_url(request: SummarizeRequest):
    """Summarize a URL without storing anything."""
    if not request.url:
        return JSONResponse(status_code=400, content={"error": "URL required"})

    from . import summarizer

    try:
        return await summarizer.summarize(request.url)
    except SummarizerError as e:
        logger.error(f"Summarize error for {request.url}: {e.failure_type}: {e.message}")
        return JSONResponse(status_code=500, content={"error": "Failed to summarize"})


@router.post("/bookmarks/{bookmark_id}/summarize", response_model=Bookmark)
async def summarize_bookmark(bookmark_id: str):
    """Summarize one bookmark now (manual retry included)."""
    from . import batch_summarizer, bookmark_manager

    try:
        bookmark = bookmark_manager.get_bookmark(bookmark_id)
    except BookmarkNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    if not bookmark.status.needs_summary:
        raise HTTPException(
            status_code=409,
            detail=f"Bookmark {bookmark_id} is {bookmark.status.value} and cannot be summarized",
        )

    try:
        updated = await batch_summarizer.summarize_one(bookmark_id)
    except Exception as e:
        logger.error(f"Failed to summarize bookmark {bookmark_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Internal error: {e}")

    if updated is None:
        raise HTTPException(status_code=404, detail=f"Bookmark not found: {bookmark_id}")
    return updated


@router.post("/summarize/batch", status_code=202)
async def start_batch():
    """Start summarizing every imported or failed bookmark in the background."""
    global batch_task, batch_token
    from . import batch_summarizer, bookmark_manager

    if _job_running() or batch_summarizer.is_processing:
        raise HTTPException(status_code=409, detail="A batch run is already in progress")

    queued = len(bookmark_manager.needs_summary())
    batch_token = CancellationToken()
    batch_task = asyncio.create_task(_run_batch(batch_token))

    return {"status": "started", "queued": queued}


@router.get("/summarize/batch")
async def batch_status():
    """Progress of the current or most recent batch run."""
    from . import batch_summarizer

    progress = batch_summarizer.progress
    return {
        "processing": _job_running() or batch_summarizer.is_processing,
        "completed": progress.completed,
        "total": progress.total,
        "last_result": asdict(last_result) if last_result else None,
    }


@router.post("/summarize/batch/cancel")
async def cancel_batch():
    """Stop launching new batches; the batch in flight still completes."""
    running = _job_running()
    await cancel_batch_job(wait=False)
    return {"status": "cancelling" if running else "idle"}
