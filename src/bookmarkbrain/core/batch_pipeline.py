"""Rate-limited batch summarization of stored bookmarks.

Bookmarks move through ``imported -> pending -> done|error`` and may retry
``error -> pending -> done|error``. A batch run snapshots every record that
needs a summary, then works through them in fixed-size batches: each batch is
summarized concurrently, and a pacing delay separates batches so the external
endpoint's requests-per-minute ceiling is respected.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

from ..models.bookmark import Bookmark, BookmarkStatus
from .bookmark_store import BookmarkStore
from .summarizer import Summarizer, SummarizerError

logger = logging.getLogger(__name__)

FAILED_SUMMARY = "Failed to summarize"
DEFAULT_BATCH_SIZE = 5
DEFAULT_BATCH_DELAY = 4.5

ProgressCallback = Callable[["BatchProgress"], None]
Observer = Callable[[Bookmark], None]


class BatchAlreadyRunningError(Exception):
    """A batch run is already in progress on this pipeline."""

    pass


class CancellationToken:
    """Cooperative stop signal, checked before each batch starts."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass(frozen=True)
class BatchProgress:
    completed: int
    total: int


@dataclass
class BatchRunResult:
    """Outcome of one ``summarize_all`` call."""

    total: int = 0
    completed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    batches: int = 0
    cancelled: bool = False
    errors: List[str] = field(default_factory=list)


def partition(items: List[Bookmark], size: int) -> List[List[Bookmark]]:
    """Split items into consecutive chunks of at most ``size``."""
    return [items[i:i + size] for i in range(0, len(items), size)]


class BatchSummarizer:
    """Drives summarization for single bookmarks and paced batch runs."""

    def __init__(
        self,
        store: BookmarkStore,
        summarizer: Summarizer,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay: float = DEFAULT_BATCH_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize pipeline.

        Args:
            store: Bookmark store read and written for every status change
            summarizer: Client producing enrichment for a URL
            batch_size: Bookmarks summarized concurrently per batch
            batch_delay: Seconds to wait between batches
            sleep: Awaitable delay function (replaceable in tests)
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")

        self.store = store
        self.summarizer = summarizer
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self._sleep = sleep
        self._observers: List[Observer] = []
        self._processing = False
        self.progress = BatchProgress(completed=0, total=0)

    @property
    def is_processing(self) -> bool:
        return self._processing

    def subscribe(self, observer: Observer) -> None:
        """Call observer with each bookmark after its status change is persisted."""
        self._observers.append(observer)

    def unsubscribe(self, observer: Observer) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def _notify(self, bookmark: Optional[Bookmark]) -> None:
        if bookmark is None:
            return
        for observer in list(self._observers):
            try:
                observer(bookmark)
            except Exception as e:
                logger.error(f"Observer failed for bookmark {bookmark.id}: {e}")

    async def summarize_one(self, bookmark_id: str) -> Optional[Bookmark]:
        """Summarize a single bookmark and persist the outcome.

        Only ``imported`` and ``error`` bookmarks are summarized; a missing
        bookmark or any other status is a no-op.

        Returns:
            The bookmark after the attempt, or None if it was not attempted
        """
        bookmark = self.store.get(bookmark_id)
        if bookmark is None:
            logger.debug(f"Summarize skipped, bookmark not found: {bookmark_id}")
            return None

        if not bookmark.status.needs_summary:
            logger.debug(f"Summarize skipped, bookmark {bookmark_id} is {bookmark.status.value}")
            return None

        self._notify(self.store.update(bookmark_id, status=BookmarkStatus.PENDING))

        try:
            result = await self.summarizer.summarize(bookmark.url)
        except SummarizerError as e:
            logger.warning(f"Summarization failed for {bookmark.url} ({e.failure_type}): {e.message}")
            updated = self.store.update(
                bookmark_id, status=BookmarkStatus.ERROR, summary=FAILED_SUMMARY
            )
        except Exception as e:
            logger.error(f"Unexpected summarization error for {bookmark.url}: {e}")
            updated = self.store.update(
                bookmark_id, status=BookmarkStatus.ERROR, summary=FAILED_SUMMARY
            )
        else:
            updated = self.store.update(
                bookmark_id,
                title=result.title or bookmark.title,
                summary=result.summary,
                takeaways=result.takeaways,
                category=result.category,
                status=BookmarkStatus.DONE,
            )

        self._notify(updated)
        return updated

    async def summarize_all(
        self,
        cancel_token: Optional[CancellationToken] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> BatchRunResult:
        """Summarize every bookmark that needs it, in paced batches.

        The set of bookmarks is fixed when the run starts. Cancellation stops
        new batches from starting; a batch already in flight completes.

        Raises:
            BatchAlreadyRunningError: If a run is already in progress
        """
        if self._processing:
            raise BatchAlreadyRunningError("A batch summarization run is already in progress")

        token = cancel_token or CancellationToken()
        targets = [b for b in self.store.list_bookmarks() if b.status.needs_summary]
        result = BatchRunResult(total=len(targets))
        if not targets:
            logger.info("Nothing to summarize")
            return result

        batches = partition(targets, self.batch_size)
        logger.info(
            f"Summarizing {len(targets)} bookmark(s) in {len(batches)} batch(es) of {self.batch_size}"
        )

        self._processing = True
        try:
            self._report(on_progress, 0, len(targets))

            for index, batch in enumerate(batches):
                if token.cancelled:
                    result.cancelled = True
                    logger.info(f"Batch run cancelled before batch {index + 1}/{len(batches)}")
                    break

                outcomes = await asyncio.gather(
                    *(self.summarize_one(b.id) for b in batch),
                    return_exceptions=True,
                )
                result.batches += 1
                self._tally(result, batch, outcomes)

                result.completed += len(batch)
                self._report(on_progress, result.completed, len(targets))

                if index + 1 < len(batches) and not token.cancelled:
                    await self._sleep(self.batch_delay)
        finally:
            self._processing = False

        logger.info(
            f"Batch run finished: {result.succeeded} done, {result.failed} failed, "
            f"{result.total - result.completed} not started"
        )
        return result

    def recover_interrupted(self) -> int:
        """Move bookmarks stuck in ``pending`` to ``error`` so they can be retried.

        Only valid while no run is active in this process.

        Returns:
            Number of bookmarks recovered
        """
        if self._processing:
            return 0

        stuck = [b for b in self.store.list_bookmarks() if b.status == BookmarkStatus.PENDING]
        for bookmark in stuck:
            self._notify(
                self.store.update(bookmark.id, status=BookmarkStatus.ERROR, summary=FAILED_SUMMARY)
            )

        if stuck:
            logger.warning(f"Recovered {len(stuck)} bookmark(s) left pending by an interrupted run")
        return len(stuck)

    def _report(self, on_progress: Optional[ProgressCallback], completed: int, total: int) -> None:
        self.progress = BatchProgress(completed=completed, total=total)
        if on_progress is not None:
            on_progress(self.progress)

    def _tally(self, result: BatchRunResult, batch: List[Bookmark], outcomes: list) -> None:
        for bookmark, outcome in zip(batch, outcomes):
            if isinstance(outcome, BaseException):
                result.failed += 1
                result.errors.append(f"{bookmark.url}: {outcome}")
            elif outcome is None:
                result.skipped += 1
            elif outcome.status == BookmarkStatus.DONE:
                result.succeeded += 1
            else:
                result.failed += 1
                result.errors.append(f"{bookmark.url}: {outcome.summary}")
