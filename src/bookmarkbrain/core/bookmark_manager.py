"""Bookmark manager for import and lifecycle operations."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from pydantic import ValidationError

from ..models.bookmark import Bookmark, BookmarkStatus, Category
from ..utils.url_utils import fallback_title, favicon_url
from .bookmark_store import BookmarkStore
from .import_parsers import ImportCandidate

logger = logging.getLogger(__name__)


class BookmarkNotFoundError(Exception):
    """Bookmark not found error."""

    pass


@dataclass
class ImportResult:
    """Outcome of one import call."""

    added: List[Bookmark] = field(default_factory=list)
    skipped: int = 0
    invalid: int = 0


class BookmarkManager:
    """Manages bookmark import, deletion, and listing on top of the store."""

    def __init__(self, store: BookmarkStore):
        """Initialize bookmark manager.

        Args:
            store: BookmarkStore instance
        """
        self.store = store

    def import_candidates(self, candidates: Iterable[ImportCandidate]) -> ImportResult:
        """Insert candidates whose URL is not stored yet, as ``imported`` records.

        URLs are compared by exact string match, against both the stored
        collection and earlier candidates of the same call.

        Args:
            candidates: Parsed import candidates, in source order

        Returns:
            ImportResult with the inserted bookmarks, the duplicate count and the
            number of candidates rejected as malformed URLs

        Raises:
            StorageError: If a write fails
        """
        result = ImportResult()
        known_urls = {b.url for b in self.store.list_bookmarks()}

        for candidate in candidates:
            if candidate.url in known_urls:
                result.skipped += 1
                continue

            try:
                bookmark = Bookmark(
                    url=candidate.url,
                    title=candidate.title or fallback_title(candidate.url),
                    category=Category.OTHER,
                    favicon=favicon_url(candidate.url),
                    status=BookmarkStatus.IMPORTED,
                    created_at=datetime.now(timezone.utc),
                )
            except ValidationError as e:
                logger.warning(f"Skipping malformed URL {candidate.url!r}: {e.errors()[0]['msg']}")
                result.invalid += 1
                continue

            self.store.insert(bookmark)
            known_urls.add(bookmark.url)
            result.added.append(bookmark)

        logger.info(
            f"Imported {len(result.added)} bookmark(s), skipped {result.skipped} duplicate(s) "
            f"and {result.invalid} malformed URL(s)"
        )

        return result

    def get_bookmark(self, bookmark_id: str) -> Bookmark:
        """Get bookmark by ID.

        Raises:
            BookmarkNotFoundError: If bookmark doesn't exist
        """
        bookmark = self.store.get(bookmark_id)

        if bookmark is None:
            raise BookmarkNotFoundError(f"Bookmark not found: {bookmark_id}")

        return bookmark

    def list_bookmarks(
        self,
        status: Optional[BookmarkStatus] = None,
        category: Optional[Category] = None,
    ) -> List[Bookmark]:
        """List bookmarks, newest first, with optional filters."""
        bookmarks = self.store.list_bookmarks()

        if status is not None:
            bookmarks = [b for b in bookmarks if b.status == status]

        if category is not None:
            bookmarks = [b for b in bookmarks if b.category == category]

        return bookmarks

    def needs_summary(self) -> List[Bookmark]:
        """Bookmarks a batch run would pick up (imported or error)."""
        return [b for b in self.store.list_bookmarks() if b.status.needs_summary]

    def delete_bookmark(self, bookmark_id: str) -> None:
        """Permanently delete a bookmark.

        Raises:
            BookmarkNotFoundError: If bookmark doesn't exist
        """
        if not self.store.delete(bookmark_id):
            raise BookmarkNotFoundError(f"Bookmark not found: {bookmark_id}")

        logger.info(f"Deleted bookmark {bookmark_id}")

    def clear_all(self) -> int:
        """Delete every bookmark.

        Returns:
            Number of bookmarks removed
        """
        count = len(self.store.list_bookmarks())
        self.store.clear()
        logger.warning(f"Cleared all {count} bookmark(s)")
        return count

    def get_stats(self) -> Dict[str, object]:
        """Counts per status plus category counts of summarized bookmarks."""
        bookmarks = self.store.list_bookmarks()

        by_status = {status.value: 0 for status in BookmarkStatus}
        categories: Dict[str, int] = {}
        for bookmark in bookmarks:
            by_status[bookmark.status.value] += 1
            if bookmark.status == BookmarkStatus.DONE:
                categories[bookmark.category.value] = categories.get(bookmark.category.value, 0) + 1

        return {
            "total": len(bookmarks),
            "by_status": by_status,
            "categories": categories,
        }
