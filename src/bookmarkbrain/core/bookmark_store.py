"""Bookmark store: CRUD over the single persisted bookmark collection."""

import logging
from typing import Any, List, Optional

from ..models.bookmark import Bookmark
from ..utils.yaml_handler import YAMLError, deserialize_bookmarks, serialize_bookmarks
from .kv_store import KeyValueStore, StorageError

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "bookmarkbrain_bookmarks"


class BookmarkStore:
    """Owns the ordered bookmark collection kept under one storage key.

    Every mutation reads the whole collection, applies the change, and writes
    the whole collection back. Nothing is cached between calls.
    """

    def __init__(self, backend: KeyValueStore, key: str = DEFAULT_STORAGE_KEY):
        """Initialize bookmark store.

        Args:
            backend: Key/value storage holding the serialized collection
            key: Storage key of the collection
        """
        self.backend = backend
        self.key = key

    def list_bookmarks(self) -> List[Bookmark]:
        """Return all bookmarks, most recently inserted first.

        Missing or unreadable data is an empty collection.
        """
        raw = self.backend.get(self.key)
        if raw is None:
            return []

        try:
            return deserialize_bookmarks(raw)
        except YAMLError as e:
            logger.warning(f"Stored collection under '{self.key}' is unreadable, treating as empty: {e}")
            return []

    def replace_all(self, bookmarks: List[Bookmark]) -> None:
        """Overwrite the persisted collection.

        Raises:
            StorageError: If serialization or the write fails
        """
        try:
            payload = serialize_bookmarks(list(bookmarks))
        except YAMLError as e:
            raise StorageError(f"Failed to save bookmarks: {e}") from e

        self.backend.set(self.key, payload)

    def get(self, bookmark_id: str) -> Optional[Bookmark]:
        """Get bookmark by ID, or None."""
        for bookmark in self.list_bookmarks():
            if bookmark.id == bookmark_id:
                return bookmark
        return None

    def insert(self, bookmark: Bookmark) -> None:
        """Prepend a bookmark. Callers deduplicate by URL beforehand."""
        bookmarks = self.list_bookmarks()
        bookmarks.insert(0, bookmark)
        self.replace_all(bookmarks)

    def update(self, bookmark_id: str, **fields: Any) -> Optional[Bookmark]:
        """Merge fields into the bookmark with this ID, keeping its position.

        ``id`` and ``created_at`` are never changed.

        Args:
            bookmark_id: Bookmark UUID
            **fields: Field values to merge

        Returns:
            The updated bookmark, or None if no bookmark has this ID

        Raises:
            ValidationError: If the merged record is invalid
            StorageError: If the write fails
        """
        fields.pop("id", None)
        fields.pop("created_at", None)

        bookmarks = self.list_bookmarks()
        for index, bookmark in enumerate(bookmarks):
            if bookmark.id != bookmark_id:
                continue
            updated = Bookmark.model_validate({**bookmark.model_dump(), **fields})
            bookmarks[index] = updated
            self.replace_all(bookmarks)
            return updated

        logger.debug(f"Update skipped, bookmark not found: {bookmark_id}")
        return None

    def delete(self, bookmark_id: str) -> bool:
        """Remove the bookmark with this ID.

        Returns:
            True if a bookmark was removed
        """
        bookmarks = self.list_bookmarks()
        remaining = [b for b in bookmarks if b.id != bookmark_id]
        if len(remaining) == len(bookmarks):
            return False
        self.replace_all(remaining)
        return True

    def clear(self) -> None:
        """Remove every bookmark."""
        self.replace_all([])
