"""Key/value byte storage backends for the bookmark collection."""

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol

from ..utils.file_lock import FileLocker, FileLockError

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class StorageError(Exception):
    """Storage-related error."""

    pass


class KeyValueStore(Protocol):
    """Synchronous get/set of opaque byte values by key."""

    def get(self, key: str) -> Optional[bytes]: ...

    def set(self, key: str, value: bytes) -> None: ...


class MemoryKeyValueStore:
    """Dict-backed store for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self.data: Dict[str, bytes] = dict(initial or {})

    def get(self, key: str) -> Optional[bytes]:
        return self.data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self.data[key] = bytes(value)


class FileKeyValueStore:
    """One file per key under a directory, replaced atomically on every write."""

    def __init__(self, directory: Path, lock_timeout: float = 5.0):
        """Initialize file store.

        Args:
            directory: Directory holding one file per key (created if missing)
            lock_timeout: Seconds to wait for the per-key lock on writes

        Raises:
            StorageError: If the directory cannot be created
        """
        self.directory = Path(directory)
        self.lock_timeout = lock_timeout
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create storage directory {self.directory}: {e}") from e

    def path_for(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}.yaml"

    def get(self, key: str) -> Optional[bytes]:
        path = self.path_for(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(f"Failed to read {path}: {e}")
            return None

    def set(self, key: str, value: bytes) -> None:
        """Write value durably, replacing any previous content.

        Raises:
            StorageError: If the lock or the write fails
        """
        path = self.path_for(key)
        try:
            with FileLocker(path, timeout=self.lock_timeout):
                fd, tmp_name = tempfile.mkstemp(
                    dir=self.directory, prefix=f".{key}.", suffix=".tmp"
                )
                try:
                    with os.fdopen(fd, "wb") as f:
                        f.write(value)
                        f.flush()
                        os.fsync(f.fileno())
                    os.replace(tmp_name, path)
                except BaseException:
                    Path(tmp_name).unlink(missing_ok=True)
                    raise
        except FileLockError as e:
            raise StorageError(f"Could not acquire lock for {key}: {e}") from e
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e
