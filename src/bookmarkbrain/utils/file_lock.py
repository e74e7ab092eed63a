"""Lock-file based mutual exclusion for the file-backed key/value store."""

import os
import time
from pathlib import Path


class FileLockError(Exception):
    """File locking error."""

    pass


class FileLocker:
    """Context manager holding an exclusive ``<file>.lock`` next to a data file.

    The lock file is created with ``O_EXCL`` so only one holder can exist.
    Locks older than twice the timeout are treated as stale and removed.
    """

    def __init__(self, file_path: Path, timeout: float = 5.0, poll_interval: float = 0.05):
        """Initialize file locker.

        Args:
            file_path: Path to the file to lock
            timeout: Maximum time to wait for lock acquisition (seconds)
            poll_interval: Delay between acquisition attempts (seconds)
        """
        self.file_path = Path(file_path)
        self.lock_path = Path(str(file_path) + ".lock")
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.acquired = False

    def __enter__(self) -> "FileLocker":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False

    def acquire(self) -> None:
        """Block until the lock is held or the timeout elapses.

        Raises:
            FileLockError: If the lock could not be acquired in time
        """
        deadline = time.monotonic() + self.timeout
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)

        while True:
            try:
                fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            except FileExistsError:
                self._remove_if_stale()
            except OSError as e:
                raise FileLockError(f"Could not create lock for {self.file_path}: {e}") from e
            else:
                os.write(fd, str(os.getpid()).encode("ascii"))
                os.close(fd)
                self.acquired = True
                return

            if time.monotonic() >= deadline:
                raise FileLockError(
                    f"Could not acquire lock on {self.file_path} after {self.timeout}s"
                )
            time.sleep(self.poll_interval)

    def release(self) -> None:
        """Release the lock if this instance holds it."""
        if not self.acquired:
            return
        self.lock_path.unlink(missing_ok=True)
        self.acquired = False

    def _remove_if_stale(self) -> None:
        try:
            age = time.time() - self.lock_path.stat().st_mtime
        except FileNotFoundError:
            return
        if age > self.timeout * 2:
            self.lock_path.unlink(missing_ok=True)
