"""Per-key exclusive locks over lock files."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from filelock import FileLock, Timeout

from .errors import LockTimeout, StorageError

logger = logging.getLogger(__name__)


class FileLocker:
    """Exclusive, cross-process locks identified by a lock-file path.

    Every ``acquire`` opens its own ``FileLock``, so two threads of one
    process exclude each other just as two processes do. The lock is
    advisory: it only orders writers that follow the update protocol.
    Lock files are left in place after release.

    Args:
        timeout: Seconds to wait for a lock. None (default) blocks
            forever; on expiry ``LockTimeout`` is raised.
    """

    def __init__(self, timeout: float | None = None) -> None:
        if timeout is not None and timeout < 0:
            raise ValueError("timeout must be None or >= 0")
        self.timeout = timeout

    def acquire(self, lock_path: Path, *, key: str | None = None) -> FileLock:
        lock = FileLock(str(lock_path))
        wait = -1 if self.timeout is None else self.timeout
        try:
            lock_path.parent.mkdir(parents=True, exist_ok=True)
            lock.acquire(timeout=wait)
        except Timeout as exc:
            raise LockTimeout(
                f"Timed out after {self.timeout}s waiting for {lock_path}", key=key, op="lock"
            ) from exc
        except OSError as exc:
            raise StorageError(f"Cannot lock {lock_path}: {exc}", key=key, op="lock") from exc
        logger.debug("Acquired %s", lock_path)
        return lock

    def release(self, handle: FileLock) -> None:
        handle.release()
        logger.debug("Released %s", handle.lock_file)

    @contextmanager
    def held(self, lock_path: Path, *, key: str | None = None) -> Iterator[FileLock]:
        """Hold the lock for the duration of the ``with`` block."""
        handle = self.acquire(lock_path, key=key)
        try:
            yield handle
        finally:
            self.release(handle)
