# zramscale/core/instance_lock.py
"""Host-wide single-instance guard."""

import os
import fcntl
import logging
from pathlib import Path
from typing import Optional, Union

from .errors import LockContentionError

logger = logging.getLogger(__name__)


class InstanceLock:
    """Exclusive advisory lock held for the lifetime of a controller.

    Acquisition never waits: a second instance fails immediately with
    ``LockContentionError``. The kernel drops the lock when the process exits,
    so a crashed controller does not leave a stale lock behind.
    """

    def __init__(self, lock_file: Union[str, Path]):
        self._lock_file = Path(lock_file)
        self._lock_fd: Optional[int] = None

    @property
    def path(self) -> Path:
        return self._lock_file

    @property
    def held(self) -> bool:
        return self._lock_fd is not None

    def acquire(self) -> None:
        if self._lock_fd is not None:
            return

        self._lock_file.parent.mkdir(parents=True, exist_ok=True)
        lock_fd = os.open(str(self._lock_file), os.O_CREAT | os.O_RDWR, 0o644)
        try:
            fcntl.flock(lock_fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            holder = self._read_holder(lock_fd)
            os.close(lock_fd)
            detail = f" (pid {holder})" if holder else ""
            raise LockContentionError(
                f"another zramscale instance holds {self._lock_file}{detail}"
            )

        os.ftruncate(lock_fd, 0)
        os.write(lock_fd, f"{os.getpid()}\n".encode())
        self._lock_fd = lock_fd
        logger.debug(f"Acquired lock on {self._lock_file}")

    def release(self) -> None:
        """Safely release the lock."""
        if self._lock_fd is None:
            return

        lock_fd, self._lock_fd = self._lock_fd, None
        try:
            fcntl.flock(lock_fd, fcntl.LOCK_UN)
            logger.debug(f"Released lock on {self._lock_file}")
        except OSError as e:
            logger.warning(f"Error releasing lock on {self._lock_file}: {e}")
        finally:
            os.close(lock_fd)

    def __enter__(self) -> 'InstanceLock':
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    @staticmethod
    def _read_holder(lock_fd: int) -> Optional[str]:
        try:
            os.lseek(lock_fd, 0, os.SEEK_SET)
            content = os.read(lock_fd, 32).decode(errors='replace').strip()
        except OSError:
            return None
        return content or None
