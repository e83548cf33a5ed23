"""Inter-process lock around the on-disk release log."""

from __future__ import annotations

import fcntl
import logging
import time
from pathlib import Path
from typing import IO, TYPE_CHECKING

from release_engine.engine.errors import ReleaseLogLockError

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)


class ReleaseLogLock:
    """Exclusive advisory lock on ``<release log>.lock``.

    Held around a whole load-record-save cycle so that two processes sharing
    a log cannot both append a release for the same value. With
    ``timeout=None`` acquisition blocks; otherwise the lock is polled and
    :class:`ReleaseLogLockError` is raised once *timeout* seconds have passed.
    """

    def __init__(
        self,
        log_path: Path,
        *,
        timeout: float | None = None,
        poll_interval: float = 0.05,
    ) -> None:
        self.path = Path(f"{log_path}.lock")
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._handle: IO[str] | None = None

    def acquire(self) -> None:
        if self._handle is not None:
            raise ReleaseLogLockError(f"{self.path} is already held by this lock")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        handle = self.path.open("a+", encoding="utf-8")
        try:
            self._flock(handle)
        except BaseException:
            handle.close()
            raise
        self._handle = handle
        logger.debug("Acquired release log lock %s", self.path)

    def release(self) -> None:
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        finally:
            handle.close()
        logger.debug("Released release log lock %s", self.path)

    def _flock(self, handle: IO[str]) -> None:
        if self.timeout is None:
            try:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
            except OSError as e:
                raise ReleaseLogLockError(f"Cannot lock {self.path}: {e}") from e
            return

        deadline = time.monotonic() + self.timeout
        while True:
            try:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                return
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    raise ReleaseLogLockError(
                        f"{self.path} is held by another process (waited {self.timeout}s)"
                    ) from None
                time.sleep(self.poll_interval)
            except OSError as e:
                raise ReleaseLogLockError(f"Cannot lock {self.path}: {e}") from e

    def __enter__(self) -> ReleaseLogLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
