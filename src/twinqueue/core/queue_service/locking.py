"""Cross-process mutual exclusion built on atomic directory creation.

``os.mkdir`` succeeds for exactly one caller when several processes race to
create the same directory, so the marker directory works as a test-and-set
flag. Waiters sleep a fixed interval between attempts and never give up.

A holder that crashes leaves its marker behind. With ``stale_after`` set, a
waiter treats a marker older than that bound as abandoned and removes it.
Breaking happens under a second marker (``<path>.break``) so that two
waiters never both break the same marker.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from types import TracebackType

from twinqueue.core.queue_service.errors import StorageFailure

logger = logging.getLogger(__name__)

DEFAULT_RETRY_INTERVAL_MS = 20
BREAKER_SUFFIX = ".break"


class DirectoryLock:
    """Context manager holding a lock marker directory.

    Args:
        path: Marker directory to create.
        retry_interval: Sleep between attempts, in milliseconds.
        stale_after: Age in milliseconds after which an existing marker is
            considered abandoned. None waits forever.
    """

    def __init__(
        self,
        path: Path,
        *,
        retry_interval: int = DEFAULT_RETRY_INTERVAL_MS,
        stale_after: int | None = None,
    ) -> None:
        if retry_interval <= 0:
            raise ValueError("retry_interval must be positive")
        if stale_after is not None and stale_after <= 0:
            raise ValueError("stale_after must be positive or None")
        self.path = Path(path)
        self.retry_interval = retry_interval
        self.stale_after = stale_after
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> None:
        if self._held:
            raise RuntimeError(f"Lock {self.path} is already held by this object")
        while True:
            try:
                os.mkdir(self.path)
            except FileExistsError:
                if self._break_if_stale():
                    continue
                time.sleep(self.retry_interval / 1000)
                continue
            except OSError as exc:
                raise StorageFailure(f"Cannot create lock marker {self.path}", exc) from exc
            self._held = True
            return

    def release(self) -> None:
        if not self._held:
            return
        self._held = False
        try:
            os.rmdir(self.path)
        except FileNotFoundError:
            logger.warning("Lock marker %s vanished while held.", self.path)
        except OSError as exc:
            raise StorageFailure(f"Cannot remove lock marker {self.path}", exc) from exc

    def _break_if_stale(self) -> bool:
        if self.stale_after is None:
            return False
        age_ms = self._marker_age()
        if age_ms is None:
            return True
        if age_ms < self.stale_after:
            return False
        # Only one waiter at a time may break the marker, and it re-checks the
        # age while holding the breaker so a fresh marker is never removed.
        breaker = self.path.with_name(self.path.name + BREAKER_SUFFIX)
        try:
            os.mkdir(breaker)
        except FileExistsError:
            return False
        except OSError as exc:
            raise StorageFailure(f"Cannot create lock breaker {breaker}", exc) from exc
        try:
            age_ms = self._marker_age()
            if age_ms is None:
                return True
            if age_ms < self.stale_after:
                return False
            logger.warning(
                "Breaking stale lock marker %s (age %.0f ms, bound %d ms).",
                self.path,
                age_ms,
                self.stale_after,
            )
            try:
                os.rmdir(self.path)
            except FileNotFoundError:
                pass
            except OSError as exc:
                raise StorageFailure(f"Cannot remove stale lock marker {self.path}", exc) from exc
            return True
        finally:
            try:
                os.rmdir(breaker)
            except OSError:
                logger.warning("Could not remove lock breaker %s.", breaker)

    def _marker_age(self) -> float | None:
        """Age of the marker in milliseconds, or None once it is gone."""
        try:
            return (time.time() - os.stat(self.path).st_mtime) * 1000
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageFailure(f"Cannot inspect lock marker {self.path}", exc) from exc

    def __enter__(self) -> DirectoryLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            self.release()
        except StorageFailure:
            if exc is None:
                raise
            logger.error(
                "Could not release lock marker %s after an error in the locked block.",
                self.path,
                exc_info=True,
            )
