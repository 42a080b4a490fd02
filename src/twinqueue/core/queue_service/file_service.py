"""File-persisted queue service.

Every queue lives in its own directory under the service home directory::

    <home>/<md5(queue name)>/
        primary      unclaimed records, one per line
        secondary    claimed records, ordered by visibility expiry
        queue.json   queue name and visibility timeout
        .lock        lock marker directory, present while the queue is busy

Any number of service instances, in any number of processes on the same host,
can share a home directory. All access to a queue happens while holding its
lock marker, and files are never modified in place: the new content is
written to a buffer file in the same directory, synced, and moved over the
original with ``os.replace``. A crash therefore leaves either the old or the
new file, plus at worst an orphaned buffer that is removed on the next
locked access.
"""

from __future__ import annotations

import hashlib
import logging
import os
import tempfile
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import timedelta
from pathlib import Path

from pydantic import ValidationError

from twinqueue.core.dto.message_dto import Message
from twinqueue.core.dto.queue_dto import QueueMetadata
from twinqueue.core.queue_service.base import (
    BaseQueueService,
    to_bytes,
    to_millis,
    validate_queue_name,
)
from twinqueue.core.queue_service.clock import Clock
from twinqueue.core.queue_service.errors import QueueNotFound, StorageFailure
from twinqueue.core.queue_service.locking import DEFAULT_RETRY_INTERVAL_MS, DirectoryLock
from twinqueue.core.queue_service.records import decode_record, encode_record, read_token
from twinqueue.core.queue_service.registry import QueueRegistry

logger = logging.getLogger(__name__)

PRIMARY_FILE = "primary"
SECONDARY_FILE = "secondary"
METADATA_FILE = "queue.json"
LOCK_MARKER = ".lock"
BUFFER_PREFIX = ".buffer-"


def hash_queue_name(name: str) -> str:
    """Directory name used for queue ``name``."""
    return hashlib.md5(name.encode("utf-8")).hexdigest()


class FileQueue:
    """Paths and settings of one file-backed queue."""

    def __init__(
        self,
        directory: Path,
        metadata: QueueMetadata,
        *,
        retry_interval: int,
        stale_after: int | None,
    ) -> None:
        self.directory = directory
        self.metadata = metadata
        self.primary = directory / PRIMARY_FILE
        self.secondary = directory / SECONDARY_FILE
        self._retry_interval = retry_interval
        self._stale_after = stale_after

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def visibility_timeout(self) -> int:
        return self.metadata.visibility_timeout

    @contextmanager
    def locked(self) -> Iterator[FileQueue]:
        """Hold the queue's lock marker for the duration of the block."""
        with locked_directory(
            self.directory, retry_interval=self._retry_interval, stale_after=self._stale_after
        ):
            yield self


class FileQueueService(BaseQueueService):
    """Queue service persisting queues as files under ``home_directory``.

    Args:
        home_directory: Root directory shared by cooperating service instances.
        clock: Time source. Processes sharing a directory should use wall time.
        lock_retry_interval: Sleep between lock attempts, in milliseconds.
        stale_lock_timeout: Age in milliseconds after which a lock marker is
            considered abandoned and broken. None waits forever.
    """

    def __init__(
        self,
        home_directory: str | os.PathLike[str],
        clock: Clock | None = None,
        *,
        lock_retry_interval: int = DEFAULT_RETRY_INTERVAL_MS,
        stale_lock_timeout: int | None = None,
    ) -> None:
        super().__init__(clock)
        self._home = Path(home_directory)
        self._retry_interval = lock_retry_interval
        self._stale_after = stale_lock_timeout
        self._registry: QueueRegistry[FileQueue] = QueueRegistry()
        logger.debug("FileQueueService instance created with home_directory=%s", self._home)

    @property
    def home_directory(self) -> Path:
        return self._home

    # ------------------------------------------------------------------
    # Queue resolution
    # ------------------------------------------------------------------

    def create_queue(self, name: str, visibility_timeout: int | timedelta) -> str:
        validate_queue_name(name)
        if name in self._registry:
            return name

        directory = self._home / hash_queue_name(name)
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageFailure(f"Cannot create queue directory {directory}", exc) from exc

        with locked_directory(
            directory, retry_interval=self._retry_interval, stale_after=self._stale_after
        ):
            metadata = read_metadata(directory)
            if metadata is None:
                metadata = QueueMetadata(name=name, visibility_timeout=to_millis(visibility_timeout))
                write_lines(directory / METADATA_FILE, [metadata.model_dump_json() + "\n"])
                logger.debug(
                    "Queue '%s' created in %s with visibility_timeout=%d ms.",
                    name,
                    directory,
                    metadata.visibility_timeout,
                )
            elif metadata.name != name:
                raise StorageFailure(
                    f"Queue directory {directory} belongs to queue {metadata.name!r}, not {name!r}"
                )
            else:
                logger.debug("Queue '%s' already exists in %s; reusing it.", name, directory)

        return self._registry.register(name, self._new_queue(directory, metadata)).name

    def _resolve(self, name: str) -> FileQueue:
        queue = self._registry.find(name)
        if queue is not None:
            return queue
        if not isinstance(name, str):
            raise QueueNotFound(repr(name))
        directory = self._home / hash_queue_name(name)
        metadata = read_metadata(directory)
        if metadata is None or metadata.name != name:
            raise QueueNotFound(name)
        logger.debug("Queue '%s' resolved from %s.", name, directory)
        return self._registry.register(name, self._new_queue(directory, metadata))

    def _new_queue(self, directory: Path, metadata: QueueMetadata) -> FileQueue:
        return FileQueue(
            directory,
            metadata,
            retry_interval=self._retry_interval,
            stale_after=self._stale_after,
        )

    def queue_exists(self, name: str) -> bool:
        try:
            self._resolve(name)
        except QueueNotFound:
            return False
        return True

    def list_queues(self) -> list[str]:
        names = set(self._registry.names())
        if self._home.is_dir():
            for directory in self._home.iterdir():
                metadata = read_metadata(directory)
                if metadata is not None:
                    names.add(metadata.name)
        return sorted(names)

    # ------------------------------------------------------------------
    # Queue operations
    # ------------------------------------------------------------------

    def push(self, queue: str, body: bytes | str) -> None:
        state = self._resolve(queue)
        record = encode_record(Message(body=to_bytes(body))) + "\n"
        with state.locked():
            lines = read_lines(state.primary)
            lines.append(record)
            write_lines(state.primary, lines)

    def pull(self, queue: str) -> Message | None:
        state = self._resolve(queue)
        timeout = state.visibility_timeout

        with state.locked():
            claimed = read_lines(state.secondary)
            if claimed:
                head = decode_record(claimed[0])
                now = self._clock.now()
                if head.is_visible(now):
                    redelivered = head.refresh_visibility(now=now, timeout=timeout)
                    write_lines(state.secondary, [*claimed[1:], encode_record(redelivered) + "\n"])
                    logger.debug(
                        "Redelivering message %s from queue '%s'.", head.receipt_token, state.name
                    )
                    return redelivered

            unclaimed = read_lines(state.primary)
            if not unclaimed:
                return None

            message = decode_record(unclaimed[0]).claim(
                self._new_receipt_token(),
                now=self._clock.now(),
                timeout=timeout,
            )
            # Claimed copy first: a crash in between duplicates the message
            # instead of losing it.
            write_lines(state.secondary, [*claimed, encode_record(message) + "\n"])
            write_lines(state.primary, unclaimed[1:])
            return message

    def delete(self, queue: str, message: Message) -> bool:
        state = self._resolve(queue)
        token = message.receipt_token
        if token is None:
            return False

        with state.locked():
            lines = read_lines(state.secondary)
            kept: list[str] = []
            deleted = False
            for line in lines:
                if not deleted and read_token(line) == token:
                    deleted = True
                    continue
                kept.append(line)
            if deleted:
                write_lines(state.secondary, kept)
        return deleted


# ----------------------------------------------------------------------
# File helpers
# ----------------------------------------------------------------------


def read_lines(path: Path) -> list[str]:
    """Return the newline-terminated lines of ``path``; a missing file is empty."""
    try:
        with open(path, encoding="utf-8", newline="\n") as f:
            return [line for line in f if line.strip()]
    except FileNotFoundError:
        return []
    except OSError as exc:
        raise StorageFailure(f"Cannot read {path}", exc) from exc


def write_lines(path: Path, lines: Iterable[str]) -> None:
    """Atomically replace ``path`` with ``lines``."""
    try:
        fd, buffer = tempfile.mkstemp(prefix=BUFFER_PREFIX, dir=path.parent)
    except OSError as exc:
        raise StorageFailure(f"Cannot create buffer file next to {path}", exc) from exc
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.writelines(lines)
            f.flush()
            os.fsync(f.fileno())
        os.replace(buffer, path)
    except OSError as exc:
        try:
            os.unlink(buffer)
        except OSError:
            logger.warning("Could not remove buffer file %s.", buffer)
        logger.error("Atomic rewrite of %s failed: %s", path, exc)
        raise StorageFailure(f"Cannot rewrite {path}", exc) from exc


def remove_orphaned_buffers(directory: Path) -> None:
    """Delete buffer files left behind by a writer that crashed mid-rewrite.

    Must only be called while holding the queue lock.
    """
    try:
        for buffer in directory.glob(f"{BUFFER_PREFIX}*"):
            logger.warning("Removing orphaned buffer file %s.", buffer)
            buffer.unlink(missing_ok=True)
    except OSError as exc:
        raise StorageFailure(f"Cannot clean buffer files in {directory}", exc) from exc


def read_metadata(directory: Path) -> QueueMetadata | None:
    path = directory / METADATA_FILE
    try:
        raw = path.read_text(encoding="utf-8")
    except (FileNotFoundError, NotADirectoryError):
        return None
    except OSError as exc:
        raise StorageFailure(f"Cannot read queue metadata {path}", exc) from exc
    try:
        return QueueMetadata.model_validate_json(raw)
    except ValidationError as exc:
        raise StorageFailure(f"Invalid queue metadata in {path}", exc) from exc


@contextmanager
def locked_directory(
    directory: Path, *, retry_interval: int, stale_after: int | None
) -> Iterator[Path]:
    """Hold the lock marker of a queue directory and clear orphaned buffers."""
    with DirectoryLock(
        directory / LOCK_MARKER, retry_interval=retry_interval, stale_after=stale_after
    ):
        remove_orphaned_buffers(directory)
        yield directory
