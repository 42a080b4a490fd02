"""Queue service interface shared by every backend.

Each queue is made of two FIFOs:

- ``unclaimed``: messages that have never been delivered;
- ``claimed``: delivered messages that have not been deleted yet, ordered by
  the time their visibility timeout expires.

``pull`` first looks at the head of ``claimed``. If its visibility timeout
has elapsed the message is redelivered: its timeout is restarted and it moves
to the tail of ``claimed``. Otherwise the head of ``unclaimed`` is claimed and
appended to ``claimed``. Because the timeout is constant per queue, appending
keeps ``claimed`` sorted by expiry.

``delete`` only ever looks at ``claimed``, so a message that was never pulled
cannot be deleted.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from datetime import timedelta

from twinqueue.core.dto.message_dto import Message
from twinqueue.core.queue_service.clock import Clock, SystemClock


class BaseQueueService(ABC):
    """Abstract queue service."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()

    @property
    def clock(self) -> Clock:
        return self._clock

    @abstractmethod
    def create_queue(self, name: str, visibility_timeout: int | timedelta) -> str:
        """Create ``name`` if needed and return the handle used by other calls.

        Repeated calls for an existing queue return the same handle and leave
        the queue, including its visibility timeout, unchanged.
        """

    @abstractmethod
    def push(self, queue: str, body: bytes | str) -> None:
        """Append a new message to the tail of the queue.

        Raises:
            QueueNotFound: If the queue does not exist.
        """

    @abstractmethod
    def pull(self, queue: str) -> Message | None:
        """Deliver the next available message, or None when nothing is available.

        Raises:
            QueueNotFound: If the queue does not exist.
        """

    @abstractmethod
    def delete(self, queue: str, message: Message) -> bool:
        """Delete a pulled message by its receipt token.

        Returns:
            True if the message was found among claimed messages and removed,
            False otherwise.

        Raises:
            QueueNotFound: If the queue does not exist.
        """

    @abstractmethod
    def queue_exists(self, name: str) -> bool:
        """Return True if ``name`` can be resolved by this service."""

    @abstractmethod
    def list_queues(self) -> list[str]:
        """Return the names of the queues known to this service."""

    def _new_receipt_token(self) -> str:
        return uuid.uuid4().hex


def validate_queue_name(name: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValueError("Queue name must be a non-empty string")
    return name


def to_millis(visibility_timeout: int | timedelta) -> int:
    """Normalize a visibility timeout to non-negative integer milliseconds."""
    if isinstance(visibility_timeout, timedelta):
        millis = visibility_timeout // timedelta(milliseconds=1)
    elif isinstance(visibility_timeout, int) and not isinstance(visibility_timeout, bool):
        millis = visibility_timeout
    else:
        raise TypeError("Visibility timeout must be an int (milliseconds) or a timedelta")
    if millis < 0:
        raise ValueError(f"Visibility timeout must not be negative: {millis}")
    return millis


def to_bytes(body: bytes | str) -> bytes:
    if isinstance(body, str):
        return body.encode("utf-8")
    if isinstance(body, (bytes, bytearray, memoryview)):
        return bytes(body)
    raise TypeError(f"Message body must be bytes or str, got {type(body).__name__}")
