"""Registry mapping queue names to backend-specific queue state."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from typing import Generic, TypeVar

from twinqueue.core.queue_service.errors import QueueNotFound

logger = logging.getLogger(__name__)

Q = TypeVar("Q")


class QueueRegistry(Generic[Q]):
    """Thread-safe ``name -> queue state`` mapping owned by one service instance.

    Creation is idempotent: ``get_or_create`` returns the registered state when
    the name is already known and never calls the factory a second time.
    """

    def __init__(self) -> None:
        self._queues: dict[str, Q] = {}
        self._lock = threading.Lock()

    def get_or_create(self, name: str, factory: Callable[[], Q]) -> Q:
        with self._lock:
            queue = self._queues.get(name)
            if queue is None:
                queue = factory()
                self._queues[name] = queue
                logger.debug("Queue '%s' registered.", name)
            return queue

    def register(self, name: str, queue: Q) -> Q:
        """Register ``queue`` unless ``name`` is taken; return the winner."""
        with self._lock:
            return self._queues.setdefault(name, queue)

    def get(self, name: str) -> Q:
        try:
            return self._queues[name]
        except KeyError:
            raise QueueNotFound(name) from None

    def find(self, name: str) -> Q | None:
        return self._queues.get(name)

    def names(self) -> list[str]:
        with self._lock:
            return list(self._queues)

    def __contains__(self, name: object) -> bool:
        return name in self._queues

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self._queues)
