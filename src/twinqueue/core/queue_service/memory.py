"""In-memory queue service."""

from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import timedelta

from twinqueue.core.dto.message_dto import Message
from twinqueue.core.queue_service.base import (
    BaseQueueService,
    to_bytes,
    to_millis,
    validate_queue_name,
)
from twinqueue.core.queue_service.clock import Clock
from twinqueue.core.queue_service.registry import QueueRegistry

logger = logging.getLogger(__name__)


class InMemoryQueue:
    """State of a single in-memory queue.

    ``claimed_lock`` guards every access to ``claimed``. ``unclaimed`` relies on
    the atomicity of ``deque.append`` and ``deque.popleft``: each message is
    popped exactly once.
    """

    def __init__(self, name: str, visibility_timeout: int) -> None:
        self.name = name
        self.visibility_timeout = visibility_timeout
        self.unclaimed: deque[Message] = deque()
        self.claimed: deque[Message] = deque()
        self.claimed_lock = threading.Lock()


class InMemoryQueueService(BaseQueueService):
    """Queue service keeping both FIFOs of every queue in process memory.

    Queues are private to the service instance; two instances never share
    state.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        super().__init__(clock)
        self._registry: QueueRegistry[InMemoryQueue] = QueueRegistry()
        logger.debug("InMemoryQueueService instance created.")

    def create_queue(self, name: str, visibility_timeout: int | timedelta) -> str:
        validate_queue_name(name)

        def _factory() -> InMemoryQueue:
            return InMemoryQueue(name, to_millis(visibility_timeout))

        queue = self._registry.get_or_create(name, _factory)
        return queue.name

    def push(self, queue: str, body: bytes | str) -> None:
        state = self._registry.get(queue)
        state.unclaimed.append(Message(body=to_bytes(body)))

    def pull(self, queue: str) -> Message | None:
        state = self._registry.get(queue)

        with state.claimed_lock:
            if state.claimed:
                head = state.claimed[0]
                now = self._clock.now()
                if head.is_visible(now):
                    state.claimed.popleft()
                    redelivered = head.refresh_visibility(now=now, timeout=state.visibility_timeout)
                    state.claimed.append(redelivered)
                    logger.debug(
                        "Redelivering message %s from queue '%s'.", head.receipt_token, state.name
                    )
                    return redelivered

        try:
            message = state.unclaimed.popleft()
        except IndexError:
            return None

        token = self._new_receipt_token()
        # Stamped under the lock so ``claimed`` stays ordered by visible_at.
        with state.claimed_lock:
            claimed = message.claim(token, now=self._clock.now(), timeout=state.visibility_timeout)
            state.claimed.append(claimed)
        return claimed

    def delete(self, queue: str, message: Message) -> bool:
        state = self._registry.get(queue)
        token = message.receipt_token
        if token is None:
            return False

        with state.claimed_lock:
            for index, candidate in enumerate(state.claimed):
                if candidate.receipt_token == token:
                    del state.claimed[index]
                    return True
        return False

    def queue_exists(self, name: str) -> bool:
        return name in self._registry

    def list_queues(self) -> list[str]:
        return self._registry.names()
