"""Core twinqueue facade.

This module defines the main entry point used by applications and tests.
"""

import logging
from datetime import timedelta
from typing import Any

from dotenv import load_dotenv

from twinqueue.core.dto.message_dto import Message
from twinqueue.core.queue_service.base import BaseQueueService
from twinqueue.core.queue_service.clock import Clock, SystemClock
from twinqueue.core.queue_service.file_service import FileQueueService
from twinqueue.core.queue_service.memory import InMemoryQueueService
from twinqueue.core.scotty.scotty import Scotty
from twinqueue.core.scotty.settings import TwinQueueSettings

logger = logging.getLogger(__name__)
load_dotenv()


class TwinQueue:
    """Core facade: configuration plus the configured queue service."""

    def __init__(self, *args, **kwargs):
        """Prevent direct construction; use `TwinQueue.create(...)` instead."""
        raise RuntimeError("Use: instance = TwinQueue.create(...)")

    def _initialize(self, *, config_path: str | None = None, clock: Clock | None = None):
        self.scotty = Scotty(config_path=config_path)
        self.clock = clock or SystemClock()
        self.service: BaseQueueService | None = None

        # Alias
        self.config_manager = self.scotty
        logger.debug("TwinQueue instance created.")

    @classmethod
    def create(
        cls,
        *,
        config_path: str | None = None,
        config: dict[str, Any] | None = None,
        clock: Clock | None = None,
    ):
        """Factory method to create and initialize TwinQueue.

        Args:
            config_path: Path to JSON configuration file
            config: Optional configuration dictionary
            clock: Optional time source shared by every queue
        """
        instance = cls.__new__(cls)  # bypass __init__
        instance._initialize(config_path=config_path, clock=clock)
        instance.scotty.load(config=config)
        instance.service = build_queue_service(instance.scotty.settings(), instance.clock)
        instance._declare_queues()
        return instance

    @property
    def queue_service(self) -> BaseQueueService:
        return self.service

    def _declare_queues(self) -> None:
        for name, queue_settings in self.scotty.queue_settings().items():
            self.service.create_queue(name, queue_settings.visibility_timeout)
            logger.debug(
                "Pre-declared queue '%s' (visibility_timeout=%d ms).",
                name,
                queue_settings.visibility_timeout,
            )

    def create_queue(self, name: str, visibility_timeout: int | timedelta | None = None) -> str:
        """Create a queue, using the configured default timeout when none is given."""
        if visibility_timeout is None:
            visibility_timeout = self.scotty.settings().default_visibility_timeout
        return self.service.create_queue(name, visibility_timeout)

    def push(self, queue: str, body: bytes | str) -> None:
        self.service.push(queue, body)

    def pull(self, queue: str) -> Message | None:
        return self.service.pull(queue)

    def delete(self, queue: str, message: Message) -> bool:
        return self.service.delete(queue, message)


def build_queue_service(settings: TwinQueueSettings, clock: Clock | None = None) -> BaseQueueService:
    """Instantiate the queue service selected by ``settings.backend``."""
    if settings.backend == "file":
        home = settings.resolved_home_directory()
        logger.info("Using file queue service in %s", home)
        return FileQueueService(
            home,
            clock,
            lock_retry_interval=settings.lock_retry_interval,
            stale_lock_timeout=settings.stale_lock_timeout,
        )
    logger.info("Using in-memory queue service")
    return InMemoryQueueService(clock)
