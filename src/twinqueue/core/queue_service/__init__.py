"""Queue services with visibility timeouts, in memory or persisted to files."""

from twinqueue.core.queue_service.base import BaseQueueService
from twinqueue.core.queue_service.clock import Clock, ManualClock, SystemClock
from twinqueue.core.queue_service.errors import (
    CorruptRecordError,
    QueueNotFound,
    QueueServiceError,
    StorageFailure,
)
from twinqueue.core.queue_service.file_service import FileQueueService, hash_queue_name
from twinqueue.core.queue_service.locking import DirectoryLock
from twinqueue.core.queue_service.memory import InMemoryQueueService
from twinqueue.core.queue_service.registry import QueueRegistry

__all__ = [
    "BaseQueueService",
    "Clock",
    "CorruptRecordError",
    "DirectoryLock",
    "FileQueueService",
    "InMemoryQueueService",
    "ManualClock",
    "QueueNotFound",
    "QueueRegistry",
    "QueueServiceError",
    "StorageFailure",
    "SystemClock",
    "hash_queue_name",
]
