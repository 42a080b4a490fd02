"""Errors for the queue service subsystem.

Only faults are raised. Expected steady-state outcomes (an empty queue on
``pull``, an unknown receipt token on ``delete``) are plain return values.
"""


class QueueServiceError(Exception):
    """Base class for queue service errors."""


class QueueNotFound(QueueServiceError):
    """Raised when an operation references a queue that was never created.

    Attributes:
        queue_name: Name of the queue that could not be resolved.
    """

    def __init__(self, queue_name: str):
        self.queue_name = queue_name
        super().__init__(f"Queue named {queue_name!r} does not exist.")


class StorageFailure(QueueServiceError):
    """Raised when reading, writing or locking persisted queue state fails.

    Attributes:
        details: Description of the failed operation.
        cause: Optional original exception from the filesystem.
    """

    def __init__(self, details: str, cause: BaseException | None = None):
        self.details = details
        self.cause = cause

        cause_info = f" (caused by: {type(cause).__name__}: {cause})" if cause else ""
        super().__init__(f"Storage failure: {details}{cause_info}")

        if cause:
            self.__cause__ = cause


class CorruptRecordError(StorageFailure):
    """Raised when a persisted record line cannot be decoded.

    Attributes:
        line: The offending record line.
    """

    def __init__(self, line: str, cause: BaseException | None = None):
        self.line = line
        super().__init__(f"Malformed queue record {line!r}", cause)


__all__ = [
    "QueueServiceError",
    "QueueNotFound",
    "StorageFailure",
    "CorruptRecordError",
]
