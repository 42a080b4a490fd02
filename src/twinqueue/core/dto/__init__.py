"""DTO package for twinqueue core.

Provides the immutable message record and persisted queue metadata.
"""

from .message_dto import Message
from .queue_dto import QueueMetadata
