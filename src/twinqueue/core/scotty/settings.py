"""Validated settings read from Scotty."""

import os
from typing import Literal

from pydantic import BaseModel, Field

from twinqueue.core.utils import get_default_home_directory


class TwinQueueSettings(BaseModel):
    """Core settings of the ``twinqueue`` section.

    Attributes:
        backend: Queue service implementation to build.
        home_directory: Root directory of the file backend.
        lock_retry_interval: Sleep between lock attempts (milliseconds).
        stale_lock_timeout: Age after which a lock marker is broken
            (milliseconds). None keeps waiting forever.
        default_visibility_timeout: Timeout used by pre-declared queues that
            do not set one (milliseconds).
    """

    backend: Literal["memory", "file"] = Field(default="memory")
    home_directory: str = Field(default_factory=get_default_home_directory)
    lock_retry_interval: int = Field(default=20, gt=0)
    stale_lock_timeout: int | None = Field(default=None, gt=0)
    default_visibility_timeout: int = Field(default=30_000, ge=0)

    model_config = {"extra": "forbid"}

    def resolved_home_directory(self) -> str:
        return os.path.abspath(os.path.expanduser(self.home_directory))


class QueueSettings(BaseModel):
    """Entry of the ``queues`` section."""

    visibility_timeout: int = Field(ge=0)

    model_config = {"extra": "forbid"}
