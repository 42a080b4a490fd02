"""Configuration manager and settings models."""

from twinqueue.core.scotty.scotty import ConfigManager, Scotty
from twinqueue.core.scotty.settings import QueueSettings, TwinQueueSettings

__all__ = ["ConfigManager", "QueueSettings", "Scotty", "TwinQueueSettings"]
