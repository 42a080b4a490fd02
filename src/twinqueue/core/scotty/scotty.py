"""Scotty - Configuration Manager for twinqueue.

Scotty merges configuration from JSON files, dicts and environment variables,
providing a single place to read backend settings and pre-declared queues.

Configuration hierarchy:
- twinqueue: Core settings
  - backend: "memory" or "file"
  - home_directory: Root directory of the file backend
  - lock_retry_interval / stale_lock_timeout / default_visibility_timeout
- queues: Queues created at startup
  - <queue name>
    - visibility_timeout: Timeout in milliseconds

Environment variables follow the naming convention:
TWINQUEUE__<section>__<key> for nested values
Example: TWINQUEUE__TWINQUEUE__BACKEND="file"
         TWINQUEUE__QUEUES__ORDERS__VISIBILITY_TIMEOUT=30000
"""

import json
import logging
import os
from copy import deepcopy
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from twinqueue.core.scotty.settings import QueueSettings, TwinQueueSettings

logger = logging.getLogger(__name__)

SECTIONS = ("twinqueue", "queues")


class Scotty:
    """Configuration manager for twinqueue instances.

    Each TwinQueue instance has its own Scotty instance to maintain
    isolated configuration state.

    Famous quote from Montgomery Scott in Star Trek:
    "The right tool for the right job."
    """

    ENV_PREFIX = "TWINQUEUE"
    ENV_SEPARATOR = "__"

    def __init__(self, config_path: str | None = None):
        """Initialize Scotty configuration manager.

        Args:
            config_path: Path to JSON configuration file. If None, only
                        environment variables and dicts will be used.
        """
        self._config_path = config_path
        self._config = self.default_config()
        self._loaded = False
        logger.debug("Scotty instance created with config_path=%s", config_path)

    @staticmethod
    def default_config() -> dict[str, Any]:
        """Return a new default config dict each time."""
        return {"twinqueue": {}, "queues": {}}

    def load(self, config: dict[str, Any] | None = None) -> None:
        """Load configuration from JSON file, environment variables, or provided config.

        Args:
            config: Optional config dict merged over the JSON file.

        Priority (highest to lowest):
        1. Environment variables
        2. Provided config (if any)
        3. JSON file
        4. Default values
        """
        if self._loaded:
            logger.debug("Configuration already loaded, skipping reload")
            return

        self._config = self.default_config()

        if self._config_path:
            self._load_from_json()

        if config is not None:
            self._merge_sections(config, source="dict")

        self._load_from_env()

        self._loaded = True
        logger.info("Configuration loaded successfully")
        logger.debug(
            "Final config structure: twinqueue keys=%s, queues=%s",
            list(self._config["twinqueue"].keys()),
            list(self._config["queues"].keys()),
        )

    def _load_from_json(self) -> None:
        config_file = Path(self._config_path)
        if not config_file.exists():
            logger.warning("Config file not found: %s", self._config_path)
            return

        try:
            with open(config_file, encoding="utf-8") as f:
                json_config = json.load(f)
        except json.JSONDecodeError as e:
            logger.error("Invalid JSON in config file %s: %s", self._config_path, e)
            raise ValueError(f"Invalid JSON configuration file: {e}") from e

        self._merge_sections(json_config, source="JSON")
        logger.info("Loaded configuration from JSON: %s", self._config_path)

    def _merge_sections(self, config: Any, *, source: str) -> None:
        if not isinstance(config, dict):
            raise ValueError(f"Configuration from {source} must be an object")

        for section in SECTIONS:
            if section not in config:
                continue
            if not isinstance(config[section], dict):
                raise ValueError(f"'{section}' section must be an object")
            self._config[section].update(deepcopy(config[section]))

    def _load_from_env(self) -> None:
        """Load configuration from environment variables.

        - TWINQUEUE__TWINQUEUE__BACKEND=file
        - TWINQUEUE__QUEUES__ORDERS__VISIBILITY_TIMEOUT=30000

        Queue names taken from the environment are lower-cased.
        """
        prefix = f"{self.ENV_PREFIX}{self.ENV_SEPARATOR}"

        for env_key, env_value in os.environ.items():
            if not env_key.startswith(prefix):
                continue

            key_path = env_key[len(prefix) :].split(self.ENV_SEPARATOR)
            if len(key_path) < 2:
                logger.warning("Invalid env var format (too short): %s", env_key)
                continue

            section = key_path[0].lower()
            if section not in SECTIONS:
                logger.warning("Invalid section in env var %s: %s", env_key, section)
                continue
            if section == "queues" and len(key_path) < 3:
                logger.warning("Queue env var too short: %s", env_key)
                continue

            parsed_value = self._parse_env_value(env_value)
            target = self._config[section]
            for key in key_path[1:-1]:
                target = target.setdefault(key.lower(), {})
            target[key_path[-1].lower()] = parsed_value
            logger.debug("Set from env: %s = %s", env_key, parsed_value)

    @staticmethod
    def _parse_env_value(value: str) -> Any:
        """Parse as JSON (numbers, booleans, null...), falling back to the raw string."""
        try:
            return json.loads(value)
        except (json.JSONDecodeError, ValueError):
            return value

    def get_twinqueue_config(self, key: str | None = None, default: Any = None) -> Any:
        """Get core configuration, or one key of it."""
        if not self._loaded:
            self.load()

        if key is None:
            return deepcopy(self._config["twinqueue"])
        return self._config["twinqueue"].get(key, default)

    def get_queue_config(self, name: str | None = None) -> dict[str, Any]:
        """Get the pre-declared queues, or the entry of queue ``name``."""
        if not self._loaded:
            self.load()

        if name is None:
            return deepcopy(self._config["queues"])
        return deepcopy(self._config["queues"].get(name, {}))

    def set_twinqueue_config(self, key: str, value: Any) -> None:
        """Set core configuration (runtime only, not persisted)."""
        if not self._loaded:
            self.load()

        self._config["twinqueue"][key] = value
        logger.debug("Set twinqueue config: %s = %s", key, value)

    def settings(self) -> TwinQueueSettings:
        """Validate the core section.

        Raises:
            ValueError: If a setting has an invalid value.
        """
        try:
            return TwinQueueSettings.model_validate(self.get_twinqueue_config())
        except ValidationError as e:
            logger.error("Invalid twinqueue configuration: %s", e)
            raise ValueError(f"Invalid twinqueue configuration: {e}") from e

    def queue_settings(self) -> dict[str, QueueSettings]:
        """Validate the pre-declared queues, filling in the default timeout."""
        default_timeout = self.settings().default_visibility_timeout
        declared: dict[str, QueueSettings] = {}
        for name, entry in self.get_queue_config().items():
            if entry is None:
                entry = {}
            if not isinstance(entry, dict):
                raise ValueError(f"Queue entry {name!r} must be an object")
            try:
                declared[name] = QueueSettings.model_validate(
                    {"visibility_timeout": default_timeout, **entry}
                )
            except ValidationError as e:
                raise ValueError(f"Invalid configuration for queue {name!r}: {e}") from e
        return declared

    def reload(self) -> None:
        """Reload configuration from sources."""
        self._loaded = False
        self.load()
        logger.info("Configuration reloaded")

    @property
    def config_path(self) -> str | None:
        return self._config_path

    @property
    def is_loaded(self) -> bool:
        return self._loaded


ConfigManager = Scotty
