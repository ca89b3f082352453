# Task board: configuration
# Override via taskboard.yaml, TASKBOARD_* environment variables or CLI args.

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import List, Optional

import yaml

from .sources import API_URL, STORAGE_KEY, SEED_TASKS, TaskSource, RemoteSource, StaticSource
from .storage import KeyValueStorage, SQLiteStorage, MemoryStorage

logger = logging.getLogger(__name__)

CONFIG_NAME = "taskboard.yaml"

FALLBACKS = ("remote", "static")
BACKENDS = ("sqlite", "memory")


class ConfigError(Exception):
    """Raised when configuration values are invalid."""
    pass


@dataclass
class BoardConfig:
    """Runtime configuration for the task board."""

    # Storage
    db_path: str = "~/.local/share/taskboard/taskboard.db"
    storage_backend: str = "sqlite"  # "sqlite" or "memory"
    storage_key: str = STORAGE_KEY

    # First-load fallback when storage is empty
    fallback: str = "remote"  # "remote" (API, empty list on failure) or "static" (seed tasks)
    api_url: str = API_URL
    fetch_timeout: float = 10.0

    # Server
    host: str = "127.0.0.1"
    port: int = 3000
    log_level: str = "INFO"

    def validate(self) -> "BoardConfig":
        if self.fallback not in FALLBACKS:
            raise ConfigError(f"fallback must be one of {FALLBACKS}, got {self.fallback!r}")
        if self.storage_backend not in BACKENDS:
            raise ConfigError(
                f"storage_backend must be one of {BACKENDS}, got {self.storage_backend!r}"
            )
        self.db_path = str(Path(self.db_path).expanduser())
        return self

    def make_storage(self) -> KeyValueStorage:
        if self.storage_backend == "memory":
            return MemoryStorage()
        return SQLiteStorage(self.db_path)

    def make_sources(self) -> List[TaskSource]:
        """Fallbacks tried after storage, ending in a source that cannot fail."""
        if self.fallback == "static":
            return [StaticSource(SEED_TASKS)]
        return [RemoteSource(self.api_url, self.fetch_timeout), StaticSource([])]

    @classmethod
    def load(cls, path: Optional[str] = None) -> "BoardConfig":
        """Load config from YAML, then apply environment overrides."""
        path = path or os.environ.get("TASKBOARD_CONFIG")
        cfg_path = Path(path) if path else Path.cwd() / CONFIG_NAME
        known = {f.name for f in fields(cls)}
        cfg = cls()
        if cfg_path.exists():
            try:
                with open(cfg_path, "r") as f:
                    data = yaml.safe_load(f) or {}
                cfg = cls(**{k: v for k, v in data.items() if k in known})
            except (OSError, yaml.YAMLError, TypeError, AttributeError) as e:
                logger.warning(f"Cannot read config {cfg_path}: {e}; using defaults")
                cfg = cls()

        env = os.environ
        if env.get("TASKBOARD_DB"):
            cfg.db_path = env["TASKBOARD_DB"]
        if env.get("TASKBOARD_API_URL"):
            cfg.api_url = env["TASKBOARD_API_URL"]
        if env.get("TASKBOARD_FALLBACK"):
            cfg.fallback = env["TASKBOARD_FALLBACK"].strip().lower()
        return cfg.validate()
