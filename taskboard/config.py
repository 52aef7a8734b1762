# Task board — configuration
# Override via taskboard.yaml, environment variables, or CLI args.

import logging
import os
import yaml
from pathlib import Path
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

CONFIG_PATH = Path("taskboard.yaml")


@dataclass
class Config:
    """Runtime configuration for the task board server."""

    # Persistence
    db_path: str = "~/.local/share/taskboard/taskboard.db"
    autosave: bool = True          # save a snapshot after every change

    # HTTP binding
    host: str = "127.0.0.1"
    port: int = 3000
    api_secret: str = ""           # empty = mutating routes are open

    log_level: str = "INFO"

    def apply_env(self):
        """Environment variables win over the file."""
        if os.environ.get("TASKBOARD_DB"):
            self.db_path = os.environ["TASKBOARD_DB"]
        if os.environ.get("TASKBOARD_API_SECRET"):
            self.api_secret = os.environ["TASKBOARD_API_SECRET"]

    def resolve_paths(self):
        self.db_path = str(Path(self.db_path).expanduser())

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """Load config from YAML file, falling back to defaults."""
        cfg_path = Path(path) if path else CONFIG_PATH
        if cfg_path.exists():
            try:
                with open(cfg_path, "r") as f:
                    data = yaml.safe_load(f) or {}
                cfg = cls(**{k: v for k, v in data.items() if hasattr(cls, k)})
            except (OSError, yaml.YAMLError, TypeError, AttributeError) as e:
                logger.warning(f"Ignoring unreadable config {cfg_path}: {e}")
                cfg = cls()
        else:
            cfg = cls()
        cfg.apply_env()
        cfg.resolve_paths()
        return cfg
