"""App configuration -- ``~/.trademind/config/config.yaml``.

Example::

    sync:
      backup_file_name: trademind_backup.json
      token_command: gcloud auth print-access-token
      autosave_delay_seconds: 5
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from . import TRADEMIND_HOME
from .sync.models import SyncConfig

logger = logging.getLogger("trademind.config")


class AppConfig(BaseModel):
    """Top-level app configuration."""

    sync: SyncConfig = Field(default_factory=SyncConfig)


def config_path(home: Optional[Path] = None) -> Path:
    return (home or Path(TRADEMIND_HOME)).expanduser() / "config" / "config.yaml"


def load_config(home: Optional[Path] = None) -> AppConfig:
    """Load app configuration from disk.

    Args:
        home: App home directory. Defaults to ~/.trademind.

    Returns:
        AppConfig loaded from config.yaml, or defaults.
    """
    path = config_path(home)
    if path.exists():
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
            return AppConfig(**data)
        except (yaml.YAMLError, ValueError, TypeError) as exc:
            logger.warning("Failed to load config: %s; using defaults", exc)
    return AppConfig()


def save_config(config: AppConfig, home: Optional[Path] = None) -> Path:
    """Persist app configuration to disk."""
    path = config_path(home)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        yaml.dump(config.model_dump(mode="json"), default_flow_style=False),
        encoding="utf-8",
    )
    return path
