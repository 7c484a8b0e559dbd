"""Runtime settings read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pixel.constants import CONTEXT_FILENAME

_TRUTHY = {"1", "true", "yes", "on"}


def get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    """Get environment variable with optional default."""
    return os.environ.get(name, default)


def env_flag(name: str) -> bool:
    value = get_env(name)
    if value is None:
        return False
    return value.strip().lower() in _TRUTHY


@dataclass
class Settings:
    directory: Path
    context_file: Path
    non_interactive: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, directory: Optional[str] = None) -> "Settings":
        root = Path(directory or get_env("PIXEL_DIRECTORY") or Path.cwd()).resolve()
        return cls(
            directory=root,
            context_file=root / CONTEXT_FILENAME,
            non_interactive=env_flag("NONINTERACTIVE"),
            log_level=(get_env("PIXEL_LOG_LEVEL", "INFO") or "INFO").upper(),
        )
