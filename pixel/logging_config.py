"""Logging setup for the pixel CLI."""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional

MODULES = ["cli", "process", "branches", "context", "compose", "artifacts", "executor", "report", "batch"]


def setup_logging(level: Optional[str] = None, log_dir: Optional[str] = None) -> None:
    """
    Configure the root logger for a CLI invocation.

    Args:
        level: Log level name; defaults to PIXEL_LOG_LEVEL or INFO
        log_dir: Directory for a rotating log file; defaults to PIXEL_LOG_DIR,
            no file is written when neither is set
    """
    if level is None:
        level = os.getenv("PIXEL_LOG_LEVEL", "INFO")
    level = level.upper()
    if log_dir is None:
        log_dir = os.getenv("PIXEL_LOG_DIR")

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level, logging.INFO))
    root_logger.handlers.clear()

    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    # Subprocess output owns stdout; log lines go to stderr.
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path / "pixel.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for name in MODULES:
        override = os.getenv(f"PIXEL_LOG_LEVEL_{name.upper()}")
        if override:
            logging.getLogger(f"pixel.{name}").setLevel(getattr(logging, override.upper(), logging.INFO))
