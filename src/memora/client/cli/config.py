"""Configuration utilities for memora CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_config_dir() -> Path:
    """Get the configuration directory for memora.

    Returns:
        Path to ~/.memora or equivalent.
    """
    return Path.home() / ".memora"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, Any]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def get_index_path() -> Path:
    """Get the local index location.

    Returns:
        Configured index path, or index.db in the config directory.
    """
    config = load_config()
    if config.get("index_path"):
        return Path(config["index_path"]).expanduser().resolve()
    return get_config_dir() / "index.db"


def setup_logging(level: int = logging.INFO, log_file: Path | None = None) -> None:
    """Configure the memora logger to write to stdout and optionally a file.

    Args:
        level: Logging level for the memora logger.
        log_file: Optional path of a log file.
    """
    formatter = logging.Formatter(LOG_FORMAT)

    memora_logger = logging.getLogger("memora")
    memora_logger.setLevel(level)
    for handler in memora_logger.handlers[:]:
        memora_logger.removeHandler(handler)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    memora_logger.addHandler(stdout_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        memora_logger.addHandler(file_handler)

    memora_logger.propagate = False
