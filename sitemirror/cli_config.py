"""Configuration loading helpers for the CLI entrypoint."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

# Configuration directory for global CLI usage
CONFIG_DIR = Path.home() / ".config" / "sitemirror"
CONFIG_ENV_FILE = CONFIG_DIR / ".env"


def load_env_config(
    *,
    load_env: Callable[[Path], bool],
    cwd: Optional[Path] = None,
    config_env_file: Path = CONFIG_ENV_FILE,
) -> Optional[Path]:
    """Load .env configuration with fallback to the user config directory.

    Search order:
    1. .env in the current working directory
    2. ~/.config/sitemirror/.env

    Returns:
        The file that was loaded, or None if neither exists.
    """
    local_env = (cwd or Path.cwd()) / ".env"
    for candidate in (local_env, config_env_file):
        if candidate.is_file():
            load_env(candidate)
            logging.debug("Loaded environment from %s", candidate)
            return candidate
    return None
