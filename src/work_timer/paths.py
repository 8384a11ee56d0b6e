"""Helpers for locating application directories."""

from __future__ import annotations

import os
from datetime import date
from pathlib import Path
from typing import Optional

from platformdirs import PlatformDirs


APP_NAME = "work-timer"
APP_AUTHOR = "work-timer"
DATA_DIR_ENV = "WORK_TIMER_DATA_DIR"
SESSION_FILE_NAME = "active_session.json"


def _dirs() -> PlatformDirs:
    return PlatformDirs(appname=APP_NAME, appauthor=APP_AUTHOR)


def get_data_dir(override: Optional[Path] = None) -> Path:
    """Return the base directory for persistent data."""
    if override is not None:
        path = Path(override)
    elif os.environ.get(DATA_DIR_ENV):
        path = Path(os.environ[DATA_DIR_ENV])
    else:
        path = Path(_dirs().user_data_path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_path() -> Path:
    return Path(_dirs().user_config_path) / "config.toml"


def day_file_name(day: date) -> str:
    return f"{day.isoformat()}.json"
