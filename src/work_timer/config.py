"""Configuration models and helpers for the work timer."""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, Optional

from .paths import get_config_path

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AppSettings:
    """Runtime configuration shared by the CLI and the dashboard."""

    data_dir: Optional[Path] = None
    poll_interval: timedelta = timedelta(seconds=1)
    history_depth: int = 50

    @classmethod
    def from_intervals(
        cls,
        poll_seconds: float,
        data_dir: Optional[Path] = None,
        history_depth: int | None = None,
    ) -> "AppSettings":
        return cls(
            data_dir=Path(data_dir) if data_dir is not None else None,
            poll_interval=timedelta(seconds=poll_seconds),
            history_depth=history_depth if history_depth is not None else 50,
        )


def load_settings(path: Optional[Path] = None) -> AppSettings:
    """Read ``config.toml``; a missing file yields the defaults.

    Recognised keys::

        data_dir = "/path/to/data"
        poll_seconds = 1.0
        history_depth = 50
    """
    config_path = Path(path) if path is not None else get_config_path()
    if not config_path.exists():
        return AppSettings()
    with config_path.open("rb") as handle:
        raw: dict[str, Any] = tomllib.load(handle)
    logger.debug("Loaded settings from %s", config_path)
    data_dir = raw.get("data_dir")
    return AppSettings.from_intervals(
        poll_seconds=float(raw.get("poll_seconds", 1.0)),
        data_dir=Path(data_dir).expanduser() if data_dir else None,
        history_depth=int(raw["history_depth"]) if "history_depth" in raw else None,
    )
