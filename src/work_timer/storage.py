"""JSON file persistence for Day Files and the Active Session.

Each calendar date lives in its own ``YYYY-MM-DD.json`` file and the running
timer in ``active_session.json``. There is no locking: writers replace whole
files atomically and readers detect changes through modification times.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import date
from pathlib import Path
from typing import Any, NamedTuple, Optional

from .errors import IoFailure, Malformed, NotFound
from .models import ActiveSession, DayData
from .paths import SESSION_FILE_NAME, day_file_name, get_data_dir

logger = logging.getLogger(__name__)


class FileVersion(NamedTuple):
    """Identifies one write of a file.

    Files are replaced by rename, so the inode changes on every save even when
    two writes land inside the same filesystem timestamp tick.
    """

    modified_ns: int
    inode: int


class Storage:
    """Reads and writes the persisted state shared by every process."""

    def __init__(self, data_dir: Optional[Path] = None) -> None:
        self.data_dir = get_data_dir(data_dir)

    def day_path(self, day: date) -> Path:
        return self.data_dir / day_file_name(day)

    @property
    def session_path(self) -> Path:
        return self.data_dir / SESSION_FILE_NAME

    def load_day(self, day: date) -> DayData:
        """Load a Day File, falling back to an empty day when absent or unreadable."""
        path = self.day_path(day)
        try:
            payload = _read_json(path)
        except NotFound:
            return DayData(date=day)
        except Malformed as exc:
            logger.warning("Ignoring unreadable day file %s: %s", path, exc)
            return DayData(date=day)
        try:
            loaded = DayData.from_dict(payload)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            logger.warning("Ignoring malformed day file %s: %s", path, exc)
            return DayData(date=day)
        if loaded.date != day:
            logger.warning(
                "Day file %s claims date %s; using %s", path, loaded.date, day
            )
            loaded.date = day
        return loaded

    def save_day(self, day_data: DayData) -> None:
        path = self.day_path(day_data.date)
        _write_json(path, day_data.to_dict())
        logger.debug("Saved %d records to %s", len(day_data.records), path)

    def day_modified_time(self, day: date) -> Optional[FileVersion]:
        return _modified_time(self.day_path(day))

    def load_session(self) -> Optional[ActiveSession]:
        """Return the Active Session, or ``None`` when no timer exists."""
        path = self.session_path
        try:
            payload = _read_json(path)
        except NotFound:
            return None
        except Malformed as exc:
            logger.warning("Ignoring unreadable session file %s: %s", path, exc)
            return None
        try:
            return ActiveSession.from_dict(payload)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            logger.warning("Ignoring malformed session file %s: %s", path, exc)
            return None

    def save_session(self, session: ActiveSession) -> None:
        _write_json(self.session_path, session.to_dict())

    def clear_session(self) -> None:
        try:
            self.session_path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise IoFailure(f"Failed to remove {self.session_path}: {exc}") from exc

    def session_modified_time(self) -> Optional[FileVersion]:
        return _modified_time(self.session_path)


def _read_json(path: Path) -> Any:
    try:
        contents = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise NotFound(f"{path} does not exist") from exc
    except OSError as exc:
        raise IoFailure(f"Failed to read file: {path}: {exc}") from exc
    try:
        payload = json.loads(contents)
    except json.JSONDecodeError as exc:
        raise Malformed(f"Failed to parse JSON in {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise Malformed(f"Expected a JSON object in {path}")
    return payload


def _write_json(path: Path, payload: Any) -> None:
    """Write to a sibling temp file, then rename over the target."""
    tmp_name: Optional[str] = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)
            handle.write("\n")
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as exc:
        raise IoFailure(f"Failed to write file: {path}: {exc}") from exc
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                logger.debug("Could not remove temp file %s", tmp_name)


def _modified_time(path: Path) -> Optional[FileVersion]:
    """Last-write version of ``path``, or ``None`` when the file is absent."""
    try:
        stat = path.stat()
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise IoFailure(f"Failed to stat {path}: {exc}") from exc
    return FileVersion(stat.st_mtime_ns, stat.st_ino)
