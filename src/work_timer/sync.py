"""Change detection for files written by another process.

The dashboard and the CLI never talk to each other directly. The dashboard
polls the modification version of the Day File it shows and of the Active
Session file; whenever either differs from what it last observed, the file is
reloaded in full and replaces the in-memory copy (last write wins).

A version only counts as observed once the caller records it. Callers check
first, load, and then call ``mark_*_observed`` with the version they checked,
so a load that fails is retried on the next poll. Any process that saves must
also mark right after its own write, or it will reload its own change.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import NamedTuple, Optional

from .storage import FileVersion, Storage

logger = logging.getLogger(__name__)

_UNSEEN = object()
_READ_NOW = object()


class Observation(NamedTuple):
    changed: bool
    version: Optional[FileVersion]


class SyncMonitor:
    """Remembers the last observed version of each watched file."""

    def __init__(self, storage: Storage) -> None:
        self.storage = storage
        self._days: dict[date, Optional[FileVersion]] = {}
        self._session: object = _UNSEEN

    def check_day(self, day: date) -> Observation:
        """Compare the Day File with the last observation without recording it.

        A day never observed before counts as changed.
        """
        current = self.storage.day_modified_time(day)
        changed = day not in self._days or self._days[day] != current
        if changed:
            logger.debug("Day file for %s changed: %s -> %s", day, self._days.get(day), current)
        return Observation(changed, current)

    def check_session(self) -> Observation:
        current = self.storage.session_modified_time()
        changed = self._session is _UNSEEN or self._session != current
        if changed:
            logger.debug("Session file changed: %s", current)
        return Observation(changed, current)

    def day_changed(self, day: date) -> bool:
        """Check the Day File and record the new version either way."""
        observation = self.check_day(day)
        self.mark_day_observed(day, observation.version)
        return observation.changed

    def session_changed(self) -> bool:
        observation = self.check_session()
        self.mark_session_observed(observation.version)
        return observation.changed

    def mark_day_observed(self, day: date, version: object = _READ_NOW) -> None:
        if version is _READ_NOW:
            version = self.storage.day_modified_time(day)
        self._days[day] = version  # type: ignore[assignment]

    def mark_session_observed(self, version: object = _READ_NOW) -> None:
        if version is _READ_NOW:
            version = self.storage.session_modified_time()
        self._session = version

    def forget_day(self, day: date) -> None:
        self._days.pop(day, None)
