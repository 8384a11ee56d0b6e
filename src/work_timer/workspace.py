"""State owned by the interactive process.

A :class:`Workspace` is the one context value the dashboard threads through
every request: the day being viewed, its in-memory records, the undo/redo
history and the last known Active Session. Every mutation is saved
immediately and the saved version recorded with the :class:`SyncMonitor`,
so that :meth:`Workspace.sync` only reloads files changed by someone else.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional

from . import clock as clock_module
from .clock import Clock
from .errors import NotFound, WorkTimerError
from .history import History
from .models import ActiveSession, DayData, SessionStatus, TimePoint, WorkRecord
from .normalization import normalize_description, normalize_task_name
from .storage import Storage
from .sync import SyncMonitor
from .timer import StopResult, TimerManager, TimerSnapshot

logger = logging.getLogger(__name__)

DEFAULT_START = TimePoint(9, 0)
DEFAULT_END = TimePoint(17, 0)
BREAK_START = TimePoint(12, 0)
BREAK_END = TimePoint(12, 15)


@dataclass(slots=True)
class SyncResult:
    day_reloaded: bool = False
    session_reloaded: bool = False

    @property
    def changed(self) -> bool:
        return self.day_reloaded or self.session_reloaded


class Workspace:
    """Editing context for one interactive process."""

    def __init__(
        self,
        storage: Storage,
        *,
        timer: Optional[TimerManager] = None,
        monitor: Optional[SyncMonitor] = None,
        history: Optional[History] = None,
        clock: Clock = clock_module.now,
        start_date: Optional[date] = None,
    ) -> None:
        self.storage = storage
        self._clock = clock
        self.timer = timer or TimerManager(storage, clock=clock)
        self.monitor = monitor or SyncMonitor(storage)
        self.history = history or History()
        self.current_date = start_date or clock_module.today(clock)
        self.day = DayData(date=self.current_date)
        self.active_session: Optional[ActiveSession] = None
        self.sync()

    # -- reconciliation -------------------------------------------------

    def sync(self) -> SyncResult:
        """Reload whatever another process changed since the last check."""
        result = SyncResult()
        day_check = self.monitor.check_day(self.current_date)
        if day_check.changed:
            self.day = self.storage.load_day(self.current_date)
            self.monitor.mark_day_observed(self.current_date, day_check.version)
            self.history.clear()
            result.day_reloaded = True
            logger.info("Reloaded %s from disk", self.current_date)
        session_check = self.monitor.check_session()
        if session_check.changed:
            self.active_session = self.storage.load_session()
            self.monitor.mark_session_observed(session_check.version)
            result.session_reloaded = True
            logger.info(
                "Reloaded active session: %s",
                self.active_session.task_name if self.active_session else "none",
            )
        return result

    def _commit_day(self) -> None:
        self.storage.save_day(self.day)
        self.monitor.mark_day_observed(self.current_date)

    def _refresh_session(self) -> None:
        version = self.storage.session_modified_time()
        self.active_session = self.storage.load_session()
        self.monitor.mark_session_observed(version)

    def _reload_day(self, day: date) -> DayData:
        version = self.storage.day_modified_time(day)
        loaded = self.storage.load_day(day)
        self.monitor.mark_day_observed(day, version)
        return loaded

    # -- record editing -------------------------------------------------

    def add_record(
        self,
        name: str,
        start: Optional[TimePoint] = None,
        end: Optional[TimePoint] = None,
        description: Optional[str] = None,
    ) -> WorkRecord:
        name = normalize_task_name(name)
        self.history.record_snapshot(self.day)
        record = self.day.new_record(
            name=name,
            start=start or DEFAULT_START,
            end=end or DEFAULT_END,
            description=normalize_description(description) or "",
        )
        self._commit_day()
        return record

    def add_break(self) -> WorkRecord:
        return self.add_record("Break", BREAK_START, BREAK_END)

    def update_record(
        self,
        record_id: int,
        *,
        name: Optional[str] = None,
        start: Optional[TimePoint] = None,
        end: Optional[TimePoint] = None,
        description: Optional[str] = None,
    ) -> WorkRecord:
        self._require_record(record_id)
        if name is not None:
            name = normalize_task_name(name)
        self.history.record_snapshot(self.day)
        record = self._require_record(record_id)
        if name is not None:
            record.name = name
        if description is not None:
            record.description = normalize_description(description) or ""
        if start is not None or end is not None:
            record.set_times(start=start, end=end)
        self._commit_day()
        return record

    def set_current_time(self, record_id: int, field: str) -> WorkRecord:
        """Stamp the start or end of a record with the current time of day."""
        point = TimePoint.from_datetime(self._clock())
        if field == "start":
            return self.update_record(record_id, start=point)
        if field == "end":
            return self.update_record(record_id, end=point)
        raise ValueError(f"Unknown time field: {field}")

    def delete_records(self, record_ids: Iterable[int]) -> list[WorkRecord]:
        ids = [record_id for record_id in record_ids if record_id in self.day.records]
        if not ids:
            raise NotFound("No matching records")
        self.history.record_snapshot(self.day)
        removed = [self.day.records.pop(record_id) for record_id in ids]
        self._commit_day()
        return removed

    def delete_record(self, record_id: int) -> WorkRecord:
        self._require_record(record_id)
        return self.delete_records([record_id])[0]

    def undo(self) -> DayData:
        self.day = self.history.undo(self.day)
        self._commit_day()
        return self.day

    def redo(self) -> DayData:
        self.day = self.history.redo(self.day)
        self._commit_day()
        return self.day

    def _require_record(self, record_id: int) -> WorkRecord:
        record = self.day.get_record(record_id)
        if record is None:
            raise NotFound(f"No record with id {record_id} on {self.current_date}")
        return record

    # -- day navigation -------------------------------------------------

    def navigate(self, day: date) -> DayData:
        if day == self.current_date:
            return self.day
        self.day = self._reload_day(day)
        self.current_date = day
        self.history.clear()
        logger.debug("Switched to %s", day)
        return self.day

    def previous_day(self) -> DayData:
        return self.navigate(self.current_date - timedelta(days=1))

    def next_day(self) -> DayData:
        return self.navigate(self.current_date + timedelta(days=1))

    def go_to_today(self) -> DayData:
        return self.navigate(clock_module.today(self._clock))

    # -- timer ------------------------------------------------------------

    def timer_status(self) -> Optional[TimerSnapshot]:
        if self.active_session is None:
            return None
        return TimerSnapshot(
            session=self.active_session,
            elapsed=self.timer.elapsed(self.active_session),
        )

    def start_timer(self, task_name: str, description: Optional[str] = None) -> ActiveSession:
        return self._run_timer(lambda: self.timer.start(task_name, description))

    def start_timer_for_record(self, record_id: int) -> ActiveSession:
        """Start a timer that will extend ``record_id`` when stopped."""
        record = self._require_record(record_id)
        return self._run_timer(
            lambda: self.timer.start(
                record.name,
                record.description or None,
                source_record_id=record.id,
                source_record_date=self.current_date,
            )
        )

    def pause_timer(self) -> ActiveSession:
        return self._run_timer(self.timer.pause)

    def resume_timer(self) -> ActiveSession:
        return self._run_timer(self.timer.resume)

    def toggle_pause(self) -> ActiveSession:
        if self.active_session is not None and self.active_session.status is SessionStatus.PAUSED:
            return self.resume_timer()
        return self.pause_timer()

    def stop_timer(self) -> StopResult:
        before = self.day.copy()
        try:
            result = self.timer.stop()
        except WorkTimerError:
            self._refresh_session()
            raise
        self.active_session = None
        self.monitor.mark_session_observed()
        if result.date == self.current_date:
            self.history.record_snapshot(before)
            self.day = self._reload_day(self.current_date)
        return result

    def _run_timer(self, operation) -> ActiveSession:
        try:
            session = operation()
        except WorkTimerError:
            # The other process may have changed the session under us.
            self._refresh_session()
            raise
        self.active_session = session
        self.monitor.mark_session_observed()
        return session
