"""Timer sessions: start, pause, resume and stop a tracked task.

The Active Session is persisted after every transition so that the CLI and
the dashboard always see each other's changes. Stopping a session commits a
work record to a Day File: either the source record the session was started
from, or a new record in today's file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from . import clock as clock_module
from .clock import Clock
from .errors import AlreadyRunning, NotPaused, NotRunning
from .models import (
    ActiveSession,
    DayData,
    SessionStatus,
    StopMarker,
    TimePoint,
    WorkRecord,
)
from .normalization import normalize_description, normalize_task_name
from .storage import Storage

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TimerSnapshot:
    session: ActiveSession
    elapsed: timedelta


@dataclass(slots=True)
class StopResult:
    record: WorkRecord
    date: date
    created: bool
    elapsed: timedelta


class TimerManager:
    """Drives the Active Session state machine through the storage layer."""

    def __init__(self, storage: Storage, clock: Clock = clock_module.now) -> None:
        self.storage = storage
        self._clock = clock

    def start(
        self,
        task_name: str,
        description: Optional[str] = None,
        source_record_id: Optional[int] = None,
        source_record_date: Optional[date] = None,
    ) -> ActiveSession:
        if self.storage.load_session() is not None:
            raise AlreadyRunning()
        if (source_record_id is None) != (source_record_date is None):
            raise ValueError("source_record_id and source_record_date go together")

        session = ActiveSession(
            task_name=normalize_task_name(task_name),
            description=normalize_description(description),
            start_time=self._clock(),
            source_record_id=source_record_id,
            source_record_date=source_record_date,
        )
        self.storage.save_session(session)
        logger.info("Started timer for %r", session.task_name)
        return session

    def pause(self) -> ActiveSession:
        session = self._require_session()
        if session.status is SessionStatus.PAUSED:
            raise NotRunning("Timer is already paused")
        session.paused_at = self._clock()
        session.status = SessionStatus.PAUSED
        self.storage.save_session(session)
        logger.info("Paused timer for %r", session.task_name)
        return session

    def resume(self) -> ActiveSession:
        session = self._require_session()
        if session.status is not SessionStatus.PAUSED:
            raise NotPaused()
        self._fold_pause(session)
        session.status = SessionStatus.RUNNING
        self.storage.save_session(session)
        logger.info("Resumed timer for %r", session.task_name)
        return session

    def status(self) -> TimerSnapshot:
        session = self._require_session()
        return TimerSnapshot(session=session, elapsed=session.elapsed(self._clock()))

    def current(self) -> Optional[ActiveSession]:
        return self.storage.load_session()

    def elapsed(self, session: ActiveSession) -> timedelta:
        return session.elapsed(self._clock())

    def stop(self) -> StopResult:
        """Commit the session to a Day File and delete it.

        The Day File is saved before the session file is removed. A marker
        naming the target record is written to the session first, so a stop
        retried after a crash between the two writes re-applies the same
        interval instead of extending it or adding a duplicate.
        """
        session = self._require_session()
        now = self._clock()
        elapsed = session.elapsed(now)

        if session.stop_marker is not None:
            logger.warning("Completing an interrupted stop for %r", session.task_name)
            day, record, created = self._reapply_marker(session, session.stop_marker)
        else:
            end = TimePoint.from_datetime(now)
            start = TimePoint.from_datetime(now - elapsed)
            day, record, created = self._apply_stop(session, start, end, now.date())
            session.stop_marker = StopMarker(
                date=day.date,
                record_id=record.id,
                start=record.start,
                end=record.end,
                created=created,
            )
            self.storage.save_session(session)

        self.storage.save_day(day)
        self.storage.clear_session()
        logger.info(
            "Stopped timer for %r: %s record %d on %s (%s-%s)",
            session.task_name,
            "created" if created else "updated",
            record.id,
            day.date,
            record.start,
            record.end,
        )
        return StopResult(record=record, date=day.date, created=created, elapsed=elapsed)

    def _apply_stop(
        self,
        session: ActiveSession,
        start: TimePoint,
        end: TimePoint,
        today: date,
    ) -> tuple[DayData, WorkRecord, bool]:
        source_id = session.source_record_id
        source_date = session.source_record_date
        if source_id is not None and source_date is not None:
            day = self.storage.load_day(source_date)
            record = day.get_record(source_id)
            if record is not None:
                record.set_times(end=end)
                return day, record, False
            logger.warning(
                "Source record %d on %s is gone; creating a new record",
                source_id,
                source_date,
            )
        else:
            day = self.storage.load_day(today)
        record = day.new_record(
            name=session.task_name,
            start=start,
            end=end,
            description=session.description or "",
        )
        return day, record, True

    def _reapply_marker(
        self, session: ActiveSession, marker: StopMarker
    ) -> tuple[DayData, WorkRecord, bool]:
        day = self.storage.load_day(marker.date)
        record = day.get_record(marker.record_id)
        if record is not None and (
            not marker.created or record.name == session.task_name
        ):
            if marker.created:
                record.set_times(start=marker.start, end=marker.end)
            else:
                record.set_times(end=marker.end)
            return day, record, marker.created
        record = day.new_record(
            name=session.task_name,
            start=marker.start,
            end=marker.end,
            description=session.description or "",
        )
        return day, record, True

    def _fold_pause(self, session: ActiveSession) -> None:
        if session.paused_at is not None:
            pause = self._clock() - session.paused_at
            session.paused_duration += max(pause, timedelta(0))
        session.paused_at = None

    def _require_session(self) -> ActiveSession:
        session = self.storage.load_session()
        if session is None:
            raise NotRunning()
        return session
