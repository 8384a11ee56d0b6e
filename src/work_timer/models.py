"""Domain models for logged work and the active timer session."""

from __future__ import annotations

import copy
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True, order=True, slots=True)
class TimePoint:
    """Wall-clock time of day with minute resolution."""

    hour: int
    minute: int

    def __post_init__(self) -> None:
        if not 0 <= self.hour < 24:
            raise ValueError(f"Hour must be 0-23, got {self.hour}")
        if not 0 <= self.minute < 60:
            raise ValueError(f"Minute must be 0-59, got {self.minute}")

    @classmethod
    def parse(cls, value: str) -> "TimePoint":
        parts = value.strip().split(":")
        if len(parts) != 2:
            raise ValueError(f"Invalid time format: {value}")
        try:
            hour, minute = int(parts[0]), int(parts[1])
        except ValueError as exc:
            raise ValueError(f"Invalid time format: {value}") from exc
        return cls(hour, minute)

    @classmethod
    def from_datetime(cls, value: datetime) -> "TimePoint":
        return cls(value.hour, value.minute)

    @classmethod
    def from_minutes(cls, minutes: int) -> "TimePoint":
        minutes %= MINUTES_PER_DAY
        return cls(minutes // 60, minutes % 60)

    @property
    def minutes_since_midnight(self) -> int:
        return self.hour * 60 + self.minute

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


def duration_minutes(start: TimePoint, end: TimePoint) -> int:
    """Minutes from ``start`` to ``end``, wrapping past midnight."""
    start_mins = start.minutes_since_midnight
    end_mins = end.minutes_since_midnight
    if end_mins >= start_mins:
        return end_mins - start_mins
    return (MINUTES_PER_DAY - start_mins) + end_mins


@dataclass(slots=True)
class WorkRecord:
    """One logged interval within a day."""

    id: int
    name: str
    start: TimePoint
    end: TimePoint
    description: str = ""
    total_minutes: int = field(init=False)

    def __post_init__(self) -> None:
        self.total_minutes = duration_minutes(self.start, self.end)

    def set_times(
        self, start: Optional[TimePoint] = None, end: Optional[TimePoint] = None
    ) -> None:
        if start is not None:
            self.start = start
        if end is not None:
            self.end = end
        self.total_minutes = duration_minutes(self.start, self.end)

    def format_duration(self) -> str:
        hours, minutes = divmod(self.total_minutes, 60)
        return f"{hours}h {minutes:02d}m"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "start": str(self.start),
            "end": str(self.end),
            "total_minutes": self.total_minutes,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "WorkRecord":
        # total_minutes is derived; whatever is stored is ignored.
        return cls(
            id=int(payload["id"]),
            name=str(payload["name"]),
            start=TimePoint.parse(payload["start"]),
            end=TimePoint.parse(payload["end"]),
            description=str(payload.get("description") or ""),
        )


@dataclass(slots=True)
class DayData:
    """All work records for one calendar date (the contents of a Day File)."""

    date: date
    next_id: int = 1
    records: dict[int, WorkRecord] = field(default_factory=dict)

    def allocate_id(self) -> int:
        record_id = self.next_id
        self.next_id += 1
        return record_id

    def add_record(self, record: WorkRecord) -> None:
        if record.id in self.records:
            raise ValueError(f"Duplicate record id {record.id} for {self.date}")
        self.records[record.id] = record
        if record.id >= self.next_id:
            self.next_id = record.id + 1

    def new_record(
        self,
        name: str,
        start: TimePoint,
        end: TimePoint,
        description: str = "",
    ) -> WorkRecord:
        record = WorkRecord(
            id=self.allocate_id(),
            name=name,
            start=start,
            end=end,
            description=description,
        )
        self.records[record.id] = record
        return record

    def get_record(self, record_id: int) -> Optional[WorkRecord]:
        return self.records.get(record_id)

    def remove_record(self, record_id: int) -> Optional[WorkRecord]:
        return self.records.pop(record_id, None)

    def sorted_records(self) -> list[WorkRecord]:
        return sorted(self.records.values(), key=lambda record: (record.start, record.id))

    def total_minutes(self) -> int:
        return sum(record.total_minutes for record in self.records.values())

    def grouped_totals(self) -> list[tuple[str, int]]:
        totals: defaultdict[str, int] = defaultdict(int)
        for record in self.records.values():
            totals[record.name] += record.total_minutes
        return sorted(totals.items(), key=lambda item: item[1], reverse=True)

    def copy(self) -> "DayData":
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "next_id": self.next_id,
            "records": [
                record.to_dict()
                for record in sorted(self.records.values(), key=lambda r: r.id)
            ],
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "DayData":
        day = cls(date=date.fromisoformat(payload["date"]))
        for item in payload.get("records", []):
            day.add_record(WorkRecord.from_dict(item))
        stored_next_id = int(payload.get("next_id", 1))
        if day.records and stored_next_id <= max(day.records):
            logger.warning(
                "Stale next_id %d in %s; continuing from %d",
                stored_next_id,
                day.date,
                day.next_id,
            )
        # add_record already pushed next_id past every id; a larger stored
        # counter is kept so deleted ids are never handed out again.
        day.next_id = max(day.next_id, stored_next_id)
        return day


class SessionStatus(str, Enum):
    RUNNING = "running"
    PAUSED = "paused"


@dataclass(slots=True)
class StopMarker:
    """Where an in-progress stop is committing its record."""

    date: date
    record_id: int
    start: TimePoint
    end: TimePoint
    created: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "record_id": self.record_id,
            "start": str(self.start),
            "end": str(self.end),
            "created": self.created,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "StopMarker":
        return cls(
            date=date.fromisoformat(payload["date"]),
            record_id=int(payload["record_id"]),
            start=TimePoint.parse(payload["start"]),
            end=TimePoint.parse(payload["end"]),
            created=bool(payload["created"]),
        )


@dataclass(slots=True)
class ActiveSession:
    """The single in-flight timer, persisted independently of any Day File."""

    task_name: str
    start_time: datetime
    status: SessionStatus = SessionStatus.RUNNING
    description: Optional[str] = None
    paused_duration: timedelta = timedelta(0)
    paused_at: Optional[datetime] = None
    source_record_id: Optional[int] = None
    source_record_date: Optional[date] = None
    stop_marker: Optional[StopMarker] = None

    def elapsed(self, now: datetime) -> timedelta:
        """Active time so far; an in-progress pause does not count."""
        paused = self.paused_duration
        if self.status is SessionStatus.PAUSED and self.paused_at is not None:
            paused += max(now - self.paused_at, timedelta(0))
        elapsed = (now - self.start_time) - paused
        return max(elapsed, timedelta(0))

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_name": self.task_name,
            "description": self.description,
            "start_time": self.start_time.isoformat(),
            "status": self.status.value,
            "paused_duration_seconds": self.paused_duration.total_seconds(),
            "paused_at": self.paused_at.isoformat() if self.paused_at else None,
            "source_record_id": self.source_record_id,
            "source_record_date": (
                self.source_record_date.isoformat() if self.source_record_date else None
            ),
            "stop_marker": self.stop_marker.to_dict() if self.stop_marker else None,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ActiveSession":
        paused_at = payload.get("paused_at")
        source_date = payload.get("source_record_date")
        source_id = payload.get("source_record_id")
        marker = payload.get("stop_marker")
        return cls(
            task_name=str(payload["task_name"]),
            description=payload.get("description"),
            start_time=datetime.fromisoformat(payload["start_time"]),
            status=SessionStatus(payload["status"]),
            paused_duration=timedelta(
                seconds=float(payload.get("paused_duration_seconds", 0))
            ),
            paused_at=datetime.fromisoformat(paused_at) if paused_at else None,
            source_record_id=int(source_id) if source_id is not None else None,
            source_record_date=date.fromisoformat(source_date) if source_date else None,
            stop_marker=StopMarker.from_dict(marker) if marker else None,
        )
