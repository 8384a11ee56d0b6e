"""Simple reporting utilities for CLI output."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Optional

from .models import ActiveSession, DayData
from .storage import Storage
from .timer import StopResult


class SummaryPrinter:
    """Render human-readable summaries in the console."""

    def __init__(self, data_dir: Optional[Path] = None, storage: Optional[Storage] = None) -> None:
        self.storage = storage or Storage(data_dir)

    def print_daily_summary(self, day: date) -> None:
        day_data = self.storage.load_day(day)
        if not day_data.records:
            print("No work recorded for the selected day.")
            return

        print(f"Summary for {day.isoformat()}")
        print("-" * 40)
        print(f"Total: {format_minutes(day_data.total_minutes())}")
        print()
        print("By task:")
        for name, minutes in day_data.grouped_totals():
            print(f"  {name[:28]:<28} {format_minutes(minutes)}")
        print()
        print("Records:")
        for line in record_lines(day_data):
            print(f"  {line}")


def record_lines(day_data: DayData) -> list[str]:
    return [
        f"{record.start}-{record.end}  {record.format_duration():>8}  {record.name}"
        for record in day_data.sorted_records()
    ]


def session_lines(session: ActiveSession, elapsed: timedelta) -> list[str]:
    lines = [
        f"  Task: {session.task_name}",
        f"  Status: {session.status.value.capitalize()}",
        f"  Elapsed: {format_duration(elapsed)}",
        f"  Started at: {format_clock(session.start_time)}",
    ]
    if session.description:
        lines.append(f"  Description: {session.description}")
    return lines


def stop_lines(session: ActiveSession, result: StopResult) -> list[str]:
    return [
        f"  Task: {session.task_name}",
        f"  Duration: {format_duration(result.elapsed)}",
        f"  Started at: {format_clock(session.start_time)}",
        f"  Ended at: {result.record.end}",
        f"  Record: #{result.record.id} on {result.date.isoformat()}"
        f" ({'created' if result.created else 'updated'})",
    ]


def format_duration(value: timedelta) -> str:
    total_seconds = max(int(value.total_seconds()), 0)
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}h {minutes:02d}m {secs:02d}s"
    return f"{minutes}m {secs:02d}s"


def format_minutes(minutes: int) -> str:
    hours, mins = divmod(minutes, 60)
    return f"{hours}h {mins:02d}m"


def format_clock(value: datetime) -> str:
    return value.strftime("%H:%M:%S")
