"""The one clock both entry points use to decide what "now" and "today" are.

Timestamps are timezone-aware and expressed in the machine's local zone, so
the CLI and the dashboard always derive the same Day File for a moment.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Callable

Clock = Callable[[], datetime]


def now() -> datetime:
    return datetime.now().astimezone()


def today(clock: Clock = now) -> date:
    return clock().date()
