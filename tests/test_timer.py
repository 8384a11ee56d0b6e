from __future__ import annotations

from datetime import date, timedelta

import pytest

from work_timer.errors import AlreadyRunning, IoFailure, NotPaused, NotRunning
from work_timer.models import DayData, SessionStatus, TimePoint
from work_timer.storage import Storage
from work_timer.timer import TimerManager

from .conftest import TEST_DAY, FakeClock


@pytest.fixture
def timer(storage: Storage, clock: FakeClock) -> TimerManager:
    return TimerManager(storage, clock=clock)


def _seed_day(storage: Storage, day: date = TEST_DAY) -> DayData:
    data = DayData(date=day)
    data.new_record("Coding", TimePoint(9, 0), TimePoint(10, 0), "feature work")
    storage.save_day(data)
    return data


def test_start_persists_running_session(timer: TimerManager, storage: Storage) -> None:
    session = timer.start("  Write   spec ", "draft")

    assert session.task_name == "Write spec"
    assert session.status is SessionStatus.RUNNING
    assert session.paused_duration == timedelta(0)
    assert storage.load_session() == session


def test_start_rejects_empty_name(timer: TimerManager, storage: Storage) -> None:
    with pytest.raises(ValueError, match="cannot be empty"):
        timer.start("   ")
    assert storage.load_session() is None


def test_cannot_start_twice(timer: TimerManager) -> None:
    timer.start("Task 1")
    with pytest.raises(AlreadyRunning, match="already running"):
        timer.start("Task 2")


def test_operations_without_session_fail(timer: TimerManager) -> None:
    with pytest.raises(NotRunning):
        timer.pause()
    with pytest.raises(NotRunning):
        timer.resume()
    with pytest.raises(NotRunning):
        timer.status()
    with pytest.raises(NotRunning):
        timer.stop()


def test_pause_twice_is_rejected(timer: TimerManager) -> None:
    timer.start("Work")
    timer.pause()
    with pytest.raises(NotRunning, match="already paused"):
        timer.pause()


def test_resume_requires_pause(timer: TimerManager) -> None:
    timer.start("Work")
    with pytest.raises(NotPaused):
        timer.resume()


def test_elapsed_excludes_current_and_past_pauses(
    timer: TimerManager, clock: FakeClock
) -> None:
    timer.start("Work")
    clock.advance(minutes=10)
    timer.pause()
    clock.advance(minutes=5)
    assert timer.status().elapsed == timedelta(minutes=10)

    timer.resume()
    clock.advance(minutes=3)
    snapshot = timer.status()
    assert snapshot.elapsed == timedelta(minutes=13)
    assert snapshot.session.paused_duration == timedelta(minutes=5)
    assert snapshot.session.paused_at is None


def test_pause_and_resume_from_different_processes(
    storage: Storage, other_storage: Storage, clock: FakeClock
) -> None:
    TimerManager(storage, clock=clock).start("Work")
    clock.advance(minutes=20)
    TimerManager(other_storage, clock=clock).pause()
    clock.advance(minutes=15)
    TimerManager(storage, clock=clock).resume()
    clock.advance(minutes=10)

    assert TimerManager(other_storage, clock=clock).status().elapsed == timedelta(minutes=30)


def test_each_stop_creates_one_record_with_increasing_ids(
    timer: TimerManager, storage: Storage, clock: FakeClock
) -> None:
    ids = []
    for name in ("A", "B", "C"):
        timer.start(name)
        clock.advance(minutes=15)
        result = timer.stop()
        assert result.created
        ids.append(result.record.id)

    assert ids == [1, 2, 3]
    day = storage.load_day(TEST_DAY)
    assert [record.name for record in day.sorted_records()] == ["A", "B", "C"]
    assert storage.load_session() is None


def test_stop_record_excludes_paused_time(
    timer: TimerManager, storage: Storage, clock: FakeClock
) -> None:
    timer.start("Write spec", "chapter one")
    clock.advance(minutes=30)
    timer.pause()
    clock.advance(minutes=30)
    timer.resume()
    clock.advance(minutes=30)
    result = timer.stop()

    assert result.elapsed == timedelta(minutes=60)
    record = storage.load_day(TEST_DAY).records[result.record.id]
    assert (str(record.start), str(record.end)) == ("09:30", "10:30")
    assert record.total_minutes == 60
    assert record.description == "chapter one"


def test_short_pause_is_not_counted(timer: TimerManager, clock: FakeClock) -> None:
    timer.start("Write spec")
    clock.advance(minutes=5)
    timer.pause()
    clock.advance(seconds=10)
    timer.resume()
    clock.advance(minutes=5)
    result = timer.stop()

    assert result.elapsed == timedelta(minutes=10)
    assert result.record.total_minutes == 10


def test_stop_while_paused_ignores_the_open_pause(
    timer: TimerManager, clock: FakeClock
) -> None:
    timer.start("Work")
    clock.advance(minutes=20)
    timer.pause()
    clock.advance(minutes=40)
    result = timer.stop()
    assert result.elapsed == timedelta(minutes=20)
    assert result.record.total_minutes == 20


def test_stop_updates_source_record_in_place(
    timer: TimerManager, storage: Storage, clock: FakeClock
) -> None:
    _seed_day(storage)
    clock.advance(hours=1)
    timer.start("Coding", source_record_id=1, source_record_date=TEST_DAY)
    clock.advance(minutes=45)
    result = timer.stop()

    assert not result.created
    day = storage.load_day(TEST_DAY)
    assert list(day.records) == [1]
    record = day.records[1]
    assert str(record.start) == "09:00"
    assert str(record.end) == "10:45"
    assert record.total_minutes == 105
    assert record.description == "feature work"


def test_repeated_source_cycles_never_duplicate(
    timer: TimerManager, storage: Storage, clock: FakeClock
) -> None:
    _seed_day(storage)
    for _ in range(2):
        clock.advance(minutes=30)
        timer.start("Coding", source_record_id=1, source_record_date=TEST_DAY)
        clock.advance(minutes=30)
        timer.stop()

    day = storage.load_day(TEST_DAY)
    assert [record.name for record in day.records.values()] == ["Coding"]
    assert str(day.records[1].end) == "11:00"


def test_source_record_on_another_day(
    storage: Storage, clock: FakeClock
) -> None:
    yesterday = TEST_DAY - timedelta(days=1)
    _seed_day(storage, yesterday)
    timer = TimerManager(storage, clock=clock)
    timer.start("Coding", source_record_id=1, source_record_date=yesterday)
    clock.advance(minutes=20)
    result = timer.stop()

    assert result.date == yesterday
    assert str(storage.load_day(yesterday).records[1].end) == "09:20"
    assert storage.day_modified_time(TEST_DAY) is None


def test_deleted_source_record_falls_back_to_new_record(
    timer: TimerManager, storage: Storage, other_storage: Storage, clock: FakeClock
) -> None:
    _seed_day(storage)
    timer.start("Coding", source_record_id=1, source_record_date=TEST_DAY)
    day = other_storage.load_day(TEST_DAY)
    day.remove_record(1)
    other_storage.save_day(day)
    clock.advance(minutes=25)

    result = timer.stop()

    assert result.created
    assert result.record.id == 2
    assert list(storage.load_day(TEST_DAY).records) == [2]


def test_source_record_requires_both_fields(timer: TimerManager) -> None:
    with pytest.raises(ValueError):
        timer.start("Coding", source_record_id=1)


def test_retried_stop_after_crash_does_not_duplicate_or_extend(
    timer: TimerManager,
    storage: Storage,
    clock: FakeClock,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    timer.start("Work")
    clock.advance(minutes=30)

    def failing_clear() -> None:
        raise IoFailure("disk went away")

    monkeypatch.setattr(storage, "clear_session", failing_clear)
    with pytest.raises(IoFailure):
        timer.stop()
    monkeypatch.undo()

    leftover = storage.load_session()
    assert leftover is not None and leftover.stop_marker is not None
    assert len(storage.load_day(TEST_DAY).records) == 1

    clock.advance(minutes=30)
    result = timer.stop()

    day = storage.load_day(TEST_DAY)
    assert list(day.records) == [1]
    assert str(day.records[1].end) == "09:30"
    assert result.record.id == 1
    assert storage.load_session() is None


def test_retried_stop_recreates_record_when_day_save_was_lost(
    timer: TimerManager,
    storage: Storage,
    clock: FakeClock,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    timer.start("Work")
    clock.advance(minutes=30)

    def failing_save(_day: DayData) -> None:
        raise IoFailure("disk full")

    monkeypatch.setattr(storage, "save_day", failing_save)
    with pytest.raises(IoFailure):
        timer.stop()
    monkeypatch.undo()

    clock.advance(minutes=10)
    result = timer.stop()

    assert result.created
    assert (str(result.record.start), str(result.record.end)) == ("09:00", "09:30")
    assert list(storage.load_day(TEST_DAY).records) == [1]
