from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from work_timer.errors import IoFailure
from work_timer.models import ActiveSession, DayData, TimePoint
from work_timer.storage import Storage

from .conftest import TEST_DAY


def _day_with(*names: str) -> DayData:
    day = DayData(date=TEST_DAY)
    for name in names:
        day.new_record(name, TimePoint(9, 0), TimePoint(17, 0))
    return day


def test_day_file_name_format(storage: Storage) -> None:
    assert storage.day_path(TEST_DAY).name == "2025-11-06.json"


def test_missing_day_loads_empty(storage: Storage) -> None:
    day = storage.load_day(TEST_DAY)
    assert day.date == TEST_DAY
    assert day.records == {}
    assert day.next_id == 1
    assert storage.day_modified_time(TEST_DAY) is None


def test_save_and_load_preserves_records(storage: Storage) -> None:
    day = _day_with("Coding", "Meeting")
    day.records[1].description = "Important"
    storage.save_day(day)

    loaded = storage.load_day(TEST_DAY)
    assert loaded == day
    assert loaded.records[1].description == "Important"
    assert loaded.records[1].total_minutes == 480


def test_saved_json_is_pretty_and_has_next_id(storage: Storage) -> None:
    storage.save_day(_day_with("Task"))
    contents = storage.day_path(TEST_DAY).read_text(encoding="utf-8")
    assert "\n  " in contents
    payload = json.loads(contents)
    assert payload["next_id"] == 2
    assert payload["records"][0]["start"] == "09:00"


def test_save_overwrites_and_leaves_no_temp_files(storage: Storage) -> None:
    storage.save_day(_day_with("Task1"))
    storage.save_day(_day_with("Task2", "Task3"))

    loaded = storage.load_day(TEST_DAY)
    assert [record.name for record in loaded.sorted_records()] == ["Task2", "Task3"]
    assert sorted(p.name for p in storage.data_dir.iterdir()) == ["2025-11-06.json"]


def test_modified_time_changes_on_every_save(storage: Storage) -> None:
    storage.save_day(_day_with("A"))
    first = storage.day_modified_time(TEST_DAY)
    storage.save_day(_day_with("A"))
    second = storage.day_modified_time(TEST_DAY)

    assert first is not None and second is not None
    assert first != second


@pytest.mark.parametrize("contents", ["{not json", "[]", '{"date": "2025-11-06", "records": [{"id": 1}]}'])
def test_malformed_day_file_loads_empty(storage: Storage, contents: str) -> None:
    storage.day_path(TEST_DAY).write_text(contents, encoding="utf-8")
    day = storage.load_day(TEST_DAY)
    assert day.records == {}
    assert day.date == TEST_DAY


def test_session_round_trip_and_clear(storage: Storage) -> None:
    assert storage.load_session() is None
    session = ActiveSession(
        task_name="Work",
        start_time=datetime(2025, 11, 6, 9, 0, tzinfo=timezone.utc),
    )
    storage.save_session(session)
    assert storage.load_session() == session
    assert storage.session_modified_time() is not None

    storage.clear_session()
    storage.clear_session()
    assert storage.load_session() is None
    assert storage.session_modified_time() is None


def test_malformed_session_is_treated_as_absent(storage: Storage) -> None:
    storage.session_path.write_text('{"task_name": "x"}', encoding="utf-8")
    assert storage.load_session() is None


def test_write_failure_raises_io_failure(tmp_path: Path) -> None:
    storage = Storage(tmp_path / "data")
    blocker = storage.day_path(TEST_DAY)
    blocker.mkdir()
    with pytest.raises(IoFailure):
        storage.save_day(_day_with("A"))
    assert [p.name for p in storage.data_dir.iterdir()] == [blocker.name]


def test_data_dir_env_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    target = tmp_path / "from-env"
    monkeypatch.setenv("WORK_TIMER_DATA_DIR", str(target))
    storage = Storage()
    assert storage.data_dir == target
    assert target.is_dir()
