from datetime import datetime, timezone

import pytest
import tzlocal

from todoclock.todoclock import DEFAULT_CONFIG, TimeClock

TODO_TXT = (
    "(A) 2024-01-01 Write report +p/Acme @office\n"
    "Call plumber @home\n"
    "\n"
    "x 2024-01-03 2024-01-02 Fix bike +p/home\n"
)


@pytest.fixture(autouse=True)
def _environment(monkeypatch):
    monkeypatch.setattr(tzlocal, "get_localzone", lambda: timezone.utc)
    monkeypatch.delenv("FORCE_COLOR", raising=False)
    monkeypatch.delenv("EDITOR", raising=False)
    monkeypatch.delenv("TODO_DIR", raising=False)
    monkeypatch.delenv("TODO_SH", raising=False)


@pytest.fixture
def todo_dir(tmp_path):
    directory = tmp_path / "todo"
    directory.mkdir()
    (directory / "todo.txt").write_text(TODO_TXT, encoding="utf-8")
    return directory


@pytest.fixture
def config_file(tmp_path):
    return str(tmp_path / "config" / "todoclock" / "config")


@pytest.fixture
def time_clock(todo_dir, config_file):
    clock = TimeClock(config_file, str(todo_dir), DEFAULT_CONFIG)
    clock._now = lambda: datetime(2024, 1, 1, 9, 30, tzinfo=clock.ltz)
    return clock


@pytest.fixture
def clock_file(todo_dir):
    return todo_dir / "clock.dat"
