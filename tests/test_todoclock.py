import json
import os
import sys
from datetime import date

import pytest
import yaml

from todoclock import APP_VERS, todoclock
from todoclock.todoclock import (
    DEFAULT_CONFIG,
    ClockShell,
    TimeClock,
    parse_report_options
)

ACME_LOG = "Write report +p/Acme\t20240101T090000 20240101T091500\n"


def test_missing_todo_dir_exits(config_file, capsys):
    with pytest.raises(SystemExit) as excinfo:
        TimeClock(config_file, None, DEFAULT_CONFIG)

    assert excinfo.value.code == 1
    assert "TODO_DIR" in capsys.readouterr().err
    assert not os.path.exists(config_file)


def test_todo_dir_from_config(tmp_path, todo_dir):
    config = tmp_path / "custom.ini"
    config.write_text(
        f"[main]\ntodo_dir = {todo_dir}\ntime_format = minutes\n",
        encoding="utf-8")

    clock = TimeClock(str(config), None, DEFAULT_CONFIG)

    assert clock.todo_dir == str(todo_dir)
    assert clock.time_format == "minutes"


def test_default_config_is_created(time_clock, config_file):
    with open(config_file, encoding="utf-8") as in_file:
        assert in_file.read() == DEFAULT_CONFIG
    assert time_clock.default_groupings == ["indate", "project"]


def test_report_by_project(time_clock, clock_file, capsys):
    clock_file.write_text(ACME_LOG, encoding="utf-8")

    time_clock.report(groupings=["project"])

    out = capsys.readouterr().out
    assert "+p/acme" in out
    assert "00:15  Write report +p/Acme" in out
    assert "00:15  +p/acme" in out


def test_report_in_minutes(time_clock, clock_file, capsys):
    clock_file.write_text(ACME_LOG, encoding="utf-8")

    time_clock.report(groupings=["project"], time_format="minutes")

    assert "   15  Write report +p/Acme" in capsys.readouterr().out


def test_report_sorts_groups(time_clock, clock_file, capsys):
    clock_file.write_text(
        "B +p/b\t20240102T090000 20240102T100000\n"
        "A +p/a\t20240101T090000 20240101T100000\n",
        encoding="utf-8")

    time_clock.report(groupings=["indate", "project"])

    out = capsys.readouterr().out
    assert out.index("20240101") < out.index("20240102")
    assert "      01:00  +p/a" in out


def test_report_filters_and_period(time_clock, clock_file, capsys):
    clock_file.write_text(
        ACME_LOG
        + "Call plumber @home\t20240102T090000 20240102T093000\n"
        + "Write report +p/Acme\t20240103T090000 20240103T090500\n",
        encoding="utf-8")

    time_clock.report(
        filters=["REPORT"], groupings=[], period="2024-01-02~")

    out = capsys.readouterr().out
    assert "00:05  Write report +p/Acme" in out
    assert "plumber" not in out
    assert "00:15" not in out


def test_report_as_yaml(time_clock, clock_file, capsys):
    clock_file.write_text(ACME_LOG, encoding="utf-8")

    time_clock.report(groupings=["project"], yaml_output=True)

    assert yaml.safe_load(capsys.readouterr().out) == {
        'total': 15,
        'groups': {
            '+p/acme': {
                'total': 15,
                'tasks': {'Write report +p/Acme': 15}
            }
        }
    }


def test_report_grouping_error_exits(time_clock, clock_file, capsys):
    clock_file.write_text("A plain line\n", encoding="utf-8")

    with pytest.raises(SystemExit):
        time_clock.report(groupings=["indate"])
    assert "ERROR" in capsys.readouterr().err


def test_report_filters_before_period(time_clock, clock_file, capsys):
    clock_file.write_text("A plain line\n" + ACME_LOG, encoding="utf-8")

    time_clock.report(
        filters=["report"], groupings=[], period="2024-01-01~")

    assert "00:15  Write report +p/Acme" in capsys.readouterr().out


def test_report_on_undecodable_log_exits(time_clock, clock_file, capsys):
    clock_file.write_bytes(
        b"Caf\xe9 task\t20240101T090000 20240101T091500\n")

    with pytest.raises(SystemExit) as excinfo:
        time_clock.report(groupings=["project"])

    assert excinfo.value.code == 1
    assert "not valid UTF-8" in capsys.readouterr().err


def test_report_warns_about_open_entries(time_clock, clock_file, capsys):
    clock_file.write_text(
        "One\t20240101T090000\nTwo\t20240101T091000\n", encoding="utf-8")

    time_clock.report(groupings=[])

    captured = capsys.readouterr()
    assert "WARNING" in captured.err
    assert "Two" in captured.out


def test_clock_in(time_clock, clock_file, capsys):
    time_clock.clock_in(2)

    assert clock_file.read_text(encoding="utf-8") == (
        "Call plumber @home\t20240101T093000")
    assert "Clocked in: Call plumber @home" in capsys.readouterr().out


def test_clock_in_clocks_out_other_task(time_clock, clock_file, capsys):
    clock_file.write_text(
        "Call plumber @home\t20240101T080000", encoding="utf-8")

    time_clock.clock_in(1)

    assert clock_file.read_text(encoding="utf-8") == (
        "Call plumber @home\t20240101T080000\t20240101T093000\n"
        "(A) 2024-01-01 Write report +p/Acme @office\t20240101T093000")
    out = capsys.readouterr().out
    assert "Clocked out: Call plumber @home (01:30)" in out
    assert "Clocked in: (A) 2024-01-01 Write report" in out


def test_clock_in_to_active_task_is_a_warning(
        time_clock, clock_file, capsys):
    content = "Call plumber @home\t20240101T080000"
    clock_file.write_text(content, encoding="utf-8")

    time_clock.clock_in(2)

    assert clock_file.read_text(encoding="utf-8") == content
    assert "WARNING: already clocked in" in capsys.readouterr().err


def test_clock_in_after_entry_with_bad_timestamp(
        time_clock, clock_file, capsys):
    clock_file.write_text(
        "Call plumber @home\t20241399T080000", encoding="utf-8")

    time_clock.clock_in(1)

    assert clock_file.read_text(encoding="utf-8") == (
        "Call plumber @home\t20241399T080000\t20240101T093000\n"
        "(A) 2024-01-01 Write report +p/Acme @office\t20240101T093000")
    captured = capsys.readouterr()
    assert "Clocked out: Call plumber @home\n" in captured.out
    assert "Clocked in: (A) 2024-01-01 Write report" in captured.out
    assert "WARNING: invalid timestamp" in captured.err


@pytest.mark.parametrize("linenum", [0, 3, 9])
def test_clock_in_line_out_of_range(time_clock, clock_file, linenum, capsys):
    with pytest.raises(SystemExit) as excinfo:
        time_clock.clock_in(linenum)

    assert excinfo.value.code == 1
    assert f"line {linenum}" in capsys.readouterr().err
    assert not clock_file.exists() or clock_file.read_text() == ""


def test_clock_out(time_clock, clock_file, capsys):
    clock_file.write_text(
        "Call plumber @home\t20240101T090000", encoding="utf-8")

    time_clock.clock_out()

    assert clock_file.read_text(encoding="utf-8") == (
        "Call plumber @home\t20240101T090000\t20240101T093000")
    assert "(00:30)" in capsys.readouterr().out


def test_clock_out_with_bad_timestamp_still_succeeds(
        time_clock, clock_file, capsys):
    clock_file.write_text(
        "Call plumber @home\t20241399T080000", encoding="utf-8")

    time_clock.clock_out()

    assert clock_file.read_text(encoding="utf-8") == (
        "Call plumber @home\t20241399T080000\t20240101T093000")
    captured = capsys.readouterr()
    assert "Clocked out: Call plumber @home" in captured.out
    assert "ERROR" not in captured.err


def test_clock_out_without_active_task(time_clock, capsys):
    with pytest.raises(SystemExit) as excinfo:
        time_clock.clock_out()

    assert excinfo.value.code == 1
    assert "ERROR: no active task." in capsys.readouterr().err


def test_interactive_errors_do_not_exit(time_clock, capsys):
    time_clock.interactive = True

    time_clock.clock_out()

    assert "ERROR: no active task." in capsys.readouterr().err


def test_what(time_clock, clock_file, capsys):
    time_clock.what()
    assert "No active task." in capsys.readouterr().out

    clock_file.write_text(
        "Call plumber @home\t20240101T090000", encoding="utf-8")
    time_clock.what()

    out = capsys.readouterr().out
    assert "Active: Call plumber @home" in out
    assert "2024-01-01 09:00" in out
    assert "00:30" in out


def test_do_clocks_out_and_runs_todo_sh(
        time_clock, clock_file, monkeypatch):
    calls = []
    monkeypatch.setattr(
        todoclock.subprocess, "run",
        lambda command, check: calls.append(command))
    time_clock.todo_sh = "mytodo"
    clock_file.write_text(
        "Call plumber @home\t20240101T090000", encoding="utf-8")

    time_clock.do(2)

    assert clock_file.read_text(encoding="utf-8").endswith(
        "\t20240101T093000")
    assert calls == [["mytodo", "do", "2"]]


def test_do_leaves_other_active_task(time_clock, clock_file, monkeypatch):
    calls = []
    monkeypatch.setattr(
        todoclock.subprocess, "run",
        lambda command, check: calls.append(command))
    content = "Call plumber @home\t20240101T090000"
    clock_file.write_text(content, encoding="utf-8")

    time_clock.do(1)

    assert clock_file.read_text(encoding="utf-8") == content
    assert calls == [["todo.sh", "do", "1"]]


def test_list_tasks_marks_active(time_clock, clock_file, capsys):
    clock_file.write_text(
        "Call plumber @home\t20240101T090000", encoding="utf-8")

    time_clock.list_tasks()

    out = capsys.readouterr().out
    assert "2 * Call plumber @home" in out
    assert "1   (A) 2024-01-01 Write report" in out
    assert "\n3 " not in out


def test_list_tasks_filters(time_clock, capsys):
    time_clock.list_tasks(["bike"])

    out = capsys.readouterr().out
    assert "Fix bike" in out
    assert "plumber" not in out


def test_query_json(time_clock, clock_file, capsys):
    clock_file.write_text(ACME_LOG, encoding="utf-8")

    time_clock.query(json_output=True)

    entries = json.loads(capsys.readouterr().out)['entries']
    assert entries == [{
        'clock_in': "20240101T090000",
        'clock_out': "20240101T091500",
        'minutes': 15,
        'task': "Write report +p/Acme",
        'projects': ["+p/Acme"],
        'contexts': []
    }]


def test_query_text(time_clock, clock_file, capsys):
    clock_file.write_text(ACME_LOG, encoding="utf-8")

    time_clock.query(["nothing"])
    assert capsys.readouterr().out == "No results.\n"

    time_clock.query(["acme"])
    assert capsys.readouterr().out == (
        "20240101T090000\t20240101T091500\t15\tWrite report +p/Acme\n")


def test_parse_period(time_clock):
    assert time_clock._parse_period("today") == (
        date(2024, 1, 1), date(2024, 1, 1))
    assert time_clock._parse_period("lastmonth") == (
        date(2023, 12, 1), date(2023, 12, 31))
    assert time_clock._parse_period("2024-01-02~2024-01-05") == (
        date(2024, 1, 2), date(2024, 1, 5))
    assert time_clock._parse_period("~2024-01-05") == (
        None, date(2024, 1, 5))


def test_invalid_period_exits(time_clock, clock_file, capsys):
    clock_file.write_text(ACME_LOG, encoding="utf-8")

    with pytest.raises(SystemExit):
        time_clock.report(period="not a date")
    assert "invalid report period" in capsys.readouterr().err


def test_parse_report_options():
    options = parse_report_options(
        "acme --groupings=project,indate --period today -m --yaml |")

    assert options == {
        'filters': ["acme"],
        'groupings': ["project", "indate"],
        'period': "today",
        'time_format': "minutes",
        'yaml_output': True,
        'pager': True
    }


def test_shell_commands(time_clock, clock_file, capsys):
    time_clock.interactive = True
    shell = ClockShell(time_clock, watch=False)
    assert not shell.running

    shell.onecmd("in 2")
    assert shell.running
    assert "clock*" in shell.prompt

    shell.onecmd("in nope")
    shell.onecmd("out")
    assert not shell.running
    assert clock_file.read_text(encoding="utf-8") == (
        "Call plumber @home\t20240101T093000\t20240101T093000")
    assert "is not a line number" in capsys.readouterr().err


def test_main_report(todo_dir, tmp_path, clock_file, monkeypatch, capsys):
    clock_file.write_text(ACME_LOG, encoding="utf-8")
    monkeypatch.setenv("TODO_DIR", str(todo_dir))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.setattr(
        sys, "argv", ["todoclock", "report", "--groupings=project"])

    todoclock.main()

    out = capsys.readouterr().out
    assert "+p/acme" in out
    assert "00:15" in out
    assert (tmp_path / "xdg" / "todoclock" / "config").exists()


def test_main_without_todo_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.setattr(sys, "argv", ["todoclock", "what"])

    with pytest.raises(SystemExit) as excinfo:
        todoclock.main()
    assert excinfo.value.code == 1


def test_main_version(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["todoclock", "version"])

    todoclock.main()

    assert capsys.readouterr().out.startswith(f"todoclock {APP_VERS}\n")


def test_is_running_reads_its_own_log(time_clock, clock_file):
    clock_file.write_text(
        "Call plumber @home\t20240101T090000", encoding="utf-8")
    time_clock.clock_log.records = []

    assert time_clock.is_running()
    assert time_clock.clock_log.records == []
