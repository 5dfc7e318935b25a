# -*- coding: utf-8 -*-
"""todoclock.clocklog
Read and append to the clock log (clock.dat), read the task list
(todo.txt), resolve the active task and calculate entry durations.

The clock log is append-only. Clocking in appends a line made of the
task's todo text, a tab and a timestamp. Clocking out appends a tab and
a timestamp to that same line, which closes the entry. Only the last
entry of a well-formed log can be open.

Copyright © 2021 Sean O'Connell. Released under MIT license.

"""
import fcntl
import os
from contextlib import contextmanager
from datetime import datetime

from todoclock.errors import (
    InvalidState,
    LineOutOfRange,
    MalformedLog,
    MissingClockIn
)
from todoclock.taskline import format_timestamp, parse_line, parse_timestamp


def _read_text(filename):
    """Read a UTF-8 file, treating a missing file as empty.

    Args:
        filename (str): the file to read.

    Returns:
        content (str):  the file contents.

    """
    try:
        with open(filename, "r", encoding="utf-8", newline="") as in_file:
            return in_file.read()
    except FileNotFoundError:
        return ""
    except UnicodeDecodeError as err:
        raise MalformedLog(f"{filename} is not valid UTF-8 text") from err


def _split_lines(content):
    """Split file contents on newlines, dropping the final empty line."""
    lines = content.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return lines


class ClockLog():
    """The append-only clock log.

    Attributes:
        filename (str): the clock log file.
        records (list): parsed TaskRecord entries in file order.

    """
    def __init__(self, filename):
        """Initializes a ClockLog() object."""
        self.filename = filename
        self.records = []
        self._handle = None

    def _content(self):
        """Return the current file contents."""
        if self._handle:
            self._handle.seek(0)
            try:
                return self._handle.read()
            except UnicodeDecodeError as err:
                raise MalformedLog(
                    f"{self.filename} is not valid UTF-8 text") from err
        return _read_text(self.filename)

    def load(self):
        """Read the clock log, skipping blank lines.

        Returns:
            records (list): the parsed entries, in file order.

        """
        self.records = [
            parse_line(line) for line in _split_lines(self._content())
            if line.strip()]
        return self.records

    @contextmanager
    def locked(self):
        """Hold an exclusive lock on the clock log and (re)load it.

        The log file is created if it doesn't exist. Writes made inside
        the block go through the locked file handle.

        """
        with open(self.filename, "a+",
                  encoding="utf-8", newline="") as handle:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
            self._handle = handle
            try:
                self.load()
                yield self
            finally:
                self._handle = None
                handle.flush()
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)

    def active(self):
        """Return the open entry at the end of the log, or None."""
        if self.records and self.records[-1].is_open:
            return self.records[-1]
        return None

    def verify(self):
        """Check that no entry but the last is left open.

        Raises:
            MalformedLog: if earlier entries are open.

        """
        open_entries = [
            num for num, record in enumerate(self.records[:-1], 1)
            if record.is_open]
        if open_entries:
            numbers = ', '.join(str(num) for num in open_entries)
            raise MalformedLog(
                f"clock log has open entries before the last one "
                f"(entries {numbers})",
                open_entries)

    def clock_in(self, todo_text, now=None):
        """Append a new open entry for a task.

        Args:
            todo_text (str):    the todo text of the task.
            now (datetime):     clock-in time (default: now).

        Returns:
            record (TaskRecord): the new open entry.

        """
        if self._handle is None:
            with self.locked():
                return self.clock_in(todo_text, now)
        now = now or datetime.now()
        line = f"{todo_text}\t{format_timestamp(now)}"
        content = self._content()
        if content and not content.endswith("\n"):
            line = f"\n{line}"
        self._handle.seek(0, os.SEEK_END)
        self._handle.write(line)
        self._handle.flush()
        record = parse_line(line.lstrip("\n"))
        self.records.append(record)
        return record

    def clock_out(self, now=None):
        """Close the open entry at the end of the log.

        Args:
            now (datetime): clock-out time (default: now).

        Returns:
            record (TaskRecord): the closed entry.

        Raises:
            InvalidState: if there is no active task.

        """
        if self._handle is None:
            with self.locked():
                return self.clock_out(now)
        active = self.active()
        if active is None:
            raise InvalidState("no active task")
        now = now or datetime.now()
        stamp = format_timestamp(now)
        # the stamp has to land on the open entry's own line
        content = self._content()
        trimmed = content.rstrip()
        if len(trimmed) != len(content):
            self._handle.truncate(len(trimmed.encode("utf-8")))
        self._handle.seek(0, os.SEEK_END)
        self._handle.write(f"\t{stamp}")
        self._handle.flush()
        record = parse_line(f"{active.line.rstrip()}\t{stamp}")
        self.records[-1] = record
        return record


class TodoList():
    """The task list, addressed by 1-based line number.

    Attributes:
        filename (str): the task list file.
        lines (list):   raw lines, blank lines included.

    """
    def __init__(self, filename):
        """Initializes a TodoList() object."""
        self.filename = filename
        self.lines = []

    def load(self):
        """Read the task list. A missing file is an empty list."""
        self.lines = _split_lines(_read_text(self.filename))
        return self.lines

    def line(self, linenum):
        """Return the parsed task on a line.

        Args:
            linenum (int):  the 1-based line number.

        Returns:
            record (TaskRecord): the parsed line.

        Raises:
            LineOutOfRange: if the line doesn't exist or is blank.

        """
        if (not 1 <= linenum <= len(self.lines)
                or not self.lines[linenum - 1].strip()):
            raise LineOutOfRange(linenum, len(self.lines))
        return parse_line(self.lines[linenum - 1])

    def records(self):
        """Yield (line number, TaskRecord) for each non-blank line."""
        for num, line in enumerate(self.lines, 1):
            if line.strip():
                yield num, parse_line(line)


def duration_minutes(record, now=None):
    """Calculate the elapsed whole minutes of a clock entry.

    Open entries run until `now`. Negative durations (clock-out before
    clock-in) are returned as they are.

    Args:
        record (TaskRecord):    the clock entry.
        now (datetime):         the end time of open entries (default:
    current local time). If timezone-aware, stored timestamps are
    read in the same zone.

    Returns:
        minutes (int):  floor of the elapsed time in minutes.

    """
    if record.clock_in is None:
        raise MissingClockIn(f"no clock-in time on '{record.todo_text}'")
    tz = now.tzinfo if now is not None else None
    try:
        start = parse_timestamp(record.clock_in, tz)
        if record.clock_out is not None:
            end = parse_timestamp(record.clock_out, tz)
        else:
            end = now if now is not None else datetime.now()
    except ValueError as err:
        raise MalformedLog(
            f"invalid timestamp in clock entry '{record.line}'") from err
    return int((end - start).total_seconds() // 60)
