# -*- coding: utf-8 -*-
"""todoclock.taskline
Parse todo.txt style lines, with optional trailing clock fields, into
TaskRecord objects.

A line is read left to right as a sequence of optional fields:

    [x [YYYY-MM-DD]] [(A)] [YYYY-MM-DD] detail [\\tCLOCKIN [ CLOCKOUT]]

where CLOCKIN and CLOCKOUT are local timestamps in the form
YYYYMMDDTHHMMSS. Everything before the clock fields is the "todo text",
which is the key used to match a clock entry to a task list line.

Copyright © 2021 Sean O'Connell. Released under MIT license.

"""
import re
from collections import namedtuple
from datetime import datetime

from todoclock.errors import MalformedLine

TIMESTAMP_FORMAT = "%Y%m%dT%H%M%S"

# prefix fields, tried in this order at the current position
DONE_RE = re.compile(r"x\s+")
COMPLETED_RE = re.compile(r"(\d{4}-\d{2}-\d{2})(?:\s+|$)")
PRIORITY_RE = re.compile(r"\(([A-Z])\)(?:\s+|$)")
STARTED_RE = re.compile(r"(\d{4}-\d{2}-\d{2})(?:\s+|$)")
# trailing clock fields, anchored to the end of the line
CLOCK_RE = re.compile(r"\t(\d{8}T\d{6})(?:\s(\d{8}T\d{6}))?\s*$")


class TaskRecord(namedtuple('TaskRecord', [
        'line',
        'todo_text',
        'done',
        'completed',
        'priority',
        'started',
        'detail',
        'clock_in',
        'clock_out',
        'projects',
        'contexts'])):
    """One parsed task list or clock log line.

    Attributes:
        line (str):         the raw line, without line terminator.
        todo_text (str):    the line with clock fields stripped.
        done (bool):        the line starts with a completion marker.
        completed (str):    completion date (YYYY-MM-DD) or None.
        priority (str):     priority letter or None.
        started (str):      start date (YYYY-MM-DD) or None.
        detail (str):       the free text of the task.
        clock_in (str):     clock-in timestamp or None.
        clock_out (str):    clock-out timestamp or None.
        projects (tuple):   '+' tags in order of appearance.
        contexts (tuple):   '@' tags in order of appearance.

    """
    __slots__ = ()

    @property
    def is_clock(self):
        """The record carries a clock-in timestamp."""
        return self.clock_in is not None

    @property
    def is_open(self):
        """The record is clocked in but not yet clocked out."""
        return self.clock_in is not None and self.clock_out is None


def _tags(detail, prefix):
    """Collect whitespace-delimited tokens starting with `prefix`."""
    return tuple(
        token for token in detail.split()
        if token.startswith(prefix) and len(token) > 1)


def parse_line(line):
    """Parse a single line into a TaskRecord.

    Every non-blank line parses; text that matches none of the
    structured fields ends up in `detail`.

    Args:
        line (str): the line to parse.

    Returns:
        record (TaskRecord): the parsed line.

    """
    text = line.rstrip("\r\n")
    if not text.strip():
        raise MalformedLine("cannot parse an empty line")

    clock_in = None
    clock_out = None
    clock = CLOCK_RE.search(text)
    if clock:
        clock_in, clock_out = clock.groups()
        head = text[:clock.start()]
    else:
        head = text

    done = False
    completed = None
    priority = None
    started = None
    pos = 0
    match = DONE_RE.match(head, pos)
    if match:
        done = True
        pos = match.end()
        match = COMPLETED_RE.match(head, pos)
        if match:
            completed = match.group(1)
            pos = match.end()
    match = PRIORITY_RE.match(head, pos)
    if match:
        priority = match.group(1)
        pos = match.end()
    match = STARTED_RE.match(head, pos)
    if match:
        started = match.group(1)
        pos = match.end()
    detail = head[pos:]

    return TaskRecord(
        line=text,
        todo_text=head,
        done=done,
        completed=completed,
        priority=priority,
        started=started,
        detail=detail,
        clock_in=clock_in,
        clock_out=clock_out,
        projects=_tags(detail, '+'),
        contexts=_tags(detail, '@'))


def format_timestamp(timeobj):
    """Convert a datetime to a clock timestamp (YYYYMMDDTHHMMSS)."""
    return timeobj.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(timestr, tz=None):
    """Convert a clock timestamp to a datetime.

    Args:
        timestr (str):  a YYYYMMDDTHHMMSS timestamp.
        tz (obj):       optional tzinfo to attach (local wall-clock).

    Returns:
        timeobj (datetime): the parsed timestamp.

    """
    timeobj = datetime.strptime(timestr, TIMESTAMP_FORMAT)
    if tz is not None:
        timeobj = timeobj.replace(tzinfo=tz)
    return timeobj
