# -*- coding: utf-8 -*-
"""todoclock.errors
Exceptions raised by the todoclock core and handled by the command
layer in todoclock.todoclock.

Copyright © 2021 Sean O'Connell. Released under MIT license.

"""


class ClockError(Exception):
    """Base class for all todoclock errors."""


class MissingConfig(ClockError):
    """A required setting (e.g. $TODO_DIR) is not available."""


class LineOutOfRange(ClockError):
    """A task list line number does not name a task.

    Attributes:
        linenum (int):  the requested line number.
        count (int):    the number of lines in the task list.

    """
    def __init__(self, linenum, count):
        self.linenum = linenum
        self.count = count
        super().__init__(
            f"line {linenum} is not a task (task list has "
            f"{count} line{'s' if count != 1 else ''})")


class InvalidState(ClockError):
    """The clock is not in a state that allows the operation."""


class GroupingError(ClockError):
    """A clock entry cannot be placed into a report grouping."""


class MalformedLog(ClockError):
    """The clock log contains entries that violate its invariants.

    Attributes:
        linenums (list):    1-based record numbers of offending entries.

    """
    def __init__(self, message, linenums=None):
        self.linenums = linenums or []
        super().__init__(message)


class MalformedLine(ClockError):
    """A line could not be parsed (only raised for blank lines)."""


class MissingClockIn(ClockError):
    """A duration was requested for a record without a clock-in."""
