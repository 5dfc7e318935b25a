# -*- coding: utf-8 -*-
"""todoclock.grouping
Group clock entries into a tree of report groups and total their
durations.

A report is grouped by an ordered list of dimensions. Each dimension
maps a clock entry to a group key:

    indate  - the clock-in date, YYYYMMDD
    project - the first '+p/...' project tag, lower-cased

The tree has one level of GroupBranch nodes per dimension and
GroupLeaf nodes at the bottom. A leaf collects the entries of each
task (same todo text) so repeated clock-ins add up to one line.

Copyright © 2021 Sean O'Connell. Released under MIT license.

"""
import re

from todoclock.clocklog import duration_minutes
from todoclock.errors import GroupingError
from todoclock.taskline import parse_timestamp

PROJECT_TAG_RE = re.compile(r"\+p/", re.IGNORECASE)
UNKNOWN_PROJECT = "<unknown>"


def group_by_indate(record):
    """Group key: the clock-in date (YYYYMMDD)."""
    if record.clock_in is None:
        raise GroupingError(
            f"no clock-in date on '{record.todo_text}'")
    try:
        parse_timestamp(record.clock_in)
    except ValueError as err:
        raise GroupingError(
            f"invalid clock-in date on '{record.todo_text}'") from err
    return record.clock_in[:8]


def group_by_project(record):
    """Group key: the first +p/ project tag, lower-cased."""
    for tag in record.projects:
        if PROJECT_TAG_RE.match(tag):
            return tag.lower()
    return UNKNOWN_PROJECT


GROUPINGS = {
    'indate': group_by_indate,
    'project': group_by_project
}


def grouping_functions(dimensions):
    """Look up the key functions for a list of dimension names.

    Args:
        dimensions (list):  dimension names, outermost first.

    Returns:
        functions (list):   the key function of each dimension.

    """
    functions = []
    for name in dimensions:
        function = GROUPINGS.get(name.strip().lower())
        if not function:
            valid = ', '.join(GROUPINGS)
            raise GroupingError(
                f"unknown grouping '{name}' (use: {valid})")
        functions.append(function)
    return functions


def filter_records(records, patterns):
    """Select records whose todo text contains every pattern
    (case-insensitive).

    Args:
        records (list):     the records to filter.
        patterns (list):    substrings which must all be present.

    Returns:
        selected (list):    the matching records, in order.

    """
    patterns = [pattern.lower() for pattern in patterns or []]
    return [
        record for record in records
        if all(pattern in record.todo_text.lower()
               for pattern in patterns)]


def _discard(kind, depth, label, minutes):
    """An emit() callback that prints nothing."""


class GroupNode():
    """A node of the report tree."""
    def add(self, record, keys):
        """Place a record in this node (or below)."""
        raise NotImplementedError

    def report(self, emit, now=None, depth=0):
        """Walk the node depth-first, calling emit() for each output
        line, and return the node's total minutes.

        emit() is called as emit(kind, depth, label, minutes) where kind
        is one of 'group', 'task', 'separator' or 'subtotal'.

        Args:
            emit (callable):    receives each report line.
            now (datetime):     end time for open entries.
            depth (int):        nesting depth of this node.

        Returns:
            subtotal (int): total minutes below this node.

        """
        raise NotImplementedError

    def total(self, now=None):
        """Total minutes of all entries below this node."""
        return self.report(_discard, now)

    def as_dict(self, now=None):
        """The node as plain data (for YAML output)."""
        raise NotImplementedError


class GroupBranch(GroupNode):
    """An inner node: group key -> child node.

    Attributes:
        children (dict):    child GroupNode by group key.

    """
    def __init__(self):
        """Initializes a GroupBranch() object."""
        self.children = {}

    def add(self, record, keys):
        key = keys[0](record)
        child = self.children.get(key)
        if child is None:
            if len(keys) > 1:
                child = GroupBranch()
            else:
                child = GroupLeaf()
            self.children[key] = child
        child.add(record, keys[1:])

    def report(self, emit, now=None, depth=0):
        subtotal = 0
        for key in sorted(self.children):
            emit('group', depth, key, None)
            child_total = self.children[key].report(emit, now, depth + 1)
            emit('separator', depth + 1, None, None)
            emit('subtotal', depth + 1, key, child_total)
            subtotal += child_total
        return subtotal

    def as_dict(self, now=None):
        groups = {}
        total = 0
        for key in sorted(self.children):
            groups[key] = self.children[key].as_dict(now)
            total += groups[key]['total']
        return {'total': total, 'groups': groups}


class GroupLeaf(GroupNode):
    """A bottom node: todo text -> clock entries of that task.

    Attributes:
        tasks (dict):   lists of TaskRecord by todo text.

    """
    def __init__(self):
        """Initializes a GroupLeaf() object."""
        self.tasks = {}

    def add(self, record, keys=None):
        self.tasks.setdefault(record.todo_text, []).append(record)

    def task_minutes(self, todo_text, now=None):
        """Sum the durations of all entries of a task."""
        return sum(
            duration_minutes(record, now)
            for record in self.tasks[todo_text])

    def report(self, emit, now=None, depth=0):
        subtotal = 0
        for todo_text in sorted(self.tasks):
            minutes = self.task_minutes(todo_text, now)
            emit('task', depth, todo_text, minutes)
            subtotal += minutes
        return subtotal

    def as_dict(self, now=None):
        tasks = {}
        for todo_text in sorted(self.tasks):
            tasks[todo_text] = self.task_minutes(todo_text, now)
        return {'total': sum(tasks.values()), 'tasks': tasks}


def build_tree(records, dimensions):
    """Build the report tree for a set of clock entries.

    Args:
        records (list):     the clock entries to group.
        dimensions (list):  dimension names, outermost first.

    Returns:
        root (GroupNode):   a GroupBranch, or a GroupLeaf when no
    dimensions are given.

    """
    keys = grouping_functions(dimensions)
    if keys:
        root = GroupBranch()
    else:
        root = GroupLeaf()
    for record in records:
        root.add(record, keys)
    return root
