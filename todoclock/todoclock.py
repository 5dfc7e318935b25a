#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""todoclock
Version:  0.1.0
Author:   Sean O'Connell <sean@sdoconnell.net>
License:  MIT
About:
Time tracking for a todo.txt task list, with an append-only clock log.

usage: todoclock [-h] [-c <file>] for more help: todoclock <command> -h ...

Time tracking for todo.txt task lists.

commands:
  (for more help: todoclock <command> -h)
    config              edit configuration file
    do                  clock out of a task (if active) and complete it
    in                  clock in to a task
    ls                  list tasks with line numbers
    out                 clock out of the active task
    query               search clock entries with structured text output
    report              print a time report
    shell               interactive shell
    version             show version info
    what                show the active task

optional arguments:
  -h, --help            show this help message and exit
  -c <file>, --config <file>
                        config file


Copyright © 2021 Sean O'Connell

Permission is hereby granted, free of charge, to any person obtaining a copy
of this software and associated documentation files (the "Software"), to deal
in the Software without restriction, including without limitation the rights
to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
copies of the Software, and to permit persons to whom the Software is
furnished to do so, subject to the following conditions:

The above copyright notice and this permission notice shall be included in all
copies or substantial portions of the Software.

THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
SOFTWARE.

"""
import argparse
import calendar as modcalendar  # name too commonly used
import configparser
import json
import os
import subprocess
import sys
from cmd import Cmd
from datetime import datetime, timedelta, date

import tzlocal
import yaml
from dateutil import parser as dtparser
from rich.color import ColorParseError
from rich.console import Console
from rich.text import Text
from rich.style import Style
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from todoclock import APP_NAME, APP_VERS
from todoclock.clocklog import ClockLog, TodoList, duration_minutes
from todoclock.errors import (
    ClockError,
    GroupingError,
    MalformedLog,
    MissingConfig
)
from todoclock.grouping import build_tree, filter_records, group_by_indate
from todoclock.taskline import parse_timestamp

APP_COPYRIGHT = "Copyright © 2021 Sean O'Connell."
APP_LICENSE = "Released under MIT license."
DEFAULT_FIRST_WEEKDAY = 6
DEFAULT_CONFIG_FILE = f"$HOME/.config/{APP_NAME}/config"
DEFAULT_TODO_FILE = "todo.txt"
DEFAULT_CLOCK_FILE = "clock.dat"
DEFAULT_TODO_SH = "todo.sh"
DEFAULT_GROUPINGS = "indate,project"
DEFAULT_TIME_FORMAT = "hours"
DEFAULT_CONFIG = (
    "[main]\n"
    "# the task list directory, used when $TODO_DIR is not set\n"
    "#todo_dir = $HOME/todo\n"
    f"todo_file = {DEFAULT_TODO_FILE}\n"
    f"clock_file = {DEFAULT_CLOCK_FILE}\n"
    "# the todo.txt command used by 'do', when $TODO_SH is not set\n"
    f"#todo_sh = {DEFAULT_TODO_SH}\n"
    "# report groupings, outermost first (indate, project)\n"
    f"default_groupings = {DEFAULT_GROUPINGS}\n"
    "# report times as 'hours' (HH:MM) or 'minutes'\n"
    f"time_format = {DEFAULT_TIME_FORMAT}\n"
    "# first day of week (0 = Mon, 6 = Sun)\n"
    f"first_weekday = {DEFAULT_FIRST_WEEKDAY}\n"
    "\n"
    "[colors]\n"
    "disable_colors = false\n"
    "disable_bold = false\n"
    "# set to 'true' if your terminal pager supports color\n"
    "# output and you would like color output when using\n"
    "# the '--pager' ('-p') option\n"
    "color_pager = false\n"
    "# custom colors\n"
    "#title = bright_blue\n"
    "#group = cyan\n"
    "#task = default\n"
    "#time = green\n"
    "#subtotal = bright_green\n"
    "#separator = bright_black\n"
    "#active = green\n"
    "#label = white\n"
    "\n"
    "[project_colors]\n"
    "# colors for +p/<project> groups\n"
    "#acme = bright_blue\n"
)
PERIODS = {
    'today': "today",
    'yesterday': "yesterday",
    'thisweek': "this week",
    'lastweek': "last week",
    'thismonth': "this month",
    'lastmonth': "last month",
    'thisyear': "this year",
    'lastyear': "last year"
}


class TimeClock():
    """Performs clock and report operations on a todo.txt directory.

    Attributes:
        config_file (str):  application config file.
        todo_dir (str):     directory containing todo.txt and clock.dat.
        dflt_config (str):  the default config if none is present.
        todo_sh (str):      the todo.txt command used by do().

    """
    def __init__(
            self,
            config_file,
            todo_dir,
            dflt_config,
            todo_sh=None):
        """Initializes a TimeClock() object."""
        self.config_file = config_file
        self.config_dir = os.path.dirname(self.config_file)
        self.todo_dir = todo_dir
        self.dflt_config = dflt_config
        self.todo_sh = todo_sh
        self.interactive = False

        # default colors
        self.color_title = "bright_blue"
        self.color_group = "cyan"
        self.color_task = "default"
        self.color_time = "green"
        self.color_subtotal = "bright_green"
        self.color_separator = "bright_black"
        self.color_active = "green"
        self.color_label = "white"
        self.color_bold = True
        self.color_pager = False
        self.project_colors = {}
        self.color_enabled = True

        # default settings
        self.ltz = tzlocal.get_localzone()
        self.first_weekday = DEFAULT_FIRST_WEEKDAY
        self.todo_file = DEFAULT_TODO_FILE
        self.clock_file = DEFAULT_CLOCK_FILE
        self.default_groupings = DEFAULT_GROUPINGS.split(',')
        self.time_format = DEFAULT_TIME_FORMAT

        # editor (required for some functions)
        self.editor = os.environ.get("EDITOR")

        # style definitions, updated after the config file is parsed
        self.style_title = None
        self.style_group = None
        self.style_task = None
        self.style_time = None
        self.style_subtotal = None
        self.style_separator = None
        self.style_active = None
        self.style_label = None

        # $TODO_DIR takes precedence over the config file
        if not self.todo_dir:
            self.todo_dir = self._configured_todo_dir()
        try:
            self._verify_todo_dir()
        except MissingConfig as err:
            self._error_exit(err)
        self._default_config()
        self._parse_config()

        self.todo_list = TodoList(
            os.path.join(self.todo_dir, self.todo_file))
        self.clock_log = ClockLog(
            os.path.join(self.todo_dir, self.clock_file))

    def _check_log(self):
        """Warn about (but tolerate) open entries before the last one."""
        try:
            self.clock_log.verify()
        except MalformedLog as err:
            self._warn(err)

    def _clocked_out(self, closed, now):
        """Print the status of a closed entry. An unreadable timestamp
        only drops the duration, since the entry is already written.

        Args:
            closed (TaskRecord):    the entry that was clocked out.
            now (datetime):         the clock-out time.

        """
        try:
            minutes = duration_minutes(closed, now)
        except MalformedLog as err:
            self._warn(err)
            minutes = None
        self._status("Clocked out", closed.todo_text, minutes)

    def _configured_todo_dir(self):
        """Return the 'todo_dir' setting of an existing config file.

        Returns:
            todo_dir (str): the configured directory, or None.

        """
        config = configparser.ConfigParser()
        try:
            config.read(self.config_file)
        except configparser.Error:
            self._error_exit("Error reading config file")
        return config.get("main", "todo_dir", fallback=None) or None

    def _default_config(self):
        """Create a default configuration directory and file if they
        do not already exist.
        """
        if not os.path.exists(self.config_file):
            try:
                os.makedirs(self.config_dir, exist_ok=True)
                with open(self.config_file, "w",
                          encoding="utf-8") as config_file:
                    config_file.write(self.dflt_config)
            except IOError:
                self._error_exit(
                    "Config file doesn't exist "
                    "and can't be created")

    @staticmethod
    def _error_exit(errormsg):
        """Print an error message and exit with a status of 1

        Args:
            errormsg (str): the error message to display.

        """
        print(f'ERROR: {errormsg}.', file=sys.stderr)
        sys.exit(1)

    @staticmethod
    def _error_pass(errormsg):
        """Print an error message but don't exit.

        Args:
            errormsg (str): the error message to display.

        """
        print(f'ERROR: {errormsg}.', file=sys.stderr)

    def _format_minutes(self, minutes, time_format=None):
        """Format a number of minutes as HH:MM or as plain minutes.

        Hours are zero-padded to two digits and grow as needed.
        Negative durations keep their sign.

        Args:
            minutes (int):      the minutes to format.
            time_format (str):  'hours' or 'minutes' (default: config).

        Returns:
            timestr (str):  the formatted string

        """
        time_format = time_format or self.time_format
        if time_format == 'minutes':
            return str(minutes)
        sign = "-" if minutes < 0 else ""
        hours, mins = divmod(abs(minutes), 60)
        return f"{sign}{hours:02d}:{mins:02d}"

    def _handle_error(self, msg):
        """Reports an error message and conditionally handles error exit
        or notification.

        Args:
            msg (str):  the error message.

        """
        if self.interactive:
            self._error_pass(msg)
        else:
            self._error_exit(msg)

    def _load_log(self):
        """Read the clock log and warn about damaged entries.

        Returns:
            records (list): the clock log entries.

        """
        records = self.clock_log.load()
        self._check_log()
        return records

    def _make_project_style(self, key):
        """Create a style for a project group based on values in
        self.project_colors.

        Args:
            key (str): the group key (e.g. '+p/acme').

        Returns:
            this_style (obj): Rich Style() object.

        """
        project = key[3:] if key.startswith('+p/') else key
        color = self.project_colors.get(project)
        if color and self.color_enabled:
            try:
                this_style = Style(color=color, bold=self.color_bold)
            except ColorParseError:
                this_style = self.style_group
        else:
            this_style = self.style_group
        return this_style

    def _now(self):
        """The current local time."""
        return datetime.now(tz=self.ltz)

    def _parse_config(self):
        """Read and parse the configuration file."""
        config = configparser.ConfigParser()
        if os.path.isfile(self.config_file):
            try:
                config.read(self.config_file)
            except configparser.Error:
                self._error_exit("Error reading config file")

            if "main" in config:
                if not self.todo_sh and config["main"].get("todo_sh"):
                    self.todo_sh = os.path.expandvars(
                        os.path.expanduser(
                            config["main"].get("todo_sh")))
                self.todo_file = config["main"].get(
                    "todo_file", DEFAULT_TODO_FILE) or DEFAULT_TODO_FILE
                self.clock_file = config["main"].get(
                    "clock_file", DEFAULT_CLOCK_FILE) or DEFAULT_CLOCK_FILE
                if config["main"].get("default_groupings") is not None:
                    self.default_groupings = [
                        name.strip() for name in
                        config["main"].get("default_groupings").split(',')
                        if name.strip()]
                time_format = config["main"].get("time_format")
                if time_format in ['hours', 'minutes']:
                    self.time_format = time_format
                # default first day of the week
                if config["main"].get("first_weekday"):
                    try:
                        self.first_weekday = int(
                                config["main"].get("first_weekday"))
                    except ValueError:
                        self.first_weekday = DEFAULT_FIRST_WEEKDAY
                    else:
                        if self.first_weekday not in range(0, 7):
                            self.first_weekday = DEFAULT_FIRST_WEEKDAY

            def _make_style(color, bold=False):
                """Build a style, falling back to the default color for
                invalid color names.
                """
                try:
                    return Style(color=color, bold=bold)
                except ColorParseError:
                    return Style(color="default", bold=bold)

            def _apply_colors():
                """Apply the current color settings to the styles."""
                self.style_title = _make_style(
                    self.color_title, self.color_bold)
                self.style_group = _make_style(
                    self.color_group, self.color_bold)
                self.style_task = _make_style(self.color_task)
                self.style_time = _make_style(self.color_time)
                self.style_subtotal = _make_style(
                    self.color_subtotal, self.color_bold)
                self.style_separator = _make_style(self.color_separator)
                self.style_active = _make_style(
                    self.color_active, self.color_bold)
                self.style_label = _make_style(self.color_label)

            if "colors" in config:
                colors = config["colors"]
                self.color_title = colors.get("title", self.color_title)
                self.color_group = colors.get("group", self.color_group)
                self.color_task = colors.get("task", self.color_task)
                self.color_time = colors.get("time", self.color_time)
                self.color_subtotal = colors.get(
                    "subtotal", self.color_subtotal)
                self.color_separator = colors.get(
                    "separator", self.color_separator)
                self.color_active = colors.get("active", self.color_active)
                self.color_label = colors.get("label", self.color_label)

                # color paging (disabled by default)
                self.color_pager = colors.getboolean(
                    "color_pager", False)

                # disable colors
                if colors.getboolean("disable_colors", False):
                    self.color_enabled = False
                    self.color_title = "default"
                    self.color_group = "default"
                    self.color_task = "default"
                    self.color_time = "default"
                    self.color_subtotal = "default"
                    self.color_separator = "default"
                    self.color_active = "default"
                    self.color_label = "default"

                # disable bold
                if colors.getboolean("disable_bold", False):
                    self.color_bold = False

            _apply_colors()

            if "project_colors" in config:
                project_colors = config["project_colors"]
                for proj in project_colors:
                    self.project_colors[proj.lower()] = project_colors.get(
                        proj)
        else:
            self._error_exit("Config file not found")

    def _parse_period(self, term):
        """Parse a report period into first and last dates.

        Args:
            term (str):     one of: today, yesterday, thisweek, lastweek,
        thismonth, lastmonth, thisyear, lastyear, or a date range
        '<date>~<date>' where either side may be omitted.

        Returns:
            begin (date):   the first date, or None (open).
            end (date):     the last date, or None (open).

        """
        term = term.lower().strip()
        cal = modcalendar.Calendar(firstweekday=self.first_weekday)
        today = self._now().date()
        this_week_start = today - timedelta(
                days=list(cal.iterweekdays()).index(today.weekday()))
        this_month_start = today.replace(day=1)
        last_month_end = this_month_start - timedelta(days=1)
        if term == "today":
            return today, today
        if term == "yesterday":
            yesterday = today - timedelta(days=1)
            return yesterday, yesterday
        if term == "thisweek":
            return this_week_start, this_week_start + timedelta(days=6)
        if term == "lastweek":
            last_week_start = this_week_start - timedelta(days=7)
            return last_week_start, last_week_start + timedelta(days=6)
        if term == "thismonth":
            last_day = modcalendar.monthrange(today.year, today.month)[1]
            return this_month_start, today.replace(day=last_day)
        if term == "lastmonth":
            return last_month_end.replace(day=1), last_month_end
        if term == "thisyear":
            return date(today.year, 1, 1), date(today.year, 12, 31)
        if term == "lastyear":
            return date(today.year - 1, 1, 1), date(today.year - 1, 12, 31)

        if "~" in term:
            first, last = term.split("~", 1)
        else:
            first = last = term
        try:
            begin = dtparser.parse(first).date() if first.strip() else None
            end = dtparser.parse(last).date() if last.strip() else None
        except (ValueError, OverflowError) as err:
            raise GroupingError(f"invalid report period '{term}'") from err
        return begin, end

    def _print(self, renderable, pager=False):
        """Print to the console, with a pager if requested.

        Args:
            renderable (obj):   the Rich renderable to print.
            pager (bool):       paginate output.

        """
        console = Console()
        if pager:
            if self.color_pager:
                with console.pager(styles=True):
                    console.print(renderable, soft_wrap=True)
            else:
                with console.pager():
                    console.print(renderable, soft_wrap=True)
        else:
            console.print(renderable, soft_wrap=True)

    def _select_period(self, records, term):
        """Select clock entries by clock-in date.

        Args:
            records (list): the clock entries.
            term (str):     the report period (see _parse_period()).

        Returns:
            selected (list):    entries clocked in within the period.

        """
        begin, end = self._parse_period(term)
        first = begin.strftime("%Y%m%d") if begin else None
        last = end.strftime("%Y%m%d") if end else None
        selected = []
        for record in records:
            day = group_by_indate(record)
            if first and day < first:
                continue
            if last and day > last:
                continue
            selected.append(record)
        return selected

    def _status(self, label, todo_text, minutes=None):
        """Print a clock status line.

        Args:
            label (str):        the status (e.g. 'Clocked in').
            todo_text (str):    the task.
            minutes (int):      elapsed time to show, if any.

        """
        status = Text.assemble(
            (f"{label}: ", self.style_label),
            (todo_text, self.style_task))
        if minutes is not None:
            status.append(" (")
            status.append(
                self._format_minutes(minutes, 'hours'), self.style_time)
            status.append(")")
        self._print(status)

    def _verify_todo_dir(self):
        """Check that the task list directory is configured and usable."""
        if not self.todo_dir:
            raise MissingConfig(
                "$TODO_DIR is not set and no 'todo_dir' is configured")
        self.todo_dir = os.path.expandvars(
            os.path.expanduser(self.todo_dir))
        if not os.path.isdir(self.todo_dir):
            raise MissingConfig(f"{self.todo_dir} is not a directory")
        if not os.access(self.todo_dir, os.R_OK | os.W_OK | os.X_OK):
            raise MissingConfig(
                "You don't have read/write/execute permissions to "
                f"{self.todo_dir}")

    @staticmethod
    def _warn(msg):
        """Print a warning and carry on.

        Args:
            msg (str):  the warning message.

        """
        print(f'WARNING: {msg}.', file=sys.stderr)

    def clock_in(self, linenum):
        """Clock in to the task on a task list line, clocking out of
        any other active task first.

        Args:
            linenum (int):  the task list line number.

        """
        try:
            self.todo_list.load()
            task = self.todo_list.line(linenum)
            with self.clock_log.locked() as clock_log:
                self._check_log()
                active = clock_log.active()
                if active and active.todo_text == task.todo_text:
                    self._warn(
                        f"already clocked in to '{task.todo_text}'")
                    return
                now = self._now()
                closed = None
                if active:
                    closed = clock_log.clock_out(now)
                clock_log.clock_in(task.todo_text, now)
            if closed is not None:
                self._clocked_out(closed, now)
            self._status("Clocked in", task.todo_text)
        except (ClockError, OSError) as err:
            self._handle_error(err)

    def clock_out(self):
        """Clock out of the active task."""
        try:
            with self.clock_log.locked() as clock_log:
                self._check_log()
                now = self._now()
                closed = clock_log.clock_out(now)
            self._clocked_out(closed, now)
        except (ClockError, OSError) as err:
            self._handle_error(err)

    def do(self, linenum):
        """Clock out of a task if it is active, then mark it done with
        the todo.txt command.

        Args:
            linenum (int):  the task list line number.

        """
        todo_sh = self.todo_sh or DEFAULT_TODO_SH
        try:
            self.todo_list.load()
            task = self.todo_list.line(linenum)
            with self.clock_log.locked() as clock_log:
                self._check_log()
                active = clock_log.active()
                closed = None
                if active and active.todo_text == task.todo_text:
                    now = self._now()
                    closed = clock_log.clock_out(now)
            if closed is not None:
                self._clocked_out(closed, now)
        except (ClockError, OSError) as err:
            self._handle_error(err)
            return
        try:
            subprocess.run([todo_sh, "do", str(linenum)], check=True)
        except (OSError, subprocess.SubprocessError):
            self._handle_error(f"failure running '{todo_sh} do {linenum}'")

    def edit_config(self):
        """Edit the config file (using $EDITOR) and then reload config."""
        if self.editor:
            try:
                subprocess.run(
                    [self.editor, self.config_file], check=True)
            except subprocess.SubprocessError:
                self._handle_error("failure editing config file")
            else:
                if self.interactive:
                    self._parse_config()
        else:
            self._handle_error("$EDITOR is required and not set")

    def is_running(self):
        """Whether a task is currently clocked in.

        Returns:
            running (bool): the last clock entry is open.

        """
        # called from the watchdog thread, so don't share self.clock_log
        clock_log = ClockLog(self.clock_log.filename)
        try:
            clock_log.load()
        except (OSError, ClockError):
            return False
        return clock_log.active() is not None

    def list_tasks(self, filters=None, pager=False):
        """List task list lines with their line numbers, marking the
        active task.

        Args:
            filters (list): substrings the task must all contain.
            pager (bool):   paginate output.

        """
        try:
            self.todo_list.load()
            self.clock_log.load()
        except (ClockError, OSError) as err:
            self._handle_error(err)
            return
        active = self.clock_log.active()
        width = len(str(len(self.todo_list.lines)))
        selected = dict(self.todo_list.records())
        matching = filter_records(selected.values(), filters)
        output = Text()
        for num, record in selected.items():
            if record not in matching:
                continue
            if active and active.todo_text == record.todo_text:
                output.append(f"{num:>{width}} * ", self.style_active)
                output.append(record.todo_text, self.style_active)
            else:
                output.append(f"{num:>{width}}   ", self.style_label)
                output.append(record.todo_text, self.style_task)
            output.append("\n")
        if not output.plain:
            output.append("No tasks.\n")
        output.rstrip()
        self._print(output, pager)

    def query(self, filters=None, json_output=False):
        """Search clock entries and print them as tab-delimited text
        (clock-in, clock-out, minutes, task) or JSON.

        Args:
            filters (list):     substrings the task must all contain.
            json_output (bool): output in JSON format.

        """
        try:
            records = filter_records(self._load_log(), filters)
            now = self._now()
            entries_out = {}
            entries_out['entries'] = []
            text_out = ""
            for record in records:
                minutes = duration_minutes(record, now)
                this_entry = {}
                this_entry['clock_in'] = record.clock_in
                this_entry['clock_out'] = record.clock_out
                this_entry['minutes'] = minutes
                this_entry['task'] = record.todo_text
                this_entry['projects'] = list(record.projects)
                this_entry['contexts'] = list(record.contexts)
                entries_out['entries'].append(this_entry)
                text_out += (
                    f"{record.clock_in}\t"
                    f"{record.clock_out or ''}\t"
                    f"{minutes}\t"
                    f"{record.todo_text}\n"
                )
        except (ClockError, OSError) as err:
            self._handle_error(err)
            return
        if json_output:
            json_out = json.dumps(entries_out, indent=4)
            print(json_out)
        else:
            if text_out != "":
                print(text_out, end="")
            else:
                print("No results.")

    def report(
            self,
            filters=None,
            groupings=None,
            period=None,
            time_format=None,
            yaml_output=False,
            pager=False):
        """Produce a time report, grouped by one or more dimensions.

        Args:
            filters (list):     substrings the task must all contain.
            groupings (list):   dimensions (indate, project), outermost
        first (default: from config).
            period (str):       restrict to a period (see _parse_period()).
            time_format (str):  'hours' or 'minutes' (default: config).
            yaml_output (bool): print the report tree as YAML.
            pager (bool):       paginate output.

        """
        if groupings is None:
            groupings = self.default_groupings
        lines = []

        def _emit(kind, depth, label, minutes):
            lines.append((kind, depth, label, minutes))

        try:
            records = filter_records(self._load_log(), filters)
            if period:
                records = self._select_period(records, period)
            now = self._now()
            tree = build_tree(records, groupings)
            if yaml_output:
                data = tree.as_dict(now)
            else:
                tree.report(_emit, now)
        except (ClockError, OSError) as err:
            self._handle_error(err)
            return

        if yaml_output:
            print(yaml.dump(
                data,
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True), end="")
            return

        viewstr = PERIODS.get(period, period) if period else "all"
        title = f"Time report - {viewstr}"
        if groupings:
            title = f"{title} (by {', '.join(groupings)})"
        output = Text()
        output.append(f"{title}\n\n", self.style_title)
        if not lines:
            output.append("None\n")
        times = [
            self._format_minutes(minutes, time_format)
            for kind, depth, label, minutes in lines
            if minutes is not None]
        width = max([len(timestr) for timestr in times] + [5])
        for kind, depth, label, minutes in lines:
            indent = "   " * depth
            if kind == 'group':
                if "project" in groupings:
                    style = self._make_project_style(label)
                else:
                    style = self.style_group
                output.append(indent)
                output.append(label, style)
            elif kind == 'separator':
                output.append(indent)
                output.append("-" * width, self.style_separator)
            else:
                timestr = self._format_minutes(minutes, time_format)
                output.append(indent)
                if kind == 'subtotal':
                    output.append(f"{timestr:>{width}}", self.style_subtotal)
                    output.append("  ")
                    output.append(label, self.style_subtotal)
                else:
                    output.append(f"{timestr:>{width}}", self.style_time)
                    output.append("  ")
                    output.append(label, self.style_task)
            output.append("\n")
        output.rstrip()
        self._print(output, pager)

    def what(self):
        """Show the active task and its elapsed time."""
        try:
            self._load_log()
            active = self.clock_log.active()
            if not active:
                print("No active task.")
                return
            now = self._now()
            minutes = duration_minutes(active, now)
        except (ClockError, OSError) as err:
            self._handle_error(err)
            return
        started = parse_timestamp(active.clock_in, self.ltz)
        status = Text.assemble(
            ("Active: ", self.style_label),
            (active.todo_text, self.style_active),
            "\n",
            ("Since:  ", self.style_label),
            started.strftime("%Y-%m-%d %H:%M"),
            f" ({started.tzname()})\n",
            ("Time:   ", self.style_label),
            (self._format_minutes(minutes, 'hours'), self.style_time))
        self._print(status)


class FSHandler(FileSystemEventHandler):
    """Handler to watch for clock log changes and refresh the shell.

    Attributes:
        shell (obj):    the calling shell object.

    """
    def __init__(self, shell):
        """Initializes an FSHandler() object."""
        self.shell = shell

    def on_any_event(self, event):
        """Refresh the shell state when the clock log changes.

        Args:
            event (obj):    file system event.

        """
        if event.event_type in [
                'created', 'modified', 'deleted', 'moved']:
            filename = os.path.basename(os.fsdecode(event.src_path))
            if filename == self.shell.time_clock.clock_file:
                self.shell.do_refresh("silent")


def parse_report_options(args):
    """Parse shell 'report' arguments into report() keyword arguments.

    Accepts filters plus -g/--groupings, --period, -m/--minutes, --yaml
    and a trailing '|' to page the output.

    Args:
        args (str): the command arguments.

    Returns:
        options (dict): keyword arguments for TimeClock.report().

    """
    words = args.split()
    options = {
        'filters': [],
        'groupings': None,
        'period': None,
        'time_format': None,
        'yaml_output': False,
        'pager': False
    }
    if words and words[-1] == '|':
        options['pager'] = True
        words.pop()
    while words:
        word = words.pop(0)
        if word in ['-g', '--groupings', '--period'] and words:
            value = words.pop(0)
            if word == '--period':
                options['period'] = value
            else:
                options['groupings'] = [
                    name for name in value.split(',') if name]
        elif word.startswith('--groupings='):
            options['groupings'] = [
                name for name in word.split('=', 1)[1].split(',') if name]
        elif word.startswith('--period='):
            options['period'] = word.split('=', 1)[1]
        elif word in ['-m', '--minutes']:
            options['time_format'] = 'minutes'
        elif word == '--yaml':
            options['yaml_output'] = True
        else:
            options['filters'].append(word)
    return options


class ClockShell(Cmd):
    """Provides methods for interactive shell use.

    Attributes:
        time_clock (obj):     an instance of TimeClock().

    """
    def __init__(
            self,
            time_clock,
            completekey='tab',
            stdin=None,
            stdout=None,
            watch=True):
        """Initializes a ClockShell() object."""
        super().__init__()
        self.time_clock = time_clock
        self.running = False

        # start watchdog for clock log changes
        # and refresh the prompt on changes
        self.observer = None
        if watch:
            self.observer = Observer()
            handler = FSHandler(self)
            self.observer.schedule(
                    handler,
                    self.time_clock.todo_dir,
                    recursive=False)
            self.observer.daemon = True
            self.observer.start()

        # class overrides for Cmd
        if stdin is not None:
            self.stdin = stdin
        else:
            self.stdin = sys.stdin
        if stdout is not None:
            self.stdout = stdout
        else:
            self.stdout = sys.stdout
        self.cmdqueue = []
        self.completekey = completekey
        self.doc_header = (
            "Commands (for more info type: help):"
        )
        self.ruler = "―"

        self.do_refresh("silent")

        self.nohelp = (
            "\nNo help for %s\n"
        )

        print(
            f"{APP_NAME} {APP_VERS}\n\n"
            f"Enter command (or 'help')\n"
        )

    # class method overrides
    def default(self, args):
        """Handle command aliases and unknown commands.

        Args:
            args (str): the command arguments.

        """
        if args == "quit":
            self.do_exit("")
        elif args.startswith("rp"):
            newargs = args.split()
            newargs[0] = ""
            self.do_report(' '.join(newargs))
        else:
            print("\nNo such command. See 'help'.\n")

    def emptyline(self):
        """Ignore empty line entry."""

    def postcmd(self, stop, line):
        """Update the prompt after each command."""
        self._set_prompt()
        return stop

    def _linenum(self, args, helper):
        """Get a line number from the command arguments.

        Args:
            args (str):         the command arguments.
            helper (callable):  help to print if there is none.

        Returns:
            linenum (int or None):  the line number.

        """
        commands = args.split()
        if not commands:
            helper()
            return None
        try:
            return int(commands[0])
        except ValueError:
            self.time_clock._error_pass(
                f"'{commands[0]}' is not a line number")
            return None

    def _set_prompt(self):
        """Set the prompt string, marking a running clock."""
        name = "clock*" if self.running else "clock"
        if self.time_clock.color_bold:
            self.prompt = f"\033[1m{name}\033[0m> "
        else:
            self.prompt = f"{name}> "

    @staticmethod
    def do_clear(args):
        """Clear the terminal.

        Args:
            args (str): the command arguments, ignored.

        """
        os.system("cls" if os.name == "nt" else "clear")

    def do_config(self, args):
        """Edit the config file and reload the configuration.

        Args:
            args (str): the command arguments, ignored.

        """
        self.time_clock.edit_config()

    def do_do(self, args):
        """Clock out of a task (if active) and complete it.

        Args:
            args (str):     the command arguments.

        """
        linenum = self._linenum(args, self.help_do)
        if linenum is not None:
            self.time_clock.do(linenum)
            self.do_refresh("silent")

    @staticmethod
    def do_exit(args):
        """Exit the shell.

        Args:
            args (str): the command arguments, ignored.

        """
        sys.exit(0)

    def do_in(self, args):
        """Clock in to a task.

        Args:
            args (str):     the command arguments.

        """
        linenum = self._linenum(args, self.help_in)
        if linenum is not None:
            self.time_clock.clock_in(linenum)
            self.do_refresh("silent")

    def do_ls(self, args):
        """List tasks with line numbers.

        Args:
            args (str):     the command arguments.

        """
        filters = args.split()
        pager = False
        if filters and filters[-1] == '|':
            filters.pop()
            pager = True
        self.time_clock.list_tasks(filters, pager=pager)

    def do_out(self, args):
        """Clock out of the active task.

        Args:
            args (str): the command arguments, ignored.

        """
        self.time_clock.clock_out()
        self.do_refresh("silent")

    def do_query(self, args):
        """Search clock entries.

        Args:
            args (str):     the command arguments.

        """
        filters = args.split()
        json_output = False
        if '-j' in filters or '--json' in filters:
            json_output = True
            filters = [word for word in filters
                       if word not in ['-j', '--json']]
        self.time_clock.query(filters, json_output=json_output)

    def do_refresh(self, args):
        """Refresh the clock state if files changed on disk.

        Args:
            args (str): the command arguments, ignored.

        """
        self.running = self.time_clock.is_running()
        self._set_prompt()
        if args != 'silent':
            print("Data refreshed.")

    def do_report(self, args):
        """Print a time report.

        Args:
            args (str): the command arguments.

        """
        self.time_clock.report(**parse_report_options(args))

    def do_what(self, args):
        """Show the active task.

        Args:
            args (str): the command arguments, ignored.

        """
        self.time_clock.what()

    @staticmethod
    def help_clear():
        """Output help for 'clear' command."""
        print(
            '\nclear:\n'
            '    Clear the terminal window.\n'
        )

    @staticmethod
    def help_config():
        """Output help for 'config' command."""
        print(
            '\nconfig:\n'
            '    Edit the config file with $EDITOR and then reload '
            'the configuration.\n'
        )

    @staticmethod
    def help_do():
        """Output help for 'do' command."""
        print(
            '\ndo <linenum>:\n'
            '    Clock out of the task on line <linenum> if it is '
            'active, then\n'
            '    complete it with the todo.txt command.\n'
        )

    @staticmethod
    def help_exit():
        """Output help for 'exit' command."""
        print(
            '\nexit:\n'
            '    Exit the shell.\n'
        )

    @staticmethod
    def help_in():
        """Output help for 'in' command."""
        print(
            '\nin <linenum>:\n'
            '    Clock in to the task on line <linenum> of the task '
            'list.\n'
            '    Any other active task is clocked out first.\n'
        )

    @staticmethod
    def help_ls():
        """Output help for 'ls' command."""
        print(
            '\nls [filter ...]:\n'
            '    List tasks with their line numbers. The active task '
            'is marked\n'
            '    with \'*\'. Add \'|\' as an additional argument to '
            'page the output.\n'
        )

    @staticmethod
    def help_out():
        """Output help for 'out' command."""
        print(
            '\nout:\n'
            '    Clock out of the active task.\n'
        )

    @staticmethod
    def help_query():
        """Output help for 'query' command."""
        print(
            '\nquery [filter ...] [-j]:\n'
            '    Print matching clock entries as tab-delimited text '
            '(clock-in,\n'
            '    clock-out, minutes, task) or as JSON with \'-j\'.\n'
        )

    @staticmethod
    def help_refresh():
        """Output help for 'refresh' command."""
        print(
            '\nrefresh:\n'
            '    Refresh the clock state from disk. This is usually '
            'done\n'
            '    automatically when the clock log changes.\n'
        )

    @staticmethod
    def help_report():
        """Output help for 'report' command."""
        print(
            '\nreport (rp) [filter ...] [options]:\n'
            '    Print a time report of clock entries whose task '
            'contains every\n'
            '    filter (case-insensitive).\n\n'
            '      -g, --groupings <dims>  comma-separated: indate, '
            'project\n'
            '      --period <term>         today, yesterday, thisweek, '
            'lastweek,\n'
            '                              thismonth, lastmonth, '
            'thisyear,\n'
            '                              lastyear or <date>~<date>\n'
            '      -m, --minutes           show times in minutes\n'
            '      --yaml                  print the report as YAML\n\n'
            'Add \'|\' as an additional argument to page the output.\n'
        )

    @staticmethod
    def help_what():
        """Output help for 'what' command."""
        print(
            '\nwhat:\n'
            '    Show the active task and how long it has been '
            'running.\n'
        )


def parse_args():
    """Parse command line arguments.

    Returns:
        args (dict):    the command line arguments provided.

    """
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description='Time tracking for todo.txt task lists.')
    parser._positionals.title = 'commands'
    parser.set_defaults(command=None)
    subparsers = parser.add_subparsers(
        metavar=f'(for more help: {APP_NAME} <command> -h)')
    pager = subparsers.add_parser('pager', add_help=False)
    pager.add_argument(
        '-p',
        '--page',
        dest='page',
        action='store_true',
        help="page output")
    config = subparsers.add_parser(
        'config',
        help='edit configuration file')
    config.set_defaults(command='config')
    docmd = subparsers.add_parser(
        'do',
        help='clock out of a task (if active) and complete it')
    docmd.add_argument(
        'linenum',
        type=int,
        help='task list line number')
    docmd.set_defaults(command='do')
    incmd = subparsers.add_parser(
        'in',
        help='clock in to a task')
    incmd.add_argument(
        'linenum',
        type=int,
        help='task list line number')
    incmd.set_defaults(command='in')
    listcmd = subparsers.add_parser(
        'ls',
        parents=[pager],
        help='list tasks with line numbers')
    listcmd.add_argument(
        'filters',
        metavar='<filter>',
        nargs='*',
        help='text the task must contain')
    listcmd.set_defaults(command='ls')
    out = subparsers.add_parser(
        'out',
        help='clock out of the active task')
    out.set_defaults(command='out')
    query = subparsers.add_parser(
        'query',
        help='search clock entries with structured text output')
    query.add_argument(
        'filters',
        metavar='<filter>',
        nargs='*',
        help='text the task must contain')
    query.add_argument(
        '-j',
        '--json',
        dest='json',
        action='store_true',
        help='output as JSON rather than TSV')
    query.set_defaults(command='query')
    report = subparsers.add_parser(
        'report',
        aliases=['rp'],
        parents=[pager],
        help='print a time report')
    report.add_argument(
        'filters',
        metavar='<filter>',
        nargs='*',
        help='text the task must contain')
    report.add_argument(
        '-g',
        '--groupings',
        metavar='<dim>[,dim]',
        help='group by: indate, project (outermost first)')
    report.add_argument(
        '--period',
        metavar='<term>',
        help='today, yesterday, thisweek, lastweek, thismonth, '
             'lastmonth, thisyear, lastyear or <date>~<date>')
    report.add_argument(
        '-m',
        '--minutes',
        dest='minutes',
        action='store_true',
        help='show times in minutes')
    report.add_argument(
        '--yaml',
        dest='yaml',
        action='store_true',
        help='output the report as YAML')
    report.set_defaults(command='report')
    shell = subparsers.add_parser(
        'shell',
        help='interactive shell')
    shell.set_defaults(command='shell')
    version = subparsers.add_parser(
        'version',
        help='show version info')
    version.set_defaults(command='version')
    what = subparsers.add_parser(
        'what',
        help='show the active task')
    what.set_defaults(command='what')
    parser.add_argument(
        '-c',
        '--config',
        dest='config',
        metavar='<file>',
        help='config file')
    args = parser.parse_args()
    return parser, args


def main():
    """Entry point. Parses arguments, creates TimeClock() object, calls
    requested method and parameters.

    """
    if os.environ.get("XDG_CONFIG_HOME"):
        config_file = os.path.join(
            os.path.expandvars(os.path.expanduser(
                os.environ["XDG_CONFIG_HOME"])), APP_NAME, "config")
    else:
        config_file = os.path.expandvars(
            os.path.expanduser(DEFAULT_CONFIG_FILE))

    todo_dir = os.environ.get("TODO_DIR")
    todo_sh = os.environ.get("TODO_SH")

    parser, args = parse_args()

    if args.config:
        config_file = os.path.expandvars(
            os.path.expanduser(args.config))

    if not args.command:
        parser.print_help(sys.stderr)
        sys.exit(1)
    elif args.command == "version":
        print(f"{APP_NAME} {APP_VERS}")
        print(APP_COPYRIGHT)
        print(APP_LICENSE)
        return

    time_clock = TimeClock(
        config_file,
        todo_dir,
        DEFAULT_CONFIG,
        todo_sh)

    if args.command == "config":
        time_clock.edit_config()
    elif args.command == "in":
        time_clock.clock_in(args.linenum)
    elif args.command == "out":
        time_clock.clock_out()
    elif args.command == "what":
        time_clock.what()
    elif args.command == "do":
        time_clock.do(args.linenum)
    elif args.command == "ls":
        time_clock.list_tasks(args.filters, pager=args.page)
    elif args.command == "query":
        time_clock.query(args.filters, json_output=args.json)
    elif args.command == "report":
        if args.groupings is not None:
            groupings = [
                name for name in args.groupings.split(',') if name]
        else:
            groupings = None
        time_clock.report(
            filters=args.filters,
            groupings=groupings,
            period=args.period,
            time_format='minutes' if args.minutes else None,
            yaml_output=args.yaml,
            pager=args.page)
    elif args.command == "shell":
        time_clock.interactive = True
        shell = ClockShell(time_clock)
        shell.cmdloop()
    else:
        sys.exit(1)


# entry point
if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\nInterrupted.")
        sys.exit(1)
