"""The form for creating a new download queue."""

from __future__ import annotations

import datetime as dt
import enum
import os
import re
from dataclasses import dataclass
from typing import Optional

from dlqueue.downloads_tab import speed_string
from dlqueue.manager import Manager, ManagerError, QueueInfo
from dlqueue.widgets import (
    Command,
    KeyBinding,
    TextInput,
    blurred,
    bordered,
    focused,
    help_view,
    join_horizontal,
    join_vertical,
)

_INT_RE = re.compile(r"[+-]?\d+")
_CLOCK_RE = re.compile(r"(\d{1,2}):(\d{2})")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class AddQueueField(enum.IntEnum):
    """Focusable elements of the form, in tab order."""

    NAME = 0
    TARGET_DIRECTORY = 1
    MAX_PARALLEL = 2
    SPEED_LIMIT = 3
    START_TIME = 4
    END_TIME = 5
    CONFIRM = 6
    CANCEL = 7


@dataclass(frozen=True)
class _Keys:
    next: KeyBinding = KeyBinding(("tab",), "tab", "next field")
    prev: KeyBinding = KeyBinding(("shift+tab",), "shift+tab", "previous field")
    navigation: KeyBinding = KeyBinding(("up", "down", "left", "right"), "↑/↓/←/→", "navigate")
    select: KeyBinding = KeyBinding(("enter",), "enter", "select")
    cancel: KeyBinding = KeyBinding(("ctrl+c", "esc"), "ctrl+c/esc", "cancel")

    def groups(self) -> list[list[KeyBinding]]:
        return [[self.next, self.prev, self.navigation], [self.select, self.cancel]]


def _parse_int64(text: str) -> Optional[int]:
    if not _INT_RE.fullmatch(text):
        return None
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        return None
    return value


def _parse_clock(text: str) -> Optional[dt.time]:
    match = _CLOCK_RE.fullmatch(text)
    if match is None:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return dt.time(hour, minute)


def is_valid_directory(path: str) -> bool:
    """Whether ``path`` names an existing directory."""
    try:
        return os.path.isdir(path)
    except (OSError, ValueError):
        return False


def make_queue_info(
    name: str,
    target_dir: str,
    max_parallel: str,
    speed_limit: str,
    start_time: str,
    end_time: str,
) -> QueueInfo:
    """Validate the form's text and build queue settings; raise ValueError if invalid."""
    if name == "":
        raise ValueError("name cannot be empty")
    if not is_valid_directory(target_dir):
        raise ValueError("target directory is not valid")
    parallel = _parse_int64(max_parallel)
    if parallel is None:
        raise ValueError("max parallel downloads must be a number")
    if parallel < 1:
        raise ValueError("max parallel downloads must be greater than 0")
    speed = _parse_int64(speed_limit)
    if speed is None:
        raise ValueError("speed limit must be a number")
    if speed < 0:
        raise ValueError("speed limit must be greater or equal to 0")
    start = _parse_clock(start_time)
    if start is None:
        raise ValueError("invalid start time. Must be in the format HH:MM")
    end = _parse_clock(end_time)
    if end is None:
        raise ValueError("invalid end time. Must be in the format HH:MM")
    return QueueInfo(
        name=name,
        target_directory=target_dir,
        max_parallel=parallel,
        speed_limit=speed,
        start_time=start,
        end_time=end,
    )


def _padded(text: str) -> str:
    lines = text.split("\n")
    width = max((len(re.sub(r"\x1b\[[0-9;]*m", "", line)) for line in lines), default=0)
    blank = " " * (width + 4)
    body = [
        "  " + line + " " * (width - len(re.sub(r"\x1b\[[0-9;]*m", "", line))) + "  "
        for line in lines
    ]
    return "\n".join([blank, *body, blank])


class AddQueueTab:
    """Collects the settings of a new queue and adds it to the manager."""

    def __init__(self, manager: Manager) -> None:
        self.manager = manager
        self.focus_index = AddQueueField.NAME
        self.name_input = TextInput("Enter queue name")
        self.target_dir_input = TextInput("Enter target directory")
        self.max_parallel_input = TextInput("Enter max parallel downloads (integer)")
        self.speed_limit_input = TextInput(
            "Enter speed limit (Bytes per second) (0 for no limit)"
        )
        self.start_time_input = TextInput("Enter start time (HH:MM)")
        self.end_time_input = TextInput("Enter end time (HH:MM)")
        self.keys = _Keys()
        self.footer = ""
        self._update_focus()

    @property
    def _inputs(self) -> dict[AddQueueField, TextInput]:
        return {
            AddQueueField.NAME: self.name_input,
            AddQueueField.TARGET_DIRECTORY: self.target_dir_input,
            AddQueueField.MAX_PARALLEL: self.max_parallel_input,
            AddQueueField.SPEED_LIMIT: self.speed_limit_input,
            AddQueueField.START_TIME: self.start_time_input,
            AddQueueField.END_TIME: self.end_time_input,
        }

    def _move(self, step: int) -> None:
        index = min(max(self.focus_index + step, 0), AddQueueField.CANCEL)
        self.focus_index = AddQueueField(index)

    def _close(self) -> Command:
        self.reset_form()
        return Command.CLOSE_CHILD

    def _confirm(self) -> Optional[Command]:
        try:
            info = make_queue_info(
                self.name_input.value,
                self.target_dir_input.value,
                self.max_parallel_input.value,
                self.speed_limit_input.value,
                self.start_time_input.value,
                self.end_time_input.value,
            )
            self.manager.add_queue(info)
        except (ValueError, ManagerError) as exc:
            self.footer = str(exc)
            return None
        return self._close()

    def update(self, msg: object) -> Optional[Command]:
        """Handle a key; return CLOSE_CHILD when the form is done."""
        command: Optional[Command] = None
        field = self.focus_index
        field_input = self._inputs.get(field)
        if field_input is not None:
            if msg in ("tab", "down"):
                self._move(1)
            elif msg in ("up", "shift+tab"):
                self._move(-1)
            elif msg in ("ctrl+c", "esc"):
                return self._close()
            command = field_input.update(msg)
        elif field is AddQueueField.CONFIRM:
            if msg == "enter":
                return self._confirm()
            if msg in ("up", "shift+tab"):
                self._move(-1)
            elif msg in ("ctrl+c", "esc"):
                return self._close()
            elif msg == "down":
                self.focus_index = AddQueueField.CONFIRM
            elif msg in ("tab", "right"):
                self.focus_index = AddQueueField.CANCEL
                command = Command.BLINK
        elif field is AddQueueField.CANCEL:
            if msg == "enter":
                return self._close()
            if msg == "up":
                self.focus_index = AddQueueField.END_TIME
            elif msg in ("left", "shift+tab"):
                self.focus_index = AddQueueField.CONFIRM
                command = Command.BLINK
            elif msg in ("ctrl+c", "esc"):
                return self._close()
        self._update_focus()
        return command

    def _update_focus(self) -> None:
        for field, field_input in self._inputs.items():
            if field is self.focus_index:
                field_input.focus()
            else:
                field_input.blur()

    def _speed_limit_view(self) -> str:
        value = self.speed_limit_input.value
        shown = self.speed_limit_input.view()
        if value == "0":
            return shown + " (no limit)"
        if value == "":
            return shown
        speed = _parse_int64(value)
        if speed is None:
            return shown + " (invalid)"
        return f"{shown}B/s ({speed_string(float(speed))})"

    def view(self) -> str:
        """Render the form, its buttons, the footer message and the help."""
        confirm = (focused if self.focus_index is AddQueueField.CONFIRM else blurred)("[ Confirm ]")
        cancel = (focused if self.focus_index is AddQueueField.CANCEL else blurred)("[ Cancel ]")
        rows = [
            ("Name: ", self.name_input.view()),
            ("Target Directory: ", self.target_dir_input.view()),
            ("Max Parallel Downloads: ", self.max_parallel_input.view()),
            ("Speed Limit: ", self._speed_limit_view()),
            ("Start Time: ", self.start_time_input.view()),
            ("End Time: ", self.end_time_input.view()),
        ]
        fields = join_vertical(*(join_horizontal(label, body) for label, body in rows))
        form = join_vertical(
            bordered(join_vertical(fields, join_horizontal(confirm, cancel))),
            self.footer,
            help_view(self.keys.groups()),
        )
        return _padded(form)

    def reset_form(self) -> None:
        """Clear every field and return focus to the name."""
        for field_input in self._inputs.values():
            field_input.value = ""
        self.focus_index = AddQueueField.NAME
        self.footer = ""
        self._update_focus()