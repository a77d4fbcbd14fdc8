"""The form for changing the settings of an existing download queue."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Optional

from dlqueue.add_queue_tab import make_queue_info
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

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")
_INT_RE = re.compile(r"[+-]?\d+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
CLOCK_FORMAT = "%H:%M"


class EditQueueField(enum.IntEnum):
    """Focusable elements of the form, in tab order."""

    TARGET_DIRECTORY = 0
    MAX_PARALLEL = 1
    SPEED_LIMIT = 2
    START_TIME = 3
    END_TIME = 4
    CONFIRM = 5
    CANCEL = 6


@dataclass(frozen=True)
class _Keys:
    next: KeyBinding = KeyBinding(("tab",), "tab", "next field")
    prev: KeyBinding = KeyBinding(("shift+tab",), "shift+tab", "previous field")
    navigation: KeyBinding = KeyBinding(("up", "down", "left", "right"), "↑/↓/←/→", "navigate")
    select: KeyBinding = KeyBinding(("enter",), "enter", "select")
    cancel: KeyBinding = KeyBinding(("ctrl+c", "esc"), "ctrl+c/esc", "cancel")

    def groups(self) -> list[list[KeyBinding]]:
        return [[self.next, self.prev, self.navigation], [self.select, self.cancel]]


def _int64(text: str) -> Optional[int]:
    if not _INT_RE.fullmatch(text):
        return None
    value = int(text)
    return value if _INT64_MIN <= value <= _INT64_MAX else None


def _padded(text: str) -> str:
    lines = text.split("\n")
    widths = [len(_ANSI_RE.sub("", line)) for line in lines]
    width = max(widths, default=0)
    blank = " " * (width + 4)
    body = ["  " + line + " " * (width - w) + "  " for line, w in zip(lines, widths)]
    return "\n".join([blank, *body, blank])


class EditQueueTab:
    """Edits the settings of one queue and applies them through the manager."""

    def __init__(self, manager: Manager, queue_info: QueueInfo) -> None:
        self.manager = manager
        self.queue_name = queue_info.name
        self.focus_index = EditQueueField.TARGET_DIRECTORY
        self.target_dir_input = TextInput("Enter target directory", queue_info.target_directory)
        self.max_parallel_input = TextInput(
            "Enter max parallel downloads (integer)", str(queue_info.max_parallel)
        )
        self.speed_limit_input = TextInput(
            "Enter speed limit (Bytes per second) (0 for no limit)", str(queue_info.speed_limit)
        )
        self.start_time_input = TextInput(
            "Enter start time (HH:MM)", queue_info.start_time.strftime(CLOCK_FORMAT)
        )
        self.end_time_input = TextInput(
            "Enter end time (HH:MM)", queue_info.end_time.strftime(CLOCK_FORMAT)
        )
        self.keys = _Keys()
        self.footer = ""
        self._update_focus()

    @property
    def _inputs(self) -> dict[EditQueueField, TextInput]:
        return {
            EditQueueField.TARGET_DIRECTORY: self.target_dir_input,
            EditQueueField.MAX_PARALLEL: self.max_parallel_input,
            EditQueueField.SPEED_LIMIT: self.speed_limit_input,
            EditQueueField.START_TIME: self.start_time_input,
            EditQueueField.END_TIME: self.end_time_input,
        }

    def _move(self, step: int) -> None:
        index = min(max(self.focus_index + step, 0), EditQueueField.CANCEL)
        self.focus_index = EditQueueField(index)

    def _close(self) -> Command:
        self.reset_form()
        return Command.CLOSE_CHILD

    def _confirm(self) -> Optional[Command]:
        try:
            info = make_queue_info(
                self.queue_name,
                self.target_dir_input.value,
                self.max_parallel_input.value,
                self.speed_limit_input.value,
                self.start_time_input.value,
                self.end_time_input.value,
            )
            self.manager.update_queue(info)
        except (ValueError, ManagerError) as exc:
            self.footer = str(exc)
            return None
        self.footer = "Queue updated successfully."
        return Command.CLOSE_CHILD

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
        elif field is EditQueueField.CONFIRM:
            if msg == "enter":
                return self._confirm()
            if msg in ("up", "shift+tab"):
                self._move(-1)
            elif msg in ("ctrl+c", "esc"):
                return self._close()
            elif msg == "down":
                self.focus_index = EditQueueField.CONFIRM
            elif msg in ("tab", "right"):
                self.focus_index = EditQueueField.CANCEL
                command = Command.BLINK
        elif field is EditQueueField.CANCEL:
            if msg == "enter":
                return self._close()
            if msg == "up":
                self.focus_index = EditQueueField.END_TIME
            elif msg in ("left", "shift+tab"):
                self.focus_index = EditQueueField.CONFIRM
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
        speed = _int64(value)
        if speed is None:
            return shown + " (invalid)"
        return f"{shown}B/s ({speed_string(float(speed))})"

    def view(self) -> str:
        """Render the form, its buttons, the footer message and the help."""
        confirm = (focused if self.focus_index is EditQueueField.CONFIRM else blurred)("[ Confirm ]")
        cancel = (focused if self.focus_index is EditQueueField.CANCEL else blurred)("[ Cancel ]")
        rows = [
            ("Name: ", self.queue_name),
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
        """Clear every field and return focus to the first one."""
        for field_input in self._inputs.values():
            field_input.value = ""
        self.focus_index = EditQueueField.TARGET_DIRECTORY
        self.footer = ""
        self._update_focus()