"""The form for adding a download to one of the queues."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Optional

from dlqueue.manager import Manager, ManagerError
from dlqueue.queue import QueueFullError
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
_BUTTON_CODE = "38;5;231"
LIST_PAGE_SIZE = 6
SHORT_HELP_SEPARATOR = " • "


class AddDownloadField(enum.IntEnum):
    """Focusable elements of the form, in tab order."""

    URL = 0
    FILENAME = 1
    QUEUE = 2
    CONFIRM = 3
    CANCEL = 4


@dataclass(frozen=True)
class _Keys:
    next: KeyBinding = KeyBinding(("tab",), "tab", "next field")
    prev: KeyBinding = KeyBinding(("shift+tab",), "shift+tab", "previous field")
    navigation: KeyBinding = KeyBinding(("up", "down", "left", "right"), "↑/↓/←/→", "navigate")
    select: KeyBinding = KeyBinding(("enter",), "enter", "select")
    quit: KeyBinding = KeyBinding(("ctrl+c", "esc"), "ctrl+c/esc", "quit")

    def groups(self) -> list[list[KeyBinding]]:
        return [[self.next, self.prev, self.navigation], [self.select, self.quit]]


@dataclass(frozen=True)
class _ListKeys:
    navigation: KeyBinding = KeyBinding(("up", "down"), "↑/↓", "navigate")
    select: KeyBinding = KeyBinding(("enter",), "enter", "select")
    cancel: KeyBinding = KeyBinding(("esc", "q"), "esc/q", "cancel")

    def short(self) -> list[KeyBinding]:
        return [self.navigation, self.select, self.cancel]


def _short_help(bindings: list[KeyBinding]) -> str:
    return blurred(
        SHORT_HELP_SEPARATOR.join(f"{b.help_key} {b.help_desc}" for b in bindings if b.enabled)
    )


def _button(text: str) -> str:
    return f"\x1b[{_BUTTON_CODE}m{text}\x1b[0m"


def _padded(text: str) -> str:
    lines = text.split("\n")
    widths = [len(_ANSI_RE.sub("", line)) for line in lines]
    width = max(widths, default=0)
    blank = " " * (width + 4)
    body = ["  " + line + " " * (width - w) + "  " for line, w in zip(lines, widths)]
    return "\n".join([blank, *body, blank])


class AddDownloadTab:
    """Collects a URL, an optional file name and a queue, and adds the download."""

    def __init__(self, manager: Manager) -> None:
        self.manager = manager
        self.focus_index = AddDownloadField.URL
        self.url_input = TextInput("Enter file URL")
        self.filename_input = TextInput("(Optional) Enter output filename")
        self.queues: list[str] = []
        self.selected_queue = 0
        self.list_index = 0
        self.list_expanded = False
        self.keys = _Keys()
        self.footer = ""
        self._update_choices()
        self._update_focus()

    def _update_choices(self) -> None:
        self.queues = [info.name for info in self.manager.queue_list()]
        last = max(len(self.queues) - 1, 0)
        self.selected_queue = min(self.selected_queue, last)
        self.list_index = min(self.list_index, last)

    def _move(self, step: int) -> None:
        index = min(max(self.focus_index + step, 0), AddDownloadField.CANCEL)
        self.focus_index = AddDownloadField(index)

    def _reset(self) -> None:
        self.url_input.value = ""
        self.filename_input.value = ""
        self.selected_queue = 0
        self.focus_index = AddDownloadField.URL

    def _confirm(self) -> None:
        if not self.queues:
            self.footer = "No queues available."
            return
        queue_name = self.queues[self.selected_queue]
        url = self.url_input.value
        try:
            if url == "":
                raise ValueError("URL cannot be empty")
            self.manager.add_download(url, self.filename_input.value, queue_name)
        except (ValueError, ManagerError, QueueFullError) as exc:
            self.footer = "Error adding download:" + str(exc)
            return
        self.footer = "Download added successfully."
        self._reset()

    def _list_update(self, key: str) -> None:
        last = max(len(self.queues) - 1, 0)
        if key in ("up", "k"):
            self.list_index = max(self.list_index - 1, 0)
        elif key in ("down", "j"):
            self.list_index = min(self.list_index + 1, last)
        elif key in ("home", "g"):
            self.list_index = 0
        elif key in ("end", "G"):
            self.list_index = last

    def update(self, msg: object) -> Optional[Command]:
        """Handle a key; return a command for the program loop."""
        self._update_choices()
        command: Optional[Command] = None
        field = self.focus_index

        if field in (AddDownloadField.URL, AddDownloadField.FILENAME):
            if msg in ("tab", "down"):
                self._move(1)
            elif msg in ("up", "shift+tab"):
                self._move(-1)
            elif msg == "ctrl+c":
                return Command.QUIT
            elif isinstance(msg, str):
                target = self.url_input if field is AddDownloadField.URL else self.filename_input
                command = target.update(msg)
        elif field is AddDownloadField.QUEUE:
            if self.list_expanded:
                if msg == "enter":
                    self.selected_queue = self.list_index
                    self.list_expanded = False
                    return None
                if msg in ("esc", "q"):
                    self.list_expanded = False
                    command = Command.BLINK
                elif isinstance(msg, str):
                    self._list_update(msg)
                    return None
            else:
                if msg in ("tab", "down"):
                    self._move(1)
                elif msg in ("up", "shift+tab"):
                    self._move(-1)
                elif msg == "enter":
                    self.list_expanded = True
                    return None
                elif msg == "ctrl+c":
                    return Command.QUIT
        elif field is AddDownloadField.CONFIRM:
            if msg == "enter":
                self._confirm()
            elif msg in ("tab", "right"):
                self._move(1)
                command = Command.BLINK
            elif msg in ("up", "shift+tab"):
                self._move(-1)
            elif msg == "ctrl+c":
                return Command.QUIT
        elif field is AddDownloadField.CANCEL:
            if msg == "enter":
                self._reset()
                self.footer = ""
            elif msg in ("tab", "down"):
                pass
            elif msg in ("shift+tab", "left"):
                self._move(-1)
            elif msg == "up":
                self.focus_index = AddDownloadField.QUEUE
            elif msg == "ctrl+c":
                return Command.QUIT

        self._update_focus()
        return command

    def _update_focus(self) -> None:
        self.url_input.blur()
        self.filename_input.blur()
        if self.focus_index is AddDownloadField.URL:
            self.url_input.focus()
        elif self.focus_index is AddDownloadField.FILENAME:
            self.filename_input.focus()

    def _list_view(self) -> str:
        if not self.queues:
            return blurred("No items.")
        page = self.list_index // LIST_PAGE_SIZE
        start = page * LIST_PAGE_SIZE
        lines = []
        for index, name in enumerate(self.queues[start:start + LIST_PAGE_SIZE], start=start):
            text = f"{index + 1}. {name}"
            if index == self.list_index:
                lines.append("  " + focused("> " + text))
            else:
                lines.append("    " + text)
        pages = (len(self.queues) + LIST_PAGE_SIZE - 1) // LIST_PAGE_SIZE
        if pages > 1:
            dots = "".join("•" if p == page else "◦" for p in range(pages))
            lines.append("  " + blurred(dots))
        return "\n".join(lines)

    def view(self) -> str:
        """Render the form, its buttons, the footer message and the help."""
        if self.list_expanded:
            queue_display = join_vertical(self._list_view(), _short_help(_ListKeys().short()))
            footer_help = ""
        else:
            if self.queues:
                queue_name = self.queues[self.selected_queue]
            else:
                queue_name = "[No queues available]"
            if self.focus_index is AddDownloadField.QUEUE:
                queue_display = focused(queue_name)
            else:
                queue_display = queue_name
            footer_help = help_view(self.keys.groups())

        confirm = _button("[ Confirm ]")
        cancel = _button("[ Cancel ]")
        if self.focus_index is AddDownloadField.CONFIRM:
            confirm = focused("[ Confirm ]")
        elif self.focus_index is AddDownloadField.CANCEL:
            cancel = focused("[ Cancel ]")

        fields = join_vertical(
            join_horizontal("URL: ", self.url_input.view()),
            join_horizontal("Filename: ", self.filename_input.view()),
            join_horizontal("Destination Queue: ", queue_display),
        )
        form = join_vertical(
            bordered(join_vertical(fields, join_horizontal(confirm, cancel))),
            self.footer,
            footer_help,
        )
        return _padded(form)