"""Small terminal widgets, messages and text styles shared by the views."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")
_RESET = "\x1b[0m"

FOCUSED_COLOR = 205
BLURRED_COLOR = 240
BORDER_COLOR = 240
SELECTED_FOREGROUND = 229
SELECTED_BACKGROUND = 57
HELP_SEPARATOR = " \t "


class Command(enum.Enum):
    """An effect a view asks the program loop to carry out."""

    QUIT = enum.auto()
    BLINK = enum.auto()
    TICK = enum.auto()
    CLOSE_CHILD = enum.auto()


@dataclass(frozen=True)
class CloseChildMsg:
    """Sent to a parent view when a child form has finished."""


@dataclass(frozen=True)
class UpdateMsg:
    """Periodic refresh of the downloads view."""


def _visible(text: str) -> str:
    return _ANSI_RE.sub("", text)


def _width(line: str) -> int:
    return len(_visible(line))


def _block_width(lines: Sequence[str]) -> int:
    return max((_width(line) for line in lines), default=0)


def _paint(text: str, code: str) -> str:
    if not text:
        return ""
    return "\n".join(f"\x1b[{code}m{line}{_RESET}" for line in text.split("\n"))


def focused(text: str) -> str:
    """Render text in the highlight colour of focused fields."""
    return _paint(text, f"38;5;{FOCUSED_COLOR}")


def blurred(text: str) -> str:
    """Render text in the dim colour of unfocused elements."""
    return _paint(text, f"38;5;{BLURRED_COLOR}")


def _bold(text: str) -> str:
    return _paint(text, "1")


def _selected(text: str) -> str:
    return _paint(text, f"38;5;{SELECTED_FOREGROUND};48;5;{SELECTED_BACKGROUND}")


def _reverse(text: str) -> str:
    return _paint(text, "7")


def bordered(text: str) -> str:
    """Surround a block of text with a thin box."""
    lines = text.split("\n")
    width = _block_width(lines)
    edge = lambda s: _paint(s, f"38;5;{BORDER_COLOR}")  # noqa: E731
    out = [edge("┌" + "─" * width + "┐")]
    for line in lines:
        pad = " " * (width - _width(line))
        out.append(edge("│") + line + pad + edge("│"))
    out.append(edge("└" + "─" * width + "┘"))
    return "\n".join(out)


def join_vertical(*args: str) -> str:
    """Stack blocks top to bottom, left aligned and padded to a common width."""
    lines = [line for block in args for line in block.split("\n")]
    width = _block_width(lines)
    return "\n".join(line + " " * (width - _width(line)) for line in lines)


def join_horizontal(*args: str) -> str:
    """Place blocks side by side, aligned at the top."""
    blocks = [block.split("\n") for block in args]
    height = max((len(b) for b in blocks), default=0)
    rows = [""] * height
    for block in blocks:
        width = _block_width(block)
        for i in range(height):
            line = block[i] if i < len(block) else ""
            rows[i] += line + " " * (width - _width(line))
    return "\n".join(rows)


@dataclass(frozen=True)
class KeyBinding:
    """Keys bound to one action, with the text shown in the help line."""

    keys: tuple[str, ...]
    help_key: str
    help_desc: str
    enabled: bool = True

    def matches(self, key: object) -> bool:
        """Whether ``key`` triggers this binding."""
        return self.enabled and isinstance(key, str) and key in self.keys


def help_view(groups: Iterable[Iterable[KeyBinding]]) -> str:
    """Render groups of enabled bindings as dim columns below a blank line."""
    columns = []
    for group in groups:
        enabled = [b for b in group if b.enabled]
        if not enabled:
            continue
        key_width = max(len(b.help_key) for b in enabled)
        columns.append(
            "\n".join(f"{b.help_key.ljust(key_width)} {b.help_desc}" for b in enabled)
        )
    parts: list[str] = []
    for column in columns:
        if parts:
            parts.append(HELP_SEPARATOR)
        parts.append(column)
    body = join_horizontal(*parts) if parts else ""
    return "\n" + blurred(body)


class TextInput:
    """A single-line editable text field."""

    def __init__(self, placeholder: str = "", value: str = "", prompt: str = "> ") -> None:
        self.placeholder = placeholder
        self.prompt = prompt
        self.focused = False
        self._value = ""
        self._pos = 0
        self.value = value

    @property
    def value(self) -> str:
        return self._value

    @value.setter
    def value(self, text: str) -> None:
        self._value = text
        self._pos = len(text)

    @property
    def position(self) -> int:
        """Cursor position within the value."""
        return self._pos

    def focus(self) -> None:
        self.focused = True

    def blur(self) -> None:
        self.focused = False

    def update(self, key: object) -> Optional[Command]:
        """Apply an edit key; keys arriving while unfocused are ignored."""
        if not self.focused or not isinstance(key, str):
            return None
        text, pos = self._value, self._pos
        if key == "backspace":
            if pos > 0:
                self._value = text[: pos - 1] + text[pos:]
                self._pos = pos - 1
        elif key == "delete":
            self._value = text[:pos] + text[pos + 1:]
        elif key == "left":
            self._pos = max(0, pos - 1)
        elif key == "right":
            self._pos = min(len(text), pos + 1)
        elif key in ("home", "ctrl+a"):
            self._pos = 0
        elif key in ("end", "ctrl+e"):
            self._pos = len(text)
        elif key in ("ctrl+u",):
            self._value = text[pos:]
            self._pos = 0
        elif key in ("ctrl+k",):
            self._value = text[:pos]
        else:
            char = " " if key == "space" else key
            if len(char) == 1 and char.isprintable():
                self._value = text[:pos] + char + text[pos:]
                self._pos = pos + 1
        return None

    def view(self) -> str:
        """Render the prompt and the value, or the placeholder when empty."""
        style = focused if self.focused else (lambda s: s)
        prompt = style(self.prompt)
        if not self._value:
            if self.focused and self.placeholder:
                return prompt + _reverse(self.placeholder[0]) + blurred(self.placeholder[1:])
            if self.focused:
                return prompt + _reverse(" ")
            return prompt + blurred(self.placeholder)
        if not self.focused:
            return prompt + self._value
        before = self._value[: self._pos]
        under = self._value[self._pos: self._pos + 1] or " "
        after = self._value[self._pos + 1:]
        return prompt + style(before) + _reverse(under) + style(after)


def _cell(text: str, width: int) -> str:
    if len(text) > width:
        text = text[: max(width - 1, 0)] + "…" if width > 0 else ""
    return " " + text.ljust(width) + " "


class Table:
    """A scrollable table with a selectable row."""

    def __init__(
        self,
        columns: Sequence[tuple[str, int]],
        rows: Iterable[Sequence[str]] = (),
        height: int = 10,
        focused: bool = True,
    ) -> None:
        self.columns = list(columns)
        self.height = height
        self.focused = focused
        self.keys = {
            "line_up": KeyBinding(("up", "k"), "↑/k", "up"),
            "line_down": KeyBinding(("down", "j"), "↓/j", "down"),
            "page_up": KeyBinding(("b", "pgup"), "b/pgup", "page up"),
            "page_down": KeyBinding(("f", "pgdown", "space"), "f/pgdn", "page down"),
            "half_page_up": KeyBinding(("u", "ctrl+u"), "u", "½ page up"),
            "half_page_down": KeyBinding(("d", "ctrl+d"), "d", "½ page down"),
            "goto_top": KeyBinding(("home", "g"), "g/home", "go to start"),
            "goto_bottom": KeyBinding(("end", "G"), "G/end", "go to end"),
        }
        self._rows: list[list[str]] = []
        self._cursor = 0
        self._offset = 0
        self.rows = rows

    @property
    def rows(self) -> list[list[str]]:
        return self._rows

    @rows.setter
    def rows(self, rows: Iterable[Sequence[str]]) -> None:
        self._rows = [list(row) for row in rows]
        self.cursor = self._cursor

    @property
    def cursor(self) -> int:
        """Index of the selected row."""
        return self._cursor

    @cursor.setter
    def cursor(self, index: int) -> None:
        self._cursor = max(0, min(index, len(self._rows) - 1))

    def disable(self, name: str) -> None:
        """Turn off one of the table's own key bindings."""
        binding = self.keys[name]
        self.keys[name] = KeyBinding(binding.keys, binding.help_key, binding.help_desc, False)

    def update(self, key: object) -> Optional[Command]:
        """Move the selection for navigation keys."""
        if not self.focused or not isinstance(key, str):
            return None
        k = self.keys
        if k["line_up"].matches(key):
            self.cursor -= 1
        elif k["line_down"].matches(key):
            self.cursor += 1
        elif k["page_up"].matches(key):
            self.cursor -= self.height
        elif k["page_down"].matches(key):
            self.cursor += self.height
        elif k["half_page_up"].matches(key):
            self.cursor -= max(self.height // 2, 1)
        elif k["half_page_down"].matches(key):
            self.cursor += max(self.height // 2, 1)
        elif k["goto_top"].matches(key):
            self.cursor = 0
        elif k["goto_bottom"].matches(key):
            self.cursor = len(self._rows) - 1
        return None

    def view(self) -> str:
        """Render the header and the visible window of rows."""
        header = "".join(_cell(title, width) for title, width in self.columns)
        width = len(header)
        lines = [_bold(header), _paint("─" * width, f"38;5;{BORDER_COLOR}")]
        if self._cursor < self._offset:
            self._offset = self._cursor
        elif self._cursor >= self._offset + self.height:
            self._offset = self._cursor - self.height + 1
        visible = self._rows[self._offset: self._offset + self.height]
        for i, row in enumerate(visible, start=self._offset):
            cells = [
                _cell(row[c] if c < len(row) else "", w)
                for c, (_, w) in enumerate(self.columns)
            ]
            line = "".join(cells)
            lines.append(_selected(line) if i == self._cursor else line)
        lines.extend(" " * width for _ in range(self.height - len(visible)))
        return "\n".join(lines)