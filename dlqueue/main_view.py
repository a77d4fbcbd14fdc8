"""The top-level view switching between the add, downloads and queues tabs."""

from __future__ import annotations

import enum
import re
from typing import Optional

from dlqueue.add_download_tab import AddDownloadTab
from dlqueue.downloads_tab import DownloadsTab
from dlqueue.manager import Manager
from dlqueue.queues_tab import QueuesTab
from dlqueue.widgets import Command, UpdateMsg, join_horizontal, join_vertical

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")
_HIGHLIGHT = "38;2;125;86;244"
FOOTER_WIDTH = 100


class Tab(enum.IntEnum):
    """The tabs, in the order they are shown."""

    ADD_DOWNLOAD = 0
    DOWNLOADS = 1
    QUEUES = 2


TAB_TITLES = {
    Tab.ADD_DOWNLOAD: "Add Download",
    Tab.DOWNLOADS: "Downloads List",
    Tab.QUEUES: "Queues List",
}


def _highlight(text: str) -> str:
    return f"\x1b[{_HIGHLIGHT}m{text}\x1b[0m"


def _tab_box(title: str, active: bool) -> str:
    inner = "  " + title + "  "
    width = len(inner)
    body = _highlight(inner) if active else inner
    return "\n".join([
        _highlight("╭" + "─" * width + "╮"),
        _highlight("│") + body + _highlight("│"),
        _highlight("╰" + "─" * width + "╯"),
    ])


def _padded(text: str) -> str:
    lines = text.split("\n")
    widths = [len(_ANSI_RE.sub("", line)) for line in lines]
    width = max(widths, default=0)
    blank = " " * (width + 4)
    body = ["  " + line + " " * (width - w) + "  " for line, w in zip(lines, widths)]
    return "\n".join([blank, *body, blank])


class MainView:
    """Routes messages to the active tab and moves between tabs with left and right."""

    def __init__(self, manager: Manager) -> None:
        self.manager = manager
        self.current_tab = Tab.DOWNLOADS
        self.download_tab = DownloadsTab(manager)
        self.queue_tab = QueuesTab(manager)
        self.add_download_tab = AddDownloadTab(manager)
        self.footer = ""

    def update(self, msg: object) -> Optional[Command]:
        """Handle a message; the active tab sees it first."""
        if isinstance(msg, UpdateMsg):
            return self.download_tab.update(msg)

        tab = self.current_tab
        if tab is Tab.DOWNLOADS:
            command = self.download_tab.update(msg)
            if command is not None:
                return command
            if msg == "left":
                self.current_tab = Tab.ADD_DOWNLOAD
                command = self.add_download_tab.update(None)
            elif msg == "right":
                self.current_tab = Tab.QUEUES
                command = self.queue_tab.update(None)
            elif msg in ("esc", "ctrl+c"):
                return Command.QUIT
        elif tab is Tab.QUEUES:
            command = self.queue_tab.update(msg)
            if command is not None:
                return command
            if msg == "left":
                self.current_tab = Tab.DOWNLOADS
                command = self.download_tab.update(None)
            elif msg in ("esc", "ctrl+c"):
                return Command.QUIT
        else:
            command = self.add_download_tab.update(msg)
            if command is not None:
                return command
            if msg == "right":
                self.current_tab = Tab.DOWNLOADS
                command = self.download_tab.update(None)
            elif msg in ("esc", "ctrl+c"):
                return Command.QUIT
        return command

    def view(self) -> str:
        """Render the tab row, the active tab and the footer."""
        row = join_horizontal(
            *(_tab_box(title, tab is self.current_tab) for tab, title in TAB_TITLES.items())
        )
        if self.current_tab is Tab.DOWNLOADS:
            content = self.download_tab.view()
        elif self.current_tab is Tab.QUEUES:
            content = self.queue_tab.view()
        else:
            content = self.add_download_tab.view()
        return _padded(join_vertical(row, content, self.footer.ljust(FOOTER_WIDTH)))