"""The table of all downloads with pause, retry and delete actions."""

from __future__ import annotations

import dataclasses
import logging
from typing import Optional

from dlqueue.manager import DownloadInfo, Manager, ManagerError
from dlqueue.queue import QueueFullError
from dlqueue.status import Status
from dlqueue.widgets import (
    Command,
    KeyBinding,
    Table,
    UpdateMsg,
    bordered,
    help_view,
    join_vertical,
)

log = logging.getLogger(__name__)

_LABELS = {
    Status.IN_PROGRESS: "Downloading",
    Status.PAUSED: "Paused",
    Status.COMPLETED: "Completed",
    Status.FAILED: "Failed",
    Status.PENDING: "Pending",
    Status.CANCELLED: "Cancelled",
}

COLUMNS = [
    ("URL", 30),
    ("Queue", 20),
    ("Status", 15),
    ("Transfer Rate", 15),
    ("Progress", 10),
]


def size_string(size: float) -> str:
    """Human-readable size with binary units."""
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024:
            return f"{size:.2f} {unit}"
        size /= 1024
    return f"{size:.2f} TB"


def speed_string(speed: float) -> str:
    """Human-readable transfer rate."""
    return f"{size_string(speed)}/s"


def status_label(status: object) -> str:
    """The word shown for a status in the table."""
    try:
        return _LABELS[Status(status)]
    except (ValueError, KeyError):
        return "Unknown"


@dataclasses.dataclass(frozen=True)
class _Keys:
    navigation: KeyBinding = KeyBinding(("up", "down", "left", "right"), "↑/↓/←/→", "navigate")
    delete: KeyBinding = KeyBinding(("d",), "d", "delete")
    pause: KeyBinding = KeyBinding(("p",), "p", "pause/resume")
    retry: KeyBinding = KeyBinding(("r",), "r", "retry")
    quit: KeyBinding = KeyBinding(("ctrl+c", "esc"), "ctrl+c/esc", "quit")

    def groups(self) -> list[list[KeyBinding]]:
        return [[self.navigation, self.quit], [self.delete, self.pause, self.retry]]


def _toggle(binding: KeyBinding, enabled: bool) -> KeyBinding:
    return dataclasses.replace(binding, enabled=enabled)


class DownloadsTab:
    """Shows every download and acts on the selected one."""

    def __init__(self, manager: Manager) -> None:
        self.manager = manager
        self.downloads: list[DownloadInfo] = []
        self.table = Table(COLUMNS, height=10, focused=True)
        self.table.disable("half_page_down")
        self.keys = _Keys()
        self.footer = ""
        self._refresh()

    def _refresh(self) -> None:
        self.downloads = self.manager.download_list()
        rows = []
        for info in self.downloads:
            label = status_label(info.status)
            if info.status is Status.COMPLETED:
                rows.append([info.url, info.queue_name, label, "", "100%"])
            else:
                rows.append([
                    info.url,
                    info.queue_name,
                    label,
                    speed_string(info.transfer_rate),
                    f"{info.progress:#6.2f}%",
                ])
        self.table.rows = rows

    def _selected(self) -> Optional[DownloadInfo]:
        index = self.table.cursor
        if 0 <= index < len(self.downloads):
            return self.downloads[index]
        return None

    def _act(self, action, download_id: int) -> None:
        try:
            action(download_id)
        except (ManagerError, QueueFullError, OSError) as exc:
            log.error("action on download %d failed: %s", download_id, exc)
        self._refresh()

    def update(self, msg: object) -> Optional[Command]:
        """Handle a key or refresh message; return a command for the program loop."""
        self._refresh()
        if isinstance(msg, UpdateMsg):
            return Command.TICK
        if isinstance(msg, str):
            keys = self.keys
            selected = self._selected()
            if keys.navigation.matches(msg):
                pass
            elif keys.pause.matches(msg):
                if selected is not None:
                    if selected.status is Status.IN_PROGRESS:
                        self._act(self.manager.pause_download, selected.id)
                    elif selected.status is Status.PAUSED:
                        self._act(self.manager.resume_download, selected.id)
            elif keys.retry.matches(msg):
                if selected is not None and selected.status is Status.FAILED:
                    self._act(self.manager.resume_download, selected.id)
            elif keys.delete.matches(msg):
                if selected is not None:
                    self._act(self.manager.remove_download, selected.id)
            elif keys.quit.matches(msg):
                return Command.QUIT
        self.table.cursor = self.table.cursor
        return self.table.update(msg)

    def view(self) -> str:
        """Render the table, the footer and the help for the selected download."""
        keys = self.keys
        any_rows = bool(self.downloads)
        delete = _toggle(keys.delete, any_rows)
        pause = _toggle(keys.pause, any_rows)
        retry = _toggle(keys.retry, any_rows)
        selected = self._selected()
        if selected is not None:
            status = selected.status
            if status in (Status.IN_PROGRESS, Status.PENDING, Status.PAUSED):
                retry, pause = _toggle(retry, False), _toggle(pause, True)
            elif status is Status.FAILED:
                retry, pause = _toggle(retry, True), _toggle(pause, False)
            elif status is Status.COMPLETED:
                retry, pause = _toggle(retry, False), _toggle(pause, False)
        shown = dataclasses.replace(keys, delete=delete, pause=pause, retry=retry)
        return join_vertical(
            bordered(self.table.view()),
            self.footer,
            help_view(shown.groups()),
        )