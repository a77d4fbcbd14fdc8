"""The table of download queues with add, edit and delete actions."""

from __future__ import annotations

import dataclasses
import logging
from typing import Optional

from dlqueue.add_queue_tab import AddQueueTab
from dlqueue.downloads_tab import speed_string
from dlqueue.edit_queue_tab import CLOCK_FORMAT, EditQueueTab
from dlqueue.manager import Manager, ManagerError, QueueInfo
from dlqueue.widgets import (
    CloseChildMsg,
    Command,
    KeyBinding,
    Table,
    bordered,
    help_view,
    join_vertical,
)

log = logging.getLogger(__name__)

COLUMNS = [
    ("Name", 20),
    ("Target Directory", 30),
    ("Max Parallel", 15),
    ("Speed Limit", 15),
    ("Start Time", 10),
    ("End Time", 10),
]


@dataclasses.dataclass(frozen=True)
class _Keys:
    navigation: KeyBinding = KeyBinding(("up", "down", "left", "right"), "↑/↓/←/→", "navigate")
    delete: KeyBinding = KeyBinding(("d",), "d", "delete")
    new_queue: KeyBinding = KeyBinding(("n",), "n", "new queue")
    edit: KeyBinding = KeyBinding(("e",), "e", "edit")
    quit: KeyBinding = KeyBinding(("ctrl+c", "esc", "q"), "ctrl+c/esc", "quit")

    def groups(self) -> list[list[KeyBinding]]:
        return [[self.navigation, self.quit], [self.new_queue, self.edit, self.delete]]


class QueuesTab:
    """Shows every queue and opens the forms to add or edit one."""

    def __init__(self, manager: Manager) -> None:
        self.manager = manager
        self.queues: list[QueueInfo] = []
        self.table = Table(COLUMNS, height=10, focused=True)
        self.table.disable("half_page_down")
        self.keys = _Keys()
        self.add_queue_tab = AddQueueTab(manager)
        self.edit_queue_tab = EditQueueTab(manager, QueueInfo())
        self.adding_queue = False
        self.editing_queue = False
        self.footer = ""
        self._refresh()

    def _refresh(self) -> None:
        self.queues = self.manager.queue_list()
        rows = []
        for info in self.queues:
            speed = "∞" if info.speed_limit == 0 else speed_string(float(info.speed_limit))
            rows.append([
                info.name,
                info.target_directory,
                str(info.max_parallel),
                speed,
                info.start_time.strftime(CLOCK_FORMAT),
                info.end_time.strftime(CLOCK_FORMAT),
            ])
        self.table.rows = rows

    def _selected(self) -> Optional[QueueInfo]:
        index = self.table.cursor
        if 0 <= index < len(self.queues):
            return self.queues[index]
        return None

    def _close_child(self) -> None:
        self.adding_queue = False
        self.editing_queue = False
        self.footer = ""
        self._refresh()

    def update(self, msg: object) -> Optional[Command]:
        """Handle a message, passing it to an open form if there is one."""
        self._refresh()
        if self.editing_queue:
            if isinstance(msg, CloseChildMsg):
                self._close_child()
                return None
            return self.edit_queue_tab.update(msg)
        if self.adding_queue:
            if isinstance(msg, CloseChildMsg):
                self._close_child()
                return None
            return self.add_queue_tab.update(msg)

        command: Optional[Command] = None
        if isinstance(msg, str):
            keys = self.keys
            selected = self._selected()
            if keys.navigation.matches(msg):
                pass
            elif keys.delete.matches(msg):
                if selected is not None:
                    try:
                        self.manager.remove_queue(selected.name)
                    except ManagerError as exc:
                        log.error("removing queue %r failed: %s", selected.name, exc)
                    self._refresh()
            elif keys.new_queue.matches(msg):
                self.adding_queue = True
                command = Command.BLINK
            elif keys.edit.matches(msg):
                if selected is not None:
                    self.editing_queue = True
                    self.edit_queue_tab = EditQueueTab(self.manager, selected)
                    command = Command.BLINK
            elif keys.quit.matches(msg):
                return Command.QUIT

        self.table.cursor = self.table.cursor
        table_command = self.table.update(msg)
        return command if command is not None else table_command

    def view(self) -> str:
        """Render the open form, or the table with its footer and help."""
        if self.editing_queue:
            return self.edit_queue_tab.view()
        if self.adding_queue:
            return self.add_queue_tab.view()
        any_rows = bool(self.queues)
        shown = dataclasses.replace(
            self.keys,
            delete=dataclasses.replace(self.keys.delete, enabled=any_rows),
            edit=dataclasses.replace(self.keys.edit, enabled=any_rows),
        )
        return join_vertical(
            bordered(self.table.view()),
            self.footer,
            help_view(shown.groups()),
        )