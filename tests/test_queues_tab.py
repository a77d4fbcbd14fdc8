import datetime as dt

import pytest

from dlqueue.downloads_tab import speed_string
from dlqueue.manager import Manager, QueueInfo
from dlqueue.queues_tab import QueuesTab
from dlqueue.widgets import CloseChildMsg, Command


def _info(name, directory, speed=0):
    return QueueInfo(
        name=name,
        target_directory=directory,
        max_parallel=2,
        speed_limit=speed,
        start_time=dt.time(8, 0),
        end_time=dt.time(17, 0),
    )


@pytest.fixture
def manager(tmp_path):
    m = Manager()
    m.add_queue(_info("work", str(tmp_path)))
    return m


def test_rows_show_queue_settings(manager, tmp_path):
    tab = QueuesTab(manager)
    assert tab.table.rows == [["work", str(tmp_path), "2", "∞", "08:00", "17:00"]]


def test_speed_limit_column_and_sorting(tmp_path):
    m = Manager()
    m.add_queue(_info("zeta", str(tmp_path), speed=2048))
    m.add_queue(_info("alpha", str(tmp_path)))
    tab = QueuesTab(m)
    assert [row[0] for row in tab.table.rows] == ["alpha", "zeta"]
    assert tab.table.rows[1][3] == speed_string(2048.0)


def test_down_moves_cursor(tmp_path):
    m = Manager()
    m.add_queue(_info("a", str(tmp_path)))
    m.add_queue(_info("b", str(tmp_path)))
    tab = QueuesTab(m)
    tab.update("down")
    assert tab.table.cursor == 1


def test_delete_removes_queue(manager):
    tab = QueuesTab(manager)
    tab.update("d")
    assert manager.queue_list() == []
    assert tab.table.rows == []


def test_delete_without_queues_does_nothing():
    tab = QueuesTab(Manager())
    assert tab.update("d") is None
    assert tab.queues == []


@pytest.mark.parametrize("key", ["q", "esc", "ctrl+c"])
def test_quit_keys(manager, key):
    assert QueuesTab(manager).update(key) is Command.QUIT


def test_new_queue_opens_and_closes_form(manager):
    tab = QueuesTab(manager)
    assert tab.update("n") is Command.BLINK
    assert tab.adding_queue is True
    assert "Max Parallel Downloads: " in tab.view()
    assert tab.update("esc") is Command.CLOSE_CHILD
    assert tab.adding_queue is True
    assert tab.update(CloseChildMsg()) is None
    assert tab.adding_queue is False


def test_edit_flow_updates_rows(manager):
    tab = QueuesTab(manager)
    assert tab.update("e") is Command.BLINK
    assert tab.editing_queue is True
    assert tab.edit_queue_tab.queue_name == "work"
    tab.edit_queue_tab.speed_limit_input.value = "2048"
    for _ in range(5):
        tab.update("tab")
    assert tab.update("enter") is Command.CLOSE_CHILD
    assert tab.update(CloseChildMsg()) is None
    assert tab.editing_queue is False
    assert tab.table.rows[0][3] == speed_string(2048.0)


def test_edit_without_queues_stays_closed():
    tab = QueuesTab(Manager())
    assert tab.update("e") is None
    assert tab.editing_queue is False


def test_help_hides_actions_without_queues(manager):
    assert "delete" in QueuesTab(manager).view()
    empty = QueuesTab(Manager()).view()
    assert "delete" not in empty
    assert "new queue" in empty