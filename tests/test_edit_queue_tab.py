import datetime as dt

import pytest

from dlqueue.edit_queue_tab import EditQueueField, EditQueueTab
from dlqueue.manager import Manager, QueueInfo
from dlqueue.widgets import Command


@pytest.fixture
def manager(tmp_path):
    m = Manager()
    m.add_queue(
        QueueInfo(
            name="work",
            target_directory=str(tmp_path),
            max_parallel=2,
            speed_limit=0,
            start_time=dt.time(8, 30),
            end_time=dt.time(17, 0),
        )
    )
    return m


@pytest.fixture
def tab(manager):
    return EditQueueTab(manager, manager.queue_list()[0])


def _to_confirm(tab):
    for _ in range(5):
        tab.update("tab")


def test_fields_are_filled_from_queue(tab, tmp_path):
    assert tab.queue_name == "work"
    assert tab.target_dir_input.value == str(tmp_path)
    assert tab.max_parallel_input.value == "2"
    assert tab.speed_limit_input.value == "0"
    assert tab.start_time_input.value == "08:30"
    assert tab.end_time_input.value == "17:00"


def test_tab_moves_to_confirm(tab):
    _to_confirm(tab)
    assert tab.focus_index is EditQueueField.CONFIRM


def test_confirm_updates_queue(tab, manager):
    tab.max_parallel_input.value = "4"
    tab.speed_limit_input.value = "2048"
    _to_confirm(tab)
    assert tab.update("enter") is Command.CLOSE_CHILD
    assert tab.footer == "Queue updated successfully."
    info = manager.queue_list()[0]
    assert info.max_parallel == 4
    assert info.speed_limit == 2048


def test_invalid_speed_limit_reports_error(tab, manager):
    tab.speed_limit_input.value = "abc"
    _to_confirm(tab)
    assert tab.update("enter") is None
    assert tab.footer == "speed limit must be a number"
    assert manager.queue_list()[0].speed_limit == 0


def test_missing_queue_reports_error(tmp_path):
    manager = Manager()
    info = QueueInfo(name="ghost", target_directory=str(tmp_path), max_parallel=1)
    tab = EditQueueTab(manager, info)
    _to_confirm(tab)
    assert tab.update("enter") is None
    assert tab.footer == "queue does not exist"


def test_escape_closes_and_resets(tab):
    assert tab.update("esc") is Command.CLOSE_CHILD
    assert tab.target_dir_input.value == ""
    assert tab.max_parallel_input.value == ""
    assert tab.focus_index is EditQueueField.TARGET_DIRECTORY


def test_buttons_navigation(tab):
    _to_confirm(tab)
    assert tab.update("tab") is Command.BLINK
    assert tab.focus_index is EditQueueField.CANCEL
    assert tab.update("left") is Command.BLINK
    assert tab.focus_index is EditQueueField.CONFIRM
    tab.update("right")
    tab.update("up")
    assert tab.focus_index is EditQueueField.END_TIME


def test_cancel_button_closes(tab):
    _to_confirm(tab)
    tab.update("tab")
    assert tab.update("enter") is Command.CLOSE_CHILD
    assert tab.speed_limit_input.value == ""


def test_typing_edits_focused_field(tab, tmp_path):
    tab.update("backspace")
    assert tab.target_dir_input.value == str(tmp_path)[:-1]
    assert tab.max_parallel_input.value == "2"


def test_view_shows_name_and_no_limit(tab):
    text = tab.view()
    assert "Name: " in text
    assert "work" in text
    assert "(no limit)" in text


def test_view_marks_invalid_speed(tab):
    tab.speed_limit_input.value = "fast"
    assert "(invalid)" in tab.view()