import re

import pytest

from dlqueue.add_download_tab import AddDownloadField, AddDownloadTab
from dlqueue.manager import Manager, QueueInfo
from dlqueue.widgets import Command

URL = "http://example.com/file.bin"


def strip(text):
    return re.sub(r"\x1b\[[0-9;]*m", "", text)


@pytest.fixture
def manager(tmp_path):
    m = Manager()
    m.add_queue(QueueInfo(name="alpha", target_directory=str(tmp_path), max_parallel=1))
    m.add_queue(QueueInfo(name="beta", target_directory=str(tmp_path), max_parallel=1))
    return m


def press(tab, *keys):
    result = None
    for key in keys:
        result = tab.update(key)
    return result


def type_text(tab, text):
    for ch in text:
        tab.update(ch)


def test_starts_on_url_field(manager):
    tab = AddDownloadTab(manager)
    assert tab.focus_index is AddDownloadField.URL
    assert tab.url_input.focused
    assert not tab.filename_input.focused


def test_typing_fills_url(manager):
    tab = AddDownloadTab(manager)
    type_text(tab, URL)
    assert tab.url_input.value == URL
    assert tab.filename_input.value == ""


def test_tab_and_shift_tab_move_focus(manager):
    tab = AddDownloadTab(manager)
    press(tab, "tab")
    assert tab.focus_index is AddDownloadField.FILENAME
    assert tab.filename_input.focused
    press(tab, "shift+tab")
    assert tab.focus_index is AddDownloadField.URL


def test_focus_stops_at_cancel(manager):
    tab = AddDownloadTab(manager)
    press(tab, *["tab"] * 8)
    assert tab.focus_index is AddDownloadField.CANCEL


def test_confirm_without_queues():
    tab = AddDownloadTab(Manager())
    type_text(tab, URL)
    press(tab, "tab", "tab", "tab", "enter")
    assert tab.footer == "No queues available."


def test_confirm_with_empty_url(manager):
    tab = AddDownloadTab(manager)
    press(tab, "tab", "tab", "tab", "enter")
    assert tab.footer == "Error adding download:URL cannot be empty"
    assert manager.download_list() == []


def test_confirm_adds_download(manager):
    tab = AddDownloadTab(manager)
    type_text(tab, URL)
    press(tab, "tab", "tab", "tab")
    assert tab.focus_index is AddDownloadField.CONFIRM
    press(tab, "enter")
    downloads = manager.download_list()
    assert len(downloads) == 1
    assert downloads[0].url == URL
    assert downloads[0].queue_name == "alpha"
    assert tab.footer == "Download added successfully."
    assert tab.url_input.value == ""
    assert tab.focus_index is AddDownloadField.URL


def test_queue_picker_selects_second_queue(manager):
    tab = AddDownloadTab(manager)
    type_text(tab, URL)
    press(tab, "tab", "tab", "enter")
    assert tab.list_expanded
    press(tab, "down", "enter")
    assert not tab.list_expanded
    assert tab.selected_queue == 1
    press(tab, "tab", "enter")
    assert manager.download_list()[0].queue_name == "beta"


def test_escape_closes_picker(manager):
    tab = AddDownloadTab(manager)
    press(tab, "tab", "tab", "enter", "down")
    assert press(tab, "esc") is Command.BLINK
    assert not tab.list_expanded
    assert tab.selected_queue == 0


def test_ctrl_c_quits(manager):
    tab = AddDownloadTab(manager)
    assert press(tab, "ctrl+c") is Command.QUIT


def test_cancel_button_resets(manager):
    tab = AddDownloadTab(manager)
    type_text(tab, URL)
    press(tab, "tab", "tab", "tab", "tab")
    assert tab.focus_index is AddDownloadField.CANCEL
    press(tab, "enter")
    assert tab.url_input.value == ""
    assert tab.focus_index is AddDownloadField.URL
    assert manager.download_list() == []


def test_up_from_cancel_goes_to_queue(manager):
    tab = AddDownloadTab(manager)
    press(tab, "tab", "tab", "tab", "tab", "up")
    assert tab.focus_index is AddDownloadField.QUEUE


def test_view_shows_selected_queue(manager):
    text = strip(AddDownloadTab(manager).view())
    assert "Destination Queue: alpha" in text
    assert "URL: " in text


def test_view_without_queues():
    text = strip(AddDownloadTab(Manager()).view())
    assert "[No queues available]" in text


def test_expanded_view_lists_queues(manager):
    tab = AddDownloadTab(manager)
    press(tab, "tab", "tab", "enter")
    text = strip(tab.view())
    assert "> 1. alpha" in text
    assert "2. beta" in text