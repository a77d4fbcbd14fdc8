"""Command-line entry point: load state, run the terminal interface, save state."""

from __future__ import annotations

import argparse
import logging
import sys
import threading
import time
from pathlib import Path
from typing import Optional, Sequence, Union

from dlqueue.main_view import MainView, Tab
from dlqueue.manager import Manager
from dlqueue.storage import load, save
from dlqueue.widgets import CloseChildMsg, Command, UpdateMsg

log = logging.getLogger(__name__)

STATE_FILE = "internal/persistence/data.json"
LOG_FILE = "internal/logger/logfile"
AUTOSAVE_INTERVAL = 30.0
TICK_INTERVAL = 1.0

_SEQUENCE_NAMES = {
    "KEY_UP": "up",
    "KEY_DOWN": "down",
    "KEY_LEFT": "left",
    "KEY_RIGHT": "right",
    "KEY_ENTER": "enter",
    "KEY_ESCAPE": "esc",
    "KEY_TAB": "tab",
    "KEY_BTAB": "shift+tab",
    "KEY_BACKSPACE": "backspace",
    "KEY_DELETE": "delete",
    "KEY_HOME": "home",
    "KEY_END": "end",
    "KEY_PGUP": "pgup",
    "KEY_PGDOWN": "pgdown",
}

_CHAR_NAMES = {
    "\t": "tab",
    "\r": "enter",
    "\n": "enter",
    "\x1b": "esc",
    "\x7f": "backspace",
    "\x08": "backspace",
    " ": "space",
}


def start_logging(path: Union[str, Path] = LOG_FILE) -> Optional[logging.Handler]:
    """Send log records to ``path``, appending; return the handler, or None if it cannot open."""
    try:
        handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    except OSError as exc:
        log.error("error opening file: %s", exc)
        return None
    handler.setFormatter(logging.Formatter("%(asctime)s %(message)s", "%Y/%m/%d %H:%M:%S"))
    root = logging.getLogger()
    root.addHandler(handler)
    if root.getEffectiveLevel() > logging.INFO:
        root.setLevel(logging.INFO)
    return handler


def save_state(manager: Manager, filename: Union[str, Path] = STATE_FILE) -> None:
    """Write the manager's state to ``filename``; failures are logged."""
    try:
        save(filename, manager.to_json())
    except OSError as exc:
        log.error("saving state to %s failed: %s", filename, exc)


def _autosave(manager: Manager, filename: Union[str, Path], stop: threading.Event) -> None:
    while not stop.wait(AUTOSAVE_INTERVAL):
        save_state(manager, filename)


def _key_name(keystroke) -> str:
    if keystroke.is_sequence and keystroke.name in _SEQUENCE_NAMES:
        return _SEQUENCE_NAMES[keystroke.name]
    text = str(keystroke)
    if text in _CHAR_NAMES:
        return _CHAR_NAMES[text]
    if len(text) == 1 and ord(text) < 32:
        return f"ctrl+{chr(ord(text) + 96)}"
    return text


def _dispatch(view: MainView, msg: object) -> Optional[Command]:
    command = view.update(msg)
    while command is Command.CLOSE_CHILD:
        command = view.update(CloseChildMsg())
    return command


def _draw(term, view: MainView) -> None:
    sys.stdout.write(term.home + term.clear + view.view().replace("\n", "\r\n"))
    sys.stdout.flush()


def _run_ui(manager: Manager) -> None:
    import blessed

    term = blessed.Terminal()
    view = MainView(manager)
    next_tick: Optional[float] = None
    if view.current_tab is Tab.DOWNLOADS:
        next_tick = time.monotonic() + TICK_INTERVAL

    with term.fullscreen(), term.raw(), term.hidden_cursor():
        _draw(term, view)
        while True:
            timeout = None if next_tick is None else max(0.0, next_tick - time.monotonic())
            keystroke = term.inkey(timeout=timeout)
            if keystroke:
                command = _dispatch(view, _key_name(keystroke))
            elif next_tick is not None and time.monotonic() >= next_tick:
                next_tick = None
                command = _dispatch(view, UpdateMsg())
            else:
                continue
            if command is Command.QUIT:
                return
            if command is Command.TICK:
                next_tick = time.monotonic() + TICK_INTERVAL
            _draw(term, view)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dlqueue", description="Queue-based download manager.")
    parser.add_argument("--state", default=STATE_FILE, help="saved state file")
    parser.add_argument("--log", default=LOG_FILE, help="log file")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the download manager; return the exit status."""
    args = _parser().parse_args(argv)
    start_logging(args.log)
    try:
        manager = load(args.state)
    except (OSError, ValueError, TypeError, KeyError) as exc:
        log.critical("loading %s failed: %s", args.state, exc)
        print(f"dlqueue: {exc}", file=sys.stderr)
        return 1

    save_state(manager, args.state)
    manager.start()
    stop = threading.Event()
    threading.Thread(target=_autosave, args=(manager, args.state, stop), daemon=True).start()
    try:
        _run_ui(manager)
    finally:
        stop.set()
        manager.stop()
        save_state(manager, args.state)
    return 0