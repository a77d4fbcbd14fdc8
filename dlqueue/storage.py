"""Reading and writing the saved state file."""

from __future__ import annotations

from pathlib import Path
from typing import Union

from dlqueue.manager import Manager


def load(filename: Union[str, Path]) -> Manager:
    """Read the state file, or return an empty manager if there is none."""
    try:
        text = Path(filename).read_text(encoding="utf-8")
    except FileNotFoundError:
        return Manager()
    return Manager.from_json(text)


def save(filename: Union[str, Path], data: Union[str, bytes]) -> None:
    """Write the state document to ``filename``, replacing its contents."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    Path(filename).write_bytes(data)