"""Lifecycle states shared by downloads and their parts."""

from enum import IntEnum


class Status(IntEnum):
    """State of a download or of one of its parts.

    The integer values are the ones written to the saved state file.
    """

    PENDING = 0
    IN_PROGRESS = 1
    PAUSED = 2
    CANCELLED = 3
    FAILED = 4
    COMPLETED = 5