"""Queue-based download manager with scheduled queues and a terminal interface."""

__version__ = "0.1.0"