"""A named download queue with parallel workers and a daily active window."""

from __future__ import annotations

import datetime as dt
import logging
import queue
import re
import threading
from typing import Any, Iterable, Optional, Union

from dlqueue.download import Download, DownloadError
from dlqueue.limiter import BandwidthLimiter
from dlqueue.status import Status

log = logging.getLogger(__name__)

CHANNEL_CAPACITY = 100
_POLL_SECONDS = 0.1
_CLOCK_RE = re.compile(r"(?:T|^)(\d{1,2}):(\d{2})(?::(\d{2}))?")

ClockLike = Union[dt.time, dt.datetime, str]


class QueueFullError(Exception):
    """The queue cannot take another download right now."""


def format_clock(value: dt.time) -> str:
    """Render a time of day the way the state file stores it."""
    return f"0000-01-01T{value.hour:02d}:{value.minute:02d}:{value.second:02d}Z"


def parse_clock(value: ClockLike) -> dt.time:
    """Turn a stored timestamp, an ``HH:MM`` string or a datetime into a time of day."""
    if isinstance(value, dt.datetime):
        return value.time().replace(tzinfo=None)
    if isinstance(value, dt.time):
        return value.replace(tzinfo=None)
    match = _CLOCK_RE.search(value)
    if match is None:
        raise ValueError(f"not a time of day: {value!r}")
    hour, minute, second = match.groups()
    return dt.time(int(hour), int(minute), int(second or 0))


class Queue:
    """Downloads sharing a target directory, a worker count and a bandwidth limit."""

    def __init__(
        self,
        name: str,
        save_path: str,
        num_concurrent: int,
        num_retries: int,
        start_time: ClockLike,
        end_time: ClockLike,
        max_bandwidth: int,
    ) -> None:
        self.name = name
        self.save_path = save_path
        self.num_concurrent = num_concurrent
        self.num_retries = num_retries
        self.start_time = parse_clock(start_time)
        self.end_time = parse_clock(end_time)
        self.max_bandwidth = max_bandwidth
        self._lock = threading.Lock()
        self._active = False
        self._channel: Optional["queue.Queue[Download]"] = None
        self._done: Optional[threading.Event] = None
        self._workers: list[threading.Thread] = []

    @property
    def is_active(self) -> bool:
        """Whether the workers are running."""
        with self._lock:
            return self._active

    def update_config(
        self,
        save_path: str,
        num_concurrent: int,
        num_retries: int,
        start_time: ClockLike,
        end_time: ClockLike,
        max_bandwidth: int,
    ) -> None:
        """Replace the settings; running workers keep the ones they started with."""
        with self._lock:
            self.save_path = save_path
            self.num_concurrent = num_concurrent
            self.num_retries = num_retries
            self.start_time = parse_clock(start_time)
            self.end_time = parse_clock(end_time)
            self.max_bandwidth = max_bandwidth

    def add_download(self, download: Download) -> None:
        """Hand a download to the workers; ignored while the queue is inactive."""
        with self._lock:
            if not self._active or self._channel is None:
                log.info("download %r not added to inactive queue %r", download.url, self.name)
                return
            try:
                self._channel.put_nowait(download)
            except queue.Full:
                log.error("queue %r is full, download %r not added", self.name, download.url)
                raise QueueFullError("failed to add to queue") from None
            log.info("download %r added to queue %r", download.url, self.name)

    def start(self, queued_downloads: Iterable[Download]) -> None:
        """Start the workers and feed them ``queued_downloads``."""
        with self._lock:
            if self._active:
                return
            self._active = True
            channel: "queue.Queue[Download]" = queue.Queue(maxsize=CHANNEL_CAPACITY)
            done = threading.Event()
            self._channel = channel
            self._done = done
            limiter = BandwidthLimiter(self.max_bandwidth, done)
            self._workers = [
                threading.Thread(target=self._work, args=(channel, done, limiter), daemon=True)
                for _ in range(self.num_concurrent)
            ]
            for worker in self._workers:
                worker.start()
            pending = list(queued_downloads)
            threading.Thread(target=self._add_queued, args=(pending, done), daemon=True).start()

    def _add_queued(self, downloads: list[Download], done: threading.Event) -> None:
        for download in downloads:
            if done.is_set():
                return
            try:
                self.add_download(download)
            except QueueFullError:
                pass

    def _work(
        self,
        channel: "queue.Queue[Download]",
        done: threading.Event,
        limiter: BandwidthLimiter,
    ) -> None:
        while not done.is_set():
            try:
                download = channel.get(timeout=_POLL_SECONDS)
            except queue.Empty:
                continue
            if done.is_set():
                return
            if download.queue_name != self.name or download.status is not Status.PENDING:
                continue
            for _ in range(self.num_retries + 1):
                try:
                    download.start(limiter)
                    break
                except DownloadError as exc:
                    log.error("download %d: %s", download.id, exc)
                    if download.status is not Status.FAILED:
                        break

    def stop(self) -> None:
        """Stop the workers and wait for them to finish."""
        with self._lock:
            if not self._active:
                return
            self._active = False
            if self._done is not None:
                self._done.set()
            workers, self._workers = self._workers, []
            self._channel = None
        for worker in workers:
            worker.join()
        log.info("queue %r stopped", self.name)

    def check_active_time(self, now: Union[dt.datetime, dt.time]) -> bool:
        """Whether ``now`` falls in the daily window, which may wrap past midnight."""
        with self._lock:
            start, end = self.start_time, self.end_time
        end_after_start = (end.hour, end.minute) >= (start.hour, start.minute)
        after_start = (now.hour, now.minute) >= (start.hour, start.minute)
        before_end = (now.hour, now.minute) < (end.hour, end.minute)
        if end_after_start:
            return after_start and before_end
        return after_start or before_end

    def to_dict(self) -> dict[str, Any]:
        with self._lock:
            return {
                "Name": self.name,
                "SavePath": self.save_path,
                "NumConcurrent": self.num_concurrent,
                "NumRetries": self.num_retries,
                "StartTime": format_clock(self.start_time),
                "EndTime": format_clock(self.end_time),
                "MaxBandwidth": self.max_bandwidth,
            }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Queue":
        return cls(
            name=data.get("Name", ""),
            save_path=data.get("SavePath", ""),
            num_concurrent=data.get("NumConcurrent", 0),
            num_retries=data.get("NumRetries", 0),
            start_time=data.get("StartTime") or dt.time(0, 0),
            end_time=data.get("EndTime") or dt.time(0, 0),
            max_bandwidth=data.get("MaxBandwidth", 0),
        )