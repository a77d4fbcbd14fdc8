"""Bookkeeping for all queues and downloads, and their daily scheduling."""

from __future__ import annotations

import datetime as dt
import json
import logging
import threading
from dataclasses import dataclass
from typing import Optional, Union

from dlqueue.download import Download
from dlqueue.queue import Queue
from dlqueue.status import Status

log = logging.getLogger(__name__)

CHECK_INTERVAL = 60.0


class ManagerError(Exception):
    """A request to the manager names something missing or is invalid."""


@dataclass
class DownloadInfo:
    """Snapshot of a download for display."""

    id: int
    url: str
    queue_name: str
    transfer_rate: float
    progress: float
    status: Status


@dataclass
class QueueInfo:
    """Settings of a queue as shown and edited by the user."""

    name: str = ""
    target_directory: str = ""
    max_parallel: int = 0
    speed_limit: int = 0
    num_retries: int = 0
    start_time: dt.time = dt.time(0, 0)
    end_time: dt.time = dt.time(0, 0)


def check_queue_info(info: QueueInfo) -> None:
    """Raise ManagerError if the queue settings are out of range."""
    if info.max_parallel < 1:
        raise ManagerError("parallel count error")
    if info.num_retries < 0:
        raise ManagerError("retry count error")


class Manager:
    """Owns every queue and download and switches queues on and off by time."""

    def __init__(self) -> None:
        self.last_id = 0
        self.downloads: list[Download] = []
        self.queues: dict[str, Queue] = {}
        self._lock = threading.RLock()
        self._halt = threading.Event()

    def start(self) -> None:
        """Start checking the queues' active hours in the background."""
        self._halt.clear()
        threading.Thread(target=self._monitor_active_hours, daemon=True).start()

    def _monitor_active_hours(self) -> None:
        self.check_time_and_activate()
        while not self._halt.wait(CHECK_INTERVAL):
            self.check_time_and_activate()

    def stop(self) -> None:
        """Stop scheduling, interrupt running downloads and stop every queue."""
        self._halt.set()
        with self._lock:
            for q in self.queues.values():
                self._pause_queue_downloads(q.name)
                q.stop()

    def _find(self, download_id: int) -> Download:
        for download in self.downloads:
            if download.id == download_id:
                return download
        raise ManagerError("download does not exist")

    def add_download(self, url: str, output_file_name: str, queue_name: str) -> None:
        """Create a download in ``queue_name``; the name defaults to the URL's last segment."""
        with self._lock:
            q = self.queues.get(queue_name)
            if q is None:
                raise ManagerError("queue does not exist")
            if not output_file_name:
                output_file_name = url.split("/")[-1]
            download = Download(self.last_id, url, q.save_path, output_file_name, queue_name)
            self.last_id += 1
            download.pend()
            if q.is_active:
                q.add_download(download)
            self.downloads.append(download)
            log.info("added download %r to queue %r", url, queue_name)

    def remove_download(self, download_id: int) -> None:
        """Forget a download and cancel it, deleting its part files."""
        with self._lock:
            download = self._find(download_id)
            self.downloads.remove(download)
            download.cancel()
            log.info("removed download %r from queue %r", download.url, download.queue_name)

    def pause_download(self, download_id: int) -> None:
        with self._lock:
            download = self._find(download_id)
            download.pause()
            log.info("paused download %r", download.url)

    def resume_download(self, download_id: int) -> None:
        """Mark a download pending and hand it to its queue if that is running."""
        with self._lock:
            download = self._find(download_id)
            q = self.queues.get(download.queue_name)
            if q is None:
                raise ManagerError("queue not found")
            download.pend()
            if q.is_active:
                q.add_download(download)
            log.info("resumed download %r in queue %r", download.url, download.queue_name)

    def download_list(self) -> list[DownloadInfo]:
        with self._lock:
            return [
                DownloadInfo(d.id, d.url, d.queue_name, d.transfer_rate, d.progress, d.status)
                for d in self.downloads
            ]

    def add_queue(self, info: QueueInfo) -> None:
        with self._lock:
            if info.name in self.queues:
                raise ManagerError("queue already exists")
            check_queue_info(info)
            self.queues[info.name] = Queue(
                info.name,
                info.target_directory,
                info.max_parallel,
                info.num_retries,
                info.start_time,
                info.end_time,
                info.speed_limit,
            )
            log.info("added queue %r", info.name)

    def remove_queue(self, queue_name: str) -> None:
        """Cancel and forget the queue's downloads, then stop and forget the queue."""
        with self._lock:
            q = self.queues.get(queue_name)
            if q is None:
                raise ManagerError("queue does not exist")
            for download in self.downloads:
                if download.queue_name == queue_name:
                    self._cancel_quietly(download)
            self.downloads = [d for d in self.downloads if d.queue_name != queue_name]
            q.stop()
            del self.queues[queue_name]
            log.info("removed queue %r", queue_name)

    def update_queue(self, info: QueueInfo) -> None:
        with self._lock:
            q = self.queues.get(info.name)
            if q is None:
                raise ManagerError("queue does not exist")
            check_queue_info(info)
            q.update_config(
                info.target_directory,
                info.max_parallel,
                info.num_retries,
                info.start_time,
                info.end_time,
                info.speed_limit,
            )

    def queue_list(self) -> list[QueueInfo]:
        """Settings of every queue, sorted by name."""
        with self._lock:
            infos = [
                QueueInfo(
                    name=q.name,
                    target_directory=q.save_path,
                    max_parallel=q.num_concurrent,
                    speed_limit=q.max_bandwidth,
                    num_retries=q.num_retries,
                    start_time=q.start_time,
                    end_time=q.end_time,
                )
                for q in self.queues.values()
            ]
        return sorted(infos, key=lambda info: info.name)

    def check_time_and_activate(
        self, now: Optional[Union[dt.datetime, dt.time]] = None
    ) -> None:
        """Start queues whose window has opened and stop those whose window has closed."""
        if now is None:
            now = dt.datetime.now()
        with self._lock:
            for q in list(self.queues.values()):
                active = q.is_active
                in_window = q.check_active_time(now)
                if active and not in_window:
                    self._pause_queue_downloads(q.name)
                    q.stop()
                if not active and in_window:
                    q.start(self._pending_downloads(q.name))

    def _pending_downloads(self, queue_name: str) -> list[Download]:
        return [
            d for d in self.downloads
            if d.queue_name == queue_name and d.status is Status.PENDING
        ]

    def _pause_queue_downloads(self, queue_name: str) -> None:
        for download in self.downloads:
            if download.queue_name != queue_name:
                continue
            if download.status in (Status.PENDING, Status.IN_PROGRESS):
                download.pend()
            elif download.status is Status.PAUSED:
                download.pause()
            elif download.status is Status.CANCELLED:
                self._cancel_quietly(download)

    @staticmethod
    def _cancel_quietly(download: Download) -> None:
        try:
            download.cancel()
        except OSError as exc:
            log.error("cancelling download %d failed: %s", download.id, exc)

    def to_json(self) -> str:
        """The saved-state document for all queues and downloads."""
        with self._lock:
            data = {
                "LastID": self.last_id,
                "Downloads": [d.to_dict() for d in self.downloads],
                "Queues": {name: self.queues[name].to_dict() for name in sorted(self.queues)},
            }
        return json.dumps(data, indent=2)

    @classmethod
    def from_json(cls, text: Union[str, bytes]) -> "Manager":
        """Rebuild a manager from a saved-state document; queues start inactive."""
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("state document must be a JSON object")
        manager = cls()
        manager.last_id = data.get("LastID") or 0
        manager.downloads = [Download.from_dict(d) for d in data.get("Downloads") or []]
        manager.queues = {
            name: Queue.from_dict(q) for name, q in (data.get("Queues") or {}).items()
        }
        return manager