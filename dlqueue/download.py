"""A single file download split into parallel byte-range parts."""

from __future__ import annotations

import logging
import os
import queue
import shutil
import threading
import time
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Any

from dlqueue.limiter import BandwidthLimiter
from dlqueue.part import Part, PartResult
from dlqueue.status import Status

log = logging.getLogger(__name__)

NUMBER_OF_PARTS = 5
MONITOR_INTERVAL = 0.6


class DownloadError(Exception):
    """A download could not be started or finished."""


@dataclass(eq=False)
class Download:
    """A file fetched from ``url`` into ``destination/output_file_name``."""

    id: int
    url: str
    destination: str
    output_file_name: str
    queue_name: str
    path: str = ""
    number_of_parts: int = 0
    total_size: int = 0
    downloaded_size: int = 0
    download_percentage: float = 0.0
    parts: list[Part] = field(default_factory=list)
    is_initialized: bool = False
    status: Status = Status.PENDING
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _last_downloaded_size: int = field(default=0, init=False, repr=False)
    _current_speed: float = field(default=0.0, init=False, repr=False)
    _last_update: float = field(default=0.0, init=False, repr=False)

    def __post_init__(self) -> None:
        if not self.path:
            self.path = self.destination + "/" + self.output_file_name

    @property
    def transfer_rate(self) -> float:
        """Most recently measured speed in bytes per second."""
        return self._current_speed

    @property
    def progress(self) -> float:
        """Downloaded share of the file, in percent."""
        return self.download_percentage

    def _set_status(self, status: Status) -> None:
        with self._lock:
            self.status = status

    def _probe(self) -> tuple[int, bool]:
        request = urllib.request.Request(self.url, method="HEAD")
        try:
            with urllib.request.urlopen(request) as response:
                code = response.status
                headers = response.headers
        except urllib.error.HTTPError as exc:
            log.error("bad response for download %d: %s", self.id, exc)
            raise DownloadError("response status code is not OK") from exc
        except (OSError, ValueError) as exc:
            log.error("HEAD request for download %d failed: %s", self.id, exc)
            raise DownloadError(f"HEAD request failed: {exc}") from exc
        if code != 200:
            raise DownloadError("response status code is not OK")
        try:
            length = int(headers.get("Content-Length", -1))
        except ValueError:
            length = -1
        accept = headers.get("Accept-Ranges", "")
        if accept in ("", "none"):
            log.info("download %d does not support partial downloading", self.id)
            return length, False
        return length, True

    def _split(self) -> list[Part]:
        size = self.total_size // self.number_of_parts
        parts = []
        for i in range(self.number_of_parts):
            first = i * size
            last = self.total_size - 1 if i == self.number_of_parts - 1 else (i + 1) * size - 1
            span = f"{first}-{last}"
            parts.append(Part(
                part_index=i,
                start_index=first,
                end_index=last,
                range_of_download=span,
                path=self.destination + "/" + self.output_file_name + span + ".part",
            ))
        return parts

    def _initialize(self) -> None:
        self.path = self.destination + "/" + self.output_file_name
        self.total_size, partial = self._probe()
        if self.total_size <= 0:
            self._set_status(Status.FAILED)
            log.error("content length of download %d is invalid", self.id)
            raise DownloadError("content length is invalid")
        self.number_of_parts = NUMBER_OF_PARTS if partial else 1
        self.parts = self._split()

    def _download_parts(self, limiter: BandwidthLimiter) -> None:
        results: "queue.Queue[PartResult]" = queue.Queue()
        for part in self.parts:
            threading.Thread(target=part.start, args=(results, limiter), daemon=True).start()
        for _ in self.parts:
            result = results.get()
            if result.error is not None:
                if result.status is Status.FAILED:
                    self._set_status(Status.FAILED)
                raise DownloadError(str(result.error)) from result.error

    def _merge_parts(self) -> None:
        with open(self.path, "wb") as merged:
            for part in self.parts:
                with open(part.path, "rb") as source:
                    shutil.copyfileobj(source, merged)
                os.remove(part.path)

    def _refresh_progress(self) -> None:
        with self._lock:
            self.downloaded_size = sum(part.downloaded_bytes for part in self.parts)
            now = time.monotonic()
            elapsed = now - self._last_update
            delta = self.downloaded_size - self._last_downloaded_size
            if self.status is not Status.PAUSED and elapsed > 0:
                self._current_speed = delta / elapsed
                self._last_downloaded_size = self.downloaded_size
                self._last_update = now
            elif self.status is Status.PAUSED:
                self._current_speed = 0.0
            if self.total_size > 0:
                self.download_percentage = self.downloaded_size / self.total_size * 100
            log.debug(
                "monitoring :: %.2f%% (%.2f MB/%.2f MB) - %.2f MB/s",
                self.download_percentage, self.downloaded_size / 1e6,
                self.total_size / 1e6, self._current_speed / 1e6,
            )

    def _monitor(self) -> None:
        active = True
        while True:
            time.sleep(MONITOR_INTERVAL)
            if self.status is not Status.IN_PROGRESS:
                if not active:
                    return
                active = False
            self._refresh_progress()

    def start(self, limiter: BandwidthLimiter) -> None:
        """Fetch all parts and merge them; raise DownloadError if that fails."""
        self._set_status(Status.PENDING)
        if not self.is_initialized:
            try:
                self._initialize()
            except DownloadError:
                self._set_status(Status.FAILED)
                raise
            self.is_initialized = True

        for part in self.parts:
            part.url = self.url
        self._set_status(Status.IN_PROGRESS)
        log.info("content length of download %d is %d", self.id, self.total_size)

        self._last_update = time.monotonic()
        threading.Thread(target=self._monitor, daemon=True).start()

        self._download_parts(limiter)
        self._refresh_progress()
        log.info("all parts of download %d downloaded", self.id)
        try:
            self._merge_parts()
        except OSError as exc:
            log.error("merging parts of download %d failed: %s", self.id, exc)
            self._set_status(Status.FAILED)
            raise DownloadError(f"merging parts failed: {exc}") from exc
        self._set_status(Status.COMPLETED)

    def pause(self) -> None:
        log.info("pausing download %d", self.id)
        self._set_status(Status.PAUSED)
        for part in self.parts:
            part.pause()

    def pend(self) -> None:
        log.info("pending download %d", self.id)
        self._set_status(Status.PENDING)
        for part in self.parts:
            part.pend()

    def cancel(self) -> None:
        """Stop every part and delete the part files already written."""
        self._set_status(Status.CANCELLED)
        for part in self.parts:
            part.cancel()
            if not os.path.exists(part.path):
                log.info("part file of part %d of download %d does not exist",
                         part.part_index, self.id)
                continue
            os.remove(part.path)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ID": self.id,
            "URL": self.url,
            "Destination": self.destination,
            "OutputFileName": self.output_file_name,
            "Path": self.path,
            "QueueName": self.queue_name,
            "NumberOfParts": self.number_of_parts,
            "TotalSize": self.total_size,
            "DownloadedSize": self.downloaded_size,
            "DownloadPercentage": self.download_percentage,
            "Parts": [part.to_dict() for part in self.parts],
            "IsInitialized": self.is_initialized,
            "Status": int(self.status),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Download":
        return cls(
            id=data.get("ID", 0),
            url=data.get("URL", ""),
            destination=data.get("Destination", ""),
            output_file_name=data.get("OutputFileName", ""),
            queue_name=data.get("QueueName", ""),
            path=data.get("Path", ""),
            number_of_parts=data.get("NumberOfParts", 0),
            total_size=data.get("TotalSize", 0),
            downloaded_size=data.get("DownloadedSize", 0),
            download_percentage=data.get("DownloadPercentage", 0.0),
            parts=[Part.from_dict(p) for p in data.get("Parts") or []],
            is_initialized=data.get("IsInitialized", False),
            status=Status(data.get("Status", 0)),
        )