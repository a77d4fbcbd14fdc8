"""One byte range of a download, fetched with an HTTP range request."""

from __future__ import annotations

import http.client
import logging
import queue
import threading
import urllib.request
from dataclasses import dataclass, field
from typing import Any, Optional

from dlqueue.limiter import BandwidthLimiter
from dlqueue.status import Status

log = logging.getLogger(__name__)

CHUNK_SIZE = 32 * 1024


@dataclass(frozen=True)
class PartResult:
    """Outcome a part reports when its transfer ends."""

    error: Optional[BaseException]
    status: Status


@dataclass(eq=False)
class Part:
    """A contiguous byte range written to its own ``.part`` file."""

    part_index: int
    start_index: int
    end_index: int
    downloaded_bytes: int = 0
    range_of_download: str = ""
    path: str = ""
    status: Status = Status.PENDING
    url: str = field(default="", repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _request: Optional[Status] = field(default=None, init=False, repr=False)

    def start(self, results: "queue.Queue[PartResult]", limiter: BandwidthLimiter) -> None:
        """Fetch the remaining bytes of the range and put the outcome on ``results``."""
        if self.status is Status.COMPLETED:
            results.put(PartResult(None, Status.COMPLETED))
            return
        with self._lock:
            self._request = None
            self.status = Status.IN_PROGRESS

        first = self.start_index + self.downloaded_bytes
        self.range_of_download = f"{first}-{self.end_index}"
        request = urllib.request.Request(
            self.url, headers={"Range": "bytes=" + self.range_of_download}
        )
        log.info(
            "downloading part %d started (bytes %d - %d)",
            self.part_index, first, self.end_index,
        )

        try:
            response = urllib.request.urlopen(request)
        except (OSError, ValueError, http.client.HTTPException) as exc:
            log.error("http request for part %d failed: %s", self.part_index, exc)
            self._set_status(Status.FAILED)
            results.put(PartResult(exc, Status.FAILED))
            return

        with response:
            try:
                out = open(self.path, "ab")
            except OSError as exc:
                log.error("cannot open part file of part %d: %s", self.part_index, exc)
                self.fail()
                results.put(PartResult(exc, Status.FAILED))
                return
            with out:
                results.put(self._transfer(response, out, limiter))

    def _transfer(self, response, out, limiter: BandwidthLimiter) -> PartResult:
        while True:
            requested = self._take_request()
            if requested is not None:
                log.info("stop downloading part %d due to status %d", self.part_index, requested)
                message = f"part {self.part_index} has status = {int(requested)}"
                return PartResult(RuntimeError(message), requested)

            limiter.wait_for_token()
            try:
                chunk = response.read(CHUNK_SIZE)
            except (OSError, http.client.HTTPException) as exc:
                log.error("reading body for part %d failed: %s", self.part_index, exc)
                self.fail()
                return PartResult(exc, Status.FAILED)

            if not chunk:
                log.info(
                    "downloaded part %d (bytes %d - %d)",
                    self.part_index, self.start_index, self.end_index,
                )
                self._set_status(Status.COMPLETED)
                return PartResult(None, Status.COMPLETED)

            try:
                out.write(chunk)
            except OSError as exc:
                log.error("writing part file of part %d failed: %s", self.part_index, exc)
                self.fail()
                return PartResult(exc, Status.FAILED)
            self.add_downloaded(len(chunk))

    def _take_request(self) -> Optional[Status]:
        with self._lock:
            requested, self._request = self._request, None
            return requested

    def _interrupt(self, status: Status) -> None:
        with self._lock:
            if self.status is Status.IN_PROGRESS:
                self._request = status
            self.status = status
        log.info(
            "part %d set to %s: %d bytes downloaded",
            self.part_index, status.name, self.downloaded_bytes,
        )

    def _set_status(self, status: Status) -> None:
        with self._lock:
            self.status = status

    def pause(self) -> None:
        """Stop a running transfer and mark the part paused."""
        self._interrupt(Status.PAUSED)

    def pend(self) -> None:
        """Stop a running transfer and mark the part pending."""
        self._interrupt(Status.PENDING)

    def cancel(self) -> None:
        """Stop a running transfer and mark the part cancelled."""
        self._interrupt(Status.CANCELLED)

    def fail(self) -> None:
        """Stop a running transfer and mark the part failed."""
        self._interrupt(Status.FAILED)

    def add_downloaded(self, n: int) -> None:
        """Count ``n`` more bytes as written."""
        with self._lock:
            self.downloaded_bytes += n

    def to_dict(self) -> dict[str, Any]:
        return {
            "PartIndex": self.part_index,
            "StartIndex": self.start_index,
            "EndIndex": self.end_index,
            "DownloadedBytes": self.downloaded_bytes,
            "RangeOfDownload": self.range_of_download,
            "Path": self.path,
            "Status": int(self.status),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Part":
        return cls(
            part_index=data.get("PartIndex", 0),
            start_index=data.get("StartIndex", 0),
            end_index=data.get("EndIndex", 0),
            downloaded_bytes=data.get("DownloadedBytes", 0),
            range_of_download=data.get("RangeOfDownload", ""),
            path=data.get("Path", ""),
            status=Status(data.get("Status", 0)),
        )