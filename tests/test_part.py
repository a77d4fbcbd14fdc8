import queue
import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from dlqueue.limiter import BandwidthLimiter
from dlqueue.part import Part, PartResult
from dlqueue.status import Status

PAYLOAD = bytes(range(256)) * 400


class _Handler(BaseHTTPRequestHandler):
    def log_message(self, *args):
        pass

    def do_GET(self):
        data = PAYLOAD
        rng = self.headers.get("Range")
        code = 200
        if rng:
            first, last = rng[len("bytes="):].split("-")
            data = data[int(first): int(last) + 1]
            code = 206
        self.send_response(code)
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)


@pytest.fixture
def url():
    srv = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    thread = threading.Thread(target=srv.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{srv.server_address[1]}/file.bin"
    srv.shutdown()
    srv.server_close()


def _limiter():
    return BandwidthLimiter(0, threading.Event())


def test_full_range_download(url, tmp_path):
    path = tmp_path / "a.part"
    part = Part(0, 0, len(PAYLOAD) - 1, path=str(path), url=url)
    results = queue.Queue()
    part.start(results, _limiter())
    result = results.get_nowait()
    assert result == PartResult(None, Status.COMPLETED)
    assert part.status is Status.COMPLETED
    assert path.read_bytes() == PAYLOAD
    assert part.downloaded_bytes == len(PAYLOAD)


def test_resume_appends_remaining_bytes(url, tmp_path):
    path = tmp_path / "b.part"
    path.write_bytes(PAYLOAD[100:150])
    part = Part(1, 100, 199, downloaded_bytes=50, path=str(path), url=url)
    results = queue.Queue()
    part.start(results, _limiter())
    assert results.get_nowait().status is Status.COMPLETED
    assert part.range_of_download == "150-199"
    assert path.read_bytes() == PAYLOAD[100:200]
    assert part.downloaded_bytes == 100


def test_completed_part_reports_without_fetching(tmp_path):
    path = tmp_path / "c.part"
    part = Part(0, 0, 9, status=Status.COMPLETED, path=str(path), url="http://127.0.0.1:1/")
    results = queue.Queue()
    part.start(results, _limiter())
    assert results.get_nowait() == PartResult(None, Status.COMPLETED)
    assert not path.exists()


def test_connection_failure_marks_failed(tmp_path):
    sock = socket.socket()
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    part = Part(0, 0, 9, path=str(tmp_path / "d.part"), url=f"http://127.0.0.1:{port}/x")
    results = queue.Queue()
    part.start(results, _limiter())
    result = results.get_nowait()
    assert result.status is Status.FAILED
    assert isinstance(result.error, OSError)
    assert part.status is Status.FAILED


class _PausingLimiter:
    def __init__(self, part):
        self.part = part
        self.calls = 0

    def wait_for_token(self):
        self.calls += 1
        if self.calls == 1:
            self.part.pause()


def test_pause_interrupts_running_transfer(url, tmp_path):
    path = tmp_path / "e.part"
    part = Part(0, 0, len(PAYLOAD) - 1, path=str(path), url=url)
    results = queue.Queue()
    part.start(results, _PausingLimiter(part))
    result = results.get_nowait()
    assert result.status is Status.PAUSED
    assert "has status" in str(result.error)
    assert part.status is Status.PAUSED
    assert 0 < part.downloaded_bytes < len(PAYLOAD)
    assert path.stat().st_size == part.downloaded_bytes


@pytest.mark.parametrize(
    "method, expected",
    [
        ("pause", Status.PAUSED),
        ("pend", Status.PENDING),
        ("cancel", Status.CANCELLED),
        ("fail", Status.FAILED),
    ],
)
def test_state_changes_on_idle_part(method, expected):
    part = Part(0, 0, 9, status=Status.PAUSED)
    getattr(part, method)()
    assert part.status is expected


def test_add_downloaded_accumulates():
    part = Part(0, 0, 99)
    part.add_downloaded(10)
    part.add_downloaded(5)
    assert part.downloaded_bytes == 15


def test_dict_round_trip():
    part = Part(2, 40, 59, downloaded_bytes=7, range_of_download="47-59",
                path="/tmp/f47-59.part", status=Status.PAUSED)
    data = part.to_dict()
    assert data["Status"] == int(Status.PAUSED)
    assert set(data) == {"PartIndex", "StartIndex", "EndIndex", "DownloadedBytes",
                         "RangeOfDownload", "Path", "Status"}
    again = Part.from_dict(data)
    assert again.to_dict() == data
    assert again.status is Status.PAUSED