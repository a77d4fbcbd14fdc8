import datetime as dt
import time

import pytest

from dlqueue.download import Download
from dlqueue.queue import Queue, QueueFullError
from dlqueue.status import Status


def _queue(start=dt.time(9, 0), end=dt.time(17, 0), workers=1, retries=0, name="q"):
    return Queue(name, "/tmp", workers, retries, start, end, 0)


def _wait_for(condition, timeout=10.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return
        time.sleep(0.05)


@pytest.mark.parametrize(
    "now, expected",
    [
        (dt.time(10, 30), True),
        (dt.time(9, 0), True),
        (dt.time(8, 59), False),
        (dt.time(17, 0), False),
        (dt.time(16, 59), True),
    ],
)
def test_daytime_window(now, expected):
    assert _queue().check_active_time(now) is expected


@pytest.mark.parametrize(
    "now, expected",
    [
        (dt.time(23, 0), True),
        (dt.time(5, 59), True),
        (dt.time(6, 0), False),
        (dt.time(12, 0), False),
    ],
)
def test_window_wrapping_midnight(now, expected):
    q = _queue(start=dt.time(22, 0), end=dt.time(6, 0))
    assert q.check_active_time(now) is expected


def test_empty_window_is_never_active():
    q = _queue(start=dt.time(12, 0), end=dt.time(12, 0))
    assert q.check_active_time(dt.time(12, 0)) is False


def test_check_active_time_accepts_datetime():
    q = _queue()
    assert q.check_active_time(dt.datetime(2024, 5, 1, 12, 0)) is True


def test_start_and_stop_toggle_activity():
    q = _queue(workers=2)
    assert q.is_active is False
    q.start([])
    assert q.is_active is True
    q.stop()
    assert q.is_active is False
    q.stop()
    assert q.is_active is False


def test_add_download_to_inactive_queue_is_ignored(tmp_path):
    q = _queue()
    d = Download(0, "http://127.0.0.1:1/a.bin", str(tmp_path), "a.bin", "q")
    q.add_download(d)
    assert d.status is Status.PENDING


def test_full_channel_raises():
    q = _queue(workers=0)
    q.start([])
    try:
        for i in range(100):
            q.add_download(Download(i, "http://127.0.0.1:1/x", "/tmp", "x", "q"))
        with pytest.raises(QueueFullError):
            q.add_download(Download(100, "http://127.0.0.1:1/x", "/tmp", "x", "q"))
    finally:
        q.stop()


def test_worker_skips_download_of_other_queue(tmp_path):
    q = _queue()
    d = Download(0, "http://127.0.0.1:1/a.bin", str(tmp_path), "a.bin", "other")
    q.start([])
    q.add_download(d)
    time.sleep(0.3)
    q.stop()
    assert d.status is Status.PENDING


def test_worker_marks_unreachable_download_failed(tmp_path):
    q = _queue(retries=1)
    d = Download(0, "http://127.0.0.1:1/a.bin", str(tmp_path), "a.bin", "q")
    q.start([d])
    try:
        _wait_for(lambda: d.status is Status.FAILED)
    finally:
        q.stop()
    assert d.status is Status.FAILED


def test_update_config_replaces_settings():
    q = _queue()
    q.update_config("/data", 3, 2, dt.time(1, 15), dt.time(2, 45), 4096)
    assert (q.save_path, q.num_concurrent, q.num_retries) == ("/data", 3, 2)
    assert (q.start_time, q.end_time, q.max_bandwidth) == (dt.time(1, 15), dt.time(2, 45), 4096)


def test_to_dict_uses_stored_time_format():
    q = _queue(start=dt.time(9, 30))
    assert q.to_dict()["StartTime"] == "0000-01-01T09:30:00Z"


def test_dict_round_trip():
    q = Queue("night", "/srv", 4, 2, dt.time(22, 5), dt.time(6, 40), 2048)
    copy = Queue.from_dict(q.to_dict())
    assert copy.to_dict() == q.to_dict()
    assert copy.is_active is False


def test_from_dict_reads_zero_time():
    q = Queue.from_dict({"Name": "z", "StartTime": "0001-01-01T00:00:00Z", "EndTime": "0000-01-01T18:20:00Z"})
    assert q.start_time == dt.time(0, 0)
    assert q.end_time == dt.time(18, 20)


def test_bad_time_string_raises():
    with pytest.raises(ValueError):
        Queue("q", "/tmp", 1, 0, "soon", "later", 0)