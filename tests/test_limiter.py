import threading
import time

import pytest

from dlqueue.limiter import BandwidthLimiter


def test_zero_rate_never_blocks():
    limiter = BandwidthLimiter(0, threading.Event())
    begin = time.monotonic()
    results = [limiter.wait_for_token() for _ in range(1000)]
    elapsed = time.monotonic() - begin
    assert results == [None] * 1000
    assert elapsed < 0.5


def test_rate_spaces_tokens():
    # 50 tokens per second -> one every 20 ms.
    limiter = BandwidthLimiter(1024 * 50, threading.Event())
    begin = time.monotonic()
    results = [limiter.wait_for_token() for _ in range(6)]
    elapsed = time.monotonic() - begin
    assert results == [None] * 6
    assert elapsed >= 0.09


def test_stop_releases_waiters():
    stop = threading.Event()
    limiter = BandwidthLimiter(1, stop)
    stop.set()
    begin = time.monotonic()
    result = limiter.wait_for_token()
    elapsed = time.monotonic() - begin
    assert (result, elapsed < 1.0) == (None, True)


def test_stop_set_from_other_thread_wakes_waiter():
    stop = threading.Event()
    limiter = BandwidthLimiter(1, stop)
    timer = threading.Timer(0.05, stop.set)
    timer.start()
    begin = time.monotonic()
    result = limiter.wait_for_token()
    elapsed = time.monotonic() - begin
    timer.join()
    assert (result, elapsed < 2.0) == (None, True)


def test_negative_rate_rejected():
    with pytest.raises(ValueError):
        BandwidthLimiter(-1, threading.Event())