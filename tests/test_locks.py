from __future__ import annotations

import sys
import threading
import time
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from userapi.locks import ReadWriteLock


def _wait_until(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


def test_readers_share_the_lock() -> None:
    lock = ReadWriteLock()
    entered = threading.Event()

    def reader() -> None:
        with lock.read_locked():
            entered.set()

    lock.acquire_read()
    try:
        thread = threading.Thread(target=reader)
        thread.start()
        assert entered.wait(1.0)
        thread.join(1.0)
    finally:
        lock.release_read()


def test_writer_waits_for_active_reader() -> None:
    lock = ReadWriteLock()
    entered = threading.Event()

    def writer() -> None:
        with lock.write_locked():
            entered.set()

    lock.acquire_read()
    thread = threading.Thread(target=writer)
    thread.start()
    assert not entered.wait(0.1)
    lock.release_read()
    assert entered.wait(1.0)
    thread.join(1.0)


def test_reader_waits_for_active_writer() -> None:
    lock = ReadWriteLock()
    entered = threading.Event()

    def reader() -> None:
        with lock.read_locked():
            entered.set()

    lock.acquire_write()
    thread = threading.Thread(target=reader)
    thread.start()
    assert not entered.wait(0.1)
    lock.release_write()
    assert entered.wait(1.0)
    thread.join(1.0)


def test_waiting_writer_goes_before_new_readers() -> None:
    lock = ReadWriteLock()
    order: list[str] = []

    def writer() -> None:
        with lock.write_locked():
            order.append("writer")

    def reader() -> None:
        with lock.read_locked():
            order.append("reader")

    lock.acquire_read()
    writer_thread = threading.Thread(target=writer)
    writer_thread.start()
    assert _wait_until(lambda: lock._writers_waiting == 1)

    reader_thread = threading.Thread(target=reader)
    reader_thread.start()
    time.sleep(0.05)
    assert order == []

    lock.release_read()
    writer_thread.join(1.0)
    reader_thread.join(1.0)
    assert order == ["writer", "reader"]


def test_writers_are_mutually_exclusive() -> None:
    lock = ReadWriteLock()
    active = 0
    peak = 0
    guard = threading.Lock()

    def writer() -> None:
        nonlocal active, peak
        for _ in range(50):
            with lock.write_locked():
                with guard:
                    active += 1
                    peak = max(peak, active)
                time.sleep(0.0005)
                with guard:
                    active -= 1

    threads = [threading.Thread(target=writer) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(5.0)

    assert peak == 1


def test_release_without_acquire_raises() -> None:
    lock = ReadWriteLock()
    with pytest.raises(RuntimeError):
        lock.release_read()
    with pytest.raises(RuntimeError):
        lock.release_write()


def test_lock_released_when_block_raises() -> None:
    lock = ReadWriteLock()
    with pytest.raises(ValueError):
        with lock.write_locked():
            raise ValueError("boom")

    # Both kinds of acquisition must succeed immediately afterwards.
    with lock.read_locked():
        pass
    with lock.write_locked():
        pass
