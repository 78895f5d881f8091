import threading

import pytest

from vendnav.loop import EventLoop


@pytest.fixture
def loop():
    event_loop = EventLoop()
    yield event_loop
    event_loop.close()


def test_call_later_fires(loop):
    fired = []
    loop.call_later(0.05, fired.append, "tick")

    loop.run_until(lambda: fired, poll_interval=0.01)

    assert fired == ["tick"]


def test_cancelled_timer_does_not_fire(loop):
    fired = []
    handle = loop.call_later(0.05, fired.append, "cancelled")
    handle.cancel()
    loop.call_later(0.1, fired.append, "kept")

    loop.run_until(lambda: fired, poll_interval=0.01)

    assert fired == ["kept"]


def test_call_soon_from_worker_thread(loop):
    received = []
    worker = threading.Thread(target=loop.call_soon, args=(received.append, "from worker"))
    worker.start()
    worker.join()

    loop.run_until(lambda: received, poll_interval=0.01)

    assert received == ["from worker"]


def test_time_advances(loop):
    start = loop.time()
    done = []
    loop.call_later(0.05, done.append, True)

    loop.run_until(lambda: done, poll_interval=0.01)

    assert loop.time() - start >= 0.05


def test_close_is_idempotent():
    event_loop = EventLoop()
    event_loop.close()
    event_loop.close()
    assert event_loop.loop.is_closed()
