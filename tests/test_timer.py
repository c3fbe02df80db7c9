import threading
import time

from bubblesave.engine.timer import RepeatingTimer


def test_timer_fires_repeatedly_and_cancels():
    calls = []
    timer = RepeatingTimer(0.01, lambda: calls.append(time.monotonic()))

    timer.start()
    deadline = time.monotonic() + 5
    while len(calls) < 3 and time.monotonic() < deadline:
        time.sleep(0.01)
    timer.cancel()

    assert len(calls) >= 3
    assert not timer.is_running
    count = len(calls)
    time.sleep(0.1)
    assert len(calls) == count


def test_callback_errors_do_not_stop_timer():
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("first tick fails")

    timer = RepeatingTimer(0.01, flaky)
    timer.start()
    deadline = time.monotonic() + 5
    while len(calls) < 2 and time.monotonic() < deadline:
        time.sleep(0.01)
    timer.cancel()
    assert len(calls) >= 2


def test_cancel_from_callback_does_not_deadlock():
    fired = threading.Event()
    timer = None

    def stop_self():
        timer.cancel()
        fired.set()

    timer = RepeatingTimer(0.01, stop_self)
    timer.start()
    assert fired.wait(timeout=5)
    deadline = time.monotonic() + 5
    while timer.is_running and time.monotonic() < deadline:
        time.sleep(0.01)
    assert not timer.is_running


def test_cancel_before_start_is_safe():
    timer = RepeatingTimer(1.0, lambda: None)
    timer.cancel()
    assert not timer.is_running
