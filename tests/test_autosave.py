import pytest

from worldofbits.exceptions import PersistenceError
from worldofbits.save.autosave import DebouncedSaver, ManualTimers


class Recorder:
    def __init__(self, state):
        self.state = state
        self.writes = []

    def __call__(self):
        self.writes.append(dict(self.state))


def test_burst_of_mutations_writes_once_with_latest_state():
    timers = ManualTimers()
    state = {"moves": 0}
    rec = Recorder(state)
    saver = DebouncedSaver(timers, rec, delay=0.4)

    assert saver.schedule() is True
    for _ in range(5):
        state["moves"] += 1
        assert saver.schedule() is False
        timers.advance(0.05)

    assert rec.writes == []
    timers.advance(0.2)
    assert rec.writes == [{"moves": 5}]
    assert not saver.pending


def test_new_window_after_fire():
    timers = ManualTimers()
    rec = Recorder({})
    saver = DebouncedSaver(timers, rec, delay=0.4)
    saver.schedule()
    timers.advance(0.4)
    saver.schedule()
    timers.advance(0.4)
    assert len(rec.writes) == 2


def test_cancel_and_flush():
    timers = ManualTimers()
    rec = Recorder({})
    saver = DebouncedSaver(timers, rec, delay=0.4)

    saver.schedule()
    saver.cancel()
    timers.advance(1.0)
    assert rec.writes == []

    assert saver.flush() is False
    saver.schedule()
    assert saver.flush() is True
    assert len(rec.writes) == 1
    timers.advance(1.0)
    assert len(rec.writes) == 1


def test_write_failure_is_reported_not_raised():
    timers = ManualTimers()
    errors = []

    def failing_write():
        raise PersistenceError("disk full")

    saver = DebouncedSaver(timers, failing_write, delay=0.1, on_error=errors.append)
    saver.schedule()
    timers.advance(0.1)

    assert [str(e) for e in errors] == ["disk full"]
    # a later mutation can try again
    assert saver.schedule() is True


def test_manual_timers_run_in_deadline_order():
    timers = ManualTimers()
    order = []
    timers.call_later(0.3, lambda: order.append("late"))
    timers.call_later(0.1, lambda: order.append("early"))
    assert timers.pending == 2
    assert timers.advance(0.5) == 2
    assert order == ["early", "late"]
    assert timers.now == pytest.approx(0.5)
