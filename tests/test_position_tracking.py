import pytest

from worldofbits.exceptions import PositionUnavailableError
from worldofbits.position import PositionSample, PositionTracker, ScriptedPositionSource


class LeakySource(ScriptedPositionSource):
    """Keeps delivering to watchers after clear_watch, like a sloppy driver."""

    def __init__(self):
        super().__init__()
        self.leaked = []

    def watch(self, on_sample, on_error):
        self.leaked.append(on_sample)
        return super().watch(on_sample, on_error)

    def emit_leaked(self, sample):
        for cb in self.leaked:
            cb(sample)


def test_samples_flow_until_stop():
    source = ScriptedPositionSource()
    tracker = PositionTracker(source)
    got = []
    tracker.start(got.append, lambda e: None)
    source.emit(PositionSample(1.0, 2.0))
    tracker.stop()
    source.emit(PositionSample(3.0, 4.0))
    assert got == [PositionSample(1.0, 2.0)]
    assert not source.watching


def test_stop_is_idempotent_and_safe_before_start():
    tracker = PositionTracker(ScriptedPositionSource())
    tracker.stop()
    tracker.start(lambda s: None, lambda e: None)
    tracker.stop()
    tracker.stop()
    assert not tracker.active


def test_late_samples_from_stopped_watch_are_dropped():
    source = LeakySource()
    tracker = PositionTracker(source)
    got = []
    tracker.start(got.append, lambda e: None)
    tracker.stop()
    source.emit_leaked(PositionSample(1.0, 1.0))
    assert got == []


def test_error_ends_tracking_and_is_reported_once():
    source = ScriptedPositionSource()
    tracker = PositionTracker(source)
    errors = []
    tracker.start(lambda s: None, errors.append)
    source.fail("permission denied")
    assert [str(e) for e in errors] == ["permission denied"]
    assert not tracker.active


def test_once_returns_queued_sample_or_times_out():
    source = ScriptedPositionSource([PositionSample(5.0, 6.0, 3.0)])
    assert source.once(timeout=1.0) == PositionSample(5.0, 6.0, 3.0)
    with pytest.raises(PositionUnavailableError):
        source.once(timeout=1.0)
