"""
Cooperative timer scheduler and clocks
"""

import pytest

from gaze_system.coordinator.clock import ManualClock, MonotonicClock


def test_fires_in_deadline_order(clock, scheduler):
    fired = []
    scheduler.schedule(300, lambda: fired.append('late'))
    scheduler.schedule(100, lambda: fired.append('early'))

    clock.advance(500)
    assert scheduler.poll() == 2
    assert fired == ['early', 'late']


def test_not_fired_before_deadline(clock, scheduler):
    fired = []
    scheduler.schedule(1000, lambda: fired.append(1))

    clock.advance(999)
    assert scheduler.poll() == 0
    assert fired == []
    assert scheduler.pending == 1


def test_cancelled_timer_never_fires(clock, scheduler):
    fired = []
    handle = scheduler.schedule(100, lambda: fired.append(1))

    assert scheduler.cancel(handle)
    assert not scheduler.cancel(handle)
    clock.advance(200)
    assert scheduler.poll() == 0
    assert fired == []


def test_cancel_all(clock, scheduler):
    handles = [scheduler.schedule(10, lambda: None) for _ in range(3)]
    scheduler.cancel_all()

    assert not any(scheduler.is_pending(h) for h in handles)
    clock.advance(100)
    assert scheduler.poll() == 0


def test_monotonic_clock_never_goes_back():
    readings = iter([2.0, 1.0, 3.0])
    clock = MonotonicClock(source=lambda: next(readings))

    assert clock.now_ms() == 2000.0
    assert clock.now_ms() == 2000.0
    assert clock.now_ms() == 3000.0
    assert clock.get_stats()['total_calls'] == 3


def test_manual_clock_rejects_rewind():
    clock = ManualClock(start_ms=100)
    with pytest.raises(ValueError):
        clock.advance(-1)
    with pytest.raises(ValueError):
        clock.set(50)
