"""
Calibration state machine, outlier rejection and timer-driven sequencing
"""

import pytest

from gaze_system.geometry.types import GazeVector
from gaze_system.tracking.calibration import (
    CalibrationCompleted,
    CalibrationSessionController,
    CalibrationState,
    CancelTimers,
    Exit,
    FinalizePoint,
    PointRecorded,
    Reset,
    SampleCollected,
    ScheduleTimer,
    Start,
    TimerElapsed,
    reject_outliers,
    summarize_samples,
    transition,
)
from gaze_system.tracking.config import GazeConfig
from gaze_system.tracking.models import (
    CALIBRATION_SEQUENCE,
    CalibrationData,
    CalibrationSample,
    CalibrationStep,
    SCREEN_POSITION_MAP,
)


def sample(x, y):
    return CalibrationSample(GazeVector(x, y), GazeVector(x, y))


def target_sample(step):
    """Gaze linear in the target's screen position"""
    u, v = SCREEN_POSITION_MAP[step]
    return sample(u * 10 - 5, v * 10 - 5)


@pytest.fixture
def config():
    return GazeConfig.for_calibration()


@pytest.fixture
def collecting(config):
    state, _ = transition(CalibrationState(), Start(), config)
    return state


# ----------------------------------------------------------------------
# Outlier rejection
# ----------------------------------------------------------------------

def test_single_outlier_removed_from_average():
    samples = [sample(0.0, 0.0)] * 89 + [sample(1000.0, 1000.0)]
    point = summarize_samples(samples)

    assert point.avg_gaze.x == pytest.approx(0.0)
    assert point.avg_gaze.y == pytest.approx(0.0)


def test_too_few_survivors_uses_all_samples():
    samples = [sample(0.0, 0.0)] * 10 + [sample(100.0, 100.0)]
    kept = reject_outliers(samples)
    assert len(kept) == 11


def test_too_few_survivors_averages_full_set():
    samples = [sample(0.0, 0.0)] * 10 + [sample(110.0, 110.0)]
    point = summarize_samples(samples)

    assert point.avg_gaze.x == pytest.approx(10.0)
    assert point.avg_gaze.y == pytest.approx(10.0)


def test_constant_samples_are_all_kept():
    samples = [sample(2.0, -1.0)] * 30
    assert len(reject_outliers(samples)) == 30


def test_eyes_averaged_together():
    samples = [CalibrationSample(GazeVector(2.0, 4.0), GazeVector(4.0, 8.0))] * 20
    point = summarize_samples(samples)
    assert point.avg_gaze == GazeVector(3.0, 6.0)


# ----------------------------------------------------------------------
# Pure transitions
# ----------------------------------------------------------------------

def test_start_enters_center_with_empty_record(config):
    state, effects = transition(CalibrationState(), Start(), config)

    assert state.step == CalibrationStep.COLLECTING_CENTER
    assert state.samples == ()
    assert state.data == CalibrationData()
    assert effects == [CancelTimers()]


def test_samples_ignored_outside_collecting(config):
    state = CalibrationState(step=CalibrationStep.AWAITING_TOP_CENTER)
    new_state, effects = transition(state, SampleCollected(sample(1.0, 1.0)), config)
    assert new_state is state
    assert effects == []


def test_full_window_records_point_and_schedules_timer(config, collecting):
    state = collecting
    effects = []
    for _ in range(config.calibration_frames - 1):
        state, effects = transition(state, SampleCollected(sample(0.0, 0.0)), config)
        assert effects == []
    state, effects = transition(state, SampleCollected(sample(1000.0, 1000.0)), config)

    assert state.step == CalibrationStep.AWAITING_TOP_CENTER
    assert state.samples == ()
    assert isinstance(effects[0], PointRecorded)
    assert effects[0].point.avg_gaze == GazeVector(0.0, 0.0)
    assert effects[1] == ScheduleTimer(2000, TimerElapsed(CalibrationStep.AWAITING_TOP_CENTER))
    assert CalibrationStep.COLLECTING_CENTER in state.data.points


def test_transition_does_not_touch_input_state(config, collecting):
    before = collecting
    after, _ = transition(collecting, SampleCollected(sample(1.0, 2.0)), config)

    assert before.samples == ()
    assert len(after.samples) == 1
    assert transition(before, SampleCollected(sample(1.0, 2.0)), config)[0] == after


def test_timer_moves_awaiting_to_collecting(config):
    state = CalibrationState(step=CalibrationStep.AWAITING_TOP_RIGHT, data=CalibrationData())
    state, effects = transition(state, TimerElapsed(CalibrationStep.AWAITING_TOP_RIGHT), config)

    assert state.step == CalibrationStep.COLLECTING_TOP_RIGHT
    assert effects == []


def test_stale_timer_ignored(config):
    state = CalibrationState(step=CalibrationStep.COLLECTING_TOP_CENTER, samples=(sample(1, 1),))
    new_state, effects = transition(state, TimerElapsed(CalibrationStep.AWAITING_TOP_CENTER), config)

    assert new_state == state
    assert effects == []


def test_finalize_with_enough_samples_records_point(config, collecting):
    state = collecting
    for _ in range(config.min_calibration_samples):
        state, _ = transition(state, SampleCollected(sample(1.0, 1.0)), config)

    state, effects = transition(state, FinalizePoint(), config)
    assert state.step == CalibrationStep.AWAITING_TOP_CENTER
    assert any(isinstance(e, PointRecorded) for e in effects)


def test_finalize_with_too_few_samples_skips_point(config, collecting):
    state = collecting
    for _ in range(config.min_calibration_samples - 1):
        state, _ = transition(state, SampleCollected(sample(1.0, 1.0)), config)

    state, effects = transition(state, FinalizePoint(), config)
    assert state.step == CalibrationStep.AWAITING_TOP_CENTER
    assert CalibrationStep.COLLECTING_CENTER not in state.data.points
    assert not any(isinstance(e, PointRecorded) for e in effects)
    assert any(isinstance(e, ScheduleTimer) for e in effects)


def test_exit_keeps_data(config):
    data = CalibrationData()
    state = CalibrationState(step=CalibrationStep.DONE, data=data)
    state, effects = transition(state, Exit(), config)

    assert state.step == CalibrationStep.IDLE
    assert state.data is data
    assert effects == [CancelTimers()]


def test_reset_discards_buffer_and_points(config, collecting):
    state, _ = transition(collecting, SampleCollected(sample(1.0, 1.0)), config)
    state, effects = transition(state, Reset(), config)

    assert state.step == CalibrationStep.COLLECTING_CENTER
    assert state.samples == ()
    assert state.data.points == {}
    assert effects == [CancelTimers()]


# ----------------------------------------------------------------------
# Controller with timers
# ----------------------------------------------------------------------

def run_point(controller, step, count):
    for _ in range(count):
        controller.add_sample(target_sample(step))


def test_full_sequence(config, clock, scheduler):
    recorded = []
    completed = []
    controller = CalibrationSessionController(
        config,
        scheduler=scheduler,
        on_point_recorded=lambda e: recorded.append(e.step),
        on_completed=completed.append,
    )
    controller.start()

    for i, step in enumerate(CALIBRATION_SEQUENCE):
        assert controller.step == step
        run_point(controller, step, config.calibration_frames)

        if step != CALIBRATION_SEQUENCE[-1]:
            assert controller.step.is_awaiting
            # Samples during the dwell are ignored
            controller.add_sample(sample(99.0, 99.0))
            assert controller.samples_collected == 0

            clock.advance(config.await_time_ms - 1)
            assert scheduler.poll() == 0
            clock.advance(1)
            assert scheduler.poll() == 1

    assert recorded == list(CALIBRATION_SEQUENCE)
    assert controller.step == CalibrationStep.DONE
    assert len(completed) == 1

    data = controller.data
    assert data.is_trained
    assert len(data.points) == 9
    assert data.regression_coeffs.rmse < 0.05


def test_reset_cancels_pending_timer(config, clock, scheduler):
    controller = CalibrationSessionController(config, scheduler=scheduler)
    controller.start()
    run_point(controller, CalibrationStep.COLLECTING_CENTER, config.calibration_frames)
    assert controller.pending_timers == 1

    controller.reset()
    assert controller.pending_timers == 0
    assert controller.step == CalibrationStep.COLLECTING_CENTER
    assert controller.samples_collected == 0

    clock.advance(config.await_time_ms * 2)
    assert scheduler.poll() == 0
    assert controller.step == CalibrationStep.COLLECTING_CENTER


def test_exit_mid_dwell_never_resumes(config, clock, scheduler):
    controller = CalibrationSessionController(config, scheduler=scheduler)
    controller.start()
    run_point(controller, CalibrationStep.COLLECTING_CENTER, config.calibration_frames)

    controller.exit()
    clock.advance(config.await_time_ms)
    scheduler.poll()

    assert controller.step == CalibrationStep.IDLE
    assert CalibrationStep.COLLECTING_CENTER in controller.data.points


def test_status_reports_target_and_progress(config, scheduler):
    controller = CalibrationSessionController(config, scheduler=scheduler)
    assert controller.status().target == (0.5, 0.5)

    controller.start()
    run_point(controller, CalibrationStep.COLLECTING_CENTER, 45)
    status = controller.status()

    assert status.step == CalibrationStep.COLLECTING_CENTER
    assert status.progress == pytest.approx(0.5)
    assert status.title == 'Calibrating Center...'


def test_completion_without_enough_points_is_untrained(config, clock, scheduler):
    completed = []
    controller = CalibrationSessionController(config, scheduler=scheduler, on_completed=completed.append)
    controller.start()

    # Skip every point by finalizing empty windows
    for step in CALIBRATION_SEQUENCE:
        controller.finalize_point()
        if step != CALIBRATION_SEQUENCE[-1]:
            clock.advance(config.await_time_ms)
            scheduler.poll()

    assert controller.step == CalibrationStep.DONE
    assert completed[0].points == {}
    assert not completed[0].is_trained


def test_completed_effect_emitted_at_final_point(config):
    state = CalibrationState(step=CalibrationStep.COLLECTING_TOP_LEFT, data=CalibrationData())
    for _ in range(config.calibration_frames):
        state, effects = transition(state, SampleCollected(sample(1.0, 1.0)), config)

    assert state.step == CalibrationStep.DONE
    assert isinstance(effects[-1], CalibrationCompleted)
    assert not any(isinstance(e, ScheduleTimer) for e in effects)
