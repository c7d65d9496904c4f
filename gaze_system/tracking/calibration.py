"""
Calibration Session
9-point calibration state machine with z-score outlier rejection

The state machine is a pure function transition(state, event) -> (state, effects).
Timers are returned as ScheduleTimer effects and executed by
CalibrationSessionController through a TimerScheduler, so the machine itself
never sleeps or owns a timer.

Sequence:
    collecting_center -> awaiting_top_center -> collecting_top_center -> ...
    -> awaiting_top_left -> collecting_top_left -> done
"""

import logging
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from gaze_system.coordinator.timers import TimerScheduler
from gaze_system.geometry.types import GazeVector
from .config import GazeConfig
from .models import (
    CALIBRATION_SEQUENCE,
    CalibrationData,
    CalibrationPointData,
    CalibrationSample,
    CalibrationStep,
    SCREEN_POSITION_MAP,
)
from .trainer import RegressionTrainer

logger = logging.getLogger(__name__)


# collecting_X -> awaiting_<next point>
_NEXT_STEP = {
    current: CalibrationStep('awaiting_' + following.point_name)
    for current, following in zip(CALIBRATION_SEQUENCE, CALIBRATION_SEQUENCE[1:])
}

FINAL_STEP = CALIBRATION_SEQUENCE[-1]


# ----------------------------------------------------------------------
# Sample statistics
# ----------------------------------------------------------------------

def _sample_matrix(samples: Sequence[CalibrationSample]) -> np.ndarray:
    """N x 4 array of (right x, right y, left x, left y)"""
    return np.array(
        [[s.vec_right.x, s.vec_right.y, s.vec_left.x, s.vec_left.y] for s in samples],
        dtype=float,
    ).reshape(-1, 4)


def reject_outliers(
    samples: Sequence[CalibrationSample],
    threshold: float = 2.0,
    epsilon: float = 1e-6,
    min_kept: int = 10,
) -> List[CalibrationSample]:
    """
    Drop samples with any of their four values beyond `threshold` std devs

    Args:
        samples: Buffered calibration samples
        threshold: Z-score limit per axis
        epsilon: Added to each std dev so a constant axis divides safely
        min_kept: If no more than this many survive, the unfiltered set is returned

    Returns:
        Filtered samples, or all samples when filtering is too aggressive
    """
    samples = list(samples)
    if not samples:
        return samples

    values = _sample_matrix(samples)
    mean = values.mean(axis=0)
    std = values.std(axis=0)
    z = np.abs((values - mean) / (std + epsilon))
    keep = np.all(z < threshold, axis=1)

    filtered = [s for s, k in zip(samples, keep) if k]
    if len(filtered) > min_kept:
        return filtered

    logger.debug(f"Outlier filter kept only {len(filtered)}/{len(samples)} samples, using all")
    return samples


def summarize_samples(
    samples: Sequence[CalibrationSample],
    threshold: float = 2.0,
    epsilon: float = 1e-6,
    min_kept: int = 10,
) -> CalibrationPointData:
    """Outlier-filter, average each eye, then average the two eyes"""
    used = reject_outliers(samples, threshold=threshold, epsilon=epsilon, min_kept=min_kept)
    rx, ry, lx, ly = _sample_matrix(used).mean(axis=0)
    avg_gaze = GazeVector.mean(GazeVector(float(rx), float(ry)), GazeVector(float(lx), float(ly)))
    return CalibrationPointData(avg_gaze=avg_gaze)


# ----------------------------------------------------------------------
# Events and effects
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class Start:
    pass


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class Exit:
    pass


@dataclass(frozen=True)
class SampleCollected:
    sample: CalibrationSample


@dataclass(frozen=True)
class TimerElapsed:
    step: CalibrationStep  # awaiting step that scheduled the timer


@dataclass(frozen=True)
class FinalizePoint:
    pass


@dataclass(frozen=True)
class ScheduleTimer:
    delay_ms: int
    event: TimerElapsed


@dataclass(frozen=True)
class CancelTimers:
    pass


@dataclass(frozen=True)
class PointRecorded:
    step: CalibrationStep
    point: CalibrationPointData


@dataclass(frozen=True)
class CalibrationCompleted:
    data: CalibrationData


@dataclass(frozen=True)
class CalibrationState:
    step: CalibrationStep = CalibrationStep.IDLE
    samples: Tuple[CalibrationSample, ...] = ()
    data: Optional[CalibrationData] = None


# ----------------------------------------------------------------------
# Transition function
# ----------------------------------------------------------------------

def transition(state: CalibrationState, event, config: GazeConfig,
               trainer: Optional[RegressionTrainer] = None):
    """
    Apply one event

    Args:
        state: Current calibration state
        event: Start, Reset, Exit, SampleCollected, TimerElapsed or FinalizePoint
        config: Sampling and timing constants
        trainer: Regression trainer used at the final point

    Returns:
        (new_state, effects) - effects is a list for the controller to execute
    """
    if isinstance(event, (Start, Reset)):
        return (
            CalibrationState(step=CalibrationStep.COLLECTING_CENTER, samples=(), data=CalibrationData()),
            [CancelTimers()],
        )

    if isinstance(event, Exit):
        return replace(state, step=CalibrationStep.IDLE, samples=()), [CancelTimers()]

    if isinstance(event, SampleCollected):
        if not state.step.is_collecting or len(state.samples) >= config.calibration_frames:
            return state, []
        state = replace(state, samples=state.samples + (event.sample,))
        if len(state.samples) == config.calibration_frames:
            return _complete_point(state, config, trainer)
        return state, []

    if isinstance(event, FinalizePoint):
        if not state.step.is_collecting:
            return state, []
        return _complete_point(state, config, trainer)

    if isinstance(event, TimerElapsed):
        if state.step != event.step or not state.step.is_awaiting:
            return state, []
        return replace(state, step=state.step.collecting_step, samples=()), []

    return state, []


def _complete_point(state: CalibrationState, config: GazeConfig,
                    trainer: Optional[RegressionTrainer]):
    step = state.step
    data = state.data if state.data is not None else CalibrationData()
    effects = []

    if len(state.samples) >= config.min_calibration_samples:
        point = summarize_samples(
            state.samples,
            threshold=config.z_score_threshold,
            epsilon=config.stddev_epsilon,
            min_kept=config.min_filtered_samples,
        )
        data = data.with_point(step, point)
        effects.append(PointRecorded(step, point))
    else:
        logger.warning(
            f"Only {len(state.samples)} samples for {step} "
            f"(need {config.min_calibration_samples}), point skipped"
        )

    if step == FINAL_STEP:
        trainer = trainer or RegressionTrainer.from_config(config)
        data = data.with_coefficients(trainer.train(data))
        effects.append(CalibrationCompleted(data))
        return CalibrationState(step=CalibrationStep.DONE, samples=(), data=data), effects

    next_step = _NEXT_STEP[step]
    effects.append(ScheduleTimer(config.await_time_ms, TimerElapsed(next_step)))
    return CalibrationState(step=next_step, samples=(), data=data), effects


# ----------------------------------------------------------------------
# UI prompts
# ----------------------------------------------------------------------

# point name -> (label, marker kind)
_POINT_LABELS = {
    'top_center':    ('Top-Center', 'marker'),
    'top_right':     ('Top-Right', 'corner'),
    'middle_right':  ('Middle-Right', 'marker'),
    'bottom_right':  ('Bottom-Right', 'corner'),
    'bottom_center': ('Bottom-Center', 'marker'),
    'bottom_left':   ('Bottom-Left', 'corner'),
    'middle_left':   ('Middle-Left', 'marker'),
    'top_left':      ('Top-Left', 'corner'),
}


def _build_prompts():
    prompts = {
        CalibrationStep.IDLE: (
            'Ready to Calibrate',
            'Look directly at the marker in the center of your screen, then press start. '
            'Keep your head relatively still during the process.',
        ),
        CalibrationStep.COLLECTING_CENTER: (
            'Calibrating Center...',
            'Please continue looking at the central marker.',
        ),
        CalibrationStep.DONE: (
            'Calibration Complete!',
            'Your gaze is now calibrated. You can finish or recalibrate if needed.',
        ),
    }
    for name, (label, kind) in _POINT_LABELS.items():
        suffix = ' corner' if kind == 'corner' else ''
        prompts[CalibrationStep('awaiting_' + name)] = (
            'Get Ready...',
            f'Now, look at the {label.upper()}{suffix}.',
        )
        prompts[CalibrationStep('collecting_' + name)] = (
            f'Calibrating {label}...',
            f'Keep looking at the {kind}.',
        )
    return prompts


STEP_PROMPTS = _build_prompts()


@dataclass(frozen=True)
class CalibrationStatus:
    """Snapshot for a UI: prompt text, progress bar and marker position"""
    step: CalibrationStep
    progress: float
    title: str
    instruction: str
    target: Optional[Tuple[float, float]]


# ----------------------------------------------------------------------
# Controller
# ----------------------------------------------------------------------

class CalibrationSessionController:
    """
    Runs the calibration state machine and executes its effects.

    Timer callbacks fire from TimerScheduler.poll() on the frame thread, so
    all state changes happen on one thread.
    """

    def __init__(
        self,
        config: Optional[GazeConfig] = None,
        scheduler: Optional[TimerScheduler] = None,
        trainer: Optional[RegressionTrainer] = None,
        on_point_recorded: Optional[Callable[[PointRecorded], None]] = None,
        on_completed: Optional[Callable[[CalibrationData], None]] = None,
    ):
        self.config = config or GazeConfig.for_calibration()
        self.scheduler = scheduler or TimerScheduler()
        self.trainer = trainer or RegressionTrainer.from_config(self.config)
        self.on_point_recorded = on_point_recorded
        self.on_completed = on_completed

        self._state = CalibrationState()
        self._timer_handles: List[int] = []

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start(self):
        logger.info("Calibration started")
        self.dispatch(Start())

    def reset(self):
        logger.info("Calibration reset")
        self.dispatch(Reset())

    def exit(self):
        self.dispatch(Exit())

    def add_sample(self, sample: CalibrationSample):
        self.dispatch(SampleCollected(sample))

    def finalize_point(self):
        """Close the current collection window early"""
        self.dispatch(FinalizePoint())

    def close(self):
        """Cancel pending timers (teardown)"""
        self._cancel_timers()

    def dispatch(self, event) -> CalibrationState:
        previous = self._state.step
        self._state, effects = transition(self._state, event, self.config, self.trainer)
        if self._state.step != previous:
            logger.debug(f"Calibration step {previous} -> {self._state.step}")
        for effect in effects:
            self._apply(effect)
        return self._state

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> CalibrationState:
        return self._state

    @property
    def step(self) -> CalibrationStep:
        return self._state.step

    @property
    def data(self) -> Optional[CalibrationData]:
        return self._state.data

    @property
    def samples_collected(self) -> int:
        return len(self._state.samples)

    @property
    def progress(self) -> float:
        """Fraction of the collection window filled (0 outside collecting steps)"""
        if not self.step.is_collecting:
            return 0.0
        return self.samples_collected / self.config.calibration_frames

    @property
    def is_active(self) -> bool:
        return self.step not in (CalibrationStep.IDLE, CalibrationStep.DONE)

    @property
    def pending_timers(self) -> int:
        return sum(1 for h in self._timer_handles if self.scheduler.is_pending(h))

    def status(self) -> CalibrationStatus:
        title, instruction = STEP_PROMPTS[self.step]
        collecting = self.step.collecting_step
        if collecting is not None:
            target = SCREEN_POSITION_MAP[collecting]
        elif self.step == CalibrationStep.IDLE:
            target = SCREEN_POSITION_MAP[CalibrationStep.COLLECTING_CENTER]
        else:
            target = None
        return CalibrationStatus(
            step=self.step,
            progress=self.progress,
            title=title,
            instruction=instruction,
            target=target,
        )

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    def _apply(self, effect):
        if isinstance(effect, ScheduleTimer):
            self._timer_handles = [h for h in self._timer_handles if self.scheduler.is_pending(h)]
            handle = self.scheduler.schedule(effect.delay_ms, self._timer_callback(effect.event))
            self._timer_handles.append(handle)

        elif isinstance(effect, CancelTimers):
            self._cancel_timers()

        elif isinstance(effect, PointRecorded):
            g = effect.point.avg_gaze
            logger.info(f"  ✓ {effect.step.point_name} captured (gaze {g.x:.2f}, {g.y:.2f})")
            if self.on_point_recorded:
                self.on_point_recorded(effect)

        elif isinstance(effect, CalibrationCompleted):
            points = len(effect.data.points)
            if effect.data.is_trained:
                logger.info(f"✓ Calibration complete ({points} points, regression model trained)")
            else:
                logger.warning(f"Calibration complete ({points} points) without a regression model")
            if self.on_completed:
                self.on_completed(effect.data)

    def _timer_callback(self, event: TimerElapsed):
        def fire():
            self.dispatch(event)
        return fire

    def _cancel_timers(self):
        for handle in self._timer_handles:
            self.scheduler.cancel(handle)
        self._timer_handles = []

    def __repr__(self):
        return f"<CalibrationSessionController(step={self.step}, samples={self.samples_collected})>"
