"""
Gaze Processor
Per-frame pipeline: extract -> smooth -> calibrate-or-predict

Owns the smoother, calibration controller and predictor for one tracking
session. Every method is called from the frame thread only (see
coordinator.loop.FrameLoop), so no locking is needed.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from gaze_system.coordinator.timers import TimerScheduler
from gaze_system.geometry.extractor import FrameGeometryExtractor
from gaze_system.geometry.types import FrameGeometry, NormalizedGazePoint, TransformationMatrix
from .calibration import CalibrationSessionController, CalibrationStatus
from .config import GazeConfig
from .models import CalibrationData, CalibrationSample, CalibrationStep
from .predictor import GazePredictor
from .smoother import SmoothedGaze, TemporalSmoother

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameResult:
    """Output handed to the renderer for one frame"""
    frame_id: int
    gaze_point: Optional[NormalizedGazePoint]
    step: CalibrationStep
    progress: float
    geometry: Optional[FrameGeometry] = None
    smoothed: Optional[SmoothedGaze] = None

    @property
    def has_face(self) -> bool:
        return self.geometry is not None


class GazeProcessor:
    """
    Live gaze processor

    Usage:
        processor = GazeProcessor(config)
        result = processor.process_frame(frame_id, landmarks, matrix, w, h)
        processor.enter_calibration(); processor.start_calibration()
        ...
        processor.finish_calibration()
    """

    def __init__(
        self,
        config: Optional[GazeConfig] = None,
        scheduler: Optional[TimerScheduler] = None,
    ):
        self.config = config or GazeConfig.for_session()
        self.scheduler = scheduler or TimerScheduler()

        self.extractor = FrameGeometryExtractor.from_config(self.config)
        self.smoother = TemporalSmoother(alpha=self.config.smoothing_alpha)
        self.calibration = CalibrationSessionController(self.config, scheduler=self.scheduler)
        self.predictor = GazePredictor.from_config(self.config)

        self.high_sensitivity = self.config.high_sensitivity
        self._is_calibrating = self.config.mode == 'calibration'
        self._last_frame_id = -1
        self.frame_count = 0

        logger.info(f"GazeProcessor initialised ({self.config.mode} mode)")

    # ------------------------------------------------------------------
    # Frame processing
    # ------------------------------------------------------------------

    def process_frame(
        self,
        frame_id: int,
        landmarks: Optional[Sequence],
        matrix: Optional[TransformationMatrix],
        width: int,
        height: int,
    ) -> Optional[FrameResult]:
        """
        Run the full pipeline for one frame

        Args:
            frame_id: Monotonic frame counter from the source
            landmarks: Face landmarks, or None if no face was detected
            matrix: Head pose, or None
            width: Frame width in pixels
            height: Frame height in pixels

        Returns:
            FrameResult, or None if the frame is not newer than the last one
        """
        if frame_id <= self._last_frame_id:
            logger.debug(f"Skipping stale frame {frame_id} (last {self._last_frame_id})")
            return None
        self._last_frame_id = frame_id
        self.frame_count += 1

        geometry = None
        if landmarks is not None:
            geometry = self.extractor.extract(landmarks, matrix, width, height)

        if geometry is None:
            self.smoother.reset()
            return self._result(frame_id, None, None, None)

        # Calibration samples are the unsmoothed per-eye vectors
        if self._is_calibrating and self.calibration.step.is_collecting:
            self.calibration.add_sample(CalibrationSample(geometry.vec_right, geometry.vec_left))

        smoothed = self.smoother.update(geometry)

        gaze_point = None
        if not self._is_calibrating:
            data = self.calibration.data
            gaze_point = self.predictor.predict(
                smoothed.average,
                geometry,
                width,
                height,
                coeffs=data.regression_coeffs if data else None,
                high_sensitivity=self.high_sensitivity,
            )

        return self._result(frame_id, gaze_point, geometry, smoothed)

    # ------------------------------------------------------------------
    # Calibration commands
    # ------------------------------------------------------------------

    @property
    def is_calibrating(self) -> bool:
        return self._is_calibrating

    def enter_calibration(self):
        """Switch to calibration mode at the idle (ready) step"""
        self.calibration.exit()
        self._is_calibrating = True
        logger.info("Entered calibration mode")

    def start_calibration(self):
        if not self._is_calibrating:
            self.enter_calibration()
        self.calibration.start()

    def reset_calibration(self):
        if not self._is_calibrating:
            self.enter_calibration()
        self.calibration.reset()

    def finish_calibration(self):
        """Leave calibration mode; a trained model stays in use"""
        self.calibration.exit()
        self._is_calibrating = False
        logger.info("Left calibration mode")

    def calibration_status(self) -> CalibrationStatus:
        return self.calibration.status()

    @property
    def calibration_data(self) -> Optional[CalibrationData]:
        return self.calibration.data

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self):
        """Tear down: cancel calibration timers and clear smoothing state"""
        self.calibration.close()
        self.smoother.reset()
        self._last_frame_id = -1
        logger.info(f"✓ GazeProcessor closed - {self.frame_count} frames processed")

    def get_status(self) -> dict:
        data = self.calibration.data
        return {
            'frames_processed': self.frame_count,
            'is_calibrating':   self._is_calibrating,
            'calibration_step': str(self.calibration.step),
            'is_calibrated':    bool(data and data.is_trained),
            'high_sensitivity': self.high_sensitivity,
        }

    def _result(self, frame_id, gaze_point, geometry, smoothed) -> FrameResult:
        step = self.calibration.step if self._is_calibrating else CalibrationStep.IDLE
        progress = self.calibration.progress if self._is_calibrating else 0.0
        return FrameResult(
            frame_id=frame_id,
            gaze_point=gaze_point,
            step=step,
            progress=progress,
            geometry=geometry,
            smoothed=smoothed,
        )

    def __repr__(self):
        mode = "calibrating" if self._is_calibrating else "tracking"
        return f"<GazeProcessor(mode={mode}, frames={self.frame_count})>"
