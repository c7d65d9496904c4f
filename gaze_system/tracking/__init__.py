"""
Gaze Tracking Module
Smoothing, calibration, regression training and prediction

Architecture:
- GazeConfig:                    Configuration parameters
- TemporalSmoother:              Per-eye EMA, reset on face loss
- CalibrationSessionController:  9-point calibration state machine (pure transitions + timer effects)
- RegressionTrainer:             Per-axis ridge regression from calibration points
- GazePredictor:                 Regression or geometric fallback -> normalised screen point
- GazeProcessor:                 Per-frame pipeline tying the above together
- MediaPipeLandmarkSource:       Webcam + FaceLandmarker frame source

Usage:
    processor = GazeProcessor(GazeConfig.for_session())
    result = processor.process_frame(frame_id, landmarks, matrix, width, height)
    if result and result.gaze_point:
        x, y = result.gaze_point.to_pixels(screen_w, screen_h)
"""

from .config import GazeConfig
from .models import (
    CalibrationStep,
    CalibrationSample,
    CalibrationPointData,
    CalibrationData,
    RegressionCoefficients,
    CALIBRATION_SEQUENCE,
    SCREEN_POSITION_MAP,
)
from .smoother import TemporalSmoother, SmoothedGaze
from .calibration import (
    CalibrationSessionController,
    CalibrationState,
    CalibrationStatus,
    reject_outliers,
    summarize_samples,
    transition,
)
from .trainer import RegressionTrainer
from .predictor import GazePredictor
from .processor import GazeProcessor, FrameResult
from .source import MediaPipeLandmarkSource

__all__ = [
    'GazeConfig',
    'CalibrationStep',
    'CalibrationSample',
    'CalibrationPointData',
    'CalibrationData',
    'RegressionCoefficients',
    'CALIBRATION_SEQUENCE',
    'SCREEN_POSITION_MAP',
    'TemporalSmoother',
    'SmoothedGaze',
    'CalibrationSessionController',
    'CalibrationState',
    'CalibrationStatus',
    'reject_outliers',
    'summarize_samples',
    'transition',
    'RegressionTrainer',
    'GazePredictor',
    'GazeProcessor',
    'FrameResult',
    'MediaPipeLandmarkSource',
]

__version__ = '1.0.0'
