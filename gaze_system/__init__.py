"""
Gaze System
Webcam gaze estimation with 9-point personal calibration

Packages:
- geometry:     Landmark geometry, head-pose correction, matrix toolkit
- tracking:     Smoothing, calibration state machine, regression, prediction
- coordinator:  Clock, cooperative timers, single-threaded frame loop

All state lives in memory for one session; nothing is persisted.
"""

from .tracking import GazeConfig, GazeProcessor, FrameResult, CalibrationStep
from .coordinator import FrameLoop, CancellationToken

__all__ = [
    'GazeConfig',
    'GazeProcessor',
    'FrameResult',
    'CalibrationStep',
    'FrameLoop',
    'CancellationToken',
]

__version__ = '1.0.0'
