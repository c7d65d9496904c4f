"""
Gaze Tracking Configuration
Empirical constants for geometry, smoothing, calibration and prediction
"""

from dataclasses import dataclass


@dataclass
class GazeConfig:
    """Gaze tracking configuration - empirically tuned constants"""

    # Operating mode: a calibration-mode processor starts waiting at the
    # calibration prompt, a session-mode one starts tracking
    mode: str = 'session'  # 'calibration' or 'session'

    # Smoothing
    smoothing_alpha: float = 0.2   # EMA weight of the newest frame

    # Calibration sampling
    calibration_frames: int = 90   # Samples per point (~3 s at 30 fps)
    await_time_ms: int = 2000      # Dwell before each perimeter point
    z_score_threshold: float = 2.0
    stddev_epsilon: float = 1e-6
    min_filtered_samples: int = 10  # Fall back to unfiltered at or below this

    # Regression
    ridge_lambda: float = 0.01
    min_training_points: int = 3   # One per feature: intercept, x, y
    singular_tolerance: float = 1e-10

    # Geometric correction (empirically fixed, not derived)
    stabilization_scalar: float = 4.0
    translation_correction_x: float = 0.8
    translation_correction_y: float = 0.8
    translation_z_threshold: float = 0.1

    # Uncalibrated fallback projection
    gaze_projection_strength: float = 30.0
    high_sensitivity_strength: float = 60.0
    reference_inter_ocular_distance: float = 120.0  # pixels
    min_inter_ocular_distance: float = 10.0         # pixels

    # Capture (MediaPipe FaceLandmarker + OpenCV)
    camera_index: int = 0
    frame_width: int = 640
    frame_height: int = 480
    model_asset_path: str = 'face_landmarker.task'
    num_faces: int = 1
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5

    # Start in high-sensitivity fallback mode
    high_sensitivity: bool = False

    @property
    def min_calibration_samples(self) -> int:
        """Fewest samples a point may be averaged from"""
        return self.calibration_frames // 2

    @classmethod
    def for_calibration(cls) -> 'GazeConfig':
        """Configuration for calibration phase"""
        return cls(mode='calibration')

    @classmethod
    def for_session(cls) -> 'GazeConfig':
        """Configuration for active session phase"""
        return cls(mode='session')

    @classmethod
    def for_high_sensitivity(cls) -> 'GazeConfig':
        """
        Session configuration for users with limited eye movement.

        Returns:
            GazeConfig with the doubled fallback projection strength enabled.
        """
        return cls(mode='session', high_sensitivity=True)
