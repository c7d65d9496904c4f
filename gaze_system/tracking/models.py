"""
Calibration Data Types
Step enumeration, calibration targets and the per-session calibration record
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

import numpy as np

from gaze_system.geometry.types import GazeVector


class CalibrationStep(str, Enum):
    """Calibration state; collecting/awaiting pairs run clockwise from top-centre"""

    IDLE = 'idle'
    COLLECTING_CENTER = 'collecting_center'
    AWAITING_TOP_CENTER = 'awaiting_top_center'
    COLLECTING_TOP_CENTER = 'collecting_top_center'
    AWAITING_TOP_RIGHT = 'awaiting_top_right'
    COLLECTING_TOP_RIGHT = 'collecting_top_right'
    AWAITING_MIDDLE_RIGHT = 'awaiting_middle_right'
    COLLECTING_MIDDLE_RIGHT = 'collecting_middle_right'
    AWAITING_BOTTOM_RIGHT = 'awaiting_bottom_right'
    COLLECTING_BOTTOM_RIGHT = 'collecting_bottom_right'
    AWAITING_BOTTOM_CENTER = 'awaiting_bottom_center'
    COLLECTING_BOTTOM_CENTER = 'collecting_bottom_center'
    AWAITING_BOTTOM_LEFT = 'awaiting_bottom_left'
    COLLECTING_BOTTOM_LEFT = 'collecting_bottom_left'
    AWAITING_MIDDLE_LEFT = 'awaiting_middle_left'
    COLLECTING_MIDDLE_LEFT = 'collecting_middle_left'
    AWAITING_TOP_LEFT = 'awaiting_top_left'
    COLLECTING_TOP_LEFT = 'collecting_top_left'
    DONE = 'done'

    @property
    def is_collecting(self) -> bool:
        return self.value.startswith('collecting_')

    @property
    def is_awaiting(self) -> bool:
        return self.value.startswith('awaiting_')

    @property
    def point_name(self) -> Optional[str]:
        """'top_right' for both awaiting_top_right and collecting_top_right"""
        if self.is_collecting or self.is_awaiting:
            return self.value.split('_', 1)[1]
        return None

    @property
    def collecting_step(self) -> Optional['CalibrationStep']:
        """Collecting step an awaiting step leads into"""
        if self.is_awaiting:
            return CalibrationStep('collecting_' + self.point_name)
        if self.is_collecting:
            return self
        return None

    def __str__(self):
        return self.value


# Collection targets in the order they are visited
CALIBRATION_SEQUENCE: Tuple[CalibrationStep, ...] = (
    CalibrationStep.COLLECTING_CENTER,
    CalibrationStep.COLLECTING_TOP_CENTER,
    CalibrationStep.COLLECTING_TOP_RIGHT,
    CalibrationStep.COLLECTING_MIDDLE_RIGHT,
    CalibrationStep.COLLECTING_BOTTOM_RIGHT,
    CalibrationStep.COLLECTING_BOTTOM_CENTER,
    CalibrationStep.COLLECTING_BOTTOM_LEFT,
    CalibrationStep.COLLECTING_MIDDLE_LEFT,
    CalibrationStep.COLLECTING_TOP_LEFT,
)

# Canonical screen fraction (u, v) of each calibration target
SCREEN_POSITION_MAP: Dict[CalibrationStep, Tuple[float, float]] = {
    CalibrationStep.COLLECTING_CENTER:        (0.5, 0.5),
    CalibrationStep.COLLECTING_TOP_CENTER:    (0.5, 0.0),
    CalibrationStep.COLLECTING_TOP_RIGHT:     (1.0, 0.0),
    CalibrationStep.COLLECTING_MIDDLE_RIGHT:  (1.0, 0.5),
    CalibrationStep.COLLECTING_BOTTOM_RIGHT:  (1.0, 1.0),
    CalibrationStep.COLLECTING_BOTTOM_CENTER: (0.5, 1.0),
    CalibrationStep.COLLECTING_BOTTOM_LEFT:   (0.0, 1.0),
    CalibrationStep.COLLECTING_MIDDLE_LEFT:   (0.0, 0.5),
    CalibrationStep.COLLECTING_TOP_LEFT:      (0.0, 0.0),
}


@dataclass(frozen=True)
class CalibrationSample:
    """One frame's per-eye vectors captured while collecting"""
    vec_right: GazeVector
    vec_left: GazeVector


@dataclass(frozen=True)
class CalibrationPointData:
    """Outlier-filtered mean gaze (both eyes) for one calibration target"""
    avg_gaze: GazeVector


@dataclass(frozen=True)
class RegressionCoefficients:
    """[intercept, coeff_x, coeff_y] for each screen axis"""
    u: Tuple[float, float, float]
    v: Tuple[float, float, float]
    rmse: Optional[float] = None  # training-set error, screen fractions

    @classmethod
    def from_arrays(cls, u, v, rmse: Optional[float] = None) -> 'RegressionCoefficients':
        return cls(
            u=tuple(float(c) for c in np.asarray(u).ravel()),
            v=tuple(float(c) for c in np.asarray(v).ravel()),
            rmse=rmse,
        )


@dataclass
class CalibrationData:
    """
    Calibration record for the current run

    Created empty on start, filled one point at a time, trained once at the
    final point, replaced on reset. Never persisted.
    """
    points: Dict[CalibrationStep, CalibrationPointData] = field(default_factory=dict)
    regression_coeffs: Optional[RegressionCoefficients] = None

    @property
    def is_trained(self) -> bool:
        return self.regression_coeffs is not None

    def with_point(self, step: CalibrationStep, point: CalibrationPointData) -> 'CalibrationData':
        """Copy with one more (or a replaced) point; coefficients carried over"""
        points = dict(self.points)
        points[step] = point
        return CalibrationData(points=points, regression_coeffs=self.regression_coeffs)

    def with_coefficients(self, coeffs: Optional[RegressionCoefficients]) -> 'CalibrationData':
        return CalibrationData(points=dict(self.points), regression_coeffs=coeffs)
