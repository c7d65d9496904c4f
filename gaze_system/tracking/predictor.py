"""
Gaze Predictor
Maps the smoothed gaze vector to a normalised screen point
"""

import logging
from typing import Optional

from gaze_system.geometry.linalg import dot
from gaze_system.geometry.types import FrameGeometry, GazeVector, NormalizedGazePoint
from .models import RegressionCoefficients

logger = logging.getLogger(__name__)


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


class GazePredictor:
    """
    Trained regression when available, otherwise a projection from the
    point between the eyes scaled by apparent face size.
    """

    def __init__(
        self,
        projection_strength: float = 30.0,
        high_sensitivity_strength: float = 60.0,
        reference_inter_ocular_distance: float = 120.0,
        min_inter_ocular_distance: float = 10.0,
    ):
        self.projection_strength = projection_strength
        self.high_sensitivity_strength = high_sensitivity_strength
        self.reference_inter_ocular_distance = reference_inter_ocular_distance
        self.min_inter_ocular_distance = min_inter_ocular_distance

    @classmethod
    def from_config(cls, config) -> 'GazePredictor':
        return cls(
            projection_strength=config.gaze_projection_strength,
            high_sensitivity_strength=config.high_sensitivity_strength,
            reference_inter_ocular_distance=config.reference_inter_ocular_distance,
            min_inter_ocular_distance=config.min_inter_ocular_distance,
        )

    def predict(
        self,
        gaze: GazeVector,
        geometry: FrameGeometry,
        width: int,
        height: int,
        coeffs: Optional[RegressionCoefficients] = None,
        high_sensitivity: bool = False,
    ) -> NormalizedGazePoint:
        """
        Args:
            gaze: Smoothed average gaze vector
            geometry: This frame's eye centres and inter-ocular distance
            width: Canvas width in pixels
            height: Canvas height in pixels
            coeffs: Trained regression model, if any
            high_sensitivity: Double the fallback projection strength

        Returns:
            NormalizedGazePoint; clamped to [0, 1] only on the regression path
        """
        if coeffs is not None:
            return self.predict_regression(gaze, coeffs)
        return self.predict_fallback(gaze, geometry, width, height, high_sensitivity)

    @staticmethod
    def predict_regression(gaze: GazeVector, coeffs: RegressionCoefficients) -> NormalizedGazePoint:
        features = [1.0, gaze.x, gaze.y]
        u = dot(features, coeffs.u)
        v = dot(features, coeffs.v)
        return NormalizedGazePoint(_clamp01(u), _clamp01(v))

    def predict_fallback(self, gaze: GazeVector, geometry: FrameGeometry,
                         width: int, height: int,
                         high_sensitivity: bool = False) -> NormalizedGazePoint:
        strength = self.high_sensitivity_strength if high_sensitivity else self.projection_strength
        sensitivity = self.sensitivity(strength, geometry.inter_ocular_distance)

        mid_x, mid_y = geometry.midpoint
        gaze_x = mid_x + gaze.x * sensitivity
        gaze_y = mid_y + gaze.y * sensitivity
        return NormalizedGazePoint(gaze_x / width, gaze_y / height)

    def sensitivity(self, strength: float, inter_ocular_distance: float) -> float:
        """Scale strength up as the face gets smaller (further from the camera)"""
        if inter_ocular_distance > self.min_inter_ocular_distance:
            return strength * (self.reference_inter_ocular_distance / inter_ocular_distance)
        return strength
