"""
Regression Trainer
Fits one ridge model per screen axis from the averaged calibration points
"""

import logging
from typing import Dict, Optional, Tuple

import numpy as np
from sklearn.metrics import mean_squared_error

from gaze_system.geometry.linalg import ridge_regression, SINGULAR_TOLERANCE
from .models import (
    CalibrationData,
    CalibrationPointData,
    CalibrationStep,
    RegressionCoefficients,
    SCREEN_POSITION_MAP,
)

logger = logging.getLogger(__name__)


class RegressionTrainer:
    """
    Linear gaze-to-screen mapping: u, v = [1, gx, gy] . coeffs

    Needs at least one point per feature; with fewer, training is skipped and
    the predictor keeps using its geometric fallback.
    """

    def __init__(
        self,
        ridge_lambda: float = 0.01,
        min_points: int = 3,
        singular_tolerance: float = SINGULAR_TOLERANCE,
    ):
        self.ridge_lambda = ridge_lambda
        self.min_points = min_points
        self.singular_tolerance = singular_tolerance

    @classmethod
    def from_config(cls, config) -> 'RegressionTrainer':
        return cls(
            ridge_lambda=config.ridge_lambda,
            min_points=config.min_training_points,
            singular_tolerance=config.singular_tolerance,
        )

    @staticmethod
    def build_training_set(
        points: Dict[CalibrationStep, CalibrationPointData]
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Feature matrix and per-axis targets from recorded points

        Args:
            points: Calibration step -> averaged gaze

        Returns:
            (X, y_u, y_v) with X rows [1, gaze_x, gaze_y]; points without a
            known screen position are skipped
        """
        rows, targets = [], []
        for step, point in points.items():
            position = SCREEN_POSITION_MAP.get(step)
            if point is None or position is None:
                continue
            rows.append([1.0, point.avg_gaze.x, point.avg_gaze.y])
            targets.append(position)

        X = np.array(rows, dtype=float).reshape(-1, 3)
        T = np.array(targets, dtype=float).reshape(-1, 2)
        return X, T[:, 0], T[:, 1]

    def train(self, data: CalibrationData) -> Optional[RegressionCoefficients]:
        """
        Fit u and v models

        Args:
            data: Calibration record with recorded points

        Returns:
            RegressionCoefficients, or None on insufficient data or a singular system
        """
        X, y_u, y_v = self.build_training_set(data.points)

        if X.shape[0] < self.min_points:
            logger.warning(
                f"Insufficient calibration data ({X.shape[0]} < {self.min_points} points), "
                f"skipping regression training"
            )
            return None

        coeffs_u = ridge_regression(X, y_u, self.ridge_lambda, tolerance=self.singular_tolerance)
        coeffs_v = ridge_regression(X, y_v, self.ridge_lambda, tolerance=self.singular_tolerance)

        if coeffs_u is None or coeffs_v is None:
            logger.warning("✗ Regression training failed, falling back to geometric projection")
            return None

        predicted = np.column_stack([X @ coeffs_u, X @ coeffs_v])
        rmse = float(np.sqrt(mean_squared_error(np.column_stack([y_u, y_v]), predicted)))

        coeffs = RegressionCoefficients.from_arrays(coeffs_u, coeffs_v, rmse=rmse)
        logger.info(f"✓ Regression fitted on {X.shape[0]} points (RMSE {rmse:.3f} screen)")
        logger.debug(f"  u coeffs: {coeffs.u}")
        logger.debug(f"  v coeffs: {coeffs.v}")
        return coeffs
