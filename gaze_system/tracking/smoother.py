"""
Temporal Smoother
Exponential smoothing of the per-eye gaze vectors across frames
"""

import logging
from dataclasses import dataclass

from gaze_system.geometry.types import FrameGeometry, GazeVector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SmoothedGaze:
    right: GazeVector
    left: GazeVector

    @property
    def average(self) -> GazeVector:
        """Single gaze vector used for prediction"""
        return GazeVector.mean(self.right, self.left)


class TemporalSmoother:
    """
    EMA over four scalars (right x/y, left x/y), all starting at zero.

    One instance per tracking session; reset on face loss so a stale
    direction never carries over.
    """

    def __init__(self, alpha: float = 0.2):
        if not (0 <= alpha <= 1):
            raise ValueError("Alpha must be between 0 and 1")

        self.alpha = alpha
        self.right_x = 0.0
        self.right_y = 0.0
        self.left_x = 0.0
        self.left_y = 0.0

    def update(self, geometry: FrameGeometry) -> SmoothedGaze:
        return self.update_vectors(geometry.vec_right, geometry.vec_left)

    def update_vectors(self, vec_right: GazeVector, vec_left: GazeVector) -> SmoothedGaze:
        a = self.alpha
        self.right_x = a * vec_right.x + (1 - a) * self.right_x
        self.right_y = a * vec_right.y + (1 - a) * self.right_y
        self.left_x = a * vec_left.x + (1 - a) * self.left_x
        self.left_y = a * vec_left.y + (1 - a) * self.left_y
        return self.current

    @property
    def current(self) -> SmoothedGaze:
        return SmoothedGaze(
            right=GazeVector(self.right_x, self.right_y),
            left=GazeVector(self.left_x, self.left_y),
        )

    def reset(self):
        self.right_x = 0.0
        self.right_y = 0.0
        self.left_x = 0.0
        self.left_y = 0.0
        logger.debug("Smoothing state reset")

    def __repr__(self):
        avg = self.current.average
        return f"<TemporalSmoother(alpha={self.alpha}, avg=({avg.x:.2f}, {avg.y:.2f}))>"
