"""
Frame Geometry Extractor
Turns one frame of face landmarks plus head pose into a per-eye gaze vector pair

Per eye: the iris offset from the eye-corner midpoint is rotated into head-local
space, re-tilted by the head pitch, shifted for head translation (parallax) and
scaled. Without a head transform the plain screen-space offset is used.
"""

import logging
import math
from typing import Optional, Sequence

import numpy as np

from .types import (
    EyeGeometry,
    FrameGeometry,
    GazeVector,
    LandmarkIndex,
    MIN_LANDMARK_COUNT,
    TransformationMatrix,
)

logger = logging.getLogger(__name__)


def rot_x(a: float) -> np.ndarray:
    """
    Rotation matrix around X-axis

    Args:
        a: Angle in radians

    Returns:
        3x3 rotation matrix
    """
    ca, sa = math.cos(a), math.sin(a)
    return np.array([
        [1, 0, 0],
        [0, ca, -sa],
        [0, sa, ca]
    ], dtype=float)


def leveling_transform(
    landmarks: Optional[Sequence],
    matrix: Optional[TransformationMatrix],
    width: int,
    height: int,
) -> Optional[np.ndarray]:
    """
    2x3 affine that levels a preview frame against head roll

    The point between landmarks 133 and 362 is moved to the frame centre and
    the image is rotated about it by the head roll, so the face stays upright
    and centred.

    Args:
        landmarks: Face landmarks for the frame
        matrix: Head pose for the frame
        width: Frame width in pixels
        height: Frame height in pixels

    Returns:
        Affine matrix for cv2.warpAffine, or None without a face or head pose
    """
    if matrix is None or landmarks is None or len(landmarks) <= LandmarkIndex.LEFT_EYE_INNER:
        return None

    a = landmarks[LandmarkIndex.RIGHT_EYE_OUTER]
    b = landmarks[LandmarkIndex.LEFT_EYE_INNER]
    anchor = np.array([(a.x + b.x) / 2 * width, (a.y + b.y) / 2 * height], dtype=float)
    centre = np.array([width / 2, height / 2], dtype=float)

    c, s = math.cos(matrix.roll), math.sin(matrix.roll)
    rotation = np.array([[c, -s], [s, c]], dtype=float)
    return np.hstack([rotation, (centre - rotation @ anchor).reshape(2, 1)])


class FrameGeometryExtractor:
    """
    Per-frame gaze geometry for both eyes

    Constants are empirical and kept configurable; GazeConfig supplies them
    through from_config().
    """

    def __init__(
        self,
        stabilization_scalar: float = 4.0,
        translation_correction_x: float = 0.8,
        translation_correction_y: float = 0.8,
        translation_z_threshold: float = 0.1,
    ):
        self.stabilization_scalar = stabilization_scalar
        self.translation_correction_x = translation_correction_x
        self.translation_correction_y = translation_correction_y
        self.translation_z_threshold = translation_z_threshold

    @classmethod
    def from_config(cls, config) -> 'FrameGeometryExtractor':
        return cls(
            stabilization_scalar=config.stabilization_scalar,
            translation_correction_x=config.translation_correction_x,
            translation_correction_y=config.translation_correction_y,
            translation_z_threshold=config.translation_z_threshold,
        )

    def extract(
        self,
        landmarks: Sequence,
        matrix: Optional[TransformationMatrix],
        width: int,
        height: int,
    ) -> Optional[FrameGeometry]:
        """
        Compute both eyes' geometry for one frame

        Args:
            landmarks: Indexable landmark sequence (objects with .x/.y/.z)
            matrix: Head pose, or None to skip 3D correction
            width: Canvas width in pixels
            height: Canvas height in pixels

        Returns:
            FrameGeometry, or None if the landmark set is too short
        """
        if landmarks is None or len(landmarks) < MIN_LANDMARK_COUNT:
            logger.debug(
                f"Insufficient landmarks ({0 if landmarks is None else len(landmarks)}"
                f" < {MIN_LANDMARK_COUNT}), no geometry for this frame"
            )
            return None

        right = self._eye(
            landmarks,
            LandmarkIndex.RIGHT_EYE_OUTER,
            LandmarkIndex.RIGHT_EYE_INNER,
            LandmarkIndex.RIGHT_IRIS,
            matrix, width, height,
        )
        left = self._eye(
            landmarks,
            LandmarkIndex.LEFT_EYE_OUTER,
            LandmarkIndex.LEFT_EYE_INNER,
            LandmarkIndex.LEFT_IRIS,
            matrix, width, height,
        )

        inter_ocular = math.hypot(
            left.center[0] - right.center[0],
            left.center[1] - right.center[1],
        )
        return FrameGeometry(right=right, left=left, inter_ocular_distance=inter_ocular)

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    def _eye(self, landmarks, outer_idx, inner_idx, iris_idx,
             matrix, width, height) -> EyeGeometry:
        outer = landmarks[outer_idx]
        inner = landmarks[inner_idx]
        iris = landmarks[iris_idx]

        eye_width = math.hypot((outer.x - inner.x) * width, (outer.y - inner.y) * height)
        center_x = (outer.x + inner.x) / 2 * width
        center_y = (outer.y + inner.y) / 2 * height

        # Image y grows downward, gaze y grows upward
        vector = GazeVector(center_x - iris.x * width, iris.y * height - center_y)

        if matrix is not None:
            vector = self._stabilized(outer, inner, iris, matrix, width, height)

        return EyeGeometry(center=(center_x, center_y), radius=eye_width / 2, vector=vector)

    def _stabilized(self, outer, inner, iris, matrix: TransformationMatrix,
                    width, height) -> GazeVector:
        """Head-stabilised, pitch- and parallax-corrected gaze vector"""
        scale = np.array([width, height, width], dtype=float)
        outer_3d = np.array([outer.x, outer.y, outer.z], dtype=float) * scale
        inner_3d = np.array([inner.x, inner.y, inner.z], dtype=float) * scale
        iris_3d = np.array([iris.x, iris.y, iris.z], dtype=float) * scale

        gaze_3d = iris_3d - (outer_3d + inner_3d) / 2

        # Into head-local space, removes head rotation
        stabilized = matrix.rotation @ gaze_3d

        # Rotate by -pitch so a head nod moves the gaze with it
        corrected = rot_x(-matrix.pitch) @ stabilized

        t = matrix.translation
        if abs(t.z) > self.translation_z_threshold:
            # t.z is negative in front of the camera
            corrected[0] += self.translation_correction_x * (t.x / -t.z)
            corrected[1] -= self.translation_correction_y * (t.y / -t.z)

        k = self.stabilization_scalar
        return GazeVector(float(-corrected[0] * k), float(corrected[1] * k))
