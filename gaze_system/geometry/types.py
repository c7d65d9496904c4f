"""
Geometry Types
Value types shared by the extractor, calibration and prediction stages
"""

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Sequence, Tuple

import numpy as np


class LandmarkIndex(IntEnum):
    """Face landmark indices (478-point refined mesh) used for gaze"""

    RIGHT_EYE_OUTER = 133
    RIGHT_EYE_INNER = 33
    RIGHT_IRIS = 468

    LEFT_EYE_OUTER = 263
    LEFT_EYE_INNER = 362
    LEFT_IRIS = 473


# Landmark array must be addressable up to the left iris centre
MIN_LANDMARK_COUNT = LandmarkIndex.LEFT_IRIS + 1


@dataclass(frozen=True)
class Landmark:
    """Normalised 3D face point (x, y in [0, 1], z relative depth)"""
    x: float
    y: float
    z: float = 0.0
    visibility: Optional[float] = None


@dataclass(frozen=True)
class Vec3:
    x: float
    y: float
    z: float


@dataclass(frozen=True)
class GazeVector:
    """2D gaze direction in head-stabilised, pixel-scaled units"""
    x: float
    y: float

    @staticmethod
    def mean(a: 'GazeVector', b: 'GazeVector') -> 'GazeVector':
        return GazeVector((a.x + b.x) / 2, (a.y + b.y) / 2)


@dataclass(frozen=True)
class NormalizedGazePoint:
    """Predicted look-at position as screen fractions (0,0 = top-left)"""
    u: float
    v: float

    def to_pixels(self, width: int, height: int) -> Tuple[int, int]:
        """Map to viewport pixels for a renderer."""
        return int(self.u * width), int(self.v * height)


class TransformationMatrix:
    """
    Column-major 4x4 head pose (rotation + translation) relative to the camera

    The 16 values are stored exactly as the face landmarker emits them:
    rotation in indices 0,1,2 / 4,5,6 / 8,9,10, translation in 12,13,14.
    """

    __slots__ = ('data',)

    def __init__(self, data: Sequence[float]):
        values = tuple(float(v) for v in data)
        if len(values) != 16:
            raise ValueError(f"Transformation matrix needs 16 values, got {len(values)}")
        self.data = values

    @classmethod
    def from_matrix(cls, matrix) -> 'TransformationMatrix':
        """
        Build from a row-major 4x4 array (MediaPipe Python output)

        Args:
            matrix: 4x4 array-like

        Returns:
            TransformationMatrix holding the column-major flattening
        """
        arr = np.asarray(matrix, dtype=float)
        if arr.shape != (4, 4):
            raise ValueError(f"Expected a 4x4 matrix, got shape {arr.shape}")
        return cls(arr.flatten(order='F'))

    @property
    def rotation(self) -> np.ndarray:
        """
        3x3 block that carries a camera-space vector into head-local space

        Rows are the rotation's columns, i.e. the transpose (inverse) of the
        head rotation.
        """
        m = self.data
        return np.array([
            [m[0], m[1], m[2]],
            [m[4], m[5], m[6]],
            [m[8], m[9], m[10]],
        ], dtype=float)

    @property
    def translation(self) -> Vec3:
        m = self.data
        return Vec3(m[12], m[13], m[14])

    @property
    def pitch(self) -> float:
        """Head nod angle in radians"""
        return math.atan2(self.data[6], self.data[10])

    @property
    def roll(self) -> float:
        """Head tilt angle in radians, see extractor.leveling_transform"""
        return math.atan2(self.data[1], self.data[0])

    @classmethod
    def identity(cls) -> 'TransformationMatrix':
        return cls(np.eye(4).flatten(order='F'))

    def __eq__(self, other):
        if not isinstance(other, TransformationMatrix):
            return NotImplemented
        return self.data == other.data

    def __hash__(self):
        return hash(self.data)

    def __repr__(self):
        t = self.translation
        return f"<TransformationMatrix(t=({t.x:.2f}, {t.y:.2f}, {t.z:.2f}))>"


@dataclass(frozen=True)
class EyeGeometry:
    """Per-eye result: pixel centre, pixel radius and corrected gaze vector"""
    center: Tuple[float, float]
    radius: float
    vector: GazeVector


@dataclass(frozen=True)
class FrameGeometry:
    """Both eyes for one frame plus the inter-ocular pixel distance"""
    right: EyeGeometry
    left: EyeGeometry
    inter_ocular_distance: float

    @property
    def vec_right(self) -> GazeVector:
        return self.right.vector

    @property
    def vec_left(self) -> GazeVector:
        return self.left.vector

    @property
    def midpoint(self) -> Tuple[float, float]:
        """Point between the two eye centres"""
        return (
            (self.right.center[0] + self.left.center[0]) / 2,
            (self.right.center[1] + self.left.center[1]) / 2,
        )
