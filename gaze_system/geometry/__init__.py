"""
Gaze Geometry
Value types, matrix toolkit and per-frame landmark geometry

Architecture:
- types:      Landmark, GazeVector, TransformationMatrix, FrameGeometry, ...
- linalg:     Shape-checked matrix operations, Gauss-Jordan inverse, ridge regression
- extractor:  FrameGeometryExtractor (head-stabilised per-eye gaze vectors), preview leveling
"""

from .types import (
    Landmark,
    Vec3,
    GazeVector,
    NormalizedGazePoint,
    TransformationMatrix,
    LandmarkIndex,
    EyeGeometry,
    FrameGeometry,
    MIN_LANDMARK_COUNT,
)
from .linalg import DimensionMismatch, invert, ridge_regression
from .extractor import FrameGeometryExtractor, leveling_transform, rot_x

__all__ = [
    'Landmark',
    'Vec3',
    'GazeVector',
    'NormalizedGazePoint',
    'TransformationMatrix',
    'LandmarkIndex',
    'EyeGeometry',
    'FrameGeometry',
    'MIN_LANDMARK_COUNT',
    'DimensionMismatch',
    'invert',
    'ridge_regression',
    'FrameGeometryExtractor',
    'leveling_transform',
    'rot_x',
]
