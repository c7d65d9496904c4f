"""
Shared fixtures: synthetic face landmarks and a hand-driven clock
"""

import pytest

from gaze_system.coordinator.clock import ManualClock
from gaze_system.coordinator.timers import TimerScheduler
from gaze_system.geometry.types import Landmark, LandmarkIndex, TransformationMatrix

FACE_SIZE = 478

# Eye corners at y=0.5, iris centred, normalised coordinates
DEFAULT_EYES = {
    LandmarkIndex.RIGHT_EYE_OUTER: (0.30, 0.50),
    LandmarkIndex.RIGHT_EYE_INNER: (0.40, 0.50),
    LandmarkIndex.RIGHT_IRIS:      (0.35, 0.50),
    LandmarkIndex.LEFT_EYE_OUTER:  (0.70, 0.50),
    LandmarkIndex.LEFT_EYE_INNER:  (0.60, 0.50),
    LandmarkIndex.LEFT_IRIS:       (0.65, 0.50),
}


def make_landmarks(overrides=None, count=FACE_SIZE):
    """
    Build a landmark list of `count` points

    Args:
        overrides: {LandmarkIndex: (x, y) or (x, y, z)} applied over DEFAULT_EYES
        count: List length

    Returns:
        List of Landmark
    """
    points = [Landmark(0.5, 0.5, 0.0) for _ in range(count)]
    placed = dict(DEFAULT_EYES)
    placed.update(overrides or {})
    for idx, coords in placed.items():
        if idx < count:
            points[idx] = Landmark(*coords)
    return points


def gaze_landmarks(dx, dy, count=FACE_SIZE):
    """Both irises shifted by (dx, dy) in normalised units"""
    return make_landmarks({
        LandmarkIndex.RIGHT_IRIS: (0.35 + dx, 0.50 + dy),
        LandmarkIndex.LEFT_IRIS:  (0.65 + dx, 0.50 + dy),
    }, count=count)


@pytest.fixture
def landmark_factory():
    return make_landmarks


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def scheduler(clock):
    return TimerScheduler(clock)


@pytest.fixture
def identity_matrix():
    return TransformationMatrix.identity()
