"""
Gaze System Coordinator
Clock, cooperative timers and the single-threaded frame loop
"""

from .clock import MonotonicClock, ManualClock
from .timers import TimerScheduler
from .loop import FrameLoop, FrameSource, LandmarkFrame, CancellationToken

__all__ = [
    'MonotonicClock',
    'ManualClock',
    'TimerScheduler',
    'FrameLoop',
    'FrameSource',
    'LandmarkFrame',
    'CancellationToken',
]

__version__ = '1.0.0'
