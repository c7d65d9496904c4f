"""
Frame Loop
Pulls landmark frames from a source and drives the gaze pipeline on one thread

Each iteration:
    1. Run queued commands (UI actions submitted from other threads)
    2. Fire due calibration timers
    3. Process the frame
    4. Hand the result to the renderer callback

The loop stops when its CancellationToken is set or the source runs dry.
"""

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from .timers import TimerScheduler

logger = logging.getLogger(__name__)


@dataclass
class LandmarkFrame:
    """One detector output: landmarks and head pose for a captured frame"""
    frame_id: int
    timestamp_ms: float
    landmarks: Optional[Sequence]
    matrix: Optional[Any]  # TransformationMatrix
    width: int
    height: int
    image: Optional[Any] = field(default=None, repr=False)


class FrameSource:
    """Interface for anything that yields LandmarkFrames"""

    def read(self) -> Optional[LandmarkFrame]:
        """Next frame, or None when the source is exhausted"""
        raise NotImplementedError

    def close(self):
        pass


class CancellationToken:
    """Explicit stop signal shared between the loop and its owner"""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)


class FrameLoop:
    """
    Single-threaded frame loop

    All pipeline state is touched only from the thread running run(); other
    threads talk to it through submit().
    """

    def __init__(
        self,
        source: FrameSource,
        processor,
        scheduler: Optional[TimerScheduler] = None,
        on_result: Optional[Callable] = None,
    ):
        """
        Args:
            source:    FrameSource to pull from
            processor: GazeProcessor (anything with process_frame and close)
            scheduler: TimerScheduler polled each iteration, defaults to the processor's
            on_result: Called with each FrameResult (and the LandmarkFrame)
        """
        self.source = source
        self.processor = processor
        self.scheduler = scheduler or processor.scheduler
        self.on_result = on_result

        self._commands: "queue.Queue[Callable[[], None]]" = queue.Queue()
        self._token: Optional[CancellationToken] = None
        self._thread: Optional[threading.Thread] = None
        self.frames_read = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def submit(self, command: Callable[[], None]):
        """Queue a zero-argument callable to run on the loop thread"""
        self._commands.put(command)

    def run(self, token: CancellationToken):
        """
        Blocking loop until `token` is cancelled or the source is exhausted

        Returns:
            Number of frames read.
        """
        logger.info("Frame loop started")

        while not token.cancelled:
            self._drain_commands()
            self.scheduler.poll()

            frame = self.source.read()
            if frame is None:
                logger.info("Frame source exhausted")
                break
            self.frames_read += 1

            try:
                result = self.processor.process_frame(
                    frame.frame_id,
                    frame.landmarks,
                    frame.matrix,
                    frame.width,
                    frame.height,
                )
                if result is not None and self.on_result is not None:
                    self.on_result(result, frame)
            except Exception as e:
                logger.error(f"Error in frame loop: {e}", exc_info=True)

        # Commands queued right before stopping still apply
        self._drain_commands()
        logger.info(f"Frame loop stopped after {self.frames_read} frames")
        return self.frames_read

    def start(self) -> CancellationToken:
        """Run the loop on a background thread"""
        if self._thread is not None and self._thread.is_alive():
            raise RuntimeError("Frame loop already running")

        self._token = CancellationToken()
        self._thread = threading.Thread(
            target=self.run,
            args=(self._token,),
            name="GazeFrameLoop-Thread",
            daemon=True,
        )
        self._thread.start()
        logger.info("✓ Frame loop thread started")
        return self._token

    def stop(self, timeout: float = 5.0):
        """Cancel the background loop, wait for it, then release resources"""
        if self._token is not None:
            self._token.cancel()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._thread = None

        self.processor.close()
        self.source.close()
        logger.info("✓ Frame loop stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    def _drain_commands(self):
        while True:
            try:
                command = self._commands.get_nowait()
            except queue.Empty:
                return
            try:
                command()
            except Exception as e:
                logger.error(f"Error running loop command: {e}", exc_info=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()

    def __repr__(self):
        status = "running" if self.is_running else "stopped"
        return f"<FrameLoop(status={status}, frames={self.frames_read})>"
