"""
Landmark Frame Source
OpenCV webcam capture + MediaPipe FaceLandmarker (VIDEO mode, head pose on)
"""

import logging
from typing import Optional

from gaze_system.coordinator.clock import MonotonicClock
from gaze_system.coordinator.loop import FrameSource, LandmarkFrame
from gaze_system.geometry.types import TransformationMatrix
from .config import GazeConfig

logger = logging.getLogger(__name__)


class MediaPipeLandmarkSource(FrameSource):
    """
    Reads webcam frames and runs the face landmarker on each one.

    Frames without a face are still emitted (landmarks=None) so the
    pipeline can reset its smoothing state.
    """

    def __init__(self, config: Optional[GazeConfig] = None, clock: Optional[MonotonicClock] = None):
        self.config = config or GazeConfig.for_session()
        self.clock = clock or MonotonicClock()

        self.capture = None
        self.landmarker = None
        self._mp = None
        self._frame_id = 0
        self._last_timestamp_ms = -1

    def open(self) -> 'MediaPipeLandmarkSource':
        """Open camera and landmark model."""
        import cv2
        import mediapipe as mp
        from mediapipe.tasks import python as mp_python
        from mediapipe.tasks.python import vision

        try:
            self.capture = cv2.VideoCapture(self.config.camera_index)
            self.capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.frame_width)
            self.capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.frame_height)
            if not self.capture.isOpened():
                raise RuntimeError(f"Could not open camera {self.config.camera_index}")

            options = vision.FaceLandmarkerOptions(
                base_options=mp_python.BaseOptions(model_asset_path=self.config.model_asset_path),
                running_mode=vision.RunningMode.VIDEO,
                num_faces=self.config.num_faces,
                min_face_detection_confidence=self.config.min_detection_confidence,
                min_tracking_confidence=self.config.min_tracking_confidence,
                output_face_blendshapes=False,
                output_facial_transformation_matrixes=True,
            )
            self.landmarker = vision.FaceLandmarker.create_from_options(options)
            self._mp = mp
            logger.info(f"✓ Landmark source opened (camera {self.config.camera_index})")
            return self

        except Exception as e:
            logger.error(f"✗ Failed to open landmark source: {e}", exc_info=True)
            self.close()
            raise

    def read(self) -> Optional[LandmarkFrame]:
        if self.capture is None or self.landmarker is None:
            raise RuntimeError("Call open() before read()")

        import cv2

        ok, image = self.capture.read()
        if not ok:
            logger.warning("Camera frame read failed, stopping source")
            return None

        # detect_for_video needs strictly increasing integer timestamps
        timestamp_ms = int(self.clock.now_ms())
        if timestamp_ms <= self._last_timestamp_ms:
            timestamp_ms = self._last_timestamp_ms + 1
        self._last_timestamp_ms = timestamp_ms

        rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        mp_image = self._mp.Image(image_format=self._mp.ImageFormat.SRGB, data=rgb)
        result = self.landmarker.detect_for_video(mp_image, timestamp_ms)

        landmarks = result.face_landmarks[0] if result.face_landmarks else None
        matrix = None
        if result.facial_transformation_matrixes:
            matrix = TransformationMatrix.from_matrix(result.facial_transformation_matrixes[0])

        self._frame_id += 1
        height, width = image.shape[:2]
        return LandmarkFrame(
            frame_id=self._frame_id,
            timestamp_ms=timestamp_ms,
            landmarks=landmarks,
            matrix=matrix,
            width=width,
            height=height,
            image=image,
        )

    def close(self):
        """Release camera and MediaPipe."""
        if self.landmarker is not None:
            self.landmarker.close()
            self.landmarker = None
        if self.capture is not None:
            self.capture.release()
            self.capture = None
        logger.info("✓ Landmark source closed")

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self):
        status = "open" if self.capture is not None else "closed"
        return f"<MediaPipeLandmarkSource(status={status}, frames={self._frame_id})>"
