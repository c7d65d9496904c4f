"""
Gaze System - Main Entry Point
Live webcam gaze tracking with optional 9-point calibration

Keys (preview window):
    c  enter calibration and start the sequence
    r  restart calibration from the centre point
    f  finish calibration and return to tracking
    h  toggle high-sensitivity fallback
    q  quit

Usage:
    python run.py --model face_landmarker.task
    python run.py --camera 1 --calibrate
"""

import argparse
import logging
import signal
import sys

import cv2

from gaze_system.coordinator import CancellationToken, FrameLoop, MonotonicClock, TimerScheduler
from gaze_system.geometry import leveling_transform
from gaze_system.tracking import GazeConfig, GazeProcessor, MediaPipeLandmarkSource

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
)
logger = logging.getLogger('gaze')

WINDOW_NAME = 'Gaze System'


def parse_args():
    parser = argparse.ArgumentParser(description='Webcam gaze tracking')
    parser.add_argument('--camera', type=int, default=0, help='OpenCV camera index')
    parser.add_argument('--model', default='face_landmarker.task',
                        help='Path to the MediaPipe face_landmarker.task model')
    parser.add_argument('--high-sensitivity', action='store_true',
                        help='Double the uncalibrated projection strength')
    parser.add_argument('--calibrate', action='store_true',
                        help='Start calibration immediately')
    parser.add_argument('--debug', action='store_true', help='Verbose logging')
    return parser.parse_args()


# ------------------------------------------------------------------
# Drawing
# ------------------------------------------------------------------

def level_frame(frame):
    """Copy of the frame rotated upright about the eyes, or a plain copy without a face"""
    h, w = frame.image.shape[:2]
    affine = leveling_transform(frame.landmarks, frame.matrix, w, h)
    if affine is None:
        return frame.image.copy()
    return cv2.warpAffine(frame.image, affine, (w, h))


def draw_result(image, result, processor):
    """Overlay the calibration target or the gaze point on the preview frame"""
    h, w = image.shape[:2]

    if processor.is_calibrating:
        status = processor.calibration_status()
        if status.target is not None:
            tx, ty = int(status.target[0] * (w - 1)), int(status.target[1] * (h - 1))
            colour = (0, 200, 0) if status.step.is_collecting else (0, 200, 255)
            cv2.circle(image, (tx, ty), 14, colour, 2)
            cv2.circle(image, (tx, ty), 3, colour, -1)
        cv2.putText(image, status.title, (10, 25), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (255, 255, 255), 2)
        cv2.putText(image, status.instruction[:70], (10, 50), cv2.FONT_HERSHEY_SIMPLEX, 0.45, (255, 255, 255), 1)
        if status.step.is_collecting:
            cv2.rectangle(image, (10, h - 20), (10 + int((w - 20) * status.progress), h - 10), (0, 200, 0), -1)

    elif result.gaze_point is not None:
        gx, gy = result.gaze_point.to_pixels(w, h)
        cv2.circle(image, (gx, gy), 10, (0, 0, 255), -1)

    if not result.has_face:
        cv2.putText(image, 'No face', (10, h - 30), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (0, 0, 255), 2)

    mode = 'calibrated' if processor.calibration_data and processor.calibration_data.is_trained else 'fallback'
    if processor.high_sensitivity:
        mode += ' / high sensitivity'
    cv2.putText(image, mode, (w - 260, 25), cv2.FONT_HERSHEY_SIMPLEX, 0.5, (200, 200, 200), 1)


def toggle_sensitivity(processor):
    processor.high_sensitivity = not processor.high_sensitivity
    logger.info(f"High sensitivity {'on' if processor.high_sensitivity else 'off'}")


# ------------------------------------------------------------------
# Main
# ------------------------------------------------------------------

def main():
    args = parse_args()
    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    print()
    print("=" * 50)
    print("  Gaze System")
    print("=" * 50)
    print("  c calibrate | r reset | f finish | h sensitivity | q quit")
    print()

    if args.calibrate:
        config = GazeConfig.for_calibration()
        config.high_sensitivity = args.high_sensitivity
    elif args.high_sensitivity:
        config = GazeConfig.for_high_sensitivity()
    else:
        config = GazeConfig.for_session()
    config.camera_index = args.camera
    config.model_asset_path = args.model

    clock = MonotonicClock()
    scheduler = TimerScheduler(clock)
    processor = GazeProcessor(config, scheduler=scheduler)
    source = MediaPipeLandmarkSource(config, clock=clock)

    try:
        source.open()
    except Exception as e:
        logger.error(f"Cannot start capture: {e}")
        print("\n✗ Could not open the camera or landmark model.")
        print("  Check --camera and --model.")
        sys.exit(1)

    token = CancellationToken()

    def _force_exit(sig, frame):
        logger.info("Exit requested")
        token.cancel()

    signal.signal(signal.SIGINT, _force_exit)
    signal.signal(signal.SIGTERM, _force_exit)

    loop = None
    key_commands = {
        ord('c'): lambda: processor.start_calibration(),
        ord('r'): lambda: processor.reset_calibration(),
        ord('f'): lambda: processor.finish_calibration(),
        ord('h'): lambda: toggle_sensitivity(processor),
    }

    def on_result(result, frame):
        logger.debug(f"Frame {result.frame_id}: step={result.step} gaze={result.gaze_point}")
        if frame.image is not None:
            image = level_frame(frame)
            draw_result(image, result, processor)
            cv2.imshow(WINDOW_NAME, image)

        key = cv2.waitKey(1) & 0xFF
        if key == ord('q'):
            token.cancel()
        elif key in key_commands:
            loop.submit(key_commands[key])

    loop = FrameLoop(source, processor, scheduler=scheduler, on_result=on_result)

    if args.calibrate:
        loop.submit(processor.start_calibration)

    try:
        # OpenCV windows must be driven from the main thread
        frames = loop.run(token)
        logger.info(f"✓ Session ended after {frames} frames")
        logger.info(f"  Status: {processor.get_status()}")
    finally:
        loop.stop()
        cv2.destroyAllWindows()


if __name__ == '__main__':
    main()
