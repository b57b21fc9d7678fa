"""
Main entry point for LED Calibrator.
Orchestrates the pipeline threads and the UI loop.
"""

import threading
import queue
import logging
import sys
import argparse
import cv2
import numpy as np

from . import config
from .detection import DetectionEngine, HSV_CONVERSIONS
from .frame_buffer import FrameBuffer
from .pipeline import PipelineHealth, start_capture_thread, start_detection_thread
from .results import DetectionResult, DetectionResults
from .source import FrameSource
from .thresholds import FIELD_NAMES, DetectionConfig, clamp_threshold

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)


def draw_regions(frame: np.ndarray, result: DetectionResult) -> np.ndarray:
    """
    Draw one unfilled rectangle per detected region.

    Args:
        frame: Frame to draw on
        result: Latest detection result

    Returns:
        Frame with rectangles drawn
    """
    for region in result.regions:
        x1, y1, x2, y2 = region.bounds()
        cv2.rectangle(
            frame,
            (x1, y1),
            (x2, y2),
            config.REGION_COLOR,
            config.REGION_THICKNESS,
        )
    return frame


def draw_hud(
    frame: np.ndarray,
    status: str,
    frame_sequence: int,
    result: DetectionResult,
    health: PipelineHealth,
) -> np.ndarray:
    """
    Draw status lines in the top-left corner.

    Args:
        frame: Frame to draw on
        status: Output of PipelineHealth.status()
        frame_sequence: Sequence of the latest published frame
        result: Latest detection result
        health: Shared health state

    Returns:
        Frame with HUD drawn
    """
    x, y = config.HUD_POSITION
    line_height = config.HUD_LINE_HEIGHT

    lines = [
        (f"{status}  [{health.source_state.value}]",
         config.HUD_COLOR if status == "OK" else config.HUD_ALERT_COLOR),
        (f"Frame: {frame_sequence}  Cycle: {result.sequence} "
         f"(frame {result.frame_sequence})", config.HUD_COLOR),
        (f"Regions: {len(result.regions)}", config.HUD_COLOR),
    ]

    if status != "OK" and health.last_error:
        lines.append((f"Last error: {health.last_error[:60]}", config.HUD_ALERT_COLOR))

    for i, (text, color) in enumerate(lines):
        cv2.putText(
            frame,
            text,
            (x, y + line_height * i),
            config.HUD_FONT,
            config.HUD_FONT_SCALE,
            color,
            config.HUD_THICKNESS,
            cv2.LINE_AA,
        )

    return frame


def create_settings_window(thresholds: DetectionConfig) -> None:
    """
    Create the trackbar panel, one trackbar per threshold field.

    Each move is clamped to the field's range and written straight into
    thresholds.
    """
    cv2.namedWindow(config.SETTINGS_WINDOW_NAME, cv2.WINDOW_NORMAL)
    current = thresholds.snapshot()

    for name in FIELD_NAMES:
        _, high = config.THRESHOLD_LIMITS[name]
        cv2.createTrackbar(
            name,
            config.SETTINGS_WINDOW_NAME,
            int(getattr(current, name)),
            int(high),
            lambda value, name=name: thresholds.set(name, clamp_threshold(name, value)),
        )


def sync_settings_window(thresholds: DetectionConfig) -> None:
    """Move the trackbars to the current threshold values."""
    current = thresholds.snapshot()
    for name in FIELD_NAMES:
        cv2.setTrackbarPos(name, config.SETTINGS_WINDOW_NAME, int(getattr(current, name)))


def no_signal_frame() -> np.ndarray:
    """Black placeholder shown until the first frame arrives."""
    width, height = config.NO_SIGNAL_SIZE
    return np.zeros((height, width, 3), dtype=np.uint8)


def ui_loop(
    stop_event: threading.Event,
    display_queue: queue.Queue,
    frame_buffer: FrameBuffer,
    thresholds: DetectionConfig,
    results: DetectionResults,
    health: PipelineHealth,
    interval: float = config.DETECTION_INTERVAL,
) -> None:
    """
    Main UI loop - MUST run in main thread for OpenCV.

    This loop:
    - Reads frames from display_queue, keeping the last one
    - Polls results once per pass and draws the region rectangles
    - Draws the HUD with health state and sequence numbers
    - Handles keyboard input (q/Esc quit, r reset thresholds)

    Args:
        stop_event: Event to signal shutdown to other threads
        display_queue: Queue of frames from the capture thread
        frame_buffer: Shared frame buffer (read for sequence and staleness only)
        thresholds: Shared threshold bounds edited by the settings panel
        results: Latest detection results
        health: Shared health state
        interval: Detection interval, used to flag stale results
    """
    logger.info("UI loop started")

    cv2.namedWindow(config.WINDOW_NAME, cv2.WINDOW_NORMAL)
    create_settings_window(thresholds)

    last_frame = None

    try:
        while not stop_event.is_set():
            try:
                last_frame = display_queue.get(timeout=config.QUEUE_GET_TIMEOUT)
            except queue.Empty:
                pass

            display_frame = last_frame.copy() if last_frame is not None else no_signal_frame()

            result = results.read()
            snapshot = frame_buffer.snapshot()
            status = health.status(snapshot, result, interval=interval)

            display_frame = draw_regions(display_frame, result)
            display_frame = draw_hud(display_frame, status, snapshot.sequence, result, health)

            cv2.imshow(config.WINDOW_NAME, display_frame)

            key = cv2.waitKey(1) & 0xFF

            if key == 255:  # No key pressed
                continue

            if key in (config.KEY_QUIT, config.KEY_ESCAPE):
                logger.info("Quit requested, initiating shutdown")
                stop_event.set()
                break

            elif key == config.KEY_RESET:
                thresholds.reset()
                sync_settings_window(thresholds)
                logger.info("Thresholds reset to defaults")

    finally:
        cv2.destroyAllWindows()
        logger.info("UI loop stopped, windows destroyed")


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="LED Calibrator - locate colored markers in a live video stream",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Controls:
  q / Esc - Quit
  r       - Reset thresholds to defaults

Examples:
  python -m led_calibrator
  python -m led_calibrator --source rtsp://10.0.0.5/stream --min-area 4
        """
    )
    parser.add_argument(
        "--source",
        type=str,
        default=config.STREAM_URL,
        help=f"Stream locator (default: {config.STREAM_URL})"
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=config.DETECTION_INTERVAL,
        help=f"Seconds between detection cycles (default: {config.DETECTION_INTERVAL})"
    )
    parser.add_argument(
        "--min-area",
        type=float,
        default=config.MIN_REGION_AREA,
        help=f"Smallest region area in pixels (default: {config.MIN_REGION_AREA})"
    )
    parser.add_argument(
        "--channel-order",
        choices=sorted(HSV_CONVERSIONS),
        default=config.CHANNEL_ORDER,
        help=f"Channel order of decoded frames (default: {config.CHANNEL_ORDER})"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log level (default: INFO)"
    )
    args = parser.parse_args(argv)
    if args.interval <= 0:
        parser.error("--interval must be positive")
    return args


def main(argv=None) -> int:
    """
    Main entry point for LED Calibrator.

    Returns:
        Exit code (0 for success)
    """
    args = parse_args(argv)
    logging.getLogger().setLevel(args.log_level)

    logger.info("=" * 60)
    logger.info("LED Calibrator")
    logger.info(f"Source: {args.source}")
    logger.info(f"Detection interval: {args.interval * 1000:.0f}ms")
    logger.info(f"Minimum region area: {args.min_area}")
    logger.info("=" * 60)

    # Shared state
    stop_event = threading.Event()
    frame_buffer = FrameBuffer()
    thresholds = DetectionConfig()
    results = DetectionResults()
    health = PipelineHealth()
    display_queue = queue.Queue(maxsize=config.DISPLAY_QUEUE_SIZE)

    source = FrameSource(args.source)
    engine = DetectionEngine(
        frame_buffer,
        thresholds,
        results,
        channel_order=args.channel_order,
        min_area=args.min_area,
        health=health,
    )

    logger.info("Starting worker threads...")

    capture_thread = start_capture_thread(stop_event, source, frame_buffer, display_queue, health)
    detection_thread = start_detection_thread(stop_event, engine, args.interval)

    logger.info("All worker threads started")

    # Run UI loop in main thread (required by OpenCV)
    try:
        ui_loop(stop_event, display_queue, frame_buffer, thresholds, results, health, args.interval)
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    except Exception as e:
        logger.error(f"Error in UI loop: {e}", exc_info=True)
    finally:
        stop_event.set()

    logger.info("Shutting down...")

    threads = [
        ("Capture", capture_thread),
        ("Detection", detection_thread),
    ]

    for name, thread in threads:
        logger.info(f"Waiting for {name} thread...")
        thread.join(timeout=config.THREAD_JOIN_TIMEOUT)
        if thread.is_alive():
            logger.warning(f"{name} thread did not stop cleanly")
        else:
            logger.info(f"{name} thread stopped")

    logger.info("LED Calibrator shutdown complete")

    return 0


if __name__ == "__main__":
    sys.exit(main())
