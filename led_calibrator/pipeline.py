"""
Pipeline threads for LED Calibrator.
Handles stream capture, periodic detection, and the health state shared with the UI.
"""

import threading
import queue
import logging
import time
from dataclasses import dataclass
from enum import Enum

from . import config
from .detection import DetectionEngine
from .frame_buffer import FrameBuffer, FrameSnapshot
from .results import DetectionResult
from .source import FrameDecodeError, StreamOpenError

logger = logging.getLogger(__name__)


class SourceState(str, Enum):
    """Acquisition state shown in the HUD."""
    CONNECTING = "connecting"
    STREAMING = "streaming"
    RECONNECTING = "reconnecting"
    FAILED = "failed"      # Gave up, frame buffer holds the last frame forever
    STOPPED = "stopped"


@dataclass
class PipelineHealth:
    """
    Health counters shared between the worker threads and the UI thread.

    The capture thread owns the source fields, the detection thread owns
    detection_failures. The UI only reads.
    """
    source_state: SourceState = SourceState.CONNECTING
    reconnect_count: int = 0  # Reopen attempts after the first open
    decode_failures: int = 0  # Bad reads since start
    detection_failures: int = 0  # Failed detection cycles since start
    last_error: str | None = None

    def record_source_error(self, message: str) -> None:
        self.last_error = message

    def record_detection_error(self, message: str) -> None:
        self.detection_failures += 1
        self.last_error = message

    def status(
        self,
        frame: FrameSnapshot,
        result: DetectionResult,
        now: float | None = None,
        interval: float = config.DETECTION_INTERVAL,
    ) -> str:
        """
        One-word-ish status for the HUD.

        Args:
            frame: Latest frame snapshot
            result: Latest detection result
            now: Current time (defaults to time.time())
            interval: Detection interval, scales the result staleness limit

        Returns:
            "SOURCE FAILED", "NO SIGNAL", "STALE FRAME", "DETECTION ERROR",
            "DETECTION STALE" or "OK"
        """
        if now is None:
            now = time.time()

        if self.source_state == SourceState.FAILED:
            return "SOURCE FAILED"
        if frame.sequence == 0:
            return "NO SIGNAL"
        if now - frame.timestamp > config.FRAME_STALE_SECONDS:
            return "STALE FRAME"
        if result.error is not None:
            return "DETECTION ERROR"
        # No new result for several intervals: detection thread stalled or died
        if result.sequence > 0 and now - result.timestamp > config.RESULT_STALE_INTERVALS * interval:
            return "DETECTION STALE"
        return "OK"


def put_latest(target: queue.Queue, item) -> None:
    """Put item without blocking, replacing the oldest entry if the queue is full."""
    try:
        target.put_nowait(item)
    except queue.Full:
        try:
            target.get_nowait()
        except queue.Empty:
            pass
        target.put_nowait(item)


def capture_thread_fn(
    stop_event: threading.Event,
    source,
    frame_buffer: FrameBuffer,
    display_queue: queue.Queue,
    health: PipelineHealth,
    initial_delay: float = config.RECONNECT_INITIAL_DELAY,
    max_delay: float = config.RECONNECT_MAX_DELAY,
    max_attempts: int = config.MAX_RECONNECT_ATTEMPTS,
    max_decode_failures: int = config.MAX_CONSECUTIVE_DECODE_FAILURES,
) -> None:
    """
    Capture thread: decodes frames and publishes them for detection and display.

    This thread:
    - Opens the stream, retrying with exponential backoff
    - Publishes every frame's bytes and width to frame_buffer
    - Pushes every frame to display_queue (overwriting if full)
    - Skips isolated bad reads, reopens the stream after repeated ones
    - Waits with backoff after a lost session and counts it like a failed open
    - Gives up after max_attempts consecutive failed sessions (0 = never)

    Args:
        stop_event: Event to signal thread shutdown
        source: FrameSource (anything with open/read/release)
        frame_buffer: Shared buffer read by the detection thread
        display_queue: Queue feeding the render loop (maxsize=1)
        health: Shared health state
        initial_delay: First backoff delay in seconds
        max_delay: Backoff cap in seconds
        max_attempts: Consecutive failed sessions before giving up
        max_decode_failures: Consecutive bad reads before reopening
    """
    logger.info("Capture thread started")

    failed_attempts = 0
    delay = initial_delay

    try:
        while not stop_event.is_set():
            try:
                source.open()
            except StreamOpenError as e:
                health.record_source_error(str(e))
                logger.error(f"Stream open failed (attempt {failed_attempts + 1}): {e}")
            else:
                health.source_state = SourceState.STREAMING

                published = _stream_frames(
                    stop_event, source, frame_buffer, display_queue, health, max_decode_failures
                )
                source.release()

                if stop_event.is_set():
                    break

                # Only a session that delivered frames resets the backoff
                if published > 0:
                    failed_attempts = 0
                    delay = initial_delay
                logger.warning(f"Stream lost after {published} frames")

            failed_attempts += 1

            if max_attempts > 0 and failed_attempts >= max_attempts:
                logger.error(
                    f"Max reconnect attempts ({max_attempts}) exceeded, "
                    f"capture disabled until restart"
                )
                health.source_state = SourceState.FAILED
                return

            health.source_state = SourceState.RECONNECTING
            health.reconnect_count += 1
            logger.info(f"Reconnecting in {delay:.1f}s")

            if stop_event.wait(delay):
                break
            delay = min(delay * 2, max_delay)

    except Exception as e:
        logger.error(f"Capture thread crashed: {e}", exc_info=True)
        health.record_source_error(str(e))
        health.source_state = SourceState.FAILED

    finally:
        source.release()
        if health.source_state != SourceState.FAILED:
            health.source_state = SourceState.STOPPED
        logger.info("Capture thread stopped, stream released")


def _stream_frames(
    stop_event: threading.Event,
    source,
    frame_buffer: FrameBuffer,
    display_queue: queue.Queue,
    health: PipelineHealth,
    max_decode_failures: int,
) -> int:
    """
    Read frames until stop is requested or the stream keeps failing.

    Returns:
        Number of frames published during this session
    """
    consecutive_failures = 0
    published = 0
    frame_count = 0
    last_log_time = time.time()

    while not stop_event.is_set():
        try:
            frame = source.read()
        except FrameDecodeError as e:
            consecutive_failures += 1
            health.decode_failures += 1

            if consecutive_failures >= max_decode_failures:
                logger.error(f"{consecutive_failures} consecutive decode failures: {e}")
                health.record_source_error(str(e))
                return published

            logger.warning(f"Skipping bad frame: {e}")
            stop_event.wait(config.DECODE_RETRY_DELAY)
            continue

        consecutive_failures = 0

        frame_buffer.publish(frame.tobytes(), frame.shape[1])
        put_latest(display_queue, frame)

        published += 1
        frame_count += 1

        # Log FPS periodically
        current_time = time.time()
        if current_time - last_log_time >= config.STATS_LOG_INTERVAL:
            fps = frame_count / (current_time - last_log_time)
            logger.debug(f"Capture FPS: {fps:.1f}")
            frame_count = 0
            last_log_time = current_time

    return published


def detection_thread_fn(
    stop_event: threading.Event,
    engine: DetectionEngine,
    interval: float = config.DETECTION_INTERVAL,
) -> None:
    """
    Detection thread: runs one engine cycle every interval seconds.

    Cycles never overlap; a slow cycle only pushes the next one back.
    Cycle failures are handled inside the engine, so the loop keeps going.

    Args:
        stop_event: Event to signal thread shutdown
        engine: DetectionEngine to drive
        interval: Seconds to wait between cycles
    """
    logger.info(f"Detection thread started (interval={interval * 1000:.0f}ms)")

    cycle_count = 0
    region_count = 0
    last_log_time = time.time()

    try:
        while not stop_event.wait(interval):
            result = engine.run_cycle()
            if result is None:
                continue

            cycle_count += 1
            region_count = len(result.regions)

            current_time = time.time()
            if current_time - last_log_time >= config.STATS_LOG_INTERVAL:
                rate = cycle_count / (current_time - last_log_time)
                logger.debug(
                    f"Detection rate: {rate:.1f} cycles/s, "
                    f"frame={result.frame_sequence}, {region_count} regions"
                )
                cycle_count = 0
                last_log_time = current_time

    except Exception as e:
        logger.error(f"Detection thread crashed: {e}", exc_info=True)
        if engine.health is not None:
            engine.health.record_detection_error(str(e))

    finally:
        logger.info("Detection thread stopped")


def start_capture_thread(
    stop_event: threading.Event,
    source,
    frame_buffer: FrameBuffer,
    display_queue: queue.Queue,
    health: PipelineHealth,
) -> threading.Thread:
    """
    Start the capture thread.

    Args:
        stop_event: Event to signal thread shutdown
        source: FrameSource to read from
        frame_buffer: Buffer to publish frames into
        display_queue: Queue to send frames for display
        health: Shared health state

    Returns:
        The started thread object
    """
    thread = threading.Thread(
        target=capture_thread_fn,
        args=(stop_event, source, frame_buffer, display_queue, health),
        name="CaptureThread",
        daemon=True,
    )
    thread.start()
    return thread


def start_detection_thread(
    stop_event: threading.Event,
    engine: DetectionEngine,
    interval: float = config.DETECTION_INTERVAL,
) -> threading.Thread:
    """
    Start the detection thread.

    Args:
        stop_event: Event to signal thread shutdown
        engine: DetectionEngine to run
        interval: Seconds between cycles

    Returns:
        The started thread object
    """
    thread = threading.Thread(
        target=detection_thread_fn,
        args=(stop_event, engine, interval),
        name="DetectionThread",
        daemon=True,
    )
    thread.start()
    return thread
