"""
HSV threshold detector for LED Calibrator.
Finds blobs inside a configurable color band and reports their centroid and size.
"""

import logging
import time

import cv2
import numpy as np

from . import config
from .frame_buffer import FrameBuffer
from .results import DetectedRegion, DetectionResult, DetectionResults
from .thresholds import DetectionConfig, ThresholdRange

logger = logging.getLogger(__name__)


# Decoder channel order -> HSV conversion code
HSV_CONVERSIONS = {
    "bgr": cv2.COLOR_BGR2HSV,
    "rgb": cv2.COLOR_RGB2HSV,
}


def frame_height(length: int, width: int) -> int:
    """
    Number of complete rows in a 3-bytes-per-pixel buffer.

    Bytes past the last complete row are ignored.

    Args:
        length: Buffer length in bytes
        width: Frame width in pixels (must be > 0)

    Returns:
        floor(length / (width * 3))
    """
    if width <= 0:
        raise ValueError(f"width must be positive, got {width}")
    return length // (width * 3)


def image_from_bytes(data: bytes, width: int) -> np.ndarray:
    """
    Rebuild an H x W x 3 uint8 image from raw row-major pixel bytes.

    Args:
        data: Pixel bytes as published to the FrameBuffer
        width: Frame width in pixels

    Returns:
        Image array (a read-only view over data)
    """
    height = frame_height(len(data), width)
    count = height * width * 3
    return np.frombuffer(data, dtype=np.uint8, count=count).reshape(height, width, 3)


def threshold_mask(
    image: np.ndarray,
    thresholds: ThresholdRange,
    channel_order: str = config.CHANNEL_ORDER,
) -> np.ndarray:
    """
    Convert to HSV and keep pixels whose three channels all fall inside the band.

    Args:
        image: 3-channel uint8 image in channel_order
        thresholds: Inclusive per-channel bounds
        channel_order: "bgr" or "rgb"

    Returns:
        Single-channel mask, 255 where the pixel is inside the band
    """
    hsv = cv2.cvtColor(image, HSV_CONVERSIONS[channel_order])
    return cv2.inRange(hsv, thresholds.lower, thresholds.upper)


def regions_from_mask(mask: np.ndarray, min_area: float = 0.0) -> list[DetectedRegion]:
    """
    Turn the outer contours of a mask into regions.

    Contours with a zero zeroth moment have no centroid and are dropped, as
    are those below min_area and any with non-finite values.

    Args:
        mask: Binary single-channel mask
        min_area: Smallest zeroth moment to keep

    Returns:
        List of DetectedRegion, in contour order
    """
    contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

    regions = []
    for contour in contours:
        moments = cv2.moments(contour)
        m00 = moments["m00"]

        if m00 == 0 or m00 < min_area:
            continue

        _, _, w, h = cv2.boundingRect(contour)

        region = DetectedRegion(
            center_x=float(moments["m10"] / m00),
            center_y=float(moments["m01"] / m00),
            width=float(w),
            height=float(h),
            area=float(m00),
        )

        if region.is_finite():
            regions.append(region)

    return regions


def find_regions(
    image: np.ndarray,
    thresholds: ThresholdRange,
    channel_order: str = config.CHANNEL_ORDER,
    min_area: float = config.MIN_REGION_AREA,
) -> list[DetectedRegion]:
    """Full per-frame pipeline: HSV threshold, outer contours, centroids."""
    if image.size == 0:
        return []
    mask = threshold_mask(image, thresholds, channel_order)
    return regions_from_mask(mask, min_area)


class DetectionEngine:
    """
    Runs one detection cycle against the shared frame and threshold state.

    Each cycle takes its own snapshot of the frame and of the thresholds and
    publishes a fresh DetectionResult. Nothing carries over between cycles
    apart from the cycle counter.
    """

    def __init__(
        self,
        frame_buffer: FrameBuffer,
        thresholds: DetectionConfig,
        results: DetectionResults,
        channel_order: str = config.CHANNEL_ORDER,
        min_area: float = config.MIN_REGION_AREA,
        health=None,
    ):
        """
        Initialize detection engine.

        Args:
            frame_buffer: Source of frame snapshots
            thresholds: Shared threshold bounds
            results: Where each cycle's result is published
            channel_order: Channel order of the published frames ("bgr" or "rgb")
            min_area: Smallest zeroth moment kept as a region
            health: Optional PipelineHealth that records failed cycles
        """
        if channel_order not in HSV_CONVERSIONS:
            raise ValueError(f"Unknown channel order: {channel_order}")

        self.frame_buffer = frame_buffer
        self.thresholds = thresholds
        self.results = results
        self.channel_order = channel_order
        self.min_area = min_area
        self.health = health
        self._cycle = 0

    @property
    def cycle_count(self) -> int:
        return self._cycle

    def run_cycle(self) -> DetectionResult | None:
        """
        Detect regions in the latest frame and publish them.

        Returns:
            The published result, or None if no frame has arrived yet
        """
        frame = self.frame_buffer.snapshot()
        if frame.width == 0:
            return None

        self._cycle += 1
        error = None

        try:
            image = image_from_bytes(frame.data, frame.width)
            regions = find_regions(
                image,
                self.thresholds.snapshot(),
                channel_order=self.channel_order,
                min_area=self.min_area,
            )
        except Exception as e:
            logger.error(
                f"Detection cycle {self._cycle} failed on frame {frame.sequence}: {e}",
                exc_info=True,
            )
            regions = []
            error = str(e) or type(e).__name__
            if self.health is not None:
                self.health.record_detection_error(error)

        result = DetectionResult(
            sequence=self._cycle,
            frame_sequence=frame.sequence,
            timestamp=time.time(),
            regions=tuple(regions),
            error=error,
        )
        self.results.publish(result)
        return result
