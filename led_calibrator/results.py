"""
Detection result types and the holder the render loop polls.
"""

import math
import threading
from dataclasses import dataclass


@dataclass(frozen=True)
class DetectedRegion:
    """
    One blob found in the mask.

    The box is centered on the centroid (not on the bounding rectangle's own
    center) and has the bounding rectangle's size.
    """
    center_x: float
    center_y: float
    width: float
    height: float
    area: float = 0.0  # Zeroth moment of the contour

    def is_finite(self) -> bool:
        return all(
            math.isfinite(v)
            for v in (self.center_x, self.center_y, self.width, self.height)
        )

    def bounds(self) -> tuple[int, int, int, int]:
        """Integer (x1, y1, x2, y2) corners for drawing."""
        x1 = self.center_x - self.width / 2.0
        y1 = self.center_y - self.height / 2.0
        return (
            int(round(x1)),
            int(round(y1)),
            int(round(x1 + self.width)),
            int(round(y1 + self.height)),
        )


@dataclass(frozen=True)
class DetectionResult:
    """
    Output of one detection cycle.

    Attributes:
        sequence: Cycle counter (0 before the first cycle)
        frame_sequence: Sequence of the frame the cycle processed
        timestamp: time.time() when the cycle finished
        regions: Regions found, in no particular order
        error: Failure message if the cycle failed, otherwise None
    """
    sequence: int = 0
    frame_sequence: int = 0
    timestamp: float = 0.0
    regions: tuple[DetectedRegion, ...] = ()
    error: str | None = None


class DetectionResults:
    """Latest DetectionResult, replaced wholesale on every cycle."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._result = DetectionResult()

    def publish(self, result: DetectionResult) -> None:
        with self._lock:
            self._result = result

    def read(self) -> DetectionResult:
        with self._lock:
            return self._result
