"""
Test Configuration
==================

Pytest fixtures and synthetic frame helpers for LED Calibrator.
"""

import cv2
import numpy as np
import pytest

from led_calibrator.detection import DetectionEngine
from led_calibrator.frame_buffer import FrameBuffer
from led_calibrator.pipeline import PipelineHealth
from led_calibrator.results import DetectionResults
from led_calibrator.thresholds import DetectionConfig


# Pure green in BGR is H=60, S=255, V=255: inside the default band
GREEN_BGR = (0, 255, 0)
# Pure blue is H=120: outside the default band
BLUE_BGR = (255, 0, 0)


def blank_frame(width: int = 320, height: int = 240, color=(0, 0, 0)) -> np.ndarray:
    """Solid BGR frame."""
    frame = np.zeros((height, width, 3), dtype=np.uint8)
    frame[:, :] = color
    return frame


def fill_rect(frame: np.ndarray, x0: int, y0: int, w: int, h: int, color=GREEN_BGR) -> np.ndarray:
    """Fill exactly w x h pixels with top-left corner (x0, y0)."""
    cv2.rectangle(frame, (x0, y0), (x0 + w - 1, y0 + h - 1), color, -1)
    return frame


def publish_frame(frame_buffer: FrameBuffer, frame: np.ndarray) -> int:
    """Publish a frame the way the capture thread does."""
    return frame_buffer.publish(frame.tobytes(), frame.shape[1])


@pytest.fixture
def frame_buffer():
    return FrameBuffer()


@pytest.fixture
def thresholds():
    return DetectionConfig()


@pytest.fixture
def results():
    return DetectionResults()


@pytest.fixture
def health():
    return PipelineHealth()


@pytest.fixture
def engine(frame_buffer, thresholds, results, health):
    return DetectionEngine(frame_buffer, thresholds, results, health=health)
