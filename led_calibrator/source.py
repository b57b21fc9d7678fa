"""
Video stream source for LED Calibrator.
Wraps cv2.VideoCapture with the FFmpeg backend for RTSP and other network streams.
"""

import logging
import os

import cv2
import numpy as np

from . import config

logger = logging.getLogger(__name__)


class StreamError(Exception):
    """Base exception for stream failures."""
    pass


class StreamOpenError(StreamError):
    """Raised when the decode session cannot be established."""
    pass


class FrameDecodeError(StreamError):
    """Raised when a single frame cannot be read or decoded."""
    pass


class FrameSource:
    """
    Decode session for one stream locator.

    frames() yields decoded frames forever; once the session breaks the
    generator is done and a new open() is needed.

    Example:
        with FrameSource("rtsp://192.168.0.101") as source:
            for frame in source.frames():
                ...
    """

    def __init__(
        self,
        locator: str,
        open_timeout_ms: int = config.OPEN_TIMEOUT_MS,
        read_timeout_ms: int = config.READ_TIMEOUT_MS,
        rtsp_transport: str = config.RTSP_TRANSPORT,
    ):
        """
        Initialize frame source.

        Args:
            locator: Stream URL or anything FFmpeg can open
            open_timeout_ms: Timeout for establishing the session
            read_timeout_ms: Timeout for a single frame read
            rtsp_transport: RTSP lower transport ("tcp" or "udp")
        """
        self.locator = locator
        self.open_timeout_ms = open_timeout_ms
        self.read_timeout_ms = read_timeout_ms
        self.rtsp_transport = rtsp_transport
        self._cap = None

    @property
    def is_open(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    def open(self) -> None:
        """
        Establish the decode session.

        Raises:
            StreamOpenError: If the stream cannot be opened
        """
        self.release()

        # Read by the FFmpeg backend when the capture is created
        os.environ["OPENCV_FFMPEG_CAPTURE_OPTIONS"] = f"rtsp_transport;{self.rtsp_transport}"

        logger.info(f"Opening stream {self.locator} (transport={self.rtsp_transport})")

        try:
            cap = cv2.VideoCapture(
                self.locator,
                cv2.CAP_FFMPEG,
                [
                    cv2.CAP_PROP_OPEN_TIMEOUT_MSEC, self.open_timeout_ms,
                    cv2.CAP_PROP_READ_TIMEOUT_MSEC, self.read_timeout_ms,
                ],
            )
        except cv2.error as e:
            raise StreamOpenError(f"Failed to open {self.locator}: {e}") from e

        if not cap.isOpened():
            cap.release()
            raise StreamOpenError(f"Failed to open {self.locator}")

        width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        logger.info(f"Stream opened: {width}x{height}")

        self._cap = cap

    def read(self) -> np.ndarray:
        """
        Decode the next frame.

        Returns:
            H x W x 3 uint8 frame in the decoder's native (BGR) order

        Raises:
            FrameDecodeError: If the session is closed or the read fails
        """
        if self._cap is None:
            raise FrameDecodeError("Stream is not open")

        try:
            ret, frame = self._cap.read()
        except cv2.error as e:
            raise FrameDecodeError(f"Frame decode failed: {e}") from e

        if not ret or frame is None:
            raise FrameDecodeError("Failed to read frame from stream")

        if frame.ndim != 3 or frame.shape[2] != 3:
            raise FrameDecodeError(f"Unexpected frame shape: {frame.shape}")

        return frame

    def frames(self):
        """
        Yield decoded frames until a read fails.

        Raises:
            FrameDecodeError: When a read fails, including at end of stream
        """
        while True:
            yield self.read()

    def release(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def __enter__(self) -> "FrameSource":
        self.open()
        return self

    def __exit__(self, *args) -> None:
        self.release()
