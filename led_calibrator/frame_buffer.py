"""
Latest-frame buffer shared between the capture and detection threads.
"""

import threading
import time
from dataclasses import dataclass


@dataclass(frozen=True)
class FrameSnapshot:
    """
    One published frame.

    Attributes:
        data: Raw pixels, row-major, 3 bytes per pixel, no row padding
        width: Frame width in pixels (0 until the first frame arrives)
        sequence: Publish counter, 1 for the first frame
        timestamp: time.time() at publish
    """
    data: bytes = b""
    width: int = 0
    sequence: int = 0
    timestamp: float = 0.0

    @property
    def height(self) -> int:
        """Rows contained in data; a trailing partial row is not counted."""
        if self.width <= 0:
            return 0
        return len(self.data) // (self.width * 3)

    def __repr__(self) -> str:
        return (
            f"FrameSnapshot(width={self.width}, height={self.height}, "
            f"sequence={self.sequence}, bytes={len(self.data)})"
        )


class FrameBuffer:
    """
    Holds only the most recent frame.

    publish() replaces the snapshot wholesale and snapshot() hands out the
    current one. The pixel data is stored as immutable bytes, so a reader can
    keep using a snapshot while the writer moves on. There is no backpressure:
    a slow reader skips frames, which it can see from the sequence numbers.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshot = FrameSnapshot()

    def publish(self, data, width: int) -> int:
        """
        Replace the stored frame.

        Args:
            data: Pixel bytes (bytes, bytearray, memoryview or anything
                  bytes() accepts)
            width: Frame width in pixels

        Returns:
            Sequence number assigned to this frame
        """
        payload = bytes(data)
        with self._lock:
            sequence = self._snapshot.sequence + 1
            self._snapshot = FrameSnapshot(
                data=payload,
                width=int(width),
                sequence=sequence,
                timestamp=time.time(),
            )
        return sequence

    def snapshot(self) -> FrameSnapshot:
        """Return the most recent frame (empty snapshot before the first publish)."""
        with self._lock:
            return self._snapshot
