"""
HSV threshold bounds shared between the settings panel and the detection thread.
"""

import threading
from dataclasses import dataclass, fields, replace

import numpy as np

from . import config


@dataclass(frozen=True)
class ThresholdRange:
    """
    Inclusive lower/upper bound per HSV channel.

    No ordering is enforced between a lower and an upper bound; an inverted
    pair simply matches nothing.
    """
    lower_h: float = config.DEFAULT_THRESHOLDS["lower_h"]
    lower_s: float = config.DEFAULT_THRESHOLDS["lower_s"]
    lower_v: float = config.DEFAULT_THRESHOLDS["lower_v"]
    upper_h: float = config.DEFAULT_THRESHOLDS["upper_h"]
    upper_s: float = config.DEFAULT_THRESHOLDS["upper_s"]
    upper_v: float = config.DEFAULT_THRESHOLDS["upper_v"]

    @property
    def lower(self) -> np.ndarray:
        return np.array([self.lower_h, self.lower_s, self.lower_v], dtype=np.float64)

    @property
    def upper(self) -> np.ndarray:
        return np.array([self.upper_h, self.upper_s, self.upper_v], dtype=np.float64)


FIELD_NAMES = tuple(f.name for f in fields(ThresholdRange))


def clamp_threshold(name: str, value: float) -> float:
    """
    Clamp a value to the valid range of a threshold field.

    Args:
        name: Field name, e.g. "lower_h"
        value: Requested value

    Returns:
        Value limited to config.THRESHOLD_LIMITS[name]
    """
    low, high = config.THRESHOLD_LIMITS[name]
    return float(min(max(value, low), high))


class DetectionConfig:
    """
    Current threshold bounds, last write wins.

    Writers replace the whole ThresholdRange under a lock and readers take a
    snapshot, so the detection thread always works from one consistent value
    and sees a write on its next cycle.
    """

    def __init__(self, initial: ThresholdRange | None = None) -> None:
        self._lock = threading.Lock()
        self._value = initial if initial is not None else ThresholdRange()

    def snapshot(self) -> ThresholdRange:
        with self._lock:
            return self._value

    def get(self, name: str) -> float:
        if name not in FIELD_NAMES:
            raise KeyError(f"Unknown threshold field: {name}")
        return getattr(self.snapshot(), name)

    def set(self, name: str, value: float) -> None:
        """Write one field. Range clamping is the caller's job."""
        self.update(**{name: value})

    def update(self, **values: float) -> None:
        """Write several fields in one step."""
        unknown = set(values) - set(FIELD_NAMES)
        if unknown:
            raise KeyError(f"Unknown threshold field(s): {', '.join(sorted(unknown))}")
        with self._lock:
            self._value = replace(
                self._value, **{k: float(v) for k, v in values.items()}
            )

    def reset(self) -> None:
        """Restore config.DEFAULT_THRESHOLDS."""
        with self._lock:
            self._value = ThresholdRange()
