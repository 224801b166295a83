"""
Geometry Utilities

Pure numeric helpers shared by the attention pipeline. Every helper is total:
non-finite or missing inputs fall back to a defined value instead of raising.
"""

import numpy as np
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple

_NUMERIC_TYPES = (int, float, np.integer, np.floating)


@dataclass(frozen=True)
class LandmarkPoint:
    """Normalized face landmark (x, y in 0..1 of the frame; z unused)."""
    x: float
    y: float
    z: Optional[float] = None

    @classmethod
    def from_landmark(cls, landmark: Any) -> "LandmarkPoint":
        """Build from a MediaPipe landmark or an (x, y[, z]) sequence."""
        if hasattr(landmark, 'x'):
            return cls(float(landmark.x), float(landmark.y), getattr(landmark, 'z', None))
        z = landmark[2] if len(landmark) > 2 else None
        return cls(float(landmark[0]), float(landmark[1]), z)


def safe_number(value: Any, fallback: float = 0.0) -> float:
    """Return ``value`` if it is a finite number, else ``fallback``."""
    if isinstance(value, bool) or not isinstance(value, _NUMERIC_TYPES):
        return fallback
    if not np.isfinite(value):
        return fallback
    return float(value)


def clamp(value: Any, lo: float = 0.0, hi: float = 100.0) -> float:
    """Restrict ``value`` to [lo, hi]; non-finite input becomes ``lo``."""
    return min(hi, max(lo, safe_number(value, lo)))


def smooth(previous: Any, new: Any, alpha: float = 0.2) -> float:
    """Exponential moving average step: ``previous*(1-alpha) + new*alpha``."""
    return safe_number(previous) * (1 - alpha) + safe_number(new) * alpha


def _xy(point: Any) -> Optional[Tuple[float, float]]:
    if point is None:
        return None
    if hasattr(point, 'x') and hasattr(point, 'y'):
        return safe_number(point.x), safe_number(point.y)
    try:
        return safe_number(point[0]), safe_number(point[1])
    except (TypeError, IndexError):
        return None


def distance_2d(a: Any, b: Any) -> float:
    """Euclidean distance between two points; 0 when either is absent."""
    pa = _xy(a)
    pb = _xy(b)
    if pa is None or pb is None:
        return 0.0
    return float(np.hypot(pa[0] - pb[0], pa[1] - pb[1]))


def landmark_at(landmarks: Optional[Sequence[Any]], index: int) -> Optional[Any]:
    """Return ``landmarks[index]`` or ``None`` when the index is missing."""
    if landmarks is None or index < 0 or index >= len(landmarks):
        return None
    return landmarks[index]
