"""
Baseline Calibration Module

Collects mouth-shape ratios for a fixed window at the start of a session and
reduces them to the baseline used for facial deviation scoring.
"""

from enum import Enum
from typing import List, Optional

import numpy as np

from .geometry import safe_number, clamp
from ..utils.config import AttentionConfig, config
from ..utils.logger import get_logger

logger = get_logger(__name__)


class CalibrationState(Enum):
    """Calibrator lifecycle."""
    IDLE = "idle"
    CALIBRATING = "calibrating"


class BaselineCalibrator:
    """Time-boxed collection of mouth-shape samples reduced to their mean."""

    def __init__(self, attention_config: Optional[AttentionConfig] = None):
        self.config = attention_config or config.attention
        self.state = CalibrationState.IDLE
        self.baseline = self.config.default_baseline
        self.samples: List[float] = []
        self.start_time_ms = 0.0
        self.completed = False

    @property
    def is_calibrating(self) -> bool:
        return self.state is CalibrationState.CALIBRATING

    def start(self, now_ms: float) -> None:
        """Begin a new calibration window; the baseline returns to its default."""
        self.state = CalibrationState.CALIBRATING
        self.baseline = self.config.default_baseline
        self.completed = False
        self.samples = []
        self.start_time_ms = now_ms
        logger.debug(f"Calibration started ({self.config.calibration_ms:.0f}ms window)")

    def cancel(self) -> None:
        """Drop any in-progress window; a completed baseline is kept."""
        self.state = CalibrationState.IDLE
        self.samples = []
        self.start_time_ms = 0.0

    def add_sample(self, ratio: float, now_ms: float) -> bool:
        """
        Record one mouth-shape ratio and finish the window once it has elapsed.

        Args:
            ratio: Mouth-shape ratio of the current frame
            now_ms: Current clock reading in milliseconds

        Returns:
            True if this call completed calibration
        """
        if not self.is_calibrating:
            return False

        self.samples.append(safe_number(ratio, self.baseline))

        elapsed = now_ms - self.start_time_ms
        if elapsed >= self.config.calibration_ms:
            self._finalize(elapsed)
            return True
        return False

    def _finalize(self, elapsed_ms: float) -> None:
        """Reduce the collected samples to their arithmetic mean."""
        if self.samples:
            mean = np.mean([safe_number(s) for s in self.samples])
            self.baseline = safe_number(mean, self.config.default_baseline)
        else:
            self.baseline = self.config.default_baseline

        self.state = CalibrationState.IDLE
        self.completed = True
        logger.log_calibration(self.baseline, len(self.samples), elapsed_ms)

    def progress(self, now_ms: float) -> float:
        """Fraction of the calibration window elapsed, in [0, 1]."""
        if not self.is_calibrating:
            return 1.0
        if self.config.calibration_ms <= 0:
            return 1.0
        return clamp((now_ms - self.start_time_ms) / self.config.calibration_ms, 0.0, 1.0)
