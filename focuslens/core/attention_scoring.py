"""
Attention Scoring Module

Maintains the smoothed eye, head and facial signals, combines them into the
attention score on a fixed cadence and keeps a bounded rolling history.
"""

from collections import deque
from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np

from .geometry import clamp, smooth
from ..utils.config import AttentionConfig, config
from ..utils.logger import get_logger

logger = get_logger(__name__)


def engagement_label(score: float, attention_config: Optional[AttentionConfig] = None) -> str:
    """Map an attention score onto a coarse engagement label."""
    cfg = attention_config or config.attention
    if score > cfg.high_engagement:
        return "High Engagement"
    if score >= cfg.moderate_engagement:
        return "Moderate Engagement"
    return "Low Engagement"


@dataclass
class SmoothedSignals:
    """Live signal values, each in [0, 100]."""
    eye_activity: float = 0.0
    head_stability: float = 100.0
    facial_movement: float = 0.0


class AttentionScorer:
    """Signal smoother and weighted attention scorer."""

    def __init__(self, attention_config: Optional[AttentionConfig] = None):
        """
        Initialize attention scorer.

        Args:
            attention_config: Scoring constants (defaults to the global config)
        """
        self.config = attention_config or config.attention
        self.signals = SmoothedSignals()
        self.attention_score = 0.0
        self.history: deque = deque(maxlen=self.config.history_points)

    def reset(self) -> None:
        """Return all signals, the score and the history to their defaults."""
        self.signals = SmoothedSignals()
        self.attention_score = 0.0
        self.history.clear()

    def update_signals(self, eye_raw: float, head_raw: float, facial_raw: float) -> SmoothedSignals:
        """Blend one frame's raw scores into the smoothed signals."""
        alpha = self.config.signal_alpha
        self.signals = SmoothedSignals(
            eye_activity=clamp(smooth(self.signals.eye_activity, eye_raw, alpha)),
            head_stability=clamp(smooth(self.signals.head_stability, head_raw, alpha)),
            facial_movement=clamp(smooth(self.signals.facial_movement, facial_raw, alpha)),
        )
        logger.log_signals(self.signals.eye_activity, self.signals.head_stability,
                           self.signals.facial_movement)
        return self.signals

    def weighted_score(self) -> float:
        """Weighted combination of the current smoothed signals, clamped to [0, 100]."""
        return clamp(
            self.signals.eye_activity * self.config.eye_weight +
            self.signals.head_stability * self.config.head_weight +
            self.signals.facial_movement * self.config.facial_weight
        )

    def sample(self) -> float:
        """
        Take one scoring sample.

        Computes the weighted score, smooths it into the attention score and
        then appends the new score to the history, in that order.
        """
        raw_score = self.weighted_score()
        self.attention_score = clamp(smooth(self.attention_score, raw_score, self.config.score_alpha))
        self.history.append(self.attention_score)
        logger.log_attention_score(self.attention_score, raw_score, len(self.history))
        return self.attention_score

    @property
    def label(self) -> str:
        return engagement_label(self.attention_score, self.config)

    def get_attention_trend(self, window_size: int = 25) -> str:
        """Get attention trend over the most recent history samples."""
        if len(self.history) < window_size:
            return "Insufficient Data"

        recent_scores = list(self.history)[-window_size:]
        trend = np.polyfit(range(len(recent_scores)), recent_scores, 1)[0]

        # Slope is in score points per sample
        if trend > 0.1:
            return "Improving"
        elif trend < -0.1:
            return "Declining"
        else:
            return "Stable"

    def get_session_summary(self) -> Dict[str, Any]:
        """Summary of the scores currently held in the history."""
        distribution = {"High Engagement": 0, "Moderate Engagement": 0, "Low Engagement": 0}
        for score in self.history:
            distribution[engagement_label(score, self.config)] += 1

        return {
            'samples': len(self.history),
            'attention_score': self.attention_score,
            'avg_attention_score': float(np.mean(self.history)) if self.history else 0.0,
            'engagement_distribution': distribution,
            'trend': self.get_attention_trend(),
        }
