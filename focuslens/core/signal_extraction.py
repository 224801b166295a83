"""
Signal Extraction Module

Converts one frame of face mesh landmarks into the three raw behavioral
signals used by the attention index:

- eye openness (eye aspect ratio mapped onto 0..100)
- head stability (nose-tip displacement since the previous processed frame)
- mouth-shape ratio, scored as deviation from the calibrated baseline

Raw scores are not clamped here; clamping happens when they are smoothed.
"""

from dataclasses import dataclass
from typing import Any, Optional, Sequence

from .geometry import safe_number, distance_2d, landmark_at
from ..utils.config import AttentionConfig, config


def compute_ear(landmarks: Sequence[Any], outer: int, inner: int, upper: int, lower: int) -> float:
    """
    Eye aspect ratio for one eye: lid distance over corner distance.

    Returns 0 when the corner distance is not positive.
    """
    width = distance_2d(landmark_at(landmarks, outer), landmark_at(landmarks, inner))
    height = distance_2d(landmark_at(landmarks, upper), landmark_at(landmarks, lower))
    if width <= 0:
        return 0.0
    return safe_number(height / width)


@dataclass
class FrameSignals:
    """Raw per-frame values; discarded after the frame is processed."""
    ear: float
    eye_raw: float
    head_raw: float
    mouth_ratio: float
    nose: Optional[Any]


class SignalExtractor:
    """Computes raw eye, head and mouth signals from fixed landmark indices."""

    def __init__(self, attention_config: Optional[AttentionConfig] = None):
        self.config = attention_config or config.attention
        self.indices = self.config.landmarks

    def eye_aspect_ratio(self, landmarks: Sequence[Any]) -> float:
        """Average EAR of the left and right eye."""
        left_ear = compute_ear(landmarks, *self.indices.left_eye)
        right_ear = compute_ear(landmarks, *self.indices.right_eye)
        return safe_number((left_ear + right_ear) / 2.0)

    def eye_score(self, ear: float) -> float:
        """Affine map: closed-eye EAR -> 0, open-eye EAR -> 100."""
        return safe_number((ear - self.config.ear_closed) / self.config.ear_range * 100.0)

    def head_score(self, nose: Optional[Any], previous_nose: Optional[Any]) -> float:
        """100 for no movement, falling to 0 at the movement threshold and below beyond it."""
        if previous_nose is None or nose is None:
            return 100.0
        movement = distance_2d(nose, previous_nose)
        return safe_number(100.0 - (movement / self.config.head_movement_threshold) * 100.0, 100.0)

    def mouth_ratio(self, landmarks: Sequence[Any], baseline: float) -> float:
        """Mouth opening over mouth width; ``baseline`` when the width degenerates."""
        upper, lower, left, right = self.indices.mouth
        height = distance_2d(landmark_at(landmarks, upper), landmark_at(landmarks, lower))
        width = distance_2d(landmark_at(landmarks, left), landmark_at(landmarks, right))
        ratio = height / width if width > 0 else baseline
        return safe_number(ratio, baseline)

    def facial_score(self, ratio: float, baseline: float) -> float:
        """Relative deviation from baseline, saturating at 100."""
        baseline = safe_number(baseline, self.config.default_baseline)
        if baseline <= 0:
            deviation = 0.0
        else:
            deviation = abs(safe_number(ratio, baseline) - baseline) / baseline
        return min(deviation / self.config.facial_saturation * 100.0, 100.0)

    def extract(self, landmarks: Sequence[Any], previous_nose: Optional[Any],
                baseline: float) -> FrameSignals:
        """
        Extract all raw signals for one frame.

        Args:
            landmarks: Ordered face mesh landmarks for the single detected face
            previous_nose: Nose tip from the previous processed frame, if any
            baseline: Current mouth-shape baseline (used as the ratio fallback)

        Returns:
            FrameSignals with the raw eye and head scores, the mouth ratio and
            the current nose tip
        """
        ear = self.eye_aspect_ratio(landmarks)
        nose = landmark_at(landmarks, self.indices.nose_tip)

        return FrameSignals(
            ear=ear,
            eye_raw=self.eye_score(ear),
            head_raw=self.head_score(nose, previous_nose),
            mouth_ratio=self.mouth_ratio(landmarks, baseline),
            nose=nose,
        )
