"""
Session Controller

Owns every piece of per-session state (baseline, nose reference, smoothed
signals, attention score, history, sampling accumulator) and drives the
STOPPED -> CALIBRATING -> TRACKING lifecycle. Frames arrive through
``on_frame`` and the scoring cadence through ``on_tick``; both run to
completion on the caller's thread.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence, Tuple

from .attention_scoring import AttentionScorer, SmoothedSignals, engagement_label
from .calibration import BaselineCalibrator
from .signal_extraction import SignalExtractor
from ..utils.config import AttentionConfig, config
from ..utils.logger import get_logger

logger = get_logger(__name__)

STATUS_IDLE = "Idle"
STATUS_CALIBRATING = "Calibrating baseline..."
STATUS_CALIBRATING_NO_FACE = "Calibrating baseline... waiting for face"
STATUS_TRACKING = "Tracking attention signals"
STATUS_FACE_LOST = "Face not detected - updates paused"
STATUS_STOPPED = "Stopped"
STATUS_UNAVAILABLE = "Camera access denied or unavailable"


class SessionState(Enum):
    """Main session lifecycle."""
    STOPPED = "stopped"
    CALIBRATING = "calibrating"
    TRACKING = "tracking"


@dataclass(frozen=True)
class AttentionSnapshot:
    """Read-only view of a session for presentation layers."""
    state: SessionState
    status: str
    face_detected: bool
    calibrating: bool
    calibration_progress: float
    baseline: float
    eye_activity: float
    head_stability: float
    facial_movement: float
    attention_score: float
    engagement: str
    history: Tuple[float, ...]


def _default_capture_factory():
    from .video_capture import CameraCapture

    capture = CameraCapture(config.camera)
    capture.open()
    return capture


def _default_detector_factory():
    from .face_mesh import FaceMeshDetector

    return FaceMeshDetector(config.detector)


class SessionController:
    """Orchestrates calibration, signal smoothing and attention scoring."""

    def __init__(
        self,
        attention_config: Optional[AttentionConfig] = None,
        capture_factory: Optional[Callable[[], Any]] = None,
        detector_factory: Optional[Callable[[], Any]] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the session controller.

        Args:
            attention_config: Immutable scoring constants for every session
            capture_factory: Returns an opened frame source with ``read_frame``
                and ``release``; may raise ResourceUnavailableError
            detector_factory: Returns a landmark detector with ``process`` and
                ``close``; may raise ResourceUnavailableError
            clock: Monotonic clock in seconds
        """
        self.config = attention_config or config.attention
        self._capture_factory = capture_factory or _default_capture_factory
        self._detector_factory = detector_factory or _default_detector_factory
        self._clock = clock

        self.extractor = SignalExtractor(self.config)
        self.calibrator = BaselineCalibrator(self.config)
        self.scorer = AttentionScorer(self.config)

        self.state = SessionState.STOPPED
        self.status = STATUS_IDLE
        self.face_detected = False
        self.last_nose: Optional[Any] = None
        self.last_error: Optional[Exception] = None

        self.capture = None
        self.detector = None

        self._tick_accumulator_ms = 0.0
        self._listeners: List[Callable[[AttentionSnapshot], None]] = []

    @property
    def is_running(self) -> bool:
        return self.state is not SessionState.STOPPED

    @property
    def calibrating(self) -> bool:
        return self.state is SessionState.CALIBRATING

    @property
    def baseline(self) -> float:
        return self.calibrator.baseline

    @property
    def signals(self) -> SmoothedSignals:
        return self.scorer.signals

    @property
    def attention_score(self) -> float:
        return self.scorer.attention_score

    @property
    def history(self) -> Tuple[float, ...]:
        return tuple(self.scorer.history)

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def start(self) -> bool:
        """
        Acquire the capture and detector and begin a calibrating session.

        A running session is stopped first. On failure everything acquired so
        far is released, the status reports the problem and the controller
        stays STOPPED.

        Returns:
            True if the session started
        """
        if self.is_running:
            self.stop()

        capture = None
        detector = None
        try:
            capture = self._capture_factory()
            detector = self._detector_factory()
        except Exception as e:
            self._release(capture, detector)
            self.last_error = e
            self.status = STATUS_UNAVAILABLE
            logger.log_error_with_context(e, "session_start")
            self._notify()
            return False

        self.capture = capture
        self.detector = detector
        self.last_error = None

        self.calibrator.start(self._now_ms())
        self.scorer.reset()
        self.last_nose = None
        self.face_detected = False
        self._tick_accumulator_ms = 0.0

        self.state = SessionState.CALIBRATING
        self.status = STATUS_CALIBRATING
        logger.log_session_event("started", f"calibrating for {self.config.calibration_ms:.0f}ms")
        self._notify()
        return True

    def stop(self) -> None:
        """Release resources and return to STOPPED; no effect when already stopped."""
        if not self.is_running and self.capture is None and self.detector is None:
            return

        capture, detector = self.capture, self.detector
        self.capture = None
        self.detector = None
        self._release(capture, detector)

        self.calibrator.cancel()
        self.last_nose = None
        self.face_detected = False
        self._tick_accumulator_ms = 0.0

        self.state = SessionState.STOPPED
        self.status = STATUS_STOPPED
        logger.log_session_event("stopped", f"{len(self.scorer.history)} samples in history")
        self._notify()

    def _release(self, capture: Any, detector: Any) -> None:
        if capture is not None:
            try:
                capture.release()
            except Exception as e:
                logger.log_error_with_context(e, "capture_release")
        if detector is not None:
            try:
                detector.close()
            except Exception as e:
                logger.log_error_with_context(e, "detector_close")

    def on_frame(self, landmarks: Optional[Sequence[Any]]) -> None:
        """
        Process one detector result.

        Args:
            landmarks: Ordered landmarks of the single detected face, or None
                when no face was found in the frame
        """
        if not self.is_running:
            return

        if landmarks is None or len(landmarks) == 0:
            self.face_detected = False
            self.status = STATUS_CALIBRATING_NO_FACE if self.calibrating else STATUS_FACE_LOST
            self._notify()
            return

        self.face_detected = True
        signals = self.extractor.extract(landmarks, self.last_nose, self.calibrator.baseline)
        self.last_nose = signals.nose

        if self.calibrating:
            if self.calibrator.add_sample(signals.mouth_ratio, self._now_ms()):
                self.state = SessionState.TRACKING
                self.status = STATUS_TRACKING
                logger.log_session_event("tracking", f"baseline {self.calibrator.baseline:.4f}")
            else:
                self.status = STATUS_CALIBRATING
            self._notify()
            return

        self.status = STATUS_TRACKING
        facial_raw = self.extractor.facial_score(signals.mouth_ratio, self.calibrator.baseline)
        self.scorer.update_signals(signals.eye_raw, signals.head_raw, facial_raw)
        self._notify()

    def process_capture_frame(self):
        """
        Read one frame from the capture, detect landmarks and process them.

        Returns:
            The BGR frame that was processed, or None if no frame was read
        """
        if not self.is_running or self.capture is None:
            return None

        ret, frame = self.capture.read_frame()
        if not ret or frame is None:
            return None

        landmarks = self.detector.process(frame)
        self.on_frame(landmarks)
        return frame

    def on_tick(self, elapsed_ms: Optional[float] = None) -> Optional[float]:
        """
        Advance the sampling cadence.

        The accumulator is a fixed-period sampler: it is only reset once it
        reaches the sample interval.

        Args:
            elapsed_ms: Time since the previous tick (defaults to one interval)

        Returns:
            The new attention score, or None if this tick did not sample
        """
        if not self.is_running:
            return None

        interval = self.config.sample_interval_ms
        self._tick_accumulator_ms += interval if elapsed_ms is None else elapsed_ms
        if self._tick_accumulator_ms < interval:
            return None
        self._tick_accumulator_ms = 0.0

        if self.calibrating or not self.face_detected:
            return None

        score = self.scorer.sample()
        self._notify()
        return score

    def snapshot(self) -> AttentionSnapshot:
        """Current session values for display."""
        signals = self.scorer.signals
        if self.calibrating:
            progress = self.calibrator.progress(self._now_ms())
        else:
            progress = 1.0 if self.calibrator.completed else 0.0

        return AttentionSnapshot(
            state=self.state,
            status=self.status,
            face_detected=self.face_detected,
            calibrating=self.calibrating,
            calibration_progress=progress,
            baseline=self.calibrator.baseline,
            eye_activity=signals.eye_activity,
            head_stability=signals.head_stability,
            facial_movement=signals.facial_movement,
            attention_score=self.scorer.attention_score,
            engagement=engagement_label(self.scorer.attention_score, self.config),
            history=tuple(self.scorer.history),
        )

    def add_listener(self, callback: Callable[[AttentionSnapshot], None]) -> None:
        """Call ``callback`` with a fresh snapshot after every state change."""
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[AttentionSnapshot], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for callback in list(self._listeners):
            try:
                callback(snapshot)
            except Exception as e:
                logger.log_error_with_context(e, "session_listener")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
