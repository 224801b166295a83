"""
Unit tests for the session controller.
Tests the STOPPED -> CALIBRATING -> TRACKING lifecycle, face loss,
the sampling cadence and resource handling.
"""

import os
import sys
import unittest

TESTS_DIR = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, os.path.dirname(TESTS_DIR))
sys.path.insert(0, TESTS_DIR)

from focuslens.core.attention_scoring import SmoothedSignals
from focuslens.core.exceptions import ResourceUnavailableError
from focuslens.core.session import (
    SessionController, SessionState, STATUS_IDLE, STATUS_CALIBRATING,
    STATUS_CALIBRATING_NO_FACE, STATUS_TRACKING, STATUS_FACE_LOST,
    STATUS_STOPPED, STATUS_UNAVAILABLE
)
from focuslens.utils.config import AttentionConfig
from fixtures.synthetic_landmarks import make_face, FakeClock, FakeCapture, FakeDetector


class SessionTestCase(unittest.TestCase):
    """Shared fixtures: fake clock, capture and detector."""

    def setUp(self):
        self.clock = FakeClock()
        self.captures = []
        self.detectors = []
        self.controller = SessionController(
            attention_config=AttentionConfig(calibration_ms=3000),
            capture_factory=self._make_capture,
            detector_factory=self._make_detector,
            clock=self.clock,
        )

    def _make_capture(self):
        capture = FakeCapture()
        self.captures.append(capture)
        return capture

    def _make_detector(self):
        detector = FakeDetector()
        self.detectors.append(detector)
        return detector

    def calibrate(self, mouth_ratio=0.3, frame_ms=100):
        """Feed face frames until the calibration window closes."""
        while self.controller.calibrating:
            self.controller.on_frame(make_face(mouth_ratio=mouth_ratio))
            self.clock.advance(frame_ms)


class TestLifecycle(SessionTestCase):
    """Test start/stop transitions."""

    def test_initial_state(self):
        self.assertEqual(self.controller.state, SessionState.STOPPED)
        self.assertEqual(self.controller.status, STATUS_IDLE)
        self.assertFalse(self.controller.is_running)

    def test_start_enters_calibrating(self):
        self.assertTrue(self.controller.start())
        self.assertEqual(self.controller.state, SessionState.CALIBRATING)
        self.assertEqual(self.controller.status, STATUS_CALIBRATING)
        self.assertEqual(self.controller.baseline, 0.3)
        self.assertEqual(len(self.captures), 1)
        self.assertEqual(len(self.detectors), 1)

    def test_calibration_completes_into_tracking(self):
        self.controller.start()
        self.calibrate()
        self.assertEqual(self.controller.state, SessionState.TRACKING)
        self.assertEqual(self.controller.status, STATUS_TRACKING)
        self.assertAlmostEqual(self.controller.baseline, 0.3)

    def test_baseline_from_calibration_frames(self):
        self.controller.start()
        self.calibrate(mouth_ratio=0.5)
        self.assertAlmostEqual(self.controller.baseline, 0.5)

    def test_stop_releases_resources(self):
        self.controller.start()
        self.controller.stop()
        self.assertEqual(self.controller.state, SessionState.STOPPED)
        self.assertEqual(self.controller.status, STATUS_STOPPED)
        self.assertEqual(self.captures[0].released, 1)
        self.assertEqual(self.detectors[0].closed, 1)
        self.assertIsNone(self.controller.capture)
        self.assertIsNone(self.controller.detector)

    def test_stop_is_idempotent(self):
        self.controller.start()
        self.calibrate()
        self.controller.stop()
        first = self.controller.snapshot()
        self.controller.stop()
        self.assertEqual(self.controller.snapshot(), first)
        self.assertEqual(self.captures[0].released, 1)
        self.assertEqual(self.detectors[0].closed, 1)

    def test_progress_after_stop(self):
        self.controller.start()
        self.calibrate(mouth_ratio=0.5)
        self.controller.stop()
        snapshot = self.controller.snapshot()
        self.assertEqual(snapshot.calibration_progress, 1.0)
        self.assertAlmostEqual(snapshot.baseline, 0.5)

    def test_progress_after_stop_mid_calibration(self):
        self.controller.start()
        self.clock.advance(1500)
        self.controller.stop()
        self.assertEqual(self.controller.snapshot().calibration_progress, 0.0)

    def test_stop_when_never_started(self):
        self.controller.stop()
        self.assertEqual(self.controller.state, SessionState.STOPPED)
        self.assertEqual(self.controller.status, STATUS_IDLE)

    def test_stop_mid_calibration(self):
        self.controller.start()
        self.controller.on_frame(make_face(mouth_ratio=0.8))
        self.controller.stop()
        self.assertFalse(self.controller.calibrator.is_calibrating)
        self.assertEqual(self.controller.calibrator.samples, [])
        self.assertIsNone(self.controller.last_nose)

    def test_restart_resets_session_state(self):
        self.controller.start()
        self.calibrate(mouth_ratio=0.5)
        self.controller.on_frame(make_face(ear=0.34))
        self.controller.on_tick()
        self.assertGreater(self.controller.attention_score, 0.0)

        self.assertTrue(self.controller.start())
        self.assertEqual(self.captures[0].released, 1)
        self.assertEqual(self.controller.state, SessionState.CALIBRATING)
        self.assertEqual(self.controller.baseline, 0.3)
        self.assertEqual(self.controller.attention_score, 0.0)
        self.assertEqual(self.controller.history, ())
        self.assertEqual(self.controller.signals.eye_activity, 0.0)
        self.assertEqual(self.controller.signals.head_stability, 100.0)
        self.assertEqual(self.controller.signals.facial_movement, 0.0)
        self.assertIsNone(self.controller.last_nose)

    def test_context_manager_stops(self):
        with self.controller as controller:
            controller.start()
        self.assertEqual(self.controller.state, SessionState.STOPPED)
        self.assertEqual(self.captures[0].released, 1)


class TestStartFailure(unittest.TestCase):
    """Test resource acquisition failures."""

    def test_capture_unavailable(self):
        def no_camera():
            raise ResourceUnavailableError("Camera", "permission denied")

        detectors = []
        controller = SessionController(
            capture_factory=no_camera,
            detector_factory=lambda: detectors.append(FakeDetector()) or detectors[-1],
            clock=FakeClock(),
        )
        self.assertFalse(controller.start())
        self.assertEqual(controller.state, SessionState.STOPPED)
        self.assertEqual(controller.status, STATUS_UNAVAILABLE)
        self.assertIsInstance(controller.last_error, ResourceUnavailableError)
        self.assertIsNone(controller.capture)
        self.assertEqual(detectors, [])

    def test_detector_failure_releases_capture(self):
        capture = FakeCapture()

        def broken_detector():
            raise ResourceUnavailableError("MediaPipe Face Mesh", "init failed")

        controller = SessionController(
            capture_factory=lambda: capture,
            detector_factory=broken_detector,
            clock=FakeClock(),
        )
        self.assertFalse(controller.start())
        self.assertEqual(capture.released, 1)
        self.assertEqual(controller.state, SessionState.STOPPED)
        self.assertIsNone(controller.capture)
        self.assertIsNone(controller.detector)

    def test_failed_start_leaves_previous_values(self):
        def no_camera():
            raise RuntimeError("no device")

        controller = SessionController(capture_factory=no_camera,
                                       detector_factory=FakeDetector, clock=FakeClock())
        self.assertFalse(controller.start())
        self.assertEqual(controller.history, ())
        self.assertEqual(controller.attention_score, 0.0)
        self.assertFalse(controller.calibrator.is_calibrating)


class TestFrameProcessing(SessionTestCase):
    """Test per-frame behavior in each state."""

    def test_frames_ignored_when_stopped(self):
        self.controller.on_frame(make_face())
        self.assertIsNone(self.controller.last_nose)
        self.assertFalse(self.controller.face_detected)

    def test_calibration_does_not_update_signals(self):
        self.controller.start()
        self.controller.on_frame(make_face(ear=0.34, mouth_ratio=0.9))
        self.clock.advance(100)
        self.controller.on_frame(make_face(ear=0.34, nose=(0.7, 0.7)))
        self.assertEqual(self.controller.signals.eye_activity, 0.0)
        self.assertEqual(self.controller.signals.head_stability, 100.0)
        self.assertEqual(self.controller.signals.facial_movement, 0.0)
        self.assertEqual(len(self.controller.calibrator.samples), 2)

    def test_nose_tracked_during_calibration(self):
        self.controller.start()
        self.controller.on_frame(make_face(nose=(0.41, 0.52)))
        self.assertEqual((self.controller.last_nose.x, self.controller.last_nose.y), (0.41, 0.52))

    def test_tracking_updates_signals(self):
        self.controller.start()
        self.calibrate()
        self.controller.on_frame(make_face(ear=0.34))
        self.assertAlmostEqual(self.controller.signals.eye_activity, 20.0)
        self.assertAlmostEqual(self.controller.signals.head_stability, 100.0)
        self.assertAlmostEqual(self.controller.signals.facial_movement, 0.0)

    def test_head_movement_lowers_stability(self):
        self.controller.start()
        self.calibrate()
        self.controller.on_frame(make_face(nose=(0.5, 0.55)))
        self.controller.on_frame(make_face(nose=(0.53, 0.55)))
        self.assertAlmostEqual(self.controller.signals.head_stability, 80.0)

    def test_facial_deviation_uses_calibrated_baseline(self):
        self.controller.start()
        self.calibrate(mouth_ratio=0.2)
        self.controller.on_frame(make_face(mouth_ratio=0.28))
        # 40% deviation -> raw 50 -> smoothed 10
        self.assertAlmostEqual(self.controller.signals.facial_movement, 10.0)

    def test_face_lost_during_tracking(self):
        self.controller.start()
        self.calibrate()
        self.controller.on_frame(make_face(ear=0.34))
        signals = self.controller.signals
        self.controller.on_frame(None)
        self.assertFalse(self.controller.face_detected)
        self.assertEqual(self.controller.status, STATUS_FACE_LOST)
        self.assertEqual(self.controller.state, SessionState.TRACKING)
        self.assertEqual(self.controller.signals, signals)

        self.controller.on_frame(make_face(ear=0.34))
        self.assertTrue(self.controller.face_detected)
        self.assertEqual(self.controller.status, STATUS_TRACKING)

    def test_face_lost_during_calibration_waits(self):
        self.controller.start()
        self.controller.on_frame(None)
        self.clock.advance(5000)
        self.controller.on_frame([])
        self.assertEqual(self.controller.state, SessionState.CALIBRATING)
        self.assertEqual(self.controller.status, STATUS_CALIBRATING_NO_FACE)
        self.assertEqual(self.controller.calibrator.samples, [])

        self.controller.on_frame(make_face(mouth_ratio=0.4))
        self.assertEqual(self.controller.state, SessionState.TRACKING)
        self.assertAlmostEqual(self.controller.baseline, 0.4)

    def test_process_capture_frame(self):
        self.controller.start()
        self.detectors[0].results = [make_face(), None]
        frame = self.controller.process_capture_frame()
        self.assertIsNotNone(frame)
        self.assertTrue(self.controller.face_detected)
        self.controller.process_capture_frame()
        self.assertFalse(self.controller.face_detected)

    def test_process_capture_frame_when_stopped(self):
        self.assertIsNone(self.controller.process_capture_frame())


class TestScoringTicks(SessionTestCase):
    """Test the fixed-period sampling cadence."""

    def start_tracking(self):
        self.controller.start()
        self.calibrate()

    def test_no_sampling_during_calibration(self):
        self.controller.start()
        self.controller.on_frame(make_face())
        self.assertIsNone(self.controller.on_tick())
        self.assertEqual(self.controller.history, ())

    def test_tick_samples_when_tracking(self):
        self.start_tracking()
        self.controller.scorer.signals = SmoothedSignals(100.0, 100.0, 0.0)
        score = self.controller.on_tick()
        self.assertAlmostEqual(score, 20.0)
        self.assertEqual(self.controller.history, (score,))

    def test_face_absent_tick_leaves_score_unchanged(self):
        self.start_tracking()
        self.controller.on_frame(make_face())
        self.controller.on_tick()
        score = self.controller.attention_score
        history = self.controller.history

        self.controller.on_frame(None)
        for _ in range(5):
            self.assertIsNone(self.controller.on_tick())
        self.assertEqual(self.controller.attention_score, score)
        self.assertEqual(self.controller.history, history)

    def test_accumulator_waits_for_full_interval(self):
        self.start_tracking()
        self.controller.on_frame(make_face())
        self.assertIsNone(self.controller.on_tick(120))
        self.assertEqual(self.controller.history, ())
        self.assertIsNotNone(self.controller.on_tick(120))
        self.assertEqual(len(self.controller.history), 1)
        self.assertIsNone(self.controller.on_tick(100))

    def test_ticks_ignored_when_stopped(self):
        self.assertIsNone(self.controller.on_tick())

    def test_history_bounded_over_long_session(self):
        self.start_tracking()
        self.controller.on_frame(make_face())
        for _ in range(400):
            self.controller.on_tick()
        self.assertEqual(len(self.controller.history), 150)


class TestObservers(SessionTestCase):
    """Test snapshots and listeners."""

    def test_snapshot_fields(self):
        self.controller.start()
        self.clock.advance(1500)
        snapshot = self.controller.snapshot()
        self.assertEqual(snapshot.state, SessionState.CALIBRATING)
        self.assertTrue(snapshot.calibrating)
        self.assertAlmostEqual(snapshot.calibration_progress, 0.5)
        self.assertEqual(snapshot.engagement, "Low Engagement")
        self.assertEqual(snapshot.history, ())

    def test_listener_receives_updates(self):
        received = []
        self.controller.add_listener(received.append)
        self.controller.start()
        self.calibrate()
        self.controller.on_frame(make_face())
        self.controller.on_tick()
        self.assertEqual(received[0].state, SessionState.CALIBRATING)
        self.assertEqual(received[-1].state, SessionState.TRACKING)
        self.assertEqual(len(received[-1].history), 1)

        count = len(received)
        self.controller.remove_listener(received.append)
        self.controller.stop()
        self.assertEqual(len(received), count)

    def test_listener_error_does_not_stop_pipeline(self):
        def broken(snapshot):
            raise ValueError("display failed")

        self.controller.add_listener(broken)
        self.controller.start()
        self.calibrate()
        self.assertEqual(self.controller.state, SessionState.TRACKING)


if __name__ == '__main__':
    unittest.main()
