#!/usr/bin/env python3
"""
Main entry point for FocusLens.
Runs a live attention session on the webcam and renders the attention index.
"""

import os
import warnings
import logging

# Silence TensorFlow Lite / MediaPipe start-up chatter
os.environ['TF_CPP_MIN_LOG_LEVEL'] = '3'
warnings.filterwarnings('ignore')

import argparse
import sys
import time
from dataclasses import replace
from typing import Optional

import cv2
import numpy as np

from focuslens.core.face_mesh import FaceMeshDetector
from focuslens.core.session import AttentionSnapshot, SessionController
from focuslens.core.video_capture import CameraCapture
from focuslens.utils.config import config
from focuslens.utils.logger import logger

GAUGE_COLOR = (238, 211, 34)
PANEL_COLOR = (30, 20, 15)
BORDER_COLOR = (85, 65, 51)
TEXT_COLOR = (240, 232, 226)
MUTED_COLOR = (184, 163, 148)
WARNING_COLOR = (36, 191, 251)


def parse_arguments(argv: Optional[list] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="FocusLens - Behavioral Attention Index")

    parser.add_argument("--camera", "-c", type=int, default=None,
                        help="Camera device index (default: from config, 0)")
    parser.add_argument("--width", "-w", type=int, default=None,
                        help="Frame width (default: from config, 640)")
    parser.add_argument("--height", type=int, default=None,
                        help="Frame height (default: from config, 480)")
    parser.add_argument("--calibration-ms", type=float, default=None,
                        help="Baseline calibration window in milliseconds (default: 3000)")
    parser.add_argument("--config", type=str, default="",
                        help="JSON configuration file (optional)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Enable verbose output")
    parser.add_argument("--no-display", action="store_true",
                        help="Disable video display (headless mode)")

    return parser.parse_args(argv)


def build_controller(args) -> SessionController:
    """Create a session controller wired to the webcam and the face mesh."""
    if args.config:
        config.load_from_file(args.config)

    # Command line values override the config file only when given
    overrides = {
        name: value
        for name, value in (('device_id', args.camera), ('width', args.width), ('height', args.height))
        if value is not None
    }
    camera_config = replace(config.camera, **overrides)
    attention_config = config.attention
    if args.calibration_ms is not None:
        attention_config = replace(attention_config, calibration_ms=args.calibration_ms)

    def open_camera():
        capture = CameraCapture(camera_config)
        capture.open()
        return capture

    return SessionController(
        attention_config=attention_config,
        capture_factory=open_camera,
        detector_factory=lambda: FaceMeshDetector(config.detector),
    )


def draw_panel(frame: np.ndarray, x: int, y: int, w: int, h: int, title: str) -> None:
    """Draw a semi-transparent card with a title."""
    overlay = frame.copy()
    cv2.rectangle(overlay, (x, y), (x + w, y + h), PANEL_COLOR, -1)
    cv2.addWeighted(overlay, 0.75, frame, 0.25, 0, frame)
    cv2.rectangle(frame, (x, y), (x + w, y + h), BORDER_COLOR, 1)
    cv2.putText(frame, title, (x + 10, y + 20), cv2.FONT_HERSHEY_SIMPLEX, 0.5, MUTED_COLOR, 1)


def draw_gauge(frame: np.ndarray, center: tuple, radius: int, value: float) -> None:
    """Circular gauge filled clockwise from the top."""
    cv2.circle(frame, center, radius, BORDER_COLOR, 8)
    sweep = 360.0 * max(0.0, min(100.0, value)) / 100.0
    if sweep > 0:
        cv2.ellipse(frame, center, (radius, radius), -90, 0, sweep, GAUGE_COLOR, 8)

    text = f"{round(value)}"
    (tw, th), _ = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, 1.0, 2)
    cv2.putText(frame, text, (center[0] - tw // 2, center[1] + th // 2),
                cv2.FONT_HERSHEY_SIMPLEX, 1.0, GAUGE_COLOR, 2)


def draw_trend(frame: np.ndarray, x: int, y: int, w: int, h: int, history: tuple) -> None:
    """Polyline of the score history scaled into the given box."""
    if len(history) < 2:
        return
    span = max(len(history) - 1, 1)
    points = np.array([
        (x + int(i / span * w), y + int((100.0 - max(0.0, min(100.0, score))) / 100.0 * h))
        for i, score in enumerate(history)
    ], dtype=np.int32)
    cv2.polylines(frame, [points], False, GAUGE_COLOR, 1, cv2.LINE_AA)


def draw_overlay(frame: np.ndarray, snapshot: AttentionSnapshot, fps: float) -> np.ndarray:
    """Render the attention gauge, signal cards, trend and status onto a frame."""
    output_frame = cv2.flip(frame, 1)
    h, w = output_frame.shape[:2]

    # === TOP-LEFT: Attention gauge ===
    draw_panel(output_frame, 10, 10, 170, 185, "ATTENTION")
    draw_gauge(output_frame, (95, 105), 55, snapshot.attention_score)
    cv2.putText(output_frame, snapshot.engagement, (18, 185),
                cv2.FONT_HERSHEY_SIMPLEX, 0.42, TEXT_COLOR, 1)

    # === TOP-RIGHT: Signal cards ===
    draw_panel(output_frame, w - 200, 10, 190, 110, "SIGNALS")
    signals = (
        ("Eye Activity", snapshot.eye_activity),
        ("Head Stability", snapshot.head_stability),
        ("Facial Movement", snapshot.facial_movement),
    )
    for i, (name, value) in enumerate(signals):
        y_pos = 45 + i * 25
        cv2.putText(output_frame, name, (w - 190, y_pos), cv2.FONT_HERSHEY_SIMPLEX, 0.5, TEXT_COLOR, 1)
        cv2.putText(output_frame, f"{round(value):3d}", (w - 55, y_pos),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.55, GAUGE_COLOR, 2)

    # === BOTTOM: Trend ===
    trend_h = 90
    draw_panel(output_frame, 10, h - trend_h - 40, w - 20, trend_h, "TREND (~30s)")
    draw_trend(output_frame, 20, h - trend_h - 12, w - 40, trend_h - 35, snapshot.history)

    # === Status line ===
    status = snapshot.status
    if snapshot.calibrating:
        status += f" {snapshot.calibration_progress * 100:.0f}%"
    status_color = TEXT_COLOR if snapshot.face_detected else WARNING_COLOR
    cv2.putText(output_frame, f"Status: {status}", (10, h - 15),
                cv2.FONT_HERSHEY_SIMPLEX, 0.5, status_color, 1)
    cv2.putText(output_frame, f"FPS: {fps:.1f}", (w - 100, h - 15),
                cv2.FONT_HERSHEY_SIMPLEX, 0.5, MUTED_COLOR, 1)

    return output_frame


def print_tick(snapshot: AttentionSnapshot, verbose: bool = False) -> None:
    """Print one scoring sample."""
    if verbose:
        print(f"Attention: {snapshot.attention_score:6.2f} ({snapshot.engagement}) | "
              f"Eye: {snapshot.eye_activity:5.1f} | Head: {snapshot.head_stability:5.1f} | "
              f"Facial: {snapshot.facial_movement:5.1f}")
    else:
        print(f"Attention: {snapshot.attention_score:6.2f} ({snapshot.engagement})")


def print_summary(controller: SessionController) -> None:
    """Print the end-of-session summary."""
    summary = controller.scorer.get_session_summary()
    print("\n" + "=" * 60)
    print("SESSION SUMMARY")
    print("=" * 60)
    print(f"Baseline: {controller.baseline:.4f}")
    print(f"Samples in history: {summary['samples']}")
    print(f"Final Attention Score: {summary['attention_score']:.2f}")
    print(f"Average Attention Score: {summary['avg_attention_score']:.2f}")
    print(f"Trend: {summary['trend']}")
    print("Engagement Distribution:")
    total = summary['samples']
    for label, count in summary['engagement_distribution'].items():
        percentage = (count / total * 100) if total > 0 else 0
        print(f"  {label}: {count} samples ({percentage:.1f}%)")
    print("=" * 60)


def capture_fps(controller: SessionController) -> float:
    """Frame rate measured by the capture, 0 when it does not report one."""
    return getattr(controller.capture, 'current_fps', 0.0)


def log_session_performance(frame_count: int, elapsed_s: float, processing_ms: float) -> tuple:
    """Log the average frame rate and per-frame processing latency of a session."""
    fps = frame_count / elapsed_s if elapsed_s > 0 else 0.0
    latency_ms = processing_ms / frame_count if frame_count > 0 else 0.0
    logger.log_performance(fps, latency_ms)
    return fps, latency_ms


def main(argv: Optional[list] = None):
    """Main function."""
    args = parse_arguments(argv)

    if args.verbose:
        logger.set_console_level(logging.INFO)

    print("=" * 60)
    print("FocusLens - Behavioral Attention Index")
    print("=" * 60)

    controller = build_controller(args)
    if not controller.start():
        print(f"✗ {controller.status}: {controller.last_error}")
        sys.exit(1)

    camera_info = controller.capture.get_camera_info() if hasattr(controller.capture, 'get_camera_info') else {}
    if camera_info:
        print(f"Camera: {camera_info['device_id']} ({camera_info['backend']})")
        print(f"Resolution: {camera_info['width']}x{camera_info['height']}")
    print("Controls:")
    print("  - Press 'q' or ESC to quit")
    print("=" * 60)

    interval_ms = controller.config.sample_interval_ms
    frame_count = 0
    processing_ms = 0.0
    start_time = time.monotonic()
    last_tick = start_time

    try:
        while controller.is_running:
            frame_start = time.perf_counter()
            frame = controller.process_capture_frame()
            if frame is None:
                print("Error: Could not read frame")
                break

            frame_count += 1
            processing_ms += (time.perf_counter() - frame_start) * 1000.0
            now = time.monotonic()
            elapsed_ms = (now - last_tick) * 1000.0
            if elapsed_ms >= interval_ms:
                last_tick = now
                score = controller.on_tick(elapsed_ms)
                if score is not None and (args.no_display or args.verbose):
                    print_tick(controller.snapshot(), args.verbose)

            if not args.no_display:
                cv2.imshow("FocusLens", draw_overlay(frame, controller.snapshot(), capture_fps(controller)))

                key = cv2.waitKey(1) & 0xFF
                if key in (ord('q'), 27):
                    break

    except KeyboardInterrupt:
        print("\nSession interrupted by user")
    finally:
        controller.stop()
        if not args.no_display:
            cv2.destroyAllWindows()
        fps, latency_ms = log_session_performance(frame_count, time.monotonic() - start_time, processing_ms)
        print_summary(controller)
        print(f"Average FPS: {fps:.1f}, processing latency: {latency_ms:.1f}ms")
        print("Session ended")


if __name__ == "__main__":
    main()
