"""
Video capture module: the live frame source for an attention session.
"""

import platform
import time
from typing import Any, Dict, Optional, Tuple

import cv2
import numpy as np

from .exceptions import ResourceUnavailableError
from ..utils.config import CameraConfig, config
from ..utils.logger import get_logger

logger = get_logger(__name__)


class CameraCapture:
    """OpenCV webcam capture at a fixed target resolution."""

    def __init__(self, camera_config: Optional[CameraConfig] = None, backend: Optional[int] = None):
        """
        Initialize the capture (the device is opened by ``open``).

        Args:
            camera_config: Camera settings (defaults to the global config)
            backend: Explicit OpenCV capture API; DirectShow is preferred on Windows
        """
        self.config = camera_config or config.camera
        if backend is None and platform.system() == 'Windows':
            backend = cv2.CAP_DSHOW
        self.backend = backend
        self.cap = None

        # Performance tracking
        self.fps_counter = 0
        self.last_fps_time = time.time()
        self.current_fps = 0.0

    @property
    def is_opened(self) -> bool:
        return self.cap is not None and self.cap.isOpened()

    def open(self) -> None:
        """
        Open the camera and apply the configured resolution.

        Raises:
            ResourceUnavailableError: if the device cannot be opened
        """
        if self.is_opened:
            return

        if self.backend is None:
            cap = cv2.VideoCapture(self.config.device_id)
        else:
            cap = cv2.VideoCapture(self.config.device_id, self.backend)

        if not cap.isOpened():
            cap.release()
            raise ResourceUnavailableError(
                "Camera", f"could not open camera device {self.config.device_id}"
            )

        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
        cap.set(cv2.CAP_PROP_FPS, self.config.fps)
        cap.set(cv2.CAP_PROP_BUFFERSIZE, self.config.buffer_size)
        self.cap = cap

        actual_width = cap.get(cv2.CAP_PROP_FRAME_WIDTH)
        actual_height = cap.get(cv2.CAP_PROP_FRAME_HEIGHT)
        logger.info(f"Camera initialized: {actual_width:.0f}x{actual_height:.0f} "
                    f"(requested {self.config.width}x{self.config.height} @ {self.config.fps}fps)")

    def read_frame(self) -> Tuple[bool, Optional[np.ndarray]]:
        """Read a frame from the camera."""
        if not self.is_opened:
            return False, None

        ret, frame = self.cap.read()
        if not ret:
            logger.warning("Failed to read frame from camera")
            return False, None

        self._update_fps()
        return True, frame

    def _update_fps(self) -> None:
        """Update FPS calculation."""
        self.fps_counter += 1
        current_time = time.time()

        if current_time - self.last_fps_time >= 1.0:
            self.current_fps = self.fps_counter / (current_time - self.last_fps_time)
            self.fps_counter = 0
            self.last_fps_time = current_time

    def get_camera_info(self) -> Dict[str, Any]:
        """Get camera information."""
        if not self.is_opened:
            return {}

        return {
            'device_id': self.config.device_id,
            'width': int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            'height': int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            'fps': self.cap.get(cv2.CAP_PROP_FPS),
            'measured_fps': self.current_fps,
            'backend': self.cap.getBackendName()
        }

    def release(self) -> None:
        """Release camera resources. Safe to call more than once."""
        if self.cap is not None:
            self.cap.release()
            self.cap = None
            logger.info("Camera resources released")

    def __enter__(self):
        """Context manager entry."""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.release()
