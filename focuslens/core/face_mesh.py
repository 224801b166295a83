"""
Face Mesh Landmark Detector

Wraps MediaPipe Face Mesh as the per-frame landmark source. Each processed
frame yields either None (no face) or the ordered landmark list of exactly
one face.
"""

import cv2
import numpy as np
from typing import Any, List, Optional

from .exceptions import ResourceUnavailableError
from .geometry import LandmarkPoint
from ..utils.config import DetectorConfig, config
from ..utils.logger import get_logger, log_performance_metrics

logger = get_logger(__name__)


def _load_face_mesh_solution():
    try:
        import mediapipe as mp
        return mp.solutions.face_mesh
    except (ImportError, AttributeError) as e:
        raise ResourceUnavailableError("MediaPipe Face Mesh", str(e)) from e


class FaceMeshDetector:
    """Single-face MediaPipe Face Mesh with refined landmarks."""

    def __init__(self, detector_config: Optional[DetectorConfig] = None, solution: Any = None):
        """
        Initialize the face mesh.

        Args:
            detector_config: Detection settings (defaults to the global config)
            solution: The ``mediapipe.solutions.face_mesh`` module; loaded on
                demand when omitted

        Raises:
            ResourceUnavailableError: if MediaPipe cannot be loaded or initialised
        """
        self.config = detector_config or config.detector
        self.solution = solution if solution is not None else _load_face_mesh_solution()

        try:
            self.face_mesh = self.solution.FaceMesh(
                static_image_mode=False,
                max_num_faces=self.config.max_num_faces,
                refine_landmarks=self.config.refine_landmarks,
                min_detection_confidence=self.config.min_detection_confidence,
                min_tracking_confidence=self.config.min_tracking_confidence
            )
        except Exception as e:
            raise ResourceUnavailableError("MediaPipe Face Mesh", str(e)) from e

        logger.info(f"Face mesh initialized (max faces: {self.config.max_num_faces}, "
                    f"refined: {self.config.refine_landmarks})")

    @log_performance_metrics
    def process(self, frame: np.ndarray) -> Optional[List[LandmarkPoint]]:
        """
        Detect landmarks in a BGR frame.

        Args:
            frame: Input frame (BGR format)

        Returns:
            Landmarks of the first detected face, or None if no face was found
        """
        if self.face_mesh is None or frame is None or frame.size == 0:
            return None

        rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        results = self.face_mesh.process(rgb_frame)

        faces = getattr(results, 'multi_face_landmarks', None)
        if not faces:
            return None

        return [LandmarkPoint.from_landmark(lm) for lm in faces[0].landmark]

    def close(self) -> None:
        """Release the MediaPipe graph. Safe to call more than once."""
        if self.face_mesh is not None:
            self.face_mesh.close()
            self.face_mesh = None
            logger.info("Face mesh closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
