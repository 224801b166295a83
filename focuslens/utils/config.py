"""
Configuration management for the FocusLens attention index.
"""

import os
import json
import logging
from dataclasses import dataclass, field, fields, replace, asdict
from typing import Dict, Any, Optional, Tuple

_log = logging.getLogger(__name__)


@dataclass
class CameraConfig:
    """Camera configuration settings."""
    device_id: int = 0
    width: int = 640
    height: int = 480
    fps: int = 30
    buffer_size: int = 1


@dataclass
class DetectorConfig:
    """Face mesh detector settings."""
    max_num_faces: int = 1
    refine_landmarks: bool = True
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5


@dataclass
class LoggingConfig:
    """Logging settings."""
    enable_file_logging: bool = True
    log_level: str = "INFO"
    log_dir: str = "logs"


@dataclass(frozen=True)
class LandmarkIndices:
    """Face mesh indices used by the signal extractor."""
    # (outer corner, inner corner, upper lid, lower lid)
    left_eye: Tuple[int, int, int, int] = (33, 133, 159, 145)
    right_eye: Tuple[int, int, int, int] = (362, 263, 386, 374)
    nose_tip: int = 1
    # (upper lip, lower lip, left corner, right corner)
    mouth: Tuple[int, int, int, int] = (13, 14, 78, 308)


@dataclass(frozen=True)
class AttentionConfig:
    """Immutable scoring constants for one attention session."""
    calibration_ms: float = 3000.0
    history_points: int = 150
    sample_interval_ms: float = 200.0
    default_baseline: float = 0.3

    signal_alpha: float = 0.2
    score_alpha: float = 0.25

    eye_weight: float = 0.4
    head_weight: float = 0.4
    facial_weight: float = 0.2

    ear_closed: float = 0.14
    ear_range: float = 0.20
    head_movement_threshold: float = 0.03
    facial_saturation: float = 0.8

    high_engagement: float = 70.0
    moderate_engagement: float = 40.0

    landmarks: LandmarkIndices = field(default_factory=LandmarkIndices)


class Config:
    """Main configuration class for FocusLens."""

    SECTIONS = ('camera', 'detector', 'logging', 'attention')

    def __init__(self, config_file: Optional[str] = None):
        """Initialize configuration with optional config file."""
        self.camera = CameraConfig()
        self.detector = DetectorConfig()
        self.logging = LoggingConfig()
        self.attention = AttentionConfig()

        if config_file and os.path.exists(config_file):
            self.load_from_file(config_file)

    def load_from_file(self, config_file: str) -> None:
        """Load configuration from JSON file."""
        try:
            with open(config_file, 'r') as f:
                config_data = json.load(f)
        except (OSError, ValueError) as e:
            _log.warning(f"Could not load config file {config_file}: {e}")
            return

        for section_name, section_data in config_data.items():
            if section_name not in self.SECTIONS or not isinstance(section_data, dict):
                continue
            section = getattr(self, section_name)
            setattr(self, section_name, _updated_section(section, section_data))

    def save_to_file(self, config_file: str) -> None:
        """Save current configuration to JSON file."""
        config_data = {name: asdict(getattr(self, name)) for name in self.SECTIONS}

        try:
            with open(config_file, 'w') as f:
                json.dump(config_data, f, indent=2)
        except OSError as e:
            _log.warning(f"Could not save config file {config_file}: {e}")

    def validate_config(self) -> bool:
        """Validate configuration settings."""
        errors = []

        if self.camera.width <= 0 or self.camera.height <= 0:
            errors.append("Camera dimensions must be positive")

        if self.camera.fps <= 0:
            errors.append("Camera FPS must be positive")

        for name in ('min_detection_confidence', 'min_tracking_confidence'):
            value = getattr(self.detector, name)
            if value < 0 or value > 1:
                errors.append(f"Detector {name} must be between 0 and 1")

        if self.detector.max_num_faces != 1:
            errors.append("Exactly one face is supported")

        attention = self.attention
        for name in ('signal_alpha', 'score_alpha'):
            value = getattr(attention, name)
            if value < 0 or value > 1:
                errors.append(f"Smoothing factor {name} must be between 0 and 1")

        if attention.calibration_ms < 0:
            errors.append("Calibration duration must not be negative")

        if attention.sample_interval_ms <= 0:
            errors.append("Sample interval must be positive")

        if attention.history_points <= 0:
            errors.append("History capacity must be positive")

        if attention.default_baseline <= 0:
            errors.append("Default baseline must be positive")

        if attention.ear_range <= 0 or attention.head_movement_threshold <= 0:
            errors.append("Signal normalisation ranges must be positive")

        total_weight = attention.eye_weight + attention.head_weight + attention.facial_weight
        if abs(total_weight - 1.0) > 0.01:
            errors.append("Attention weights must sum to 1.0")

        if errors:
            _log.error("Configuration validation errors:")
            for error in errors:
                _log.error(f"  - {error}")
            return False

        return True


def _updated_section(section, values: Dict[str, Any]):
    """Return ``section`` with known keys from ``values`` applied."""
    known = {f.name: f.type for f in fields(section)}
    changes = {}
    for key, value in values.items():
        if key not in known:
            continue
        if key == 'landmarks' and isinstance(value, dict):
            changes[key] = _updated_section(section.landmarks, value)
            continue
        try:
            changes[key] = _coerce(known[key], value)
        except (TypeError, ValueError, OverflowError) as e:
            _log.warning(f"Ignoring config value {type(section).__name__}.{key}={value!r}: {e}")
    return replace(section, **changes)


def _coerce(field_type, value):
    """Convert a JSON value to a field's declared type."""
    if field_type is bool:
        if not isinstance(value, bool):
            raise TypeError("expected true or false")
        return value
    if field_type is str:
        if not isinstance(value, str):
            raise TypeError("expected a string")
        return value
    if field_type in (int, float):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError("expected a number")
        if field_type is int and value != int(value):
            raise ValueError("expected a whole number")
        return field_type(value)
    if isinstance(value, list):
        return tuple(_coerce(int, item) for item in value)
    return value


# Global configuration instance
config = Config()

# Default configuration file path
DEFAULT_CONFIG_FILE = "data/configs/focuslens.json"

if os.path.exists(DEFAULT_CONFIG_FILE):
    config.load_from_file(DEFAULT_CONFIG_FILE)
