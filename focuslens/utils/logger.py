"""
Logging utilities for FocusLens.
"""

import logging
import sys
import time
import traceback
from datetime import datetime
from functools import wraps
from typing import Optional
from pathlib import Path

from .config import config


class FocusLensLogger:
    """Custom logger for the attention pipeline."""

    def __init__(self, name: str = "focuslens", log_file: Optional[str] = None):
        """Initialize the logger."""
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)

        # Prevent duplicate handlers; module loggers propagate to the package logger
        if self.logger.handlers or name.startswith("focuslens."):
            return

        detailed_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
        )
        simple_formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s'
        )

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.ERROR)
        console_handler.setFormatter(simple_formatter)
        self.logger.addHandler(console_handler)

        if config.logging.enable_file_logging:
            if log_file is None:
                logs_dir = Path(config.logging.log_dir)
                logs_dir.mkdir(parents=True, exist_ok=True)

                timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
                log_file = logs_dir / f"focuslens_{timestamp}.log"

            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(getattr(logging, config.logging.log_level.upper(), logging.DEBUG))
            file_handler.setFormatter(detailed_formatter)
            self.logger.addHandler(file_handler)

    def set_console_level(self, level: int) -> None:
        """Change the console handler threshold (e.g. for --verbose)."""
        for handler in self.logger.handlers:
            if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
                handler.setLevel(level)

    def debug(self, message: str) -> None:
        """Log debug message."""
        self.logger.debug(message)

    def info(self, message: str) -> None:
        """Log info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log error message."""
        self.logger.error(message)

    def critical(self, message: str) -> None:
        """Log critical message."""
        self.logger.critical(message)

    def log_performance(self, fps: float, latency_ms: float) -> None:
        """Log frame-loop performance."""
        self.info(f"Performance - FPS: {fps:.2f}, Latency: {latency_ms:.2f}ms")

    def log_signals(self, eye: float, head: float, facial: float) -> None:
        """Log smoothed signal values."""
        self.debug(f"Signals - Eye: {eye:.1f}, Head: {head:.1f}, Facial: {facial:.1f}")

    def log_attention_score(self, score: float, raw_score: float, history_len: int) -> None:
        """Log a scoring tick."""
        self.debug(f"Attention Score: {score:.2f} (raw {raw_score:.2f}, history {history_len})")

    def log_calibration(self, baseline: float, samples: int, duration_ms: float) -> None:
        """Log the end of a calibration window."""
        self.info(f"Calibration complete: baseline={baseline:.4f} from {samples} samples "
                  f"in {duration_ms:.0f}ms")

    def log_session_event(self, event: str, detail: str = "") -> None:
        """Log a session lifecycle event."""
        message = f"Session - {event}"
        if detail:
            message += f": {detail}"
        self.info(message)

    def log_error_with_context(self, error: Exception, context: str) -> None:
        """Log error with additional context."""
        self.error(f"Error in {context}: {error}")
        if error.__traceback__ is not None:
            formatted = ''.join(traceback.format_exception(type(error), error, error.__traceback__))
            self.debug(f"Traceback: {formatted}")


# Global logger instance
logger = FocusLensLogger()


def get_logger(name: str = "focuslens") -> FocusLensLogger:
    """Get a logger instance."""
    return FocusLensLogger(name)


def log_performance_metrics(func):
    """Decorator to log how long a call takes."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            logger.log_error_with_context(e, func.__name__)
            raise
        processing_time = (time.perf_counter() - start_time) * 1000
        logger.debug(f"{func.__name__} took {processing_time:.2f}ms")
        return result
    return wrapper
