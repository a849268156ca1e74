"""
Structured error handling and failure tracking for LiveLens.
"""
import threading
import time
from typing import Dict, List, Optional
from utils.logger import Logger


class LiveLensError(Exception):
    """Base class for all LiveLens exceptions."""
    def __init__(self, message: str, critical: bool = False):
        super().__init__(message)
        self.message = message
        self.critical = critical
        self.timestamp = time.time()


class CaptureError(LiveLensError):
    """Capture device missing, permission denied, or failed to start."""
    pass


class InferenceError(LiveLensError):
    """Raised by an inference backend when a single frame cannot be processed."""
    pass


class OverlayImageError(LiveLensError):
    """The selected overlay image could not be read or decoded."""
    pass


class AccessDeniedError(LiveLensError):
    """Scoped access to a user-selected file could not be acquired."""
    pass


class ConfigError(LiveLensError):
    """Exception raised for configuration-related failures."""
    pass


class FailureManager:
    """Tracks recurring failures per error type inside a sliding time window."""

    def __init__(self, settings: Optional[dict] = None):
        """
        Args:
            settings: Dictionary containing failure thresholds (from failures.json)
        """
        self.logger = Logger("FailureManager")

        self.settings = settings or {}
        self.threshold = self.settings.get('threshold', 5)
        self.window_seconds = self.settings.get('window_seconds', 300)

        self.failures: Dict[str, List[float]] = {}
        self.history: List[LiveLensError] = []
        self._max_history = 100
        self._lock = threading.Lock()

    def record_failure(self, error: Exception):
        """
        Record a failure incident (thread-safe).

        Args:
            error: The exception that occurred.
        """
        with self._lock:
            error_type = type(error).__name__
            now = time.time()

            timestamps = self.failures.setdefault(error_type, [])
            timestamps.append(now)

            cutoff = now - self.window_seconds
            self.failures[error_type] = [t for t in timestamps if t > cutoff]

            if isinstance(error, LiveLensError):
                self.history.append(error)
                msg = f"Failure detected: {error_type} - {error.message}"
                if error.critical:
                    self.logger.error(f"CRITICAL: {msg}")
                else:
                    self.logger.warning(msg)
            else:
                self.logger.error(f"Unexpected failure: {error_type} - {error}")

            if len(self.history) > self._max_history:
                self.history = self.history[-self._max_history:]

            if len(self.failures[error_type]) >= self.threshold:
                self.logger.warning(
                    f"Resilience Alert: '{error_type}' exceeded threshold "
                    f"({self.threshold} in {self.window_seconds}s)"
                )

    def is_threshold_exceeded(self, error_type: str) -> bool:
        """Check if a specific error type has exceeded the frequency threshold."""
        with self._lock:
            if error_type not in self.failures:
                return False

            now = time.time()
            self.failures[error_type] = [
                t for t in self.failures[error_type] if (now - t) < self.window_seconds
            ]
            return len(self.failures[error_type]) >= self.threshold

    def count(self, error_type: str) -> int:
        """Number of failures of this type still inside the window."""
        with self._lock:
            return len(self.failures.get(error_type, []))

    def get_recent_history(self, count: int = 10) -> List[LiveLensError]:
        """Return the most recent failures."""
        with self._lock:
            return self.history[-count:]

    def clear(self):
        """Reset all tracked failures."""
        with self._lock:
            self.failures = {}
            self.history = []
        self.logger.info("Failure history cleared.")
