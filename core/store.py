"""
Latest-value state holders shared between execution contexts.

A writer publishes a complete, immutable value; readers always get either the
previous value or the new one. The lock only guards the reference swap, never
the work that produced the value.
"""
import threading
from typing import Generic, Optional, Tuple, TypeVar

from core.events import ObservationSet

T = TypeVar("T")


class LatestValue(Generic[T]):
    """Thread-safe last-value-wins slot."""

    def __init__(self, initial: Optional[T] = None):
        self._value = initial
        self._version = 0
        self._lock = threading.Lock()

    def publish(self, value: T) -> int:
        """Replace the current value. Returns the new version number."""
        with self._lock:
            self._value = value
            self._version += 1
            return self._version

    def read(self) -> Optional[T]:
        with self._lock:
            return self._value

    def snapshot(self) -> Tuple[Optional[T], int]:
        """Return (value, version) read under the same lock."""
        with self._lock:
            return self._value, self._version

    @property
    def version(self) -> int:
        with self._lock:
            return self._version


class ResultStore(LatestValue[ObservationSet]):
    """
    Holds the most recently completed ObservationSet.

    Written by the inference worker, read by the render context. Before the
    first publish, read() returns an empty set.
    """

    def __init__(self):
        super().__init__(ObservationSet.empty())

    def publish(self, observations: ObservationSet) -> int:
        if not isinstance(observations, ObservationSet):
            raise TypeError(f"ResultStore only accepts ObservationSet, got {type(observations).__name__}")
        return super().publish(observations)

    def read(self) -> ObservationSet:
        return super().read()
