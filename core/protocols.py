"""
Protocol definitions (interfaces) for LiveLens.

These define the contracts that adapters must implement,
enabling dependency injection and easy testing/swapping.
"""
from typing import Protocol, Optional, runtime_checkable
import numpy as np

from core.events import Frame, ObservationSet, ScalingPolicy


@runtime_checkable
class FrameSource(Protocol):
    """Interface for any frame-producing device (camera, video file, etc.)."""

    def start(self) -> bool:
        """Initialize and begin frame acquisition. Returns True on success."""
        ...

    def read_frame(self) -> Optional[np.ndarray]:
        """
        Read the next available frame.

        Returns:
            A BGR numpy array (OpenCV format), or None if no frame is available.
        """
        ...

    def stop(self) -> None:
        """Release resources and stop frame acquisition."""
        ...


@runtime_checkable
class InferenceBackend(Protocol):
    """Interface for any object detection engine (YOLO, custom model, etc.)."""

    def infer(self, frame: Frame, scaling: ScalingPolicy) -> ObservationSet:
        """
        Run detection on a single frame.

        Args:
            frame: The frame to analyze.
            scaling: How the frame is fitted to the model input.

        Returns:
            An ObservationSet with boxes normalized to the frame. If it carries
            no frame_size the scheduler tags it with this frame's identity.

        Raises:
            InferenceError (or any exception) when this frame cannot be processed.
        """
        ...


@runtime_checkable
class FrameSink(Protocol):
    """Anything that accepts frames from the capture stage without blocking."""

    def submit(self, frame: Frame) -> None:
        ...
