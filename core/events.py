"""
Typed event definitions (messages) for the LiveLens pipeline.

Pipeline messages (Frame, Observation, ObservationSet, OverlayImage) are
frozen: once built they are never mutated, so handing a reference to another
thread is enough to share them. Control-plane events travel over the EventBus.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple
import time
import numpy as np


BBox = Tuple[float, float, float, float]


# ─── Pipeline Messages ───────────────────────────────────────────────────

@dataclass(frozen=True, eq=False)
class Frame:
    """A captured video frame with metadata."""
    image: np.ndarray
    sequence: int
    timestamp: float = field(default_factory=time.monotonic)
    source: str = "unknown"  # "camera" or "video"

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    @property
    def height(self) -> int:
        return int(self.image.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height


@dataclass(frozen=True)
class Observation:
    """
    One detected object.

    bbox is (x, y, w, h) normalized to the producing frame, origin top-left.
    """
    label: str
    confidence: float
    bbox: BBox

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")
        if len(self.bbox) != 4:
            raise ValueError(f"bbox must have 4 components, got {self.bbox!r}")
        if not all(0.0 <= v <= 1.0 for v in self.bbox):
            raise ValueError(f"bbox components must be within [0, 1], got {self.bbox!r}")


@dataclass(frozen=True)
class ObservationSet:
    """All observations produced from exactly one frame."""
    observations: Tuple[Observation, ...] = ()
    frame_sequence: int = -1
    frame_size: Optional[Tuple[int, int]] = None   # (width, height)
    timestamp: float = field(default_factory=time.monotonic)

    @classmethod
    def empty(cls) -> "ObservationSet":
        return cls()

    @classmethod
    def for_frame(cls, frame: Frame, observations=()) -> "ObservationSet":
        return cls(
            observations=tuple(observations),
            frame_sequence=frame.sequence,
            frame_size=frame.size,
        )

    def __len__(self) -> int:
        return len(self.observations)

    def __iter__(self):
        return iter(self.observations)


@dataclass(frozen=True, eq=False)
class OverlayImage:
    """A decoded user-selected bitmap (BGR or BGRA)."""
    bitmap: np.ndarray
    width: int
    height: int
    path: str = ""


class ScalingPolicy(Enum):
    """How a frame is fitted to the detector's input."""
    STRETCH_FILL = "stretch_fill"   # full frame, aspect ratio not preserved
    ASPECT_FIT = "aspect_fit"       # letterboxed


# ─── Event Bus Events (control plane, low-frequency) ─────────────────────

@dataclass
class CaptureFailed:
    """Published once when the capture device cannot be started."""
    reason: str = ""
    timestamp: float = field(default_factory=time.time)


@dataclass
class DetectionUnavailable:
    """Published once when no inference backend could be loaded."""
    reason: str = ""
    timestamp: float = field(default_factory=time.time)


@dataclass
class OverlayImageSelected:
    """Published when the user picks an overlay image file."""
    path: str = ""
    timestamp: float = field(default_factory=time.time)


@dataclass
class OverlayImageCleared:
    """Published when the user removes the overlay image."""
    timestamp: float = field(default_factory=time.time)


@dataclass
class OverlayImageChanged:
    """Published by the image provider after each published load result."""
    available: bool = False
    path: str = ""
    reason: str = ""
    timestamp: float = field(default_factory=time.time)


@dataclass
class ShutdownRequested:
    """Published to signal a graceful shutdown of all components."""
    reason: str = "user"
    timestamp: float = field(default_factory=time.time)
