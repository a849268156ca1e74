"""
Overlay Renderer — turns the latest observations into a flat list of draw
primitives for one redraw of the view.

The renderer is pure: every call builds a fresh list from its arguments and
keeps nothing between passes. Observation boxes are mapped into the view with
the same aspect-fill rule used to present the video, otherwise the boxes drift
off the objects whenever the view and frame aspect ratios differ.
"""
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import cv2

from core.events import BBox, Observation, ObservationSet, OverlayImage
from utils.constants import (
    CONFIDENCE_THRESHOLD, ICON_SCALE, LABEL_MARGIN,
    COLOR_BOX, COLOR_LABEL_TEXT, COLOR_LABEL_BACKGROUND,
)

Color = Tuple[int, int, int]

LABEL_FONT = cv2.FONT_HERSHEY_SIMPLEX
LABEL_THICKNESS = 1
LABEL_PADDING = 10


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def min_x(self) -> float:
        return self.x

    @property
    def min_y(self) -> float:
        return self.y

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def max_y(self) -> float:
        return self.y + self.height

    @property
    def mid_x(self) -> float:
        return self.x + self.width / 2.0

    @property
    def mid_y(self) -> float:
        return self.y + self.height / 2.0

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.min_x, self.min_y, self.max_x, self.max_y


@dataclass(frozen=True)
class ViewGeometry:
    """Bounds of the surface the overlay is drawn into, in view pixels."""
    bounds: Rect

    @classmethod
    def of_size(cls, width: float, height: float) -> "ViewGeometry":
        return cls(Rect(0.0, 0.0, float(width), float(height)))


@dataclass(frozen=True)
class BoxPrimitive:
    rect: Rect
    color: Color = COLOR_BOX
    thickness: int = 2


@dataclass(frozen=True, eq=False)
class ImagePrimitive:
    rect: Rect
    image: OverlayImage


@dataclass(frozen=True)
class TextPrimitive:
    rect: Rect
    text: str
    color: Color = COLOR_LABEL_TEXT
    background: Color = COLOR_LABEL_BACKGROUND
    font_scale: float = 0.6


Primitive = Union[BoxPrimitive, ImagePrimitive, TextPrimitive]


def aspect_fill_transform(frame_size: Tuple[int, int], bounds: Rect) -> Tuple[float, float, float]:
    """
    Scale and offset that fill `bounds` with a frame, preserving aspect ratio.

    Returns:
        (scale, offset_x, offset_y); a frame pixel (px, py) lands at
        (offset_x + px * scale, offset_y + py * scale). Overflow is cropped.
    """
    frame_w, frame_h = frame_size
    if frame_w <= 0 or frame_h <= 0:
        raise ValueError(f"Invalid frame size {frame_size}")

    scale = max(bounds.width / frame_w, bounds.height / frame_h)
    offset_x = bounds.x + (bounds.width - frame_w * scale) / 2.0
    offset_y = bounds.y + (bounds.height - frame_h * scale) / 2.0
    return scale, offset_x, offset_y


def normalized_to_view(bbox: BBox, frame_size: Tuple[int, int], bounds: Rect) -> Rect:
    """Map a normalized (x, y, w, h) box into view pixels with aspect-fill."""
    scale, offset_x, offset_y = aspect_fill_transform(frame_size, bounds)
    frame_w, frame_h = frame_size
    x, y, w, h = bbox
    return Rect(
        x=offset_x + x * frame_w * scale,
        y=offset_y + y * frame_h * scale,
        width=w * frame_w * scale,
        height=h * frame_h * scale,
    )


def icon_rect(box: Rect) -> Rect:
    """Square icon twice as wide as the box, centered on it, top edges aligned."""
    size = box.width * ICON_SCALE
    return Rect(x=box.mid_x - size / 2.0, y=box.min_y, width=size, height=size)


def format_label(observation: Observation) -> str:
    return f"{observation.label} ({int(observation.confidence * 100)}%)"


class OverlayRenderer:
    """Builds the per-pass draw list from observations and the overlay image."""

    def __init__(
        self,
        show_labels: bool = False,
        box_color: Color = COLOR_BOX,
        box_thickness: int = 2,
        label_font_scale: float = 0.6,
    ):
        self.show_labels = show_labels
        self.box_color = box_color
        self.box_thickness = box_thickness
        self.label_font_scale = label_font_scale

    @staticmethod
    def visible(observations: Sequence[Observation]) -> List[Observation]:
        """Observations strictly above the confidence threshold."""
        return [o for o in observations if o.confidence > CONFIDENCE_THRESHOLD]

    def render(
        self,
        view: ViewGeometry,
        observations: ObservationSet,
        image: Optional[OverlayImage] = None,
    ) -> List[Primitive]:
        """Produce a fresh primitive list for one draw pass."""
        if observations.frame_size is None:
            return []
        if view.bounds.width <= 0 or view.bounds.height <= 0:
            return []

        primitives: List[Primitive] = []
        for observation in self.visible(observations.observations):
            rect = normalized_to_view(observation.bbox, observations.frame_size, view.bounds)
            primitives.extend(self._overlay_for(observation, rect, image))
        return primitives

    def _overlay_for(self, observation: Observation, rect: Rect,
                     image: Optional[OverlayImage]) -> List[Primitive]:
        primitives: List[Primitive] = [BoxPrimitive(
            rect=rect,
            color=self.box_color,
            thickness=self.box_thickness,
        )]

        top = rect.min_y
        if image is not None:
            icon = icon_rect(rect)
            primitives.append(ImagePrimitive(rect=icon, image=image))
            top = icon.min_y

        if self.show_labels:
            primitives.append(self._label(observation, rect.mid_x, top))
        return primitives

    def _label(self, observation: Observation, mid_x: float, top: float) -> TextPrimitive:
        text = format_label(observation)
        (text_w, text_h), baseline = cv2.getTextSize(
            text, LABEL_FONT, self.label_font_scale, LABEL_THICKNESS
        )
        width = text_w + LABEL_PADDING
        height = text_h + baseline
        return TextPrimitive(
            rect=Rect(x=mid_x - width / 2.0, y=top - height - LABEL_MARGIN,
                      width=width, height=height),
            text=text,
            font_scale=self.label_font_scale,
        )
