"""Detection Visuals Handler — paints a renderer primitive list onto a view canvas.

The live frame is presented with the same aspect-fill mapping the renderer
uses for boxes. Boxes go through supervision's BoxAnnotator; icons and label
text are drawn with OpenCV.
"""
import math
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import cv2
import numpy as np
import supervision as sv

from core.renderer import (
    BoxPrimitive, ImagePrimitive, TextPrimitive, Primitive, Rect,
    aspect_fill_transform, LABEL_FONT, LABEL_THICKNESS,
)
from utils.logger import Logger


def present_frame(image: Optional[np.ndarray], view_size: Tuple[int, int]) -> np.ndarray:
    """Scale and center-crop a BGR frame to fill view_size (width, height)."""
    view_w, view_h = view_size
    if image is None:
        return np.zeros((view_h, view_w, 3), dtype=np.uint8)

    frame_h, frame_w = image.shape[:2]
    scale, _, _ = aspect_fill_transform((frame_w, frame_h), Rect(0, 0, view_w, view_h))
    scaled_w = max(view_w, int(math.ceil(frame_w * scale)))
    scaled_h = max(view_h, int(math.ceil(frame_h * scale)))

    resized = cv2.resize(image, (scaled_w, scaled_h), interpolation=cv2.INTER_LINEAR)
    x0 = (scaled_w - view_w) // 2
    y0 = (scaled_h - view_h) // 2
    return np.ascontiguousarray(resized[y0:y0 + view_h, x0:x0 + view_w])


def _bgr_to_sv(color: Tuple[int, int, int]) -> sv.Color:
    b, g, r = color
    return sv.Color(r=r, g=g, b=b)


class DetectionVisualsHandler:
    """Draws boxes, icons, labels and the HUD onto a view-sized canvas."""

    def __init__(self, hud_scale: float = 0.7):
        self.logger = Logger("DetectionVisualsHandler")
        self.hud_scale = hud_scale
        self._box_annotators: Dict[Tuple[Tuple[int, int, int], int], sv.BoxAnnotator] = {}

    def compose(
        self,
        frame: Optional[np.ndarray],
        view_size: Tuple[int, int],
        primitives: Sequence[Primitive],
        hud: Iterable[Tuple[str, Tuple[int, int, int]]] = (),
    ) -> np.ndarray:
        """
        Build the final view image.

        Args:
            frame: Latest raw BGR frame, or None before the first capture.
            view_size: (width, height) of the view in pixels.
            primitives: Output of OverlayRenderer.render for the same view size.
            hud: Status lines drawn in the top-left corner.

        Returns:
            A new BGR canvas of shape (height, width, 3).
        """
        canvas = present_frame(frame, view_size)

        canvas = self._draw_boxes(canvas, [p for p in primitives if isinstance(p, BoxPrimitive)])
        for primitive in primitives:
            if isinstance(primitive, ImagePrimitive):
                self._draw_image(canvas, primitive)
            elif isinstance(primitive, TextPrimitive):
                self._draw_text(canvas, primitive)

        self._draw_hud(canvas, hud)
        return canvas

    # ── Boxes ────────────────────────────────────────────────────────

    def _draw_boxes(self, canvas: np.ndarray, boxes: List[BoxPrimitive]) -> np.ndarray:
        groups: Dict[Tuple[Tuple[int, int, int], int], List[Rect]] = {}
        for box in boxes:
            if box.thickness <= 0:
                continue
            groups.setdefault((tuple(box.color), box.thickness), []).append(box.rect)

        for (color, thickness), rects in groups.items():
            annotator = self._box_annotators.get((color, thickness))
            if annotator is None:
                # Boxes carry no class_id; one fixed color per group.
                annotator = sv.BoxAnnotator(
                    color=_bgr_to_sv(color),
                    thickness=thickness,
                    color_lookup=sv.ColorLookup.INDEX,
                )
                self._box_annotators[(color, thickness)] = annotator

            detections = sv.Detections(
                xyxy=np.array([r.as_xyxy() for r in rects], dtype=np.float32),
            )
            canvas = annotator.annotate(scene=canvas, detections=detections)
        return canvas

    # ── Icons ────────────────────────────────────────────────────────

    def _draw_image(self, canvas: np.ndarray, primitive: ImagePrimitive) -> None:
        """Aspect-fit the bitmap inside the icon rect, clip to canvas, blend alpha."""
        bitmap = primitive.image.bitmap
        rect = primitive.rect
        if rect.width < 1 or rect.height < 1:
            return

        src_h, src_w = bitmap.shape[:2]
        fit = min(rect.width / src_w, rect.height / src_h)
        dst_w = max(1, int(round(src_w * fit)))
        dst_h = max(1, int(round(src_h * fit)))
        left = int(round(rect.mid_x - dst_w / 2.0))
        top = int(round(rect.mid_y - dst_h / 2.0))

        canvas_h, canvas_w = canvas.shape[:2]
        x0, y0 = max(left, 0), max(top, 0)
        x1, y1 = min(left + dst_w, canvas_w), min(top + dst_h, canvas_h)
        if x0 >= x1 or y0 >= y1:
            return

        resized = cv2.resize(bitmap, (dst_w, dst_h), interpolation=cv2.INTER_AREA)
        patch = resized[y0 - top:y1 - top, x0 - left:x1 - left]
        region = canvas[y0:y1, x0:x1]

        if patch.shape[2] == 4:
            alpha = patch[:, :, 3:4].astype(np.float32) / 255.0
            blended = patch[:, :, :3].astype(np.float32) * alpha + region.astype(np.float32) * (1.0 - alpha)
            region[:] = blended.astype(np.uint8)
        else:
            region[:] = patch[:, :, :3]

    # ── Labels ───────────────────────────────────────────────────────

    def _draw_text(self, canvas: np.ndarray, primitive: TextPrimitive) -> None:
        rect = primitive.rect
        x0, y0 = int(round(rect.min_x)), int(round(rect.min_y))
        x1, y1 = int(round(rect.max_x)), int(round(rect.max_y))
        cv2.rectangle(canvas, (x0, y0), (x1, y1), primitive.background, thickness=-1)

        _, baseline = cv2.getTextSize(primitive.text, LABEL_FONT, primitive.font_scale, LABEL_THICKNESS)
        cv2.putText(canvas, primitive.text, (x0 + 5, y1 - baseline), LABEL_FONT,
                    primitive.font_scale, primitive.color, LABEL_THICKNESS, cv2.LINE_AA)

    # ── HUD ──────────────────────────────────────────────────────────

    def _draw_hud(self, canvas: np.ndarray, lines: Iterable[Tuple[str, Tuple[int, int, int]]]) -> None:
        """Shadowed status text in the top-left corner."""
        y = 30
        for text, color in lines:
            cv2.putText(canvas, text, (10, y), cv2.FONT_HERSHEY_SIMPLEX,
                        self.hud_scale, (0, 0, 0), 3, cv2.LINE_AA)  # shadow
            cv2.putText(canvas, text, (10, y), cv2.FONT_HERSHEY_SIMPLEX,
                        self.hud_scale, color, 2, cv2.LINE_AA)
            y += 28
