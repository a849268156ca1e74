"""
Overlay Presenter — one redraw of the live view.

Runs on the render context (Qt timer or the headless loop). Each pass reads
whatever is currently published (latest frame, observations and overlay
image) and never waits on the pipeline threads.
"""
from typing import List, Optional, Tuple

import numpy as np

from core.display_subscriber import DisplaySubscriber
from core.renderer import OverlayRenderer, Primitive, ViewGeometry
from core.store import LatestValue, ResultStore
from Handlers.Detection_Visuals_Handler import DetectionVisualsHandler
from Handlers.Overlay_Image_Handler import OverlayImageHandler
from utils.logger import Logger


class OverlayPresenter:
    """Reads shared state, renders primitives, and paints them over the frame."""

    def __init__(
        self,
        preview: LatestValue,
        store: ResultStore,
        images: OverlayImageHandler,
        renderer: OverlayRenderer,
        painter: Optional[DetectionVisualsHandler] = None,
        status: Optional[DisplaySubscriber] = None,
    ):
        self.preview = preview
        self.store = store
        self.images = images
        self.renderer = renderer
        self.painter = painter or DetectionVisualsHandler()
        self.status = status
        self.logger = Logger("OverlayPresenter")

        self.passes = 0
        self._last_result_version = -1

    def primitives(self, view_size: Tuple[int, int]) -> List[Primitive]:
        """The draw list for a view of the given (width, height)."""
        observations, version = self.store.snapshot()
        if version != self._last_result_version:
            self._last_result_version = version
            self.logger.debug(
                f"New results for frame #{observations.frame_sequence}: "
                f"{len(observations)} observation(s)"
            )
        return self.renderer.render(ViewGeometry.of_size(*view_size), observations, self.images.current())

    def draw(self, view_size: Tuple[int, int]) -> np.ndarray:
        """Compose the full view image for this pass."""
        frame = self.preview.read()
        primitives = self.primitives(view_size)
        hud = self.status.hud_lines() if self.status is not None else ()
        self.passes += 1
        return self.painter.compose(
            frame.image if frame is not None else None,
            view_size,
            primitives,
            hud,
        )
