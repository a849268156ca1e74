"""
Display Subscriber — folds control-plane events into the status shown on the
viewer's HUD.

Keeps the viewer decoupled from the pipeline: it never asks the capture stage
or the scheduler anything, it just reads hud_lines() on each redraw.
"""
import os
import threading
from typing import List, Tuple

from core.bus import EventBus
from core.events import CaptureFailed, DetectionUnavailable, OverlayImageChanged
from utils.constants import COLOR_HUD_OK, COLOR_HUD_WARN
from utils.logger import Logger


class DisplaySubscriber:
    """Tracks camera, detection and overlay-image availability for the HUD."""

    def __init__(self, bus: EventBus):
        self.bus = bus
        self.logger = Logger("DisplaySubscriber")
        self._lock = threading.Lock()

        self.camera_ok = True
        self.camera_reason = ""
        self.detection_ok = True
        self.overlay_name = ""
        self.overlay_error = ""

        self.bus.subscribe(CaptureFailed, self._on_capture_failed)
        self.bus.subscribe(DetectionUnavailable, self._on_detection_unavailable)
        self.bus.subscribe(OverlayImageChanged, self._on_overlay_changed)

    def _on_capture_failed(self, event: CaptureFailed) -> None:
        with self._lock:
            self.camera_ok = False
            self.camera_reason = event.reason

    def _on_detection_unavailable(self, event: DetectionUnavailable) -> None:
        with self._lock:
            self.detection_ok = False

    def _on_overlay_changed(self, event: OverlayImageChanged) -> None:
        with self._lock:
            if event.available:
                self.overlay_name = os.path.basename(event.path)
                self.overlay_error = ""
            else:
                self.overlay_name = ""
                self.overlay_error = event.reason if event.reason != "cleared" else ""
        if event.reason and event.reason != "cleared":
            self.logger.warning(f"Overlay image unavailable: {event.reason}")

    def hud_lines(self) -> List[Tuple[str, Tuple[int, int, int]]]:
        """(text, BGR color) pairs, top to bottom."""
        with self._lock:
            lines = [
                ("AI: scanning", COLOR_HUD_OK) if self.detection_ok else ("AI: OFF", COLOR_HUD_WARN),
            ]
            if not self.camera_ok:
                lines.append(("CAMERA UNAVAILABLE", COLOR_HUD_WARN))
            if self.overlay_name:
                lines.append((f"Icon: {self.overlay_name}", COLOR_HUD_OK))
            elif self.overlay_error:
                lines.append(("Icon: failed to load", COLOR_HUD_WARN))
            return lines
