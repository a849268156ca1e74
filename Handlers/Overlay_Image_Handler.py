"""Overlay Image Handler - loads the user-chosen overlay icon off the render thread.

select(path) returns immediately. A short-lived worker thread acquires scoped
access to the file, decodes it fully with OpenCV, releases the access on every
exit path, then publishes the bitmap (or None on decode failure). Readers only
ever see a finished OverlayImage or None.
"""
import os
import threading
from contextlib import contextmanager
from typing import Callable, ContextManager, BinaryIO, Optional

import cv2
import numpy as np

from core.bus import EventBus
from core.events import OverlayImage, OverlayImageChanged, OverlayImageSelected, OverlayImageCleared
from core.store import LatestValue
from utils.failures import FailureManager, AccessDeniedError, OverlayImageError
from utils.logger import Logger


@contextmanager
def file_access(path: str):
    """
    Scoped read access to a user-selected file.

    Yields an open binary handle; the handle is closed when the block exits,
    whatever the outcome.
    """
    if not os.path.isfile(path):
        raise AccessDeniedError(f"Not a readable file: {path}")
    if not os.access(path, os.R_OK):
        raise AccessDeniedError(f"Permission denied: {path}")
    try:
        handle = open(path, 'rb')
    except OSError as e:
        raise AccessDeniedError(f"Cannot open {path}: {e}")
    try:
        yield handle
    finally:
        handle.close()


def decode_image(data: bytes, path: str = "") -> OverlayImage:
    """Decode encoded image bytes, keeping an alpha channel if present."""
    if not data:
        raise OverlayImageError(f"Image file is empty: {path}")
    bitmap = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
    if bitmap is None or bitmap.size == 0:
        raise OverlayImageError(f"Unsupported or corrupt image: {path}")

    if bitmap.ndim == 2:
        bitmap = cv2.cvtColor(bitmap, cv2.COLOR_GRAY2BGR)
    if bitmap.dtype != np.uint8:
        # 16-bit PNG/TIFF
        bitmap = (bitmap / 257).astype(np.uint8)
    bitmap.setflags(write=False)

    height, width = bitmap.shape[:2]
    return OverlayImage(bitmap=bitmap, width=width, height=height, path=path)


class OverlayImageHandler:
    """Owns the current overlay image and loads replacements asynchronously."""

    def __init__(
        self,
        bus: Optional[EventBus] = None,
        failures: Optional[FailureManager] = None,
        access: Callable[[str], ContextManager[BinaryIO]] = file_access,
    ):
        """
        Args:
            bus: Optional event bus. Subscribes to selection requests and
                 publishes OverlayImageChanged after each load.
            failures: Shared failure tracker.
            access: Factory for the scoped file acquisition.
        """
        self.bus = bus
        self.failures = failures or FailureManager()
        self.access = access
        self.logger = Logger("OverlayImageHandler")

        self._image: LatestValue[OverlayImage] = LatestValue(None)
        self._token_lock = threading.Lock()
        self._token = 0
        self._workers: list = []

        if self.bus is not None:
            self.bus.subscribe(OverlayImageSelected, self._on_selected)
            self.bus.subscribe(OverlayImageCleared, self._on_cleared)

    # ── Render-side reads ───────────────────────────────────────────

    def current(self) -> Optional[OverlayImage]:
        """The published image, or None. Safe to call from any thread."""
        return self._image.read()

    @property
    def version(self) -> int:
        return self._image.version

    # ── Selection ───────────────────────────────────────────────────

    def select(self, path: str) -> threading.Thread:
        """Start loading `path` in the background. Returns the worker thread."""
        token = self._next_token()
        worker = threading.Thread(
            target=self._load, args=(path, token), daemon=True, name="OverlayImageLoad"
        )
        with self._token_lock:
            self._workers = [w for w in self._workers if w.is_alive()]
            self._workers.append(worker)
            worker.start()
        self.logger.info(f"Loading overlay image: {path}")
        return worker

    def clear(self) -> None:
        """Remove the overlay image; cancels publication of any load in progress."""
        with self._token_lock:
            self._token += 1
            self._image.publish(None)
        self._notify(available=False, reason="cleared")

    def wait_idle(self, timeout: Optional[float] = None) -> None:
        """Join outstanding load workers (shutdown and tests)."""
        with self._token_lock:
            workers = list(self._workers)
        for worker in workers:
            worker.join(timeout)

    def _next_token(self) -> int:
        with self._token_lock:
            self._token += 1
            return self._token

    def _load(self, path: str, token: int) -> None:
        try:
            with self.access(path) as handle:
                data = handle.read()
                image = decode_image(data, path)
        except AccessDeniedError as e:
            # Selection aborted: the previous image stays as it was.
            self.failures.record_failure(e)
            return
        except OverlayImageError as e:
            self.failures.record_failure(e)
            self._publish(token, None, path, reason=e.message)
            return
        except OSError as e:
            self.failures.record_failure(OverlayImageError(f"Failed reading {path}: {e}"))
            self._publish(token, None, path, reason=str(e))
            return

        self.logger.info(f"Overlay image loaded: {path} ({image.width}x{image.height})")
        self._publish(token, image, path)

    def _publish(self, token: int, image: Optional[OverlayImage], path: str, reason: str = "") -> None:
        with self._token_lock:
            if token != self._token:
                self.logger.debug(f"Discarding superseded overlay load: {path}")
                return
            self._image.publish(image)
        self._notify(available=image is not None, path=path, reason=reason)

    def _notify(self, available: bool, path: str = "", reason: str = "") -> None:
        if self.bus is not None:
            self.bus.publish(OverlayImageChanged(available=available, path=path, reason=reason))

    # ── Bus handlers ────────────────────────────────────────────────

    def _on_selected(self, event: OverlayImageSelected) -> None:
        self.select(event.path)

    def _on_cleared(self, event: OverlayImageCleared) -> None:
        self.clear()
