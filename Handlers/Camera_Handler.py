"""
Camera Handler - opens the platform camera through OpenCV.

Implements the FrameSource protocol. The capture loop itself lives in
CaptureStage; this class only owns the device.
"""
import time
from typing import Optional

import cv2
import numpy as np

from utils.constants import DEFAULT_CAPTURE_WIDTH, DEFAULT_CAPTURE_HEIGHT, DEFAULT_CAPTURE_FPS
from utils.logger import Logger

# Frames to discard while auto-exposure settles
WARMUP_FRAMES = 5


class CameraHandler:
    """Handles interaction with the physical camera hardware."""

    def __init__(self, config: dict):
        """
        Args:
            config: Camera-specific configuration subset
        """
        self.config = config
        self.logger = Logger("CameraHandler")
        self.cap: Optional[cv2.VideoCapture] = None

        self.index = config.get('index', 0)
        self.width = config.get('width', DEFAULT_CAPTURE_WIDTH)
        self.height = config.get('height', DEFAULT_CAPTURE_HEIGHT)
        self.fps = config.get('fps', DEFAULT_CAPTURE_FPS)

        self.actual_width = 0
        self.actual_height = 0
        self.actual_fps = 0.0

    # ── FrameSource protocol ──────────────────────────────────────────

    def start(self) -> bool:
        """
        Open the camera. Returns False if no device is present or access is
        refused; OpenCV reports both the same way.
        """
        try:
            index = int(self.index)
        except (TypeError, ValueError):
            index = self.index  # device path or stream URL

        self.logger.info(f"Opening camera {index} ({self.width}x{self.height} @ {self.fps}fps)")
        self.cap = cv2.VideoCapture(index)

        if not self.cap.isOpened():
            self.logger.error(f"Failed to open camera {index}")
            self.cap = None
            return False

        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self.cap.set(cv2.CAP_PROP_FPS, self.fps)
        # BGR output, the pixel format the detector expects
        self.cap.set(cv2.CAP_PROP_CONVERT_RGB, 1)

        self.actual_width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.actual_height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        self.actual_fps = float(self.cap.get(cv2.CAP_PROP_FPS))

        if self.actual_width == 0 or self.actual_height == 0:
            self.logger.error("Camera returned zero resolution")
            self.stop()
            return False

        for _ in range(WARMUP_FRAMES):
            self.cap.read()
            time.sleep(0.01)

        self.logger.info(
            f"Camera ready at {self.actual_width}x{self.actual_height} "
            f"@ {self.actual_fps:.1f}fps"
        )
        return True

    def read_frame(self) -> Optional[np.ndarray]:
        """Read the next frame, or None on an empty read."""
        if self.cap is None:
            return None

        ret, frame = self.cap.read()
        if not ret or frame is None or frame.size == 0:
            return None
        return frame

    def stop(self) -> None:
        """Release the capture device."""
        if self.cap is not None:
            self.cap.release()
            self.cap = None
            self.logger.info("Camera released")
