"""Video Input Handler - stands in for the camera during development.

Passed via --video. Frames come out as 3-channel BGR like the camera's, and the
file's native frame rate is exposed so playback can be paced realistically.
"""
from pathlib import Path
from typing import Optional

import cv2
import numpy as np

from utils.logger import Logger


class VideoInputHandler:
    """FrameSource over a video file; read_frame() returns None at end of file."""

    def __init__(self, video_path: str):
        self.video_path = video_path
        self.logger = Logger("VideoInputHandler")
        self.cap: Optional[cv2.VideoCapture] = None

        self.fps = 0.0
        self.frame_count = 0
        self.frames_read = 0

    def start(self) -> bool:
        if not Path(self.video_path).is_file():
            self.logger.error(f"Video file not found: {self.video_path}")
            return False

        cap = cv2.VideoCapture(self.video_path)
        if not cap.isOpened():
            self.logger.error(f"Could not open video: {self.video_path}")
            cap.release()
            return False

        self.cap = cap
        self.fps = float(cap.get(cv2.CAP_PROP_FPS) or 0.0)
        self.frame_count = int(cap.get(cv2.CAP_PROP_FRAME_COUNT) or 0)
        self.logger.info(
            f"Playing {Path(self.video_path).name}: {self.frame_count} frame(s) at {self.fps:.1f}fps"
        )
        return True

    def paced_fps(self, cap: int) -> int:
        """Native frame rate, bounded by `cap`; falls back to `cap` when unknown."""
        if self.fps <= 0:
            return cap
        return max(1, min(cap, int(round(self.fps))))

    def read_frame(self) -> Optional[np.ndarray]:
        if self.cap is None:
            return None

        ok, frame = self.cap.read()
        if not ok or frame is None:
            return None

        if frame.ndim == 2:
            frame = cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
        elif frame.shape[2] == 4:
            frame = cv2.cvtColor(frame, cv2.COLOR_BGRA2BGR)
        self.frames_read += 1
        return frame

    def stop(self) -> None:
        if self.cap is None:
            return
        self.cap.release()
        self.cap = None
        self.logger.debug(f"Video released after {self.frames_read} frame(s)")
