"""
Capture Stage — reads frames from a capture device and hands each one to the
inference scheduler.

Runs in its own thread. The handoff is a single synchronous submit() call; the
scheduler decides whether the frame is analyzed, kept as pending, or dropped.
The stage itself keeps no frame beyond the one being handed off.
"""
import itertools
import time
from threading import Thread, Event
from typing import Optional

from core.bus import EventBus
from core.events import Frame, CaptureFailed
from core.protocols import FrameSource, FrameSink
from core.store import LatestValue
from utils.failures import FailureManager, CaptureError
from utils.logger import Logger


class CaptureStage(Thread):
    """
    Pipeline Stage 0: Frame acquisition.

    Wraps any FrameSource device (camera, video file) and emits strictly
    ordered Frames on this thread.
    """

    def __init__(
        self,
        source: FrameSource,
        sink: FrameSink,
        stop_event: Event,
        fps: int = 30,
        loop_video: bool = True,
        source_type: str = "camera",
        preview: Optional[LatestValue] = None,
        bus: Optional[EventBus] = None,
        failures: Optional[FailureManager] = None,
        retry_delay: float = 0.1,
    ):
        """
        Args:
            source: Any object implementing the FrameSource protocol.
            sink: Receives each frame (the InferenceScheduler).
            stop_event: Shared threading.Event — set to signal shutdown.
            fps: Upper bound on the capture loop rate.
            loop_video: If True and source is a video file, restart on EOF.
            source_type: "camera" or "video" — attached to Frame metadata.
            preview: Optional slot that always holds the latest frame for display.
            bus: Event bus for the one-time CaptureFailed notice.
            failures: Shared failure tracker.
            retry_delay: Sleep after an empty camera read.
        """
        super().__init__(name="CaptureStage", daemon=True)
        self.source = source
        self.sink = sink
        self.stop_event = stop_event
        self.fps = fps
        self.loop_video = loop_video
        self.source_type = source_type
        self.preview = preview
        self.bus = bus
        self.failures = failures or FailureManager()
        self.retry_delay = retry_delay
        self.logger = Logger("CaptureStage")

        self._sequence = itertools.count()
        self.frames_captured = 0
        self.failed = False

    def run(self) -> None:
        """Main capture loop — runs until stop_event is set or the source ends."""
        if not self.source.start():
            self._report_start_failure()
            return

        # Video files report their own rate; play them no faster than that.
        paced_fps = getattr(self.source, "paced_fps", None)
        fps = paced_fps(self.fps) if paced_fps is not None else self.fps

        self.logger.info(f"Capture stage running ({self.source_type}, {fps} FPS cap)")
        frame_interval = 1.0 / max(fps, 1)

        try:
            while not self.stop_event.is_set():
                loop_start = time.monotonic()

                raw_frame = self.source.read_frame()

                if raw_frame is None:
                    if not self._handle_empty_read():
                        break
                    continue

                self.emit(raw_frame)

                # Only throttle file playback; a camera paces itself.
                if self.source_type == "video":
                    sleep_time = frame_interval - (time.monotonic() - loop_start)
                    if sleep_time > 0:
                        time.sleep(sleep_time)
        finally:
            self.source.stop()
            self.logger.info(f"Capture stage stopped after {self.frames_captured} frame(s)")

    def emit(self, image) -> Frame:
        """Wrap a raw image in a Frame and hand it off."""
        frame = Frame(image=image, sequence=next(self._sequence), source=self.source_type)
        self.frames_captured += 1

        self.sink.submit(frame)
        if self.preview is not None:
            self.preview.publish(frame)
        return frame

    def _handle_empty_read(self) -> bool:
        """Returns False when the loop should end."""
        if self.source_type == "video":
            if not self.loop_video:
                self.logger.info("Video playback finished")
                return False
            self.logger.info("Video ended — looping back to start")
            self.source.stop()
            if not self.source.start():
                self.logger.error("Failed to restart video source")
                return False
            return True

        # Camera glitch, brief retry
        time.sleep(self.retry_delay)
        return True

    def _report_start_failure(self) -> None:
        """Terminal for this session: reported once, never retried."""
        self.failed = True
        reason = f"{self.source_type} source failed to start (no device or permission denied)"
        self.failures.record_failure(CaptureError(reason, critical=True))
        if self.bus is not None:
            self.bus.publish(CaptureFailed(reason=reason))
