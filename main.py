"""
LiveLens — Entry Point

Pipeline:
    CaptureStage ─submit()─▶ InferenceScheduler ─publish()─▶ ResultStore
         │                                                       │
         └─▶ preview slot ──▶ OverlayPresenter ◀── OverlayImageHandler
                                   │
                            viewer / headless loop

Control plane (EventBus): CaptureFailed, DetectionUnavailable,
OverlayImageSelected/Cleared/Changed, ShutdownRequested.
"""
import argparse
import signal
from pathlib import Path
from threading import Event
from typing import Optional

from utils.config import Config
from utils.constants import (
    BASE_DIR, DEFAULT_MODEL_PATH, DEFAULT_MODEL_INPUT_SIZE,
    DEFAULT_RENDER_INTERVAL_MS, DEFAULT_VIEW_WIDTH, DEFAULT_VIEW_HEIGHT,
)
from utils.failures import FailureManager
from utils.logger import Logger

from core.bus import EventBus
from core.events import ShutdownRequested
from core.store import LatestValue, ResultStore
from core.renderer import OverlayRenderer


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="LiveLens - live object detection overlay")
    parser.add_argument(
        '--video', '-v',
        type=str,
        default=None,
        help='Path to a video file to use instead of the camera'
    )
    parser.add_argument(
        '--no-ai',
        action='store_true',
        help='Disable object detection (live view only)'
    )
    parser.add_argument(
        '--headless',
        action='store_true',
        help='Run without a window; renders off-screen and logs overlay counts'
    )
    parser.add_argument(
        '--overlay-image', '-i',
        type=str,
        default=None,
        help='Overlay icon to load at startup'
    )
    return parser.parse_args(argv)


def resolve_path(path: str) -> Path:
    """Config paths are relative to the project root."""
    p = Path(path).expanduser()
    return p if p.is_absolute() else BASE_DIR / p


class LiveLensNode:
    """
    LiveLens orchestrator.

    Wires together:
      - CaptureStage → InferenceScheduler → ResultStore
      - OverlayImageHandler (async icon loading)
      - OverlayPresenter on the render context (Qt viewer or headless loop)
      - EventBus subscribers for status and shutdown
    """

    def __init__(self, video_path: Optional[str] = None, enable_ai: bool = True,
                 headless: bool = False, config: Optional[Config] = None):
        # ── 1. Foundation ────────────────────────────────────────────
        self.config = config or Config()
        Logger.setup(self.config.get('logging', {}))
        self.logger = Logger("LiveLensNode")
        self.logger.info("Initializing LiveLens...")

        self.video_path = video_path
        self.headless = headless
        self.enable_ai = enable_ai and self.config.get_bool('ai.enabled', True)

        self.stop_event = Event()
        self.bus = EventBus()
        self.failures = FailureManager(self.config.get('failures', {}))

        # ── 2. Shared state ──────────────────────────────────────────
        self.store = ResultStore()
        self.preview = LatestValue(None)

        from core.display_subscriber import DisplaySubscriber
        self.status = DisplaySubscriber(self.bus)

        # ── 3. Overlay image ─────────────────────────────────────────
        from Handlers.Overlay_Image_Handler import OverlayImageHandler
        self.images = OverlayImageHandler(bus=self.bus, failures=self.failures)

        # ── 4. Inference ─────────────────────────────────────────────
        from core.stages.inference import InferenceScheduler
        backend, reason = self._load_backend() if self.enable_ai else (None, "disabled by --no-ai")
        self.scheduler = InferenceScheduler(
            backend=backend,
            store=self.store,
            stop_event=self.stop_event,
            bus=self.bus,
            failures=self.failures,
            unavailable_reason=reason,
        )

        # ── 5. Capture ───────────────────────────────────────────────
        from core.stages.capture import CaptureStage
        if video_path:
            from Handlers.Video_Input_Handler import VideoInputHandler
            frame_source = VideoInputHandler(video_path)
            source_type = "video"
            self.logger.info(f"Video test mode: {video_path}")
        else:
            from Handlers.Camera_Handler import CameraHandler
            frame_source = CameraHandler(self.config.get('camera', {}))
            source_type = "camera"

        self.capture_stage = CaptureStage(
            source=frame_source,
            sink=self.scheduler,
            stop_event=self.stop_event,
            fps=self.config.get_int('camera.fps', 30),
            loop_video=self.config.get_bool('camera.loop_video', True),
            source_type=source_type,
            preview=self.preview,
            bus=self.bus,
            failures=self.failures,
        )

        # ── 6. Render ────────────────────────────────────────────────
        from core.presenter import OverlayPresenter
        renderer = OverlayRenderer(
            show_labels=self.config.get_bool('overlay.show_labels', False),
            box_thickness=self.config.get_int('overlay.box_thickness', 2),
            label_font_scale=self.config.get_float('overlay.label_font_scale', 0.6),
        )
        self.presenter = OverlayPresenter(
            preview=self.preview,
            store=self.store,
            images=self.images,
            renderer=renderer,
            status=self.status,
        )
        self.viewer = None

        self.bus.subscribe(ShutdownRequested, self._on_shutdown_requested)
        self._setup_signals()
        self.logger.info("LiveLens initialized")

    def _load_backend(self):
        """Returns (backend, reason); backend is None when the model is unusable."""
        model_path = resolve_path(self.config.get('ai.model_path', str(DEFAULT_MODEL_PATH)))

        try:
            from Handlers.Model_Loader_Handler import ModelLoader
            from Handlers.Model_Detection_Handler import ModelDetectionHandler
        except ImportError as e:
            return None, f"detection libraries unavailable: {e}"

        loader = ModelLoader()
        model = loader.load_model(str(model_path))
        if model is None:
            return None, f"model could not be loaded from {model_path}"

        backend = ModelDetectionHandler(
            model,
            device=loader.device,
            input_size=self.config.get_int('ai.input_size', DEFAULT_MODEL_INPUT_SIZE),
            min_confidence=self.config.get_float('ai.min_confidence', 0.25),
        )
        return backend, ""

    def _setup_signals(self):
        """Handle OS signals for graceful shutdown."""
        def handler(sig, frame):
            self.logger.info("Shutdown signal received")
            self.stop()
        signal.signal(signal.SIGINT, handler)
        signal.signal(signal.SIGTERM, handler)

    def _on_shutdown_requested(self, event: ShutdownRequested):
        self.logger.info(f"Shutdown requested ({event.reason})")
        self.stop()

    def start(self, overlay_image: Optional[str] = None):
        """Start the pipeline threads and block on the render context."""
        self.logger.info("Starting LiveLens services...")

        self.scheduler.start()
        self.capture_stage.start()
        if overlay_image:
            self.images.select(overlay_image)

        try:
            if self.headless:
                self._run_headless()
            else:
                self._run_viewer()
        except Exception as e:
            self.logger.error(f"Render loop error: {e}")
        finally:
            self.stop()

    def _run_viewer(self):
        """Qt event loop on the main thread."""
        import sys
        from PyQt6.QtWidgets import QApplication
        from Handlers.Frame_Viewer_Handler import FrameViewerHandler

        app = QApplication.instance() or QApplication(sys.argv)
        self.viewer = FrameViewerHandler(
            self.presenter,
            self.bus,
            interval_ms=self.config.get_int('overlay.render_interval_ms', DEFAULT_RENDER_INTERVAL_MS),
        )
        self.viewer.show()
        app.exec()

    def _run_headless(self):
        """Off-screen render loop at the configured cadence."""
        view_size = (
            self.config.get_int('overlay.headless_view.width', DEFAULT_VIEW_WIDTH),
            self.config.get_int('overlay.headless_view.height', DEFAULT_VIEW_HEIGHT),
        )
        interval = self.config.get_int('overlay.render_interval_ms', DEFAULT_RENDER_INTERVAL_MS) / 1000.0
        self.logger.info(f"Headless render loop at {view_size[0]}x{view_size[1]}")

        last_count = -1
        while not self.stop_event.is_set():
            primitives = self.presenter.primitives(view_size)
            if len(primitives) != last_count:
                last_count = len(primitives)
                self.logger.info(f"Overlay primitives: {last_count}")
            self.stop_event.wait(interval)

    def stop(self):
        """Gracefully shutdown all components."""
        if self.stop_event.is_set():
            return

        self.stop_event.set()
        self.logger.info("Stopping LiveLens...")

        if self.viewer is not None:
            self.viewer.stop()

        self.scheduler.stop()
        for stage in (self.capture_stage, self.scheduler):
            if stage.is_alive():
                stage.join(timeout=2.0)

        self.images.wait_idle(timeout=1.0)
        self.bus.clear()

        self.logger.info(
            f"LiveLens stopped (captured {self.capture_stage.frames_captured}, "
            f"inferred {self.scheduler.inferences_run}, dropped {self.scheduler.frames_dropped})"
        )


def main(argv=None):
    args = parse_args(argv)
    node = LiveLensNode(
        video_path=args.video,
        enable_ai=not args.no_ai,
        headless=args.headless,
    )
    node.start(overlay_image=args.overlay_image)


if __name__ == "__main__":
    main()
