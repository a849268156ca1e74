"""Frame Viewer Handler — the Qt window that shows the live view with overlays.

A QTimer drives the render context at ~30 fps. Each tick asks the
OverlayPresenter for a view-sized image and shows it; the window itself
holds no pipeline state.

Keys:
    O        pick an overlay image
    C        clear the overlay image
    Q / Esc  quit
"""
import numpy as np

from PyQt6.QtWidgets import QApplication, QMainWindow, QLabel, QVBoxLayout, QWidget, QFileDialog
from PyQt6.QtCore import QTimer, Qt
from PyQt6.QtGui import QImage, QPixmap

from core.bus import EventBus
from core.events import OverlayImageSelected, OverlayImageCleared, ShutdownRequested
from core.presenter import OverlayPresenter
from utils.constants import DEFAULT_RENDER_INTERVAL_MS
from utils.logger import Logger

IMAGE_FILTER = "Images (*.png *.jpg *.jpeg *.bmp *.tif *.tiff *.webp)"


class FrameViewerHandler(QMainWindow):
    """Live view window.

    Must be created after the QApplication exists.
    """

    def __init__(self, presenter: OverlayPresenter, bus: EventBus,
                 title: str = "LiveLens", interval_ms: int = DEFAULT_RENDER_INTERVAL_MS):
        super().__init__()
        self.presenter = presenter
        self.bus = bus
        self.logger = Logger("FrameViewer")

        # ── Window chrome ────────────────────────────────────────────
        self.setWindowTitle(f"{title}  —  O: overlay image  C: clear  Q: quit")
        self.setMinimumSize(640, 480)
        self.resize(1280, 720)

        self.image_label = QLabel("Waiting for frames …")
        self.image_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.image_label.setStyleSheet("background: #111; color: #888; font-size: 16px;")
        self.image_label.setMinimumSize(1, 1)

        central = QWidget()
        layout = QVBoxLayout(central)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self.image_label)
        self.setCentralWidget(central)

        # ── Render timer ─────────────────────────────────────────────
        self._timer = QTimer(self)
        self._timer.timeout.connect(self._redraw)
        self._timer.start(interval_ms)

        self.logger.info("Viewer window created")

    # ── Render context ───────────────────────────────────────────────

    def _redraw(self) -> None:
        size = self.image_label.size()
        view_size = (max(size.width(), 1), max(size.height(), 1))
        try:
            canvas = self.presenter.draw(view_size)
        except Exception as e:
            self.logger.error(f"Redraw failed: {e}")
            return
        self._display(canvas)

    def _display(self, canvas: np.ndarray) -> None:
        """Convert a BGR canvas to a QPixmap; the canvas already matches the label size."""
        h, w, ch = canvas.shape
        rgb = canvas[..., ::-1].copy()
        q_img = QImage(rgb.data, w, h, ch * w, QImage.Format.Format_RGB888)
        self.image_label.setPixmap(QPixmap.fromImage(q_img))

    # ── Input ────────────────────────────────────────────────────────

    def keyPressEvent(self, event) -> None:
        key = event.key()
        if key == Qt.Key.Key_O:
            self._pick_overlay_image()
        elif key == Qt.Key.Key_C:
            self.bus.publish(OverlayImageCleared())
        elif key in (Qt.Key.Key_Q, Qt.Key.Key_Escape):
            self.bus.publish(ShutdownRequested(reason="viewer"))
        else:
            super().keyPressEvent(event)

    def _pick_overlay_image(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Upload Custom Image", "", IMAGE_FILTER)
        if path:
            self.bus.publish(OverlayImageSelected(path=path))

    def closeEvent(self, event) -> None:
        self._timer.stop()
        self.bus.publish(ShutdownRequested(reason="window closed"))
        super().closeEvent(event)

    # ── Lifecycle ────────────────────────────────────────────────────

    def stop(self) -> None:
        """Stop the render timer and leave the Qt event loop."""
        self._timer.stop()
        app = QApplication.instance()
        if app is not None:
            app.quit()
