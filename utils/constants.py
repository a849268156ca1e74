"""
Global constants for the LiveLens application.
"""
from pathlib import Path

from core.events import ScalingPolicy

# Project Structure
BASE_DIR = Path(__file__).parent.parent
CONFIGS_DIR = BASE_DIR / "configs"
ASSETS_DIR = BASE_DIR / "assets"
LOGS_DIR = BASE_DIR / "logs"
MODELS_DIR = ASSETS_DIR / "models"

DEFAULT_MODEL_PATH = MODELS_DIR / "detector.pt"

# Overlay rules (fixed, not configurable)
CONFIDENCE_THRESHOLD = 0.8
ICON_SCALE = 2.0
LABEL_MARGIN = 5.0

# Capture ("photo" preset equivalent, 4:3)
DEFAULT_CAPTURE_WIDTH = 1280
DEFAULT_CAPTURE_HEIGHT = 960
DEFAULT_CAPTURE_FPS = 30

# Detection
DEFAULT_MODEL_INPUT_SIZE = 640

# Render cadence
DEFAULT_RENDER_INTERVAL_MS = 33
DEFAULT_VIEW_WIDTH = 1280
DEFAULT_VIEW_HEIGHT = 720

# Colors (BGR)
COLOR_BOX = (0, 0, 255)
COLOR_LABEL_TEXT = (255, 255, 255)
COLOR_LABEL_BACKGROUND = (0, 0, 204)
COLOR_HUD_OK = (0, 200, 0)
COLOR_HUD_WARN = (0, 0, 255)

# Fitting used for every detection call; must match how the model was trained.
DETECTION_SCALING = ScalingPolicy.STRETCH_FILL
