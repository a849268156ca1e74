from pathlib import Path
from typing import Optional

import torch
from ultralytics import YOLO

from utils.logger import Logger


def select_device() -> str:
    """Prefer CUDA, then Apple MPS, then CPU."""
    if torch.cuda.is_available():
        return "cuda"
    mps = getattr(torch.backends, "mps", None)
    if mps is not None and mps.is_available():
        return "mps"
    return "cpu"


class ModelLoader:
    """Loads the detection model once at startup on the best available device."""

    def __init__(self, device: Optional[str] = None):
        self.logger = Logger("ModelLoader")
        self.device = device or select_device()

    def load_model(self, model_path: str) -> Optional[YOLO]:
        """
        Load a YOLO model from a local file.

        A missing or unloadable model is a startup condition, not an error to
        propagate: the caller runs with detection disabled.

        Returns:
            The model, or None if loading fails.
        """
        if not Path(model_path).exists():
            self.logger.error(f"Model file not found: {model_path}")
            return None

        try:
            model = YOLO(model_path)
            model.to(self.device)
        except Exception as e:
            self.logger.error(f"Error loading model {model_path}: {e}")
            return None

        self.logger.info(f"Model loaded on {self.device}: {model_path}")
        return model
