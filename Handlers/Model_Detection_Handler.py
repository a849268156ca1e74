from typing import Any, Dict, List, Optional, Tuple

import cv2
import numpy as np
import supervision as sv

from core.events import Frame, Observation, ObservationSet, ScalingPolicy
from utils.failures import InferenceError
from utils.logger import Logger


class ModelDetectionHandler:
    """InferenceBackend over an ultralytics YOLO model."""

    def __init__(
        self,
        model: Any,
        device: str = "cpu",
        input_size: int = 640,
        min_confidence: float = 0.25,
        class_names: Optional[Dict[int, str]] = None,
    ):
        """
        Args:
            model: A loaded YOLO model (anything with a compatible predict()).
            device: torch device string passed to predict().
            input_size: Square model input side in pixels.
            min_confidence: Detector-side floor; the overlay applies its own threshold.
            class_names: id -> name, defaults to the model's own names.
        """
        self.model = model
        self.device = device
        self.input_size = input_size
        self.min_confidence = min_confidence
        self.class_names = class_names if class_names is not None else dict(getattr(model, "names", {}) or {})
        self.logger = Logger("ModelDetectionHandler")

    def infer(self, frame: Frame, scaling: ScalingPolicy) -> ObservationSet:
        """
        Detect objects in one frame.

        Raises:
            InferenceError: the model raised or returned nothing usable.
        """
        image, reference_size = self.prepare(frame.image, scaling)

        try:
            results = self.model.predict(
                image,
                conf=self.min_confidence,
                imgsz=self.input_size,
                device=self.device,
                verbose=False,
            )
        except Exception as e:
            raise InferenceError(f"Model prediction failed on frame #{frame.sequence}: {e}")

        if not results:
            raise InferenceError(f"Model returned no result for frame #{frame.sequence}")

        detections = sv.Detections.from_ultralytics(results[0])
        return ObservationSet.for_frame(frame, self.to_observations(detections, reference_size))

    def prepare(self, image: np.ndarray, scaling: ScalingPolicy) -> Tuple[np.ndarray, Tuple[int, int]]:
        """
        Fit the frame to the model input.

        Returns:
            (model_image, (width, height)) where the second item is the pixel
            space the model's boxes come back in.
        """
        if scaling is ScalingPolicy.STRETCH_FILL:
            # Exactly square input, so the model's own letterboxing is a no-op.
            resized = cv2.resize(image, (self.input_size, self.input_size), interpolation=cv2.INTER_LINEAR)
            return resized, (self.input_size, self.input_size)

        if scaling is ScalingPolicy.ASPECT_FIT:
            # ultralytics letterboxes internally and maps boxes back to the source frame.
            height, width = image.shape[:2]
            return image, (width, height)

        raise ValueError(f"Unsupported scaling policy: {scaling}")

    def to_observations(self, detections: sv.Detections, reference_size: Tuple[int, int]) -> List[Observation]:
        """Convert pixel-space detections into normalized Observations."""
        ref_w, ref_h = reference_size
        observations = []

        names = detections.data.get("class_name") if detections.data else None

        for i in range(len(detections)):
            x1, y1, x2, y2 = detections.xyxy[i]
            nx1, nx2 = np.clip([x1 / ref_w, x2 / ref_w], 0.0, 1.0)
            ny1, ny2 = np.clip([y1 / ref_h, y2 / ref_h], 0.0, 1.0)

            confidence = 0.0
            if detections.confidence is not None:
                confidence = float(np.clip(detections.confidence[i], 0.0, 1.0))

            observations.append(Observation(
                label=self._label_for(detections, names, i),
                confidence=confidence,
                bbox=(float(nx1), float(ny1), float(nx2 - nx1), float(ny2 - ny1)),
            ))

        return observations

    def _label_for(self, detections: sv.Detections, names, index: int) -> str:
        if names is not None and len(names) > index:
            return str(names[index])
        if detections.class_id is not None:
            class_id = int(detections.class_id[index])
            return self.class_names.get(class_id, str(class_id))
        return "Object"
