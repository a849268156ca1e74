"""
Inference Stage — serializes calls into the detection backend.

Frames arrive from the capture thread through submit(). At most one frame is
being analyzed and at most one more waits behind it; a newer arrival replaces
the waiting frame instead of queueing behind it:

    IDLE          --submit(f)-->   BUSY(f)
    BUSY(f)       --submit(g)-->   BUSY_PENDING(f, g)
    BUSY_PENDING  --submit(h)-->   BUSY_PENDING(f, h)      g is dropped
    BUSY(f)       --complete-->    IDLE
    BUSY_PENDING  --complete-->    BUSY(h)

Every completion publishes to the ResultStore, an empty set when the backend
failed. The backend runs outside the state lock, so submit() never waits on
inference.
"""
from dataclasses import replace
from enum import Enum
from threading import Thread, Event, Condition
from typing import Optional

from core.bus import EventBus
from core.events import Frame, ObservationSet, DetectionUnavailable
from core.protocols import InferenceBackend
from core.store import ResultStore
from utils.constants import DETECTION_SCALING
from utils.failures import FailureManager, InferenceError
from utils.logger import Logger


class SchedulerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    BUSY_PENDING = "busy_pending"


class InferenceScheduler(Thread):
    """
    Pipeline Stage 1: single-flight, latest-wins inference.

    Owns the worker thread that calls the backend. Constructed without a
    backend, the scheduler stays disabled for the life of the process and
    discards every submitted frame.
    """

    def __init__(
        self,
        backend: Optional[InferenceBackend],
        store: ResultStore,
        stop_event: Event,
        bus: Optional[EventBus] = None,
        failures: Optional[FailureManager] = None,
        unavailable_reason: str = "no inference backend",
    ):
        """
        Args:
            backend: Detection engine, or None when it failed to load.
            store: Where completed ObservationSets are published.
            stop_event: Shared threading.Event — set to signal shutdown.
            bus: Optional event bus for the one-time DetectionUnavailable notice.
            failures: Shared failure tracker.
            unavailable_reason: Logged and published when backend is None.
        """
        super().__init__(name="InferenceScheduler", daemon=True)
        self.backend = backend
        self.store = store
        self.stop_event = stop_event
        self.bus = bus
        self.failures = failures or FailureManager()
        self.logger = Logger("InferenceScheduler")

        self._cond = Condition()
        self._state = SchedulerState.IDLE
        self._in_flight: Optional[Frame] = None
        self._pending: Optional[Frame] = None

        self.frames_submitted = 0
        self.frames_dropped = 0
        self.inferences_run = 0
        self.inference_failures = 0

        if self.backend is None:
            self.logger.warning(f"Detection disabled: {unavailable_reason}")
            if self.bus is not None:
                self.bus.publish(DetectionUnavailable(reason=unavailable_reason))

    @property
    def enabled(self) -> bool:
        return self.backend is not None

    @property
    def state(self) -> SchedulerState:
        with self._cond:
            return self._state

    @property
    def pending_frame(self) -> Optional[Frame]:
        with self._cond:
            return self._pending

    @property
    def in_flight_frame(self) -> Optional[Frame]:
        with self._cond:
            return self._in_flight

    # ── Ingestion (capture thread) ──────────────────────────────────

    def submit(self, frame: Frame) -> None:
        """Hand a frame to the scheduler. Never blocks on inference."""
        if not self.enabled:
            return

        with self._cond:
            self.frames_submitted += 1

            if self._state is SchedulerState.IDLE:
                self._in_flight = frame
                self._state = SchedulerState.BUSY
                self._cond.notify()
                return

            if self._pending is not None:
                self.frames_dropped += 1
                self.logger.debug(
                    f"Dropping pending frame #{self._pending.sequence} "
                    f"in favour of #{frame.sequence}"
                )
            self._pending = frame
            self._state = SchedulerState.BUSY_PENDING

    # ── Worker (inference thread) ───────────────────────────────────

    def run(self) -> None:
        """Worker loop — waits for an in-flight frame and processes it."""
        if not self.enabled:
            self.logger.info("Inference worker not started (detection disabled)")
            return

        self.logger.info(f"Inference worker running ({DETECTION_SCALING.value})")

        while not self.stop_event.is_set():
            with self._cond:
                while self._in_flight is None and not self.stop_event.is_set():
                    self._cond.wait(timeout=0.5)
            if self.stop_event.is_set():
                break
            self.process_next()

        self.logger.info(
            f"Inference worker stopped "
            f"(ran {self.inferences_run}, dropped {self.frames_dropped}, "
            f"failed {self.inference_failures})"
        )

    def process_next(self) -> bool:
        """
        Run one BUSY -> (BUSY | IDLE) cycle on the calling thread.

        Returns:
            False if there was no in-flight frame to process.
        """
        with self._cond:
            frame = self._in_flight
        if frame is None:
            return False

        result = self._infer(frame)
        self.store.publish(result)

        with self._cond:
            self.inferences_run += 1
            if self._pending is not None:
                self._in_flight = self._pending
                self._pending = None
                self._state = SchedulerState.BUSY
            else:
                self._in_flight = None
                self._state = SchedulerState.IDLE
        return True

    def _infer(self, frame: Frame) -> ObservationSet:
        try:
            result = self.backend.infer(frame, DETECTION_SCALING)
        except Exception as e:
            self.inference_failures += 1
            error = e if isinstance(e, InferenceError) else InferenceError(
                f"Inference failed on frame #{frame.sequence}: {e}"
            )
            self.failures.record_failure(error)
            return ObservationSet.for_frame(frame)

        if not isinstance(result, ObservationSet):
            self.inference_failures += 1
            self.failures.record_failure(InferenceError(
                f"Backend returned {type(result).__name__} instead of ObservationSet"
            ))
            return ObservationSet.for_frame(frame)

        if result.frame_size is None:
            # Renderer needs the source geometry to map normalized boxes.
            result = replace(result, frame_sequence=frame.sequence, frame_size=frame.size)

        self.logger.debug(f"Frame #{frame.sequence}: {len(result)} observation(s)")
        return result

    def stop(self) -> None:
        """Wake the worker so it notices stop_event. In-flight work is not cancelled."""
        self.stop_event.set()
        with self._cond:
            self._cond.notify_all()
