"""
Pipeline stages for LiveLens.

    CaptureStage ──submit()──▶ InferenceScheduler ──publish()──▶ ResultStore

Each stage runs in its own thread. There is no queue between them: the
scheduler keeps one frame in flight and at most one pending, replacing the
pending frame when a newer one arrives.
"""
from .capture import CaptureStage
from .inference import InferenceScheduler, SchedulerState

__all__ = ["CaptureStage", "InferenceScheduler", "SchedulerState"]
