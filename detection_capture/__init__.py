"""Detection-triggered capture package."""

from .annotate import annotate, scale_box
from .config import CameraConfig, DetectorConfig, StorageConfig, TriggerPolicy
from .countdown import CountdownTimer
from .detections import Detection, DetectionBatch, FrameSnapshot
from .dispatch import SerialDispatcher
from .storage import CaptureSaveError, ImageWriter
from .trigger import CaptureController, ControllerState

__all__ = [
    "annotate",
    "scale_box",
    "CameraConfig",
    "DetectorConfig",
    "StorageConfig",
    "TriggerPolicy",
    "CountdownTimer",
    "Detection",
    "DetectionBatch",
    "FrameSnapshot",
    "SerialDispatcher",
    "CaptureSaveError",
    "ImageWriter",
    "CaptureController",
    "ControllerState",
]
