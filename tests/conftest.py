import heapq
import itertools
from typing import Callable, List, Optional, Tuple

import numpy as np
import pytest

from detection_capture.detections import Detection, DetectionBatch, FrameSnapshot
from detection_capture.storage import CaptureSaveError


class ManualScheduler:
    """Virtual-time scheduler; callbacks only run inside advance()."""

    def __init__(self) -> None:
        self.now_ms = 0
        self._seq = itertools.count()
        self._pending: List[Tuple[int, int, Callable[[], None]]] = []

    def schedule(self, delay_s: float, callback: Callable[[], None]) -> None:
        due = self.now_ms + max(0, int(round(delay_s * 1000)))
        heapq.heappush(self._pending, (due, next(self._seq), callback))

    def advance(self, ms: int = 0) -> None:
        target = self.now_ms + ms
        while self._pending and self._pending[0][0] <= target:
            due, _, callback = heapq.heappop(self._pending)
            self.now_ms = max(self.now_ms, due)
            callback()
        self.now_ms = target

    @property
    def pending(self) -> int:
        return len(self._pending)

    def clock(self) -> float:
        return 1_700_000_000 + self.now_ms / 1000.0


class RecordingPresenter:
    def __init__(self) -> None:
        self.batches: List[DetectionBatch] = []
        self.counts: List[int] = []
        self.countdown_visible: Optional[bool] = None
        self.countdown_texts: List[str] = []
        self.toasts: List[str] = []

    def show_batch(self, batch: DetectionBatch) -> None:
        self.batches.append(batch)

    def set_detection_count(self, count: int) -> None:
        self.counts.append(count)

    def set_countdown_visible(self, visible: bool) -> None:
        self.countdown_visible = visible

    def set_countdown_text(self, text: str) -> None:
        self.countdown_texts.append(text)

    def show_toast(self, message: str) -> None:
        self.toasts.append(message)


class MemorySink:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.saved: List[Tuple[str, FrameSnapshot]] = []

    def save(self, image: FrameSnapshot, name: str) -> str:
        if self.fail:
            raise CaptureSaveError("disk full")
        self.saved.append((name, image))
        return f"memory://{name}"


def make_batch(count: int, inference_time_ms: int = 12) -> DetectionBatch:
    detections = tuple(
        Detection(label="person", confidence=0.9, box=(0.1, 0.1, 0.4, 0.4))
        for _ in range(count)
    )
    return DetectionBatch(detections, inference_time_ms)


def make_frame(width: int = 64, height: int = 48) -> FrameSnapshot:
    return FrameSnapshot(np.zeros((height, width, 3), dtype=np.uint8))


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def presenter() -> RecordingPresenter:
    return RecordingPresenter()


@pytest.fixture
def sink() -> MemorySink:
    return MemorySink()
