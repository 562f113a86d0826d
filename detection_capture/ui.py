"""OpenCV window that shows the live detection overlay and capture feedback."""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

import cv2
import numpy as np

from .annotate import BOX_COLOR, FONT, format_label, scale_box
from .detections import DetectionBatch

TOAST_DURATION_S = 2.0
COUNTDOWN_COLOR = (0, 200, 255)
INFO_COLOR = (255, 255, 255)


class OverlayUI:
    """検出結果、検出数、推論時間、カウントダウン、トースト表示を管理する。

    状態の更新はディスパッチャのワーカーから、描画はメインスレッドから行われるため、
    内部状態はロックで保護する。

    Args:
        window_name: 表示ウィンドウの名前。
        clock: トーストの表示期限に使う単調増加時計。
    """

    def __init__(
        self,
        window_name: str = "DetectionCapture",
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.window_name = window_name
        self.clock = clock
        self._lock = threading.Lock()
        self._batch = DetectionBatch()
        self._detection_count = 0
        self._countdown_visible = False
        self._countdown_text = ""
        self._toast: Optional[str] = None
        self._toast_until = 0.0
        self._window_open = False

    # Presenter interface, called from the dispatcher worker.
    def show_batch(self, batch: DetectionBatch) -> None:
        with self._lock:
            self._batch = batch

    def set_detection_count(self, count: int) -> None:
        with self._lock:
            self._detection_count = count

    def set_countdown_visible(self, visible: bool) -> None:
        with self._lock:
            self._countdown_visible = visible

    def set_countdown_text(self, text: str) -> None:
        with self._lock:
            self._countdown_text = text

    def show_toast(self, message: str) -> None:
        with self._lock:
            self._toast = message
            self._toast_until = self.clock() + TOAST_DURATION_S

    @property
    def countdown_text(self) -> Optional[str]:
        """表示中のカウントダウン文字列。非表示ならNone。"""
        with self._lock:
            return self._countdown_text if self._countdown_visible else None

    @property
    def toast(self) -> Optional[str]:
        with self._lock:
            if self._toast is not None and self.clock() < self._toast_until:
                return self._toast
            return None

    def draw_overlay(self, frame: np.ndarray) -> np.ndarray:
        """現在の表示状態をフレームのコピーに描画して返す。"""
        with self._lock:
            batch = self._batch
            count = self._detection_count
            countdown = self._countdown_text if self._countdown_visible else None
        toast = self.toast

        canvas = frame.copy()
        height, width = canvas.shape[:2]

        for det in batch.detections:
            x1, y1, x2, y2 = (int(round(v)) for v in scale_box(det.box, width, height))
            cv2.rectangle(canvas, (x1, y1), (x2, y2), BOX_COLOR, 2)
            cv2.putText(canvas, format_label(det), (x1, max(y1 - 10, 15)), FONT, 0.5, BOX_COLOR, 1, cv2.LINE_AA)

        cv2.putText(canvas, f"Detections: {count}", (10, 30), FONT, 0.7, INFO_COLOR, 2, cv2.LINE_AA)
        inference = f"{batch.inference_time_ms}ms"
        (text_w, _), _ = cv2.getTextSize(inference, FONT, 0.6, 2)
        cv2.putText(canvas, inference, (width - text_w - 10, 30), FONT, 0.6, INFO_COLOR, 2, cv2.LINE_AA)

        if countdown:
            cv2.putText(canvas, countdown, (10, 65), FONT, 0.9, COUNTDOWN_COLOR, 2, cv2.LINE_AA)

        if toast:
            (text_w, text_h), baseline = cv2.getTextSize(toast, FONT, 0.7, 2)
            x = max((width - text_w) // 2, 0)
            y = height - 30
            cv2.rectangle(
                canvas,
                (x - 8, y - text_h - 8),
                (x + text_w + 8, y + baseline + 8),
                (0, 0, 0),
                cv2.FILLED,
            )
            cv2.putText(canvas, toast, (x, y), FONT, 0.7, INFO_COLOR, 2, cv2.LINE_AA)

        return canvas

    def show(self, frame: np.ndarray) -> int:
        """オーバーレイを描画したフレームを表示し、押されたキーを返す。"""
        if not self._window_open:
            cv2.namedWindow(self.window_name, cv2.WINDOW_NORMAL)
            self._window_open = True
        cv2.imshow(self.window_name, self.draw_overlay(frame))
        return cv2.waitKey(1) & 0xFF

    def close(self) -> None:
        if self._window_open:
            cv2.destroyWindow(self.window_name)
            self._window_open = False
