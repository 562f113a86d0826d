"""MediaPipe object-detection adapter that emits one DetectionBatch per analyzed frame."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, List

import cv2
import mediapipe as mp
import numpy as np

from .config import DEFAULT_DETECTOR, DetectorConfig
from .detections import Detection, DetectionBatch

BaseOptions = mp.tasks.BaseOptions
ObjectDetector = mp.tasks.vision.ObjectDetector
ObjectDetectorOptions = mp.tasks.vision.ObjectDetectorOptions
VisionRunningMode = mp.tasks.vision.RunningMode
ObjectDetectorResultType = Any

BatchCallback = Callable[[DetectionBatch], None]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


def _clamp01(value: float) -> float:
    return min(max(value, 0.0), 1.0)


def batch_from_result(
    result: ObjectDetectorResultType,
    image_width: int,
    image_height: int,
    inference_time_ms: int,
) -> DetectionBatch:
    """MediaPipeの検出結果を正規化座標のDetectionBatchに変換する。

    ピクセル単位の (origin_x, origin_y, width, height) を 0〜1 の
    (left, top, right, bottom) に直す。カテゴリがない検出は捨てる。
    """
    detections: List[Detection] = []
    if image_width <= 0 or image_height <= 0:
        return DetectionBatch((), inference_time_ms)

    for det in result.detections or []:
        if not det.categories:
            continue
        best = max(det.categories, key=lambda c: c.score)
        bbox = det.bounding_box
        left = _clamp01(bbox.origin_x / image_width)
        top = _clamp01(bbox.origin_y / image_height)
        right = _clamp01((bbox.origin_x + bbox.width) / image_width)
        bottom = _clamp01((bbox.origin_y + bbox.height) / image_height)
        detections.append(
            Detection(
                label=best.category_name or "",
                confidence=float(best.score),
                box=(left, top, right, bottom),
            )
        )
    return DetectionBatch(tuple(detections), inference_time_ms)


class ObjectDetectorRunner:
    """MediaPipe Object Detector を LIVE_STREAM モードで動かす非同期推論ラッパー。

    フレームごとに detect_async を呼ぶと、推論完了時に batch_callback が
    DetectionBatch を受け取る。MediaPipe は結果を1件ずつ順番に返す。

    Args:
        batch_callback: 検出結果を受け取るコールバック。
        config: モデルパスとしきい値の設定。
    """

    def __init__(
        self,
        batch_callback: BatchCallback,
        config: DetectorConfig = DEFAULT_DETECTOR,
    ) -> None:
        self.batch_callback = batch_callback
        self.config = config
        self._detector = None
        self._last_timestamp_ms = -1

    def start(self) -> None:
        """Object Detector を初期化する。"""
        model_path = self.config.model_path
        if not model_path.exists():
            raise FileNotFoundError(f"object detection model not found: {model_path}")

        options = ObjectDetectorOptions(
            base_options=BaseOptions(model_asset_path=str(model_path)),
            running_mode=VisionRunningMode.LIVE_STREAM,
            max_results=self.config.max_results,
            score_threshold=self.config.score_threshold,
            result_callback=self._handle_result,
        )
        self._detector = ObjectDetector.create_from_options(options)
        logger.info("Object detector ready (model=%s)", model_path)

    def detect_async(self, frame_bgr: np.ndarray) -> None:
        """BGRフレームを推論キューに投入する。"""
        if self._detector is None:
            raise RuntimeError("detector not started")

        timestamp_ms = self._next_timestamp_ms()
        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=frame_rgb)
        self._detector.detect_async(mp_image, timestamp_ms)

    def _next_timestamp_ms(self) -> int:
        # LIVE_STREAM mode rejects non-increasing timestamps.
        now_ms = int(time.monotonic() * 1000)
        if now_ms <= self._last_timestamp_ms:
            now_ms = self._last_timestamp_ms + 1
        self._last_timestamp_ms = now_ms
        return now_ms

    def _handle_result(self, result: ObjectDetectorResultType, output_image, timestamp_ms: int) -> None:
        """MediaPipe から受け取った結果を DetectionBatch に変換して通知する。"""
        inference_time_ms = max(0, int(time.monotonic() * 1000) - timestamp_ms)
        batch = batch_from_result(result, output_image.width, output_image.height, inference_time_ms)
        logger.debug("detected %d objects in %d ms", batch.count, inference_time_ms)
        self.batch_callback(batch)

    def close(self) -> None:
        if self._detector is not None:
            self._detector.close()
            self._detector = None
