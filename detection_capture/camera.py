"""Camera management and latest-frame buffering for the capture loop."""

from __future__ import annotations

import glob
import logging
import threading
from typing import Optional, Tuple

import cv2
import numpy as np

from .config import DEFAULT_CAMERA, CameraConfig
from .detections import FrameSnapshot

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class CameraManager:
    """カメラの初期化と設定を管理するラッパークラス。

    Args:
        config: デバイス番号、解像度、フレームレートの設定。
    """

    def __init__(self, config: CameraConfig = DEFAULT_CAMERA) -> None:
        self.config = config
        self.cap = self._init_camera(config.device_index)
        if self.cap is None:
            raise RuntimeError("Failed to initialise camera")

        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, config.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, config.height)
        self.cap.set(cv2.CAP_PROP_FPS, config.fps)
        logger.info(
            "Camera opened at %dx%d@%.1f FPS",
            int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            self.cap.get(cv2.CAP_PROP_FPS),
        )

    def _init_camera(self, index: int) -> Optional[cv2.VideoCapture]:
        """カメラデバイスを初期化する。見つからない場合は /dev/video* を順に試す。"""
        cap = cv2.VideoCapture(index)
        if cap.isOpened():
            return cap

        logger.warning("Camera %s not found; probing /dev/video*", index)
        for device in sorted(glob.glob("/dev/video*")):
            logger.debug("Trying device %s", device)
            fallback = cv2.VideoCapture(device)
            if fallback.isOpened():
                logger.info("Camera found at %s", device)
                return fallback
        logger.error("No camera device could be opened")
        return None

    def read(self) -> Tuple[bool, Optional[np.ndarray]]:
        return self.cap.read()

    def release(self) -> None:
        if self.cap.isOpened():
            self.cap.release()


class LatestFrameBuffer:
    """カメラループが書き込む最新フレームを保持し、キャプチャ時にコピーを返す。"""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._frame: Optional[np.ndarray] = None

    def update(self, frame: Optional[np.ndarray]) -> None:
        with self._lock:
            self._frame = frame

    def clear(self) -> None:
        self.update(None)

    def current_snapshot(self) -> Optional[FrameSnapshot]:
        """最新フレームのコピーを返す。まだフレームがなければNone。"""
        with self._lock:
            if self._frame is None:
                return None
            return FrameSnapshot(self._frame.copy())
