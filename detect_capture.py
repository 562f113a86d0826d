"""Live object detection with automatic evidence capture.

Camera frames are fed to a MediaPipe object detector. Every detection batch is
handed to :class:`CaptureController` on a single dispatcher thread. When exactly
two objects are visible, the controller saves an annotated JPEG and waits five
seconds before it can capture again. Press ``q`` to quit.
"""

from __future__ import annotations

import logging
import sys

from detection_capture.camera import CameraManager, LatestFrameBuffer
from detection_capture.config import (
    DEFAULT_CAMERA,
    DEFAULT_DETECTOR,
    DEFAULT_POLICY,
    DEFAULT_STORAGE,
    CameraConfig,
    DetectorConfig,
    StorageConfig,
    TriggerPolicy,
)
from detection_capture.detector import ObjectDetectorRunner
from detection_capture.dispatch import SerialDispatcher
from detection_capture.storage import ImageWriter
from detection_capture.trigger import CaptureController
from detection_capture.ui import OverlayUI

logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False) -> None:
    """ログの設定を行う"""

    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )


class DetectionCaptureApp:
    """カメラ、検出器、キャプチャ制御、表示をつなぐアプリケーション。

    Args:
        camera: カメラ設定。
        detector: 物体検出器の設定。
        storage: 保存先の設定。
        policy: トリガー条件と時間設定。
    """

    def __init__(
        self,
        camera: CameraConfig = DEFAULT_CAMERA,
        detector: DetectorConfig = DEFAULT_DETECTOR,
        storage: StorageConfig = DEFAULT_STORAGE,
        policy: TriggerPolicy = DEFAULT_POLICY,
    ) -> None:
        self.camera = CameraManager(camera)
        self.frames = LatestFrameBuffer()
        self.ui = OverlayUI()
        self.dispatcher = SerialDispatcher()
        self.controller = CaptureController(
            frame_source=self.frames.current_snapshot,
            sink=ImageWriter(storage),
            presenter=self.ui,
            scheduler=self.dispatcher,
            policy=policy,
            name_prefix=storage.name_prefix,
        )
        # MediaPipe calls back on its own thread; hop onto the dispatcher.
        self.detector = ObjectDetectorRunner(
            lambda batch: self.dispatcher.post(self.controller.on_batch, batch),
            detector,
        )

    def run(self) -> None:
        self.dispatcher.start()
        try:
            self.detector.start()
            while True:
                ret, frame = self.camera.read()
                if not ret or frame is None:
                    logger.warning("Failed to read frame from camera")
                    break

                self.frames.update(frame)
                self.detector.detect_async(frame)

                key = self.ui.show(frame)
                if key in (27, ord("q")):
                    logger.info("Exit requested by keypress")
                    break
        finally:
            self.detector.close()
            self.dispatcher.stop(timeout=2.0)
            self.camera.release()
            self.ui.close()
            logger.info("Capture loop stopped")


def main() -> None:
    setup_logging()
    try:
        app = DetectionCaptureApp()
    except RuntimeError as exc:
        logger.error("Initialisation failed: %s", exc)
        sys.exit(1)

    try:
        app.run()
    except FileNotFoundError as exc:
        logger.error("%s", exc)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")


if __name__ == "__main__":
    main()
