"""Typed configuration blobs for the capture system."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class CameraConfig:
    """カメラ入力の設定。"""

    device_index: int = 0
    width: int = 640
    height: int = 480
    fps: int = 30


@dataclass(frozen=True)
class DetectorConfig:
    """MediaPipe物体検出器の設定。"""

    model_path: Path = Path(__file__).parent / "efficientdet_lite0.tflite"
    max_results: int = 5
    score_threshold: float = 0.5


@dataclass(frozen=True)
class StorageConfig:
    """キャプチャ画像の保存先設定。"""

    output_dir: Path = Path("captures")
    name_prefix: str = "DetectedImage"
    jpeg_quality: int = 100


@dataclass(frozen=True)
class TriggerPolicy:
    """キャプチャのトリガー条件とクールダウン時間。

    Args:
        threshold_count: トリガーとなる検出数（完全一致）。
        capture_delay_s: トリガーからキャプチャまでの遅延（秒）。0は次の実行機会。
        rearm_delay_s: キャプチャ後に再びトリガー可能になるまでの時間（秒）。
        tick_interval_s: カウントダウン表示の更新間隔（秒）。
        countdown_total_s: カウントダウン表示の合計時間（秒）。
        release_on_missing_frame: フレームが取得できなかった場合にREADYへ戻すかどうか。
    """

    threshold_count: int = 2
    capture_delay_s: float = 0.0
    rearm_delay_s: float = 5.0
    tick_interval_s: float = 1.0
    countdown_total_s: float = 5.0
    release_on_missing_frame: bool = True


DEFAULT_CAMERA = CameraConfig()
DEFAULT_DETECTOR = DetectorConfig()
DEFAULT_STORAGE = StorageConfig()
DEFAULT_POLICY = TriggerPolicy()
