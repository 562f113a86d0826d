"""Value types passed between the detector, the controller and the annotator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

import numpy as np

Box = Tuple[float, float, float, float]


@dataclass(frozen=True)
class Detection:
    """1つの検出結果。

    Args:
        label: クラス名。
        confidence: 信頼度（0〜1）。
        box: 正規化座標のバウンディングボックス (left, top, right, bottom)。
    """

    label: str
    confidence: float
    box: Box


@dataclass(frozen=True)
class DetectionBatch:
    """1フレーム分の検出結果と推論時間（ミリ秒）。"""

    detections: Tuple[Detection, ...] = ()
    inference_time_ms: int = 0

    @property
    def count(self) -> int:
        return len(self.detections)


@dataclass(frozen=True)
class FrameSnapshot:
    """トリガー時点で取得したBGR画像。"""

    pixels: np.ndarray = field(repr=False)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])
