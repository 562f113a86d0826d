"""Drawing of detection results onto captured evidence frames."""

from __future__ import annotations

from typing import Sequence, Tuple

import cv2

from .detections import Box, Detection, FrameSnapshot

BOX_COLOR = (0, 255, 0)
TEXT_COLOR = (255, 255, 255)
BOX_THICKNESS = 2
LABEL_FONT_SCALE = 0.6
LABEL_OFFSET_PX = 10
CAPTION_FONT_SCALE = 1.0
CAPTION_MARGIN_PX = 20
FONT = cv2.FONT_HERSHEY_SIMPLEX


def scale_box(box: Box, width: int, height: int) -> Tuple[float, float, float, float]:
    """正規化座標のボックスをピクセル座標に変換する。

    left/rightは幅、top/bottomは高さで拡大する。
    """
    left, top, right, bottom = box
    return (left * width, top * height, right * width, bottom * height)


def format_label(detection: Detection) -> str:
    return f"{detection.label} ({detection.confidence:.2f})"


def annotate(frame: FrameSnapshot, detections: Sequence[Detection], count: int) -> FrameSnapshot:
    """フレームのコピーにボックス、ラベル、検出数を描画して返す。

    入力フレームは変更しない。描画順はボックス→ラベル→検出数のキャプション。

    Args:
        frame: トリガー時に取得したフレーム。
        detections: 描画する検出結果。
        count: キャプションに表示する検出数。
    """
    canvas = frame.pixels.copy()
    width, height = frame.width, frame.height

    pixel_boxes = [
        tuple(int(round(v)) for v in scale_box(det.box, width, height))
        for det in detections
    ]

    for x1, y1, x2, y2 in pixel_boxes:
        cv2.rectangle(canvas, (x1, y1), (x2, y2), BOX_COLOR, BOX_THICKNESS)

    for det, (x1, y1, _, _) in zip(detections, pixel_boxes):
        cv2.putText(
            canvas,
            format_label(det),
            (x1, y1 - LABEL_OFFSET_PX),
            FONT,
            LABEL_FONT_SCALE,
            TEXT_COLOR,
            2,
            cv2.LINE_AA,
        )

    cv2.putText(
        canvas,
        f"Detections: {count}",
        (CAPTION_MARGIN_PX, height - CAPTION_MARGIN_PX),
        FONT,
        CAPTION_FONT_SCALE,
        TEXT_COLOR,
        2,
        cv2.LINE_AA,
    )
    return FrameSnapshot(canvas)
