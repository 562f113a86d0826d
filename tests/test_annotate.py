import numpy as np
import pytest

from detection_capture.annotate import BOX_COLOR, annotate, format_label, scale_box
from detection_capture.detections import Detection, FrameSnapshot


def _blank(width: int, height: int) -> FrameSnapshot:
    return FrameSnapshot(np.zeros((height, width, 3), dtype=np.uint8))


def test_scale_box_multiplies_by_frame_dimensions() -> None:
    assert scale_box((0.1, 0.2, 0.5, 0.6), 100, 100) == pytest.approx((10, 20, 50, 60))


def test_scale_box_uses_width_for_x_and_height_for_y() -> None:
    assert scale_box((0.25, 0.5, 0.75, 1.0), 640, 480) == (160.0, 240.0, 480.0, 480.0)


def test_scale_box_at_unit_scale_returns_original_box() -> None:
    box = (0.13, 0.27, 0.61, 0.94)
    assert scale_box(box, 1, 1) == box


def test_box_is_drawn_at_pixel_coordinates() -> None:
    frame = _blank(100, 100)
    detection = Detection(label="cat", confidence=0.9, box=(0.1, 0.2, 0.5, 0.6))

    result = annotate(frame, [detection], 1)

    # Top and left edges of the (10, 20, 50, 60) rectangle.
    assert tuple(result.pixels[20, 30]) == BOX_COLOR
    assert tuple(result.pixels[40, 10]) == BOX_COLOR
    # Inside the box stays untouched.
    assert tuple(result.pixels[40, 30]) == (0, 0, 0)


def test_annotate_does_not_mutate_input() -> None:
    frame = _blank(80, 60)
    detection = Detection(label="dog", confidence=0.75, box=(0.1, 0.1, 0.9, 0.9))

    result = annotate(frame, [detection], 1)

    assert not frame.pixels.any()
    assert result.pixels.shape == frame.pixels.shape
    assert result.pixels.any()


def test_annotate_is_deterministic() -> None:
    frame = _blank(120, 90)
    detections = [
        Detection(label="person", confidence=0.912, box=(0.1, 0.2, 0.4, 0.8)),
        Detection(label="person", confidence=0.5, box=(0.5, 0.2, 0.9, 0.8)),
    ]

    first = annotate(frame, detections, 2)
    second = annotate(frame, detections, 2)

    np.testing.assert_array_equal(first.pixels, second.pixels)


def test_caption_drawn_without_detections() -> None:
    frame = _blank(200, 100)

    result = annotate(frame, [], 0)

    # Caption sits near the bottom-left corner; the top half stays empty.
    assert result.pixels[50:, :120].any()
    assert not result.pixels[:40].any()


def test_label_formats_confidence_to_two_decimals() -> None:
    detection = Detection(label="person", confidence=0.8765, box=(0, 0, 1, 1))
    assert format_label(detection) == "person (0.88)"
