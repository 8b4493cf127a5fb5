"""
Tests for the raw output decoder.
"""

import numpy as np
import pytest

from detection.decoder import decode_output
from fakes import make_raw_output


def _xywh(candidate):
    return candidate.box.as_xywh()


@pytest.mark.parametrize("frame_w,frame_h,expected", [
    # x = (320 - 50) * fw/640, y = (240 - 50) * fh/640
    (640, 480, (270.0, 142.5, 100.0, 75.0)),
    (1280, 720, (540.0, 213.75, 200.0, 112.5)),
    (480, 640, (202.5, 190.0, 75.0, 100.0)),
])
def test_coordinate_transform(frame_w, frame_h, expected):
    raw = make_raw_output([(320, 240, 100, 100, {0: 0.9})])

    grouped = decode_output(raw, frame_w, frame_h, [0, 76])

    assert len(grouped[0]) == 1
    assert grouped[76] == []
    assert _xywh(grouped[0][0]) == pytest.approx(expected)
    assert grouped[0][0].score == pytest.approx(0.9)


def test_threshold_is_inclusive():
    raw = make_raw_output([
        (100, 100, 10, 10, {0: 0.5}),
        (200, 200, 10, 10, {0: 0.49}),
    ])

    grouped = decode_output(raw, 640, 640, [0], confidence_threshold=0.5)

    assert len(grouped[0]) == 1
    assert grouped[0][0].score == pytest.approx(0.5)


def test_classes_are_independent():
    # One row scoring for both monitored classes yields a candidate in each group
    raw = make_raw_output([(320, 320, 50, 50, {0: 0.7, 76: 0.8})])

    grouped = decode_output(raw, 640, 640, [0, 76])

    assert len(grouped[0]) == 1
    assert len(grouped[76]) == 1
    assert grouped[76][0].class_index == 76


def test_unmonitored_classes_ignored():
    raw = make_raw_output([(320, 320, 50, 50, {5: 0.99})])

    grouped = decode_output(raw, 640, 640, [0, 76])

    assert grouped == {0: [], 76: []}


def test_accepts_unbatched_output():
    raw = make_raw_output([(320, 320, 64, 64, {0: 0.9})])[0]

    grouped = decode_output(raw, 640, 640, [0])

    assert _xywh(grouped[0][0]) == pytest.approx((288, 288, 64, 64))


def test_custom_input_size():
    raw = make_raw_output([(160, 160, 32, 32, {0: 0.9})])

    grouped = decode_output(raw, 640, 480, [0], input_size=320)

    assert _xywh(grouped[0][0]) == pytest.approx((288, 216, 64, 48))


def test_does_not_alias_raw_tensor():
    raw = make_raw_output([(320, 320, 64, 64, {0: 0.9})])
    grouped = decode_output(raw, 640, 640, [0])

    raw[:] = 0

    assert grouped[0][0].score == pytest.approx(0.9)
    assert grouped[0][0].box.width == pytest.approx(64)


def test_rejects_bad_shape():
    with pytest.raises(ValueError):
        decode_output(np.zeros((2, 84, 10), dtype=np.float32), 640, 480, [0])
    with pytest.raises(ValueError):
        decode_output(np.zeros((1, 4, 10), dtype=np.float32), 640, 480, [0])


def test_rejects_class_outside_model():
    raw = make_raw_output([], num_classes=10)
    with pytest.raises(ValueError):
        decode_output(raw, 640, 480, [76])
