import numpy as np
import pytest

from mesh_tracking.common import GeometryError, LetterboxPadding, Rect
from mesh_tracking.geometry import (
    clamp_rect,
    detector_scale,
    from_crop_space,
    from_detector_space,
    letterbox_padding,
    pad_rect,
    pixel_rect,
    round_half_up,
    to_crop_space,
    to_detector_space,
)


def test_round_half_up_matches_pixel_rounding():
    assert round_half_up(2.5) == 3
    assert round_half_up(-2.5) == -2
    assert round_half_up(2.4999) == 2


def test_letterbox_landscape_frame():
    pad = letterbox_padding((480, 640), 128)
    assert pad == LetterboxPadding(96, 128, 16, 16, 0, 0)
    assert detector_scale((480, 640), pad) == pytest.approx(5.0)


def test_letterbox_portrait_and_square_frames():
    assert letterbox_padding((640, 480), 128) == LetterboxPadding(128, 96, 0, 0, 16, 16)
    assert letterbox_padding((300, 300), 128) == LetterboxPadding(128, 128, 0, 0, 0, 0)


def test_letterbox_odd_padding_goes_before_content():
    pad = letterbox_padding((100, 129), 128)
    assert pad.resized_height == 99
    assert (pad.top, pad.bottom) == (15, 14)


def test_letterbox_rejects_degenerate_frame():
    with pytest.raises(GeometryError):
        letterbox_padding((0, 640), 128)


def test_to_detector_space_known_points():
    pad = letterbox_padding((480, 640), 128)
    assert to_detector_space((0, 0), (480, 640), 128, pad) == pytest.approx([0, 16])
    assert to_detector_space((640, 480), (480, 640), 128, pad) == pytest.approx([128, 112])


@pytest.mark.parametrize("frame_size", [(480, 640), (640, 480), (100, 129), (720, 1280), (333, 333)])
def test_detector_space_round_trip(frame_size):
    pad = letterbox_padding(frame_size, 128)
    rng = np.random.default_rng(7)
    h, w = frame_size
    pts = rng.uniform([0, 0, -1], [w, h, 1], size=(50, 3))

    back = from_detector_space(to_detector_space(pts, frame_size, 128, pad), frame_size, 128, pad)
    np.testing.assert_allclose(back, pts, atol=1e-3)


def test_detector_space_rejects_mismatched_padding():
    pad = letterbox_padding((480, 640), 128)
    with pytest.raises(GeometryError):
        to_detector_space((1, 1), (480, 640), 256, pad)


def test_crop_space_maps_corners():
    rect = Rect(1.0, 10, 10, 110, 110)
    pts = from_crop_space([(0.0, 0.0, 0.0), (1.0, 1.0, 0.0)], rect)
    np.testing.assert_allclose(pts, [(10, 10, 0), (110, 110, 0)])
    np.testing.assert_allclose(to_crop_space(pts, rect), [(0, 0, 0), (1, 1, 0)])


def test_crop_space_scales_axes_independently_and_keeps_z():
    rect = Rect(1.0, 20, 40, 120, 240)
    out = from_crop_space((96.0, 96.0, 5.0), rect, crop_size=192)
    assert out == pytest.approx([70.0, 140.0, 5.0])


@pytest.mark.parametrize(
    "rect",
    [Rect(1.0, 10, 10, 10, 50), Rect(1.0, 10, 60, 50, 50), Rect(1.0, float("nan"), 0, 5, 5)],
)
def test_crop_space_rejects_degenerate_rects(rect):
    with pytest.raises(GeometryError):
        from_crop_space((0.5, 0.5), rect)
    with pytest.raises(GeometryError):
        to_crop_space((0.5, 0.5), rect)


def _assert_in_frame(rect, frame_size):
    h, w = frame_size
    assert 0 <= rect.x1 <= rect.x2 <= w - 1
    assert 0 <= rect.y1 <= rect.y2 <= h - 1


@pytest.mark.parametrize("frame_size", [(480, 640), (1, 1), (37, 1000), (1080, 1920)])
def test_clamp_and_pad_always_land_inside_frame(frame_size):
    rng = np.random.default_rng(11)
    h, w = frame_size
    for _ in range(200):
        x1, x2 = rng.uniform(-2 * w, 3 * w, size=2)
        y1, y2 = rng.uniform(-2 * h, 3 * h, size=2)
        rect = Rect(0.5, x1, y1, x2, y2)
        _assert_in_frame(clamp_rect(rect, frame_size), frame_size)
        if x2 >= x1 and y2 >= y1:
            _assert_in_frame(pad_rect(rect, frame_size, rng.uniform(0, 1)), frame_size)


def test_pad_rect_grows_symmetrically():
    padded = pad_rect(Rect(0.95, 100, 100, 200, 200), (480, 640), 0.25)
    assert padded == Rect(0.95, 75, 75, 225, 225)


def test_pad_rect_clamps_at_borders():
    padded = pad_rect(Rect(0.9, 10, 20, 110, 100), (480, 640), 0.25)
    assert padded.corners() == (0, 0, 135, 120)


def test_pad_rect_is_monotonic_and_noop_at_zero():
    rng = np.random.default_rng(3)
    frame = (480, 640)
    for _ in range(100):
        x1, y1 = rng.integers(0, 300, size=2)
        rect = Rect(1.0, float(x1), float(y1), float(x1 + rng.integers(1, 300)), float(y1 + rng.integers(1, 170)))
        for ratio in (0.0, 0.1, 0.25, 1.0):
            padded = pad_rect(rect, frame, ratio)
            assert padded.width >= rect.width
            assert padded.height >= rect.height
        unpadded = pad_rect(rect, frame, 0.0)
        assert (unpadded.width, unpadded.height) == (rect.width, rect.height)


def test_pad_rect_keeps_growing_on_repeat_calls():
    frame = (480, 640)
    once = pad_rect(Rect(1.0, 200, 200, 240, 240), frame, 0.25)
    twice = pad_rect(once, frame, 0.25)
    assert twice.width > once.width


def test_pad_rect_rejects_negative_ratio():
    with pytest.raises(GeometryError):
        pad_rect(Rect(1.0, 0, 0, 10, 10), (480, 640), -0.1)


def test_clamp_rect_collapses_offscreen_rect():
    clamped = clamp_rect(Rect(1.0, 700, 500, 800, 600), (480, 640))
    assert clamped.corners() == (639, 479, 639, 479)


def test_pixel_rect_snaps_corners():
    assert pixel_rect(Rect(0.3, 1.5, 2.4, 9.5, 10.6)).corners() == (2, 2, 10, 11)
