# geometry.py
"""
Coordinate transforms between the three spaces the pipeline works in
(source frame, letterboxed detector input, square mesh crop) plus the
rect padding / clamping helpers.

All functions are pure. Points may be a single ``(x, y)`` / ``(x, y, z)``
or an ``(K, 2|3)`` array; anything past the first two columns passes through.
"""
from __future__ import annotations

import math
from typing import Tuple

import numpy as np

from mesh_tracking.common import FrameSize, GeometryError, LetterboxPadding, Rect


def round_half_up(value: float) -> int:
    """Round .5 towards +inf (``round`` in Python 3 rounds half to even)."""
    return int(math.floor(value + 0.5))


def _check_frame(frame_size: FrameSize) -> Tuple[int, int]:
    h, w = frame_size
    if h <= 0 or w <= 0:
        raise GeometryError(f"Degenerate frame size {frame_size!r}")
    return int(h), int(w)


def _rect_extent(rect: Rect) -> Tuple[float, float]:
    w, h = rect.width, rect.height
    # Written so that NaN extents fail too.
    if not (w > 0 and h > 0):
        raise GeometryError(f"Degenerate rect {rect!r}")
    return w, h


# ---------------------------------------------------------------------- #
#   D E T E C T O R   S P A C E
# ---------------------------------------------------------------------- #
def letterbox_padding(frame_size: FrameSize, detector_size: int) -> LetterboxPadding:
    """
    Fit the frame into a ``detector_size`` square keeping its aspect ratio.
    The longer side fills the square; the shorter side is centred, with the
    odd pixel (if any) going before the content.
    """
    h, w = _check_frame(frame_size)
    if detector_size <= 0:
        raise GeometryError(f"Degenerate detector size {detector_size!r}")

    if h > w:
        resized = (detector_size, max(1, round_half_up(w * detector_size / h)))
    elif w > h:
        resized = (max(1, round_half_up(h * detector_size / w)), detector_size)
    else:
        resized = (detector_size, detector_size)

    pad_h = detector_size - resized[0]
    pad_w = detector_size - resized[1]
    return LetterboxPadding(
        resized_height=resized[0],
        resized_width=resized[1],
        top=int(math.ceil(pad_h / 2)),
        bottom=pad_h // 2,
        left=int(math.ceil(pad_w / 2)),
        right=pad_w // 2,
    )


def detector_scale(frame_size: FrameSize, padding: LetterboxPadding) -> float:
    """Source pixels per detector pixel."""
    h, _ = _check_frame(frame_size)
    if padding.resized_height <= 0:
        raise GeometryError(f"Degenerate padding {padding!r}")
    return h / padding.resized_height


def _check_padding(padding: LetterboxPadding, detector_size: int) -> None:
    if (
        padding.top + padding.resized_height + padding.bottom != detector_size
        or padding.left + padding.resized_width + padding.right != detector_size
    ):
        raise GeometryError(
            f"Padding {padding!r} does not fill a {detector_size}px detector input"
        )


def to_detector_space(
    point,
    frame_size: FrameSize,
    detector_size: int,
    padding: LetterboxPadding,
) -> np.ndarray:
    _check_padding(padding, detector_size)
    scale = detector_scale(frame_size, padding)
    out = np.array(point, dtype=np.float64)
    out[..., 0] = out[..., 0] / scale + padding.left
    out[..., 1] = out[..., 1] / scale + padding.top
    return out


def from_detector_space(
    point,
    frame_size: FrameSize,
    detector_size: int,
    padding: LetterboxPadding,
) -> np.ndarray:
    _check_padding(padding, detector_size)
    scale = detector_scale(frame_size, padding)
    out = np.array(point, dtype=np.float64)
    out[..., 0] = (out[..., 0] - padding.left) * scale
    out[..., 1] = (out[..., 1] - padding.top) * scale
    return out


# ---------------------------------------------------------------------- #
#   C R O P   S P A C E
# ---------------------------------------------------------------------- #
def to_crop_space(point, rect: Rect, crop_size: float = 1.0) -> np.ndarray:
    """Map source pixels into a ``crop_size`` square covering ``rect``."""
    w, h = _rect_extent(rect)
    if crop_size <= 0:
        raise GeometryError(f"Degenerate crop size {crop_size!r}")
    out = np.array(point, dtype=np.float64)
    out[..., 0] = (out[..., 0] - rect.x1) * (crop_size / w)
    out[..., 1] = (out[..., 1] - rect.y1) * (crop_size / h)
    return out


def from_crop_space(point, rect: Rect, crop_size: float = 1.0) -> np.ndarray:
    w, h = _rect_extent(rect)
    if crop_size <= 0:
        raise GeometryError(f"Degenerate crop size {crop_size!r}")
    out = np.array(point, dtype=np.float64)
    out[..., 0] = out[..., 0] * (w / crop_size) + rect.x1
    out[..., 1] = out[..., 1] * (h / crop_size) + rect.y1
    return out


# ---------------------------------------------------------------------- #
#   R E C T   P A D   /   C L A M P
# ---------------------------------------------------------------------- #
def clamp_rect(rect: Rect, frame_size: FrameSize) -> Rect:
    """
    Clamp all four bounds into ``[0, w-1] x [0, h-1]``.
    A rect entirely off-frame collapses onto the nearest border.
    """
    h, w = _check_frame(frame_size)
    if not rect.is_finite():
        raise GeometryError(f"Non-finite rect {rect!r}")
    x1 = min(max(rect.x1, 0.0), w - 1.0)
    y1 = min(max(rect.y1, 0.0), h - 1.0)
    x2 = min(max(rect.x2, x1), w - 1.0)
    y2 = min(max(rect.y2, y1), h - 1.0)
    return Rect(rect.confidence, float(x1), float(y1), float(x2), float(y2))


def pad_rect(rect: Rect, frame_size: FrameSize, ratio: float) -> Rect:
    """
    Grow ``rect`` by ``ratio`` of its size on every side, snap it to whole
    pixels and clamp it to the frame.

    Not idempotent: each call grows the box again, so pad a given rect
    once per frame.
    """
    if ratio < 0:
        raise GeometryError(f"Negative pad ratio {ratio!r}")
    if not rect.is_finite():
        raise GeometryError(f"Non-finite rect {rect!r}")

    w_pad = round_half_up(rect.width * ratio)
    h_pad = round_half_up(rect.height * ratio)
    padded = Rect(
        rect.confidence,
        round_half_up(rect.x1) - w_pad,
        round_half_up(rect.y1) - h_pad,
        round_half_up(rect.x2) + w_pad,
        round_half_up(rect.y2) + h_pad,
    )
    return clamp_rect(padded, frame_size)


def pixel_rect(rect: Rect) -> Rect:
    """Snap corners to whole pixels (the exact box a crop will cover)."""
    if not rect.is_finite():
        raise GeometryError(f"Non-finite rect {rect!r}")
    return Rect(
        rect.confidence,
        float(round_half_up(rect.x1)),
        float(round_half_up(rect.y1)),
        float(round_half_up(rect.x2)),
        float(round_half_up(rect.y2)),
    )
