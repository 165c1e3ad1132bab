# preprocess.py
"""Builds model inputs from a frame and scopes them to that frame."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Dict, Iterator

import cv2
import numpy as np

from mesh_tracking.common import GeometryError, LetterboxPadding, Rect
from mesh_tracking.geometry import round_half_up


def letterbox_image(image: np.ndarray, padding: LetterboxPadding) -> np.ndarray:
    """
    Resize an RGB uint8 frame into the detector square keeping the aspect
    ratio. Values are scaled to [-1, 1]; the letterbox border is 0.
    """
    resized = cv2.resize(
        image,
        (padding.resized_width, padding.resized_height),
        interpolation=cv2.INTER_LINEAR,
    )
    scaled = resized.astype(np.float32) / 127.5 - 1.0
    return cv2.copyMakeBorder(
        scaled,
        padding.top,
        padding.bottom,
        padding.left,
        padding.right,
        cv2.BORDER_CONSTANT,
        value=(0.0, 0.0, 0.0),
    )


def crop_image(image: np.ndarray, rect: Rect, mesh_size: int) -> np.ndarray:
    """Cut ``rect`` out of an RGB uint8 frame, resize to ``mesh_size`` square, scale to [0, 1]."""
    x1, y1 = round_half_up(rect.x1), round_half_up(rect.y1)
    x2, y2 = round_half_up(rect.x2), round_half_up(rect.y2)
    if x2 - x1 <= 0 or y2 - y1 <= 0:
        raise GeometryError(f"Cannot crop degenerate rect {rect!r}")

    crop = np.ascontiguousarray(image[y1:y2, x1:x2])
    resized = cv2.resize(crop, (mesh_size, mesh_size), interpolation=cv2.INTER_LINEAR)
    return resized.astype(np.float32) / 255.0


class FrameScratch:
    """Named per-frame buffers (model inputs); all dropped on release."""

    def __init__(self) -> None:
        self._buffers: Dict[str, np.ndarray] = {}

    def put(self, name: str, buffer: np.ndarray) -> np.ndarray:
        self._buffers[name] = buffer
        return buffer

    def release(self) -> None:
        self._buffers.clear()

    def __len__(self) -> int:
        return len(self._buffers)


@contextmanager
def frame_scratch() -> Iterator[FrameScratch]:
    scratch = FrameScratch()
    try:
        yield scratch
    finally:
        scratch.release()
