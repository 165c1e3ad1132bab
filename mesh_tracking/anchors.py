# anchors.py
"""Anchor table handling and single-face box decoding for BlazeFace-style detectors."""
from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Sequence

import numpy as np

from mesh_tracking.common import Anchor, ContractViolation, FrameSize, LetterboxPadding, Rect
from mesh_tracking.geometry import detector_scale, from_detector_space

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------- #
#   A N C H O R   T A B L E
# ---------------------------------------------------------------------- #
def generate_anchors(
    input_size: int = 128,
    strides: Sequence[int] = (8, 16, 16, 16),
    anchor_offset: float = 0.5,
) -> np.ndarray:
    """
    SSD anchor layout of the BlazeFace front model with a fixed anchor size.

    Consecutive layers with the same stride share one grid; every layer adds
    two anchors per cell. The defaults give 16x16x2 + 8x8x6 = 896 rows of
    ``(cx, cy, 1, 1)``.
    """
    rows = []
    layer = 0
    while layer < len(strides):
        stride = strides[layer]
        per_cell = 0
        while layer < len(strides) and strides[layer] == stride:
            per_cell += 2
            layer += 1
        grid = int(math.ceil(input_size / stride))
        for y in range(grid):
            cy = (y + anchor_offset) / grid
            for x in range(grid):
                cx = (x + anchor_offset) / grid
                rows.extend([(cx, cy, 1.0, 1.0)] * per_cell)

    table = np.asarray(rows, dtype=np.float64)
    table.setflags(write=False)
    return table


def load_anchors(path: str | Path) -> np.ndarray:
    """
    Read an ``(N, 4)`` anchor table from ``.npy``, ``.json`` (list of rows)
    or plain / comma-separated text. The returned array is read-only.
    """
    path = Path(path).expanduser()
    suffix = path.suffix.lower()
    if suffix == ".npy":
        table = np.load(path)
    elif suffix == ".json":
        with path.open("r", encoding="utf-8") as fp:
            table = np.asarray(json.load(fp))
    else:
        table = np.loadtxt(path, delimiter="," if suffix == ".csv" else None, ndmin=2)

    table = np.array(table, dtype=np.float64)
    if table.ndim != 2 or table.shape[1] != 4 or table.shape[0] == 0:
        raise ContractViolation(f"Anchor table {path} has shape {table.shape}, expected (N, 4)")
    table.setflags(write=False)
    log.info("[Anchors] Loaded %d anchors from %s", table.shape[0], path)
    return table


def anchor_at(anchors: np.ndarray, index: int) -> Anchor:
    if not 0 <= index < len(anchors):
        raise ContractViolation(f"Anchor index {index} outside table of {len(anchors)}")
    cx, cy, w, h = (float(v) for v in anchors[index][:4])
    return Anchor(cx, cy, w, h)


# ---------------------------------------------------------------------- #
#   D E C O D E
# ---------------------------------------------------------------------- #
def sigmoid(logit: float) -> float:
    with np.errstate(over="ignore"):
        return float(1.0 / (1.0 + np.exp(-np.float64(logit))))


def select_best_anchor(scores) -> int:
    """
    Index of the highest logit; ties go to the lowest index.
    Non-finite logits never win, and when nothing is finite index 0 is returned.
    """
    logits = np.asarray(scores, dtype=np.float64).reshape(-1)
    if logits.size == 0:
        raise ContractViolation("Detector returned no scores")
    finite = np.isfinite(logits)
    if not finite.any():
        return 0
    return int(np.argmax(np.where(finite, logits, -np.inf)))


def decode_best_rect(
    scores,
    boxes,
    anchors: np.ndarray,
    frame_size: FrameSize,
    detector_size: int,
    padding: LetterboxPadding,
) -> Rect:
    """
    Decode the single most confident box into source-frame corners.

    ``boxes`` rows start with ``(dx, dy, w, h)`` in detector pixels, centre
    relative to the anchor; any extra columns (keypoints) are ignored.
    The result is neither padded nor clamped. A non-finite logit gives
    confidence 0.
    """
    logits = np.asarray(scores, dtype=np.float64).reshape(-1)
    boxes = np.asarray(boxes, dtype=np.float64)
    if boxes.ndim < 2:
        raise ContractViolation(f"Detector boxes have shape {boxes.shape}")
    boxes = boxes.reshape(-1, boxes.shape[-1])

    if boxes.shape[1] < 4:
        raise ContractViolation(f"Detector boxes have {boxes.shape[1]} columns, need at least 4")
    if not (logits.size == boxes.shape[0] == len(anchors)):
        raise ContractViolation(
            f"Anchor count mismatch: {logits.size} scores, "
            f"{boxes.shape[0]} boxes, {len(anchors)} anchors"
        )

    index = select_best_anchor(logits)
    anchor = anchor_at(anchors, index)
    logit = logits[index]
    confidence = sigmoid(logit) if math.isfinite(logit) else 0.0

    dx, dy, bw, bh = boxes[index, :4]
    centre = from_detector_space(
        (dx + anchor.cx * detector_size, dy + anchor.cy * detector_size),
        frame_size,
        detector_size,
        padding,
    )
    scale = detector_scale(frame_size, padding)
    half_w = float(bw * anchor.w * scale / 2.0)
    half_h = float(bh * anchor.h * scale / 2.0)

    cx, cy = float(centre[0]), float(centre[1])
    return Rect(confidence, cx - half_w, cy - half_h, cx + half_w, cy + half_h)
