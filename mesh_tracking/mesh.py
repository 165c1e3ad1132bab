# mesh.py
"""Maps mesh-model output from crop space back onto the source frame."""
from __future__ import annotations

import math

import numpy as np

from mesh_tracking.common import ContractViolation, MeshResult, Rect
from mesh_tracking.geometry import from_crop_space


def map_mesh(landmarks, confidence, rect: Rect, mesh_size: float = 1.0) -> MeshResult:
    """
    Parameters
    ----------
    landmarks : flat or (K, 3) sequence of (x, y, z), with ``mesh_size``
                spanning the crop on x and y
    confidence: scalar (or 1-element array) face probability from the model
    rect      : the exact source-frame box the crop was cut from
    mesh_size : crop-space extent of the model output (1.0 when normalized)

    Returns the landmarks in source pixels and their bounding rect. A
    non-finite confidence or landmark coordinate comes back as confidence 0
    and no rect.
    """
    pts = np.asarray(landmarks, dtype=np.float64)
    if pts.size == 0 or pts.size % 3:
        raise ContractViolation(f"Mesh output of {pts.size} values is not a set of (x, y, z)")
    conf_arr = np.asarray(confidence, dtype=np.float64).reshape(-1)
    if conf_arr.size != 1:
        raise ContractViolation(f"Mesh confidence has {conf_arr.size} values")

    mapped = from_crop_space(pts.reshape(-1, 3), rect, mesh_size)
    conf = float(conf_arr[0])
    if not math.isfinite(conf) or not np.isfinite(mapped).all():
        return MeshResult(0.0, mapped, None)

    x_min, y_min = mapped[:, :2].min(axis=0)
    x_max, y_max = mapped[:, :2].max(axis=0)
    bounds = Rect(1.0, float(x_min), float(y_min), float(x_max), float(y_max))
    return MeshResult(conf, mapped, bounds)
