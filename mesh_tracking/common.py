"""Objects that are shared across multiple modules."""
from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

# (height, width) of the source frame, fixed for a session
FrameSize = Tuple[int, int]


class GeometryError(ValueError):
    """A rect, frame size or padding that no transform can work with."""


class ContractViolation(ValueError):
    """Collaborator output or anchor table does not match what the pipeline expects."""


class TrackingMode(enum.Enum):
    DETECTING = "detecting"
    TRACKING = "tracking"


@dataclass(frozen=True)
class Rect:
    """
    Axis-aligned face rectangle in source-frame pixels.
    ``confidence`` is a probability once it has been through a sigmoid.
    """
    confidence: float
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x1 + self.x2) / 2.0, (self.y1 + self.y2) / 2.0

    def corners(self) -> Tuple[float, float, float, float]:
        return self.x1, self.y1, self.x2, self.y2

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in self.corners())


@dataclass(frozen=True)
class Anchor:
    """One row of the detector's anchor table (normalized centre + size)."""
    cx: float
    cy: float
    w: float
    h: float


@dataclass(frozen=True)
class LetterboxPadding:
    """
    Layout of the source image inside the square detector input.
    The resized content sits at (left, top); the rest is zero padding.
    """
    resized_height: int
    resized_width: int
    top: int
    bottom: int
    left: int
    right: int


@dataclass(frozen=True)
class MeshResult:
    confidence: float
    landmarks: np.ndarray          # (K, 3) source-frame pixels, z untouched
    rect: Optional[Rect]           # landmark bounds, confidence fixed at 1


@dataclass(frozen=True)
class FrameResult:
    """
    Everything the pipeline hands to rendering for one frame.
    ``landmarks`` is only set when the mesh stage confirmed the face.
    """
    rect: Optional[Rect]
    landmarks: Optional[np.ndarray]
    mode: TrackingMode
    detector_called: bool
    mesh_called: bool
