# tracker.py
"""Detect / track state machine that decides, frame by frame, which model to run."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

import numpy as np

from mesh_tracking.anchors import decode_best_rect
from mesh_tracking.common import (
    ContractViolation,
    FrameResult,
    FrameSize,
    GeometryError,
    MeshResult,
    Rect,
    TrackingMode,
)
from mesh_tracking.config import TrackerConfig
from mesh_tracking.geometry import clamp_rect, letterbox_padding, pad_rect, pixel_rect
from mesh_tracking.mesh import map_mesh
from mesh_tracking.preprocess import FrameScratch, crop_image, frame_scratch, letterbox_image

log = logging.getLogger(__name__)

# patch -> (scores, boxes)
Detector = Callable[[np.ndarray], Tuple[Any, Any]]
# crop -> (landmarks, confidence)
MeshModel = Callable[[np.ndarray], Tuple[Any, Any]]


@dataclass(frozen=True)
class TrackingState:
    mode: TrackingMode = TrackingMode.DETECTING
    last_rect: Optional[Rect] = None    # unpadded mesh box seeding the next frame


class TrackingController:
    """
    Owns the tracking state for one video stream.

    Every frame either runs the detector or, while tracking, reuses the
    previous mesh box grown by ``track_pad_ratio``. The mesh model only runs
    on rects the detector is confident about, and its own confidence decides
    whether the next frame may skip detection. The new state is committed
    only after both models returned, so a failing collaborator leaves the
    state as it was.
    """

    def __init__(
        self,
        frame_size: FrameSize,
        anchors: np.ndarray,
        detector: Detector,
        mesh_model: MeshModel,
        cfg: Optional[TrackerConfig] = None,
    ):
        self.cfg = cfg if cfg is not None else TrackerConfig()
        self.frame_size = (int(frame_size[0]), int(frame_size[1]))
        self.anchors = anchors
        self.detector = detector
        self.mesh_model = mesh_model

        # Fixed for the session
        self.padding = letterbox_padding(self.frame_size, self.cfg.detector_input_size)
        self.state = TrackingState()

        # Diagnostics
        self.frames = 0
        self.detector_calls = 0
        self.mesh_calls = 0

    # ------------------------------------------------------------------ #
    #   L I V E   T U N I N G   A P I
    # ------------------------------------------------------------------ #
    def apply_tuning(
        self,
        *,
        detection_threshold: float | None = None,
        mesh_threshold: float | None = None,
        detection_pad_ratio: float | None = None,
        track_pad_ratio: float | None = None,
    ) -> None:
        """Update thresholds / pad ratios between frames. Negative ratios are ignored."""
        if detection_threshold is not None:
            self.cfg.detection_threshold = float(detection_threshold)
        if mesh_threshold is not None:
            self.cfg.mesh_threshold = float(mesh_threshold)
        if detection_pad_ratio is not None and detection_pad_ratio >= 0:
            self.cfg.detection_pad_ratio = float(detection_pad_ratio)
        if track_pad_ratio is not None and track_pad_ratio >= 0:
            self.cfg.track_pad_ratio = float(track_pad_ratio)

    def reset(self) -> None:
        self.state = TrackingState()

    @property
    def mode(self) -> TrackingMode:
        return self.state.mode

    # ------------------------------------------------------------------ #
    #   S T A G E S
    # ------------------------------------------------------------------ #
    def _detect(self, frame: np.ndarray, scratch: FrameScratch) -> Rect:
        patch = scratch.put("detector_input", letterbox_image(frame, self.padding))
        self.detector_calls += 1
        scores, boxes = _pair(self.detector(patch), "detector")
        return decode_best_rect(
            scores,
            boxes,
            self.anchors,
            self.frame_size,
            self.cfg.detector_input_size,
            self.padding,
        )

    def _refine(self, frame: np.ndarray, rect: Rect, scratch: FrameScratch) -> MeshResult:
        crop_rect = pixel_rect(clamp_rect(rect, self.frame_size))
        crop = scratch.put("mesh_input", crop_image(frame, crop_rect, self.cfg.mesh_input_size))
        self.mesh_calls += 1
        landmarks, confidence = _pair(self.mesh_model(crop), "mesh model")
        return map_mesh(landmarks, confidence, crop_rect, self.cfg.mesh_output_scale)

    # ------------------------------------------------------------------ #
    #   P E R - F R A M E   T R A N S I T I O N
    # ------------------------------------------------------------------ #
    def process(self, frame: np.ndarray) -> FrameResult:
        """Run one RGB frame through the pipeline and commit the new state."""
        if frame.shape[:2] != self.frame_size:
            raise GeometryError(
                f"Frame of size {frame.shape[:2]} does not match session size {self.frame_size}"
            )

        cfg = self.cfg
        prev = self.state
        detector_called = mesh_called = False
        landmarks = None

        with frame_scratch() as scratch:
            if prev.mode is TrackingMode.TRACKING and prev.last_rect is not None:
                rect = pad_rect(prev.last_rect, self.frame_size, cfg.track_pad_ratio)
            else:
                rect = self._detect(frame, scratch)
                detector_called = True

            if not _confident(rect, cfg.detection_threshold):
                new_state = TrackingState()
            else:
                if detector_called:
                    rect = pad_rect(rect, self.frame_size, cfg.detection_pad_ratio)
                mesh = self._refine(frame, rect, scratch)
                mesh_called = True

                if (
                    mesh.confidence > cfg.mesh_threshold
                    and mesh.rect is not None
                    and mesh.rect.width > 0
                    and mesh.rect.height > 0
                ):
                    new_state = TrackingState(TrackingMode.TRACKING, mesh.rect)
                    landmarks = mesh.landmarks
                else:
                    new_state = TrackingState()

        # Commit
        if new_state.mode is not prev.mode:
            log.debug("[Tracker] %s -> %s", prev.mode.value, new_state.mode.value)
        self.state = new_state
        self.frames += 1

        return FrameResult(
            rect=clamp_rect(rect, self.frame_size) if rect.is_finite() else None,
            landmarks=landmarks,
            mode=new_state.mode,
            detector_called=detector_called,
            mesh_called=mesh_called,
        )


def _confident(rect: Rect, threshold: float) -> bool:
    return math.isfinite(rect.confidence) and rect.is_finite() and rect.confidence > threshold


def _pair(output, name: str):
    try:
        first, second = output
    except (TypeError, ValueError) as exc:
        raise ContractViolation(f"{name} must return a pair, got {type(output).__name__}") from exc
    return first, second
