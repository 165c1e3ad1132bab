# camera.py
"""Thin VideoCapture wrapper that reports the session frame size."""
from __future__ import annotations

import logging
import time
from typing import Optional, Tuple

import cv2
import numpy as np

from mesh_tracking.config import CameraConfig

log = logging.getLogger(__name__)


class Camera:
    def __init__(self, config: CameraConfig) -> None:
        self.config = config
        self.cap: Optional[cv2.VideoCapture] = None

        # Exposed runtime-queryable values
        self.actual_width: int = 0
        self.actual_height: int = 0
        self.actual_fps: float = 0.0
        self.actual_fourcc_str: str = ""

    @staticmethod
    def _get_fourcc_str(fourcc_val: int) -> str:
        if fourcc_val == 0:
            return ""
        return "".join(chr((fourcc_val >> (8 * i)) & 0xFF) for i in range(4))

    # ------------------------------------------------------------------ #
    #   P U B L I C   A P I
    # ------------------------------------------------------------------ #
    def open(self) -> bool:
        backend = cv2.CAP_V4L2 if self.config.use_v4l2 else cv2.CAP_ANY
        self.cap = cv2.VideoCapture(self.config.device_index, backend)
        if not self.cap or not self.cap.isOpened():
            log.error("[Camera] Could not open device %s", self.config.device_index)
            self.cap = None
            return False

        if self.config.fourcc_str:
            self.cap.set(cv2.CAP_PROP_FOURCC, cv2.VideoWriter_fourcc(*self.config.fourcc_str))
        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
        if self.config.fps_request > 0:
            self.cap.set(cv2.CAP_PROP_FPS, self.config.fps_request)

        time.sleep(0.1)  # Let driver settle

        self.actual_fourcc_str = self._get_fourcc_str(int(self.cap.get(cv2.CAP_PROP_FOURCC)))
        self.actual_width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.actual_height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        self.actual_fps = self.cap.get(cv2.CAP_PROP_FPS)

        log.info(
            "[Camera] %dx%d@%.1f FPS (FOURCC=%r)",
            self.actual_width,
            self.actual_height,
            self.actual_fps,
            self.actual_fourcc_str,
        )
        if self.actual_width == 0 or self.actual_height == 0:
            log.error("[Camera] Camera returned zero resolution")
            self.release()
            return False
        return True

    def read(self) -> Tuple[float, Optional[np.ndarray]]:
        """Returns (timestamp, RGB frame) or (timestamp, None) on failure."""
        ts = time.time()
        if not self.is_opened():
            return ts, None
        ret, frame = self.cap.read()
        if not ret or frame is None:
            return ts, None
        if frame.ndim == 2:
            return ts, cv2.cvtColor(frame, cv2.COLOR_GRAY2RGB)
        if frame.shape[2] == 4:
            return ts, cv2.cvtColor(frame, cv2.COLOR_BGRA2RGB)
        return ts, cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

    def is_opened(self) -> bool:
        return bool(self.cap and self.cap.isOpened())

    def release(self) -> None:
        if self.cap:
            log.info("[Camera] Releasing capture device")
            self.cap.release()
            self.cap = None

    @property
    def frame_size(self) -> Tuple[int, int]:
        """(height, width) of the frames ``read`` returns."""
        return self.actual_height, self.actual_width
