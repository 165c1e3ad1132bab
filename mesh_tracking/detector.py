# detector.py
"""OpenCV DNN adapter for BlazeFace-style face detectors."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Tuple

import cv2
import numpy as np

from mesh_tracking.common import ContractViolation
from mesh_tracking.config import DetectorConfig

log = logging.getLogger(__name__)

_BACKENDS = {
    "cpu": (cv2.dnn.DNN_BACKEND_OPENCV, cv2.dnn.DNN_TARGET_CPU),
    "opencl": (cv2.dnn.DNN_BACKEND_OPENCV, cv2.dnn.DNN_TARGET_OPENCL),
    "cuda": (cv2.dnn.DNN_BACKEND_CUDA, cv2.dnn.DNN_TARGET_CUDA),
}


class DnnFaceDetector:
    """
    Runs a single-class anchor detector on the letterboxed patch and returns
    ``(scores, boxes)``: one logit and one regressor row per anchor.
    """

    def __init__(self, config: DetectorConfig, net=None):
        self.config = config
        self.net = net if net is not None else self._load(config)

    @staticmethod
    def _load(config: DetectorConfig):
        if not config.model_path:
            raise FileNotFoundError("[Detector] No model_path configured")
        path = Path(config.model_path).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"[Detector] Model not found: {path}")
        if config.backend not in _BACKENDS:
            raise ValueError(
                f"[Detector] Unknown backend {config.backend!r}; choose from {sorted(_BACKENDS)}"
            )

        net = cv2.dnn.readNet(str(path))
        backend, target = _BACKENDS[config.backend]
        net.setPreferableBackend(backend)
        net.setPreferableTarget(target)
        log.info("[Detector] Loaded %s (backend=%s)", path.name, config.backend)
        return net

    def __call__(self, patch: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        blob = np.ascontiguousarray(patch, dtype=np.float32)[np.newaxis]
        if not self.config.channels_last:
            blob = np.ascontiguousarray(blob.transpose(0, 3, 1, 2))
        self.net.setInput(blob)
        outputs = self.net.forward(self.net.getUnconnectedOutLayersNames())
        return self.split_outputs(outputs)

    @staticmethod
    def split_outputs(outputs) -> Tuple[np.ndarray, np.ndarray]:
        """
        Tell the classificator tensor (last dim 1) from the regressor tensor
        (last dim >= 4) regardless of the order the model lists them in.
        """
        scores = boxes = None
        for out in outputs:
            arr = np.asarray(out, dtype=np.float32)
            if arr.shape[-1] == 1:
                scores = arr.reshape(-1)
            elif arr.shape[-1] >= 4:
                boxes = arr.reshape(-1, arr.shape[-1])
        if scores is None or boxes is None:
            shapes = [np.shape(o) for o in outputs]
            raise ContractViolation(f"[Detector] Unexpected output shapes {shapes}")
        return scores, boxes

    def close(self) -> None:
        self.net = None
