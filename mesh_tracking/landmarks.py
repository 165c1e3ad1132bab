# landmarks.py
"""MediaPipe FaceMesh adapter used as the mesh model on pre-cut face crops."""
from __future__ import annotations

import logging
from typing import Tuple

import numpy as np

from mesh_tracking.config import MeshConfig

log = logging.getLogger(__name__)


class MediaPipeMeshModel:
    """
    Runs FaceMesh in static-image mode on the square crop. Landmarks come back
    normalized to the crop, so pair this with ``mesh_output_scale=1.0``.

    The solution API does not expose the face-presence score, so a found face
    reports confidence 1.0 and a miss reports 0.0.
    """

    def __init__(self, config: MeshConfig, face_mesh=None):
        self.config = config
        if face_mesh is None:
            try:
                import mediapipe as mp
            except ImportError as exc:
                raise RuntimeError(
                    "[Mesh] mediapipe is required for MediaPipeMeshModel "
                    "(pip install mediapipe)"
                ) from exc
            face_mesh = mp.solutions.face_mesh.FaceMesh(
                static_image_mode=True,
                max_num_faces=1,
                refine_landmarks=config.refine_landmarks,
                min_detection_confidence=config.min_detection_confidence,
            )
            log.info("[Mesh] MediaPipe FaceMesh ready")
        self.face_mesh = face_mesh

    def __call__(self, crop: np.ndarray) -> Tuple[np.ndarray, float]:
        rgb = np.ascontiguousarray(np.clip(crop * 255.0, 0, 255).astype(np.uint8))
        rgb.flags.writeable = False
        results = self.face_mesh.process(rgb)

        if not results.multi_face_landmarks:
            # Placeholder point so the output stays well-formed; confidence 0 discards it.
            return np.zeros((1, 3), dtype=np.float32), 0.0

        points = results.multi_face_landmarks[0].landmark
        return np.array([(p.x, p.y, p.z) for p in points], dtype=np.float32), 1.0

    def close(self) -> None:
        self.face_mesh.close()
