# processor.py
"""Glue logic that wires camera -> tracking controller -> overlay window."""
from __future__ import annotations

import logging
import time
from typing import Optional

import cv2
import numpy as np

from mesh_tracking.anchors import generate_anchors, load_anchors
from mesh_tracking.camera import Camera
from mesh_tracking.common import FrameResult, GeometryError
from mesh_tracking.config import CameraConfig, DetectorConfig, MeshConfig, TrackerConfig
from mesh_tracking.detector import DnnFaceDetector
from mesh_tracking.helpers import FpsMeter
from mesh_tracking.landmarks import MediaPipeMeshModel
from mesh_tracking.live_tuning import RuntimeParamWatcher
from mesh_tracking.tracker import TrackingController

log = logging.getLogger(__name__)

WINDOW_NAME = "Face Mesh Tracking"


def draw_overlay(img: np.ndarray, result: Optional[FrameResult], fps: Optional[float]) -> None:
    """Draw the face rect, landmark points and FPS onto a BGR image in place."""
    if fps is not None:
        cv2.putText(img, f"{round(fps)} FPS", (5, 20), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (0, 0, 255), 2)
    if result is None:
        return

    if result.landmarks is not None:
        if result.rect is not None:
            x1, y1, x2, y2 = (int(round(v)) for v in result.rect.corners())
            cv2.rectangle(img, (x1, y1), (x2, y2), (128, 0, 128), 2)
        for x, y in np.rint(result.landmarks[:, :2]).astype(int):
            cv2.circle(img, (int(x), int(y)), 2, (0, 255, 0), -1)

    label = result.mode.value.upper()
    cv2.putText(img, label, (5, 45), cv2.FONT_HERSHEY_SIMPLEX, 0.5, (0, 255, 255), 1)


class TrackingProcessor:
    """The main high-level orchestrator."""

    def __init__(
        self,
        camera_cfg: CameraConfig,
        detector_cfg: DetectorConfig,
        mesh_cfg: MeshConfig,
        tracker_cfg: TrackerConfig,
        params_path: Optional[str] = None,
        show_window: bool = True,
    ):
        self.camera_cfg = camera_cfg
        self.detector_cfg = detector_cfg
        self.mesh_cfg = mesh_cfg
        self.tracker_cfg = tracker_cfg
        self.show_window = show_window

        self.camera = Camera(camera_cfg)
        self.detector: Optional[DnnFaceDetector] = None
        self.mesh_model: Optional[MediaPipeMeshModel] = None
        self.controller: Optional[TrackingController] = None
        self.watcher = RuntimeParamWatcher(params_path) if params_path else None
        self.fps = FpsMeter(alpha=0.05)

        # Recovery
        self.cam_reopens = 0
        self.total_frames = 0
        self.skipped_frames = 0

    # ---------------------------------------------------------------------
    #                         Setup / teardown
    # ---------------------------------------------------------------------
    def setup(self) -> bool:
        """Open camera and build the models; False if the camera is unavailable."""
        if not self.camera.open():
            return False

        if self.detector_cfg.anchors_path:
            anchors = load_anchors(self.detector_cfg.anchors_path)
        else:
            anchors = generate_anchors(self.tracker_cfg.detector_input_size)

        self.detector = DnnFaceDetector(self.detector_cfg)
        self.mesh_model = MediaPipeMeshModel(self.mesh_cfg)
        self.controller = TrackingController(
            self.camera.frame_size,
            anchors,
            self.detector,
            self.mesh_model,
            self.tracker_cfg,
        )

        if self.show_window:
            cv2.namedWindow(WINDOW_NAME, cv2.WINDOW_NORMAL)
        log.info("[Processor] Setup complete - press 'q' to quit.")
        return True

    def cleanup(self) -> None:
        log.info("[Processor] Cleaning up...")
        self.camera.release()
        if self.detector is not None:
            self.detector.close()
        if self.mesh_model is not None:
            self.mesh_model.close()
        if self.show_window:
            cv2.destroyAllWindows()
        log.info("[Processor] Exited. Total frames: %d", self.total_frames)

    # ---------------------------------------------------------------------
    #                          Main per-frame loop
    # ---------------------------------------------------------------------
    def _apply_runtime_params(self) -> None:
        if self.watcher is None or not self.watcher.maybe_reload():
            return
        params = self.watcher.numeric()
        if params:
            self.controller.apply_tuning(**params)
            log.info("[Processor] Applied runtime params %s", params)

    def _process_frame(self) -> bool:
        """Returns False if the caller should exit the main loop."""
        _, frame = self.camera.read()
        if frame is None:
            if not self.camera.is_opened():
                if self.cam_reopens >= self.camera_cfg.max_reopens:
                    log.error("[Processor] Camera lost after %d reopen attempts", self.cam_reopens)
                    return False
                self.cam_reopens += 1
                if self.camera.open():
                    if self.camera.frame_size != self.controller.frame_size:
                        log.error("[Processor] Camera came back at a different resolution")
                        return False
                    self.cam_reopens = 0
                    self.controller.reset()
            time.sleep(0.05)
            return True

        self.total_frames += 1
        self._apply_runtime_params()

        try:
            result = self.controller.process(frame)
        except GeometryError as exc:
            # Drop this frame only; tracker state is left as it was.
            log.warning("[Processor] Skipping frame %d: %s", self.total_frames, exc)
            self.skipped_frames += 1
            result = None
        fps = self.fps.tick(time.time())

        if self.show_window:
            out = cv2.cvtColor(frame, cv2.COLOR_RGB2BGR)
            draw_overlay(out, result, fps)
            cv2.imshow(WINDOW_NAME, out)
        return True

    # ---------------------------------------------------------------------
    #                             Public run()
    # ---------------------------------------------------------------------
    def run(self) -> None:
        try:
            if not self.setup():
                return
            while True:
                if not self._process_frame():
                    break
                if self.show_window and (cv2.waitKey(1) & 0xFF) == ord("q"):
                    break
        except KeyboardInterrupt:
            log.info("[Processor] Stopped by user.")
        except Exception:
            log.exception("[Processor] Main loop error")
            raise
        finally:
            self.cleanup()
