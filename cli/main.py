# main.py
"""
Entry-point for the face mesh tracking demo.

Live-tuning
-----------
Pass ``--params runtime_params.json`` and edit that file while the program is
running; ``detection_threshold``, ``mesh_threshold``, ``detection_pad_ratio``
and ``track_pad_ratio`` take effect on the next frame.
"""
from __future__ import annotations

import argparse
import logging

from mesh_tracking.config import CameraConfig, DetectorConfig, MeshConfig, TrackerConfig
from mesh_tracking.processor import TrackingProcessor

log = logging.getLogger("mesh_tracking")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Track a face and its landmark mesh from a webcam.")
    parser.add_argument("--detector-model", required=True, help="BlazeFace-compatible model file")
    parser.add_argument("--anchors", default=None, help="Anchor table (.npy/.json/.csv); generated if omitted")
    parser.add_argument("--backend", default="cpu", choices=("cpu", "cuda", "opencl"))
    parser.add_argument("--nchw", action="store_true", help="Detector model takes NCHW input")
    parser.add_argument("--camera", type=int, default=0, help="Capture device index")
    parser.add_argument("--width", type=int, default=640)
    parser.add_argument("--height", type=int, default=480)
    parser.add_argument("--refine-landmarks", action="store_true")
    parser.add_argument("--params", default=None, help="JSON file to hot-reload thresholds from")
    parser.add_argument("--no-window", action="store_true")
    parser.add_argument("--log-level", default="INFO")
    return parser


def main(argv=None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # -------------------- Config blobs --------------------
    cam_cfg = CameraConfig(device_index=args.camera, width=args.width, height=args.height)
    det_cfg = DetectorConfig(
        model_path=args.detector_model,
        anchors_path=args.anchors,
        backend=args.backend,
        channels_last=not args.nchw,
    )
    mesh_cfg = MeshConfig(refine_landmarks=args.refine_landmarks)
    trk_cfg = TrackerConfig()

    log.info(
        "Camera: idx=%d, %dx%d | Detector: %s (%s) | thresholds det=%.2f mesh=%.2f pad=%.2f",
        cam_cfg.device_index,
        cam_cfg.width,
        cam_cfg.height,
        det_cfg.model_path,
        det_cfg.backend,
        trk_cfg.detection_threshold,
        trk_cfg.mesh_threshold,
        trk_cfg.track_pad_ratio,
    )

    TrackingProcessor(
        cam_cfg,
        det_cfg,
        mesh_cfg,
        trk_cfg,
        params_path=args.params,
        show_window=not args.no_window,
    ).run()
    log.info("Main program finished.")


if __name__ == "__main__":
    main()
