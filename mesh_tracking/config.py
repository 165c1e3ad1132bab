# config.py
"""Typed configuration blobs for the whole system."""
from dataclasses import dataclass
from typing import Optional


@dataclass
class CameraConfig:
    device_index: int = 0
    width: int = 640
    height: int = 480
    fps_request: int = 30
    use_v4l2: bool = False
    fourcc_str: str = "MJPG"
    max_reopens: int = 5


@dataclass
class DetectorConfig:
    model_path: Optional[str] = None          # BlazeFace-compatible ONNX / TFLite file
    anchors_path: Optional[str] = None        # None -> generated BlazeFace front table
    backend: str = "cpu"                      # cpu | cuda | opencl
    channels_last: bool = True                # model takes NHWC input


@dataclass
class MeshConfig:
    refine_landmarks: bool = False
    min_detection_confidence: float = 0.5


@dataclass
class TrackerConfig:
    # Square model input sizes (px)
    detector_input_size: int = 128
    mesh_input_size: int = 192
    # Crop-space extent of the mesh model's landmark output (1.0 = normalized)
    mesh_output_scale: float = 1.0
    # A detection must beat this (after sigmoid) before the mesh model runs
    detection_threshold: float = 0.9
    # Mesh confidence needed to keep tracking from the mesh box
    mesh_threshold: float = 0.5
    # Growth applied to a fresh detection / to the previous mesh box
    detection_pad_ratio: float = 0.25
    track_pad_ratio: float = 0.25
