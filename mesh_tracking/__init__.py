"""Face mesh tracking package - re-export high-level API."""
from .common import (                            # noqa: F401
    ContractViolation, FrameResult, GeometryError, Rect, TrackingMode,
)
from .config import (                            # noqa: F401
    CameraConfig, DetectorConfig, MeshConfig, TrackerConfig,
)
from .tracker import TrackingController, TrackingState   # noqa: F401
