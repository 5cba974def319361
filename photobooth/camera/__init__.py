"""Camera backends for the capture stage."""

from .base import CameraOptions, CameraSource
from .factory import create_camera_source, is_native_platform

__all__ = [
    "CameraOptions",
    "CameraSource",
    "create_camera_source",
    "is_native_platform",
]
