"""Runtime selection of the camera backend."""
from __future__ import annotations

import logging
import sys
from typing import Optional

from .base import CameraSource

LOGGER = logging.getLogger(__name__)

_NATIVE_PLATFORMS = frozenset({"android", "ios"})


def is_native_platform() -> bool:
    """Return whether the app runs as a native mobile build."""
    return sys.platform in _NATIVE_PLATFORMS


def create_camera_source(native: Optional[bool] = None) -> CameraSource:
    """Pick the camera backend once for a capture session.

    Native builds use the Qt Multimedia hardware preview; desktop builds use
    the OpenCV webcam backend.  ``native`` overrides the platform detection.
    """
    if native is None:
        native = is_native_platform()
    if native:
        from .qt_source import QtCameraSource

        source: CameraSource = QtCameraSource()
    else:
        from .opencv_source import OpenCVCameraSource

        source = OpenCVCameraSource()
    LOGGER.info("Using %s camera source", type(source).__name__)
    return source
