"""Webcam capture through OpenCV."""
from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import cv2

from .. import config
from ..errors import CaptureError, StartError
from ..models import FacingMode
from .base import CameraOptions

LOGGER = logging.getLogger(__name__)


class OpenCVCameraSource:
    """Grab JPEG frames from a local webcam.

    Webcams have no notion of facing; the front-facing mode mirrors frames
    horizontally so captures match what the user sees in a selfie preview.
    """

    def __init__(
        self,
        device_index: int = config.WEBCAM_DEVICE_INDEX,
        *,
        frame_size: tuple[int, int] = (config.WEBCAM_FRAME_WIDTH, config.WEBCAM_FRAME_HEIGHT),
        jpeg_quality: int = config.CAPTURE_JPEG_QUALITY,
        capture_factory: Callable[[int], Any] = cv2.VideoCapture,
    ) -> None:
        self._device_index = device_index
        self._frame_size = frame_size
        self._jpeg_quality = jpeg_quality
        self._capture_factory = capture_factory
        self._options = CameraOptions()
        self._capture: Optional[Any] = None

    @property
    def is_active(self) -> bool:
        return self._capture is not None

    def is_supported(self) -> bool:
        return True

    def init(self, options: CameraOptions) -> None:
        self._options = options

    def start(self, target: Any = None) -> None:
        if self._capture is not None:
            return
        try:
            capture = self._capture_factory(self._device_index)
            if capture is None or not capture.isOpened():
                if capture is not None:
                    capture.release()
                raise StartError(f"Could not open webcam {self._device_index}")
            capture.set(cv2.CAP_PROP_FRAME_WIDTH, self._frame_size[0])
            capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self._frame_size[1])
        except cv2.error as exc:
            raise StartError(f"Webcam {self._device_index} failed to start: {exc}") from exc
        self._capture = capture
        LOGGER.info("Webcam %s started", self._device_index)

    def capture(self) -> bytes:
        if self._capture is None:
            raise CaptureError("Webcam is not started")
        try:
            ok, frame = self._capture.read()
            if not ok or frame is None:
                raise CaptureError("Failed to read a frame from the webcam")
            if self._options.facing_mode is FacingMode.FRONT:
                frame = cv2.flip(frame, 1)
            ok, buffer = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, self._jpeg_quality])
        except cv2.error as exc:
            raise CaptureError(f"Webcam capture failed: {exc}") from exc
        if not ok:
            raise CaptureError("Failed to encode the captured frame")
        return buffer.tobytes()

    def stop(self) -> None:
        if self._capture is None:
            return
        self._capture.release()
        self._capture = None
        LOGGER.info("Webcam %s released", self._device_index)
