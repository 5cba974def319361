"""Camera capture through Qt Multimedia with a hardware preview."""
from __future__ import annotations

import logging
from typing import Any, Optional

from PySide6.QtCore import QBuffer, QIODevice
from PySide6.QtGui import QImage
from PySide6.QtMultimedia import (
    QCamera,
    QCameraDevice,
    QMediaCaptureSession,
    QMediaDevices,
    QVideoSink,
)

from .. import config
from ..errors import CaptureError, StartError
from ..models import FacingMode
from .base import CameraOptions

LOGGER = logging.getLogger(__name__)

_POSITIONS = {
    FacingMode.FRONT: QCameraDevice.Position.FrontFace,
    FacingMode.BACK: QCameraDevice.Position.BackFace,
}


def encode_frame(image: QImage, quality: int = config.CAPTURE_JPEG_QUALITY) -> bytes:
    """Serialize a QImage into JPEG bytes."""
    if image.isNull():
        raise CaptureError("Captured frame is empty")
    buffer = QBuffer()
    if not buffer.open(QIODevice.WriteOnly):
        raise CaptureError("Unable to open buffer for frame encoding")
    try:
        if not image.save(buffer, "JPG", quality):
            raise CaptureError("Failed to encode captured frame")
        return bytes(buffer.data())
    finally:
        buffer.close()


class QtCameraSource:
    """Render the live preview into a Qt video output and grab its frames.

    ``start`` accepts any Qt video output (typically a ``QVideoWidget``); when
    no target is given frames are collected by an internal ``QVideoSink``.
    """

    def __init__(self, jpeg_quality: int = config.CAPTURE_JPEG_QUALITY) -> None:
        self._jpeg_quality = jpeg_quality
        self._options = CameraOptions()
        self._camera: Optional[QCamera] = None
        self._session: Optional[QMediaCaptureSession] = None
        self._sink: Optional[QVideoSink] = None

    def is_supported(self) -> bool:
        return bool(QMediaDevices.videoInputs())

    def init(self, options: CameraOptions) -> None:
        self._options = options

    def _select_device(self) -> QCameraDevice:
        devices = QMediaDevices.videoInputs()
        if not devices:
            raise StartError("No camera devices are available")
        wanted = _POSITIONS[self._options.facing_mode]
        for device in devices:
            if device.position() == wanted:
                return device
        return QMediaDevices.defaultVideoInput()

    def start(self, target: Any = None) -> None:
        if self._camera is not None:
            return
        device = self._select_device()
        camera = QCamera(device)
        camera.errorOccurred.connect(self._on_error)
        session = QMediaCaptureSession()
        session.setCamera(camera)
        if target is not None:
            session.setVideoOutput(target)
        else:
            self._sink = QVideoSink()
            session.setVideoSink(self._sink)

        camera.start()
        if camera.error() != QCamera.Error.NoError:
            message = camera.errorString()
            camera.stop()
            raise StartError(f"Camera failed to start: {message}")

        self._camera = camera
        self._session = session
        LOGGER.info("Qt camera %s started", device.description())

    def capture(self) -> bytes:
        if self._session is None:
            raise CaptureError("Camera is not started")
        sink = self._session.videoSink()
        if sink is None:
            raise CaptureError("Camera has no video sink")
        frame = sink.videoFrame()
        if not frame.isValid():
            raise CaptureError("No video frame available yet")
        return encode_frame(frame.toImage(), self._jpeg_quality)

    def stop(self) -> None:
        if self._camera is None:
            return
        self._camera.stop()
        self._camera = None
        self._session = None
        self._sink = None
        LOGGER.info("Qt camera stopped")

    def _on_error(self, error: QCamera.Error, message: str) -> None:
        LOGGER.error("Camera error %s: %s", error, message)
