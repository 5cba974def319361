"""Camera capability shared by every capture backend."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from ..models import FacingMode


@dataclass(frozen=True)
class CameraOptions:
    facing_mode: FacingMode = FacingMode.BACK


@runtime_checkable
class CameraSource(Protocol):
    """A device able to show a preview and grab single encoded frames.

    ``start`` raises :class:`~photobooth.errors.StartError` when the device or
    permission is unavailable, ``capture`` raises
    :class:`~photobooth.errors.CaptureError`.  ``stop`` must be safe to call
    repeatedly and before ``start``.
    """

    def is_supported(self) -> bool:
        ...

    def init(self, options: CameraOptions) -> None:
        ...

    def start(self, target: Any = None) -> None:
        ...

    def capture(self) -> bytes:
        ...

    def stop(self) -> None:
        ...
