"""Controller layer for the config, capture and result stages."""

from .capture import CaptureSessionController
from .navigation import Navigator, Route
from .result import ResultController
from .timers import CancellationToken, TimerRegistry

__all__ = [
    "CancellationToken",
    "CaptureSessionController",
    "Navigator",
    "ResultController",
    "Route",
    "TimerRegistry",
]
