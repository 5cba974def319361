"""Timer bookkeeping and cooperative cancellation for the capture loop."""
from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional

from PySide6.QtCore import QObject, QTimer

LOGGER = logging.getLogger(__name__)

TimerFactory = Callable[[], Any]


class CancellationToken:
    """A flag checked by the capture loop at every transition boundary."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def reset(self) -> None:
        self._cancelled = False


class TimerRegistry:
    """Track every timer of a controller so they can be torn down together.

    Timers are created through ``timer_factory`` and must expose the
    ``QTimer`` subset used here (``setInterval``, ``setSingleShot``,
    ``timeout.connect``, ``start``, ``stop``, ``isActive``).  At most one
    pending wait is registered at a time; :meth:`clear` stops all timers and
    resolves that wait exactly once.
    """

    def __init__(self, timer_factory: Optional[TimerFactory] = None) -> None:
        if timer_factory is None:
            # Parented timers are owned by Qt, so dropping them from the
            # registry inside their own timeout slot is safe.
            self._owner = QObject()
            timer_factory = lambda: QTimer(self._owner)  # noqa: E731
        self._timer_factory = timer_factory
        self._timers: List[Any] = []
        self._resolver: Optional[Callable[[], None]] = None

    @property
    def pending(self) -> int:
        """Number of timers that are still scheduled."""
        return sum(1 for timer in self._timers if timer.isActive())

    @property
    def waiting(self) -> bool:
        return self._resolver is not None

    def _create(self, callback: Callable[[], None], ms: int, *, single_shot: bool) -> Any:
        timer = self._timer_factory()
        timer.setInterval(ms)
        timer.setSingleShot(single_shot)
        timer.timeout.connect(callback)
        self._timers.append(timer)
        timer.start()
        return timer

    def add_interval(self, callback: Callable[[], None], ms: int) -> Any:
        return self._create(callback, ms, single_shot=False)

    def add_timeout(self, callback: Callable[[], None], ms: int) -> Any:
        return self._create(callback, ms, single_shot=True)

    def wait(self, resolver: Callable[[], None]) -> None:
        """Register the continuation that :meth:`clear` must resolve."""
        if self._resolver is not None:
            raise RuntimeError("A wait is already pending")
        self._resolver = resolver

    def clear(self) -> None:
        """Stop all timers and resolve the pending wait, if any.

        Safe to call repeatedly and from within a timer callback; timers or
        waits registered by the resolved continuation are left untouched.
        """
        timers, self._timers = self._timers, []
        for timer in timers:
            timer.stop()
            timer.deleteLater()
        if timers:
            LOGGER.debug("Cleared %d timer(s)", len(timers))

        resolver, self._resolver = self._resolver, None
        if resolver is not None:
            resolver()


__all__ = ["CancellationToken", "TimerRegistry", "TimerFactory"]
