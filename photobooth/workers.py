# workers.py
"""
Background task execution for the photobooth.
Wraps blocking calls (collage composition, encoding) in a QRunnable so they
can run on a QThreadPool while the capture UI keeps its event loop.
"""
import logging
from typing import Any, Callable, Optional

from PySide6.QtCore import QObject, QRunnable, QThreadPool, Signal

LOGGER = logging.getLogger(__name__)


class WorkerSignals(QObject):
    started = Signal()
    finished = Signal()
    error = Signal(object)
    result = Signal(object)


class Worker(QRunnable):
    """Wraps any function to run in a QThreadPool.

    The raised exception itself is emitted on ``error`` so callers can tell a
    :class:`~photobooth.errors.CompositionError` apart from other failures.
    """

    def __init__(self, fn: Callable, *args, **kwargs):
        super().__init__()
        self.fn = fn
        self.args = args
        self.kwargs = kwargs
        self.signals = WorkerSignals()

    def run(self) -> None:
        try:
            self.signals.started.emit()
            result = self.fn(*self.args, **self.kwargs)
        except Exception as exc:  # noqa: BLE001 - forwarded through the error signal
            LOGGER.error("Worker error: %s", exc)
            self.signals.error.emit(exc)
        else:
            self.signals.result.emit(result)
        finally:
            self.signals.finished.emit()


def run_in_background(
    fn: Callable,
    *args,
    on_result: Optional[Callable[[Any], None]] = None,
    on_error: Optional[Callable[[BaseException], None]] = None,
    pool: Optional[QThreadPool] = None,
    **kwargs,
) -> Worker:
    """Start ``fn`` on ``pool`` (the global pool by default) and return the worker."""
    worker = Worker(fn, *args, **kwargs)
    if on_result is not None:
        worker.signals.result.connect(on_result)
    if on_error is not None:
        worker.signals.error.connect(on_error)
    (pool or QThreadPool.globalInstance()).start(worker)
    return worker


__all__ = ["Worker", "WorkerSignals", "run_in_background"]
