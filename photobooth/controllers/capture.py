"""Capture session state machine.

:class:`CaptureSessionController` drives one photobooth run: for every shot
it counts down ``seconds_per_shot`` seconds on Qt timers and then grabs a
single frame from the camera source.  Control only yields to the event loop
while a countdown is pending, so shots are strictly sequential.

Cancellation is cooperative.  A :class:`CancellationToken` is checked before
each countdown and again before each capture, and every exit path (cancel,
camera error, leaving the capture stage) goes through the same teardown:
flush all timers (resolving a pending countdown), stop the camera.  Errors
additionally schedule a short grace period before returning to the config
route.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from .. import config
from ..camera.base import CameraOptions, CameraSource
from ..errors import CaptureError, StartError
from ..models import SessionStatus
from ..store import PhotoboothStore
from .navigation import Navigator, Route
from .timers import CancellationToken, TimerFactory, TimerRegistry

LOGGER = logging.getLogger(__name__)


class CaptureSessionController:
    """Sequence countdowns and captures for the active session."""

    def __init__(
        self,
        store: PhotoboothStore,
        camera: CameraSource,
        navigator: Navigator,
        *,
        timer_factory: Optional[TimerFactory] = None,
        on_countdown: Optional[Callable[[int], None]] = None,
        on_progress: Optional[Callable[[int, int], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
        tick_ms: int = config.COUNTDOWN_TICK_MS,
        recovery_delay_ms: int = config.ERROR_RECOVERY_DELAY_MS,
    ) -> None:
        self._store = store
        self._camera = camera
        self._navigator = navigator
        self._timers = TimerRegistry(timer_factory)
        self._token = CancellationToken()
        self._on_countdown = on_countdown
        self._on_progress = on_progress
        self._on_error = on_error
        self._tick_ms = tick_ms
        self._recovery_delay_ms = recovery_delay_ms

        session = store.get_session()
        self._log = logging.LoggerAdapter(LOGGER, {"sid": session.session_id})
        self._current_index = session.current_index
        self._total_photos = session.total_photos
        self._countdown = 0
        self._running = False
        self._camera_ready = False
        self._disposed = False
        self._error_message = ""
        self._seconds_per_shot = config.DEFAULT_SECONDS_PER_SHOT
        self._shot = 0

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------
    @property
    def countdown(self) -> int:
        return self._countdown

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def total_photos(self) -> int:
        return self._total_photos

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_cancelled(self) -> bool:
        return self._token.cancelled

    @property
    def camera_ready(self) -> bool:
        return self._camera_ready

    @property
    def error_message(self) -> str:
        return self._error_message

    @property
    def pending_timers(self) -> int:
        return self._timers.pending

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def open_camera(self, target: Any = None) -> bool:
        """Initialise and start the camera, rendering its preview into ``target``."""
        if self._camera_ready:
            return True
        facing_mode = self._store.get_config().facing_mode
        try:
            if not self._camera.is_supported():
                raise StartError("Camera source is not supported on this device")
            self._camera.init(CameraOptions(facing_mode=facing_mode))
            self._camera.start(target)
        except StartError as exc:
            self._log.error("Camera start failed: %s", exc)
            self._handle_error(config.MSG_CAMERA_START_FAILED)
            return False
        self._camera_ready = True
        self._log.info("Camera ready (%s)", facing_mode.value)
        return True

    def start(self) -> bool:
        """Begin the capture loop; returns ``False`` when nothing was started."""
        if self._running or self._disposed:
            return False
        session = self._store.get_session()
        self._total_photos = session.total_photos
        if self._total_photos == 0 or session.is_complete or not self._camera_ready:
            return False

        self._running = True
        self._token.reset()
        self._error_message = ""
        self._seconds_per_shot = self._store.get_config().seconds_per_shot
        self._shot = len(session.photos)
        self._log.info(
            "Capture run started: %d shot(s), %ss each", self._total_photos, self._seconds_per_shot
        )
        self._next_shot()
        return True

    def cancel(self) -> None:
        """Abort the run, release the camera and return to the config route."""
        if self._token.cancelled:
            return
        self._log.info("Capture run cancelled")
        self._token.cancel()
        self._release()
        self._store.reset_session()
        self._navigator.navigate(Route.CONFIG)

    def dispose(self) -> None:
        """Tear down when leaving the capture stage.

        A completed session is kept for the result stage; anything else is
        reset.  Safe to call more than once.
        """
        self._token.cancel()
        self._release()
        if not self._disposed and not self._store.get_session().is_complete:
            self._store.reset_session()
        self._disposed = True

    # ------------------------------------------------------------------
    # Capture loop
    # ------------------------------------------------------------------
    def _next_shot(self) -> None:
        if self._token.cancelled or self._shot >= self._total_photos:
            self._finish()
            return
        self._store.set_status(SessionStatus.COUNTING_DOWN)
        self._run_countdown(self._seconds_per_shot, self._after_countdown)

    def _after_countdown(self) -> None:
        if self._token.cancelled:
            self._finish()
            return

        self._store.set_status(SessionStatus.CAPTURING)
        try:
            photo = self._camera.capture()
        except CaptureError as exc:
            self._log.error("Capture %d failed: %s", self._shot + 1, exc)
            self._handle_error(config.MSG_CAPTURE_FAILED)
            self._finish()
            return
        except Exception:  # noqa: BLE001 - raised inside a timer slot
            self._log.exception("Capture %d failed unexpectedly", self._shot + 1)
            self._handle_error(config.MSG_CAPTURE_FAILED)
            self._finish()
            return

        session = self._store.add_photo(photo)
        self._current_index = session.current_index
        self._log.info("Captured photo %d/%d", session.current_index, session.total_photos)
        if self._on_progress is not None:
            self._on_progress(session.current_index, session.total_photos)
        self._shot += 1
        self._next_shot()

    def _finish(self) -> None:
        self._running = False
        if self._token.cancelled:
            return
        self._log.info("Capture run completed")
        self._navigator.navigate(Route.RESULT)

    # ------------------------------------------------------------------
    # Countdown
    # ------------------------------------------------------------------
    def _run_countdown(self, seconds: int, on_done: Callable[[], None]) -> None:
        self._timers.clear()
        total = max(1, int(seconds))
        self._set_countdown(total)
        self._timers.wait(on_done)
        self._timers.add_interval(self._tick, self._tick_ms)
        self._timers.add_timeout(self._countdown_elapsed, total * self._tick_ms)

    def _tick(self) -> None:
        if self._token.cancelled:
            return
        self._set_countdown(max(0, self._countdown - 1))

    def _countdown_elapsed(self) -> None:
        self._set_countdown(0)
        self._timers.clear()

    def _set_countdown(self, value: int) -> None:
        if value == self._countdown:
            return
        self._countdown = value
        if self._on_countdown is not None:
            self._on_countdown(value)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------
    def _release(self) -> None:
        self._timers.clear()
        self._camera.stop()
        self._camera_ready = False

    def _handle_error(self, message: str) -> None:
        self._error_message = message
        self._running = False
        self._token.cancel()
        self._release()
        self._store.reset_session()
        if self._on_error is not None:
            self._on_error(message)
        self._timers.add_timeout(self._recover, self._recovery_delay_ms)

    def _recover(self) -> None:
        self._navigator.navigate(Route.CONFIG)


__all__ = ["CaptureSessionController"]
