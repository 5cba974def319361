"""
Application wiring for the photobooth: store, routes and stage controllers.
"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Optional, Union

from PIL import Image

from . import config
from .backgrounds import prepare_background
from .camera import CameraSource, create_camera_source
from .controllers import CaptureSessionController, Navigator, ResultController, Route
from .controllers.timers import TimerFactory
from .models import BackgroundItem, FacingMode
from .persistence import ConfigStore, SettingsConfigStore
from .preview import render_template_preview
from .store import PhotoboothStore
from .validation import validate_background_file

LOGGER_NAME = "photobooth"

LOGGER = logging.getLogger(__name__)


def configure_logging(log_path: Optional[Path] = None) -> logging.Logger:
    """Configure and return the application logger.

    The handler setup is idempotent to avoid duplicate handlers when called
    more than once. A rotating file handler limits on-disk log growth while
    mirroring output to stdout.
    """

    logger = logging.getLogger(LOGGER_NAME)
    if logger.handlers:
        return logger

    logger.setLevel(logging.INFO)

    formatter = logging.Formatter(
        "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
    )

    log_path = log_path or Path.cwd() / "photobooth.log"
    log_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=1_048_576,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(stream_handler)
    logger.propagate = False

    sys.excepthook = _global_exception_handler
    return logger


def _global_exception_handler(exc_type, value, tb):
    logging.getLogger(LOGGER_NAME).error("Uncaught exception", exc_info=(exc_type, value, tb))
    sys.__excepthook__(exc_type, value, tb)


class PhotoboothApp:
    """Own the store and navigator for one application run.

    A capture controller is created whenever the capture route is entered
    and disposed as soon as it is left.  Gallery edits are persisted right
    away, mirroring what the config screen expects.
    """

    def __init__(
        self,
        config_store: Optional[ConfigStore] = None,
        *,
        camera_factory: Callable[[], CameraSource] = create_camera_source,
        timer_factory: Optional[TimerFactory] = None,
        **capture_callbacks: Any,
    ) -> None:
        self.store = PhotoboothStore(config_store or SettingsConfigStore())
        self.navigator = Navigator(self.store)
        self.result = ResultController(self.store, self.navigator)
        self.capture: Optional[CaptureSessionController] = None
        self._camera_factory = camera_factory
        self._timer_factory = timer_factory
        self._capture_callbacks = capture_callbacks
        self.navigator.add_listener(self._on_route_changed)

    def boot(self) -> None:
        """Load persisted settings and show the config route."""
        self.store.load()
        self.navigator.navigate(Route.CONFIG)

    # ------------------------------------------------------------------
    # Config stage
    # ------------------------------------------------------------------
    def begin_session(
        self,
        *,
        seconds_per_shot: Optional[int] = None,
        facing_mode: Optional[Union[FacingMode, str]] = None,
    ) -> Route:
        """Store the chosen settings, start a session and enter capture."""
        changes: dict = {}
        if seconds_per_shot is not None:
            changes["seconds_per_shot"] = seconds_per_shot
        if facing_mode is not None:
            changes["facing_mode"] = facing_mode
        if changes:
            self.store.update_config(**changes)
        self.store.save()
        self.store.start_session()
        return self.navigator.navigate(Route.CAPTURE)

    def add_background(self, data: bytes, name: Optional[str] = None) -> BackgroundItem:
        item = prepare_background(data, name=name)
        self.store.add_background(item)
        self.store.save()
        return item

    def add_background_file(self, path: Union[str, Path]) -> BackgroundItem:
        safe_path = validate_background_file(path)
        return self.add_background(safe_path.read_bytes(), name=safe_path.name)

    def remove_background(self, background_id: str) -> None:
        self.store.remove_background(background_id)
        self.store.save()

    def select_background(self, background_id: Optional[str]) -> None:
        self.store.select_background(background_id)
        self.store.save()

    def template_preview(
        self,
        width: int = config.COLLAGE_WIDTH // 4,
        height: int = config.COLLAGE_HEIGHT // 4,
    ) -> Image.Image:
        return render_template_preview(
            width, height, self.store.get_selected_background_data_url()
        )

    # ------------------------------------------------------------------
    # Route handling
    # ------------------------------------------------------------------
    def _on_route_changed(self, previous: Optional[Route], route: Route) -> None:
        if self.capture is not None and route is not Route.CAPTURE:
            controller, self.capture = self.capture, None
            controller.dispose()
        if route is Route.CAPTURE and self.capture is None:
            self.capture = CaptureSessionController(
                self.store,
                self._camera_factory(),
                self.navigator,
                timer_factory=self._timer_factory,
                **self._capture_callbacks,
            )


__all__ = ["PhotoboothApp", "configure_logging", "LOGGER_NAME"]
