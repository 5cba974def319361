"""Post-capture stage: build, export and restart."""
from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Union

from PySide6.QtCore import QThreadPool

from .. import config
from ..compositor import CollageExport, CollageResult, compose, export_collage, save_export
from ..errors import CompositionError
from ..store import PhotoboothStore
from ..workers import Worker, run_in_background
from .navigation import Navigator, Route

LOGGER = logging.getLogger(__name__)


class ResultController:
    """Turn a completed session into a collage.

    Only sessions holding every photo are composed; anything else sends the
    user back to the config route.
    """

    def __init__(
        self,
        store: PhotoboothStore,
        navigator: Navigator,
        *,
        output_format: str = config.DEFAULT_OUTPUT_FORMAT,
        quality: float = config.DEFAULT_QUALITY,
    ) -> None:
        self._store = store
        self._navigator = navigator
        self._output_format = output_format
        self._quality = quality
        self.collage: Optional[CollageResult] = None
        self.is_loading = False
        self.error_message = ""

    def _inputs(self) -> Optional[tuple[List[bytes], Optional[str]]]:
        session = self._store.get_session()
        if len(session.photos) < config.PHOTO_COUNT:
            LOGGER.warning(
                "Session holds %d of %d photos, returning to config",
                len(session.photos),
                config.PHOTO_COUNT,
            )
            self._navigator.navigate(Route.CONFIG)
            return None
        return session.photos, self._store.get_selected_background_data_url()

    def load(self) -> Optional[CollageResult]:
        """Compose the collage synchronously.

        Raises:
            CompositionError: If one of the photos cannot be decoded
        """
        inputs = self._inputs()
        if inputs is None:
            return None
        photos, background = inputs
        self.is_loading = True
        self.error_message = ""
        try:
            self.collage = compose(photos, background, self._output_format, self._quality)
        except CompositionError as exc:
            self.error_message = str(exc)
            LOGGER.error("Collage generation failed: %s", exc)
            raise
        finally:
            self.is_loading = False
        return self.collage

    def load_in_background(
        self,
        on_done: Optional[Callable[[Optional[CollageResult]], None]] = None,
        *,
        pool: Optional[QThreadPool] = None,
    ) -> Optional[Worker]:
        """Compose on a thread pool; ``on_done`` receives the result or ``None``."""
        inputs = self._inputs()
        if inputs is None:
            return None
        photos, background = inputs
        self.is_loading = True
        self.error_message = ""

        def _handle_result(result: CollageResult) -> None:
            self.collage = result
            self.is_loading = False
            if on_done is not None:
                on_done(result)

        def _handle_error(exc: BaseException) -> None:
            self.error_message = str(exc)
            self.is_loading = False
            LOGGER.error("Collage generation failed: %s", exc)
            if on_done is not None:
                on_done(None)

        return run_in_background(
            compose,
            photos,
            background,
            self._output_format,
            self._quality,
            on_result=_handle_result,
            on_error=_handle_error,
            pool=pool,
        )

    def export(self, now: Optional[datetime] = None) -> Optional[CollageExport]:
        if self.collage is None:
            return None
        return export_collage(self.collage, now)

    def save_to(self, directory: Union[str, Path] = config.EXPORT_DIR, now: Optional[datetime] = None) -> Optional[Path]:
        exported = self.export(now)
        if exported is None:
            return None
        return save_export(exported, directory)

    def restart(self) -> None:
        """Drop the finished session and go back to the config route."""
        self.collage = None
        self.error_message = ""
        self._store.reset_session()
        self._navigator.navigate(Route.CONFIG)


__all__ = ["ResultController"]
