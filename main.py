"""Headless entrypoint: runs one capture session and saves the collage.

The camera backend is chosen by platform detection, settings come from
QSettings, and the collage is written to ``PHOTOBOOTH_OUTPUT_DIR``
(default: ``exports``).
"""

import os
import sys
from pathlib import Path

from PySide6.QtCore import QCoreApplication

from photobooth import config
from photobooth.app import PhotoboothApp, configure_logging
from photobooth.controllers import Route
from photobooth.errors import CompositionError, PersistenceError


def main() -> int:
    logger = configure_logging()
    app = QCoreApplication(sys.argv)
    output_dir = Path(os.environ.get("PHOTOBOOTH_OUTPUT_DIR", config.EXPORT_DIR))

    booth = PhotoboothApp(
        on_countdown=lambda value: logger.info("Countdown: %s", value),
        on_progress=lambda index, total: logger.info("Photo %s/%s", index, total),
    )
    booth.boot()

    def _on_route(previous, route):
        if route is Route.RESULT:
            try:
                booth.result.load()
            except CompositionError:
                app.exit(1)
                return
            path = booth.result.save_to(output_dir)
            logger.info("Collage written to %s", path)
            booth.result.restart()
            app.quit()
        elif route is Route.CONFIG and previous is Route.CAPTURE:
            app.exit(1)

    booth.navigator.add_listener(_on_route)

    try:
        booth.begin_session()
    except PersistenceError as exc:
        logger.warning("Settings could not be saved: %s", exc)
        booth.store.start_session()
        booth.navigator.navigate(Route.CAPTURE)

    if booth.capture is not None and booth.capture.open_camera():
        booth.capture.start()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
