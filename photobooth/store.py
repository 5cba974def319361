"""Configuration, background gallery and session state.

:class:`PhotoboothStore` is the single owner of the mutable photobooth state.
It is constructed once per application run, hands out deep copies on every
read and serializes mutations with a re-entrant lock, so callers never observe
a partially updated configuration or session.  Persistence goes through a
:class:`~photobooth.persistence.ConfigStore`; a broken or missing payload
keeps the defaults on load, while saving surfaces
:class:`~photobooth.errors.PersistenceError` to the caller.
"""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import replace
from threading import RLock
from typing import Any, Dict, Optional, Union

from . import config
from .errors import CapacityError, PersistenceError
from .models import (
    BackgroundItem,
    FacingMode,
    PhotoboothConfig,
    PhotoboothSession,
    SessionStatus,
    generate_background_id,
    generate_session_id,
    validate_seconds_per_shot,
)
from .persistence import ConfigStore

LOGGER = logging.getLogger(__name__)

_UNSET: Any = object()


class PhotoboothStore:
    """Own the photobooth configuration and the active capture session."""

    def __init__(
        self,
        config_store: ConfigStore,
        *,
        max_backgrounds: int = config.MAX_BACKGROUNDS,
        photo_count: int = config.PHOTO_COUNT,
    ) -> None:
        if max_backgrounds <= 0:
            raise ValueError("max_backgrounds must be greater than zero")
        if photo_count <= 0:
            raise ValueError("photo_count must be greater than zero")
        self._config_store = config_store
        self._max_backgrounds = max_backgrounds
        self._photo_count = photo_count
        self._config = PhotoboothConfig()
        self._session = PhotoboothSession()
        self._lock = RLock()

    @property
    def max_backgrounds(self) -> int:
        return self._max_backgrounds

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    def get_config(self) -> PhotoboothConfig:
        """Return a deep copy of the current configuration."""
        with self._lock:
            return copy.deepcopy(self._config)

    def update_config(
        self,
        *,
        seconds_per_shot: Any = _UNSET,
        facing_mode: Any = _UNSET,
        selected_background_id: Any = _UNSET,
    ) -> PhotoboothConfig:
        """Apply a partial update and return the resulting configuration."""
        with self._lock:
            updated = copy.deepcopy(self._config)
            if seconds_per_shot is not _UNSET:
                updated.seconds_per_shot = validate_seconds_per_shot(seconds_per_shot)
            if facing_mode is not _UNSET:
                updated.facing_mode = FacingMode(facing_mode)
            if selected_background_id is not _UNSET:
                updated.selected_background_id = selected_background_id
            self._config = updated
            return copy.deepcopy(updated)

    def load(self) -> None:
        """Restore persisted configuration, keeping defaults on any failure."""
        try:
            raw = self._config_store.get(config.CONFIG_KEY)
        except PersistenceError as exc:
            LOGGER.warning("Could not read stored config, keeping defaults: %s", exc)
            return
        if not raw:
            LOGGER.info("No stored config found, using defaults")
            return

        try:
            parsed = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            LOGGER.warning("Ignoring invalid stored config: %s", exc)
            return
        if not isinstance(parsed, dict):
            LOGGER.warning("Ignoring stored config: expected an object, got %s", type(parsed).__name__)
            return

        with self._lock:
            loaded = copy.deepcopy(self._config)
            loaded.merge_payload(parsed)
            self._normalize_backgrounds(loaded, parsed)
            self._config = loaded
        LOGGER.info("Loaded config with %d background(s)", len(loaded.background_gallery))

    def save(self) -> None:
        """Persist the current configuration.

        Raises:
            PersistenceError: If the backing store rejects the write
        """
        with self._lock:
            payload = self._config.to_payload()
        data = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        try:
            self._config_store.set(config.CONFIG_KEY, data)
        except PersistenceError:
            LOGGER.error("Saving config failed")
            raise
        except OSError as exc:
            LOGGER.error("Saving config failed: %s", exc)
            raise PersistenceError(f"Failed to save config: {exc}") from exc

    def _normalize_backgrounds(self, target: PhotoboothConfig, parsed: Dict[str, Any]) -> None:
        if len(target.background_gallery) > self._max_backgrounds:
            LOGGER.warning(
                "Stored gallery holds %d backgrounds, keeping the first %d",
                len(target.background_gallery),
                self._max_backgrounds,
            )
            del target.background_gallery[self._max_backgrounds:]

        legacy = parsed.get("backgroundDataUrl")
        selected = parsed.get("selectedBackgroundId")

        if not selected and isinstance(legacy, str) and legacy:
            if len(target.background_gallery) >= self._max_backgrounds:
                LOGGER.warning("Gallery is full, legacy background was not migrated")
                target.selected_background_id = None
                return
            migrated = BackgroundItem(id=generate_background_id(), data_url=legacy)
            target.background_gallery.append(migrated)
            target.selected_background_id = migrated.id
            LOGGER.info("Migrated legacy background into gallery as %s", migrated.id)
            return

        ids = {item.id for item in target.background_gallery}
        if target.selected_background_id not in ids:
            if target.selected_background_id is not None:
                LOGGER.warning(
                    "Stored selection %s does not match any background", target.selected_background_id
                )
            target.selected_background_id = None

    # ------------------------------------------------------------------
    # Background gallery
    # ------------------------------------------------------------------
    def add_background(self, item: BackgroundItem) -> None:
        """Append ``item`` and make it the selected background.

        Raises:
            CapacityError: If the gallery already holds the maximum count
            ValueError: If an item with the same id already exists
        """
        with self._lock:
            gallery = self._config.background_gallery
            if len(gallery) >= self._max_backgrounds:
                raise CapacityError(
                    f"Background gallery is full ({self._max_backgrounds} items)"
                )
            if any(existing.id == item.id for existing in gallery):
                raise ValueError(f"Background {item.id!r} already exists")
            self._config = replace(
                self._config,
                background_gallery=[*gallery, item],
                selected_background_id=item.id,
            )
        LOGGER.info("Added background %s", item.id)

    def remove_background(self, background_id: str) -> None:
        """Remove a background, reselecting the first remaining one if needed."""
        with self._lock:
            gallery = [
                item for item in self._config.background_gallery if item.id != background_id
            ]
            if len(gallery) == len(self._config.background_gallery):
                return
            selected = self._config.selected_background_id
            if selected == background_id:
                selected = gallery[0].id if gallery else None
            self._config = replace(
                self._config,
                background_gallery=gallery,
                selected_background_id=selected,
            )
        LOGGER.info("Removed background %s", background_id)

    def select_background(self, background_id: Optional[str]) -> None:
        """Set the selection; unknown ids resolve to no background on read."""
        with self._lock:
            self._config = replace(self._config, selected_background_id=background_id)

    def get_selected_background_data_url(self) -> Optional[str]:
        with self._lock:
            selected = self._config.selected_background_id
            if not selected:
                return None
            for item in self._config.background_gallery:
                if item.id == selected:
                    return item.data_url
            return None

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------
    def get_session(self) -> PhotoboothSession:
        """Return an independent copy of the session record."""
        with self._lock:
            return replace(self._session, photos=list(self._session.photos))

    def start_session(self) -> PhotoboothSession:
        """Begin a new session, discarding any previous one."""
        with self._lock:
            if self._session.session_id is not None:
                LOGGER.info("Discarding session %s", self._session.session_id)
            self._session = PhotoboothSession(
                session_id=generate_session_id(),
                status=SessionStatus.IDLE,
                current_index=0,
                total_photos=self._photo_count,
                photos=[],
            )
            LOGGER.info("Started session %s", self._session.session_id)
            return self.get_session()

    def add_photo(self, photo: Union[bytes, bytearray, memoryview]) -> PhotoboothSession:
        """Append a captured photo and derive the session status from the count."""
        with self._lock:
            session = self._session
            if session.session_id is None:
                raise RuntimeError("Cannot add a photo without an active session")
            if len(session.photos) >= session.total_photos:
                raise RuntimeError("Session already holds all of its photos")
            photos = [*session.photos, bytes(photo)]
            status = (
                SessionStatus.COMPLETED
                if len(photos) >= session.total_photos
                else SessionStatus.CAPTURING
            )
            self._session = replace(
                session,
                photos=photos,
                current_index=len(photos),
                status=status,
            )
            return self.get_session()

    def set_status(self, status: SessionStatus) -> None:
        status = SessionStatus(status)
        if status is SessionStatus.COMPLETED:
            raise ValueError("The completed status is derived from the photo count")
        with self._lock:
            self._session = replace(self._session, status=status)

    def reset_session(self) -> None:
        with self._lock:
            if self._session.session_id is not None:
                LOGGER.info("Reset session %s", self._session.session_id)
            self._session = PhotoboothSession()

    def has_active_session(self) -> bool:
        with self._lock:
            return self._session.session_id is not None


__all__ = ["PhotoboothStore"]
