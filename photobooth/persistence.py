"""Key-value storage backends for the persisted configuration."""
from __future__ import annotations

import logging
from threading import RLock
from typing import Dict, Optional, Protocol, runtime_checkable

from PySide6.QtCore import QByteArray, QSettings

from . import config
from .errors import PersistenceError

LOGGER = logging.getLogger(__name__)


@runtime_checkable
class ConfigStore(Protocol):
    """Minimal byte-oriented key-value store."""

    def get(self, key: str) -> Optional[bytes]:
        ...

    def set(self, key: str, value: bytes) -> None:
        ...


class MemoryConfigStore:
    """In-process store, mostly useful for tests and headless runs."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None) -> None:
        self._values: Dict[str, bytes] = dict(initial or {})
        self._lock = RLock()

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: bytes) -> None:
        with self._lock:
            self._values[key] = bytes(value)


class SettingsConfigStore:
    """Store backed by ``QSettings``.

    Values are kept as UTF-8 text so the native settings file stays readable.
    A custom ``QSettings`` instance (e.g. an INI file) can be injected.
    """

    def __init__(self, settings: Optional[QSettings] = None) -> None:
        self._settings = settings or QSettings(
            config.SETTINGS_ORGANIZATION, config.SETTINGS_APPLICATION
        )

    @property
    def settings(self) -> QSettings:
        return self._settings

    def get(self, key: str) -> Optional[bytes]:
        value = self._settings.value(key)
        if value is None:
            return None
        if isinstance(value, QByteArray):
            return bytes(value.data())
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        return str(value).encode("utf-8")

    def set(self, key: str, value: bytes) -> None:
        try:
            text = bytes(value).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise PersistenceError(f"Value for {key!r} is not valid UTF-8") from exc
        self._settings.setValue(key, text)
        self._settings.sync()
        status = self._settings.status()
        if status != QSettings.Status.NoError:
            LOGGER.error("QSettings sync failed for %s: %s", key, status)
            raise PersistenceError(f"Failed to persist {key!r}: {status}")


__all__ = ["ConfigStore", "MemoryConfigStore", "SettingsConfigStore"]
