"""Configuration and session records shared by the store and controllers."""
from __future__ import annotations

import logging
import math
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from . import config

LOGGER = logging.getLogger(__name__)


class FacingMode(str, Enum):
    FRONT = "front"
    BACK = "back"


class SessionStatus(str, Enum):
    IDLE = "idle"
    COUNTING_DOWN = "countingDown"
    CAPTURING = "capturing"
    COMPLETED = "completed"


def generate_background_id() -> str:
    """Return a fresh gallery id in the ``bg-<millis>-<hex>`` form."""
    return f"bg-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def generate_session_id() -> str:
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}"


@dataclass(eq=True, frozen=True)
class BackgroundItem:
    """A background image available in the gallery."""

    id: str
    data_url: str
    name: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"id": self.id, "dataUrl": self.data_url}
        if self.name is not None:
            payload["name"] = self.name
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "BackgroundItem":
        item_id = payload.get("id")
        data_url = payload.get("dataUrl")
        if not isinstance(item_id, str) or not item_id:
            raise ValueError("Background entry is missing an id")
        if not isinstance(data_url, str) or not data_url:
            raise ValueError(f"Background entry {item_id!r} is missing image data")
        name = payload.get("name")
        return cls(id=item_id, data_url=data_url, name=str(name) if name is not None else None)


@dataclass
class PhotoboothConfig:
    """User-facing capture configuration and background gallery."""

    seconds_per_shot: int = config.DEFAULT_SECONDS_PER_SHOT
    facing_mode: FacingMode = FacingMode(config.DEFAULT_FACING_MODE)
    background_gallery: List[BackgroundItem] = field(default_factory=list)
    selected_background_id: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "secondsPerShot": self.seconds_per_shot,
            "facingMode": self.facing_mode.value,
            "backgroundGallery": [item.to_payload() for item in self.background_gallery],
            "selectedBackgroundId": self.selected_background_id,
        }

    def merge_payload(self, payload: Mapping[str, Any]) -> None:
        """Apply recognised fields from ``payload``; invalid values are skipped."""
        if "secondsPerShot" in payload:
            try:
                self.seconds_per_shot = validate_seconds_per_shot(payload["secondsPerShot"])
            except ValueError as exc:
                LOGGER.warning("Ignoring stored secondsPerShot: %s", exc)
        if "facingMode" in payload:
            try:
                self.facing_mode = FacingMode(payload["facingMode"])
            except ValueError:
                LOGGER.warning("Ignoring stored facingMode: %r", payload["facingMode"])
        if "backgroundGallery" in payload:
            self.background_gallery = _parse_gallery(payload["backgroundGallery"])
        if "selectedBackgroundId" in payload:
            selected = payload["selectedBackgroundId"]
            self.selected_background_id = selected if isinstance(selected, str) and selected else None


@dataclass
class PhotoboothSession:
    """Progress of a single capture run."""

    session_id: Optional[str] = None
    status: SessionStatus = SessionStatus.IDLE
    current_index: int = 0
    total_photos: int = 0
    photos: List[bytes] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return self.total_photos > 0 and len(self.photos) >= self.total_photos


def validate_seconds_per_shot(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"secondsPerShot must be a number, got {value!r}")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"secondsPerShot must be finite, got {value!r}")
    seconds = int(value)
    if seconds <= 0:
        raise ValueError(f"secondsPerShot must be positive, got {value!r}")
    return seconds


def _parse_gallery(entries: Any) -> List[BackgroundItem]:
    if not isinstance(entries, list):
        LOGGER.warning("Ignoring stored backgroundGallery: expected a list")
        return []
    gallery: List[BackgroundItem] = []
    seen: set[str] = set()
    for entry in entries:
        if not isinstance(entry, Mapping):
            LOGGER.warning("Skipping malformed background entry: %r", entry)
            continue
        try:
            item = BackgroundItem.from_payload(entry)
        except ValueError as exc:
            LOGGER.warning("Skipping malformed background entry: %s", exc)
            continue
        if item.id in seen:
            LOGGER.warning("Skipping duplicate background id %s", item.id)
            continue
        seen.add(item.id)
        gallery.append(item)
    return gallery


__all__ = [
    "BackgroundItem",
    "FacingMode",
    "PhotoboothConfig",
    "PhotoboothSession",
    "SessionStatus",
    "generate_background_id",
    "generate_session_id",
    "validate_seconds_per_shot",
]
