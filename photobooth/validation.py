"""Checks for user-supplied background files and collage export targets."""
from __future__ import annotations

import re
from pathlib import Path
from typing import Union
from urllib.parse import urlparse

from . import config

BACKGROUND_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".webp", ".bmp", ".gif"})

_EXPORT_NAME = re.compile(
    rf"^{re.escape(config.EXPORT_FILENAME_PREFIX)}_\d{{8}}_\d{{6}}\.(jpg|png)$"
)


def _is_remote(path_str: str) -> bool:
    # Single-letter schemes are Windows drive letters.
    scheme = urlparse(path_str).scheme
    return len(scheme) > 1


def validate_background_file(path: Union[str, Path]) -> Path:
    """Return the resolved path of a background upload.

    The file must be local, non-empty, no larger than
    ``BACKGROUND_MAX_FILE_BYTES`` and carry an image extension.

    Raises:
        ValueError: If any of the checks fail
    """
    path_str = str(path)
    if _is_remote(path_str):
        raise ValueError(f"Backgrounds must be local files, got {path_str}")

    try:
        resolved = Path(path_str).expanduser().resolve(strict=True)
    except FileNotFoundError as exc:
        raise ValueError(f"Background file not found: {path_str}") from exc
    if not resolved.is_file():
        raise ValueError(f"Background is not a file: {path_str}")
    if resolved.suffix.lower() not in BACKGROUND_EXTENSIONS:
        raise ValueError(f"Unsupported background type: {resolved.suffix or '(none)'}")

    size = resolved.stat().st_size
    if size == 0:
        raise ValueError(f"Background file is empty: {path_str}")
    if size > config.BACKGROUND_MAX_FILE_BYTES:
        raise ValueError(
            f"Background file is too large ({size} bytes, limit "
            f"{config.BACKGROUND_MAX_FILE_BYTES})"
        )
    return resolved


def validate_export_target(directory: Union[str, Path], filename: str) -> Path:
    """Return the path a collage named ``filename`` is written to.

    ``filename`` must be a generated export name (no directory parts) and
    ``directory`` an existing local directory.

    Raises:
        ValueError: If the name or the directory is unusable
    """
    if not _EXPORT_NAME.match(filename):
        raise ValueError(f"Not a collage export name: {filename!r}")

    dir_str = str(directory)
    if _is_remote(dir_str):
        raise ValueError(f"Exports must go to a local directory, got {dir_str}")
    resolved = Path(dir_str).expanduser().resolve()
    if not resolved.is_dir():
        raise ValueError(f"Export directory does not exist: {resolved}")
    return resolved / filename


__all__ = ["BACKGROUND_EXTENSIONS", "validate_background_file", "validate_export_target"]
