"""Deterministic collage composition.

Photos are placed into the fixed slots produced by :mod:`photobooth.layout`
using cover-fit: each image is scaled uniformly until it fills its target
rectangle and the overflow on the longer-relative axis is cropped around the
centre.  The same rule draws the optional full-bleed background.  A
background that cannot be decoded falls back to the solid default colour; a
photo that cannot be decoded aborts the composition.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple, Union

from PIL import Image

from . import config
from .backgrounds import ImageSource, encode_data_url, load_image
from .errors import CompositionError, DecodeError
from .layout import fixed_slots
from .validation import validate_export_target

LOGGER = logging.getLogger(__name__)

_FORMATS: Dict[str, Tuple[str, str, str]] = {
    # output_format: (Pillow format, mime type, file extension)
    "jpeg": ("JPEG", "image/jpeg", "jpg"),
    "png": ("PNG", "image/png", "png"),
}


@dataclass(frozen=True)
class CollageResult:
    """A composed collage: pixels plus their encoded form."""

    image: Image.Image
    data: bytes
    data_url: str
    mime_type: str


@dataclass(frozen=True)
class CollageExport:
    """Encoded collage ready to be handed to a download or share target."""

    data: bytes
    filename: str
    mime_type: str


def cover_crop_box(
    image_size: Tuple[int, int], target_size: Tuple[int, int]
) -> Tuple[float, float, float, float]:
    """Return the source ``(left, upper, right, lower)`` box for cover-fit.

    The box keeps the aspect ratio of ``target_size`` and is centred on the
    axis that overflows.
    """
    img_w, img_h = image_size
    box_w, box_h = target_size
    image_aspect = img_w / img_h
    target_aspect = box_w / box_h

    sx, sy, sw, sh = 0.0, 0.0, float(img_w), float(img_h)
    if image_aspect > target_aspect:
        sw = img_h * target_aspect
        sx = (img_w - sw) / 2
    elif image_aspect < target_aspect:
        sh = img_w / target_aspect
        sy = (img_h - sh) / 2
    return sx, sy, sx + sw, sy + sh


def draw_cover(canvas: Image.Image, image: Image.Image, box: Tuple[int, int, int, int]) -> None:
    """Paint ``image`` into ``box`` on ``canvas`` using cover-fit."""
    left, top, right, bottom = box
    size = (right - left, bottom - top)
    fitted = image.resize(
        size,
        Image.Resampling.LANCZOS,
        box=cover_crop_box(image.size, size),
    )
    canvas.paste(fitted, (left, top))


def _quality_to_pillow(quality: float) -> int:
    return max(1, min(100, round(quality * 100)))


def encode_image(image: Image.Image, output_format: str, quality: float) -> bytes:
    """Encode ``image``; quality only applies to JPEG."""
    pil_format = _FORMATS[output_format][0]
    save_params: Dict[str, Any] = {"format": pil_format}
    if pil_format == "JPEG":
        save_params.update({
            "quality": _quality_to_pillow(quality),
            "optimize": True,
        })
    elif pil_format == "PNG":
        save_params.update({
            "optimize": True,
            "compress_level": 6,
        })
    buffer = io.BytesIO()
    image.save(buffer, **save_params)
    return buffer.getvalue()


def compose(
    photos: Sequence[ImageSource],
    background: Optional[ImageSource] = None,
    output_format: str = config.DEFAULT_OUTPUT_FORMAT,
    quality: float = config.DEFAULT_QUALITY,
) -> CollageResult:
    """
    Compose ``photos`` onto the fixed collage canvas.

    Args:
        photos: Encoded photos in slot order; only the first four are used
        background: Optional encoded background (bytes or data URL)
        output_format: ``"jpeg"`` or ``"png"``
        quality: JPEG quality between 0 and 1, ignored for PNG

    Returns:
        CollageResult: Composed pixels and their encoding

    Raises:
        CompositionError: If a photo cannot be decoded
        ValueError: If the format or quality is invalid
    """
    output_format = output_format.lower()
    if output_format not in _FORMATS:
        raise ValueError(f"Unsupported output format: {output_format}")
    if not 0 <= quality <= 1:
        raise ValueError(f"Quality must be between 0 and 1, got {quality}")

    canvas = Image.new(
        "RGB", (config.COLLAGE_WIDTH, config.COLLAGE_HEIGHT), config.BACKGROUND_COLOR
    )

    if background:
        try:
            background_image = load_image(background)
        except DecodeError as exc:
            LOGGER.warning("Background could not be decoded, using solid fill: %s", exc)
        else:
            draw_cover(canvas, background_image, (0, 0, config.COLLAGE_WIDTH, config.COLLAGE_HEIGHT))

    slots = fixed_slots()[: len(photos)]
    if len(photos) < len(fixed_slots()):
        LOGGER.warning("Composing %d photo(s); remaining slots stay empty", len(photos))
    for index, slot in enumerate(slots):
        try:
            image = load_image(photos[index])
        except DecodeError as exc:
            raise CompositionError(f"Photo {index + 1} could not be decoded") from exc
        draw_cover(canvas, image, slot.box)

    _, mime_type, _ = _FORMATS[output_format]
    data = encode_image(canvas, output_format, quality)
    return CollageResult(
        image=canvas,
        data=data,
        data_url=encode_data_url(data, mime_type),
        mime_type=mime_type,
    )


def build_filename(mime_type: str, now: Optional[datetime] = None) -> str:
    """Return ``photobooth_YYYYMMDD_HHMMSS.<ext>`` for the local time."""
    stamp = (now or datetime.now()).strftime(config.EXPORT_TIMESTAMP_FORMAT)
    ext = "png" if mime_type == "image/png" else "jpg"
    return f"{config.EXPORT_FILENAME_PREFIX}_{stamp}.{ext}"


def export_collage(result: CollageResult, now: Optional[datetime] = None) -> CollageExport:
    return CollageExport(
        data=result.data,
        filename=build_filename(result.mime_type, now),
        mime_type=result.mime_type,
    )


def save_export(export: CollageExport, directory: Union[str, Path]) -> Path:
    """Write ``export`` into ``directory`` and return the file path."""
    directory = Path(directory).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    path = validate_export_target(directory, export.filename)
    path.write_bytes(export.data)
    LOGGER.info("Saved collage to %s", path)
    return path


__all__ = [
    "CollageExport",
    "CollageResult",
    "build_filename",
    "compose",
    "cover_crop_box",
    "draw_cover",
    "encode_image",
    "export_collage",
    "save_export",
]
