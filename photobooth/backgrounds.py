"""Image decoding and data URL helpers for backgrounds and photos."""
from __future__ import annotations

import base64
import binascii
import io
import logging
from typing import Optional, Tuple, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from . import config
from .errors import DecodeError
from .models import BackgroundItem, generate_background_id

LOGGER = logging.getLogger(__name__)

ImageSource = Union[bytes, bytearray, memoryview, str]

_MIME_BY_FORMAT = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "GIF": "image/gif",
    "BMP": "image/bmp",
}


def encode_data_url(data: bytes, mime_type: str) -> str:
    """Encode ``data`` as a base64 data URL."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def decode_data_url(data_url: str) -> Tuple[str, bytes]:
    """Split a base64 data URL into ``(mime_type, payload)``.

    Raises:
        DecodeError: If the string is not a base64 data URL
    """
    if not data_url.startswith("data:"):
        raise DecodeError("Not a data URL")
    header, sep, body = data_url.partition(",")
    if not sep:
        raise DecodeError("Data URL has no payload")
    meta = header[len("data:"):]
    if not meta.endswith(";base64"):
        raise DecodeError("Only base64 data URLs are supported")
    mime_type = meta[: -len(";base64")] or "application/octet-stream"
    try:
        payload = base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"Invalid base64 payload: {exc}") from exc
    return mime_type, payload


def source_bytes(source: ImageSource) -> bytes:
    """Return raw encoded bytes for a byte buffer or a data URL."""
    if isinstance(source, str):
        return decode_data_url(source)[1]
    return bytes(source)


def load_image(source: ImageSource) -> Image.Image:
    """Decode ``source`` into an upright RGB image.

    Raises:
        DecodeError: If the data is not a readable image
    """
    data = source_bytes(source)
    if not data:
        raise DecodeError("Image data is empty")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            upright = ImageOps.exif_transpose(img)
            return flatten(upright)
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
        raise DecodeError(f"Failed to decode image: {exc}") from exc


def flatten(image: Image.Image) -> Image.Image:
    """Return ``image`` as RGB, blending transparent areas onto the canvas colour."""
    if image.mode in ("RGBA", "LA", "PA") or (
        image.mode == "P" and "transparency" in image.info
    ):
        rgba = image.convert("RGBA")
        base = Image.new("RGBA", rgba.size, (*config.BACKGROUND_COLOR, 255))
        return Image.alpha_composite(base, rgba).convert("RGB")
    return image.convert("RGB")


def detect_mime_type(data: bytes) -> Optional[str]:
    try:
        with Image.open(io.BytesIO(data)) as img:
            return _MIME_BY_FORMAT.get(img.format or "")
    except (UnidentifiedImageError, OSError):
        return None


def prepare_background(
    data: bytes,
    *,
    name: Optional[str] = None,
    max_size: Tuple[int, int] = (config.BACKGROUND_MAX_WIDTH, config.BACKGROUND_MAX_HEIGHT),
    background_id: Optional[str] = None,
) -> BackgroundItem:
    """Turn an uploaded image into a gallery item.

    Images larger than ``max_size`` are scaled down proportionally; PNG
    sources stay PNG, everything else is re-encoded as JPEG.  Images that
    already fit are stored unchanged.

    Raises:
        DecodeError: If ``data`` is not a readable image
    """
    mime_type = detect_mime_type(data)
    if mime_type is None:
        raise DecodeError("Uploaded background is not a supported image")

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            upright = ImageOps.exif_transpose(img)
            width, height = upright.size
            scale = min(1.0, max_size[0] / width, max_size[1] / height)
            if scale >= 1.0:
                encoded, final_mime = data, mime_type
            else:
                target = (max(1, round(width * scale)), max(1, round(height * scale)))
                resized = upright.resize(target, Image.Resampling.LANCZOS)
                encoded, final_mime = _encode_background(resized, keep_png=mime_type == "image/png")
                LOGGER.info("Scaled background from %sx%s to %sx%s", width, height, *target)
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise DecodeError(f"Failed to decode background: {exc}") from exc

    return BackgroundItem(
        id=background_id or generate_background_id(),
        data_url=encode_data_url(encoded, final_mime),
        name=name,
    )


def _encode_background(image: Image.Image, *, keep_png: bool) -> Tuple[bytes, str]:
    buffer = io.BytesIO()
    if keep_png:
        image.save(buffer, format="PNG", optimize=True)
        return buffer.getvalue(), "image/png"
    flatten(image).save(
        buffer,
        format="JPEG",
        quality=round(config.BACKGROUND_JPEG_QUALITY * 100),
    )
    return buffer.getvalue(), "image/jpeg"


__all__ = [
    "ImageSource",
    "decode_data_url",
    "detect_mime_type",
    "encode_data_url",
    "flatten",
    "load_image",
    "prepare_background",
    "source_bytes",
]
