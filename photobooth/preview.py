"""Scaled template preview of the collage layout."""
from __future__ import annotations

import logging
from typing import Optional

from PIL import Image, ImageDraw

from . import config
from .backgrounds import ImageSource, load_image
from .compositor import draw_cover
from .errors import DecodeError
from .layout import fixed_slots, scale_slot

LOGGER = logging.getLogger(__name__)


def render_template_preview(
    width: int,
    height: int,
    background: Optional[ImageSource] = None,
) -> Image.Image:
    """Render the layout at ``width`` x ``height`` with slot outlines.

    The background is drawn with the same cover-fit rule as the final collage
    and the slot rectangles are scaled proportionally from the full-size
    canvas, so the preview matches the exported composition.
    """
    if width <= 0 or height <= 0:
        raise ValueError("Preview dimensions must be positive")

    preview = Image.new("RGB", (width, height), config.BACKGROUND_COLOR)
    if background:
        try:
            draw_cover(preview, load_image(background), (0, 0, width, height))
        except DecodeError as exc:
            LOGGER.warning("Preview background could not be decoded: %s", exc)

    scale_x = width / config.COLLAGE_WIDTH
    scale_y = height / config.COLLAGE_HEIGHT
    draw = ImageDraw.Draw(preview)
    for slot in fixed_slots():
        x, y, w, h = scale_slot(slot, scale_x, scale_y)
        draw.rectangle(
            (round(x), round(y), round(x + w) - 1, round(y + h) - 1),
            outline=config.PREVIEW_OUTLINE_COLOR,
            width=config.PREVIEW_OUTLINE_WIDTH,
        )
    return preview


__all__ = ["render_template_preview"]
