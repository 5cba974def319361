"""Fixed slot geometry for the collage canvas.

The collage always uses a 2x2 grid of photo slots framed by a margin on every
side and a text band along the bottom edge.  The geometry is computed with
integer arithmetic so slots stay pixel-aligned and repeated calls with the
same arguments always yield identical rectangles.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Tuple

from . import config
from .errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class Slot:
    """A destination rectangle in canvas coordinates."""

    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def box(self) -> Tuple[int, int, int, int]:
        """Return the slot as a Pillow ``(left, upper, right, lower)`` box."""
        return self.x, self.y, self.right, self.bottom

    def overlaps(self, other: "Slot") -> bool:
        return (
            self.x < other.right
            and other.x < self.right
            and self.y < other.bottom
            and other.y < self.bottom
        )

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


SlotGrid = Tuple[Slot, Slot, Slot, Slot]


@lru_cache(maxsize=None)
def compute_slots(
    canvas_width: int,
    canvas_height: int,
    margin: int,
    gap: int,
    text_area_height: int,
) -> SlotGrid:
    """
    Calculate the four photo slots for a canvas.

    Args:
        canvas_width (int): Width of the canvas
        canvas_height (int): Height of the canvas
        margin (int): Margin kept clear on every side
        gap (int): Spacing between neighbouring slots
        text_area_height (int): Height of the band reserved at the bottom

    Returns:
        SlotGrid: Slots ordered top-left, top-right, bottom-left, bottom-right

    Raises:
        ConfigurationError: If the dimensions leave no room for the grid
    """
    if canvas_width <= 0 or canvas_height <= 0:
        raise ConfigurationError(
            f"Canvas dimensions must be positive, got {canvas_width}x{canvas_height}"
        )
    if margin < 0 or gap < 0 or text_area_height < 0:
        raise ConfigurationError("Margin, gap and text area height must not be negative")

    inner_width = canvas_width - margin * 2
    inner_height = canvas_height - margin * 2 - text_area_height
    slot_width = (inner_width - gap) // 2
    slot_height = (inner_height - gap) // 2
    if slot_width <= 0 or slot_height <= 0:
        raise ConfigurationError(
            f"Layout leaves no room for slots ({slot_width}x{slot_height})"
        )

    left = margin
    top = margin
    right = left + slot_width + gap
    bottom = top + slot_height + gap

    return (
        Slot(left, top, slot_width, slot_height),
        Slot(right, top, slot_width, slot_height),
        Slot(left, bottom, slot_width, slot_height),
        Slot(right, bottom, slot_width, slot_height),
    )


def fixed_slots() -> SlotGrid:
    """Return the slots for the standard collage canvas."""
    return compute_slots(
        config.COLLAGE_WIDTH,
        config.COLLAGE_HEIGHT,
        config.COLLAGE_MARGIN,
        config.COLLAGE_GAP,
        config.COLLAGE_TEXT_AREA_HEIGHT,
    )


def scale_slot(slot: Slot, scale_x: float, scale_y: float) -> Tuple[float, float, float, float]:
    """Scale ``slot`` for a preview rendered at a different size."""
    return (
        slot.x * scale_x,
        slot.y * scale_y,
        slot.width * scale_x,
        slot.height * scale_y,
    )


__all__ = ["Slot", "SlotGrid", "compute_slots", "fixed_slots", "scale_slot"]
