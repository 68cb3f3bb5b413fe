"""
Preview-only decorations drawn over the composed canvas.

Nothing here mutates editor data: the erase overlay reads a read-only mask
snapshot, and the rubber band and selection marks are drawn onto a copy of
the preview image.
"""

import math
from typing import Optional

import numpy as np

from ERP_Libs.ImageEditingLib.image_models import Point, Rect, VectorObject
from ERP_Libs.ImageEditingLib.surfaces import parse_color
from ERP_Libs.ImageEditingLib.vector_objects import handle_radius, resize_handle_center, rotate_handle_center
from ERP_Libs.constants import (
    MASK_THRESHOLD,
    OVERLAY_DARK,
    OVERLAY_LIGHT,
    OVERLAY_STRIPE_WIDTH,
    OVERLAY_TILE_SIZE,
    RUBBER_BAND_DASH,
    SELECTION_COLOR,
)
from ERP_Libs.pillow_compat import Image, ImageDraw


def stripe_tile(offset: float = 0.0) -> np.ndarray:
    """One diagonal-stripe tile, shifted right by offset pixels (wraps)."""
    tile = Image.new("RGBA", (OVERLAY_TILE_SIZE, OVERLAY_TILE_SIZE), OVERLAY_LIGHT)
    draw = ImageDraw.Draw(tile)
    draw.line([(0, OVERLAY_TILE_SIZE), (OVERLAY_TILE_SIZE, 0)], fill=OVERLAY_DARK, width=OVERLAY_STRIPE_WIDTH)
    pixels = np.array(tile, dtype=np.uint8)
    return np.roll(pixels, int(offset) % OVERLAY_TILE_SIZE, axis=1)


def render_mask_overlay(image, mask_snapshot: np.ndarray, offset: float = 0.0, threshold: int = MASK_THRESHOLD):
    """
    Draw the scrolling "erase in progress" stripes over marked pixels.

    Args:
        image: RGBA preview image
        mask_snapshot: (height, width) mask intensities, not modified
        offset: Horizontal scroll of the pattern, advanced by the caller per frame
    """
    marked = mask_snapshot > threshold
    if not marked.any():
        return image
    height, width = marked.shape
    reps_y = height // OVERLAY_TILE_SIZE + 1
    reps_x = width // OVERLAY_TILE_SIZE + 1
    pattern = np.tile(stripe_tile(offset), (reps_y, reps_x, 1))[:height, :width].copy()
    pattern[~marked, 3] = 0
    return Image.alpha_composite(image.convert("RGBA"), Image.fromarray(pattern, mode="RGBA"))


def _dashed_line(draw, start: Point, end: Point, fill, width: int, dash: float) -> None:
    length = math.hypot(end.x - start.x, end.y - start.y)
    if length == 0:
        return
    ux, uy = (end.x - start.x) / length, (end.y - start.y) / length
    pos = 0.0
    while pos < length:
        seg_end = min(pos + dash, length)
        draw.line(
            [(start.x + ux * pos, start.y + uy * pos), (start.x + ux * seg_end, start.y + uy * seg_end)],
            fill=fill,
            width=width,
        )
        pos += dash * 2


def _dashed_rect(draw, rect: Rect, fill, width: int, dash: float) -> None:
    a = Point(rect.x, rect.y)
    b = Point(rect.x + rect.width, rect.y)
    c = Point(rect.x + rect.width, rect.y + rect.height)
    d = Point(rect.x, rect.y + rect.height)
    for start, end in ((a, b), (b, c), (c, d), (d, a)):
        _dashed_line(draw, start, end, fill, width, dash)


def render_rubber_band(image, rect: Rect, stroke: str, fill: Optional[str] = None):
    """Dashed drag rectangle; fill-select previews its fill color."""
    layer = Image.new("RGBA", image.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)
    fill_rgba = parse_color(fill) if fill else None
    if fill_rgba is not None:
        draw.rectangle((rect.x, rect.y, rect.x + rect.width, rect.y + rect.height), fill=fill_rgba)
    stroke_rgba = parse_color(stroke) or parse_color(SELECTION_COLOR)
    _dashed_rect(draw, rect, stroke_rgba, 2, RUBBER_BAND_DASH)
    return Image.alpha_composite(image.convert("RGBA"), layer)


def render_selection(image, obj: VectorObject, zoom: float):
    """
    Dashed outline turned with the object, plus the resize and rotate handles.

    Handles are drawn where they are hit-tested, on the unrotated box.
    """
    color = parse_color(SELECTION_COLOR)
    line_width = max(1, int(round(2 / zoom)))

    outline = Image.new("RGBA", image.size, (0, 0, 0, 0))
    _dashed_rect(ImageDraw.Draw(outline), obj.bounds, color, line_width, 4 / zoom)
    if obj.rotation:
        center = obj.center
        outline = outline.rotate(-math.degrees(obj.rotation), resample=Image.Resampling.BICUBIC, center=(center.x, center.y))
    result = Image.alpha_composite(image.convert("RGBA"), outline)

    draw = ImageDraw.Draw(result)
    radius = handle_radius(zoom) / 2
    for center in (resize_handle_center(obj), rotate_handle_center(obj, zoom)):
        draw.ellipse(
            (center.x - radius, center.y - radius, center.x + radius, center.y + radius),
            fill=(255, 255, 255, 255),
            outline=color,
            width=line_width,
        )
    return result
