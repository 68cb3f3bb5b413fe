"""
Vector object model: creation, hit-testing, transforms and rasterization.

Objects live in an ordered list; list order is paint order, so hit-testing
walks the list backwards and the topmost object wins.

Hit-testing uses the unrotated axis-aligned bounding box even for rotated
objects. Clicking a corner that a rotated shape no longer covers still hits
it; this is a known simplification, not the rotated geometry.

Functions:
    hit_test: Topmost object whose bounding box contains a point
    resize_handle_test: Is a point on the selected object's resize handle
    rotate_handle_test: Is a point on the selected object's rotate handle
    create_shape: Build a rect/circle/line object from a drag rectangle
    create_fill_rect: Build a borderless filled rectangle from a drag rectangle
    create_text: Build a text object sized from its content
    drag_object, resize_object, rotate_object: Pointer-driven transforms
    render_objects: Alpha-composite objects onto an image
"""

import logging
import math
from dataclasses import replace
from functools import lru_cache
from typing import List, Optional, Sequence

from ERP_Libs.ImageEditingLib.image_models import EditorStyle, Point, Rect, VectorObject
from ERP_Libs.ImageEditingLib.surfaces import parse_color
from ERP_Libs.constants import (
    HANDLE_SIZE,
    MIN_COMMIT_SIZE,
    MIN_OBJECT_SIZE,
    OBJECT_CIRCLE,
    OBJECT_LINE,
    OBJECT_RECT,
    OBJECT_TEXT,
    ROTATE_HANDLE_OFFSET,
    TEXT_WIDTH_FACTOR,
    TRANSPARENT,
)
from ERP_Libs.pillow_compat import Image, ImageDraw, ImageFont

logger = logging.getLogger(__name__)

SHAPE_TYPES = (OBJECT_RECT, OBJECT_CIRCLE, OBJECT_LINE)


# ============================================================================
# Lookup and hit-testing
# ============================================================================

def find_object(objects: Sequence[VectorObject], object_id: Optional[str]) -> Optional[VectorObject]:
    if object_id is None:
        return None
    for obj in objects:
        if obj.id == object_id:
            return obj
    return None


def hit_test(point: Point, objects: Sequence[VectorObject]) -> Optional[VectorObject]:
    """
    Return the topmost object whose bounding box contains the point.

    Args:
        point: Position in bitmap space
        objects: Objects in paint order (last is topmost)

    Returns:
        The hit object, or None
    """
    for obj in reversed(objects):
        if obj.bounds.contains(point):
            return obj
    return None


def handle_radius(zoom: float) -> float:
    """Handle radius in bitmap pixels; constant on screen at any zoom."""
    return HANDLE_SIZE / zoom


def resize_handle_center(obj: VectorObject) -> Point:
    return Point(obj.x + obj.width, obj.y + obj.height)


def rotate_handle_center(obj: VectorObject, zoom: float) -> Point:
    return Point(obj.x + obj.width / 2, obj.y - ROTATE_HANDLE_OFFSET / zoom)


def resize_handle_test(point: Point, obj: VectorObject, zoom: float) -> bool:
    center = resize_handle_center(obj)
    return math.hypot(point.x - center.x, point.y - center.y) < handle_radius(zoom)


def rotate_handle_test(point: Point, obj: VectorObject, zoom: float) -> bool:
    center = rotate_handle_center(obj, zoom)
    return math.hypot(point.x - center.x, point.y - center.y) < handle_radius(zoom)


# ============================================================================
# Creation
# ============================================================================

def is_committable(rect: Rect) -> bool:
    """Drags of MIN_COMMIT_SIZE pixels or less are pointer jitter."""
    return rect.width > MIN_COMMIT_SIZE and rect.height > MIN_COMMIT_SIZE


def create_shape(shape_type: str, rect: Rect, style: EditorStyle) -> Optional[VectorObject]:
    """
    Build a shape object from a drag rectangle.

    Returns:
        The new object, or None when the rectangle is too small to commit
    """
    if shape_type not in SHAPE_TYPES:
        raise ValueError(f"Not a shape type: {shape_type}")
    if not is_committable(rect):
        return None
    return VectorObject(
        type=shape_type,
        x=rect.x,
        y=rect.y,
        width=rect.width,
        height=rect.height,
        stroke=style.stroke,
        fill=style.fill,
        stroke_width=style.stroke_width,
        opacity=style.opacity,
    )


def create_fill_rect(rect: Rect, style: EditorStyle) -> Optional[VectorObject]:
    if not is_committable(rect):
        return None
    return VectorObject(
        type=OBJECT_RECT,
        x=rect.x,
        y=rect.y,
        width=rect.width,
        height=rect.height,
        stroke=TRANSPARENT,
        fill=style.fill,
        stroke_width=0,
        opacity=style.opacity,
    )


def create_text(position: Point, text: str, style: EditorStyle) -> Optional[VectorObject]:
    """Build a text object whose box is estimated from character count and font size."""
    if not text:
        return None
    rect = Rect(position.x, position.y, len(text) * style.font_size * TEXT_WIDTH_FACTOR, style.font_size)
    if not is_committable(rect):
        return None
    return VectorObject(
        type=OBJECT_TEXT,
        x=rect.x,
        y=rect.y,
        width=rect.width,
        height=rect.height,
        stroke=style.stroke,
        fill=style.fill,
        stroke_width=1,
        opacity=style.opacity,
        font_size=style.font_size,
        text=text,
    )


# ============================================================================
# Transforms
# ============================================================================

def drag_object(obj: VectorObject, pointer: Point, grab_offset: Point) -> VectorObject:
    return replace(obj, x=pointer.x - grab_offset.x, y=pointer.y - grab_offset.y)


def resize_object(obj: VectorObject, pointer: Point) -> VectorObject:
    """Resize from the fixed top-left corner, never below MIN_OBJECT_SIZE."""
    return replace(
        obj,
        width=max(MIN_OBJECT_SIZE, pointer.x - obj.x),
        height=max(MIN_OBJECT_SIZE, pointer.y - obj.y),
    )


def rotate_object(obj: VectorObject, pointer: Point) -> VectorObject:
    """Point the rotate handle at the pointer; the handle rests straight up."""
    center = obj.center
    angle = math.atan2(pointer.y - center.y, pointer.x - center.x) + math.pi / 2
    return replace(obj, rotation=angle)


def translate_objects(objects: Sequence[VectorObject], dx: float, dy: float) -> List[VectorObject]:
    return [replace(obj, x=obj.x + dx, y=obj.y + dy) for obj in objects]


# ============================================================================
# Rasterization
# ============================================================================

@lru_cache(maxsize=32)
def load_font(size: int):
    try:
        return ImageFont.truetype("DejaVuSans-Bold.ttf", size)
    except OSError:
        logger.debug("DejaVuSans-Bold.ttf not found, using Pillow's default font")
        return ImageFont.load_default(size=size)


def _draw_object(draw, obj: VectorObject) -> None:
    fill = parse_color(obj.fill)
    stroke = parse_color(obj.stroke)
    stroke_width = int(round(obj.stroke_width)) if stroke is not None else 0
    box = (obj.x, obj.y, obj.x + obj.width, obj.y + obj.height)

    if obj.type == OBJECT_RECT:
        draw.rectangle(box, fill=fill, outline=stroke, width=stroke_width)
    elif obj.type == OBJECT_CIRCLE:
        draw.ellipse(box, fill=fill, outline=stroke, width=stroke_width)
    elif obj.type == OBJECT_LINE:
        if stroke is not None:
            draw.line([(obj.x, obj.y), (obj.x + obj.width, obj.y + obj.height)], fill=stroke, width=max(stroke_width, 1))
    elif obj.type == OBJECT_TEXT:
        if fill is not None and obj.text:
            # Baseline sits on the bottom edge of the box
            draw.text((obj.x, obj.y + obj.height), obj.text, fill=fill, font=load_font(int(obj.font_size)), anchor="ls")


def render_object(image, obj: VectorObject):
    """
    Composite one object onto an RGBA image.

    The object is drawn on a transparent layer, rotated about its center and
    faded by its opacity before compositing.
    """
    layer = Image.new("RGBA", image.size, (0, 0, 0, 0))
    _draw_object(ImageDraw.Draw(layer), obj)

    if obj.rotation:
        center = obj.center
        layer = layer.rotate(
            -math.degrees(obj.rotation),
            resample=Image.Resampling.BICUBIC,
            center=(center.x, center.y),
        )

    if obj.opacity < 1.0:
        alpha = layer.getchannel("A").point(lambda a: int(round(a * obj.opacity)))
        layer.putalpha(alpha)

    return Image.alpha_composite(image, layer)


def render_objects(image, objects: Sequence[VectorObject]):
    """Composite objects in paint order onto a copy of the image."""
    result = image.convert("RGBA")
    for obj in objects:
        result = render_object(result, obj)
    return result
