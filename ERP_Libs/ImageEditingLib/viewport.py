"""
Viewport transform for the editor canvas.

The viewport is a pure view concern: a zoom factor and a pan offset. It never
changes stored pixel or object coordinates. Every pointer event is mapped into
bitmap space through to_bitmap_space() before any tool logic sees it.

Classes:
    Viewport: Immutable zoom/pan pair

Functions:
    to_bitmap_space: Map a screen point into bitmap space
    clamp_zoom: Clamp a zoom factor to the supported range
    fit_zoom: Zoom that fits a canvas inside a container
"""

from dataclasses import dataclass, replace
from typing import Tuple

from ERP_Libs.ImageEditingLib.image_models import Point
from ERP_Libs.constants import (
    FIT_MARGIN,
    MAX_ZOOM,
    MIN_ZOOM,
    WHEEL_ZOOM_IN_FACTOR,
    WHEEL_ZOOM_OUT_FACTOR,
    ZOOM_BUTTON_STEP,
)


def clamp_zoom(zoom: float) -> float:
    return min(MAX_ZOOM, max(MIN_ZOOM, zoom))


@dataclass(frozen=True)
class Viewport:
    zoom: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0

    def with_zoom(self, zoom: float) -> "Viewport":
        return replace(self, zoom=clamp_zoom(zoom))

    def zoom_in(self) -> "Viewport":
        return self.with_zoom(self.zoom + ZOOM_BUTTON_STEP)

    def zoom_out(self) -> "Viewport":
        return self.with_zoom(self.zoom - ZOOM_BUTTON_STEP)

    def wheel(self, delta_y: float) -> "Viewport":
        """Scrolling down zooms out, scrolling up zooms in."""
        factor = WHEEL_ZOOM_OUT_FACTOR if delta_y > 0 else WHEEL_ZOOM_IN_FACTOR
        return self.with_zoom(self.zoom * factor)

    def panned_by(self, dx: float, dy: float) -> "Viewport":
        return replace(self, pan_x=self.pan_x + dx, pan_y=self.pan_y + dy)


def to_bitmap_space(screen_point: Point, viewport: Viewport) -> Point:
    """
    Map a screen-space point into bitmap space.

    Args:
        screen_point: Pointer position relative to the canvas origin on screen
        viewport: Current zoom/pan transform

    Returns:
        (screen_point - pan) / zoom
    """
    return Point(
        (screen_point.x - viewport.pan_x) / viewport.zoom,
        (screen_point.y - viewport.pan_y) / viewport.zoom,
    )


def fit_zoom(container_size: Tuple[int, int], canvas_size: Tuple[int, int], cap: float) -> float:
    """
    Zoom factor that fits the canvas into the container with a margin.

    Args:
        container_size: (width, height) of the on-screen container
        canvas_size: (width, height) of the bitmap
        cap: Upper bound for the result

    Returns:
        The clamped fit zoom, or 1.0 when the container is too small to fit
    """
    container_w, container_h = container_size
    canvas_w, canvas_h = canvas_size
    if canvas_w <= 0 or canvas_h <= 0:
        raise ValueError(f"canvas size must be positive, got {canvas_size}")

    scale = min((container_w - FIT_MARGIN) / canvas_w, (container_h - FIT_MARGIN) / canvas_h, cap)
    if scale <= 0:
        return 1.0
    return clamp_zoom(scale)
