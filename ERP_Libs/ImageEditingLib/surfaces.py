"""
Bitmap and mask surfaces for the editor.

The bitmap surface is the mutable RGBA photo; the mask surface is a parallel
single-channel grid recording which pixels are queued for removal. Both keep
their pixels in numpy arrays and convert to Pillow images for drawing,
resizing and encoding.

Classes:
    BitmapSurface: RGBA pixel grid (height x width x 4, uint8)
    MaskSurface: Intensity grid (height x width, uint8), marked above a threshold

Functions:
    draw_round_path: Stroke a polyline with round caps and joins
    parse_color: Convert a CSS-style color string to RGBA
"""

import io
from typing import Optional, Sequence, Tuple

import numpy as np

from ERP_Libs.ImageEditingLib.image_models import Point, Rect, RgbaColor
from ERP_Libs.constants import (
    HISTORY_IMAGE_FORMAT,
    MASK_INK,
    MASK_THRESHOLD,
    STANDARD_BACKGROUND,
    STANDARD_CANVAS_SIZE,
    STANDARD_CONTENT_SIZE,
    TRANSPARENT,
)
from ERP_Libs.pillow_compat import Image, ImageColor, ImageDraw


def parse_color(color: str, opacity: float = 1.0) -> Optional[RgbaColor]:
    """
    Convert a color string to an RGBA tuple.

    Args:
        color: Hex string ('#rrggbb'), CSS color name, or 'transparent'
        opacity: Multiplier applied to the alpha channel

    Returns:
        RGBA tuple, or None for 'transparent'

    Raises:
        ValueError: If the color string cannot be parsed
    """
    if not color or color.lower() == TRANSPARENT:
        return None
    rgba = ImageColor.getcolor(color, "RGBA")
    return (rgba[0], rgba[1], rgba[2], int(round(rgba[3] * opacity)))


def draw_round_path(draw, points: Sequence[Point], fill, width: float) -> None:
    """
    Stroke a polyline with round caps and joins.

    A single point is drawn as a dot of the stroke width.
    """
    if not points:
        return
    radius = max(width, 1) / 2.0
    coords = [(float(p.x), float(p.y)) for p in points]
    if len(coords) > 1:
        draw.line(coords, fill=fill, width=max(int(round(width)), 1), joint="curve")
    for x, y in coords:
        draw.ellipse((x - radius, y - radius, x + radius, y + radius), fill=fill)


class BitmapSurface:
    """Mutable RGBA pixel surface."""

    def __init__(self, pixels: np.ndarray):
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"Expected (height, width, 4) pixel array, got {pixels.shape}")
        self.pixels = np.ascontiguousarray(pixels, dtype=np.uint8)

    @classmethod
    def from_image(cls, image) -> "BitmapSurface":
        if not hasattr(image, "mode"):
            raise TypeError(f"Expected PIL Image, got {type(image)}")
        return cls(np.array(image.convert("RGBA"), dtype=np.uint8))

    @classmethod
    def blank(cls, size: Tuple[int, int], color: RgbaColor = (0, 0, 0, 0)) -> "BitmapSurface":
        width, height = size
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[:, :] = color
        return cls(pixels)

    @classmethod
    def decode(cls, data: bytes) -> "BitmapSurface":
        with Image.open(io.BytesIO(data)) as image:
            return cls.from_image(image)

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    def to_image(self):
        return Image.fromarray(self.pixels.copy(), mode="RGBA")

    def copy(self) -> "BitmapSurface":
        return BitmapSurface(self.pixels.copy())

    def encode(self, image_format: str = HISTORY_IMAGE_FORMAT, **save_kwargs) -> bytes:
        """Encode to compressed image bytes. JPEG drops the alpha channel."""
        image = self.to_image()
        if image_format.upper() in ("JPG", "JPEG"):
            image = image.convert("RGB")
        buffer = io.BytesIO()
        image.save(buffer, format=image_format, **save_kwargs)
        return buffer.getvalue()

    def replace_with(self, image) -> None:
        """Replace the pixels in place, possibly changing the size."""
        self.pixels = np.array(image.convert("RGBA"), dtype=np.uint8)

    def composite(self, image) -> None:
        """Alpha-composite an image over the surface, resized to fit if needed."""
        overlay = image.convert("RGBA")
        if overlay.size != self.size:
            overlay = overlay.resize(self.size, Image.Resampling.LANCZOS)
        self.replace_with(Image.alpha_composite(self.to_image(), overlay))

    def stroke_path(self, points: Sequence[Point], color: str, width: float, opacity: float = 1.0) -> None:
        """
        Merge a freehand stroke into the surface.

        The whole path is rasterized as one coverage layer so overlapping
        segments do not darken at partial opacity.
        """
        rgba = parse_color(color)
        if rgba is None or not points or opacity <= 0:
            return
        coverage = Image.new("L", self.size, 0)
        draw_round_path(ImageDraw.Draw(coverage), points, fill=255, width=width)
        alpha = (np.array(coverage, dtype=np.float32) * (rgba[3] / 255.0) * opacity)
        layer = np.zeros_like(self.pixels)
        layer[:, :, :3] = rgba[:3]
        layer[:, :, 3] = np.clip(np.rint(alpha), 0, 255).astype(np.uint8)
        self.replace_with(Image.alpha_composite(self.to_image(), Image.fromarray(layer, mode="RGBA")))

    def crop(self, rect: Rect) -> None:
        x0, y0, x1, y1 = clip_rect(rect, self.size)
        self.pixels = self.pixels[y0:y1, x0:x1].copy()

    def standardize(
        self,
        canvas_size: int = STANDARD_CANVAS_SIZE,
        content_size: int = STANDARD_CONTENT_SIZE,
    ) -> None:
        """
        Place the image, scaled to fit content_size, centered on a white
        canvas_size x canvas_size canvas.
        """
        scale = min(content_size / self.width, content_size / self.height)
        scaled_w = max(1, int(round(self.width * scale)))
        scaled_h = max(1, int(round(self.height * scale)))
        scaled = self.to_image().resize((scaled_w, scaled_h), Image.Resampling.LANCZOS)

        canvas = Image.new("RGBA", (canvas_size, canvas_size), STANDARD_BACKGROUND)
        offset = ((canvas_size - scaled_w) // 2, (canvas_size - scaled_h) // 2)
        canvas.alpha_composite(scaled, dest=offset)
        self.replace_with(canvas)


class MaskSurface:
    """Removal mask, 1:1 with the bitmap surface."""

    def __init__(self, data: np.ndarray):
        if data.ndim != 2:
            raise ValueError(f"Expected (height, width) mask array, got {data.shape}")
        self.data = np.ascontiguousarray(data, dtype=np.uint8)

    @classmethod
    def blank(cls, size: Tuple[int, int]) -> "MaskSurface":
        width, height = size
        return cls(np.zeros((height, width), dtype=np.uint8))

    @property
    def size(self) -> Tuple[int, int]:
        return (self.data.shape[1], self.data.shape[0])

    def marked(self, threshold: int = MASK_THRESHOLD) -> np.ndarray:
        return self.data > threshold

    def has_marks(self, threshold: int = MASK_THRESHOLD) -> bool:
        return bool(self.marked(threshold).any())

    def clear(self) -> None:
        self.data.fill(0)

    def mark_rect(self, rect: Rect) -> None:
        x0, y0, x1, y1 = clip_rect(rect, self.size)
        self.data[y0:y1, x0:x1] = MASK_INK

    def stroke(self, points: Sequence[Point], width: float) -> None:
        """Mark every pixel covered by a round-capped stroke."""
        image = Image.fromarray(self.data, mode="L")
        draw_round_path(ImageDraw.Draw(image), points, fill=MASK_INK, width=width)
        self.data = np.array(image, dtype=np.uint8)

    def resize(self, size: Tuple[int, int]) -> None:
        if size == self.size:
            return
        image = Image.fromarray(self.data, mode="L").resize(size, Image.Resampling.NEAREST)
        self.data = np.array(image, dtype=np.uint8)

    def crop(self, rect: Rect) -> None:
        x0, y0, x1, y1 = clip_rect(rect, self.size)
        self.data = self.data[y0:y1, x0:x1].copy()

    def snapshot(self) -> np.ndarray:
        """Read-only copy for renderers."""
        view = self.data.copy()
        view.setflags(write=False)
        return view

    def to_image(self):
        return Image.fromarray(self.data, mode="L")

    def encode(self) -> bytes:
        buffer = io.BytesIO()
        self.to_image().save(buffer, format="PNG")
        return buffer.getvalue()


def clip_rect(rect: Rect, size: Tuple[int, int]) -> Tuple[int, int, int, int]:
    """Integer (x0, y0, x1, y1) of a rectangle clipped to a surface."""
    width, height = size
    x0 = min(max(int(np.floor(rect.x)), 0), width)
    y0 = min(max(int(np.floor(rect.y)), 0), height)
    x1 = min(max(int(np.ceil(rect.x + rect.width)), 0), width)
    y1 = min(max(int(np.ceil(rect.y + rect.height)), 0), height)
    return x0, y0, max(x0, x1), max(y0, y1)
