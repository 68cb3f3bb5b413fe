"""
Image editing data models for the listing image editor.

This module defines core data structures used throughout the image editing system.

Classes:
    Point: An (x, y) position, in screen or bitmap space
    Rect: An axis-aligned rectangle in bitmap space
    VectorObject: A resizable/rotatable annotation shape or text
    EditorStyle: Property panel values applied to new objects and strokes

Type Aliases:
    RgbaColor: A tuple of 4 integers representing RGBA color values (0-255)
"""

import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, NamedTuple, Optional, Tuple

from ERP_Libs.constants import (
    DEFAULT_FILL_COLOR,
    DEFAULT_FONT_SIZE,
    DEFAULT_OPACITY,
    DEFAULT_STROKE_COLOR,
    DEFAULT_STROKE_WIDTH,
    OBJECT_TEXT,
    OBJECT_TYPES,
)

RgbaColor = Tuple[int, int, int, int]


class Point(NamedTuple):
    x: float
    y: float


class Rect(NamedTuple):
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_corners(cls, a: Point, b: Point) -> "Rect":
        """Normalize two drag corners into a min-corner rectangle."""
        return cls(min(a.x, b.x), min(a.y, b.y), abs(a.x - b.x), abs(a.y - b.y))

    def contains(self, point: Point) -> bool:
        return self.x <= point.x <= self.x + self.width and self.y <= point.y <= self.y + self.height


@dataclass
class VectorObject:
    """An annotation object drawn above the bitmap.

    Coordinates are in bitmap pixels. Rotation is in radians and pivots
    around the center of the bounding box.

    Attributes:
        type: One of 'rect', 'circle', 'line', 'text'
        x, y, width, height: Bounding box
        rotation: Angle in radians
        stroke: Stroke color (hex string or 'transparent')
        fill: Fill color (hex string or 'transparent')
        stroke_width: Stroke width in pixels
        opacity: Opacity in [0, 1]
        font_size: Font size for text objects
        text: Literal string for text objects
        id: Unique identifier
    """
    type: str
    x: float
    y: float
    width: float
    height: float
    rotation: float = 0.0
    stroke: str = DEFAULT_STROKE_COLOR
    fill: str = DEFAULT_FILL_COLOR
    stroke_width: float = DEFAULT_STROKE_WIDTH
    opacity: float = DEFAULT_OPACITY
    font_size: Optional[int] = None
    text: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self):
        if self.type not in OBJECT_TYPES:
            raise ValueError(f"Unknown object type: {self.type}")
        if not (0.0 <= self.opacity <= 1.0):
            raise ValueError(f"opacity must be 0-1, got {self.opacity}")
        if self.type == OBJECT_TEXT and self.font_size is None:
            self.font_size = DEFAULT_FONT_SIZE

    @property
    def bounds(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VectorObject":
        """Create from dictionary, ignoring unknown keys."""
        filtered = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**filtered)


@dataclass(frozen=True)
class EditorStyle:
    """Property panel values.

    Attributes:
        stroke: Stroke color for shapes and brush
        fill: Fill color for shapes, text and fill-select
        stroke_width: Brush and shape stroke width (1-150)
        font_size: Text size (1-150)
        opacity: Opacity in [0, 1]
    """
    stroke: str = DEFAULT_STROKE_COLOR
    fill: str = DEFAULT_FILL_COLOR
    stroke_width: int = DEFAULT_STROKE_WIDTH
    font_size: int = DEFAULT_FONT_SIZE
    opacity: float = DEFAULT_OPACITY

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
