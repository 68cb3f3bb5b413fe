"""
Tool and interaction state machine.

The whole interactive state is one immutable EditorState record. Pointer
events are folded into it by pure reducer functions; a single Interaction
value records which gesture is in progress, so combinations such as resizing
while panning cannot be represented.

Classes:
    Tool: The active tool
    InteractionKind: The gesture in progress
    Interaction: Gesture data (anchor, current point, freehand path, ...)
    EditorState: Tool, selection, interaction, viewport and style

Functions:
    choose_tool, select_object, set_viewport, set_style: Simple transitions
    pointer_down, pointer_move, pointer_up: Pointer reducers
    mark_mutated: Record that the active select gesture changed an object
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Sequence, Tuple

from ERP_Libs.ImageEditingLib.image_models import EditorStyle, Point, Rect, VectorObject
from ERP_Libs.ImageEditingLib.vector_objects import (
    find_object,
    hit_test,
    resize_handle_test,
    rotate_handle_test,
)
from ERP_Libs.ImageEditingLib.viewport import Viewport, to_bitmap_space


class Tool(Enum):
    SELECT = "select"
    FILL_SELECT = "fill-select"
    BRUSH = "brush"
    AI_ERASE = "ai-erase"
    CROP = "crop"
    RECT = "rect"
    CIRCLE = "circle"
    LINE = "line"
    TEXT = "text"
    PAN = "pan"


class InteractionKind(Enum):
    IDLE = "idle"
    PANNING = "panning"
    DRAGGING = "dragging"
    RESIZING = "resizing"
    ROTATING = "rotating"
    RUBBER_BAND = "rubber-band"
    FREEHAND = "freehand"
    TEXT_PLACEMENT = "text-placement"


SHAPE_TOOLS = (Tool.RECT, Tool.CIRCLE, Tool.LINE)
RUBBER_BAND_TOOLS = SHAPE_TOOLS + (Tool.FILL_SELECT, Tool.CROP)
FREEHAND_TOOLS = (Tool.BRUSH, Tool.AI_ERASE)
SELECT_GESTURES = (InteractionKind.DRAGGING, InteractionKind.RESIZING, InteractionKind.ROTATING)
ORIGIN = Point(0.0, 0.0)


@dataclass(frozen=True)
class Interaction:
    kind: InteractionKind = InteractionKind.IDLE
    start: Point = ORIGIN
    current: Point = ORIGIN
    last_screen: Point = ORIGIN
    grab_offset: Point = ORIGIN
    path: Tuple[Point, ...] = ()
    mutated: bool = False

    @property
    def active(self) -> bool:
        return self.kind is not InteractionKind.IDLE

    @property
    def rubber_band(self) -> Rect:
        return Rect.from_corners(self.start, self.current)


IDLE = Interaction()


@dataclass(frozen=True)
class EditorState:
    tool: Tool = Tool.SELECT
    selected_id: Optional[str] = None
    interaction: Interaction = IDLE
    viewport: Viewport = field(default_factory=Viewport)
    style: EditorStyle = field(default_factory=EditorStyle)
    pointer: Point = ORIGIN

    def selected(self, objects: Sequence[VectorObject]) -> Optional[VectorObject]:
        """The selected object, or None if it no longer exists."""
        return find_object(objects, self.selected_id)


def choose_tool(state: EditorState, tool: Tool) -> EditorState:
    """Switch tools; drawing tools drop the selection."""
    selected_id = state.selected_id if tool in (Tool.SELECT, Tool.PAN) else None
    return replace(state, tool=tool, selected_id=selected_id, interaction=IDLE)


def select_object(state: EditorState, object_id: Optional[str]) -> EditorState:
    return replace(state, selected_id=object_id)


def set_viewport(state: EditorState, viewport: Viewport) -> EditorState:
    return replace(state, viewport=viewport)


def set_style(state: EditorState, style: EditorStyle) -> EditorState:
    return replace(state, style=style)


def mark_mutated(state: EditorState) -> EditorState:
    if state.interaction.mutated:
        return state
    return replace(state, interaction=replace(state.interaction, mutated=True))


def _begin(state: EditorState, kind: InteractionKind, point: Point, screen: Point, **extra) -> EditorState:
    interaction = Interaction(kind=kind, start=point, current=point, last_screen=screen, **extra)
    return replace(state, interaction=interaction, pointer=point)


def pointer_down(state: EditorState, screen: Point, objects: Sequence[VectorObject]) -> EditorState:
    """
    Start a gesture.

    Args:
        state: Current state
        screen: Pointer position in screen space
        objects: Current vector objects, used for hit-testing

    Returns:
        The state with the new interaction (and possibly a new selection)
    """
    point = to_bitmap_space(screen, state.viewport)
    zoom = state.viewport.zoom
    hit = hit_test(point, objects)
    selected = state.selected(objects)

    if state.tool is Tool.PAN or (state.tool is Tool.SELECT and hit is None and selected is None):
        return _begin(state, InteractionKind.PANNING, point, screen)

    if state.tool is Tool.SELECT:
        if selected is not None:
            if rotate_handle_test(point, selected, zoom):
                return _begin(state, InteractionKind.ROTATING, point, screen)
            if resize_handle_test(point, selected, zoom):
                return _begin(state, InteractionKind.RESIZING, point, screen)
            if selected.bounds.contains(point):
                offset = Point(point.x - selected.x, point.y - selected.y)
                return _begin(state, InteractionKind.DRAGGING, point, screen, grab_offset=offset)
        if hit is not None:
            offset = Point(point.x - hit.x, point.y - hit.y)
            state = select_object(state, hit.id)
            return _begin(state, InteractionKind.DRAGGING, point, screen, grab_offset=offset)
        return replace(state, selected_id=None, interaction=IDLE, pointer=point)

    if state.tool in RUBBER_BAND_TOOLS:
        return _begin(state, InteractionKind.RUBBER_BAND, point, screen)

    if state.tool in FREEHAND_TOOLS:
        return _begin(state, InteractionKind.FREEHAND, point, screen, path=(point,))

    if state.tool is Tool.TEXT:
        return _begin(state, InteractionKind.TEXT_PLACEMENT, point, screen)

    return replace(state, pointer=point)


def pointer_move(state: EditorState, screen: Point) -> EditorState:
    """Advance the gesture in progress. Panning works in screen space."""
    interaction = state.interaction
    point = to_bitmap_space(screen, state.viewport)

    if interaction.kind is InteractionKind.PANNING:
        viewport = state.viewport.panned_by(screen.x - interaction.last_screen.x, screen.y - interaction.last_screen.y)
        return replace(state, viewport=viewport, interaction=replace(interaction, last_screen=screen))

    if interaction.kind is InteractionKind.IDLE:
        return replace(state, pointer=point)

    path = interaction.path + (point,) if interaction.kind is InteractionKind.FREEHAND else interaction.path
    return replace(
        state,
        pointer=point,
        interaction=replace(interaction, current=point, last_screen=screen, path=path),
    )


def pointer_up(state: EditorState) -> EditorState:
    """Every gesture ends here, whether or not its commit did anything."""
    return replace(state, interaction=IDLE)
