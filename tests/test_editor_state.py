"""
Tests for the tool/interaction reducers.
"""

import dataclasses

import pytest

from ERP_Libs.ImageEditingLib.editor_state import (
    EditorState,
    InteractionKind,
    Tool,
    choose_tool,
    pointer_down,
    pointer_move,
    pointer_up,
    select_object,
)
from ERP_Libs.ImageEditingLib.image_models import Point, Rect, VectorObject
from ERP_Libs.ImageEditingLib.viewport import Viewport


@pytest.fixture
def box():
    return VectorObject(type="rect", x=100, y=100, width=50, height=50)


class TestToolSelection:
    def test_drawing_tool_clears_selection(self, box):
        state = select_object(EditorState(), box.id)
        assert choose_tool(state, Tool.RECT).selected_id is None

    def test_select_and_pan_keep_selection(self, box):
        state = select_object(EditorState(), box.id)
        assert choose_tool(state, Tool.PAN).selected_id == box.id
        assert choose_tool(state, Tool.SELECT).selected_id == box.id

    def test_tool_accepts_string_value(self):
        assert Tool("ai-erase") is Tool.AI_ERASE
        assert Tool("fill-select") is Tool.FILL_SELECT

    def test_state_is_immutable(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            EditorState().tool = Tool.PAN


class TestPointerDown:
    """Tests for gesture start decisions."""

    def test_pan_tool_pans(self, box):
        state = pointer_down(choose_tool(EditorState(), Tool.PAN), Point(120, 120), [box])
        assert state.interaction.kind is InteractionKind.PANNING

    def test_select_on_empty_canvas_pans(self):
        state = pointer_down(EditorState(), Point(10, 10), [])
        assert state.interaction.kind is InteractionKind.PANNING

    def test_select_hit_selects_and_drags(self, box):
        state = pointer_down(EditorState(), Point(110, 120), [box])
        assert state.selected_id == box.id
        assert state.interaction.kind is InteractionKind.DRAGGING
        assert state.interaction.grab_offset == Point(10, 20)

    def test_miss_with_selection_deselects(self, box):
        state = select_object(EditorState(), box.id)
        state = pointer_down(state, Point(400, 400), [box])
        assert state.selected_id is None
        assert state.interaction.kind is InteractionKind.IDLE

    def test_handles_take_precedence_over_body(self, box):
        state = select_object(EditorState(), box.id)
        assert pointer_down(state, Point(150, 150), [box]).interaction.kind is InteractionKind.RESIZING
        assert pointer_down(state, Point(125, 70), [box]).interaction.kind is InteractionKind.ROTATING
        assert pointer_down(state, Point(120, 120), [box]).interaction.kind is InteractionKind.DRAGGING

    def test_selected_object_beats_topmost_hit(self, box):
        cover = VectorObject(type="rect", x=90, y=90, width=80, height=80)
        state = select_object(EditorState(), box.id)
        state = pointer_down(state, Point(120, 120), [box, cover])
        assert state.selected_id == box.id

    def test_shape_tool_starts_rubber_band(self):
        state = pointer_down(choose_tool(EditorState(), Tool.RECT), Point(10, 10), [])
        state = pointer_move(state, Point(50, 40))
        assert state.interaction.kind is InteractionKind.RUBBER_BAND
        assert state.interaction.rubber_band == Rect(10, 10, 40, 30)

    def test_reverse_drag_normalizes_rubber_band(self):
        state = pointer_down(choose_tool(EditorState(), Tool.CROP), Point(50, 40), [])
        state = pointer_move(state, Point(10, 10))
        assert state.interaction.rubber_band == Rect(10, 10, 40, 30)

    def test_brush_collects_path(self):
        state = pointer_down(choose_tool(EditorState(), Tool.BRUSH), Point(1, 1), [])
        state = pointer_move(state, Point(2, 2))
        state = pointer_move(state, Point(3, 3))
        assert state.interaction.path == (Point(1, 1), Point(2, 2), Point(3, 3))

    def test_text_tool_places_text(self):
        state = pointer_down(choose_tool(EditorState(), Tool.TEXT), Point(7, 8), [])
        assert state.interaction.kind is InteractionKind.TEXT_PLACEMENT
        assert state.interaction.current == Point(7, 8)

    def test_coordinates_go_through_viewport(self):
        state = dataclasses.replace(EditorState(tool=Tool.RECT), viewport=Viewport(zoom=2.0, pan_x=10, pan_y=10))
        state = pointer_down(state, Point(30, 50), [])
        assert state.interaction.start == Point(10, 20)


class TestPointerMoveAndUp:
    def test_panning_moves_viewport_in_screen_space(self):
        state = dataclasses.replace(EditorState(tool=Tool.PAN), viewport=Viewport(zoom=2.0))
        state = pointer_down(state, Point(100, 100), [])
        state = pointer_move(state, Point(130, 90))
        assert (state.viewport.pan_x, state.viewport.pan_y) == (30, -10)
        state = pointer_move(state, Point(140, 90))
        assert state.viewport.pan_x == 40

    def test_move_while_idle_only_tracks_pointer(self):
        state = pointer_move(EditorState(), Point(5, 6))
        assert state.interaction.kind is InteractionKind.IDLE
        assert state.pointer == Point(5, 6)

    def test_pointer_up_always_idles(self):
        state = pointer_down(choose_tool(EditorState(), Tool.BRUSH), Point(1, 1), [])
        state = pointer_up(state)
        assert not state.interaction.active
        assert state.tool is Tool.BRUSH
