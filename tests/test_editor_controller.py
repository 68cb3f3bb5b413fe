"""
Tests for the editor controller.

Tests cover:
- Loading (success, fetch failure, undecodable bytes, fit zoom)
- Shape, fill, text, brush and crop commits
- Select gestures (drag, resize) and their history entries
- Erase round trip (local and remote)
- Undo, delete, standardize
- Style panel updates
- Save and close callbacks, including failure handling
"""

import base64
import math

import numpy as np
import pytest
from PIL import Image

from ERP_Libs.ImageEditingLib.editor_controller import EditorConfig, LoadState
from ERP_Libs.ImageEditingLib.editor_state import InteractionKind, Tool
from ERP_Libs.ImageEditingLib.image_models import Point
from ERP_Libs.RemoteLib.ai_image_edit import AiEditResult
from ERP_Libs.RemoteLib.image_transfer import ImageFetchError, UploadError
from tests.conftest import BLUE, GREEN, RED, FakeUploader, png_bytes


def _drag(controller, start, end):
    controller.pointer_down(Point(*start))
    controller.pointer_move(Point(*end))
    controller.pointer_up()


def _draw_rect(controller, start=(10, 10), end=(50, 40)):
    controller.choose_tool("rect")
    _drag(controller, start, end)
    return controller.objects[-1]


class TestLoading:
    """Tests for the load lifecycle."""

    def test_load_initializes_surfaces(self, make_controller):
        controller = make_controller()

        assert controller.ready
        assert controller.load_state is LoadState.READY
        assert controller.bitmap.size == (200, 100)
        assert controller.mask.size == (200, 100)
        assert controller.objects == []
        assert len(controller.history) == 1

    def test_fetch_failure_leaves_editor_inert(self, make_controller):
        def failing_fetch(url):
            raise ImageFetchError("HTTP 404")

        controller = make_controller(load=False, fetcher=failing_fetch)

        assert controller.load() is False
        assert controller.load_state is LoadState.FAILED
        assert "HTTP 404" in controller.last_error
        assert not controller.ready

        controller.choose_tool("rect")
        controller.pointer_down(Point(10, 10))
        assert controller.state.interaction.kind is InteractionKind.IDLE
        assert controller.render() is None
        assert controller.save() is False

    def test_undecodable_bytes_fail_load(self, make_controller):
        controller = make_controller(load=False, fetcher=lambda url: b"not an image")

        assert controller.load() is False
        assert controller.load_state is LoadState.FAILED

    def test_fit_zoom_on_load(self, make_controller):
        controller = make_controller(load=False)
        controller.set_container_size((1100, 600))
        controller.load()

        assert controller.state.viewport.zoom == pytest.approx(0.9)

    def test_config_round_trip(self):
        config = EditorConfig(history_cap=5, ai_instruction="Remove")
        assert EditorConfig.from_dict({**config.to_dict(), "unknown": 1}) == config


class TestShapeTools:
    """Tests for rubber-band commits."""

    def test_rect_commit(self, make_controller):
        controller = make_controller()
        obj = _draw_rect(controller)

        assert len(controller.objects) == 1
        assert (obj.type, obj.x, obj.y, obj.width, obj.height) == ("rect", 10, 10, 40, 30)
        assert controller.state.tool is Tool.SELECT
        assert controller.state.selected_id == obj.id
        assert len(controller.history) == 2

    def test_pointer_up_with_position_applies_move(self, make_controller):
        controller = make_controller()
        controller.choose_tool("circle")
        controller.pointer_down(Point(10, 10))
        controller.pointer_up(Point(30, 30))

        assert controller.objects[0].type == "circle"
        assert controller.objects[0].width == 20

    def test_jitter_drag_is_discarded(self, make_controller):
        controller = make_controller()
        controller.choose_tool("rect")
        _drag(controller, (10, 10), (11, 11))

        assert controller.objects == []
        assert len(controller.history) == 1
        assert controller.state.tool is Tool.RECT

    def test_fill_select_adds_unselected_borderless_rect(self, make_controller):
        controller = make_controller()
        controller.set_style(fill="#00ff00")
        controller.choose_tool("fill-select")
        _drag(controller, (20, 20), (60, 60))

        obj = controller.objects[0]
        assert (obj.stroke, obj.stroke_width, obj.fill) == ("transparent", 0, "#00ff00")
        assert controller.state.selected_id is None
        assert controller.state.tool is Tool.SELECT

    def test_text_placement(self, make_controller):
        controller = make_controller(text_prompt=lambda: "Hi")
        controller.choose_tool("text")
        controller.pointer_down(Point(20, 30))
        controller.pointer_up()

        obj = controller.objects[0]
        assert (obj.type, obj.text, obj.x, obj.y) == ("text", "Hi", 20, 30)
        assert obj.width == pytest.approx(2 * 40 * 0.6)
        assert controller.state.selected_id == obj.id

    def test_cancelled_text_prompt_adds_nothing(self, make_controller):
        controller = make_controller(text_prompt=lambda: None)
        controller.choose_tool("text")
        controller.pointer_down(Point(20, 30))
        controller.pointer_up()

        assert controller.objects == []
        assert len(controller.history) == 1

    def test_failing_commit_does_not_raise(self, make_controller):
        def broken_prompt():
            raise RuntimeError("dialog crashed")

        controller = make_controller(text_prompt=broken_prompt)
        controller.choose_tool("text")
        controller.pointer_down(Point(20, 30))
        controller.pointer_up()

        assert controller.state.interaction.kind is InteractionKind.IDLE
        assert controller.objects == []


class TestSelectGestures:
    """Tests for drag and resize of the selected object."""

    def test_drag_moves_object_and_records_history(self, make_controller):
        controller = make_controller()
        obj = _draw_rect(controller)
        _drag(controller, (20, 20), (60, 50))

        moved = controller.selected_object
        assert moved.id == obj.id
        assert (moved.x, moved.y) == (50, 40)
        assert len(controller.history) == 3

    def test_click_without_move_records_nothing(self, make_controller):
        controller = make_controller()
        _draw_rect(controller)
        controller.pointer_down(Point(20, 20))
        controller.pointer_up()

        assert len(controller.history) == 2

    def test_resize_from_handle(self, make_controller):
        controller = make_controller()
        _draw_rect(controller)
        _drag(controller, (50, 40), (80, 70))

        resized = controller.selected_object
        assert (resized.x, resized.y, resized.width, resized.height) == (10, 10, 70, 60)

    def test_resize_floor(self, make_controller):
        controller = make_controller()
        _draw_rect(controller)
        _drag(controller, (50, 40), (0, 0))

        assert (controller.selected_object.width, controller.selected_object.height) == (10, 10)

    def test_rotate_from_handle(self, make_controller):
        controller = make_controller()
        _draw_rect(controller)
        # Handle sits above the top edge; pointing it right is a quarter turn
        _drag(controller, (30, -20), (80, 25))

        rotated = controller.selected_object
        assert rotated.rotation == pytest.approx(math.pi / 2)
        assert (rotated.x, rotated.y, rotated.width, rotated.height) == (10, 10, 40, 30)
        assert len(controller.history) == 3


class TestBrush:
    def test_brush_stroke_is_merged_into_bitmap(self, make_controller):
        controller = make_controller()
        controller.set_style(stroke="#00ff00", stroke_width=10)
        controller.choose_tool("brush")
        _drag(controller, (20, 80), (180, 80))

        assert tuple(controller.bitmap.pixels[80, 100]) == GREEN
        assert tuple(controller.bitmap.pixels[20, 100]) == BLUE
        assert len(controller.history) == 2

    def test_stroke_in_progress_is_rendered_before_commit(self, make_controller):
        controller = make_controller()
        controller.set_style(stroke="#00ff00", stroke_width=10)
        controller.choose_tool("brush")
        controller.pointer_down(Point(20, 20))
        controller.pointer_move(Point(60, 20))

        assert controller.render().getpixel((40, 20)) == GREEN
        assert tuple(controller.bitmap.pixels[20, 40]) == BLUE
        assert len(controller.history) == 1


class TestErase:
    """Tests for the erase round trip."""

    def test_local_erase_removes_spot(self, make_controller):
        controller = make_controller()
        controller.set_style(stroke_width=30)
        controller.choose_tool("ai-erase")
        controller.pointer_down(Point(90, 50))
        controller.pointer_move(Point(110, 50))
        assert controller.mask.has_marks()
        controller.pointer_up()

        assert tuple(controller.bitmap.pixels[50, 100]) == BLUE
        assert not controller.mask.has_marks()
        assert controller.state.tool is Tool.SELECT
        assert len(controller.history) == 2

    def test_erase_round_trip_on_blue_square(self, make_controller):
        blue = png_bytes(Image.new("RGBA", (100, 100), BLUE))
        controller = make_controller(fetcher=lambda url: blue)
        controller.choose_tool("ai-erase")
        _drag(controller, (30, 30), (70, 70))

        assert np.all(controller.bitmap.pixels == BLUE)
        assert not controller.mask.has_marks()

    def test_remote_erase_uses_ai_result(self, make_controller):
        edited = base64.b64encode(png_bytes(Image.new("RGBA", (200, 100), GREEN))).decode("ascii")
        calls = []

        def ai_editor(image_b64, instruction, mask_b64=None):
            calls.append(instruction)
            return AiEditResult.success(edited)

        controller = make_controller(ai_editor=ai_editor, config=EditorConfig(ai_instruction="Erase it"))
        controller.choose_tool("ai-erase")
        _drag(controller, (90, 50), (110, 50))

        assert calls == ["Erase it"]
        assert tuple(controller.bitmap.pixels[0, 0]) == GREEN
        assert not controller.mask.has_marks()

    def test_remote_failure_falls_back(self, make_controller):
        controller = make_controller(ai_editor=lambda *args: AiEditResult.failure("quota"))
        controller.set_style(stroke_width=30)
        controller.choose_tool("ai-erase")
        _drag(controller, (90, 50), (110, 50))

        assert tuple(controller.bitmap.pixels[50, 100]) == BLUE

    def test_erase_is_guarded_while_processing(self, make_controller):
        controller = make_controller()
        controller.processing = True
        assert controller.erase() is None

    def test_undo_after_erase_restores_spot(self, make_controller):
        controller = make_controller()
        controller.set_style(stroke_width=30)
        controller.choose_tool("ai-erase")
        _drag(controller, (90, 50), (110, 50))

        assert controller.undo()
        assert tuple(controller.bitmap.pixels[50, 100]) == RED


class TestCommands:
    """Tests for undo, delete, crop and standardize."""

    def test_undo_removes_last_object(self, make_controller):
        controller = make_controller()
        _draw_rect(controller)

        assert controller.undo()
        assert controller.objects == []
        assert controller.state.selected_id is None
        assert not controller.undo()

    def test_delete_selected(self, make_controller):
        controller = make_controller()
        _draw_rect(controller)

        assert controller.delete_selected()
        assert controller.objects == []
        assert controller.state.selected_id is None
        assert len(controller.history) == 3
        assert not controller.delete_selected()

    def test_crop_shifts_objects(self, make_controller):
        controller = make_controller()
        _draw_rect(controller, (50, 30), (90, 60))
        controller.choose_tool("crop")
        _drag(controller, (10, 10), (110, 60))

        assert controller.bitmap.size == (100, 50)
        assert controller.mask.size == (100, 50)
        assert (controller.objects[0].x, controller.objects[0].y) == (40, 20)
        assert controller.state.tool is Tool.SELECT

    def test_standardize_resets_objects(self, make_controller):
        controller = make_controller()
        _draw_rect(controller)
        controller.standardize_canvas()

        assert controller.bitmap.size == (1600, 1600)
        assert controller.mask.size == (1600, 1600)
        assert controller.objects == []
        assert controller.state.selected_id is None
        assert len(controller.history) == 3

        assert controller.undo()
        assert controller.bitmap.size == (200, 100)
        assert controller.mask.size == (200, 100)
        assert len(controller.objects) == 1

    def test_zoom_controls(self, make_controller):
        controller = make_controller()
        controller.zoom_in()
        assert controller.state.viewport.zoom == pytest.approx(1.1)
        controller.wheel(120)
        assert controller.state.viewport.zoom == pytest.approx(0.99)


class TestStyle:
    """Tests for the property panel."""

    def test_values_are_clamped(self, make_controller):
        controller = make_controller()
        controller.set_style(stroke_width=500, font_size=0, opacity=2)

        style = controller.state.style
        assert (style.stroke_width, style.font_size, style.opacity) == (150, 1, 1.0)

    def test_unknown_field_raises(self, make_controller):
        with pytest.raises(ValueError):
            make_controller().set_style(color="#fff")

    def test_applies_to_selected_object(self, make_controller):
        controller = make_controller()
        _draw_rect(controller)
        controller.set_style(stroke="#ff0000")

        assert controller.selected_object.stroke == "#ff0000"
        assert len(controller.history) == 3

    def test_font_size_resizes_text_box(self, make_controller):
        controller = make_controller(text_prompt=lambda: "abc")
        controller.choose_tool("text")
        controller.pointer_down(Point(5, 5))
        controller.pointer_up()
        controller.set_style(font_size=20)

        obj = controller.selected_object
        assert obj.font_size == 20
        assert obj.height == 20
        assert obj.width == pytest.approx(3 * 20 * 0.6)


class TestRenderAndSave:
    """Tests for preview, export, save and close."""

    def test_render_shows_objects_without_touching_bitmap(self, make_controller):
        controller = make_controller()
        controller.set_style(fill="#00ff00", stroke="transparent")
        _draw_rect(controller)

        preview = controller.render(include_overlays=False)
        assert preview.size == (200, 100)
        assert preview.getpixel((30, 25)) == GREEN
        assert tuple(controller.bitmap.pixels[25, 30]) == BLUE

    def test_export_matches_overlay_free_render(self, make_controller):
        controller = make_controller()
        _draw_rect(controller)

        exported = np.array(controller.export_image())
        rendered = np.array(controller.render(include_overlays=False))
        assert np.array_equal(exported, rendered)

    def test_save_uploads_jpeg_and_reports_url(self, make_controller, uploader):
        controller = make_controller()
        _draw_rect(controller)

        assert controller.save()
        assert uploader.uploads[0][:2] == b"\xff\xd8"
        assert controller.saved == [uploader.url]
        assert controller.last_error is None

    def test_save_failure_keeps_edit_state(self, make_controller):
        controller = make_controller(uploader=FakeUploader(error=UploadError("HTTP 502")))
        _draw_rect(controller)

        assert controller.save() is False
        assert "HTTP 502" in controller.last_error
        assert controller.saved == []
        assert controller.ready
        assert len(controller.objects) == 1
        assert not controller.processing

    def test_close_notifies_and_tears_down(self, make_controller):
        controller = make_controller()
        controller.close()

        assert controller.closed == [True]
        assert not controller.ready
        assert controller.saved == []
