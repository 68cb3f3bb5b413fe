"""
Tests for the inpainting engine.

Tests cover:
- Local diffusion fill (convergence, iteration limit, border pixels)
- Input validation
- Smart erase: no-op, remote success, remote failure fallback
- Mask clearing on every path
"""

import base64
import unittest

import numpy as np
import pytest
from PIL import Image

from ERP_Libs.ImageEditingLib.image_models import Rect
from ERP_Libs.ImageEditingLib.inpaint import (
    ERASE_LOCAL,
    ERASE_NOOP,
    ERASE_REMOTE,
    inpaint_pixels,
    local_inpaint,
    smart_erase,
)
from ERP_Libs.ImageEditingLib.surfaces import BitmapSurface, MaskSurface
from ERP_Libs.RemoteLib.ai_image_edit import AiEditResult
from tests.conftest import BLUE, GREEN, RED, png_bytes


def _spotted_bitmap():
    """Red 100x100 bitmap with a black 10x10 object at (45, 45)."""
    bitmap = BitmapSurface.blank((100, 100), RED)
    bitmap.pixels[45:55, 45:55] = (0, 0, 0, 255)
    return bitmap


class TestInpaintPixels(unittest.TestCase):
    """Test the local diffusion fill."""

    def test_fills_marked_region_from_surroundings(self):
        bitmap = _spotted_bitmap()
        marked = np.zeros((100, 100), dtype=bool)
        marked[40:60, 40:60] = True

        inpaint_pixels(bitmap.pixels, marked)

        self.assertTrue(np.all(bitmap.pixels == RED))

    def test_iteration_limit_leaves_center_unfilled(self):
        bitmap = _spotted_bitmap()
        marked = np.zeros((100, 100), dtype=bool)
        marked[40:60, 40:60] = True

        inpaint_pixels(bitmap.pixels, marked, iterations=3)

        # Three passes reach three pixels deep
        self.assertEqual(tuple(bitmap.pixels[42, 42]), RED)
        self.assertEqual(tuple(bitmap.pixels[50, 50]), (0, 0, 0, 255))

    def test_border_pixels_keep_original_color(self):
        bitmap = BitmapSurface.blank((50, 50), BLUE)
        bitmap.pixels[0:10, 0:10] = RED
        marked = np.zeros((50, 50), dtype=bool)
        marked[0:10, 0:10] = True

        inpaint_pixels(bitmap.pixels, marked)

        self.assertEqual(tuple(bitmap.pixels[0, 0]), RED)
        self.assertEqual(tuple(bitmap.pixels[0, 5]), RED)
        self.assertEqual(tuple(bitmap.pixels[5, 5]), BLUE)
        self.assertEqual(tuple(bitmap.pixels[1, 1]), BLUE)

    def test_empty_mask_is_noop(self):
        bitmap = _spotted_bitmap()
        before = bitmap.pixels.copy()

        inpaint_pixels(bitmap.pixels, np.zeros((100, 100), dtype=bool))

        self.assertTrue(np.array_equal(bitmap.pixels, before))

    def test_fully_marked_interior_has_no_source(self):
        bitmap = _spotted_bitmap()
        before = bitmap.pixels.copy()

        inpaint_pixels(bitmap.pixels, np.ones((100, 100), dtype=bool))

        self.assertTrue(np.array_equal(bitmap.pixels, before))

    def test_filled_pixels_become_opaque(self):
        bitmap = BitmapSurface.blank((20, 20), BLUE)
        bitmap.pixels[8:12, 8:12] = (0, 0, 0, 0)
        marked = np.zeros((20, 20), dtype=bool)
        marked[8:12, 8:12] = True

        inpaint_pixels(bitmap.pixels, marked)

        self.assertTrue(np.all(bitmap.pixels == BLUE))

    def test_shape_mismatch_raises(self):
        bitmap = BitmapSurface.blank((20, 20), BLUE)
        with self.assertRaises(ValueError):
            inpaint_pixels(bitmap.pixels, np.zeros((10, 10), dtype=bool))

    def test_negative_iterations_raises(self):
        bitmap = BitmapSurface.blank((20, 20), BLUE)
        with self.assertRaises(ValueError):
            inpaint_pixels(bitmap.pixels, np.zeros((20, 20), dtype=bool), iterations=-1)


class TestLocalInpaint(unittest.TestCase):
    """Test the surface-level wrapper."""

    def test_leaves_mask_untouched(self):
        bitmap = _spotted_bitmap()
        mask = MaskSurface.blank(bitmap.size)
        mask.mark_rect(Rect(40, 40, 20, 20))

        local_inpaint(bitmap, mask)

        self.assertTrue(mask.has_marks())
        self.assertEqual(tuple(bitmap.pixels[50, 50]), RED)

    def test_size_mismatch_raises(self):
        with self.assertRaises(ValueError):
            local_inpaint(BitmapSurface.blank((20, 20), BLUE), MaskSurface.blank((10, 10)))


class RecordingEditor:
    """AI edit fake returning a preset result."""

    def __init__(self, result):
        self.result = result
        self.calls = []

    def __call__(self, image_b64, instruction, mask_b64=None):
        self.calls.append((image_b64, instruction, mask_b64))
        return self.result


def _b64_png(image) -> str:
    return base64.b64encode(png_bytes(image)).decode("ascii")


class TestSmartErase:
    """Tests for the remote-first erase entry point."""

    def test_noop_when_nothing_marked(self, blue_bitmap):
        mask = MaskSurface.blank(blue_bitmap.size)
        editor = RecordingEditor(AiEditResult.failure("unused"))

        assert smart_erase(blue_bitmap, mask, ai_editor=editor) == ERASE_NOOP
        assert editor.calls == []

    def test_local_without_ai_editor(self):
        bitmap = _spotted_bitmap()
        mask = MaskSurface.blank(bitmap.size)
        mask.mark_rect(Rect(40, 40, 20, 20))

        assert smart_erase(bitmap, mask) == ERASE_LOCAL
        assert np.all(bitmap.pixels == RED)
        assert not mask.has_marks()

    def test_remote_success_composites_result(self, blue_bitmap):
        mask = MaskSurface.blank(blue_bitmap.size)
        mask.mark_rect(Rect(40, 40, 20, 20))
        editor = RecordingEditor(AiEditResult.success(_b64_png(Image.new("RGBA", (100, 100), GREEN))))

        assert smart_erase(blue_bitmap, mask, ai_editor=editor, instruction="Remove it") == ERASE_REMOTE

        assert tuple(blue_bitmap.pixels[0, 0]) == GREEN
        assert not mask.has_marks()
        image_b64, instruction, mask_b64 = editor.calls[0]
        assert instruction == "Remove it"
        assert base64.b64decode(image_b64)[:2] == b"\xff\xd8"
        assert base64.b64decode(mask_b64)[:8] == b"\x89PNG\r\n\x1a\n"

    def test_remote_result_is_resized_to_bitmap(self, blue_bitmap):
        mask = MaskSurface.blank(blue_bitmap.size)
        mask.mark_rect(Rect(40, 40, 20, 20))
        editor = RecordingEditor(AiEditResult.success(_b64_png(Image.new("RGBA", (50, 50), GREEN))))

        smart_erase(blue_bitmap, mask, ai_editor=editor)

        assert blue_bitmap.size == (100, 100)
        r, g, b, a = (int(v) for v in blue_bitmap.pixels[50, 50])
        assert g >= 250 and r <= 5 and b <= 5 and a == 255

    def test_remote_failure_falls_back_to_local(self):
        bitmap = _spotted_bitmap()
        mask = MaskSurface.blank(bitmap.size)
        mask.mark_rect(Rect(40, 40, 20, 20))
        editor = RecordingEditor(AiEditResult.failure("HTTP 500"))

        assert smart_erase(bitmap, mask, ai_editor=editor) == ERASE_LOCAL
        assert len(editor.calls) == 1
        assert tuple(bitmap.pixels[50, 50]) == RED
        assert not mask.has_marks()

    def test_unreadable_remote_image_falls_back_to_local(self):
        bitmap = _spotted_bitmap()
        mask = MaskSurface.blank(bitmap.size)
        mask.mark_rect(Rect(40, 40, 20, 20))
        editor = RecordingEditor(AiEditResult.success("not base64 at all!"))

        assert smart_erase(bitmap, mask, ai_editor=editor) == ERASE_LOCAL
        assert tuple(bitmap.pixels[50, 50]) == RED

    def test_raising_editor_falls_back_to_local(self):
        bitmap = _spotted_bitmap()
        mask = MaskSurface.blank(bitmap.size)
        mask.mark_rect(Rect(40, 40, 20, 20))

        def unreachable(image_b64, instruction, mask_b64):
            raise ConnectionError("edit service unreachable")

        assert smart_erase(bitmap, mask, ai_editor=unreachable) == ERASE_LOCAL
        assert tuple(bitmap.pixels[50, 50]) == RED
        assert not mask.has_marks()

    def test_mask_cleared_even_when_local_fill_fails(self, blue_bitmap):
        mask = MaskSurface.blank((50, 50))
        mask.mark_rect(Rect(10, 10, 10, 10))

        with pytest.raises(ValueError):
            smart_erase(blue_bitmap, mask)
        assert not mask.has_marks()


if __name__ == "__main__":
    unittest.main()
