"""
Pytest configuration and shared fixtures for the image editor tests.

Nothing here needs a display or network access: the controller is wired to
in-memory fetch and upload fakes.
"""

import io

import pytest
from PIL import Image

from ERP_Libs.ImageEditingLib.editor_controller import EditorController
from ERP_Libs.ImageEditingLib.surfaces import BitmapSurface

BLUE = (0, 0, 255, 255)
RED = (255, 0, 0, 255)
GREEN = (0, 255, 0, 255)


def png_bytes(image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def blue_bitmap():
    """A 100x100 opaque blue surface."""
    return BitmapSurface.blank((100, 100), BLUE)


@pytest.fixture
def source_image():
    """
    A 200x100 blue photo with a 10x10 red spot centered at (100, 50).

    Returns:
        PIL Image in RGBA mode
    """
    image = Image.new("RGBA", (200, 100), BLUE)
    image.paste(Image.new("RGBA", (10, 10), RED), (95, 45))
    return image


class FakeUploader:
    """Records uploads and hands back a fixed public URL."""

    def __init__(self, url="https://img.example.com/file/abc.jpg", error=None):
        self.url = url
        self.error = error
        self.uploads = []

    def __call__(self, data: bytes) -> str:
        if self.error is not None:
            raise self.error
        self.uploads.append(data)
        return self.url


@pytest.fixture
def uploader():
    return FakeUploader()


@pytest.fixture
def make_controller(source_image, uploader):
    """
    Factory for controllers over the source image.

    Keyword arguments override the EditorController defaults. The returned
    controller carries `saved` and `closed` lists recording callback calls.
    """

    def factory(load=True, **kwargs):
        saved = []
        closed = []
        kwargs.setdefault("fetcher", lambda url: png_bytes(source_image))
        kwargs.setdefault("uploader", uploader)
        controller = EditorController(
            "https://example.com/photo.png",
            on_save=saved.append,
            on_close=lambda: closed.append(True),
            **kwargs,
        )
        controller.saved = saved
        controller.closed = closed
        if load:
            assert controller.load()
        return controller

    return factory
