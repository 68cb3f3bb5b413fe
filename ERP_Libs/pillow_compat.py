"""
Single import point for Pillow.

Editor modules import `Image`, `ImageDraw`, `ImageFont` and `ImageColor` from
here instead of from `PIL` directly, so a missing Pillow install fails once,
with an install hint, at package import time.
"""
from importlib import import_module
from types import ModuleType


def _load(name: str) -> ModuleType:
    try:
        return import_module(f"PIL.{name}")
    except ImportError as exc:
        raise ImportError("Pillow is required by the image editor: install with 'pip install Pillow'") from exc


Image = _load("Image")
ImageDraw = _load("ImageDraw")
ImageFont = _load("ImageFont")
ImageColor = _load("ImageColor")
