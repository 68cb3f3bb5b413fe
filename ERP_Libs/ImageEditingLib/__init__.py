"""
ImageEditingLib - Core image editing functionality

This module provides the editor surfaces, vector objects, history, inpainting
and the session controller of the ERP image editor. The PyQt5 window lives in
image_editor_window and is imported on demand.
"""

from ERP_Libs.ImageEditingLib.image_models import EditorStyle, Point, Rect, RgbaColor, VectorObject
from ERP_Libs.ImageEditingLib.viewport import Viewport, fit_zoom, to_bitmap_space
from ERP_Libs.ImageEditingLib.surfaces import BitmapSurface, MaskSurface
from ERP_Libs.ImageEditingLib.history_stack import HistoryEntry, HistoryStack
from ERP_Libs.ImageEditingLib.inpaint import inpaint_pixels, local_inpaint, smart_erase
from ERP_Libs.ImageEditingLib.editor_state import EditorState, Interaction, InteractionKind, Tool
from ERP_Libs.ImageEditingLib.editor_controller import EditorConfig, EditorController, LoadState

__all__ = [
    "EditorStyle",
    "Point",
    "Rect",
    "RgbaColor",
    "VectorObject",
    "Viewport",
    "fit_zoom",
    "to_bitmap_space",
    "BitmapSurface",
    "MaskSurface",
    "HistoryEntry",
    "HistoryStack",
    "inpaint_pixels",
    "local_inpaint",
    "smart_erase",
    "EditorState",
    "Interaction",
    "InteractionKind",
    "Tool",
    "EditorConfig",
    "EditorController",
    "LoadState",
]
