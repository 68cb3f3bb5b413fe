"""
Editor controller: one editing session over one source image.

The controller owns the bitmap surface, the mask surface, the vector object
list and the history stack. It folds pointer input into the EditorState via
the reducers in editor_state, applies the resulting commits to the surfaces
and objects, and talks to the remote collaborators (fetch, AI edit, upload).

Classes:
    LoadState: Lifecycle of the source image
    EditorConfig: Tunables for one editor instance
    EditorController: The session controller
"""

import io
import logging
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from ERP_Libs.ImageEditingLib import editor_state as reducers
from ERP_Libs.ImageEditingLib.editor_state import (
    SELECT_GESTURES,
    SHAPE_TOOLS,
    EditorState,
    InteractionKind,
    Tool,
)
from ERP_Libs.ImageEditingLib.history_stack import HistoryStack
from ERP_Libs.ImageEditingLib.image_models import EditorStyle, Point, Rect, VectorObject
from ERP_Libs.ImageEditingLib.inpaint import AiEditor, smart_erase
from ERP_Libs.ImageEditingLib.overlays import render_mask_overlay, render_rubber_band, render_selection
from ERP_Libs.ImageEditingLib.surfaces import BitmapSurface, MaskSurface, clip_rect
from ERP_Libs.ImageEditingLib.vector_objects import (
    create_fill_rect,
    create_shape,
    create_text,
    drag_object,
    render_objects,
    resize_object,
    rotate_object,
    translate_objects,
)
from ERP_Libs.ImageEditingLib.viewport import fit_zoom
from ERP_Libs.RemoteLib.image_transfer import fetch_image_bytes, upload_image_bytes
from ERP_Libs.constants import (
    AI_EDIT_INSTRUCTION,
    EXPORT_FORMAT,
    EXPORT_QUALITY,
    FIT_ZOOM_CAP_ON_LOAD,
    FIT_ZOOM_CAP_STANDARD,
    HISTORY_CAP,
    INPAINT_ITERATIONS,
    MASK_THRESHOLD,
    MAX_STYLE_SIZE,
    MIN_COMMIT_SIZE,
    MIN_STYLE_SIZE,
    OBJECT_TEXT,
    TEXT_WIDTH_FACTOR,
)
from ERP_Libs.pillow_compat import Image

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], bytes]
Uploader = Callable[[bytes], str]
TextPrompt = Callable[[], Optional[str]]


class LoadState(Enum):
    EMPTY = "empty"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass
class EditorConfig:
    """Tunables for an editor instance.

    Attributes:
        history_cap: Maximum number of history entries kept
        inpaint_iterations: Local inpainting passes
        mask_threshold: Mask intensity above which a pixel is marked
        ai_instruction: Instruction sent with remote edits
        export_quality: JPEG quality of the saved image
    """
    history_cap: int = HISTORY_CAP
    inpaint_iterations: int = INPAINT_ITERATIONS
    mask_threshold: int = MASK_THRESHOLD
    ai_instruction: str = AI_EDIT_INSTRUCTION
    export_quality: int = EXPORT_QUALITY

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EditorConfig":
        """Create from dictionary."""
        filtered = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**filtered)


class EditorController:
    """
    Interactive compositing editor for one source image.

    Example:
        >>> editor = EditorController("https://example.com/p.jpg", on_save=print, on_close=lambda: None)
        >>> if editor.load():
        ...     editor.choose_tool("rect")
        ...     editor.pointer_down(Point(10, 10))
        ...     editor.pointer_move(Point(50, 40))
        ...     editor.pointer_up()
    """

    def __init__(
        self,
        image_url: str,
        on_save: Callable[[str], None],
        on_close: Callable[[], None],
        fetcher: Optional[Fetcher] = None,
        uploader: Optional[Uploader] = None,
        ai_editor: Optional[AiEditor] = None,
        text_prompt: Optional[TextPrompt] = None,
        config: Optional[EditorConfig] = None,
    ):
        self.image_url = image_url
        self.on_save = on_save
        self.on_close = on_close
        self.fetcher = fetcher or fetch_image_bytes
        self.uploader = uploader or upload_image_bytes
        self.ai_editor = ai_editor
        self.text_prompt = text_prompt
        self.config = config or EditorConfig()

        self.state = EditorState()
        self.bitmap: Optional[BitmapSurface] = None
        self.mask: Optional[MaskSurface] = None
        self.objects: List[VectorObject] = []
        self.history = HistoryStack(self.config.history_cap)
        self.load_state = LoadState.EMPTY
        self.last_error: Optional[str] = None
        self.processing = False
        self.container_size: Optional[Tuple[int, int]] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def ready(self) -> bool:
        return self.load_state is LoadState.READY and self.bitmap is not None

    @property
    def selected_object(self) -> Optional[VectorObject]:
        return self.state.selected(self.objects)

    def load(self) -> bool:
        """
        Fetch and decode the source image, then initialize surfaces and history.

        Returns:
            True when the editor is ready; False leaves it in the FAILED state
            with last_error set and all tools inactive
        """
        self.load_state = LoadState.LOADING
        try:
            data = self.fetcher(self.image_url)
            with Image.open(io.BytesIO(data)) as image:
                bitmap = BitmapSurface.from_image(image)
        except (OSError, ValueError) as exc:
            self._teardown()
            self.load_state = LoadState.FAILED
            self.last_error = f"Failed to load image: {exc}"
            logger.warning(self.last_error)
            return False

        self._install(bitmap)
        self.last_error = None
        self.load_state = LoadState.READY
        logger.info(f"Loaded {self.image_url} ({bitmap.width}x{bitmap.height})")
        return True

    def _install(self, bitmap: BitmapSurface) -> None:
        self.bitmap = bitmap
        self.mask = MaskSurface.blank(bitmap.size)
        self.objects = []
        self.history.reset(bitmap)
        self.state = EditorState(style=self.state.style)
        self._fit_viewport(FIT_ZOOM_CAP_ON_LOAD)

    def _teardown(self) -> None:
        self.bitmap = None
        self.mask = None
        self.objects = []
        self.history.clear()
        self.state = EditorState(style=self.state.style)

    def close(self) -> None:
        """Discard the session without touching the original image."""
        self._teardown()
        self.load_state = LoadState.EMPTY
        self.on_close()

    # ------------------------------------------------------------------
    # Viewport
    # ------------------------------------------------------------------

    def set_container_size(self, size: Tuple[int, int]) -> None:
        self.container_size = size

    def _fit_viewport(self, cap: float) -> None:
        if self.container_size is None or self.bitmap is None:
            return
        zoom = fit_zoom(self.container_size, self.bitmap.size, cap)
        self.state = reducers.set_viewport(self.state, self.state.viewport.with_zoom(zoom))

    def zoom_in(self) -> None:
        self.state = reducers.set_viewport(self.state, self.state.viewport.zoom_in())

    def zoom_out(self) -> None:
        self.state = reducers.set_viewport(self.state, self.state.viewport.zoom_out())

    def wheel(self, delta_y: float) -> None:
        self.state = reducers.set_viewport(self.state, self.state.viewport.wheel(delta_y))

    # ------------------------------------------------------------------
    # Tools and style
    # ------------------------------------------------------------------

    def choose_tool(self, tool) -> None:
        tool = Tool(tool)
        self.state = reducers.choose_tool(self.state, tool)
        logger.debug(f"Tool: {tool.value}")

    def set_style(self, **changes: Any) -> None:
        """
        Update the property panel and the selected object, if any.

        Keyword args match EditorStyle fields: stroke, fill, stroke_width,
        font_size, opacity. Sizes are clamped to 1-150 and opacity to 0-1.

        Raises:
            ValueError: For unknown style fields
        """
        unknown = set(changes) - set(EditorStyle.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown style fields: {sorted(unknown)}")
        for key in ("stroke_width", "font_size"):
            if key in changes:
                changes[key] = int(min(MAX_STYLE_SIZE, max(MIN_STYLE_SIZE, changes[key])))
        if "opacity" in changes:
            changes["opacity"] = float(min(1.0, max(0.0, changes["opacity"])))

        self.state = reducers.set_style(self.state, replace(self.state.style, **changes))

        selected = self.selected_object
        if selected is None or not self.ready:
            return
        updates = {k: v for k, v in changes.items() if k != "font_size"}
        if "font_size" in changes and selected.type == OBJECT_TEXT:
            size = changes["font_size"]
            updates.update(font_size=size, height=size, width=len(selected.text or "") * size * TEXT_WIDTH_FACTOR)
        if updates:
            self._replace_object(replace(selected, **updates))
            self._push_history()

    # ------------------------------------------------------------------
    # Pointer input
    # ------------------------------------------------------------------

    def pointer_down(self, screen: Point) -> None:
        if not self.ready or self.processing:
            return
        try:
            self.state = reducers.pointer_down(self.state, Point(*screen), self.objects)
            interaction = self.state.interaction
            if interaction.kind is InteractionKind.FREEHAND and self.state.tool is Tool.AI_ERASE:
                self.mask.stroke(interaction.path, self.state.style.stroke_width)
        except Exception:
            logger.exception("Pointer-down failed")
            self.state = reducers.pointer_up(self.state)

    def pointer_move(self, screen: Point) -> None:
        if not self.ready or self.processing:
            return
        try:
            self._pointer_move(Point(*screen))
        except Exception:
            logger.exception("Pointer-move failed")
            self.state = reducers.pointer_up(self.state)

    def _pointer_move(self, screen: Point) -> None:
        previous = self.state.interaction
        self.state = reducers.pointer_move(self.state, screen)
        interaction = self.state.interaction
        pointer = interaction.current

        if interaction.kind in SELECT_GESTURES:
            selected = self.selected_object
            if selected is None:
                return
            if interaction.kind is InteractionKind.DRAGGING:
                moved = drag_object(selected, pointer, interaction.grab_offset)
            elif interaction.kind is InteractionKind.RESIZING:
                moved = resize_object(selected, pointer)
            else:
                moved = rotate_object(selected, pointer)
            self._replace_object(moved)
            self.state = reducers.mark_mutated(self.state)
        elif interaction.kind is InteractionKind.FREEHAND and self.state.tool is Tool.AI_ERASE:
            self.mask.stroke([previous.current, pointer], self.state.style.stroke_width)

    def pointer_up(self, screen: Optional[Point] = None) -> None:
        """Commit the gesture in progress; the interaction always ends idle."""
        if not self.ready or self.processing:
            return
        try:
            if screen is not None:
                self._pointer_move(Point(*screen))
            self._commit(self.state.interaction)
        except Exception:
            logger.exception("Pointer-up commit failed")
        finally:
            self.state = reducers.pointer_up(self.state)

    def _commit(self, interaction) -> None:
        tool = self.state.tool
        kind = interaction.kind

        if kind in SELECT_GESTURES:
            if interaction.mutated:
                self._push_history()
        elif kind is InteractionKind.RUBBER_BAND:
            rect = interaction.rubber_band
            if tool in SHAPE_TOOLS:
                self._add_object(create_shape(tool.value, rect, self.state.style), select=True)
            elif tool is Tool.FILL_SELECT:
                self._add_object(create_fill_rect(rect, self.state.style), select=False)
            elif tool is Tool.CROP:
                self.crop(rect)
        elif kind is InteractionKind.FREEHAND:
            if tool is Tool.BRUSH:
                style = self.state.style
                self.bitmap.stroke_path(interaction.path, style.stroke, style.stroke_width, style.opacity)
                self._push_history()
            elif tool is Tool.AI_ERASE:
                self.erase()
        elif kind is InteractionKind.TEXT_PLACEMENT:
            text = self.text_prompt() if self.text_prompt else None
            self._add_object(create_text(interaction.current, text or "", self.state.style), select=True)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def erase(self) -> Optional[str]:
        """
        Remove the masked region (remote AI edit first, local inpainting as fallback).

        Returns:
            'noop', 'remote' or 'local'; None if the editor is busy or not ready
        """
        if not self.ready or self.processing:
            return None
        self.processing = True
        try:
            outcome = smart_erase(
                self.bitmap,
                self.mask,
                ai_editor=self.ai_editor,
                instruction=self.config.ai_instruction,
                iterations=self.config.inpaint_iterations,
                threshold=self.config.mask_threshold,
            )
            self._push_history()
            self.state = reducers.choose_tool(self.state, Tool.SELECT)
            return outcome
        finally:
            self.processing = False

    def crop(self, rect: Rect) -> bool:
        """Crop bitmap and mask to the rectangle and shift objects with it."""
        if not self.ready:
            return False
        x0, y0, x1, y1 = clip_rect(rect, self.bitmap.size)
        if x1 - x0 <= MIN_COMMIT_SIZE or y1 - y0 <= MIN_COMMIT_SIZE:
            return False
        area = Rect(x0, y0, x1 - x0, y1 - y0)
        self.bitmap.crop(area)
        self.mask.crop(area)
        self.objects = translate_objects(self.objects, -x0, -y0)
        self._push_history()
        self.state = reducers.choose_tool(self.state, Tool.SELECT)
        logger.info(f"Cropped to {area.width}x{area.height}")
        return True

    def standardize_canvas(self) -> None:
        """Center the image on a white 1600px square and drop all objects."""
        if not self.ready:
            return
        self.bitmap.standardize()
        self.mask = MaskSurface.blank(self.bitmap.size)
        self.objects = []
        self.state = reducers.select_object(self.state, None)
        self._push_history()
        self._fit_viewport(FIT_ZOOM_CAP_STANDARD)

    def undo(self) -> bool:
        if not self.ready or self.processing:
            return False
        entry = self.history.undo()
        if entry is None:
            return False
        self.bitmap = entry.restore_bitmap()
        self.mask = MaskSurface.blank(self.bitmap.size)
        self.objects = entry.restore_objects()
        self.state = reducers.pointer_up(self.state)
        if self.selected_object is None:
            self.state = reducers.select_object(self.state, None)
        logger.debug(f"Undo: {len(self.history)} entries left")
        return True

    def delete_object(self, object_id: str) -> bool:
        if not self.ready:
            return False
        remaining = [obj for obj in self.objects if obj.id != object_id]
        if len(remaining) == len(self.objects):
            return False
        self.objects = remaining
        if self.state.selected_id == object_id:
            self.state = reducers.select_object(self.state, None)
        self._push_history()
        return True

    def delete_selected(self) -> bool:
        selected = self.selected_object
        return self.delete_object(selected.id) if selected else False

    # ------------------------------------------------------------------
    # Rendering and export
    # ------------------------------------------------------------------

    def render(self, include_overlays: bool = True, overlay_offset: float = 0.0):
        """
        Compose the preview image.

        Args:
            include_overlays: Draw the erase stripes, rubber band and selection
            overlay_offset: Scroll position of the erase stripe pattern

        Returns:
            RGBA PIL Image, or None when no image is loaded
        """
        if not self.ready:
            return None
        image = self._bitmap_preview().to_image()
        if include_overlays:
            image = render_mask_overlay(image, self.mask.snapshot(), overlay_offset, self.config.mask_threshold)
        image = render_objects(image, self.objects)
        if not include_overlays:
            return image

        interaction = self.state.interaction
        if interaction.kind is InteractionKind.RUBBER_BAND:
            fill = self.state.style.fill if self.state.tool is Tool.FILL_SELECT else None
            image = render_rubber_band(image, interaction.rubber_band, self.state.style.stroke, fill)
        selected = self.selected_object
        if selected is not None:
            image = render_selection(image, selected, self.state.viewport.zoom)
        return image

    def _bitmap_preview(self) -> BitmapSurface:
        """The bitmap, plus the brush stroke in progress rasterized as it will be committed."""
        interaction = self.state.interaction
        if interaction.kind is not InteractionKind.FREEHAND or self.state.tool is not Tool.BRUSH:
            return self.bitmap
        style = self.state.style
        preview = self.bitmap.copy()
        preview.stroke_path(interaction.path, style.stroke, style.stroke_width, style.opacity)
        return preview

    def export_image(self):
        """The bitmap with all vector objects flattened into it."""
        if not self.ready:
            return None
        return render_objects(self.bitmap.to_image(), self.objects)

    def export_bytes(self) -> bytes:
        flattened = BitmapSurface.from_image(self.export_image())
        return flattened.encode(EXPORT_FORMAT, quality=self.config.export_quality)

    def save(self) -> bool:
        """
        Flatten, upload and hand the public URL to the save callback.

        Returns:
            True on success. On failure last_error is set and the edit state is
            kept so the user can retry.
        """
        if not self.ready or self.processing:
            return False
        self.processing = True
        try:
            url = self.uploader(self.export_bytes())
        except (OSError, ValueError) as exc:
            self.last_error = f"Save failed: {exc}"
            logger.warning(self.last_error)
            return False
        finally:
            self.processing = False

        self.last_error = None
        logger.info(f"Saved edit as {url}")
        self.on_save(url)
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _add_object(self, obj: Optional[VectorObject], select: bool) -> None:
        if obj is None:
            return
        self.objects = self.objects + [obj]
        self.state = reducers.choose_tool(self.state, Tool.SELECT)
        if select:
            self.state = reducers.select_object(self.state, obj.id)
        self._push_history()

    def _replace_object(self, updated: VectorObject) -> None:
        self.objects = [updated if obj.id == updated.id else obj for obj in self.objects]

    def _push_history(self) -> None:
        self.history.push(self.bitmap, self.objects)
