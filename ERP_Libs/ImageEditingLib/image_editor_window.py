from typing import Any, Callable, Optional

from PyQt5.QtCore import QPointF, Qt, QTimer
from PyQt5.QtGui import QColor, QPainter, QPixmap
from PyQt5.QtWidgets import (
    QApplication,
    QColorDialog,
    QHBoxLayout,
    QInputDialog,
    QLabel,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QSlider,
    QVBoxLayout,
    QWidget,
)

from ERP_Libs.ImageEditingLib.editor_controller import EditorController
from ERP_Libs.ImageEditingLib.editor_state import Tool
from ERP_Libs.ImageEditingLib.image_models import Point
from ERP_Libs.constants import (
    DEFAULT_WINDOW_HEIGHT,
    DEFAULT_WINDOW_WIDTH,
    MAX_STYLE_SIZE,
    MIN_STYLE_SIZE,
    OVERLAY_FRAME_MS,
    OVERLAY_SCROLL_STEP,
)

TOOL_LABELS = (
    (Tool.SELECT, "Select"),
    (Tool.PAN, "Pan"),
    (Tool.FILL_SELECT, "Fill Area"),
    (Tool.BRUSH, "Brush"),
    (Tool.AI_ERASE, "AI Erase"),
    (Tool.CROP, "Crop"),
    (Tool.RECT, "Rectangle"),
    (Tool.CIRCLE, "Circle"),
    (Tool.LINE, "Line"),
    (Tool.TEXT, "Text"),
)


class EditorCanvas(QWidget):
    """Draws the controller's preview through the viewport and forwards pointer input."""

    def __init__(self, controller: EditorController, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.controller = controller
        self.overlay_offset = 0.0
        self._pixmap: Optional[QPixmap] = None
        self.setMinimumSize(600, 600)
        self.setMouseTracking(False)
        self.setFocusPolicy(Qt.StrongFocus)
        self.setStyleSheet("background: #e5e7eb;")

    def refresh(self) -> None:
        image = self.controller.render(include_overlays=True, overlay_offset=self.overlay_offset)
        self._pixmap = None
        if image is not None:
            pixmap = QPixmap()
            if pixmap.loadFromData(_to_png_bytes(image), "PNG"):
                self._pixmap = pixmap
        self.update()

    def paintEvent(self, event) -> None:
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor("#e5e7eb"))
        if self._pixmap is not None:
            viewport = self.controller.state.viewport
            painter.translate(viewport.pan_x, viewport.pan_y)
            painter.scale(viewport.zoom, viewport.zoom)
            painter.setRenderHint(QPainter.SmoothPixmapTransform)
            painter.drawPixmap(0, 0, self._pixmap)
        painter.end()

    def resizeEvent(self, event) -> None:
        self.controller.set_container_size((self.width(), self.height()))
        super().resizeEvent(event)

    def mousePressEvent(self, event) -> None:
        if event.button() == Qt.LeftButton:
            self.controller.pointer_down(_screen_point(event.localPos()))
            self.refresh()

    def mouseMoveEvent(self, event) -> None:
        if event.buttons() & Qt.LeftButton:
            self.controller.pointer_move(_screen_point(event.localPos()))
            self.refresh()

    def mouseReleaseEvent(self, event) -> None:
        if event.button() != Qt.LeftButton:
            return
        busy = self.controller.state.tool is Tool.AI_ERASE
        if busy:
            QApplication.setOverrideCursor(Qt.WaitCursor)
        try:
            self.controller.pointer_up(_screen_point(event.localPos()))
        finally:
            if busy:
                QApplication.restoreOverrideCursor()
        self.window().sync_controls()
        self.refresh()

    def wheelEvent(self, event) -> None:
        # Qt reports wheel-up as positive; the controller expects scroll-down positive
        self.controller.wheel(-event.angleDelta().y())
        self.refresh()

    def keyPressEvent(self, event) -> None:
        if event.key() in (Qt.Key_Delete, Qt.Key_Backspace):
            if self.controller.delete_selected():
                self.refresh()
            return
        super().keyPressEvent(event)


class ImageEditorWindow(QMainWindow):
    def __init__(self, controller: EditorController) -> None:
        super().__init__()
        self.controller = controller
        self.setWindowTitle(f"Image Editor - {controller.image_url}")
        self.resize(DEFAULT_WINDOW_WIDTH, DEFAULT_WINDOW_HEIGHT)

        self._closing_after_save = False
        if controller.text_prompt is None:
            controller.text_prompt = self.prompt_text

        self._build_ui()
        self._connect_signals()

        self.overlay_timer = QTimer(self)
        self.overlay_timer.timeout.connect(self.advance_overlay)
        self.overlay_timer.start(OVERLAY_FRAME_MS)

    def _build_ui(self) -> None:
        central = QWidget(self)
        self.setCentralWidget(central)

        root = QHBoxLayout(central)
        tools_col = QVBoxLayout()
        style_col = QVBoxLayout()

        self.tool_buttons = {}
        tools_col.addWidget(QLabel("Tools"))
        for tool, label in TOOL_LABELS:
            button = QPushButton(label)
            button.setCheckable(True)
            self.tool_buttons[tool] = button
            tools_col.addWidget(button)
        tools_col.addStretch(1)

        self.btn_zoom_in = QPushButton("Zoom In")
        self.btn_zoom_out = QPushButton("Zoom Out")
        self.btn_undo = QPushButton("Undo")
        self.btn_standardize = QPushButton("Standardize 1600x1600")
        self.btn_save = QPushButton("Save")
        self.btn_close = QPushButton("Close")

        self.btn_stroke = QPushButton("Stroke Color")
        self.btn_fill = QPushButton("Fill Color")
        self.slider_width = self._make_slider(MIN_STYLE_SIZE, MAX_STYLE_SIZE)
        self.slider_font = self._make_slider(MIN_STYLE_SIZE, MAX_STYLE_SIZE)
        self.slider_opacity = self._make_slider(0, 100)
        self.label_zoom = QLabel()
        self.label_status = QLabel()
        self.label_status.setWordWrap(True)

        self.canvas = EditorCanvas(self.controller, central)

        style_col.addWidget(QLabel("Style"))
        style_col.addWidget(self.btn_stroke)
        style_col.addWidget(self.btn_fill)
        style_col.addWidget(QLabel("Stroke Width"))
        style_col.addWidget(self.slider_width)
        style_col.addWidget(QLabel("Font Size"))
        style_col.addWidget(self.slider_font)
        style_col.addWidget(QLabel("Opacity"))
        style_col.addWidget(self.slider_opacity)
        style_col.addWidget(self.btn_zoom_in)
        style_col.addWidget(self.btn_zoom_out)
        style_col.addWidget(self.label_zoom)
        style_col.addWidget(self.btn_undo)
        style_col.addWidget(self.btn_standardize)
        style_col.addStretch(1)
        style_col.addWidget(self.label_status)
        style_col.addWidget(self.btn_save)
        style_col.addWidget(self.btn_close)

        root.addLayout(tools_col)
        root.addWidget(self.canvas, stretch=1)
        root.addLayout(style_col)

    def _make_slider(self, low: int, high: int) -> QSlider:
        slider = QSlider(Qt.Horizontal)
        slider.setRange(low, high)
        return slider

    def _connect_signals(self) -> None:
        for tool, button in self.tool_buttons.items():
            button.clicked.connect(lambda _checked, t=tool: self.choose_tool(t))
        self.btn_stroke.clicked.connect(lambda: self.pick_color("stroke"))
        self.btn_fill.clicked.connect(lambda: self.pick_color("fill"))
        self.slider_width.sliderReleased.connect(lambda: self.apply_style(stroke_width=self.slider_width.value()))
        self.slider_font.sliderReleased.connect(lambda: self.apply_style(font_size=self.slider_font.value()))
        self.slider_opacity.sliderReleased.connect(lambda: self.apply_style(opacity=self.slider_opacity.value() / 100))
        self.btn_zoom_in.clicked.connect(lambda: self._run(self.controller.zoom_in))
        self.btn_zoom_out.clicked.connect(lambda: self._run(self.controller.zoom_out))
        self.btn_undo.clicked.connect(lambda: self._run(self.controller.undo))
        self.btn_standardize.clicked.connect(lambda: self._run(self.controller.standardize_canvas))
        self.btn_save.clicked.connect(self.save)
        self.btn_close.clicked.connect(self.close)

    def start(self) -> None:
        """Show the window and load the source image."""
        self.show()
        self.controller.set_container_size((self.canvas.width(), self.canvas.height()))
        QApplication.setOverrideCursor(Qt.WaitCursor)
        try:
            loaded = self.controller.load()
        finally:
            QApplication.restoreOverrideCursor()
        if not loaded:
            self.label_status.setText(self.controller.last_error or "Failed to load image")
        self.sync_controls()
        self.canvas.refresh()

    def choose_tool(self, tool: Tool) -> None:
        self.controller.choose_tool(tool)
        self.sync_controls()
        self.canvas.refresh()

    def pick_color(self, field: str) -> None:
        current = getattr(self.controller.state.style, field)
        color = QColorDialog.getColor(QColor(current), self, f"Pick {field} color")
        if not color.isValid():
            return
        self.apply_style(**{field: color.name()})

    def apply_style(self, **changes: Any) -> None:
        self.controller.set_style(**changes)
        self.canvas.refresh()

    def prompt_text(self) -> Optional[str]:
        text, accepted = QInputDialog.getText(self, "Add Text", "Text:")
        return text if accepted else None

    def advance_overlay(self) -> None:
        if self.controller.ready and self.controller.mask.has_marks():
            self.canvas.overlay_offset += OVERLAY_SCROLL_STEP
            self.canvas.refresh()

    def save(self) -> None:
        QApplication.setOverrideCursor(Qt.WaitCursor)
        try:
            saved = self.controller.save()
        finally:
            QApplication.restoreOverrideCursor()
        if not saved:
            QMessageBox.warning(self, "Save Failed", self.controller.last_error or "Nothing to save.")
            return
        self._closing_after_save = True
        self.close()

    def sync_controls(self) -> None:
        state = self.controller.state
        for tool, button in self.tool_buttons.items():
            button.setChecked(tool is state.tool)
            button.setEnabled(self.controller.ready)
        style = state.style
        self.slider_width.setValue(int(style.stroke_width))
        self.slider_font.setValue(int(style.font_size))
        self.slider_opacity.setValue(int(round(style.opacity * 100)))
        self.btn_stroke.setStyleSheet(f"border-left: 12px solid {style.stroke};")
        self.btn_fill.setStyleSheet(f"border-left: 12px solid {style.fill};")
        self.label_zoom.setText(f"Zoom: {int(round(state.viewport.zoom * 100))}%")
        self.btn_undo.setEnabled(self.controller.history.can_undo)

    def closeEvent(self, event) -> None:
        self.overlay_timer.stop()
        if not self._closing_after_save:
            self.controller.close()
        super().closeEvent(event)

    def _run(self, action: Callable[[], Any]) -> None:
        action()
        self.sync_controls()
        self.canvas.refresh()


def _screen_point(pos: QPointF) -> Point:
    return Point(pos.x(), pos.y())


def _to_png_bytes(image: Any) -> bytes:
    from io import BytesIO

    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()
