"""
Constants and configuration values for the listing image editor.

This module centralizes all constant values, magic numbers, and
configuration settings used throughout the editor.
"""

# History constants
HISTORY_CAP = 30
HISTORY_IMAGE_FORMAT = "PNG"

# Viewport constants
MIN_ZOOM = 0.05
MAX_ZOOM = 10.0
ZOOM_BUTTON_STEP = 0.1
WHEEL_ZOOM_OUT_FACTOR = 0.9
WHEEL_ZOOM_IN_FACTOR = 1.1
FIT_MARGIN = 100
FIT_ZOOM_CAP_ON_LOAD = 0.9
FIT_ZOOM_CAP_STANDARD = 1.0

# Vector object constants
MIN_OBJECT_SIZE = 10
MIN_COMMIT_SIZE = 2
HANDLE_SIZE = 12
ROTATE_HANDLE_OFFSET = 30
TEXT_WIDTH_FACTOR = 0.6
TRANSPARENT = "transparent"

# Object types
OBJECT_RECT = "rect"
OBJECT_CIRCLE = "circle"
OBJECT_LINE = "line"
OBJECT_TEXT = "text"
OBJECT_TYPES = (OBJECT_RECT, OBJECT_CIRCLE, OBJECT_LINE, OBJECT_TEXT)

# Inpainting constants
INPAINT_ITERATIONS = 50
MASK_THRESHOLD = 100
MASK_INK = 255
ORTHOGONAL_WEIGHT = 1.0
DIAGONAL_WEIGHT = 0.7

# Canvas standardization
STANDARD_CANVAS_SIZE = 1600
STANDARD_CONTENT_SIZE = 1500
STANDARD_BACKGROUND = (255, 255, 255, 255)

# Default style (property panel)
DEFAULT_STROKE_COLOR = "#000000"
DEFAULT_FILL_COLOR = "#ffffff"
DEFAULT_STROKE_WIDTH = 30
DEFAULT_FONT_SIZE = 40
DEFAULT_OPACITY = 1.0
MIN_STYLE_SIZE = 1
MAX_STYLE_SIZE = 150

# Mask overlay (erase in progress)
OVERLAY_TILE_SIZE = 20
OVERLAY_LIGHT = (255, 255, 255, 102)
OVERLAY_DARK = (0, 0, 0, 128)
OVERLAY_STRIPE_WIDTH = 4
OVERLAY_FRAME_MS = 50
OVERLAY_SCROLL_STEP = 1

# Selection decorations
SELECTION_COLOR = "#6366f1"
RUBBER_BAND_DASH = 5

# Export
EXPORT_FORMAT = "JPEG"
EXPORT_QUALITY = 90
EXPORT_FILENAME_PREFIX = "edit_"

# Remote services
AI_EDIT_MODEL = "gemini-2.5-flash-image"
AI_EDIT_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
AI_EDIT_INSTRUCTION = "Erase highlighted parts using the mask."
AI_EDIT_TIMEOUT_S = 60
IMAGE_HOST_DOMAIN = "https://img.hmstu.eu.org"
IMAGE_UPLOAD_PATH = "/upload"
CORS_PROXY = "https://corsproxy.io/?"
UPLOAD_TIMEOUT_S = 30
FETCH_TIMEOUT_S = 30

# Environment variable names
ENV_API_KEY = "GEMINI_API_KEY"
ENV_API_KEY_FALLBACK = "API_KEY"
ENV_AI_MODEL = "ERP_AI_EDIT_MODEL"
ENV_UPLOAD_HOST = "ERP_IMAGE_HOST"
ENV_CORS_PROXY = "ERP_CORS_PROXY"

# Window constants
DEFAULT_WINDOW_WIDTH = 1400
DEFAULT_WINDOW_HEIGHT = 850
