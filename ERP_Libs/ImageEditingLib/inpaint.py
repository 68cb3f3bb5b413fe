"""
Inpainting engine: object removal for the erase tool.

The local algorithm is an iterative, Jacobi-style neighbor-averaging diffusion.
Each pass fills every marked interior pixel that has at least one unmarked
8-connected neighbor with the weighted average of those neighbors, then
unmarks it. All reads within a pass use the values and marks from the start of
the pass, so the raster-scan direction has no influence on the result.

Pixels on the outermost row/column are never filled: the diffusion only
visits interior pixels. Masked border pixels keep their original color.

The smart erase entry point first asks a remote AI image-edit collaborator
and falls back to the local algorithm whenever that call fails.

Example:
    >>> from ERP_Libs.ImageEditingLib.image_models import Rect
    >>> from ERP_Libs.ImageEditingLib.surfaces import BitmapSurface, MaskSurface
    >>> bitmap = BitmapSurface.blank((100, 100), (0, 0, 255, 255))
    >>> mask = MaskSurface.blank(bitmap.size)
    >>> mask.mark_rect(Rect(40, 40, 20, 20))
    >>> smart_erase(bitmap, mask)
    'local'
"""

import base64
import binascii
import io
import logging
from typing import Callable, Optional

import numpy as np

from ERP_Libs.ImageEditingLib.surfaces import BitmapSurface, MaskSurface
from ERP_Libs.RemoteLib.ai_image_edit import AiEditResult
from ERP_Libs.constants import (
    AI_EDIT_INSTRUCTION,
    DIAGONAL_WEIGHT,
    EXPORT_QUALITY,
    INPAINT_ITERATIONS,
    MASK_THRESHOLD,
    ORTHOGONAL_WEIGHT,
)
from ERP_Libs.pillow_compat import Image

logger = logging.getLogger(__name__)

# Type alias for the remote edit collaborator: (image_b64, instruction, mask_b64) -> result
AiEditor = Callable[[str, str, Optional[str]], AiEditResult]

ERASE_NOOP = "noop"
ERASE_REMOTE = "remote"
ERASE_LOCAL = "local"

# (dy, dx, weight)
NEIGHBOR_OFFSETS = (
    (-1, -1, DIAGONAL_WEIGHT), (-1, 0, ORTHOGONAL_WEIGHT), (-1, 1, DIAGONAL_WEIGHT),
    (0, -1, ORTHOGONAL_WEIGHT), (0, 1, ORTHOGONAL_WEIGHT),
    (1, -1, DIAGONAL_WEIGHT), (1, 0, ORTHOGONAL_WEIGHT), (1, 1, DIAGONAL_WEIGHT),
)


def inpaint_pixels(
    pixels: np.ndarray,
    marked: np.ndarray,
    iterations: int = INPAINT_ITERATIONS,
) -> None:
    """
    Fill marked pixels in place by iterative neighbor averaging.

    Args:
        pixels: (height, width, 4) uint8 RGBA array, mutated in place
        marked: (height, width) boolean array of pixels to synthesize
        iterations: Number of diffusion passes

    Raises:
        ValueError: If shapes disagree or iterations is negative
    """
    if pixels.ndim != 3 or pixels.shape[2] != 4:
        raise ValueError(f"Expected (height, width, 4) pixel array, got {pixels.shape}")
    if marked.shape != pixels.shape[:2]:
        raise ValueError(f"Mask shape {marked.shape} does not match bitmap {pixels.shape[:2]}")
    if iterations < 0:
        raise ValueError(f"iterations must be >= 0, got {iterations}")

    if not marked.any():
        return

    height, width = marked.shape
    if height < 3 or width < 3:
        return

    pending = marked.astype(bool).copy()
    filled = np.zeros_like(pending)
    rgb = pixels[:, :, :3].astype(np.float32)

    for _ in range(iterations):
        targets = pending[1:-1, 1:-1]
        if not targets.any():
            break

        valid = (~pending).astype(np.float32)
        acc = np.zeros((height - 2, width - 2, 3), dtype=np.float32)
        weight_sum = np.zeros((height - 2, width - 2), dtype=np.float32)

        for dy, dx, weight in NEIGHBOR_OFFSETS:
            rows = slice(1 + dy, height - 1 + dy)
            cols = slice(1 + dx, width - 1 + dx)
            w = valid[rows, cols] * weight
            acc += rgb[rows, cols] * w[:, :, None]
            weight_sum += w

        fill = targets & (weight_sum > 0)
        if not fill.any():
            # Nothing reachable this pass means nothing reachable later either
            break

        interior = rgb[1:-1, 1:-1]
        interior[fill] = np.rint(acc[fill] / weight_sum[fill][:, None])
        targets[fill] = False
        filled[1:-1, 1:-1] |= fill

    pixels[filled, :3] = np.clip(rgb[filled], 0, 255).astype(np.uint8)
    pixels[filled, 3] = 255


def local_inpaint(
    bitmap: BitmapSurface,
    mask: MaskSurface,
    iterations: int = INPAINT_ITERATIONS,
    threshold: int = MASK_THRESHOLD,
) -> None:
    """
    Run the local inpainting algorithm on a surface pair.

    The bitmap is mutated in place. The mask is left untouched; clearing it
    is the caller's job.
    """
    if bitmap.size != mask.size:
        raise ValueError(f"Mask size {mask.size} does not match bitmap size {bitmap.size}")
    inpaint_pixels(bitmap.pixels, mask.marked(threshold), iterations)


def _decode_base64_image(data: str):
    if "," in data and data.startswith("data:"):
        _, data = data.split(",", 1)
    raw = base64.b64decode(data, validate=True)
    image = Image.open(io.BytesIO(raw))
    image.load()
    return image


def smart_erase(
    bitmap: BitmapSurface,
    mask: MaskSurface,
    ai_editor: Optional[AiEditor] = None,
    instruction: str = AI_EDIT_INSTRUCTION,
    iterations: int = INPAINT_ITERATIONS,
    threshold: int = MASK_THRESHOLD,
) -> str:
    """
    Remove the masked region, remotely when possible, locally otherwise.

    The mask is always cleared afterwards, whichever path ran.

    Args:
        bitmap: Surface to edit in place
        mask: Removal mask, same size as the bitmap
        ai_editor: Optional remote edit collaborator
        instruction: Natural-language instruction sent with the image
        iterations: Local diffusion passes
        threshold: Mask intensity above which a pixel is marked

    Returns:
        'noop' when nothing is marked, 'remote' when the AI result was
        composited, 'local' when the local algorithm ran
    """
    try:
        if not mask.has_marks(threshold):
            return ERASE_NOOP

        if ai_editor is not None:
            image_b64 = base64.b64encode(
                bitmap.encode("JPEG", quality=EXPORT_QUALITY)
            ).decode("ascii")
            mask_b64 = base64.b64encode(mask.encode()).decode("ascii")
            try:
                result = ai_editor(image_b64, instruction, mask_b64)
            except Exception as exc:
                result = AiEditResult.failure(f"AI edit raised {type(exc).__name__}: {exc}")

            if result.ok:
                try:
                    edited = _decode_base64_image(result.image_base64)
                except (OSError, ValueError, binascii.Error) as exc:
                    logger.warning(f"AI edit returned an unreadable image, falling back to local inpainting: {exc}")
                else:
                    bitmap.composite(edited)
                    logger.info("Erase completed by remote AI edit")
                    return ERASE_REMOTE
            else:
                logger.warning(f"AI edit unavailable, falling back to local inpainting: {result.reason}")

        local_inpaint(bitmap, mask, iterations=iterations, threshold=threshold)
        logger.info("Erase completed by local inpainting")
        return ERASE_LOCAL
    finally:
        mask.clear()
