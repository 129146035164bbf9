"""
Video Rendering Core - Functional Core

Pure functions for image conversion, canvas operations, and drawing primitives.
No side effects: no file I/O, no windows, no printing.

Architecture: Functional core (this file) called by the imperative shells
(flake_effects/shell.py, sketch_shell.py)
"""

from typing import Tuple, Optional, Sequence
import numpy as np  # type: ignore
from PIL import Image, ImageDraw, ImageFont  # type: ignore
import cv2  # type: ignore


# Sub-pixel precision for cv2 polygon drawing (coords scaled by 2**shift)
DRAW_SHIFT = 4


# ============================================================================
# Image Format Conversions
# ============================================================================

def cv2_to_pil(cv2_image: np.ndarray) -> Image.Image:
    """
    Convert OpenCV array to PIL Image.

    Pure function - simple color space conversion.

    Args:
        cv2_image: OpenCV numpy array in BGR format

    Returns:
        PIL Image in RGB format
    """
    return Image.fromarray(cv2.cvtColor(cv2_image, cv2.COLOR_BGR2RGB))


def rgba_to_bgr(color: Sequence[float]) -> Tuple[Tuple[int, int, int], float]:
    """
    Split an RGB(A) color into a clamped cv2 BGR tuple and an opacity.

    Args:
        color: (R, G, B) or (R, G, B, A), 0-255, may overshoot

    Returns:
        ((B, G, R), alpha) with channels clamped to 0-255 and alpha in 0.0-1.0
    """
    r, g, b = (int(round(max(0.0, min(255.0, c)))) for c in color[:3])
    alpha = 1.0 if len(color) < 4 else max(0.0, min(255.0, color[3])) / 255.0
    return (b, g, r), alpha


# ============================================================================
# OpenCV Canvas Operations
# ============================================================================

def create_cv2_canvas(
    width: int,
    height: int,
    channels: int = 3,
    fill_color: Optional[Tuple[int, ...]] = None
) -> np.ndarray:
    """
    Create OpenCV canvas (NumPy array) for drawing.

    Pure function - allocates new array.

    Args:
        width: Canvas width in pixels
        height: Canvas height in pixels
        channels: 3 for BGR, 4 for BGRA
        fill_color: Initial fill color (B, G, R) or (B, G, R, A). None for black.

    Returns:
        NumPy array ready for cv2 drawing operations

    Examples:
        >>> canvas = create_cv2_canvas(100, 50, channels=3, fill_color=(50, 15, 5))
        >>> canvas.shape
        (50, 100, 3)
    """
    canvas = np.zeros((height, width, channels), dtype=np.uint8)
    if fill_color:
        canvas[:] = fill_color
    return canvas


def to_fixed_point(points: Sequence[Tuple[float, float]], shift: int = DRAW_SHIFT) -> np.ndarray:
    """
    Convert float vertices to cv2's fixed-point int32 layout.

    Args:
        points: (x, y) vertices in pixels
        shift: Fractional bits

    Returns:
        Array of shape (N, 1, 2), dtype int32
    """
    scale = float(1 << shift)
    array = np.round(np.asarray(points, dtype=np.float64) * scale).astype(np.int32)
    return array.reshape((-1, 1, 2))


def bounding_box(
    points: Sequence[Tuple[float, float]],
    width: int,
    height: int,
    padding: float = 0.0
) -> Optional[Tuple[int, int, int, int]]:
    """
    Integer bounding box of points, padded and clipped to the canvas.

    Returns:
        (x0, y0, x1, y1) with x1/y1 exclusive, or None if fully off-canvas
    """
    array = np.asarray(points, dtype=np.float64)
    x0 = max(int(np.floor(array[:, 0].min() - padding)) - 1, 0)
    y0 = max(int(np.floor(array[:, 1].min() - padding)) - 1, 0)
    x1 = min(int(np.ceil(array[:, 0].max() + padding)) + 2, width)
    y1 = min(int(np.ceil(array[:, 1].max() + padding)) + 2, height)
    if x0 >= x1 or y0 >= y1:
        return None
    return (x0, y0, x1, y1)


def cv2_draw_polygon(
    canvas: np.ndarray,
    points: Sequence[Tuple[float, float]],
    color: Sequence[float],
    thickness: Optional[float] = None,
    closed: bool = True
) -> None:
    """
    Draw a translucent filled polygon or polyline on a BGR canvas.

    Modifies canvas in-place (functional core with mutable optimization).
    Only the bounding-box region is blended, so small shapes stay cheap.

    Args:
        canvas: BGR canvas (modified in-place)
        points: Vertices in pixels (float, sub-pixel accurate)
        color: (R, G, B) or (R, G, B, A), 0-255
        thickness: Stroke width in pixels; None fills the polygon
        closed: Close the outline (strokes only)

    Notes:
        - Anti-aliased drawing (cv2.LINE_AA)
        - Fewer than 2 points (3 for fills) draws nothing
    """
    if len(points) < (3 if thickness is None else 2):
        return

    bgr, alpha = rgba_to_bgr(color)
    if alpha <= 0.0:
        return

    height, width = canvas.shape[:2]
    padding = 0.0 if thickness is None else thickness
    box = bounding_box(points, width, height, padding)
    if box is None:
        return
    x0, y0, x1, y1 = box

    local = [(x - x0, y - y0) for x, y in points]
    pts = to_fixed_point(local)

    roi = canvas[y0:y1, x0:x1]
    overlay = roi.copy()
    if thickness is None:
        cv2.fillPoly(overlay, [pts], bgr, cv2.LINE_AA, DRAW_SHIFT)
    else:
        cv2.polylines(overlay, [pts], closed, bgr, max(1, int(round(thickness))), cv2.LINE_AA, DRAW_SHIFT)

    if alpha >= 1.0:
        roi[:] = overlay
    else:
        roi[:] = cv2.addWeighted(overlay, alpha, roi, 1.0 - alpha, 0)


def cv2_composite_layer(
    base: np.ndarray,
    overlay: np.ndarray,
    alpha: float = 1.0
) -> None:
    """
    Blend a BGRA overlay onto a BGR canvas by the overlay's own alpha.

    Modifies base in-place.

    Args:
        base: BGR canvas - modified in-place
        overlay: BGRA layer the same size as base (e.g. create_text_overlay)
        alpha: Extra opacity multiplier (0.0 to 1.0)

    Raises:
        ValueError: If overlay has no alpha channel
    """
    if overlay.ndim != 3 or overlay.shape[2] != 4:
        raise ValueError(f"Overlay must be BGRA, got shape {overlay.shape}")

    weight = overlay[:, :, 3:4].astype(np.float32) * (alpha / 255.0)
    blended = base * (1.0 - weight) + overlay[:, :, :3] * weight
    base[:] = np.clip(blended + 0.5, 0, 255).astype(np.uint8)


# ============================================================================
# Text Overlay
# ============================================================================

def create_text_overlay(
    width: int,
    height: int,
    text: str,
    font: ImageFont.ImageFont,
    margin: int = 10,
    color: Tuple[int, int, int] = (255, 255, 255)
) -> np.ndarray:
    """
    Render text anchored bottom-left into a BGRA overlay.

    Pure function - PIL draws onto a transparent image, converted for cv2.

    Args:
        width, height: Overlay size in pixels
        text: Label text (e.g. the year)
        font: PIL font
        margin: Distance from the left and bottom edges
        color: RGB text color

    Returns:
        BGRA numpy array ready for cv2_composite_layer
    """
    img = Image.new('RGBA', (width, height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    _, _, _, text_bottom = draw.textbbox((0, 0), text, font=font)
    draw.text((margin, height - margin - text_bottom), text, font=font, fill=(*color, 255))
    return cv2.cvtColor(np.array(img), cv2.COLOR_RGBA2BGRA)
