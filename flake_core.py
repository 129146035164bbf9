"""
Flake Transform Core - Functional Core

Pure per-flake math: ice-region culling, per-flake shrink, float offset,
lighting and vertex placement. No drawing - produces FlakeTransform records
consumed by flake_effects (draw commands) and the rasterizer.

Everything is deterministic given (frame, flake index) and the noise
function passed in.
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from ice_types import FlakeCell, Point, Polygon
from extent_core import normalize
from noise_core import NoiseFn


# Sun low over the horizon, upper left
SUN_DIRECTION = (-0.5, -0.8)

ICE_REGION_FRACTION = 2.0 / 3.0
NOISE_TIME_SCALE = 0.005
FLOAT_AMPLITUDE = (2.0, 1.5)
LIGHT_SOFTENING = 0.6
BRIGHTNESS_RANGE = (0.7, 1.05)
BASE_FILL_ALPHA = 180.0

RGBA = Tuple[float, float, float, float]


@dataclass(frozen=True)
class FlakeTransform:
    """Per-frame transform of one flake

    Attributes:
        index: Flake (seed) index
        centroid: Point the flake shrinks towards
        polygon: Original cell vertices
        shrink: Per-flake shrink factor (global shrink x noise wobble)
        offset: Float offset (dx, dy) in pixels
        brightness: Lighting multiplier (0.7 - 1.05)
        fill: Base fill colour (R, G, B, A) in 0-255
    """
    index: int
    centroid: Point
    polygon: Polygon
    shrink: float
    offset: Point
    brightness: float
    fill: RGBA


# ============================================================================
# Culling
# ============================================================================

def is_in_ice_region(centroid: Point, height: float) -> bool:
    """Flakes below two thirds of the canvas height are not drawn"""
    return centroid[1] <= height * ICE_REGION_FRACTION


def is_drawable(cell: FlakeCell, height: float) -> bool:
    """Cell has a usable polygon and sits inside the ice region"""
    if cell.polygon is None or cell.centroid is None or len(cell.polygon) < 3:
        return False
    return is_in_ice_region(cell.centroid, height)


# ============================================================================
# Per-Flake Animation
# ============================================================================

def flake_shrink(shrink_factor: float, index: int, frame: int, noise: NoiseFn) -> float:
    """Global shrink with a slow per-flake wobble in [0.85, 1.0]"""
    noise_value = noise(index * 0.3, frame * NOISE_TIME_SCALE)
    return shrink_factor * normalize(noise_value, 0.0, 1.0, 0.85, 1.0)


def float_offset(index: int, frame: int) -> Point:
    """Gentle bobbing, phase shifted per flake"""
    amp_x, amp_y = FLOAT_AMPLITUDE
    return (
        amp_x * math.sin(frame * 0.003 + index),
        amp_y * math.cos(frame * 0.004 + index * 1.5)
    )


def _normalized(vector: Point) -> Point:
    length = math.hypot(vector[0], vector[1])
    if length == 0:
        return (0.0, 0.0)
    return (vector[0] / length, vector[1] / length)


def light_factor(centroid: Point, width: float, height: float) -> float:
    """Softened sun alignment of the flake's direction from canvas centre

    Returns:
        Value in [0, 1]; 0.5 for a flake exactly at the centre
    """
    sun = _normalized(SUN_DIRECTION)
    surface = _normalized((centroid[0] - width / 2.0, centroid[1] - height / 2.0))
    dot = sun[0] * surface[0] + sun[1] * surface[1]
    factor = max(0.0, min(1.0, (dot + 1.0) / 2.0))
    return factor ** LIGHT_SOFTENING


def flake_brightness(centroid: Point, width: float, height: float) -> float:
    """Lighting multiplier for a flake (0.7 in shadow, 1.05 facing the sun)"""
    lo, hi = BRIGHTNESS_RANGE
    return normalize(light_factor(centroid, width, height), 0.0, 1.0, lo, hi)


def base_fill_color(brightness: float) -> RGBA:
    """Blue-white fill that gets whiter as brightness rises"""
    lo, hi = BRIGHTNESS_RANGE
    blue = normalize(brightness, lo, hi, 150.0, 200.0)
    return (blue * brightness, (blue + 20.0) * brightness, 255.0 * brightness, BASE_FILL_ALPHA)


# ============================================================================
# Vertex Placement
# ============================================================================

def jitter_magnitude(shrink: float) -> float:
    """Edge jitter grows as flakes shrink (0 px at full size, 3 px at 0.2)"""
    return normalize(shrink, 0.2, 1.0, 3.0, 0.0)


def vertex_jitter(
    vertex_index: int,
    flake_index: int,
    frame: int,
    magnitude: float,
    noise: NoiseFn
) -> Point:
    """Noise-driven displacement for one vertex"""
    angle = noise(vertex_index * 0.5, flake_index * 0.3, frame * 0.01) * math.pi * 4.0
    return (magnitude * math.cos(angle), magnitude * math.sin(angle))


def transform_vertices(
    polygon: Sequence[Point],
    centroid: Point,
    scale: float,
    offset: Point = (0.0, 0.0)
) -> Polygon:
    """Scale vertices towards the centroid, then translate"""
    cx, cy = centroid
    dx, dy = offset
    return tuple(
        (cx + (x - cx) * scale + dx, cy + (y - cy) * scale + dy)
        for x, y in polygon
    )


def jittered_vertices(
    flake: FlakeTransform,
    frame: int,
    noise: NoiseFn,
    scale: Optional[float] = None
) -> Polygon:
    """Transformed vertices with per-vertex noise jitter (shimmer passes)"""
    scale = flake.shrink if scale is None else scale
    base = transform_vertices(flake.polygon, flake.centroid, scale, flake.offset)
    magnitude = jitter_magnitude(flake.shrink)

    result = []
    for j, (x, y) in enumerate(base):
        jx, jy = vertex_jitter(j, flake.index, frame, magnitude, noise)
        result.append((x + jx, y + jy))
    return tuple(result)


def flake_vertices(flake: FlakeTransform, scale_multiplier: float = 1.0) -> Polygon:
    """Clean transformed vertices at shrink * scale_multiplier"""
    return transform_vertices(flake.polygon, flake.centroid, flake.shrink * scale_multiplier, flake.offset)


# ============================================================================
# Frame Generation
# ============================================================================

def build_flake_transform(
    cell: FlakeCell,
    shrink_factor: float,
    frame: int,
    width: float,
    height: float,
    noise: NoiseFn
) -> FlakeTransform:
    """Per-frame transform for one drawable cell"""
    brightness = flake_brightness(cell.centroid, width, height)
    return FlakeTransform(
        index=cell.index,
        centroid=cell.centroid,
        polygon=cell.polygon,
        shrink=flake_shrink(shrink_factor, cell.index, frame, noise),
        offset=float_offset(cell.index, frame),
        brightness=brightness,
        fill=base_fill_color(brightness)
    )


def build_frame_flakes(
    cells: Sequence[FlakeCell],
    shrink_factor: float,
    frame: int,
    width: float,
    height: float,
    noise: NoiseFn
) -> Tuple[FlakeTransform, ...]:
    """Transforms for every flake drawn this frame

    Cells without a polygon and cells below the ice region are skipped.

    Args:
        cells: Tessellation output
        shrink_factor: Global shrink from the extent interpolator
        frame: Frame counter
        width, height: Canvas size in pixels
        noise: Coherent noise function

    Returns:
        Tuple of FlakeTransform, in cell order
    """
    return tuple(
        build_flake_transform(cell, shrink_factor, frame, width, height, noise)
        for cell in cells
        if is_drawable(cell, height)
    )
