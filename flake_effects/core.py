"""
Flake Effects - Functional Core

Decorative render layers as pure functions.
No side effects, no drawing - each layer turns a FlakeTransform into a list
of draw commands that shell.py rasterizes.

Layers are independent and toggleable; none of them reads or changes the
transition state. Draw order is the order of LAYER_REGISTRY.
"""

import math
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from ice_types import Point
from extent_core import normalize, lerp
from flake_core import FlakeTransform, flake_vertices, jittered_vertices
from noise_core import NoiseFn


RGBA = Tuple[float, float, float, float]

CRACK_PROBABILITY = 0.15


# ============================================================================
# Draw Commands
# ============================================================================

@dataclass(frozen=True)
class PolygonFill:
    """Filled polygon

    Attributes:
        points: Vertices in pixel coords
        color: (R, G, B, A) in 0-255, values may overshoot and are clamped
    """
    points: Tuple[Point, ...]
    color: RGBA


@dataclass(frozen=True)
class Polyline:
    """Stroked polyline (closed outline by default)"""
    points: Tuple[Point, ...]
    color: RGBA
    thickness: float = 1.0
    closed: bool = True


@dataclass(frozen=True)
class BezierStroke:
    """Stroked cubic Bezier curve (p0, p1, p2, p3)"""
    control_points: Tuple[Point, Point, Point, Point]
    color: RGBA
    thickness: float = 1.0


DrawCommand = Union[PolygonFill, Polyline, BezierStroke]


@dataclass(frozen=True)
class LayerContext:
    """Per-frame inputs shared by all layers

    Attributes:
        frame: Frame counter
        width, height: Canvas size in pixels
        noise: Coherent noise function
        random_seed: Seed for the crack layer's random generator
    """
    frame: int
    width: float
    height: float
    noise: NoiseFn
    random_seed: int = 0


Layer = Callable[[FlakeTransform, LayerContext], List[DrawCommand]]


# ============================================================================
# Geometry Helpers
# ============================================================================

def bezier_point(control_points: Sequence[Point], t: float) -> Point:
    """Point on a cubic Bezier at parameter t"""
    (x0, y0), (x1, y1), (x2, y2), (x3, y3) = control_points
    u = 1.0 - t
    a = u * u * u
    b = 3.0 * u * u * t
    c = 3.0 * u * t * t
    d = t * t * t
    return (a * x0 + b * x1 + c * x2 + d * x3, a * y0 + b * y1 + c * y2 + d * y3)


def flatten_bezier(control_points: Sequence[Point], segments: int = 16) -> Tuple[Point, ...]:
    """Approximate a cubic Bezier by segments + 1 points"""
    if segments < 1:
        raise ValueError(f"Bezier needs at least one segment, got {segments}")
    return tuple(bezier_point(control_points, k / segments) for k in range(segments + 1))


def flake_rng(random_seed: int, frame: int, index: int) -> np.random.Generator:
    """Random generator for one flake on one frame (reproducible)"""
    return np.random.default_rng([abs(random_seed), frame, index])


# ============================================================================
# Layers
# ============================================================================

def inner_reflection_layer(flake: FlakeTransform, ctx: LayerContext) -> List[DrawCommand]:
    """Wide faint stroke just inside the flake, suggests refraction depth"""
    return [Polyline(
        points=flake_vertices(flake, 0.98),
        color=(255.0, 255.0, 255.0, 30.0),
        thickness=normalize(flake.shrink, 0.2, 1.0, 8.0, 12.0)
    )]


def texture_fill_layer(flake: FlakeTransform, ctx: LayerContext) -> List[DrawCommand]:
    """Main body fill with a cloudy noise tint and jittered edges"""
    points = jittered_vertices(flake, ctx.frame, ctx.noise)

    # Average the per-vertex texture noise into one tint for the polygon
    samples = [ctx.noise(x * 0.02, y * 0.02, ctx.frame * 0.005) for x, y in points]
    texture = sum(samples) / len(samples)

    r, g, b, a = flake.fill
    tint = normalize(texture, 0.0, 1.0, 0.95, 1.05)
    alpha = normalize(texture, 0.0, 1.0, a * 0.85, a * 1.05)
    return [PolygonFill(points=points, color=(r * tint, g * tint, b * tint, alpha))]


def cracks_layer(flake: FlakeTransform, ctx: LayerContext) -> List[DrawCommand]:
    """Occasional curved hairline cracks through the flake centre"""
    rng = flake_rng(ctx.random_seed, ctx.frame, flake.index)
    if rng.random() >= CRACK_PROBABILITY:
        return []

    cx, cy = flake.centroid
    fx, fy = flake.offset
    alpha = float(rng.uniform(50.0, 100.0))
    num_cracks = int(rng.integers(1, 3))

    commands = []
    for k in range(num_cracks):
        start_angle, end_angle = rng.uniform(0.0, 2.0 * math.pi, size=2)
        start_radius = rng.uniform(0.0, flake.shrink * 10.0)
        end_radius = rng.uniform(0.0, flake.shrink * 15.0)

        x1 = cx + math.cos(start_angle) * start_radius + fx
        y1 = cy + math.sin(start_angle) * start_radius + fy
        x4 = cx + math.cos(end_angle) * end_radius + fx
        y4 = cy + math.sin(end_angle) * end_radius + fy

        mid_x = lerp(x1, x4, 0.5)
        mid_y = lerp(y1, y4, 0.5)
        bend = normalize(
            ctx.noise(flake.index, k * 0.1, (ctx.frame + 1000) * 0.001),
            0.0, 1.0, -20.0, 20.0
        )

        commands.append(BezierStroke(
            control_points=(
                (x1, y1),
                (lerp(x1, mid_x, 0.3) + bend, lerp(y1, mid_y, 0.3) + bend),
                (lerp(x4, mid_x, 0.3) - bend, lerp(y4, mid_y, 0.3) - bend),
                (x4, y4)
            ),
            color=(255.0, 255.0, 255.0, alpha),
            thickness=1.0
        ))

    return commands


def fresnel_alpha(flake: FlakeTransform, ctx: LayerContext) -> float:
    """Rim highlight opacity: stronger for lower (more grazing) flakes"""
    y_norm = normalize(flake.centroid[1], 0.0, ctx.height * 0.66, 0.5, 1.0)
    flicker = normalize(ctx.noise(flake.index * 0.5, ctx.frame * 0.1), 0.0, 1.0, 0.9, 1.1)
    alpha = normalize(y_norm * flake.brightness * flicker, 0.4, 1.2, 50.0, 100.0)
    return max(0.0, min(120.0, alpha))


def fresnel_rim_layer(flake: FlakeTransform, ctx: LayerContext) -> List[DrawCommand]:
    """Thin white rim just outside the fill"""
    return [Polyline(
        points=flake_vertices(flake, 1.005),
        color=(255.0, 255.0, 255.0, fresnel_alpha(flake, ctx)),
        thickness=1.8
    )]


def edge_shimmer_layer(flake: FlakeTransform, ctx: LayerContext) -> List[DrawCommand]:
    """Jittered outer outline"""
    return [Polyline(
        points=jittered_vertices(flake, ctx.frame, ctx.noise),
        color=(240.0, 250.0, 255.0, 100.0),
        thickness=1.0
    )]


def crystalline_outline_layer(flake: FlakeTransform, ctx: LayerContext) -> List[DrawCommand]:
    """Clean inner outline whose tint and opacity drift over time"""
    hue = normalize(ctx.noise(flake.index * 0.25, ctx.frame * 0.015), 0.0, 1.0, 230.0, 255.0)
    alpha = normalize(ctx.noise(flake.index * 0.3, ctx.frame * 0.02), 0.0, 1.0, 150.0, 255.0)
    return [Polyline(
        points=flake_vertices(flake),
        color=(hue, hue, 255.0, alpha),
        thickness=1.5
    )]


LAYER_REGISTRY: Dict[str, Layer] = OrderedDict([
    ('inner_reflection', inner_reflection_layer),
    ('texture_fill', texture_fill_layer),
    ('cracks', cracks_layer),
    ('fresnel_rim', fresnel_rim_layer),
    ('edge_shimmer', edge_shimmer_layer),
    ('crystalline_outline', crystalline_outline_layer),
])

DEFAULT_LAYERS: Tuple[str, ...] = tuple(LAYER_REGISTRY)


# ============================================================================
# Frame Composition
# ============================================================================

def resolve_layers(names: Optional[Sequence[str]] = None) -> List[Layer]:
    """Look up layer functions, always in registry (draw) order

    Args:
        names: Enabled layer names (None = all layers)

    Returns:
        Layer functions in draw order

    Raises:
        ValueError: If a name is not a registered layer
    """
    if names is None:
        return list(LAYER_REGISTRY.values())

    unknown = [name for name in names if name not in LAYER_REGISTRY]
    if unknown:
        raise ValueError(
            f"Unknown layer(s): {', '.join(unknown)}. "
            f"Available: {', '.join(LAYER_REGISTRY)}"
        )

    enabled = set(names)
    return [layer for name, layer in LAYER_REGISTRY.items() if name in enabled]


def build_flake_commands(
    flake: FlakeTransform,
    ctx: LayerContext,
    layers: Sequence[Layer]
) -> List[DrawCommand]:
    """All draw commands for one flake, layer by layer"""
    commands = []
    for layer in layers:
        commands.extend(layer(flake, ctx))
    return commands


def build_frame_commands(
    flakes: Sequence[FlakeTransform],
    ctx: LayerContext,
    layers: Sequence[Layer]
) -> List[DrawCommand]:
    """Draw commands for a whole frame

    Flakes are drawn one after another (all layers of flake 0, then flake 1...)
    so later flakes overlap earlier ones.
    """
    commands = []
    for flake in flakes:
        commands.extend(build_flake_commands(flake, ctx, layers))
    return commands
