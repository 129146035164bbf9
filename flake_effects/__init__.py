"""
Flake Effects Package

Decorative ice-flake render layers using functional core, imperative shell pattern.

Modules:
- core: Pure draw-command generation per layer (toggleable, registry ordered)
- shell: Rasterization onto OpenCV canvases and render timing
"""

from .core import (
    # Draw commands
    PolygonFill,
    Polyline,
    BezierStroke,
    LayerContext,

    # Geometry
    bezier_point,
    flatten_bezier,

    # Layers
    inner_reflection_layer,
    texture_fill_layer,
    cracks_layer,
    fresnel_rim_layer,
    edge_shimmer_layer,
    crystalline_outline_layer,
    LAYER_REGISTRY,
    DEFAULT_LAYERS,

    # Frame composition
    resolve_layers,
    build_flake_commands,
    build_frame_commands,
)

from .shell import (
    RenderTimings,
    time_operation,
    draw_command,
    render_commands,
    render_flakes,
)

__all__ = [
    # Core
    'PolygonFill',
    'Polyline',
    'BezierStroke',
    'LayerContext',
    'bezier_point',
    'flatten_bezier',
    'inner_reflection_layer',
    'texture_fill_layer',
    'cracks_layer',
    'fresnel_rim_layer',
    'edge_shimmer_layer',
    'crystalline_outline_layer',
    'LAYER_REGISTRY',
    'DEFAULT_LAYERS',
    'resolve_layers',
    'build_flake_commands',
    'build_frame_commands',

    # Shell
    'RenderTimings',
    'time_operation',
    'draw_command',
    'render_commands',
    'render_flakes',
]
