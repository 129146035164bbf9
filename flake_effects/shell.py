"""
Flake Effects - Imperative Shell

Rasterizes draw commands onto an OpenCV canvas.
Uses pure functions from .core for the commands themselves.

Follows functional core, imperative shell pattern:
- core.py: Pure draw-command generation (testable, predictable)
- This module: Pixel writes (side effects on the canvas)
"""

import time
from contextlib import contextmanager
from typing import Dict, List, Optional, Sequence

import numpy as np

from flake_core import FlakeTransform
from render_video_core import cv2_draw_polygon
from .core import (
    BezierStroke,
    DrawCommand,
    Layer,
    LayerContext,
    PolygonFill,
    Polyline,
    build_frame_commands,
    flatten_bezier,
)


# ============================================================================
# Performance Timing Utilities
# ============================================================================

class RenderTimings:
    """Accumulates timing data for rendering operations"""
    def __init__(self):
        self.timings = {}
        self.counts = {}

    def record(self, operation: str, duration: float):
        """Record timing for an operation"""
        if operation not in self.timings:
            self.timings[operation] = 0.0
            self.counts[operation] = 0
        self.timings[operation] += duration
        self.counts[operation] += 1

    def get_summary(self) -> Dict[str, Dict[str, float]]:
        """Get timing summary with total, average, and count"""
        summary = {}
        for op, total in self.timings.items():
            count = self.counts[op]
            summary[op] = {
                'total_ms': total * 1000,
                'avg_ms': (total / count) * 1000 if count > 0 else 0,
                'count': count
            }
        return summary

    def print_summary(self, title: str = "Render Timing Summary"):
        """Print formatted timing summary"""
        summary = self.get_summary()
        if not summary:
            print(f"{title}: No timing data collected")
            return

        print(f"\n{'='*70}")
        print(f"{title}")
        print(f"{'='*70}")
        print(f"{'Operation':<35} {'Total (ms)':>12} {'Avg (ms)':>12} {'Count':>8}")
        print(f"{'-'*70}")

        sorted_ops = sorted(summary.items(), key=lambda x: x[1]['total_ms'], reverse=True)
        for op_name, stats in sorted_ops:
            print(f"{op_name:<35} {stats['total_ms']:>12.3f} {stats['avg_ms']:>12.4f} {stats['count']:>8}")

        print(f"{'='*70}\n")

    def reset(self):
        """Clear all timing data"""
        self.timings.clear()
        self.counts.clear()


@contextmanager
def time_operation(timings: Optional[RenderTimings], operation: str):
    """Context manager to time an operation

    Args:
        timings: RenderTimings instance to record to (or None to skip timing)
        operation: Name of the operation being timed
    """
    if timings is None:
        yield
        return

    start = time.perf_counter()
    try:
        yield
    finally:
        timings.record(operation, time.perf_counter() - start)


# ============================================================================
# Rasterization
# ============================================================================

def draw_command(canvas: np.ndarray, command: DrawCommand) -> None:
    """Rasterize one draw command onto a BGR canvas

    Side effects:
    - Writes pixels into canvas

    Raises:
        TypeError: For an unknown command type
    """
    if isinstance(command, PolygonFill):
        cv2_draw_polygon(canvas, command.points, command.color)
    elif isinstance(command, Polyline):
        cv2_draw_polygon(canvas, command.points, command.color,
                         thickness=command.thickness, closed=command.closed)
    elif isinstance(command, BezierStroke):
        cv2_draw_polygon(canvas, flatten_bezier(command.control_points), command.color,
                         thickness=command.thickness, closed=False)
    else:
        raise TypeError(f"Unsupported draw command: {type(command).__name__}")


def render_commands(
    canvas: np.ndarray,
    commands: Sequence[DrawCommand],
    timings: Optional[RenderTimings] = None
) -> None:
    """Rasterize commands in order (later commands paint over earlier ones)"""
    for command in commands:
        with time_operation(timings, f"draw_{type(command).__name__}"):
            draw_command(canvas, command)


def render_flakes(
    canvas: np.ndarray,
    flakes: Sequence[FlakeTransform],
    ctx: LayerContext,
    layers: Sequence[Layer],
    timings: Optional[RenderTimings] = None
) -> int:
    """Build and rasterize every layer of every flake

    Side effects:
    - Writes pixels into canvas

    Args:
        canvas: BGR canvas (modified in-place)
        flakes: Flake transforms for this frame
        ctx: Shared layer inputs
        layers: Enabled layer functions, in draw order
        timings: Optional timing accumulator

    Returns:
        Number of draw commands rasterized
    """
    with time_operation(timings, "build_commands"):
        commands: List[DrawCommand] = build_frame_commands(flakes, ctx, layers)
    render_commands(canvas, commands, timings)
    return len(commands)
