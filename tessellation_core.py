"""
Voronoi Tessellation - Functional Core

Seed generation and clipped Voronoi cells for the ice flakes.
No side effects - computed once at start-up, immutable afterwards.

Each cell is the bounding rectangle clipped by the perpendicular bisector
half-planes between its seed and the seed's Delaunay neighbours (scipy).
Seeds may lie outside the rectangle; their cells can be partial or empty.
Empty and duplicate cells come back as polygon=None.
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np
from scipy.spatial import Delaunay, QhullError

from ice_types import FlakeCell, Point, Polygon


Bounds = Tuple[float, float, float, float]  # (x0, y0, x1, y1)

DEFAULT_SEED_COUNT = 100
DEFAULT_RANDOM_SEED = 1979

# Degenerate-geometry tolerance in pixels
_EPSILON = 1e-9


# ============================================================================
# Seed Points
# ============================================================================

def generate_seeds(
    width: float,
    height: float,
    count: int = DEFAULT_SEED_COUNT,
    random_seed: int = DEFAULT_RANDOM_SEED
) -> Tuple[Point, ...]:
    """Sample seed points for the flake field

    x is drawn from [-0.2 * width, 1.2 * width] and y from
    [-0.2 * height, 0.66 * height], so the field overhangs the canvas and
    stays in the upper two thirds.

    Args:
        width, height: Canvas size in pixels
        count: Number of seeds
        random_seed: Seed for numpy's default_rng (same seed, same field)

    Returns:
        Tuple of (x, y) points
    """
    if count < 0:
        raise ValueError(f"Seed count must be non-negative, got {count}")

    rng = np.random.default_rng(random_seed)
    xs = rng.uniform(-width * 0.2, width * 1.2, size=count)
    ys = rng.uniform(-height * 0.2, height * 0.66, size=count)
    return tuple((float(x), float(y)) for x, y in zip(xs, ys))


# ============================================================================
# Polygon Helpers
# ============================================================================

def rectangle_polygon(bounds: Bounds) -> List[Point]:
    """Clockwise-in-screen-space rectangle vertices"""
    x0, y0, x1, y1 = bounds
    return [(x0, y0), (x1, y0), (x1, y1), (x0, y1)]


def polygon_centroid(polygon: Sequence[Point]) -> Point:
    """Vertex average of a polygon (the point flakes shrink towards)"""
    n = len(polygon)
    return (sum(p[0] for p in polygon) / n, sum(p[1] for p in polygon) / n)


def polygon_area(polygon: Sequence[Point]) -> float:
    """Absolute shoelace area"""
    area = 0.0
    n = len(polygon)
    for k in range(n):
        x1, y1 = polygon[k]
        x2, y2 = polygon[(k + 1) % n]
        area += x1 * y2 - x2 * y1
    return abs(area) / 2.0


def clip_to_half_plane(
    polygon: Sequence[Point],
    normal: Point,
    offset: float
) -> List[Point]:
    """Keep the part of a convex polygon where normal · p <= offset

    Sutherland-Hodgman against a single edge.
    """
    if not polygon:
        return []

    nx, ny = normal
    result = []
    n = len(polygon)

    for k in range(n):
        current = polygon[k]
        following = polygon[(k + 1) % n]
        d_current = nx * current[0] + ny * current[1] - offset
        d_following = nx * following[0] + ny * following[1] - offset

        if d_current <= 0:
            result.append(current)

        # Edge crosses the boundary
        if (d_current < 0 < d_following) or (d_following < 0 < d_current):
            t = d_current / (d_current - d_following)
            result.append((
                current[0] + t * (following[0] - current[0]),
                current[1] + t * (following[1] - current[1])
            ))

    return result


def _dedupe_vertices(polygon: Sequence[Point]) -> List[Point]:
    """Drop consecutive (and wrap-around) duplicate vertices"""
    cleaned = []
    for point in polygon:
        if cleaned and abs(cleaned[-1][0] - point[0]) < _EPSILON and abs(cleaned[-1][1] - point[1]) < _EPSILON:
            continue
        cleaned.append(point)
    while len(cleaned) > 1 and abs(cleaned[0][0] - cleaned[-1][0]) < _EPSILON and abs(cleaned[0][1] - cleaned[-1][1]) < _EPSILON:
        cleaned.pop()
    return cleaned


# ============================================================================
# Voronoi Cells
# ============================================================================

def delaunay_neighbours(seeds: Sequence[Point]) -> Optional[List[List[int]]]:
    """Delaunay neighbour lists per seed, or None if qhull cannot triangulate

    Seeds qhull drops as duplicates get an empty list.
    """
    if len(seeds) < 3:
        return None

    try:
        tri = Delaunay(np.asarray(seeds, dtype=float))
    except QhullError:
        return None

    indptr, indices = tri.vertex_neighbor_vertices
    return [list(indices[indptr[i]:indptr[i + 1]]) for i in range(len(seeds))]


def compute_cell_polygon(
    index: int,
    seeds: Sequence[Point],
    bounds: Bounds,
    neighbours: Optional[Sequence[int]] = None
) -> Optional[Polygon]:
    """Clipped Voronoi cell for one seed

    Args:
        index: Seed index
        seeds: All seeds
        bounds: Clip rectangle (x0, y0, x1, y1)
        neighbours: Candidate neighbour indices (default: every other seed)

    Returns:
        Cell vertices, or None when the cell is empty or the seed duplicates
        an earlier one
    """
    sx, sy = seeds[index]
    candidates = range(len(seeds)) if neighbours is None else neighbours
    polygon = rectangle_polygon(bounds)

    for j in candidates:
        if j == index:
            continue
        ox, oy = seeds[j]
        if abs(ox - sx) < _EPSILON and abs(oy - sy) < _EPSILON:
            if j < index:
                return None
            continue

        # Points closer to seed than to other: (other - seed) · p <= (|other|² - |seed|²) / 2
        normal = (ox - sx, oy - sy)
        offset = (ox * ox + oy * oy - sx * sx - sy * sy) / 2.0
        polygon = clip_to_half_plane(polygon, normal, offset)
        if not polygon:
            return None

    polygon = _dedupe_vertices(polygon)
    if len(polygon) < 3 or polygon_area(polygon) < _EPSILON:
        return None
    return tuple(polygon)


def compute_cells(seeds: Sequence[Point], bounds: Bounds) -> Tuple[FlakeCell, ...]:
    """Clipped Voronoi cells, one per seed

    Args:
        seeds: Seed points
        bounds: Clip rectangle (x0, y0, x1, y1)

    Returns:
        One FlakeCell per seed, in seed order; polygon/centroid are None for
        empty cells
    """
    neighbour_lists = delaunay_neighbours(seeds)
    cells = []

    for i, seed in enumerate(seeds):
        neighbours = None
        if neighbour_lists is not None and neighbour_lists[i]:
            neighbours = neighbour_lists[i]
        polygon = compute_cell_polygon(i, seeds, bounds, neighbours)
        centroid = polygon_centroid(polygon) if polygon else None
        cells.append(FlakeCell(index=i, seed=seed, polygon=polygon, centroid=centroid))

    return tuple(cells)


def build_flake_field(
    width: int,
    height: int,
    count: int = DEFAULT_SEED_COUNT,
    random_seed: int = DEFAULT_RANDOM_SEED
) -> Tuple[FlakeCell, ...]:
    """Seeds plus cells clipped to the canvas, in one call"""
    seeds = generate_seeds(width, height, count, random_seed)
    return compute_cells(seeds, (0.0, 0.0, float(width), float(height)))
