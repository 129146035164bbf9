"""
Ice Sketch Data Types - Shared Contract

Defines the data contract between the animation core, the flake pipeline
and the renderers. Everything here is immutable: state changes are made by
building new values (see transition_core.py).

Type Hierarchy:
    YearRecord → one row of the extent table
    AnimationState → year-transition state machine snapshot
    FlakeCell → one Voronoi cell (seed + clipped polygon)
"""

import math
from dataclasses import dataclass
from typing import Tuple, Optional, Sequence

Point = Tuple[float, float]
Polygon = Tuple[Point, ...]


@dataclass(frozen=True)
class YearRecord:
    """One year of Arctic sea-ice data

    Attributes:
        year: Calendar year
        extent: September sea-ice extent in millions of km²
    """
    year: int
    extent: float


@dataclass(frozen=True)
class AnimationState:
    """Snapshot of the year-transition state machine

    Attributes:
        current_index: Index of the settled year in the dataset
        is_transitioning: True while a step is animating
        progress: Fraction of the current step (0.0 <= progress < 1.0)
        direction: -1 (backwards) or +1 (forwards)
        queued_steps: Single-year steps still to play for this gesture
        pause_ticks: Frames left in the gap between queued steps
    """
    current_index: int = 0
    is_transitioning: bool = False
    progress: float = 0.0
    direction: int = 1
    queued_steps: int = 0
    pause_ticks: int = 0


@dataclass(frozen=True)
class StepCommand:
    """Input command produced by a key press

    Attributes:
        direction: -1 for left, +1 for right
        modifier: True when ctrl/cmd/shift was held (5-year jump)
    """
    direction: int
    modifier: bool = False


@dataclass(frozen=True)
class FlakeCell:
    """Voronoi cell used as an ice flake

    Attributes:
        index: Position of the seed in the seed list (drives per-flake noise)
        seed: Seed point the cell was derived from
        polygon: Clipped cell vertices, or None when the cell is empty
        centroid: Vertex average of the polygon, or None
    """
    index: int
    seed: Point
    polygon: Optional[Polygon]
    centroid: Optional[Point]


# ============================================================================
# Year Tables
# ============================================================================

def validate_years(years: Sequence[YearRecord]) -> Tuple[YearRecord, ...]:
    """Check a year table and freeze it

    Args:
        years: Ordered year records

    Returns:
        The records as a tuple

    Raises:
        ValueError: If the table is empty or an extent is not finite
    """
    if len(years) == 0:
        raise ValueError("Year table must contain at least one record")

    for record in years:
        if not math.isfinite(record.extent):
            raise ValueError(f"Non-finite extent for year {record.year}: {record.extent}")

    return tuple(years)


def years_from_pairs(pairs: Sequence[Tuple[int, float]]) -> Tuple[YearRecord, ...]:
    """Build a validated year table from (year, extent) pairs"""
    return validate_years([YearRecord(int(year), float(extent)) for year, extent in pairs])


# ============================================================================
# Dataset
# ============================================================================

# NSIDC September Arctic sea-ice extent (millions of km²)
SEA_ICE_EXTENT: Tuple[YearRecord, ...] = years_from_pairs([
    (1979, 7.051), (1980, 7.667), (1981, 7.138), (1982, 7.302),
    (1983, 7.395), (1984, 6.805), (1985, 6.698), (1986, 7.411),
    (1987, 7.279), (1988, 7.369), (1989, 7.008), (1990, 6.143),
    (1991, 6.473), (1992, 7.474), (1993, 6.397), (1994, 7.138),
    (1995, 6.08), (1996, 7.583), (1997, 6.686), (1998, 6.536),
    (1999, 6.117), (2000, 6.246), (2001, 6.732), (2002, 5.827),
    (2003, 6.116), (2004, 5.984), (2005, 5.504), (2006, 5.862),
    (2007, 4.267), (2008, 4.687), (2009, 5.262), (2010, 4.865),
    (2011, 4.561), (2012, 3.566), (2013, 5.208), (2014, 5.22),
    (2015, 4.616), (2016, 4.528), (2017, 4.822), (2018, 4.785),
    (2019, 4.364), (2020, 4.001), (2021, 4.952), (2022, 4.897),
    (2023, 4.381), (2024, 4.351),
])
