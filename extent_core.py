"""
Extent Interpolation Core - Functional Core

Pure functions mapping sea-ice extent to the global flake shrink factor.
No side effects - only calculations.

Extent is remapped from the historical range [3.5, 7.5] million km² to a
shrink factor in [0.2, 1.0] and interpolated linearly between the settled
year and the year the current step is heading towards. Values outside the
historical range extrapolate; nothing is clamped.
"""

from typing import Sequence, Tuple

from ice_types import AnimationState, YearRecord
from transition_core import peek_index


MIN_EXTENT = 3.5
MAX_EXTENT = 7.5
MIN_SHRINK = 0.2
MAX_SHRINK = 1.0


# ============================================================================
# Scalar Helpers
# ============================================================================

def normalize(value: float, lo_in: float, hi_in: float, lo_out: float, hi_out: float) -> float:
    """Linearly remap value from [lo_in, hi_in] to [lo_out, hi_out]

    Pure function: no clamping, values outside the input range extrapolate.

    Raises:
        ValueError: If the input range is empty (lo_in == hi_in)

    Examples:
        >>> normalize(7.5, 3.5, 7.5, 0.2, 1.0)
        1.0
    """
    if hi_in == lo_in:
        raise ValueError(f"Cannot normalize over an empty range [{lo_in}, {hi_in}]")
    return lo_out + (value - lo_in) * (hi_out - lo_out) / (hi_in - lo_in)


def lerp(start: float, stop: float, amount: float) -> float:
    """Linear interpolation between start and stop"""
    return start + (stop - start) * amount


# ============================================================================
# Extent Mapping
# ============================================================================

def extent_to_shrink(extent: float) -> float:
    """Map an extent (million km²) to the flake shrink factor"""
    return normalize(extent, MIN_EXTENT, MAX_EXTENT, MIN_SHRINK, MAX_SHRINK)


def interpolate_shrink_factor(
    years: Sequence[YearRecord],
    current_index: int,
    next_index: int,
    progress: float
) -> float:
    """Shrink factor between two years

    Args:
        years: Year table
        current_index: Settled year index
        next_index: Year the step is heading towards
        progress: Step progress (0.0 = current year, 1.0 = next year)

    Returns:
        Interpolated shrink factor
    """
    extent_curr = extent_to_shrink(years[current_index].extent)
    extent_next = extent_to_shrink(years[next_index].extent)
    return lerp(extent_curr, extent_next, progress)


def shrink_factor_for_state(years: Sequence[YearRecord], state: AnimationState) -> float:
    """Shrink factor for the frame described by state"""
    return interpolate_shrink_factor(
        years,
        state.current_index,
        peek_index(state, len(years)),
        state.progress
    )


def extent_range(years: Sequence[YearRecord]) -> Tuple[float, float]:
    """(min, max) extent of the table"""
    extents = [record.extent for record in years]
    return (min(extents), max(extents))
