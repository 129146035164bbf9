"""
Coherent Noise - Functional Core

Deterministic 3D value noise with octaves, returning values in [0, 1].
Neighbouring inputs give neighbouring outputs, so sampling along a slowly
advancing time axis produces smooth per-flake wobble instead of flicker.

Pure functions only: the same (x, y, z, seed) always gives the same value.
"""

import math
from functools import partial
from typing import Callable


NoiseFn = Callable[..., float]

DEFAULT_OCTAVES = 4
DEFAULT_FALLOFF = 0.5


# ============================================================================
# Lattice Hash
# ============================================================================

def lattice_value(ix: int, iy: int, iz: int, seed: int = 0) -> float:
    """Pseudo-random value in [0, 1] for an integer lattice point

    32-bit integer mixing; negative coordinates are fine because Python
    masks them into the unsigned range.
    """
    n = (ix * 374761393 + iy * 668265263 + iz * 1440662683 + seed * 2246822519) & 0xFFFFFFFF
    n = ((n ^ (n >> 13)) * 1274126177) & 0xFFFFFFFF
    n ^= n >> 16
    return n / 0xFFFFFFFF


def _smooth(t: float) -> float:
    return t * t * (3.0 - 2.0 * t)


def _lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def value_noise3(x: float, y: float = 0.0, z: float = 0.0, seed: int = 0) -> float:
    """Single octave of trilinear value noise in [0, 1]"""
    xi = math.floor(x)
    yi = math.floor(y)
    zi = math.floor(z)
    u = _smooth(x - xi)
    v = _smooth(y - yi)
    w = _smooth(z - zi)

    c000 = lattice_value(xi, yi, zi, seed)
    c100 = lattice_value(xi + 1, yi, zi, seed)
    c010 = lattice_value(xi, yi + 1, zi, seed)
    c110 = lattice_value(xi + 1, yi + 1, zi, seed)
    c001 = lattice_value(xi, yi, zi + 1, seed)
    c101 = lattice_value(xi + 1, yi, zi + 1, seed)
    c011 = lattice_value(xi, yi + 1, zi + 1, seed)
    c111 = lattice_value(xi + 1, yi + 1, zi + 1, seed)

    x00 = _lerp(c000, c100, u)
    x10 = _lerp(c010, c110, u)
    x01 = _lerp(c001, c101, u)
    x11 = _lerp(c011, c111, u)

    y0 = _lerp(x00, x10, v)
    y1 = _lerp(x01, x11, v)
    return _lerp(y0, y1, w)


# ============================================================================
# Fractal Noise
# ============================================================================

def fractal_noise(
    x: float,
    y: float = 0.0,
    z: float = 0.0,
    seed: int = 0,
    octaves: int = DEFAULT_OCTAVES,
    falloff: float = DEFAULT_FALLOFF
) -> float:
    """Sum of value-noise octaves, normalised back to [0, 1]

    Args:
        x, y, z: Sample coordinates
        seed: Noise seed
        octaves: Number of layers; each doubles the frequency
        falloff: Amplitude multiplier per octave

    Returns:
        Noise value in [0, 1]

    Raises:
        ValueError: If octaves < 1
    """
    if octaves < 1:
        raise ValueError(f"Noise needs at least one octave, got {octaves}")

    total = 0.0
    amplitude = 1.0
    amplitude_sum = 0.0
    frequency = 1.0

    for octave in range(octaves):
        total += amplitude * value_noise3(x * frequency, y * frequency, z * frequency, seed + octave)
        amplitude_sum += amplitude
        amplitude *= falloff
        frequency *= 2.0

    return total / amplitude_sum


def make_noise(
    seed: int = 0,
    octaves: int = DEFAULT_OCTAVES,
    falloff: float = DEFAULT_FALLOFF
) -> NoiseFn:
    """Bind seed and octave settings into a noise(x, y=0, z=0) callable"""
    if octaves < 1:
        raise ValueError(f"Noise needs at least one octave, got {octaves}")
    return partial(fractal_noise, seed=seed, octaves=octaves, falloff=falloff)
