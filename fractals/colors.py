"""
Color mapping shared by every fractal kind.

A single scalar intensity in [0, 1] drives each sample: 0 is the brightest
mapping (the base color itself), 1 the darkest. Each kind scales the three
channels down at its own rate towards a floor, looked up in PALETTES.
"""
from dataclasses import dataclass

import numpy as np

from fractals.datatypes import FractalKind, resolve_color
from fractals.settings import COLOR_SATURATION

NO_DATA = (0, 0, 0, 0)


@dataclass(frozen=True)
class Palette:
    r_factor: float
    g_factor: float
    b_factor: float
    floor: int
    soft_alpha: bool = False  # alpha follows sqrt(1 - intensity)


PALETTES = {
    FractalKind.MANDELBROT: Palette(1.0, 1.0, 1.0, 0, soft_alpha=True),
    FractalKind.JULIA: Palette(1.0, 1.0, 1.0, 0, soft_alpha=True),
    FractalKind.KOCH: Palette(0.5, 0.4, 0.3, 40),
    FractalKind.SIERPINSKI: Palette(0.6, 0.5, 0.4, 30),
    FractalKind.TREE: Palette(0.65, 0.55, 0.45, 20),
}


def _round(values):
    # half-up rounding, matching canvas byte conversion
    return np.floor(values + 0.5)


def color_array(intensity, base_color, kind=FractalKind.MANDELBROT):
    """Vectorized color_for: map an array of intensities to an (..., 4) uint8 array."""
    palette = PALETTES[FractalKind(kind)]
    base = np.asarray(resolve_color(base_color), dtype=np.float64)
    factors = np.array([palette.r_factor, palette.g_factor, palette.b_factor])

    intensity = np.nan_to_num(np.asarray(intensity, dtype=np.float64), nan=1.0)
    intensity = np.clip(intensity, 0.0, 1.0)[..., None]

    rgb = np.maximum(palette.floor, _round(base * (1.0 - intensity * factors)))
    rgb = np.clip(rgb, 0, 255)
    if palette.soft_alpha:
        alpha = _round(255.0 * np.sqrt(1.0 - intensity))
    else:
        alpha = np.full(intensity.shape, 255.0)

    return np.concatenate([rgb, alpha], axis=-1).astype(np.uint8)


def color_for(intensity, base_color, kind=FractalKind.MANDELBROT):
    """Map a single intensity to an (r, g, b, a) tuple of ints."""
    return tuple(int(c) for c in color_array(intensity, base_color, kind))


def escape_intensity(counts, max_iterations):
    """Intensity of escaping points: the quicker a point escapes, the darker it is."""
    counts = np.asarray(counts, dtype=np.float64)
    ceiling = max(1.0, max_iterations * COLOR_SATURATION)
    return 1.0 - np.minimum(1.0, counts / ceiling)


def colorize_escape(counts, max_iterations, base_color, kind=FractalKind.MANDELBROT):
    """Turn an escape count array into RGBA samples; non-escaping points carry no data."""
    counts = np.asarray(counts)
    if max_iterations <= 0:
        return np.zeros(counts.shape + (4,), dtype=np.uint8)

    colored = color_array(escape_intensity(counts, max_iterations), base_color, kind)
    colored[counts >= max_iterations] = NO_DATA
    return colored


def level_intensity(level, depth):
    """Intensity of one recursion level; the trunk/outer shell is level 0."""
    depth = max(int(depth), 0)
    return min(max(level, 0), depth) / (depth + 1)
