import logging
import math
from dataclasses import dataclass, replace
from enum import Enum

import numpy as np
from matplotlib import colors as mcolors

from fractals.settings import DEFAULT_COLOR, DEPTH_LIMITS, MIN_ZOOM, ZOOM_LIMITS

logger = logging.getLogger(__name__)


class FractalKind(Enum):
    MANDELBROT = "mandelbrot"
    JULIA = "julia"
    KOCH = "koch"
    SIERPINSKI = "sierpinski"
    TREE = "tree"

    @property
    def is_escape_time(self):
        return self in (FractalKind.MANDELBROT, FractalKind.JULIA)

    @property
    def max_depth(self):
        return DEPTH_LIMITS[self.value]


def resolve_color(color):
    """
    Turn a hex string, color name or RGB triple into an (r, g, b) tuple of ints.

    Float triples are read as 0-1 values when every component is <= 1,
    otherwise as 0-255 values. Anything unreadable falls back to DEFAULT_COLOR.
    """
    if isinstance(color, str):
        if mcolors.is_color_like(color):
            return tuple(int(round(c * 255)) for c in mcolors.to_rgb(color))
    elif isinstance(color, (tuple, list, np.ndarray)) and len(color) == 3:
        try:
            values = [float(c) for c in color]
        except (TypeError, ValueError):
            values = None
        if values is not None and all(math.isfinite(v) for v in values):
            if all(0.0 <= v <= 1.0 for v in values) and any(isinstance(c, float) for c in color):
                values = [v * 255 for v in values]
            return tuple(int(round(min(max(v, 0.0), 255.0))) for v in values)
    logger.warning(f"Invalid color {color!r}, using {DEFAULT_COLOR}")
    return resolve_color(DEFAULT_COLOR)


@dataclass(frozen=True)
class Viewport:
    width: int
    height: int

    def __post_init__(self):
        object.__setattr__(self, "width", max(int(self.width), 0))
        object.__setattr__(self, "height", max(int(self.height), 0))

    @property
    def shape(self):
        return self.height, self.width


@dataclass(frozen=True)
class FractalParameters:
    kind: FractalKind
    depth: int = 5
    zoom: float = 1.0
    rotation: float = 0.0  # degrees
    pan_x: float = 0.0  # pointer-drag offset in pixels
    pan_y: float = 0.0
    base_color: tuple | str = DEFAULT_COLOR

    def sanitized(self):
        """Return a copy with every field clamped into its valid range."""
        kind = FractalKind(self.kind)

        try:
            depth = int(self.depth)
        except (TypeError, ValueError, OverflowError):
            logger.warning(f"Invalid depth {self.depth!r}, using 0")
            depth = 0
        depth = min(max(depth, 0), kind.max_depth)

        zoom = float(self.zoom)
        if not math.isfinite(zoom) or zoom <= 0:
            logger.warning(f"Zoom must be positive, got {self.zoom}; using {MIN_ZOOM}")
            zoom = MIN_ZOOM
        zoom = max(zoom, MIN_ZOOM)
        if kind.value in ZOOM_LIMITS:
            zoom = min(zoom, ZOOM_LIMITS[kind.value])

        rotation = float(self.rotation)
        rotation = rotation % 360.0 if math.isfinite(rotation) else 0.0
        pan_x = float(self.pan_x) if math.isfinite(float(self.pan_x)) else 0.0
        pan_y = float(self.pan_y) if math.isfinite(float(self.pan_y)) else 0.0

        return replace(
            self,
            kind=kind,
            depth=depth,
            zoom=zoom,
            rotation=rotation,
            pan_x=pan_x,
            pan_y=pan_y,
            base_color=resolve_color(self.base_color),
        )

    @property
    def max_iterations(self):
        """Iteration budget for escape-time kinds, always depth + 1."""
        if not FractalKind(self.kind).is_escape_time:
            return 0
        return int(self.depth) + 1


@dataclass(frozen=True)
class Chunk:
    x: int
    y: int
    width: int
    height: int

    @property
    def slices(self):
        return slice(self.y, self.y + self.height), slice(self.x, self.x + self.width)


@dataclass(eq=False)
class RasterBuffer:
    width: int
    height: int
    pixels: np.ndarray  # (height, width, 4) uint8 RGBA, origin top-left
    complete: bool = False

    @classmethod
    def empty(cls, viewport):
        return cls(viewport.width, viewport.height, np.zeros(viewport.shape + (4,), dtype=np.uint8))

    def write(self, chunk, block):
        self.pixels[chunk.slices] = block

    def view(self):
        view = self.pixels.view()
        view.flags.writeable = False
        return view

    @property
    def data(self):
        return self.pixels.tobytes()


@dataclass(frozen=True, eq=False)
class GeometryPath:
    vertices: np.ndarray  # (n, 2) float64, viewport pixels
    mode: str = "polyline"  # "polyline", "polygon" or "segments"
    level: int = 0
    color: tuple = (0, 0, 0, 255)
    line_width: float = 1.0
    fill_opacity: float = 0.0
    marker_radius: float | None = None

    @property
    def segment_count(self):
        n = len(self.vertices)
        if self.mode == "segments":
            return n // 2
        if self.mode == "polygon":
            return n if n > 2 else max(n - 1, 0)
        return max(n - 1, 0)
