from dataclasses import dataclass, field

RESOLUTION = (900, 600)
DEFAULT_COLOR = "#3B82F6"

CHUNK_SIZE = 32  # square chunk edge in pixels
MAX_IN_FLIGHT = 4  # chunks submitted ahead when a compute channel is used

ESCAPE_RADIUS = 2.0
JULIA_CONSTANT = (-0.4, 0.6)
# fraction of max_iterations at which an escaping point reaches full brightness
COLOR_SATURATION = 0.8

PAN_PIXELS_PER_UNIT = 200.0
MIN_ZOOM = 0.1

DEPTH_LIMITS = {
    "mandelbrot": 200,
    "julia": 200,
    "koch": 10,
    "sierpinski": 7,
    "tree": 20,
}

# geometry kinds only; escape-time zoom is bounded by float precision alone
ZOOM_LIMITS = {
    "koch": 6.0,
    "sierpinski": 3.0,
    "tree": 2.0,
}


@dataclass(frozen=True)
class GeometryConfig:
    koch_side: float = 280.0
    koch_dot_radius: float = 4.0
    sierpinski_side: float = 300.0
    sierpinski_fill_opacity: float = 0.7
    tree_length: float = 120.0
    tree_base_margin: float = 50.0
    tree_heading: float = -90.0
    tree_spread: float = 25.0
    tree_shrink: float = 0.75
    leaf_min_length: float = 5.0


@dataclass(frozen=True)
class EngineSettings:
    chunk_size: int = CHUNK_SIZE
    max_in_flight: int = MAX_IN_FLIGHT
    julia_constant: tuple = JULIA_CONSTANT
    backend: str = "thread"
    max_workers: int | None = None
    geometry: GeometryConfig = field(default_factory=GeometryConfig)


default_settings = EngineSettings()
