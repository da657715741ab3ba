"""
Recursive geometry fractals: Koch snowflake, Sierpinski triangle and a binary tree.

Every generator works in viewport pixel coordinates (origin top-left, y down),
clamps its depth to the kind's bound and returns a fresh list of GeometryPath.
"""
import logging

import numpy as np

from fractals.colors import color_for, level_intensity
from fractals.datatypes import FractalKind, GeometryPath
from fractals.parameters import rotate_points
from fractals.settings import GeometryConfig

logger = logging.getLogger(__name__)

SQRT3 = np.sqrt(3.0)


def _depth(depth, kind):
    return min(max(int(depth), 0), kind.max_depth)


def _frozen(points):
    points = np.array(points, dtype=np.float64).reshape(-1, 2)
    points.flags.writeable = False
    return points


def _origin(viewport, parameters):
    return np.array([viewport.width / 2 + parameters.pan_x, viewport.height / 2 + parameters.pan_y])


def koch_curve(p1, p2, depth):
    """
    Vertices of a Koch curve from p1 to p2.

    Each refinement replaces every segment by four, raising an equilateral
    spike on the middle third. The spike is turned +60 degrees from the
    direction of travel, which is outward for triangles whose corners go
    top, bottom-left, bottom-right on a y-down screen.
    """
    points = np.array([p1, p2], dtype=np.float64)
    for _ in range(max(int(depth), 0)):
        start = points[:-1]
        delta = points[1:] - start
        first = start + delta / 3
        second = start + 2 * delta / 3
        angle = np.arctan2(delta[:, 1], delta[:, 0]) + np.pi / 3
        length = np.hypot(delta[:, 0], delta[:, 1]) / 3
        peak = first + length[:, None] * np.stack([np.cos(angle), np.sin(angle)], axis=1)

        refined = np.empty((4 * len(start) + 1, 2))
        refined[0:-1:4] = start
        refined[1::4] = first
        refined[2::4] = peak
        refined[3::4] = second
        refined[-1] = points[-1]
        points = refined
    return points


def koch_snowflake(parameters, viewport, config=GeometryConfig()):
    depth = _depth(parameters.depth, FractalKind.KOCH)
    center = _origin(viewport, parameters)
    color = color_for(level_intensity(depth, depth), parameters.base_color, FractalKind.KOCH)

    if depth == 0:
        return [GeometryPath(_frozen(center), "polyline", 0, color, 0.0, marker_radius=config.koch_dot_radius)]

    side = config.koch_side * parameters.zoom
    radius = side / SQRT3
    corners = np.array([
        [center[0], center[1] - radius],
        [center[0] - side / 2, center[1] + radius / 2],
        [center[0] + side / 2, center[1] + radius / 2],
    ])
    line_width = 4.0 if depth == 1 else max(0.5, 6 - depth * 0.6)

    paths = []
    for i in range(3):
        curve = koch_curve(corners[i], corners[(i + 1) % 3], depth - 1)
        curve = rotate_points(curve, center, parameters.rotation)
        paths.append(GeometryPath(_frozen(curve), "polyline", depth, color, line_width))
    return paths


def _subdivide(triangle, depth, out):
    if depth <= 0:
        out.append(triangle)
        return
    v0, v1, v2 = triangle
    m01 = (v0 + v1) / 2
    m12 = (v1 + v2) / 2
    m20 = (v2 + v0) / 2
    # the centre triangle (m01, m12, m20) is the gap and is never visited
    _subdivide(np.array([v0, m01, m20]), depth - 1, out)
    _subdivide(np.array([m01, v1, m12]), depth - 1, out)
    _subdivide(np.array([m20, m12, v2]), depth - 1, out)


def sierpinski_triangles(parameters, viewport, config=GeometryConfig()):
    depth = _depth(parameters.depth, FractalKind.SIERPINSKI)
    center = _origin(viewport, parameters)
    side = config.sierpinski_side * parameters.zoom
    height = side * SQRT3 / 2
    base = np.array([
        [center[0], center[1] - height / 2],
        [center[0] - side / 2, center[1] + height / 2],
        [center[0] + side / 2, center[1] + height / 2],
    ])

    triangles = []
    _subdivide(base, depth, triangles)

    color = color_for(level_intensity(depth, depth), parameters.base_color, FractalKind.SIERPINSKI)
    return [
        GeometryPath(
            _frozen(rotate_points(triangle, center, parameters.rotation)),
            "polygon",
            depth,
            color,
            1.0,
            fill_opacity=config.sierpinski_fill_opacity,
        )
        for triangle in triangles
    ]


def tree_branches(parameters, viewport, config=GeometryConfig()):
    """
    Binary tree grown level by level: every branch forks into two children
    turned by +/- the spread angle and shortened by the shrink factor.

    One "segments" path per level, so a depth d tree has d + 1 paths and
    2^(d+1) - 1 segments.
    """
    depth = _depth(parameters.depth, FractalKind.TREE)
    starts = np.array([[viewport.width / 2 + parameters.pan_x,
                        viewport.height - config.tree_base_margin + parameters.pan_y]])
    headings = np.array([config.tree_heading + parameters.rotation])
    length = config.tree_length * parameters.zoom

    paths = []
    for level in range(depth + 1):
        radians = np.deg2rad(headings)
        ends = starts + length * np.stack([np.cos(radians), np.sin(radians)], axis=1)

        vertices = np.empty((2 * len(starts), 2))
        vertices[0::2] = starts
        vertices[1::2] = ends

        marker = None
        if level == depth and length > config.leaf_min_length:
            marker = max(1.0, length * 0.03)
        color = color_for(level_intensity(level, depth), parameters.base_color, FractalKind.TREE)
        paths.append(GeometryPath(_frozen(vertices), "segments", level, color, max(0.5, length * 0.08),
                                  marker_radius=marker))

        starts = np.repeat(ends, 2, axis=0)
        headings = np.stack([headings - config.tree_spread, headings + config.tree_spread], axis=1).ravel()
        length *= config.tree_shrink
    return paths


GENERATORS = {
    FractalKind.KOCH: koch_snowflake,
    FractalKind.SIERPINSKI: sierpinski_triangles,
    FractalKind.TREE: tree_branches,
}


def generate_paths(parameters, viewport, config=GeometryConfig()):
    """Generate the path list for a recursive geometry fractal."""
    parameters = parameters.sanitized()
    if parameters.kind not in GENERATORS:
        raise ValueError(f"{parameters.kind.value} is not a geometry fractal")

    paths = GENERATORS[parameters.kind](parameters, viewport, config)
    logger.debug(f"Generated {sum(p.segment_count for p in paths)} segments for {parameters.kind.value} "
                 f"at depth {parameters.depth}")
    return paths
