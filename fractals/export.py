import logging

import numpy as np
from PIL import Image, ImageDraw

from fractals.fractal import render_escape_time
from fractals.geometry import generate_paths
from fractals.settings import default_settings

logger = logging.getLogger(__name__)


def raster_to_image(raster):
    """Wrap a raster in an RGBA Pillow image."""
    if raster.width == 0 or raster.height == 0:
        return Image.new("RGBA", (max(raster.width, 1), max(raster.height, 1)), (0, 0, 0, 0))
    return Image.fromarray(np.ascontiguousarray(raster.pixels))


def _width(line_width):
    return max(1, int(round(line_width)))


def _points(vertices):
    return [tuple(v) for v in np.asarray(vertices, dtype=np.float64)]


def _dot(draw, center, radius, fill):
    x, y = center
    draw.ellipse([x - radius, y - radius, x + radius, y + radius], fill=fill)


def paths_to_image(paths, viewport):
    """Rasterize a geometry path list onto a transparent RGBA image."""
    image = Image.new("RGBA", (max(viewport.width, 1), max(viewport.height, 1)), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image, "RGBA")

    for path in paths:
        color = tuple(int(c) for c in path.color)
        points = _points(path.vertices)
        if path.mode == "polygon":
            if path.fill_opacity > 0:
                fill = color[:3] + (int(round(color[3] * path.fill_opacity)),)
                draw.polygon(points, fill=fill)
            draw.line(points + points[:1], fill=color, width=_width(path.line_width))
        elif path.mode == "segments":
            for start, end in zip(points[0::2], points[1::2]):
                draw.line([start, end], fill=color, width=_width(path.line_width))
        elif len(points) > 1:
            draw.line(points, fill=color, width=_width(path.line_width), joint="curve")

        if path.marker_radius is not None:
            # leaves and the depth 0 Koch dot; markers sit on segment ends
            ends = points[1::2] if path.mode == "segments" else points[:1]
            alpha = 255 if path.mode != "segments" else int(round(color[3] * 0.7))
            for end in ends:
                _dot(draw, end, path.marker_radius, color[:3] + (alpha,))

    return image


def render_image(parameters, viewport, settings=default_settings):
    """One-shot synchronous render of any fractal kind to a Pillow image."""
    parameters = parameters.sanitized()
    logger.info(f"Exporting {parameters.kind.value} at {viewport.width}x{viewport.height}...")
    if parameters.kind.is_escape_time:
        return raster_to_image(render_escape_time(parameters, viewport, settings))
    return paths_to_image(generate_paths(parameters, viewport, settings.geometry), viewport)
