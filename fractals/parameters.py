import logging

import numpy as np

from fractals.settings import MIN_ZOOM, PAN_PIXELS_PER_UNIT

logger = logging.getLogger(__name__)

VIEW_WIDTH = 4.0  # fractal-space width spanned by the viewport at zoom 1


def transform_matrix(viewport, zoom=1.0, rotation=0.0, pan_x=0.0, pan_y=0.0):
    """
    Affine matrix mapping homogeneous pixel coordinates to fractal space.

    Order: move the viewport centre to the origin, scale, rotate by -rotation
    degrees, then translate by the pan offset. Pan is a drag distance in
    pixels and the content follows the pointer, so the offset is subtracted.
    """
    if not zoom > 0:
        logger.warning(f"Zoom must be positive, got {zoom}; using {MIN_ZOOM}")
        zoom = MIN_ZOOM

    scale = VIEW_WIDTH / max(viewport.width, 1) / zoom
    theta = np.deg2rad(-rotation)

    center = np.array([
        [1.0, 0.0, -viewport.width / 2],
        [0.0, 1.0, -viewport.height / 2],
        [0.0, 0.0, 1.0],
    ])
    scaling = np.diag([scale, scale, 1.0])
    rotation_matrix = np.array([
        [np.cos(theta), -np.sin(theta), 0.0],
        [np.sin(theta), np.cos(theta), 0.0],
        [0.0, 0.0, 1.0],
    ])
    translation = np.array([
        [1.0, 0.0, -pan_x / PAN_PIXELS_PER_UNIT],
        [0.0, 1.0, -pan_y / PAN_PIXELS_PER_UNIT],
        [0.0, 0.0, 1.0],
    ])
    return translation @ rotation_matrix @ scaling @ center


def to_fractal_space(pixel_x, pixel_y, viewport, zoom=1.0, rotation=0.0, pan_x=0.0, pan_y=0.0):
    matrix = transform_matrix(viewport, zoom, rotation, pan_x, pan_y)
    re, im, _ = matrix @ np.array([pixel_x, pixel_y, 1.0])
    return float(re), float(im)


def to_pixel_space(re, im, viewport, zoom=1.0, rotation=0.0, pan_x=0.0, pan_y=0.0):
    matrix = np.linalg.inv(transform_matrix(viewport, zoom, rotation, pan_x, pan_y))
    x, y, _ = matrix @ np.array([re, im, 1.0])
    return float(x), float(y)


def parameters_matrix(parameters, viewport):
    return transform_matrix(viewport, parameters.zoom, parameters.rotation, parameters.pan_x, parameters.pan_y)


def sample_chunk(matrix, chunk):
    """
    Sample the fractal-space coordinates of every pixel in a chunk.

    Returns two (chunk.height, chunk.width) arrays, real and imaginary parts.
    """
    xs = np.arange(chunk.x, chunk.x + chunk.width, dtype=np.float64)
    ys = np.arange(chunk.y, chunk.y + chunk.height, dtype=np.float64)
    X, Y = np.meshgrid(xs, ys)

    points = np.stack([X.ravel(), Y.ravel(), np.ones(X.size)])  # Shape (3, N)
    mapped = matrix @ points
    return mapped[0].reshape(X.shape), mapped[1].reshape(X.shape)


def rotate_points(points, center, degrees):
    """Rotate (n, 2) pixel-space points about center; positive is clockwise on screen."""
    points = np.asarray(points, dtype=np.float64)
    if degrees == 0 or points.size == 0:
        return points
    theta = np.deg2rad(degrees)
    rotation_matrix = np.array([[np.cos(theta), -np.sin(theta)],
                                [np.sin(theta), np.cos(theta)]])
    center = np.asarray(center, dtype=np.float64)
    return (points - center) @ rotation_matrix.T + center
