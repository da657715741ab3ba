import logging
from time import time

import numpy as np
from numba import njit, prange

from fractals.colors import colorize_escape
from fractals.datatypes import Chunk, FractalKind, RasterBuffer
from fractals.parameters import parameters_matrix
from fractals.settings import ESCAPE_RADIUS, default_settings

logger = logging.getLogger(__name__)

ESCAPE_RADIUS_SQUARED = ESCAPE_RADIUS * ESCAPE_RADIUS


@njit(nogil=True)
def iterate(re, im, c_re, c_im, max_iterations):
    """
    Iterate z = z^2 + c from z0 = re + i*im.

    Returns the number of iterations survived before |z| exceeded the escape
    radius, or max_iterations when the point did not escape.
    """
    if max_iterations <= 0:
        return max_iterations
    zr = float(re)
    zi = float(im)
    cr = float(c_re)
    ci = float(c_im)
    n = 0
    while n < max_iterations:
        zr_next = zr * zr - zi * zi + cr
        zi = 2.0 * zr * zi + ci
        zr = zr_next
        if zr * zr + zi * zi > ESCAPE_RADIUS_SQUARED:
            break
        n += 1
    return n


@njit(nogil=True)
def _escape_counts(matrix, x0, y0, width, height, c_re, c_im, julia, max_iterations):
    counts = np.zeros((height, width), dtype=np.int32)
    for i in range(height):
        py = float(y0 + i)
        for j in range(width):
            px = float(x0 + j)
            re = matrix[0, 0] * px + matrix[0, 1] * py + matrix[0, 2]
            im = matrix[1, 0] * px + matrix[1, 1] * py + matrix[1, 2]
            if julia:
                counts[i, j] = iterate(re, im, c_re, c_im, max_iterations)
            else:
                counts[i, j] = iterate(re, im, re, im, max_iterations)
    return counts


@njit(parallel=True)
def compute_fractal(matrix, width, height, c_re, c_im, julia, max_iterations):
    """
    Compute escape counts for a whole frame, rows spread over all cores.
    """
    counts = np.zeros((height, width), dtype=np.int32)

    for i in prange(height):  # parallelized
        py = float(i)
        for j in range(width):
            px = float(j)
            re = matrix[0, 0] * px + matrix[0, 1] * py + matrix[0, 2]
            im = matrix[1, 0] * px + matrix[1, 1] * py + matrix[1, 2]
            if julia:
                counts[i, j] = iterate(re, im, c_re, c_im, max_iterations)
            else:
                counts[i, j] = iterate(re, im, re, im, max_iterations)

    return counts


def _constant(parameters, settings):
    if parameters.kind == FractalKind.JULIA:
        c_re, c_im = settings.julia_constant
        return float(c_re), float(c_im), True
    return 0.0, 0.0, False


def _checked(parameters):
    parameters = parameters.sanitized()
    if not parameters.kind.is_escape_time:
        raise ValueError(f"{parameters.kind.value} is not an escape-time fractal")
    return parameters


def compute_chunk_counts(parameters, viewport, chunk, settings=default_settings):
    """Escape counts for the pixels of one chunk, shape (chunk.height, chunk.width)."""
    parameters = _checked(parameters)
    max_iterations = parameters.max_iterations
    if max_iterations <= 0 or chunk.width <= 0 or chunk.height <= 0:
        return np.zeros((max(chunk.height, 0), max(chunk.width, 0)), dtype=np.int32)

    matrix = np.ascontiguousarray(parameters_matrix(parameters, viewport))
    c_re, c_im, julia = _constant(parameters, settings)
    return _escape_counts(matrix, chunk.x, chunk.y, chunk.width, chunk.height, c_re, c_im, julia, max_iterations)


def render_chunk(parameters, viewport, chunk, settings=default_settings):
    """Colored RGBA samples for one chunk, shape (chunk.height, chunk.width, 4)."""
    parameters = _checked(parameters)
    counts = compute_chunk_counts(parameters, viewport, chunk, settings)
    return colorize_escape(counts, parameters.max_iterations, parameters.base_color, parameters.kind)


def render_escape_time(parameters, viewport, settings=default_settings):
    """One-shot synchronous render of a full frame, e.g. for high resolution export."""
    parameters = _checked(parameters)
    logger.info(f"Rendering {parameters.kind.value} at {viewport.width}x{viewport.height}...")
    start_time = time()

    raster = RasterBuffer.empty(viewport)
    max_iterations = parameters.max_iterations
    if max_iterations > 0 and viewport.width > 0 and viewport.height > 0:
        matrix = np.ascontiguousarray(parameters_matrix(parameters, viewport))
        c_re, c_im, julia = _constant(parameters, settings)
        counts = compute_fractal(matrix, viewport.width, viewport.height, c_re, c_im, julia, max_iterations)
        raster.write(Chunk(0, 0, viewport.width, viewport.height),
                     colorize_escape(counts, max_iterations, parameters.base_color, parameters.kind))
    raster.complete = True

    logger.info(f"Fractal computation completed in {time() - start_time:.2f} seconds.")
    return raster
