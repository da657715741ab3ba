import numpy as np
import pytest

from fractals.colors import (
    NO_DATA,
    PALETTES,
    color_array,
    color_for,
    colorize_escape,
    escape_intensity,
    level_intensity,
)
from fractals.datatypes import FractalKind

BLUE = "#3B82F6"


def test_zero_intensity_is_base_color():
    assert color_for(0.0, BLUE) == (59, 130, 246, 255)


def test_full_intensity_escape_time_is_transparent_black():
    assert color_for(1.0, BLUE, FractalKind.JULIA) == (0, 0, 0, 0)


def test_geometry_palettes_stop_at_floor():
    assert color_for(1.0, (10, 10, 10), FractalKind.KOCH) == (40, 40, 40, 255)
    assert color_for(1.0, (0, 0, 0), FractalKind.TREE) == (20, 20, 20, 255)


@pytest.mark.parametrize("kind", list(PALETTES))
def test_channels_never_increase_with_intensity(kind):
    intensities = np.linspace(0.0, 1.0, 101)
    colors = color_array(intensities, BLUE, kind).astype(int)
    assert np.all(np.diff(colors, axis=0) <= 0)


def test_intensity_is_clamped():
    assert color_for(-3.0, BLUE) == color_for(0.0, BLUE)
    assert color_for(7.5, BLUE) == color_for(1.0, BLUE)
    assert color_for(float("nan"), BLUE) == color_for(1.0, BLUE)


def test_color_for_is_deterministic():
    assert color_for(0.37, BLUE, FractalKind.SIERPINSKI) == color_for(0.37, BLUE, FractalKind.SIERPINSKI)


def test_escape_intensity_saturates():
    intensity = escape_intensity([0, 4, 8, 10], 10)
    assert intensity == pytest.approx([1.0, 0.5, 0.0, 0.0])


def test_colorize_escape_marks_non_escaping_points_as_no_data():
    counts = np.array([[0, 5], [10, 10]])
    colored = colorize_escape(counts, 10, BLUE)

    assert colored.shape == (2, 2, 4)
    assert colored.dtype == np.uint8
    assert tuple(colored[1, 0]) == NO_DATA
    assert tuple(colored[1, 1]) == NO_DATA
    assert tuple(colored[0, 1]) == (37, 81, 154, 202)


@pytest.mark.parametrize("max_iterations", [0, -1, -50])
def test_colorize_without_iterations_is_transparent(max_iterations):
    colored = colorize_escape(np.zeros((3, 5), dtype=np.int32), max_iterations, BLUE)
    assert not colored.any()


def test_colored_points_are_distinguishable_from_no_data():
    colored = colorize_escape(np.array([1, 2, 3]), 4, BLUE)
    assert np.all(colored[:, 3] > 0)


def test_level_intensity():
    assert level_intensity(0, 4) == 0.0
    assert level_intensity(2, 4) == pytest.approx(0.4)
    assert level_intensity(-1, 3) == 0.0
    assert level_intensity(5, 3) == pytest.approx(0.75)
    assert level_intensity(0, -2) == 0.0
