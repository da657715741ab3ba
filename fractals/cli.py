import argparse

from fractals.channel import BACKENDS
from fractals.datatypes import FractalKind
from fractals.settings import RESOLUTION


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Render Mandelbrot, Julia, Koch, Sierpinski and tree fractals to an image.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--load", type=str, metavar="PATH", help="Path to a YAML settings file.", default=None)
    parser.add_argument("--save-settings", type=str, metavar="PATH", help="Write the effective settings to YAML.",
                        default=None)
    parser.add_argument("--kind", choices=[k.value for k in FractalKind], help="Fractal to render.", default=None)
    parser.add_argument("--depth", type=int, help="Recursion depth or iteration count.", default=None)
    parser.add_argument("--zoom", type=float, help="Zoom factor, 1 spans a width of 4 for escape-time kinds.",
                        default=None)
    parser.add_argument("--rotation", type=float, help="Rotation in degrees.", default=None)
    parser.add_argument("--pan", type=float, nargs=2, metavar=("X", "Y"), help="Pan offset in pixels.", default=None)
    parser.add_argument("--color", type=str, help="Base color, e.g. '#3B82F6'.", default=None)
    parser.add_argument("--size", type=int, nargs=2, metavar=("WIDTH", "HEIGHT"), help="Output size in pixels.",
                        default=list(RESOLUTION))
    parser.add_argument("--backend", choices=BACKENDS, help="Where chunks are computed.", default=None)
    parser.add_argument("--progressive", action="store_true",
                        help="Render escape-time kinds chunk by chunk through the scheduler.")
    parser.add_argument("--output", type=str, metavar="PATH", help="Image file to write.", default="fractal.png")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug messages.")
    return parser.parse_args(argv)
