import sys
import logging
from dataclasses import replace

from fractals.channel import get_channel, shutdown_channel
from fractals.cli import parse_args
from fractals.datatypes import FractalKind, Viewport
from fractals.export import raster_to_image, render_image
from fractals.scheduler import RenderScheduler
from fractals.settings import EngineSettings
from fractals.utils import default_parameters, load_settings, save_settings

LOG_FILE = "log.txt"


def setup_logging(verbose=False):
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger()
    logger.setLevel(level)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
    console_handler.setFormatter(console_formatter)
    file_handler = logging.FileHandler(LOG_FILE)
    file_handler.setLevel(level)
    file_formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
    file_handler.setFormatter(file_formatter)
    logger.addHandler(console_handler)
    logger.addHandler(file_handler)


def build_parameters(args):
    if args.load:
        parameters, settings = load_settings(args.load)
    else:
        parameters, settings = default_parameters, EngineSettings()

    overrides = {}
    if args.kind is not None:
        overrides["kind"] = FractalKind(args.kind)
    if args.depth is not None:
        overrides["depth"] = args.depth
    if args.zoom is not None:
        overrides["zoom"] = args.zoom
    if args.rotation is not None:
        overrides["rotation"] = args.rotation
    if args.pan is not None:
        overrides["pan_x"], overrides["pan_y"] = args.pan
    if args.color is not None:
        overrides["base_color"] = args.color
    parameters = replace(parameters, **overrides).sanitized()

    if args.backend is not None:
        settings = replace(settings, backend=args.backend)
    return parameters, settings


def render_progressive(parameters, viewport, settings):
    """Render chunk by chunk, the way an interactive host would drive the scheduler."""

    def on_progress(job, chunk):
        logging.debug(f"Chunk at ({chunk.x}, {chunk.y}) done, {job.progress:.0%}")

    channel = get_channel(settings)
    try:
        scheduler = RenderScheduler(settings, channel)
        scheduler.start(parameters, viewport, on_progress=on_progress)
        scheduler.run()
        return raster_to_image(scheduler.completed_raster())
    finally:
        shutdown_channel()


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.verbose)

    parameters, settings = build_parameters(args)
    viewport = Viewport(*args.size)
    logging.info(f"Rendering {parameters.kind.value} at depth {parameters.depth}, zoom {parameters.zoom}...")

    if args.progressive and parameters.kind.is_escape_time:
        image = render_progressive(parameters, viewport, settings)
    else:
        image = render_image(parameters, viewport, settings)

    image.save(args.output)
    logging.info(f"Fractal successfully exported to {args.output}.")

    if args.save_settings:
        save_settings(args.save_settings, parameters, settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())
