import logging
from dataclasses import replace

import yaml

from fractals.datatypes import FractalKind, FractalParameters, resolve_color
from fractals.settings import DEFAULT_COLOR, EngineSettings

logger = logging.getLogger(__name__)

default_parameters = FractalParameters(kind=FractalKind.MANDELBROT, depth=5, zoom=0.5)


def settings_to_dict(parameters, settings=EngineSettings()):
    """Convert parameters and engine settings to a dictionary for YAML serialization."""
    r, g, b = resolve_color(parameters.base_color)
    return {
        "fractal": {
            "kind": FractalKind(parameters.kind).value,
            "depth": int(parameters.depth),
        },
        "view": {
            "zoom": float(parameters.zoom),
            "rotation": float(parameters.rotation),
            "pan": {
                "x": float(parameters.pan_x),
                "y": float(parameters.pan_y),
            },
        },
        "presentation": {
            "color": f"#{r:02X}{g:02X}{b:02X}",
        },
        "engine": {
            "chunk_size": settings.chunk_size,
            "max_in_flight": settings.max_in_flight,
            "backend": settings.backend,
            "max_workers": settings.max_workers,
            "julia": {
                "re": float(settings.julia_constant[0]),
                "im": float(settings.julia_constant[1]),
            },
        },
    }


def dict_to_settings(settings_dict):
    """Convert a dictionary to (FractalParameters, EngineSettings); missing keys keep their defaults."""
    settings_dict = settings_dict or {}
    fractal = settings_dict.get("fractal", {})
    view = settings_dict.get("view", {})
    pan = view.get("pan", {})
    presentation = settings_dict.get("presentation", {})
    engine = settings_dict.get("engine", {})
    julia = engine.get("julia", {})

    parameters = FractalParameters(
        kind=FractalKind(fractal.get("kind", default_parameters.kind.value)),
        depth=fractal.get("depth", default_parameters.depth),
        zoom=view.get("zoom", default_parameters.zoom),
        rotation=view.get("rotation", default_parameters.rotation),
        pan_x=pan.get("x", 0.0),
        pan_y=pan.get("y", 0.0),
        base_color=presentation.get("color", DEFAULT_COLOR),
    )

    defaults = EngineSettings()
    settings = replace(
        defaults,
        chunk_size=int(engine.get("chunk_size", defaults.chunk_size)),
        max_in_flight=int(engine.get("max_in_flight", defaults.max_in_flight)),
        backend=engine.get("backend", defaults.backend),
        max_workers=engine.get("max_workers", defaults.max_workers),
        julia_constant=(
            float(julia.get("re", defaults.julia_constant[0])),
            float(julia.get("im", defaults.julia_constant[1])),
        ),
    )
    return parameters, settings


def load_settings(path):
    with open(path, "r") as file:
        settings_dict = yaml.safe_load(file)
    logger.info(f"Settings loaded from {path}")
    return dict_to_settings(settings_dict)


def save_settings(path, parameters, settings=EngineSettings()):
    with open(path, "w") as file:
        yaml.dump(settings_to_dict(parameters, settings), file, default_flow_style=False)
    logger.info(f"Settings saved to {path}")
