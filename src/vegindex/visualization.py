"""Visualization parameters and colour mapping.

Display ranges are fixed per index rather than stretched per scene, so
the same colour always means the same value across requests.
``colorize`` is the single value-to-colour mapping used for both index
rasters and legend gradients.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

import numpy as np
import numpy.typing as npt
from matplotlib.colors import LinearSegmentedColormap

from vegindex._types import Composite, VisParams
from vegindex.analysis.indices import get_index
from vegindex.config import Config, get_default_config
from vegindex.exceptions import MissingBandError

_RAMP_STEPS = 256


def resolve_vis(name: str) -> VisParams:
    """Return the default display parameters of a registered index.

    Pure lookup: the result never depends on raster content.

    Raises:
        UnknownIndexError: If *name* is not registered.

    Example:
        >>> resolve_vis("NDVI").as_dict()
        {'min': 0.0, 'max': 1.0, 'palette': ['red', 'yellow', 'green']}
    """
    return get_index(name).vis


def rgb_vis(config: Config | None = None) -> dict[str, Any]:
    """Return the true-colour display parameters of the composite."""
    cfg = config if config is not None else get_default_config()
    return {"bands": list(cfg.rgb_bands), "min": cfg.rgb_min, "max": cfg.rgb_max}


@lru_cache(maxsize=64)
def colormap(palette: tuple[str, ...]) -> LinearSegmentedColormap:
    """Build a linear colour ramp with evenly spaced palette stops."""
    colors = list(palette) if len(palette) > 1 else list(palette) * 2
    return LinearSegmentedColormap.from_list("vegindex", colors, N=_RAMP_STEPS)


def normalize(values: npt.ArrayLike, vis: VisParams) -> npt.NDArray[np.float64]:
    """Map values linearly onto [0, 1] over ``[vis.min, vis.max]``, clamped.

    NaN stays NaN.
    """
    arr = np.asarray(values, dtype=np.float64)
    with np.errstate(invalid="ignore"):
        scaled = (arr - vis.min) / (vis.max - vis.min)
    return np.clip(scaled, 0.0, 1.0)


def colorize(values: npt.ArrayLike, vis: VisParams) -> npt.NDArray[np.uint8]:
    """Render values through the display ramp as RGBA bytes.

    Undefined (non-finite) values become fully transparent.

    Args:
        values: Array of index values, any shape.
        vis: Display parameters.

    Returns:
        ``uint8`` array with a trailing RGBA axis.
    """
    scaled = normalize(values, vis)
    defined = np.isfinite(scaled)
    rgba: npt.NDArray[np.uint8] = colormap(tuple(vis.palette))(
        np.where(defined, scaled, 0.0), bytes=True
    )
    rgba[~defined] = 0
    return rgba


def render_rgb(
    composite: Composite,
    config: Config | None = None,
) -> npt.NDArray[np.float64]:
    """Scale the composite's true-colour bands to [0, 1] for display.

    Args:
        composite: Composite holding the configured RGB bands.
        config: Configuration; the module default when ``None``.

    Returns:
        ``(height, width, 3)`` float array, NaN where undefined.

    Raises:
        MissingBandError: If an RGB band is absent.
    """
    cfg = config if config is not None else get_default_config()
    channels = []
    for band in cfg.rgb_bands:
        if band not in composite.bands:
            raise MissingBandError(
                band=band,
                what="Cannot render true-colour composite",
                cause=f"Composite lacks band {band}",
                fix=f"Provide bands {', '.join(cfg.rgb_bands)}",
            )
        channels.append(composite.bands[band])
    stacked = np.stack(channels, axis=-1).astype(np.float64)
    with np.errstate(invalid="ignore"):
        scaled = (stacked - cfg.rgb_min) / (cfg.rgb_max - cfg.rgb_min)
    scaled = np.clip(scaled, 0.0, 1.0)
    scaled[~composite.valid] = np.nan
    return scaled
