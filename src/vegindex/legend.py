"""Legend generation for index rasters."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from vegindex._types import VisParams
from vegindex.config import get_default_config
from vegindex.visualization import colorize


def format_bound(value: float) -> str:
    """Format a range bound exactly, dropping a trailing ``.0``.

    Example:
        >>> [format_bound(v) for v in (0.0, 0.2, -0.8, 10.0)]
        ['0', '0.2', '-0.8', '10']
    """
    text = repr(float(value))
    if text.endswith(".0"):
        text = text[:-2]
    return "0" if text == "-0" else text


@dataclass(frozen=True)
class LegendSpec:
    """A colour-bar legend for one index raster.

    Args:
        title: Legend title (e.g. ``"NDVI Scale"``).
        gradient: ``(1, width)`` array of values from ``vis.min`` to ``vis.max``.
        palette: Colour ramp shared with the index raster.
        min_label: Exact lower bound label.
        max_label: Exact upper bound label.
        vis: Display parameters the gradient is rendered with.
    """

    title: str
    gradient: npt.NDArray[np.float64]
    palette: tuple[str, ...]
    min_label: str
    max_label: str
    vis: VisParams

    @property
    def width(self) -> int:
        """Gradient width in pixels."""
        return int(self.gradient.shape[1])

    def render(self) -> npt.NDArray[np.uint8]:
        """Render the gradient to ``(1, width, 4)`` RGBA bytes."""
        return colorize(self.gradient, self.vis)


def build_legend(
    title: str,
    vis: VisParams,
    width: int | None = None,
) -> LegendSpec:
    """Build a gradient legend for *vis*.

    Column ``i`` holds ``min + (max - min) * i / (width - 1)``, so the
    first and last columns hit the bounds exactly.

    Args:
        title: Legend title.
        vis: Display parameters of the raster being described.
        width: Gradient width in pixels; ``Config.legend_width`` when
            ``None``.

    Returns:
        A new ``LegendSpec``.

    Raises:
        ValueError: If *width* is lower than 2.

    Example:
        >>> vis = VisParams(min=0, max=1, palette=["red", "green"])
        >>> build_legend("NDVI Scale", vis, width=5).gradient.tolist()
        [[0.0, 0.25, 0.5, 0.75, 1.0]]
    """
    columns = get_default_config().legend_width if width is None else width
    if columns < 2:
        msg = f"Legend width must be at least 2 pixels, got {columns}"
        raise ValueError(msg)
    steps = np.arange(columns, dtype=np.float64) / (columns - 1)
    gradient = (vis.min + (vis.max - vis.min) * steps).reshape(1, columns)
    # Pin the end columns; min + (max - min) can round away from max.
    gradient[0, 0] = vis.min
    gradient[0, -1] = vis.max
    return LegendSpec(
        title=title,
        gradient=gradient,
        palette=tuple(vis.palette),
        min_label=format_bound(vis.min),
        max_label=format_bound(vis.max),
        vis=vis,
    )
