"""Spectral index registry and evaluator.

Each index is a data record: required bands, a pure per-pixel formula
over reflectance arrays, and default display parameters. The registry
is built once at import and exposed read-only.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

import numpy as np
import numpy.typing as npt

from vegindex._types import Composite, IndexRaster, VisParams
from vegindex.exceptions import (
    DivisionSingularityError,
    MissingBandError,
    UnknownIndexError,
)

logger = logging.getLogger(__name__)

FloatArray = npt.NDArray[np.float64]
Bands = Mapping[str, FloatArray]
Divide = Callable[[Any, FloatArray], FloatArray]

SAVI_L = 0.428
"""Soil brightness correction factor used by SAVI."""


def safe_divide(
    numerator: FloatArray | float,
    denominator: FloatArray,
) -> FloatArray:
    """Divide elementwise, yielding NaN where the denominator is exactly 0.

    Example:
        >>> safe_divide(np.array([1.0, 1.0]), np.array([2.0, 0.0])).tolist()
        [0.5, nan]
    """
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        result: FloatArray = np.where(
            denominator == 0.0,
            np.nan,
            np.divide(numerator, denominator),
        )
    return result


class ZeroDenominators:
    """Division helper that records where a denominator was exactly 0.

    Passed to formulas in place of ``safe_divide``; after evaluation,
    ``mask`` holds every pixel where any division hit a zero denominator.

    Args:
        shape: Shape of the evaluated block.

    Example:
        >>> divide = ZeroDenominators((1, 2))
        >>> divide(1.0, np.array([[2.0, 0.0]])).tolist()
        [[0.5, nan]]
        >>> divide.mask.tolist()
        [[False, True]]
    """

    def __init__(self, shape: tuple[int, ...]) -> None:
        self.mask: npt.NDArray[np.bool_] = np.zeros(shape, dtype=bool)

    def __call__(self, numerator: FloatArray | float, denominator: FloatArray) -> FloatArray:
        self.mask |= np.broadcast_to(np.asarray(denominator) == 0.0, self.mask.shape)
        return safe_divide(numerator, denominator)


Formula = Callable[[Bands, Divide], FloatArray]


def normalized_difference(a: str, b: str) -> Formula:
    """Build the ``(a - b) / (a + b)`` formula for two bands."""

    def formula(bands: Bands, divide: Divide = safe_divide) -> FloatArray:
        return divide(bands[a] - bands[b], bands[a] + bands[b])

    formula.__name__ = f"nd_{a}_{b}"
    return formula


def _ari(b: Bands, divide: Divide = safe_divide) -> FloatArray:
    return divide(1.0, b["B3"]) - divide(1.0, b["B5"])


def _mari(b: Bands, divide: Divide = safe_divide) -> FloatArray:
    return _ari(b, divide) * b["B7"]


def _chl_red_edge(b: Bands, divide: Divide = safe_divide) -> FloatArray:
    return divide(b["B7"], b["B5"]) - 1.0


def _evi(b: Bands, divide: Divide = safe_divide) -> FloatArray:
    # No clamping: EVI can leave [-1, 1] over bright or dark targets.
    return 2.5 * divide(
        b["B8"] - b["B4"],
        b["B8"] + 6.0 * b["B4"] - 7.5 * b["B2"] + 1.0,
    )


def _mcari(b: Bands, divide: Divide = safe_divide) -> FloatArray:
    return ((b["B5"] - b["B4"]) - 0.2 * (b["B5"] - b["B3"])) * divide(b["B5"], b["B4"])


def _msi(b: Bands, divide: Divide = safe_divide) -> FloatArray:
    return divide(b["B11"], b["B8"])


def _pssrb1(b: Bands, divide: Divide = safe_divide) -> FloatArray:
    return divide(b["B8"], b["B4"])


def _savi(b: Bands, divide: Divide = safe_divide) -> FloatArray:
    return divide(b["B8"] - b["B4"], b["B8"] + b["B4"] + SAVI_L) * (1.0 + SAVI_L)


def _sipi(b: Bands, divide: Divide = safe_divide) -> FloatArray:
    return divide(b["B8"] - b["B1"], b["B8"] - b["B4"])


@dataclass(frozen=True)
class IndexDefinition:
    """A registered spectral index.

    Args:
        name: Registry key (e.g. ``"NDVI"``).
        label: Human-readable long name.
        bands: Bands the formula reads.
        formula: Pure function from band arrays to index values.
        vis: Default display parameters.
        legend_title: Title used for the legend.
    """

    name: str
    label: str
    bands: frozenset[str]
    formula: Formula
    vis: VisParams
    legend_title: str

    def __call__(self, bands: Bands, divide: Divide = safe_divide) -> FloatArray:
        return self.formula(bands, divide)


def _define(
    name: str,
    label: str,
    bands: tuple[str, ...],
    formula: Formula,
    vmin: float,
    vmax: float,
    palette: tuple[str, ...],
    legend_title: str | None = None,
) -> IndexDefinition:
    return IndexDefinition(
        name=name,
        label=label,
        bands=frozenset(bands),
        formula=formula,
        vis=VisParams(min=vmin, max=vmax, palette=palette),
        legend_title=legend_title or f"{name} Scale",
    )


_SAVI_PALETTE = (
    "#0c0c0c", "#bfbfbf", "#dbdbdb", "#eaeaea", "#fff9cc", "#ede8b5", "#ddd89b",
    "#ccc682", "#bcb76b", "#afc160", "#a3cc59", "#91bf51", "#7fb247", "#70a33f",
    "#609635", "#4f892d", "#3f7c23", "#306d1c", "#216011", "#0f540a", "#004400",
)  # fmt: skip

_DEFINITIONS: tuple[IndexDefinition, ...] = (
    _define(
        "NDVI", "Normalized Difference Vegetation Index",
        ("B8", "B4"), normalized_difference("B8", "B4"),
        0.0, 1.0, ("red", "yellow", "green"),
    ),
    _define(
        "ARI", "Anthocyanin Reflectance Index",
        ("B3", "B5"), _ari,
        4.0, 8.0, ("red", "yellow", "lime", "cyan", "blue"),
    ),
    _define(
        "mARI", "Modified Anthocyanin Reflectance Index",
        ("B3", "B5", "B7"), _mari,
        0.0, 2.0, ("red", "orange", "pink", "violet", "purple"),
    ),
    _define(
        "CHL-RED-EDGE", "Chlorophyll Red-Edge",
        ("B7", "B5"), _chl_red_edge,
        0.0, 2.0, ("white", "red", "orange", "yellow", "green", "black"),
    ),
    _define(
        "EVI", "Enhanced Vegetation Index",
        ("B8", "B4", "B2"), _evi,
        -1.0, 1.0, ("blue", "lightgreen", "darkgreen"),
    ),
    _define(
        "GNDVI", "Green Normalized Difference Vegetation Index",
        ("B8", "B3"), normalized_difference("B8", "B3"),
        0.0, 1.0, ("white", "green"),
    ),
    _define(
        "MCARI", "Modified Chlorophyll Absorption in Reflectance Index",
        ("B5", "B4", "B3"), _mcari,
        0.0, 0.2, ("purple", "magenta", "cyan"),
    ),
    _define(
        "MSI", "Moisture Stress Index",
        ("B11", "B8"), _msi,
        0.4, 2.0, ("blue", "cyan", "lime", "yellow", "red"),
    ),
    _define(
        "NDMI", "Normalized Difference Moisture Index",
        ("B8A", "B11"), normalized_difference("B8A", "B11"),
        -0.8, 0.8, ("#800000", "#ff0000", "#ffff00", "#00ffff", "#0000ff", "#000080"),
    ),
    _define(
        "NDWI", "Normalized Difference Water Index",
        ("B3", "B8"), normalized_difference("B3", "B8"),
        -0.8, 0.8, ("#008000", "#FFFFFF", "#0000CC"),
    ),
    _define(
        "NDMI_MoistureStress", "Normalized Difference Moisture Index for Moisture Stress",
        ("B8", "B11"), normalized_difference("B8", "B11"),
        -0.8, 0.8, ("#FFFFFF", "#00CCCC", "#007FFF", "#0000B3"),
        legend_title="NDMI for Moisture Stress Scale",
    ),
    _define(
        "NDCI", "Normalized Difference Chlorophyll Index",
        ("B5", "B4"), normalized_difference("B5", "B4"),
        -0.2, 0.4, ("#313695", "#e0f3f8", "#fdae61", "#a50026"),
    ),
    _define(
        "PSSRb1", "Pigment Specific Simple Ratio for Chlorophyll B",
        ("B8", "B4"), _pssrb1,
        0.0, 10.0, ("#FFFFFF", "#66CCFF", "#0000FF"),
    ),
    _define(
        "SAVI", "Soil Adjusted Vegetation Index",
        ("B8", "B4"), _savi,
        -0.5, 1.0, _SAVI_PALETTE,
    ),
    _define(
        "SIPI", "Structure Insensitive Pigment Index",
        ("B8", "B1", "B4"), _sipi,
        0.5, 5.0, ("#000000", "#008000", "#00FF00", "#FFFF00", "#CCCCCC", "#FFFFFF"),
    ),
)  # fmt: skip

REGISTRY: Mapping[str, IndexDefinition] = MappingProxyType(
    {d.name: d for d in _DEFINITIONS}
)
"""Read-only mapping of index name to definition."""

_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        **{name.casefold(): name for name in REGISTRY},
        "ndmistress": "NDMI_MoistureStress",
    }
)


def available_indices() -> list[str]:
    """Return registered index names in registration order."""
    return list(REGISTRY)


def get_index(name: str) -> IndexDefinition:
    """Look up an index definition.

    Exact names match first; otherwise matching is case-insensitive.

    Args:
        name: Index name such as ``"NDVI"`` or ``"mari"``.

    Returns:
        The registered ``IndexDefinition``.

    Raises:
        UnknownIndexError: If *name* is not registered.
    """
    if name in REGISTRY:
        return REGISTRY[name]
    key = _ALIASES.get(str(name).strip().casefold())
    if key is None:
        raise UnknownIndexError(
            name=name,
            cause=f"Registered indices: {', '.join(REGISTRY)}",
            fix="Choose one of the registered index names",
        )
    return REGISTRY[key]


def _row_blocks(height: int, tile_rows: int | None) -> list[tuple[int, int]]:
    """Split ``range(height)`` into ``(start, stop)`` row blocks."""
    if tile_rows is None or tile_rows >= height:
        return [(0, height)]
    return [(start, min(start + tile_rows, height)) for start in range(0, height, tile_rows)]


def _evaluate_block(
    definition: IndexDefinition,
    composite: Composite,
    rows: tuple[int, int],
) -> tuple[FloatArray, npt.NDArray[np.bool_], npt.NDArray[np.bool_]]:
    """Evaluate *definition* over one row block of *composite*."""
    start, stop = rows
    inputs = {name: composite.bands[name][start:stop] for name in definition.bands}
    inputs_ok = composite.valid[start:stop].copy()
    for values in inputs.values():
        inputs_ok &= np.isfinite(values)

    zero_denominators = ZeroDenominators(inputs_ok.shape)
    with np.errstate(all="ignore"):
        out = np.asarray(definition(inputs, zero_denominators), dtype=np.float64)

    # Overflow and other non-finite results are undefined but not singular.
    valid = inputs_ok & np.isfinite(out)
    singular = inputs_ok & zero_denominators.mask
    data: FloatArray = np.where(valid, out, np.nan)
    return data, valid, singular


def evaluate(
    name: str,
    composite: Composite,
    *,
    strict: bool = False,
    tile_rows: int | None = None,
    max_workers: int | None = None,
) -> IndexRaster:
    """Evaluate a registered index over a composite.

    Pixels are undefined (NaN, ``valid=False``) where the composite has
    no data, any formula denominator is exactly zero, or the result is
    otherwise non-finite (e.g. overflow). Only zero-denominator pixels
    are flagged in ``IndexRaster.singular``.

    Row blocks are independent; with *max_workers* they run on a thread
    pool and are stitched back in row order, so the output does not
    depend on scheduling.

    Args:
        name: Registered index name.
        composite: Composite holding at least the required bands.
        strict: Raise instead of flagging zero-denominator pixels.
        tile_rows: Rows per block. ``None`` evaluates in one block.
        max_workers: Worker threads for tiled evaluation.

    Returns:
        The index raster.

    Raises:
        UnknownIndexError: If *name* is not registered.
        MissingBandError: If *composite* lacks a required band.
        DivisionSingularityError: If *strict* and any denominator is zero.

    Example:
        >>> raster = evaluate("NDVI", composite)  # doctest: +SKIP
        >>> float(np.nanmean(raster.data))  # doctest: +SKIP
        0.6
    """
    definition = get_index(name)
    missing = sorted(definition.bands - set(composite.bands))
    if missing:
        raise MissingBandError(
            band=missing[0],
            what=f"Cannot evaluate {definition.name}",
            cause=f"Composite lacks band(s): {', '.join(missing)}",
            fix=f"Provide bands {', '.join(sorted(definition.bands))}",
            index=definition.name,
        )

    blocks = _row_blocks(composite.shape[0], tile_rows)
    if max_workers is not None and max_workers > 1 and len(blocks) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            parts = list(
                pool.map(lambda rows: _evaluate_block(definition, composite, rows), blocks)
            )
    else:
        parts = [_evaluate_block(definition, composite, rows) for rows in blocks]

    data = np.concatenate([p[0] for p in parts], axis=0)
    valid = np.concatenate([p[1] for p in parts], axis=0)
    singular = np.concatenate([p[2] for p in parts], axis=0)

    raster = IndexRaster(name=definition.name, data=data, valid=valid, singular=singular)
    if raster.singular_count:
        logger.debug(
            "%s: %d pixel(s) undefined by a zero denominator",
            definition.name,
            raster.singular_count,
        )
        if strict:
            raise DivisionSingularityError(
                count=raster.singular_count,
                what=f"{definition.name} has a zero denominator at "
                f"{raster.singular_count} pixel(s)",
                fix="Evaluate without strict=True to leave those pixels undefined",
                index=definition.name,
            )
    return raster


def describe(name: str) -> dict[str, Any]:
    """Return a JSON-friendly description of a registered index."""
    definition = get_index(name)
    return {
        "name": definition.name,
        "label": definition.label,
        "bands": sorted(definition.bands),
        "vis": definition.vis.as_dict(),
        "legend_title": definition.legend_title,
    }
