"""Top-level request API for vegindex.

``run()`` turns an AOI, a target date and an index name into a
cloud-free composite, an index raster, its display parameters and a
legend.

Example:
    >>> import vegindex as vi
    >>> field = vi.AOI.square(lon=-121.7415, lat=38.5449, size_m=1000)
    >>> result = vi.run(field, "2024-09-01", "NDVI", source=my_source)  # doctest: +SKIP
    >>> result.statistics()["mean"]  # doctest: +SKIP
    0.6
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from vegindex._pipeline import (
    CancelToken,
    _assess_quality,
    _build_metadata,
    _format_bounds,
    _resolve_config,
    _stage,
)
from vegindex._types import MultispectralImage
from vegindex.analysis.compositing import composite as build_composite
from vegindex.analysis.compositing import composite_stats
from vegindex.analysis.indices import evaluate, get_index
from vegindex.aoi import AOIInput, aoi
from vegindex.config import Config
from vegindex.dates import date_window
from vegindex.legend import build_legend
from vegindex.results import IndexResult
from vegindex.sources import BandSource, InMemoryBandSource, acquisition_order
from vegindex.visualization import resolve_vis

logger = logging.getLogger(__name__)


def _resolve_source(
    source: BandSource | Iterable[MultispectralImage],
    config: Config,
) -> BandSource:
    """Wrap a plain image list in an in-memory source.

    Plain lists are assumed to hold Sentinel-2 L2A digital numbers and
    are served with ``config.reflectance_scale``.
    """
    if isinstance(source, BandSource):
        return source
    return InMemoryBandSource(source, scale_factor=config.reflectance_scale)


def run(
    region: AOIInput,
    date: str,
    index: str,
    *,
    source: BandSource | Iterable[MultispectralImage],
    config: Config | None = None,
    cancel: CancelToken | None = None,
    strict: bool = False,
    legend_width: int | None = None,
) -> IndexResult:
    """Compute a spectral index over an AOI around a target date.

    Stages run in order: validate, query, composite, evaluate,
    visualize. The index name is validated before any imagery is
    queried. *cancel* is checked between stages, and the result is only
    assembled once every stage has succeeded, so a failed or cancelled
    request returns nothing partial.

    Args:
        region: AOI polygon (see ``vegindex.aoi.aoi`` for accepted forms).
        date: Target date as ``YYYY-MM-DD``.
        index: Registered index name (e.g. ``"NDVI"``).
        source: Band source to query, or a list of scenes holding
            digital numbers scaled by ``config.reflectance_scale``.
        config: Configuration. When ``None``, the JSON file named by
            ``VEGINDEX_CONFIG`` is loaded if set, else the module default.
        cancel: Optional cancellation token.
        strict: Raise ``DivisionSingularityError`` on zero denominators
            instead of leaving those pixels undefined.
        legend_width: Legend gradient width; ``config.legend_width``
            when ``None``.

    Returns:
        ``IndexResult`` with composite, index raster, display
        parameters, legend and quality summary.

    Raises:
        ConfigurationError: If the ``VEGINDEX_CONFIG`` file is invalid.
        InvalidAOIError: If *region* is degenerate.
        InvalidDateError: If *date* is not a valid ``YYYY-MM-DD`` date.
        UnknownIndexError: If *index* is not registered.
        NoImageryError: If no scene survives the composite filters.
        GridMismatchError: If the scenes do not share one pixel grid.
        MissingBandError: If the composite lacks a required band.
        DivisionSingularityError: If *strict* and a denominator is zero.
        PipelineCancelledError: If *cancel* fired between stages.
    """
    context: dict[str, Any] = {"date": date, "index": index}

    with _stage("validate", cancel, context):
        cfg = _resolve_config(config)
        definition = get_index(index)
        area = aoi(region)
        context["aoi"] = _format_bounds(area.bounds)
        window = date_window(date, months=cfg.window_months)
        band_source = _resolve_source(source, cfg)

    with _stage("query", cancel, context):
        scenes = acquisition_order(band_source.query(area, window))
        logger.debug("%s returned %d scene(s)", band_source.name or "source", len(scenes))

    with _stage("composite", cancel, context):
        comp = build_composite(area, window, scenes, config=cfg)
        logger.debug("Composite: %s", composite_stats(comp))

    with _stage("evaluate", cancel, context):
        raster = evaluate(
            definition.name,
            comp,
            strict=strict,
            tile_rows=cfg.tile_rows,
            max_workers=cfg.max_workers,
        )

    with _stage("visualize", cancel, context):
        vis = resolve_vis(definition.name)
        legend = build_legend(
            definition.legend_title,
            vis,
            width=cfg.legend_width if legend_width is None else legend_width,
        )

    quality = _assess_quality(len(scenes), comp, raster)
    metadata = _build_metadata(
        band_source.name, definition.name, window, area, comp, len(scenes)
    )
    logger.info(
        "%s computed for %s from %d scene(s), coverage %.0f%%",
        definition.name,
        window.center,
        quality.used_count,
        quality.coverage * 100,
    )
    return IndexResult(
        composite=comp,
        raster=raster,
        vis=vis,
        legend=legend,
        metadata=metadata,
        quality=quality,
        warnings=list(quality.warnings),
    )
