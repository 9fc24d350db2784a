"""Pipeline helpers for request orchestration.

Stage bookkeeping (cancellation checks and error context), quality
assessment and metadata assembly used by ``vegindex.api.run``.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from typing import Any

from vegindex._types import Composite, IndexRaster, QualityAssessment
from vegindex.aoi import AOI
from vegindex.config import Config, get_default_config, load_config, resolve_config_path
from vegindex.dates import DateWindow
from vegindex.exceptions import PipelineCancelledError, VegIndexError
from vegindex.results import ResultMetadata

logger = logging.getLogger(__name__)

# Coverage below this fraction of the AOI triggers a warning.
_LOW_COVERAGE: float = 0.8


class CancelToken:
    """Cooperative cancellation flag shared between caller and pipeline.

    The pipeline checks the token between stages; a stage that already
    started runs to completion. Thread-safe.

    Example:
        >>> token = CancelToken()
        >>> token.cancel()
        >>> token.cancelled
        True
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """Whether cancellation was requested."""
        return self._event.is_set()

    def check(self, stage: str) -> None:
        """Raise ``PipelineCancelledError`` if cancellation was requested.

        Args:
            stage: Name of the stage about to run.
        """
        if self._event.is_set():
            raise PipelineCancelledError(stage=stage)


@contextmanager
def _stage(
    name: str,
    cancel: CancelToken | None,
    context: MutableMapping[str, Any],
) -> Iterator[None]:
    """Run one pipeline stage.

    Checks *cancel* before the stage body and attaches the request
    *context* to any ``VegIndexError`` raised inside it.
    """
    try:
        if cancel is not None:
            cancel.check(name)
        logger.debug("Stage %s started", name)
        yield
    except VegIndexError as exc:
        exc.add_context(**context)
        raise


def _resolve_config(config: Config | None) -> Config:
    """Pick the configuration for one request.

    Resolution order:
        1. *config* argument (highest priority)
        2. JSON file named by the ``VEGINDEX_CONFIG`` environment variable
        3. Module-level default managed by ``configure()``

    Raises:
        ConfigurationError: If the configured file cannot be loaded.
    """
    if config is not None:
        return config
    config_path = resolve_config_path()
    if config_path is not None:
        return load_config(config_path)
    return get_default_config()


def _format_bounds(bounds: tuple[float, float, float, float]) -> str:
    """Render a bounding box compactly for error context."""
    return "(" + ", ".join(f"{v:.5f}" for v in bounds) + ")"


def _assess_quality(
    observation_count: int,
    composite: Composite,
    raster: IndexRaster,
) -> QualityAssessment:
    """Summarize scene usage and AOI coverage of a finished request.

    Args:
        observation_count: Scenes returned by the band source.
        composite: The merged composite.
        raster: The evaluated index raster.

    Returns:
        ``QualityAssessment`` with human-readable warnings for partial
        coverage, unused scenes and zero-denominator pixels.
    """
    used_count = len(composite.source_ids)
    coverage = composite.coverage
    warnings: list[str] = []

    if coverage == 0.0:
        warnings.append("No cloud-free pixels inside the AOI")
    elif coverage < _LOW_COVERAGE:
        warnings.append(f"Only {coverage:.0%} of AOI pixels have cloud-free data")

    unused = observation_count - used_count
    if unused > 0:
        warnings.append(
            f"{unused} of {observation_count} scenes not used "
            f"(filtered, cloudy, or fully covered by earlier scenes)"
        )

    if raster.singular_count:
        warnings.append(
            f"{raster.singular_count} pixel(s) undefined by a zero denominator"
        )

    if coverage < _LOW_COVERAGE:
        logger.warning("Low AOI coverage for %s: %.0f%%", raster.name, coverage * 100)

    return QualityAssessment(
        observation_count=observation_count,
        used_count=used_count,
        coverage=coverage,
        singular_count=raster.singular_count,
        warnings=warnings,
    )


def _build_metadata(
    source_name: str,
    index_name: str,
    window: DateWindow,
    region: AOI,
    composite: Composite,
    observation_count: int,
) -> ResultMetadata:
    """Assemble ``ResultMetadata`` for a finished request."""
    minx, miny, maxx, maxy = region.bounds
    return ResultMetadata(
        source=source_name,
        index=index_name,
        date=window.center.isoformat(),
        window_start=window.start.isoformat(),
        window_end=window.end.isoformat(),
        timestamps=[d.isoformat() for d in composite.source_dates],
        scene_ids=list(composite.source_ids),
        observation_count=observation_count,
        bounds={"minx": minx, "miny": miny, "maxx": maxx, "maxy": maxy},
    )
