"""Internal shared types for cross-boundary data contracts.

These types define the raster shapes passed between band sources, the
compositor, and the index evaluator. Rasters are numpy arrays laid out
north-up: row 0 is the northern edge of ``bounds``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

import numpy as np
import numpy.typing as npt
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

Bounds = tuple[float, float, float, float]
"""Lon/lat bounding box ``(minx, miny, maxx, maxy)`` in EPSG:4326."""

QA_BAND = "QA60"
"""Sentinel-2 quality-assurance bitmask band."""


@dataclass(frozen=True)
class MultispectralImage:
    """A single scene delivered by a band source.

    Args:
        bands: Band name (``"B2"``, ``"B8A"``, ``"QA60"`` ...) to a 2-D array.
        acquired: Acquisition date of the scene.
        cloud_pct: Scene-level cloud percentage (0--100).
        bounds: Lon/lat footprint of the pixel grid.
        image_id: Source-specific scene identifier.
        scale_factor: Divisor mapping stored values to reflectance in
            [0, 1]. ``1.0`` means the bands already hold reflectance.
        mask: Optional validity mask, ``True`` = clear pixel.

    Raises:
        ValueError: If the image has no bands or bands differ in shape.

    Example:
        >>> import numpy as np
        >>> img = MultispectralImage(
        ...     bands={"B4": np.zeros((2, 2)), "B8": np.ones((2, 2))},
        ...     acquired=date(2024, 9, 1),
        ...     cloud_pct=3.5,
        ...     bounds=(0.0, 0.0, 1.0, 1.0),
        ... )
        >>> img.shape
        (2, 2)
    """

    bands: dict[str, npt.NDArray[Any]]
    acquired: date
    cloud_pct: float
    bounds: Bounds
    image_id: str = ""
    scale_factor: float = 1.0
    mask: npt.NDArray[np.bool_] | None = None

    def __post_init__(self) -> None:
        if not self.bands:
            msg = f"Image {self.image_id or '<unnamed>'} has no bands"
            raise ValueError(msg)
        shapes = {np.shape(arr) for arr in self.bands.values()}
        if self.mask is not None:
            shapes.add(np.shape(self.mask))
        if len(shapes) != 1 or len(next(iter(shapes))) != 2:
            msg = (
                f"Image {self.image_id or '<unnamed>'} bands must share one "
                f"2-D shape, got {sorted(shapes)}"
            )
            raise ValueError(msg)

    @property
    def shape(self) -> tuple[int, int]:
        """Pixel grid shape ``(height, width)``."""
        first = next(iter(self.bands.values()))
        return (int(first.shape[0]), int(first.shape[1]))

    @property
    def band_names(self) -> list[str]:
        """Sorted band names present in the image."""
        return sorted(self.bands)


@dataclass
class Composite:
    """Cloud-free multispectral composite clipped to an AOI.

    A blended scene: there is no single acquisition date, only the
    identifiers and dates of the scenes that contributed pixels.

    Args:
        bands: Band name to float64 reflectance, NaN where undefined.
        valid: Boolean mask, ``True`` where the composite holds data in
            at least one band.
        bounds: Lon/lat footprint of the pixel grid.
        source_ids: Identifiers of the merged scenes, in merge order.
        source_dates: Acquisition dates of the merged scenes.
        aoi_pixels: Number of pixels whose centre lies inside the AOI.
    """

    bands: dict[str, npt.NDArray[np.float64]]
    valid: npt.NDArray[np.bool_]
    bounds: Bounds
    source_ids: list[str] = field(default_factory=list)
    source_dates: list[date] = field(default_factory=list)
    aoi_pixels: int = 0

    @property
    def shape(self) -> tuple[int, int]:
        """Pixel grid shape ``(height, width)``."""
        return (int(self.valid.shape[0]), int(self.valid.shape[1]))

    @property
    def coverage(self) -> float:
        """Fraction of AOI pixels that hold composite data (0.0--1.0)."""
        if self.aoi_pixels == 0:
            return 0.0
        return float(np.count_nonzero(self.valid)) / self.aoi_pixels


@dataclass
class IndexRaster:
    """Single-band spectral index raster.

    Args:
        name: Registry name of the index.
        data: Float64 values, NaN where undefined.
        valid: ``True`` where the value is defined.
        singular: ``True`` where inputs were valid but a formula
            denominator was exactly zero.
    """

    name: str
    data: npt.NDArray[np.float64]
    valid: npt.NDArray[np.bool_]
    singular: npt.NDArray[np.bool_]

    @property
    def singular_count(self) -> int:
        """Number of zero-denominator pixels."""
        return int(np.count_nonzero(self.singular))


@dataclass
class QualityAssessment:
    """Quality summary produced by the pipeline for every result.

    Args:
        observation_count: Scenes returned by the band source.
        used_count: Scenes that survived filtering and were merged.
        coverage: Fraction of AOI pixels holding composite data.
        singular_count: Zero-denominator pixels in the index raster.
        warnings: Human-readable quality warnings.

    Example:
        >>> qa = QualityAssessment(observation_count=6, used_count=2, coverage=0.93)
        >>> qa.warnings
        []
    """

    observation_count: int = 0
    used_count: int = 0
    coverage: float = 0.0
    singular_count: int = 0
    warnings: list[str] = field(default_factory=list)


class VisParams(BaseModel):
    """Display parameters for a single-band raster.

    Values are mapped linearly from ``min`` to ``max`` across the
    ``palette`` stops; values outside the range are clamped to the end
    colours. Palette entries are CSS colour names or ``#rrggbb`` strings.

    Args:
        min: Value rendered with the first palette colour.
        max: Value rendered with the last palette colour.
        palette: Ordered colour stops.

    Example:
        >>> vis = VisParams(min=0, max=1, palette=["red", "yellow", "green"])
        >>> vis.palette
        ('red', 'yellow', 'green')
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    min: float
    max: float
    palette: tuple[str, ...]

    @field_validator("palette")
    @classmethod
    def _validate_palette(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Ensure the ramp has at least one colour."""
        if not v:
            msg = "palette must contain at least one colour"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def _validate_range(self) -> VisParams:
        """Ensure the display range is not empty."""
        if not self.min < self.max:
            msg = f"min ({self.min}) must be lower than max ({self.max})"
            raise ValueError(msg)
        return self

    def as_dict(self) -> dict[str, Any]:
        """Return ``{"min", "max", "palette"}`` with the palette as a list."""
        return {"min": self.min, "max": self.max, "palette": list(self.palette)}
