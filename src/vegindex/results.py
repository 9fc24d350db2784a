"""Result object model for index requests."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import numpy as np
import numpy.typing as npt
from pydantic import BaseModel, Field

from vegindex._types import Composite, IndexRaster, QualityAssessment, VisParams
from vegindex.legend import LegendSpec
from vegindex.visualization import colorize, render_rgb

if TYPE_CHECKING:
    import pandas as pd

    from vegindex.config import Config


class ResultMetadata(BaseModel):
    """Metadata for index results.

    Uses Pydantic (not dataclass) for JSON serialization at the
    rendering boundary.

    Attributes:
        source: Band source name (e.g. ``"memory"``).
        index: Registry name of the computed index.
        date: Target date requested by the caller (ISO string).
        window_start: First day of the acquisition window.
        window_end: First day after the acquisition window.
        timestamps: Acquisition dates of the merged scenes.
        scene_ids: Identifiers of the merged scenes.
        observation_count: Scenes returned by the band source.
        crs: Coordinate reference system of the rasters.
        bounds: Spatial bounding box ``{"minx", "miny", "maxx", "maxy"}``.

    Example:
        >>> meta = ResultMetadata(source="memory", index="NDVI")
        >>> meta.crs
        'EPSG:4326'
    """

    source: str = ""
    index: str = ""
    date: str = ""
    window_start: str = ""
    window_end: str = ""
    timestamps: list[str] = Field(default_factory=list)
    scene_ids: list[str] = Field(default_factory=list)
    observation_count: int = 0
    crs: str = "EPSG:4326"
    bounds: dict[str, float] = Field(default_factory=dict)


@dataclass
class IndexResult:
    """Complete output of one index request.

    Dataclass (not Pydantic) because numpy arrays are the primary payload.

    Attributes:
        composite: Cloud-free composite clipped to the AOI.
        raster: Index raster computed from the composite.
        vis: Display parameters for ``raster``.
        legend: Legend matching ``vis``.
        metadata: Request and provenance metadata.
        quality: Coverage and scene usage summary.
        warnings: Human-readable quality warnings.
    """

    composite: Composite
    raster: IndexRaster
    vis: VisParams
    legend: LegendSpec
    metadata: ResultMetadata = field(default_factory=ResultMetadata)
    quality: QualityAssessment = field(default_factory=QualityAssessment)
    warnings: list[str] = field(default_factory=list)

    @property
    def data(self) -> npt.NDArray[np.float64]:
        """Index values, NaN where undefined."""
        return self.raster.data

    def rgb(self, config: Config | None = None) -> npt.NDArray[np.float64]:
        """True-colour composite scaled to [0, 1] for display."""
        return render_rgb(self.composite, config)

    def colorized(self) -> npt.NDArray[np.uint8]:
        """Index raster rendered through ``vis`` as RGBA bytes."""
        return colorize(self.raster.data, self.vis)

    def statistics(self) -> dict[str, float]:
        """Mean, standard deviation, min and max over defined pixels.

        All values are NaN when no pixel is defined.
        """
        values = self.raster.data[self.raster.valid]
        if values.size == 0:
            nan = float("nan")
            return {"mean": nan, "std": nan, "min": nan, "max": nan}
        return {
            "mean": float(np.mean(values)),
            "std": float(np.std(values)),
            "min": float(np.min(values)),
            "max": float(np.max(values)),
        }

    def __repr__(self) -> str:
        """Return narrative summary for interactive display.

        Does NOT show raw arrays or full metadata dictionaries.
        """
        stats = self.statistics()
        lines: list[str] = [f"{type(self).__name__}("]
        lines.append(f"  index: {self.metadata.index or self.raster.name}")
        if self.metadata.date:
            lines.append(
                f"  date: {self.metadata.date} "
                f"(window {self.metadata.window_start} → {self.metadata.window_end})"
            )
        lines.append(
            f"  scenes: {self.quality.used_count} of "
            f"{self.quality.observation_count} merged"
        )
        lines.append(f"  coverage: {self.quality.coverage:.0%}")
        if math.isnan(stats["mean"]):
            lines.append("  mean: N/A (no valid data)")
        else:
            lines.append(f"  mean: {stats['mean']:.3f} ± {stats['std']:.3f}")
        lines.append(f"  range: [{self.legend.min_label}, {self.legend.max_label}]")
        for w in self.warnings:
            lines.append(f"  ⚠ {w}")
        lines.append(")")
        return "\n".join(lines)

    def to_dataframe(self) -> pd.DataFrame:
        """Export a one-row summary to a pandas DataFrame.

        Returns:
            DataFrame with index statistics, coverage and provenance.
        """
        import pandas as pd

        row: dict[str, Any] = {
            "index": self.metadata.index or self.raster.name,
            "date": self.metadata.date,
            "window_start": self.metadata.window_start,
            "window_end": self.metadata.window_end,
            **self.statistics(),
            "valid_pixels": int(np.count_nonzero(self.raster.valid)),
            "singular_pixels": self.raster.singular_count,
            "coverage": self.quality.coverage,
            "observation_count": self.quality.observation_count,
            "used_count": self.quality.used_count,
            "source": self.metadata.source,
            "crs": self.metadata.crs,
        }
        return pd.DataFrame([row])

    def to_geotiff(self, path: str | Path) -> Path:
        """Export the index raster to a single-band GeoTIFF.

        Written as float32 with NaN nodata, georeferenced by the
        composite bounds.

        Args:
            path: Output file path (will be created/overwritten).

        Returns:
            Path object pointing to the written file.

        Raises:
            ValueError: If the raster is empty.
        """
        import rasterio
        from rasterio.transform import from_bounds

        path = Path(path)
        data = self.raster.data
        if data.size == 0:
            msg = "Cannot export empty raster to GeoTIFF"
            raise ValueError(msg)

        height, width = data.shape
        transform = from_bounds(*self.composite.bounds, width, height)
        with rasterio.open(
            path,
            "w",
            driver="GTiff",
            height=height,
            width=width,
            count=1,
            dtype="float32",
            crs=self.metadata.crs or "EPSG:4326",
            transform=transform,
            nodata=float("nan"),
        ) as dst:
            dst.write(data.astype(np.float32), 1)
            dst.set_band_description(1, self.raster.name)
        return path

    def to_png(self, path: str | Path) -> Path:
        """Export the index raster with its legend to a PNG image.

        The raster is drawn from ``colorized()`` and the colour bar from
        ``legend.render()``, so both use the same colour mapping.

        Args:
            path: Output file path.

        Returns:
            Path object pointing to the written file.
        """
        import matplotlib

        matplotlib.use("Agg")  # Non-interactive backend for file output
        import matplotlib.pyplot as plt

        path = Path(path)
        fig, (ax, cax) = plt.subplots(
            2, 1, figsize=(8, 8), gridspec_kw={"height_ratios": [20, 1]}
        )
        title = self.metadata.index or self.raster.name
        if self.metadata.date:
            title += f" ({self.metadata.date})"
        ax.set_title(title)
        if self.raster.data.size == 0:
            ax.text(0.5, 0.5, "No data available", ha="center", va="center",
                    transform=ax.transAxes)
        else:
            minx, miny, maxx, maxy = self.composite.bounds
            ax.imshow(self.colorized(), extent=(minx, maxx, miny, maxy))
        ax.set_xlabel("Longitude")
        ax.set_ylabel("Latitude")

        cax.imshow(self.legend.render(), aspect="auto")
        cax.set_yticks([])
        cax.set_xticks([0, self.legend.width - 1])
        cax.set_xticklabels([self.legend.min_label, self.legend.max_label])
        cax.set_title(self.legend.title, fontsize=10)

        fig.tight_layout()
        fig.savefig(path, dpi=150, bbox_inches="tight")
        plt.close(fig)
        return path
