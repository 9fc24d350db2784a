"""Temporal compositing of cloud-masked scenes.

Scenes are filtered by footprint, acquisition window and scene-level
cloud cover, masked with QA60, rescaled to reflectance, and merged
band by band, first-valid-wins in list order, before clipping to the AOI.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any

import numpy as np
import numpy.typing as npt

from vegindex._types import QA_BAND, Composite, MultispectralImage
from vegindex.analysis.cloud import cloud_free_ratio, mask_image
from vegindex.aoi import AOI
from vegindex.config import Config, get_default_config
from vegindex.dates import DateWindow
from vegindex.exceptions import GridMismatchError, MissingBandError, NoImageryError

logger = logging.getLogger(__name__)

# Footprint edges may differ by at most this fraction of one pixel.
_GRID_TOLERANCE = 0.01

_GRID_FIX = "Resample scenes to a common grid before compositing"


def filter_candidates(
    aoi: AOI,
    window: DateWindow,
    images: Iterable[MultispectralImage],
    cloud_max: float,
) -> list[MultispectralImage]:
    """Keep scenes overlapping the AOI, inside the window, below *cloud_max*.

    Input order is preserved.

    Args:
        aoi: Area of interest.
        window: Acquisition window.
        images: Candidate scenes.
        cloud_max: Scene cloud percentage threshold; a scene must be
            strictly below it.

    Returns:
        Surviving scenes in input order.
    """
    kept: list[MultispectralImage] = []
    for img in images:
        label = img.image_id or "<unnamed>"
        if not aoi.intersects(img.bounds):
            logger.debug("Skipping %s: footprint misses the AOI", label)
            continue
        if not window.contains(img.acquired):
            logger.debug("Skipping %s: acquired %s outside window", label, img.acquired)
            continue
        if not img.cloud_pct < cloud_max:
            logger.debug(
                "Skipping %s: scene cloud cover %.1f%% >= %.1f%%",
                label,
                img.cloud_pct,
                cloud_max,
            )
            continue
        kept.append(img)
    return kept


def _check_grid(reference: MultispectralImage, img: MultispectralImage) -> None:
    """Raise ``GridMismatchError`` unless *img* shares the reference pixel grid.

    Shapes must match exactly; footprint edges may differ by at most
    ``_GRID_TOLERANCE`` of a pixel.
    """
    label = img.image_id or "<unnamed>"
    ref_label = reference.image_id or "<unnamed>"
    if img.shape != reference.shape:
        raise GridMismatchError(
            what=f"Cannot composite image {label}",
            cause=f"Grid shape {img.shape} differs from {ref_label} grid shape "
            f"{reference.shape}",
            fix=_GRID_FIX,
        )

    height, width = reference.shape
    minx, miny, maxx, maxy = reference.bounds
    tol_x = _GRID_TOLERANCE * (maxx - minx) / max(width, 1)
    tol_y = _GRID_TOLERANCE * (maxy - miny) / max(height, 1)
    offsets = np.abs(np.subtract(img.bounds, reference.bounds))
    if np.any(offsets > np.array([tol_x, tol_y, tol_x, tol_y])):
        raise GridMismatchError(
            what=f"Cannot composite image {label}",
            cause=f"Footprint {img.bounds} is offset from {ref_label} footprint "
            f"{reference.bounds} by up to {offsets.max():.6g} degrees",
            fix=_GRID_FIX,
        )


def _spectral_bands(images: Sequence[MultispectralImage]) -> list[str]:
    """Spectral bands present in any image, QA60 excluded."""
    union: set[str] = set().union(*(img.bands for img in images))
    union.discard(QA_BAND)
    partial = sorted(
        name for name in union if not all(name in img.bands for img in images)
    )
    if partial:
        logger.debug("Bands merged from the scenes that carry them: %s", partial)
    return sorted(union)


def merge_first_valid(
    images: Sequence[MultispectralImage],
    band_names: Sequence[str],
    inside: npt.NDArray[np.bool_],
) -> tuple[dict[str, npt.NDArray[np.float64]], npt.NDArray[np.bool_], list[int]]:
    """Mosaic masked scenes band by band; each pixel takes the first valid scene.

    A scene is valid for a band at a pixel when it carries the band, its
    mask is set there, and the value is finite. Values are divided by the
    scene's ``scale_factor``.

    Args:
        images: Masked scenes on a common grid, in precedence order.
        band_names: Bands to merge.
        inside: Pixels to fill; everything else stays undefined.

    Returns:
        ``(bands, filled, contributors)`` where *filled* marks pixels
        holding at least one band and *contributors* lists, in order,
        the indices of scenes that supplied at least one value.
    """
    shape = inside.shape
    out: dict[str, npt.NDArray[np.float64]] = {}
    filled_any = np.zeros(shape, dtype=bool)
    used: set[int] = set()

    for name in band_names:
        merged = np.full(shape, np.nan, dtype=np.float64)
        filled = np.zeros(shape, dtype=bool)
        for i, img in enumerate(images):
            if name not in img.bands:
                continue
            values = np.asarray(img.bands[name], dtype=np.float64)
            usable = inside & ~filled & np.isfinite(values)
            if img.mask is not None:
                usable &= img.mask
            if not usable.any():
                continue
            merged[usable] = values[usable] / img.scale_factor
            filled |= usable
            used.add(i)
        out[name] = merged
        filled_any |= filled

    return out, filled_any, sorted(used)


def composite(
    aoi: AOI,
    window: DateWindow,
    images: Iterable[MultispectralImage],
    *,
    cloud_max: float | None = None,
    config: Config | None = None,
) -> Composite:
    """Build a cloud-free composite of *images* clipped to *aoi*.

    Scenes without a QA60 band are excluded with a warning rather than
    failing the request. Merge precedence follows input order, so pass
    scenes in a deterministic order (``BandSource.query`` returns them
    by acquisition date ascending).

    Args:
        aoi: Area of interest.
        window: Acquisition window.
        images: Candidate scenes, in merge precedence order.
        cloud_max: Scene cloud percentage threshold. Defaults to
            ``config.cloud_cover_max``.
        config: Configuration; the module default when ``None``.

    Returns:
        The merged ``Composite``.

    Raises:
        NoImageryError: If no scene survives filtering and masking.
        GridMismatchError: If surviving scenes do not share one pixel grid.
    """
    cfg = config if config is not None else get_default_config()
    threshold = cfg.cloud_cover_max if cloud_max is None else cloud_max
    candidates = list(images)
    survivors = filter_candidates(aoi, window, candidates, threshold)

    masked: list[MultispectralImage] = []
    for img in survivors:
        try:
            clear = mask_image(img)
        except MissingBandError as exc:
            logger.warning(
                "Excluding image %s from composite: %s",
                img.image_id or "<unnamed>",
                exc.cause,
            )
            continue
        if clear.mask is not None:
            logger.debug(
                "%s: %.0f%% of pixels cloud-free",
                img.image_id or "<unnamed>",
                cloud_free_ratio(clear.mask) * 100,
            )
        masked.append(clear)

    if not masked:
        start, end = window.as_strings()
        raise NoImageryError(
            what="No imagery available for compositing",
            cause=(
                f"{len(candidates)} candidate(s), none overlapping the AOI in "
                f"[{start}, {end}) below {threshold:g}% cloud cover with a "
                f"{QA_BAND} band"
            ),
            fix="Pick another date, enlarge the AOI or raise cloud_cover_max",
        )

    reference = masked[0]
    for img in masked[1:]:
        _check_grid(reference, img)

    band_names = _spectral_bands(masked)
    inside = aoi.pixel_mask(reference.bounds, reference.shape)
    bands, filled, contributors = merge_first_valid(masked, band_names, inside)

    used = [masked[i] for i in contributors]
    logger.info(
        "Composite built from %d of %d candidate scene(s), %d of %d AOI pixels filled",
        len(used),
        len(candidates),
        int(np.count_nonzero(filled)),
        int(np.count_nonzero(inside)),
    )
    return Composite(
        bands=bands,
        valid=filled,
        bounds=reference.bounds,
        source_ids=[img.image_id for img in used],
        source_dates=[img.acquired for img in used],
        aoi_pixels=int(np.count_nonzero(inside)),
    )


def composite_stats(comp: Composite) -> dict[str, Any]:
    """Summarize a composite for logs and result metadata."""
    return {
        "bands": sorted(comp.bands),
        "shape": comp.shape,
        "coverage": comp.coverage,
        "scenes": len(comp.source_ids),
    }
