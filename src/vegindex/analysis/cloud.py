"""QA60 bitmask cloud masking.

Pure computation module: numpy arrays in, numpy arrays out. Sentinel-2
``QA60`` flags opaque clouds in bit 10 and cirrus in bit 11; a pixel is
clear only when both bits are unset.
"""

from __future__ import annotations

import dataclasses
from typing import Any

import numpy as np
import numpy.typing as npt

from vegindex._types import QA_BAND, MultispectralImage
from vegindex.exceptions import MissingBandError

OPAQUE_CLOUD_BIT = 1 << 10
CIRRUS_BIT = 1 << 11
_CLOUD_BITS = OPAQUE_CLOUD_BIT | CIRRUS_BIT


def qa_valid(qa: npt.NDArray[Any]) -> npt.NDArray[np.bool_]:
    """Decode a QA60 array into a clear-pixel mask.

    Non-finite QA values (nodata in float exports) count as invalid.

    Args:
        qa: 2-D QA60 array, integer or float encoded.

    Returns:
        Boolean mask, ``True`` where neither cloud bit is set.
    """
    qa_arr = np.asarray(qa)
    if np.issubdtype(qa_arr.dtype, np.floating):
        finite = np.isfinite(qa_arr)
        bits = np.where(finite, qa_arr, 0).astype(np.int64)
        return finite & ((bits & _CLOUD_BITS) == 0)
    return (qa_arr.astype(np.int64) & _CLOUD_BITS) == 0


def cloud_mask(image: MultispectralImage) -> npt.NDArray[np.bool_]:
    """Compute the clear-pixel mask of a scene from its QA60 band.

    Args:
        image: Scene carrying a ``QA60`` band.

    Returns:
        Boolean mask, ``True`` = clear pixel.

    Raises:
        MissingBandError: If the scene has no ``QA60`` band.

    Example:
        >>> import numpy as np
        >>> from datetime import date
        >>> img = MultispectralImage(
        ...     bands={"QA60": np.array([[0, 1024, 2048, 1]])},
        ...     acquired=date(2024, 9, 1), cloud_pct=0.0, bounds=(0, 0, 1, 1),
        ... )
        >>> cloud_mask(img).tolist()
        [[True, False, False, True]]
    """
    if QA_BAND not in image.bands:
        raise MissingBandError(
            band=QA_BAND,
            what=f"Cannot cloud-mask image {image.image_id or '<unnamed>'}",
            cause=f"Band {QA_BAND} is absent (bands: {', '.join(image.band_names)})",
            fix="Exclude the image from compositing or request the QA60 band",
        )
    return qa_valid(image.bands[QA_BAND])


def mask_image(image: MultispectralImage) -> MultispectralImage:
    """Return a copy of *image* whose mask also excludes cloudy pixels.

    The new mask is the existing mask (if any) AND the QA60 mask, so
    masking an already-masked image changes nothing.

    Raises:
        MissingBandError: If the scene has no ``QA60`` band.
    """
    clear = cloud_mask(image)
    if image.mask is not None:
        clear = clear & image.mask
    return dataclasses.replace(image, mask=clear)


def cloud_free_ratio(mask: npt.NDArray[np.bool_]) -> float:
    """Fraction of ``True`` pixels in *mask* (0.0 for empty masks)."""
    if mask.size == 0:
        return 0.0
    return float(np.count_nonzero(mask)) / mask.size
