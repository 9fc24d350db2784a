"""Raster analysis: cloud masking, compositing and spectral indices."""

from vegindex.analysis.cloud import cloud_mask, mask_image
from vegindex.analysis.compositing import composite, filter_candidates
from vegindex.analysis.indices import (
    REGISTRY,
    IndexDefinition,
    available_indices,
    evaluate,
    get_index,
)

__all__ = [
    "REGISTRY",
    "IndexDefinition",
    "available_indices",
    "cloud_mask",
    "composite",
    "evaluate",
    "filter_candidates",
    "get_index",
    "mask_image",
]
