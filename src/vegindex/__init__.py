"""vegindex: cloud-free Sentinel-2 composites and spectral index rasters.

Example:
    >>> import vegindex as vi
    >>>
    >>> field = vi.AOI.square(lon=-121.7415, lat=38.5449, size_m=1000)
    >>> result = vi.run(field, "2024-09-01", "NDVI", source=my_source)
    >>> result.vis.as_dict()
    {'min': 0.0, 'max': 1.0, 'palette': ['red', 'yellow', 'green']}
    >>> result.legend.min_label, result.legend.max_label
    ('0', '1')
"""

from vegindex.__about__ import __version__
from vegindex._pipeline import CancelToken
from vegindex._types import (
    Composite,
    IndexRaster,
    MultispectralImage,
    QualityAssessment,
    VisParams,
)
from vegindex.analysis.cloud import cloud_mask, mask_image
from vegindex.analysis.compositing import composite
from vegindex.analysis.indices import (
    REGISTRY,
    IndexDefinition,
    available_indices,
    describe,
    evaluate,
    get_index,
)
from vegindex.aoi import AOI, aoi
from vegindex.api import run
from vegindex.config import Config, configure, get_default_config, load_config
from vegindex.dates import DateWindow, date_window
from vegindex.exceptions import (
    ConfigurationError,
    DivisionSingularityError,
    GridMismatchError,
    InvalidAOIError,
    InvalidDateError,
    MissingBandError,
    NoImageryError,
    PipelineCancelledError,
    UnknownIndexError,
    VegIndexError,
)
from vegindex.legend import LegendSpec, build_legend
from vegindex.results import IndexResult, ResultMetadata
from vegindex.sources import BandSource, InMemoryBandSource
from vegindex.visualization import colorize, resolve_vis, rgb_vis

__all__ = [
    # Version
    "__version__",
    # Request API
    "run",
    "CancelToken",
    # Inputs
    "AOI",
    "aoi",
    "DateWindow",
    "date_window",
    # Band sources
    "BandSource",
    "InMemoryBandSource",
    "MultispectralImage",
    # Pipeline stages
    "cloud_mask",
    "mask_image",
    "composite",
    "Composite",
    "REGISTRY",
    "IndexDefinition",
    "IndexRaster",
    "available_indices",
    "describe",
    "evaluate",
    "get_index",
    # Visualization
    "VisParams",
    "colorize",
    "resolve_vis",
    "rgb_vis",
    "LegendSpec",
    "build_legend",
    # Results
    "IndexResult",
    "QualityAssessment",
    "ResultMetadata",
    # Configuration
    "Config",
    "configure",
    "get_default_config",
    "load_config",
    # Exceptions
    "ConfigurationError",
    "DivisionSingularityError",
    "GridMismatchError",
    "InvalidAOIError",
    "InvalidDateError",
    "MissingBandError",
    "NoImageryError",
    "PipelineCancelledError",
    "UnknownIndexError",
    "VegIndexError",
]
