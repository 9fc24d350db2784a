"""Band source interface contract.

Imagery acquisition lives outside vegindex. A ``BandSource`` adapter
turns some imagery backend into ``MultispectralImage`` objects and
declares how its stored values map to physical reflectance.
"""

from __future__ import annotations

import dataclasses
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable

from vegindex._types import MultispectralImage
from vegindex.aoi import AOI
from vegindex.dates import DateWindow

logger = logging.getLogger(__name__)

SENTINEL2_L2A_SCALE = 10000.0
"""Digital-number scale of Sentinel-2 L2A surface reflectance."""


def acquisition_order(images: Iterable[MultispectralImage]) -> list[MultispectralImage]:
    """Sort images by acquisition date ascending, then by identifier.

    The sort is stable, so images sharing a date and identifier keep
    their relative order.
    """
    return sorted(images, key=lambda img: (img.acquired, img.image_id))


class BandSource(ABC):
    """Abstract base class for imagery adapters.

    Subclasses set ``_name`` and implement ``query()``. The adapter owns
    the reflectance encoding: ``scale_factor`` is stamped on every image
    it returns, and the compositor divides by it.

    Args:
        scale_factor: Divisor mapping stored values to reflectance.
            ``1.0`` for sources that already deliver reflectance.
    """

    _name: str = ""

    def __init__(self, scale_factor: float = SENTINEL2_L2A_SCALE) -> None:
        if scale_factor <= 0:
            msg = f"scale_factor must be greater than 0, got {scale_factor}"
            raise ValueError(msg)
        self._scale_factor = float(scale_factor)

    @property
    def name(self) -> str:
        """Source identifier used in result metadata."""
        return self._name

    @property
    def scale_factor(self) -> float:
        """Divisor mapping stored values to reflectance."""
        return self._scale_factor

    @abstractmethod
    def query(self, aoi: AOI, window: DateWindow) -> list[MultispectralImage]:
        """Return scenes overlapping *aoi* acquired inside *window*.

        Returns an empty list when nothing matches. Results are ordered
        by acquisition date ascending, then by identifier.

        Args:
            aoi: Validated area of interest.
            window: Acquisition window.

        Returns:
            Matching scenes carrying this source's ``scale_factor``.
        """
        ...


class InMemoryBandSource(BandSource):
    """Band source serving a fixed list of scenes.

    Useful for notebooks, tests and callers that already hold arrays
    fetched by other tools.

    Args:
        images: Scenes to serve.
        scale_factor: Divisor stamped on every served scene.

    Example:
        >>> source = InMemoryBandSource([], scale_factor=1.0)
        >>> source.name
        'memory'
    """

    _name: str = "memory"

    def __init__(
        self,
        images: Iterable[MultispectralImage],
        scale_factor: float = SENTINEL2_L2A_SCALE,
    ) -> None:
        super().__init__(scale_factor=scale_factor)
        self._images = list(images)

    def query(self, aoi: AOI, window: DateWindow) -> list[MultispectralImage]:
        """Filter the held scenes by footprint and acquisition date."""
        matches = [
            dataclasses.replace(img, scale_factor=self._scale_factor)
            for img in self._images
            if window.contains(img.acquired) and aoi.intersects(img.bounds)
        ]
        logger.debug(
            "%s source matched %d of %d scenes for %s..%s",
            self._name,
            len(matches),
            len(self._images),
            window.start,
            window.end,
        )
        return acquisition_order(matches)
