"""Area-of-interest model for vegindex requests.

An ``AOI`` is an immutable lon/lat polygon validated once at creation.
The pipeline only reads it: footprint intersection tests during
candidate filtering and pixel-centre masks for clipping.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from typing import Any, Union

import numpy as np
import numpy.typing as npt
import shapely
from shapely.errors import ShapelyError
from shapely.geometry import MultiPolygon, Polygon, box, mapping, shape
from shapely.validation import explain_validity

from vegindex._types import Bounds
from vegindex.exceptions import InvalidAOIError

logger = logging.getLogger(__name__)

_MIN_LAT = -90.0
_MAX_LAT = 90.0
_MIN_LON = -180.0
_MAX_LON = 180.0
_METRES_PER_DEGREE = 111_320.0

AOIInput = Union[
    "AOI",
    Polygon,
    MultiPolygon,
    Mapping[str, Any],
    Sequence[Sequence[float]],
]


def _distinct_vertices(polygon: Polygon) -> int:
    """Count distinct exterior vertices, ignoring the closing point."""
    return len(set(polygon.exterior.coords))


def _validate(geom: Polygon | MultiPolygon) -> None:
    """Raise ``InvalidAOIError`` unless *geom* is a usable AOI."""
    if geom.is_empty:
        raise InvalidAOIError(
            what="Invalid AOI: empty geometry",
            cause="The polygon has no vertices",
            fix="Draw a polygon with at least 3 vertices",
        )

    parts = list(geom.geoms) if isinstance(geom, MultiPolygon) else [geom]
    for part in parts:
        count = _distinct_vertices(part)
        if count < 3:
            raise InvalidAOIError(
                what="Invalid AOI: too few vertices",
                cause=f"Polygon ring has {count} distinct vertices",
                fix="Draw a polygon with at least 3 vertices",
            )

    if not geom.is_valid:
        raise InvalidAOIError(
            what="Invalid AOI: malformed polygon",
            cause=explain_validity(geom),
            fix="Redraw the polygon without crossing edges",
        )

    if geom.area <= 0.0:
        raise InvalidAOIError(
            what="Invalid AOI: zero area",
            cause="All polygon vertices are collinear",
            fix="Draw a polygon that encloses an area",
        )

    minx, miny, maxx, maxy = geom.bounds
    if minx < _MIN_LON or maxx > _MAX_LON or miny < _MIN_LAT or maxy > _MAX_LAT:
        raise InvalidAOIError(
            what="Invalid AOI: coordinates out of range",
            cause=f"Bounds {geom.bounds} exceed WGS84 lon/lat limits",
            fix="Provide vertices as (lon, lat) in degrees",
        )


def _to_geometry(source: AOIInput) -> Polygon | MultiPolygon:
    """Convert any supported AOI input into a shapely polygon."""
    if isinstance(source, (Polygon, MultiPolygon)):
        return source

    if isinstance(source, Mapping):
        geometry = source
        if source.get("type") == "Feature":
            geometry = source.get("geometry") or {}
        try:
            geom = shape(geometry)
        except (AttributeError, KeyError, TypeError, ValueError, ShapelyError) as exc:
            raise InvalidAOIError(
                what="Invalid AOI: unreadable GeoJSON",
                cause=str(exc) or type(exc).__name__,
                fix="Pass a GeoJSON Polygon, MultiPolygon or Feature",
            ) from None
        if not isinstance(geom, (Polygon, MultiPolygon)):
            raise InvalidAOIError(
                what="Invalid AOI: unsupported geometry type",
                cause=f"Got {geom.geom_type}",
                fix="Pass a GeoJSON Polygon, MultiPolygon or Feature",
            )
        return geom

    try:
        ring = [(float(pt[0]), float(pt[1])) for pt in source]
    except (TypeError, ValueError, IndexError) as exc:
        raise InvalidAOIError(
            what="Invalid AOI: unreadable vertex list",
            cause=str(exc),
            fix="Pass a sequence of (lon, lat) pairs",
        ) from None
    if len(ring) < 3:
        raise InvalidAOIError(
            what="Invalid AOI: too few vertices",
            cause=f"Got {len(ring)} vertices",
            fix="Draw a polygon with at least 3 vertices",
        )
    return Polygon(ring)


def aoi(source: AOIInput) -> AOI:
    """Create a validated area of interest.

    Args:
        source: An existing ``AOI``, a shapely polygon, a GeoJSON
            geometry or Feature dict, or a ring of ``(lon, lat)`` pairs.

    Returns:
        An immutable ``AOI``.

    Raises:
        InvalidAOIError: If the polygon is empty, has fewer than three
            distinct vertices, self-intersects, has zero area, or lies
            outside WGS84 bounds.

    Example:
        >>> field = aoi([(-121.75, 38.54), (-121.74, 38.54), (-121.74, 38.55)])
        >>> field.bounds
        (-121.75, 38.54, -121.74, 38.55)
    """
    if isinstance(source, AOI):
        return source
    geom = _to_geometry(source)
    _validate(geom)
    logger.debug("Validated AOI with bounds %s", geom.bounds)
    return AOI(geom)


class AOI:
    """A validated lon/lat polygon.

    Prefer the ``aoi()`` factory, which validates its input. The wrapped
    geometry is prepared once for fast point-in-polygon tests.

    Args:
        geometry: Valid shapely Polygon or MultiPolygon (EPSG:4326).
    """

    __slots__ = ("_geometry",)

    def __init__(self, geometry: Polygon | MultiPolygon) -> None:
        shapely.prepare(geometry)
        self._geometry = geometry

    @classmethod
    def square(cls, lon: float, lat: float, size_m: float) -> AOI:
        """Build an axis-aligned square centred on a point.

        Uses ~111 320 m per degree of latitude, with longitude scaled by
        ``cos(lat)``; accurate enough for field-scale AOIs.

        Args:
            lon: Centre longitude in degrees.
            lat: Centre latitude in degrees.
            size_m: Side length in metres.

        Returns:
            A validated ``AOI``.

        Raises:
            InvalidAOIError: If *size_m* is not positive or the square
                falls outside WGS84 bounds.
        """
        if size_m <= 0:
            raise InvalidAOIError(
                what="Invalid AOI: non-positive size",
                cause=f"size_m={size_m}",
                fix="Pass a side length greater than 0 metres",
            )
        half = size_m / 2.0
        dlat = half / _METRES_PER_DEGREE
        dlon = half / (_METRES_PER_DEGREE * max(math.cos(math.radians(lat)), 1e-12))
        return aoi(box(lon - dlon, lat - dlat, lon + dlon, lat + dlat))

    @property
    def geometry(self) -> Polygon | MultiPolygon:
        """The wrapped shapely geometry."""
        return self._geometry

    @property
    def bounds(self) -> Bounds:
        """Lon/lat bounding box ``(minx, miny, maxx, maxy)``."""
        minx, miny, maxx, maxy = self._geometry.bounds
        return (minx, miny, maxx, maxy)

    @property
    def area_deg2(self) -> float:
        """Planar area in square degrees."""
        return float(self._geometry.area)

    def intersects(self, bounds: Bounds) -> bool:
        """Return whether a footprint box overlaps this AOI."""
        return bool(self._geometry.intersects(box(*bounds)))

    def pixel_mask(
        self,
        bounds: Bounds,
        shape_hw: tuple[int, int],
    ) -> npt.NDArray[np.bool_]:
        """Rasterize the AOI onto a north-up pixel grid.

        A pixel is inside when its centre lies inside the AOI or on its
        boundary.

        Args:
            bounds: Footprint of the grid.
            shape_hw: Grid shape ``(height, width)``.

        Returns:
            Boolean mask of shape *shape_hw*, ``True`` inside the AOI.
        """
        height, width = shape_hw
        if height == 0 or width == 0:
            return np.zeros(shape_hw, dtype=bool)
        minx, miny, maxx, maxy = bounds
        dx = (maxx - minx) / width
        dy = (maxy - miny) / height
        xs = minx + (np.arange(width) + 0.5) * dx
        ys = maxy - (np.arange(height) + 0.5) * dy
        grid_x, grid_y = np.meshgrid(xs, ys)
        inside: npt.NDArray[np.bool_] = shapely.intersects_xy(
            self._geometry, grid_x, grid_y
        )
        return np.asarray(inside, dtype=bool)

    def to_geojson(self) -> dict[str, Any]:
        """Return the AOI as a GeoJSON geometry dict."""
        return dict(mapping(self._geometry))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AOI):
            return NotImplemented
        return bool(self._geometry.equals(other._geometry))

    def __hash__(self) -> int:
        return hash(self._geometry.wkb)

    def __repr__(self) -> str:
        minx, miny, maxx, maxy = self.bounds
        return f"AOI(bounds=({minx:.5f}, {miny:.5f}, {maxx:.5f}, {maxy:.5f}))"
