"""Tests for display parameters and colour mapping."""

from __future__ import annotations

import numpy as np
import numpy.testing as npt
import pytest

from vegindex._types import Composite, VisParams
from vegindex.analysis.indices import available_indices
from vegindex.config import Config
from vegindex.exceptions import MissingBandError, UnknownIndexError
from vegindex.visualization import (
    colorize,
    colormap,
    normalize,
    render_rgb,
    resolve_vis,
    rgb_vis,
)

NDVI_VIS = VisParams(min=0, max=1, palette=["red", "yellow", "green"])


@pytest.mark.unit
class TestResolveVis:
    """Tests for resolve_vis()."""

    def test_ndvi(self) -> None:
        assert resolve_vis("NDVI").as_dict() == {
            "min": 0.0,
            "max": 1.0,
            "palette": ["red", "yellow", "green"],
        }

    def test_stable_across_calls(self) -> None:
        assert resolve_vis("EVI") == resolve_vis("evi")

    @pytest.mark.parametrize("name", available_indices())
    def test_every_index_has_vis(self, name: str) -> None:
        vis = resolve_vis(name)
        assert vis.min < vis.max
        assert len(vis.palette) >= 2

    def test_unknown(self) -> None:
        with pytest.raises(UnknownIndexError):
            resolve_vis("FOO")

    def test_rgb_vis(self) -> None:
        assert rgb_vis(Config()) == {"bands": ["B4", "B3", "B2"], "min": 0.0, "max": 0.3}


@pytest.mark.unit
class TestColorize:
    """Tests for normalize() and colorize()."""

    def test_normalize_clamps(self) -> None:
        out = normalize(np.array([-1.0, 0.0, 0.25, 1.0, 2.0, np.nan]), NDVI_VIS)
        npt.assert_allclose(out, [0.0, 0.0, 0.25, 1.0, 1.0, np.nan])

    def test_output_shape_and_dtype(self) -> None:
        rgba = colorize(np.zeros((3, 4)), NDVI_VIS)
        assert rgba.shape == (3, 4, 4)
        assert rgba.dtype == np.uint8

    def test_min_maps_to_first_colour(self) -> None:
        rgba = colorize(np.array([0.0]), NDVI_VIS)
        npt.assert_array_equal(rgba[0], [255, 0, 0, 255])

    def test_out_of_range_clamped(self) -> None:
        rgba = colorize(np.array([-5.0, 0.0, 1.0, 5.0]), NDVI_VIS)
        npt.assert_array_equal(rgba[0], rgba[1])
        npt.assert_array_equal(rgba[3], rgba[2])

    def test_undefined_transparent(self) -> None:
        rgba = colorize(np.array([np.nan, 0.5]), NDVI_VIS)
        npt.assert_array_equal(rgba[0], [0, 0, 0, 0])
        assert rgba[1, 3] == 255

    def test_single_colour_palette(self) -> None:
        vis = VisParams(min=0, max=1, palette=["blue"])
        rgba = colorize(np.array([0.0, 1.0]), vis)
        npt.assert_array_equal(rgba[0], [0, 0, 255, 255])
        npt.assert_array_equal(rgba[1], [0, 0, 255, 255])

    def test_colormap_cached(self) -> None:
        assert colormap(("red", "green")) is colormap(("red", "green"))


@pytest.mark.unit
class TestRenderRgb:
    """Tests for render_rgb()."""

    def _composite(self, value: float) -> Composite:
        bands = {name: np.full((2, 2), value) for name in ("B4", "B3", "B2")}
        valid = np.array([[True, True], [True, False]])
        return Composite(bands=bands, valid=valid, bounds=(0.0, 0.0, 1.0, 1.0), aoi_pixels=4)

    def test_scaled_to_display_range(self) -> None:
        rgb = render_rgb(self._composite(0.15), Config())
        assert rgb.shape == (2, 2, 3)
        npt.assert_allclose(rgb[0, 0], [0.5, 0.5, 0.5])

    def test_clipped(self) -> None:
        rgb = render_rgb(self._composite(0.6), Config())
        npt.assert_allclose(rgb[0, 0], [1.0, 1.0, 1.0])

    def test_invalid_pixels_nan(self) -> None:
        rgb = render_rgb(self._composite(0.15), Config())
        assert np.isnan(rgb[1, 1]).all()

    def test_missing_band(self) -> None:
        comp = self._composite(0.15)
        del comp.bands["B2"]
        with pytest.raises(MissingBandError) as exc_info:
            render_rgb(comp, Config())
        assert exc_info.value.band == "B2"
