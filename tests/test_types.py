"""Tests for the vegindex shared types."""

from __future__ import annotations

from datetime import date

import numpy as np
import pytest
from pydantic import ValidationError

from vegindex._types import (
    Composite,
    IndexRaster,
    MultispectralImage,
    QualityAssessment,
    VisParams,
)


@pytest.mark.unit
class TestMultispectralImage:
    """Verify MultispectralImage construction and validation."""

    def test_construct(self) -> None:
        img = MultispectralImage(
            bands={"B8": np.ones((3, 4)), "B4": np.zeros((3, 4))},
            acquired=date(2024, 9, 1),
            cloud_pct=3.5,
            bounds=(0.0, 0.0, 1.0, 1.0),
            image_id="S2A_1",
        )
        assert img.shape == (3, 4)
        assert img.band_names == ["B4", "B8"]
        assert img.scale_factor == 1.0
        assert img.mask is None

    def test_no_bands_rejected(self) -> None:
        with pytest.raises(ValueError, match="no bands"):
            MultispectralImage(
                bands={}, acquired=date(2024, 9, 1), cloud_pct=0.0, bounds=(0, 0, 1, 1)
            )

    def test_shape_mismatch_rejected(self) -> None:
        with pytest.raises(ValueError, match="2-D shape"):
            MultispectralImage(
                bands={"B8": np.ones((3, 4)), "B4": np.ones((4, 3))},
                acquired=date(2024, 9, 1),
                cloud_pct=0.0,
                bounds=(0, 0, 1, 1),
            )

    def test_mask_shape_mismatch_rejected(self) -> None:
        with pytest.raises(ValueError):
            MultispectralImage(
                bands={"B8": np.ones((3, 4))},
                acquired=date(2024, 9, 1),
                cloud_pct=0.0,
                bounds=(0, 0, 1, 1),
                mask=np.ones((2, 2), dtype=bool),
            )

    def test_non_2d_rejected(self) -> None:
        with pytest.raises(ValueError):
            MultispectralImage(
                bands={"B8": np.ones((2, 3, 4))},
                acquired=date(2024, 9, 1),
                cloud_pct=0.0,
                bounds=(0, 0, 1, 1),
            )


@pytest.mark.unit
class TestComposite:
    """Verify Composite derived properties."""

    def test_coverage(self) -> None:
        valid = np.array([[True, False], [True, True]])
        comp = Composite(bands={}, valid=valid, bounds=(0, 0, 1, 1), aoi_pixels=4)
        assert comp.shape == (2, 2)
        assert comp.coverage == pytest.approx(0.75)

    def test_coverage_without_aoi_pixels(self) -> None:
        comp = Composite(bands={}, valid=np.zeros((2, 2), dtype=bool), bounds=(0, 0, 1, 1))
        assert comp.coverage == 0.0


@pytest.mark.unit
class TestIndexRaster:
    """Verify IndexRaster derived properties."""

    def test_singular_count(self) -> None:
        raster = IndexRaster(
            name="NDVI",
            data=np.array([[0.5, np.nan]]),
            valid=np.array([[True, False]]),
            singular=np.array([[False, True]]),
        )
        assert raster.singular_count == 1


@pytest.mark.unit
class TestQualityAssessment:
    """Verify QualityAssessment defaults."""

    def test_defaults(self) -> None:
        qa = QualityAssessment()
        assert qa.observation_count == 0
        assert qa.used_count == 0
        assert qa.coverage == 0.0
        assert qa.warnings == []

    def test_warnings_not_shared(self) -> None:
        a = QualityAssessment()
        b = QualityAssessment()
        a.warnings.append("x")
        assert b.warnings == []


@pytest.mark.unit
class TestVisParams:
    """Verify VisParams validation and serialization."""

    def test_as_dict(self) -> None:
        vis = VisParams(min=0, max=1, palette=["red", "yellow", "green"])
        assert vis.as_dict() == {
            "min": 0.0,
            "max": 1.0,
            "palette": ["red", "yellow", "green"],
        }

    def test_empty_palette_rejected(self) -> None:
        with pytest.raises(ValidationError):
            VisParams(min=0, max=1, palette=[])

    @pytest.mark.parametrize(("vmin", "vmax"), [(1.0, 1.0), (1.0, 0.0)])
    def test_empty_range_rejected(self, vmin: float, vmax: float) -> None:
        with pytest.raises(ValidationError):
            VisParams(min=vmin, max=vmax, palette=["red"])

    def test_frozen(self) -> None:
        vis = VisParams(min=0, max=1, palette=["red"])
        with pytest.raises(ValidationError):
            vis.min = 0.5  # type: ignore[misc]
