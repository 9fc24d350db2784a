"""Tests for the band source contract and the in-memory source."""

from __future__ import annotations

from collections.abc import Callable
from datetime import date

import pytest

from vegindex._types import MultispectralImage
from vegindex.aoi import AOI
from vegindex.dates import DateWindow, date_window
from vegindex.sources import (
    SENTINEL2_L2A_SCALE,
    BandSource,
    InMemoryBandSource,
    acquisition_order,
)

ImageFactory = Callable[..., MultispectralImage]


@pytest.mark.unit
class TestAcquisitionOrder:
    """Verify deterministic scene ordering."""

    def test_sorted_by_date_then_id(self, make_image: ImageFactory) -> None:
        b = make_image(acquired=date(2024, 9, 5), image_id="B")
        a = make_image(acquired=date(2024, 9, 5), image_id="A")
        early = make_image(acquired=date(2024, 8, 1), image_id="Z")
        ordered = acquisition_order([b, a, early])
        assert [img.image_id for img in ordered] == ["Z", "A", "B"]

    def test_empty(self) -> None:
        assert acquisition_order([]) == []


@pytest.mark.unit
class TestBandSource:
    """Verify the abstract adapter contract."""

    def test_cannot_instantiate_abstract(self) -> None:
        with pytest.raises(TypeError):
            BandSource()  # type: ignore[abstract]

    def test_subclass(self) -> None:
        class _Empty(BandSource):
            _name = "empty"

            def query(self, aoi: AOI, window: DateWindow) -> list[MultispectralImage]:
                return []

        source = _Empty(scale_factor=1.0)
        assert source.name == "empty"
        assert source.scale_factor == 1.0

    @pytest.mark.parametrize("scale", [0.0, -1.0])
    def test_non_positive_scale_rejected(self, scale: float) -> None:
        with pytest.raises(ValueError, match="scale_factor"):
            InMemoryBandSource([], scale_factor=scale)


@pytest.mark.unit
class TestInMemoryBandSource:
    """Verify in-memory scene filtering."""

    def test_default_scale(self) -> None:
        source = InMemoryBandSource([])
        assert source.name == "memory"
        assert source.scale_factor == SENTINEL2_L2A_SCALE

    def test_filters_window_and_footprint(
        self, field: AOI, make_image: ImageFactory
    ) -> None:
        inside = make_image(acquired=date(2024, 9, 10), image_id="in")
        too_late = make_image(acquired=date(2024, 11, 1), image_id="late")
        elsewhere = make_image(image_id="far", bounds=(10.0, 10.0, 11.0, 11.0))
        source = InMemoryBandSource([too_late, elsewhere, inside])

        scenes = source.query(field, date_window("2024-09-01"))

        assert [img.image_id for img in scenes] == ["in"]

    def test_results_ordered(self, field: AOI, make_image: ImageFactory) -> None:
        late = make_image(acquired=date(2024, 10, 1), image_id="late")
        early = make_image(acquired=date(2024, 8, 1), image_id="early")
        source = InMemoryBandSource([late, early])

        scenes = source.query(field, date_window("2024-09-01"))

        assert [img.image_id for img in scenes] == ["early", "late"]

    def test_stamps_scale_factor(self, field: AOI, make_image: ImageFactory) -> None:
        source = InMemoryBandSource([make_image(scale_factor=1.0)], scale_factor=2.0)
        (scene,) = source.query(field, date_window("2024-09-01"))
        assert scene.scale_factor == 2.0

    def test_no_match_returns_empty(self, field: AOI, make_image: ImageFactory) -> None:
        source = InMemoryBandSource([make_image(acquired=date(2020, 1, 1))])
        assert source.query(field, date_window("2024-09-01")) == []
