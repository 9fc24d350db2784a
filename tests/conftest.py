"""Shared test fixtures for the vegindex test suite."""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from typing import Any

import numpy as np
import pytest

from vegindex._types import Bounds, MultispectralImage
from vegindex.aoi import AOI
from vegindex.config import Config

# Sentinel-2 L2A digital numbers (reflectance x 10000) of a vegetated pixel.
DEFAULT_DN: dict[str, float] = {
    "B1": 500.0,
    "B2": 500.0,
    "B3": 800.0,
    "B4": 1000.0,
    "B5": 1200.0,
    "B7": 2500.0,
    "B8": 4000.0,
    "B8A": 3800.0,
    "B11": 2000.0,
}

ImageFactory = Callable[..., MultispectralImage]


@pytest.fixture(autouse=True)
def _no_config_file(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a VEGINDEX_CONFIG set in the shell from leaking into tests."""
    monkeypatch.delenv("VEGINDEX_CONFIG", raising=False)


@pytest.fixture
def test_config() -> Config:
    """Return a fresh default Config instance for test isolation."""
    return Config()


@pytest.fixture
def field() -> AOI:
    """Return a 1 km square AOI near Davis, California."""
    return AOI.square(lon=-121.7415, lat=38.5449, size_m=1000)


@pytest.fixture
def make_image(field: AOI) -> ImageFactory:
    """Return a factory for synthetic Sentinel-2 scenes over ``field``.

    Band values are digital numbers with ``scale_factor=10000`` unless
    overridden. ``qa`` fills the QA60 band; ``qa=None`` omits it.
    """

    def _factory(
        *,
        acquired: date = date(2024, 9, 1),
        cloud_pct: float = 2.0,
        image_id: str = "S2A_20240901",
        qa: Any = 0,
        values: dict[str, Any] | None = None,
        drop: tuple[str, ...] = (),
        shape: tuple[int, int] = (10, 10),
        bounds: Bounds | None = None,
        scale_factor: float = 10000.0,
        mask: np.ndarray | None = None,
    ) -> MultispectralImage:
        merged = {**DEFAULT_DN, **(values or {})}
        bands: dict[str, np.ndarray] = {}
        for name, value in merged.items():
            if name in drop:
                continue
            arr = np.asarray(value, dtype=np.float64)
            bands[name] = np.full(shape, arr) if arr.ndim == 0 else arr
        if qa is not None:
            qa_arr = np.asarray(qa, dtype=np.uint16)
            bands["QA60"] = np.full(shape, qa_arr) if qa_arr.ndim == 0 else qa_arr
        return MultispectralImage(
            bands=bands,
            acquired=acquired,
            cloud_pct=cloud_pct,
            bounds=bounds if bounds is not None else field.bounds,
            image_id=image_id,
            scale_factor=scale_factor,
            mask=mask,
        )

    return _factory
