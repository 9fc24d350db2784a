"""Test that vegindex package imports correctly."""

import re

import pytest

import vegindex


@pytest.mark.unit
def test_package_version_exists() -> None:
    """Verify package exposes a valid semver version string."""
    assert hasattr(vegindex, "__version__")
    assert isinstance(vegindex.__version__, str)
    assert re.match(r"^\d+\.\d+\.\d+", vegindex.__version__)


@pytest.mark.unit
def test_public_api_exports() -> None:
    """Verify every name in ``__all__`` is accessible."""
    for name in vegindex.__all__:
        assert hasattr(vegindex, name), name


@pytest.mark.unit
def test_request_api_exports() -> None:
    """Verify the request entry points are exported."""
    assert callable(vegindex.run)
    assert callable(vegindex.aoi)
    assert callable(vegindex.date_window)
    assert callable(vegindex.resolve_vis)
    assert callable(vegindex.build_legend)


@pytest.mark.unit
def test_exception_hierarchy() -> None:
    """Verify exception inheritance chain."""
    for name in (
        "ConfigurationError",
        "InvalidAOIError",
        "InvalidDateError",
        "NoImageryError",
        "MissingBandError",
        "UnknownIndexError",
        "DivisionSingularityError",
        "PipelineCancelledError",
        "GridMismatchError",
    ):
        assert issubclass(getattr(vegindex, name), vegindex.VegIndexError)
    assert issubclass(vegindex.VegIndexError, Exception)
