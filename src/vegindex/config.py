"""Configuration management for vegindex.

A frozen pydantic model holds every tunable of the pipeline. Callers
either pass a ``Config`` explicitly or rely on the module-level default
managed by ``configure()``.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from vegindex.exceptions import ConfigurationError

logger = logging.getLogger("vegindex")

_CONFIG_ENV_VAR = "VEGINDEX_CONFIG"


class Config(BaseModel):
    """Pipeline configuration model.

    Immutable pydantic model. Each ``run()`` captures the active
    ``Config`` once so later ``configure()`` calls never change a
    request in flight.

    Args:
        cloud_cover_max: Scene-level cloud percentage threshold (0--100).
            Scenes at or above it are not composited.
        window_months: Months before and after the target date.
        reflectance_scale: Digital-number scale of Sentinel-2 L2A
            reflectance, used by band sources that do not set their own.
        legend_width: Default legend gradient width in pixels.
        rgb_bands: Bands rendered as the true-colour composite.
        rgb_min: Lower bound of the RGB display range.
        rgb_max: Upper bound of the RGB display range.
        tile_rows: Rows per block for tiled index evaluation.
            ``None`` evaluates the raster in one block.
        max_workers: Threads used for tiled evaluation. ``None`` is serial.

    Example:
        >>> cfg = Config(cloud_cover_max=20)
        >>> cfg.window_months
        2
    """

    model_config = ConfigDict(frozen=True, validate_default=True, extra="forbid")

    cloud_cover_max: float = 10.0
    window_months: int = 2
    reflectance_scale: float = 10000.0
    legend_width: int = 300
    rgb_bands: tuple[str, str, str] = ("B4", "B3", "B2")
    rgb_min: float = 0.0
    rgb_max: float = 0.3
    tile_rows: int | None = None
    max_workers: int | None = None

    @field_validator("cloud_cover_max")
    @classmethod
    def _validate_cloud_cover(cls, v: float) -> float:
        """Ensure the cloud threshold is a percentage."""
        if not 0.0 <= v <= 100.0:
            msg = "cloud_cover_max must be between 0 and 100"
            raise ValueError(msg)
        return v

    @field_validator("window_months")
    @classmethod
    def _validate_window(cls, v: int) -> int:
        """Ensure the window spans at least one month each way."""
        if v < 1:
            msg = "window_months must be at least 1"
            raise ValueError(msg)
        return v

    @field_validator("reflectance_scale")
    @classmethod
    def _validate_scale(cls, v: float) -> float:
        """Ensure the reflectance scale is positive."""
        if v <= 0:
            msg = "reflectance_scale must be greater than 0"
            raise ValueError(msg)
        return v

    @field_validator("legend_width")
    @classmethod
    def _validate_legend_width(cls, v: int) -> int:
        """A gradient needs two columns to hold both bounds."""
        if v < 2:
            msg = "legend_width must be at least 2"
            raise ValueError(msg)
        return v

    @field_validator("tile_rows", "max_workers")
    @classmethod
    def _validate_positive(cls, v: int | None) -> int | None:
        """Ensure optional tiling settings are positive."""
        if v is not None and v < 1:
            msg = "tile_rows and max_workers must be at least 1"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def _validate_rgb_range(self) -> Config:
        """Ensure the RGB display range is not empty."""
        if self.rgb_min >= self.rgb_max:
            msg = "rgb_min must be lower than rgb_max"
            raise ValueError(msg)
        return self


_default_config = Config()


def configure(**kwargs: Any) -> None:
    """Set module-level default configuration.

    Creates a new ``Config`` from the current defaults merged with
    the provided keyword arguments.

    Args:
        **kwargs: Any ``Config`` field (e.g. ``cloud_cover_max``,
            ``legend_width``, ``max_workers``).

    Raises:
        ValidationError: If a provided value fails pydantic validation.

    Example:
        >>> configure(cloud_cover_max=20, max_workers=4)
    """
    global _default_config  # noqa: PLW0603
    current = _default_config.model_dump()
    current.update(kwargs)
    _default_config = Config(**current)


def get_default_config() -> Config:
    """Return the current module-level default configuration.

    Returns:
        The active ``Config`` instance.
    """
    return _default_config


def resolve_config_path(explicit: str | Path | None = None) -> Path | None:
    """Resolve the configuration file path.

    Resolution order:
        1. *explicit* argument (highest priority)
        2. ``VEGINDEX_CONFIG`` environment variable

    Args:
        explicit: An explicit path from the caller.

    Returns:
        Resolved ``Path``, or ``None`` when neither source is set.
    """
    if explicit is not None:
        return Path(explicit).expanduser()
    env_value = os.environ.get(_CONFIG_ENV_VAR)
    if env_value:
        return Path(env_value).expanduser()
    return None


def load_config(path: str | Path) -> Config:
    """Load a ``Config`` from a JSON file.

    Args:
        path: Absolute or ``~``-expanded path to the JSON file.

    Returns:
        Validated configuration.

    Raises:
        ConfigurationError: If the file is missing, unreadable, not a
            JSON object, or holds invalid settings.
    """
    resolved = Path(path).expanduser()
    try:
        text = resolved.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigurationError(
            what="Cannot read config file",
            cause=f"File not found: {resolved}",
            fix=f"Create {resolved} or unset the {_CONFIG_ENV_VAR} environment variable",
        ) from None
    except PermissionError:
        raise ConfigurationError(
            what="Cannot read config file",
            cause=f"Permission denied: {resolved}",
            fix=f"Check file permissions on {resolved}",
        ) from None

    try:
        parsed: Any = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(
            what="Invalid config file format",
            cause=f"JSON parse error in {resolved}: {exc}",
            fix='Ensure the file contains a JSON object, e.g. {"cloud_cover_max": 20}',
        ) from None

    if not isinstance(parsed, dict):
        raise ConfigurationError(
            what="Invalid config file format",
            cause=f"Expected a JSON object in {resolved}, got {type(parsed).__name__}",
            fix='Ensure the file contains a JSON object, e.g. {"cloud_cover_max": 20}',
        )

    try:
        config = Config(**parsed)
    except ValidationError as exc:
        raise ConfigurationError(
            what="Invalid configuration values",
            cause=f"{resolved}: {exc.error_count()} validation error(s)",
            fix=str(exc),
        ) from None

    logger.debug("Loaded configuration from %s", resolved)
    return config
