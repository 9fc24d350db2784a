"""vegindex exception hierarchy.

All exceptions follow a three-part message pattern: what failed,
likely cause, and suggested fix. Pipeline stages attach the request
context (AOI, date, index name) before the error reaches the caller.
"""

from __future__ import annotations

from typing import Any


class VegIndexError(Exception):
    """Base exception for all vegindex errors.

    Args:
        what: Description of what failed.
        cause: Likely cause of the failure.
        fix: Suggested action to resolve the issue.
        **context: Request context (e.g. ``aoi``, ``date``, ``index``).

    Example:
        >>> raise VegIndexError(
        ...     what="Operation failed",
        ...     cause="Unexpected internal state",
        ...     fix="Please report this issue",
        ... )
    """

    def __init__(
        self,
        what: str,
        cause: str = "",
        fix: str = "",
        **context: Any,
    ) -> None:
        """Initialize with structured error context.

        Args:
            what: Description of what failed.
            cause: Likely cause of the failure.
            fix: Suggested action to resolve the issue.
            **context: Request context attached to the error.
        """
        self.what = what
        self.cause = cause
        self.fix = fix
        self.context: dict[str, Any] = dict(context)
        super().__init__(self._format_message())

    def add_context(self, **context: Any) -> VegIndexError:
        """Merge request context into the error and refresh its message.

        Keys already present are kept, so the innermost stage wins.

        Args:
            **context: Context values to attach.

        Returns:
            The same exception instance, for ``raise exc.add_context(...)``.
        """
        for key, value in context.items():
            self.context.setdefault(key, value)
        self.args = (self._format_message(),)
        return self

    def _format_message(self) -> str:
        """Build the multi-line error message from parts.

        Returns:
            Formatted message with optional Cause, Fix and Context lines.
        """
        parts = [self.what]
        if self.cause:
            parts.append(f"Cause: {self.cause}")
        if self.fix:
            parts.append(f"Fix: {self.fix}")
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"Context: {ctx}")
        return "\n".join(parts)


class ConfigurationError(VegIndexError):
    """Raised for configuration file and settings errors.

    Example:
        >>> raise ConfigurationError(
        ...     what="Cannot read config file",
        ...     cause="File not found: ~/.vegindex/config.json",
        ...     fix="Create the file or unset VEGINDEX_CONFIG",
        ... )
    """


class InvalidAOIError(VegIndexError):
    """Raised when the area of interest is empty or degenerate."""


class InvalidDateError(VegIndexError):
    """Raised when a date string is not a valid ``YYYY-MM-DD`` date."""


class NoImageryError(VegIndexError):
    """Raised when no candidate image survives the composite filters.

    Example:
        >>> raise NoImageryError(
        ...     what="No imagery available for compositing",
        ...     cause="All 4 candidates exceeded 10% scene cloud cover",
        ...     fix="Pick another date or widen the window",
        ... )
    """


class MissingBandError(VegIndexError):
    """Raised when an image or composite lacks a required band.

    Args:
        band: Name of the missing band.
        what: Description of what failed.
        cause: Likely cause of the failure.
        fix: Suggested action to resolve the issue.
        **context: Request context attached to the error.
    """

    def __init__(
        self,
        band: str,
        what: str = "",
        cause: str = "",
        fix: str = "",
        **context: Any,
    ) -> None:
        self.band = band
        super().__init__(
            what=what or f"Missing band: {band!r}",
            cause=cause,
            fix=fix,
            **context,
        )


class UnknownIndexError(VegIndexError):
    """Raised when a spectral index name is not registered.

    Args:
        name: The requested index name.
        cause: Likely cause of the failure.
        fix: Suggested action to resolve the issue.
        **context: Request context attached to the error.
    """

    def __init__(
        self,
        name: str,
        cause: str = "",
        fix: str = "",
        **context: Any,
    ) -> None:
        self.name = name
        super().__init__(
            what=f"Unknown spectral index: {name!r}",
            cause=cause,
            fix=fix,
            **context,
        )


class DivisionSingularityError(VegIndexError):
    """Raised in strict evaluation when a formula denominator is zero.

    Args:
        count: Number of pixels with a zero denominator.
        what: Description of what failed.
        cause: Likely cause of the failure.
        fix: Suggested action to resolve the issue.
        **context: Request context attached to the error.
    """

    def __init__(
        self,
        count: int,
        what: str = "",
        cause: str = "",
        fix: str = "",
        **context: Any,
    ) -> None:
        self.count = count
        super().__init__(
            what=what or f"Zero denominator at {count} pixel(s)",
            cause=cause,
            fix=fix,
            **context,
        )


class PipelineCancelledError(VegIndexError):
    """Raised when a request is cancelled between pipeline stages.

    Args:
        stage: Name of the stage that was about to run.
        **context: Request context attached to the error.
    """

    def __init__(self, stage: str, **context: Any) -> None:
        self.stage = stage
        super().__init__(
            what=f"Request cancelled before stage {stage!r}",
            cause="The caller cancelled the request",
            **context,
        )


class GridMismatchError(VegIndexError):
    """Raised when scenes to be composited do not share one pixel grid.

    Example:
        >>> raise GridMismatchError(
        ...     what="Cannot composite image S2B_x",
        ...     cause="Footprint is offset from S2A_y by 0.001 degrees",
        ...     fix="Resample scenes to a common grid before compositing",
        ... )
    """
