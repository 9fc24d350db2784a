"""Temporal window handling.

A request names a single target date; imagery is searched in a
symmetric calendar-month window around it.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import MAXYEAR, MINYEAR, date, datetime

from vegindex.exceptions import InvalidDateError

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
DEFAULT_WINDOW_MONTHS = 2


def _add_months(day: date, months: int) -> date:
    """Shift *day* by whole calendar months, clamping to month end.

    Raises:
        InvalidDateError: If the shifted date leaves the supported
            calendar range (years 1 to 9999).

    Example:
        >>> _add_months(date(2024, 3, 31), -1)
        datetime.date(2024, 2, 29)
    """
    month_index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    if not MINYEAR <= year <= MAXYEAR:
        raise InvalidDateError(
            what=f"Invalid date window around {day.isoformat()}",
            cause=f"Shifting by {months} month(s) leaves years {MINYEAR}-{MAXYEAR}",
            fix="Pick a target date further from the calendar limits",
        )
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def parse_date(text: str) -> date:
    """Parse a strict ``YYYY-MM-DD`` date string.

    Args:
        text: Date string such as ``"2024-09-01"``.

    Returns:
        The parsed calendar date.

    Raises:
        InvalidDateError: If the string is malformed or names a day
            that does not exist (e.g. ``"2023-02-29"``).
    """
    if not isinstance(text, str) or not _DATE_PATTERN.match(text.strip()):
        raise InvalidDateError(
            what=f"Invalid date: {text!r}",
            cause="Expected the format YYYY-MM-DD",
            fix="Enter a date such as 2024-09-01",
        )
    try:
        return datetime.strptime(text.strip(), "%Y-%m-%d").date()
    except ValueError as exc:
        raise InvalidDateError(
            what=f"Invalid date: {text!r}",
            cause=str(exc),
            fix="Enter a calendar date that exists",
        ) from None


@dataclass(frozen=True)
class DateWindow:
    """Half-open acquisition window ``[start, end)`` around a centre date.

    Args:
        center: Target date requested by the caller.
        start: First day included in the window.
        end: First day after the window.

    Raises:
        InvalidDateError: If ``start`` is not before ``end``.
    """

    center: date
    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise InvalidDateError(
                what="Invalid date window",
                cause=f"start {self.start} is not before end {self.end}",
                fix="Use a positive window length",
            )

    def contains(self, day: date | datetime) -> bool:
        """Return whether *day* falls in ``[start, end)``."""
        if isinstance(day, datetime):
            day = day.date()
        return self.start <= day < self.end

    def as_strings(self) -> tuple[str, str]:
        """Return ``(start, end)`` as ISO date strings."""
        return (self.start.isoformat(), self.end.isoformat())


def date_window(
    value: str | date,
    months: int = DEFAULT_WINDOW_MONTHS,
) -> DateWindow:
    """Build the acquisition window around a target date.

    Args:
        value: Target date as ``YYYY-MM-DD`` string or ``date``.
        months: Calendar months before and after the target date.

    Returns:
        A ``DateWindow`` spanning ``[value - months, value + months)``.

    Raises:
        InvalidDateError: If *value* cannot be parsed or *months* < 1.

    Example:
        >>> w = date_window("2024-09-01")
        >>> w.as_strings()
        ('2024-07-01', '2024-11-01')
    """
    if months < 1:
        raise InvalidDateError(
            what="Invalid date window",
            cause=f"months={months}",
            fix="Use a window of at least one month",
        )
    if isinstance(value, datetime):
        center = value.date()
    elif isinstance(value, date):
        center = value
    else:
        center = parse_date(value)
    return DateWindow(
        center=center,
        start=_add_months(center, -months),
        end=_add_months(center, months),
    )
