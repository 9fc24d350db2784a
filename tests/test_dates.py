"""Tests for target date parsing and acquisition windows."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from vegindex.dates import DateWindow, date_window, parse_date
from vegindex.exceptions import InvalidDateError


@pytest.mark.unit
class TestParseDate:
    """Verify strict YYYY-MM-DD parsing."""

    def test_valid(self) -> None:
        assert parse_date("2024-09-01") == date(2024, 9, 1)

    def test_surrounding_whitespace(self) -> None:
        assert parse_date(" 2024-09-01 ") == date(2024, 9, 1)

    @pytest.mark.parametrize(
        "text",
        ["", "2024/09/01", "2024-9-1", "01-09-2024", "2024-13-01", "2023-02-29", "yesterday"],
    )
    def test_invalid(self, text: str) -> None:
        with pytest.raises(InvalidDateError):
            parse_date(text)


@pytest.mark.unit
class TestDateWindow:
    """Verify the symmetric calendar-month window."""

    def test_two_months_each_way(self) -> None:
        window = date_window("2024-09-01")
        assert window.center == date(2024, 9, 1)
        assert window.as_strings() == ("2024-07-01", "2024-11-01")

    def test_year_rollover(self) -> None:
        assert date_window("2024-12-15").as_strings() == ("2024-10-15", "2025-02-15")
        assert date_window("2024-01-10").as_strings() == ("2023-11-10", "2024-03-10")

    def test_month_end_clamping(self) -> None:
        window = date_window("2024-03-31", months=1)
        assert window.start == date(2024, 2, 29)
        assert window.end == date(2024, 4, 30)

    def test_accepts_date_and_datetime(self) -> None:
        assert date_window(date(2024, 9, 1)) == date_window("2024-09-01")
        assert date_window(datetime(2024, 9, 1, 12, 30)) == date_window("2024-09-01")

    def test_half_open(self) -> None:
        window = date_window("2024-09-01")
        assert window.contains(date(2024, 7, 1))
        assert window.contains(date(2024, 10, 31))
        assert not window.contains(date(2024, 11, 1))
        assert not window.contains(date(2024, 6, 30))

    def test_contains_datetime(self) -> None:
        window = date_window("2024-09-01")
        assert window.contains(datetime(2024, 9, 5, 18, 45))

    def test_non_positive_months(self) -> None:
        with pytest.raises(InvalidDateError):
            date_window("2024-09-01", months=0)

    def test_invalid_date(self) -> None:
        with pytest.raises(InvalidDateError, match="2024-02-30"):
            date_window("2024-02-30")

    def test_empty_window_rejected(self) -> None:
        with pytest.raises(InvalidDateError):
            DateWindow(center=date(2024, 9, 1), start=date(2024, 9, 1), end=date(2024, 9, 1))

    @pytest.mark.parametrize("text", ["0001-01-15", "9999-12-01"])
    def test_window_past_calendar_limits(self, text: str) -> None:
        with pytest.raises(InvalidDateError, match=text):
            date_window(text)

    def test_window_at_calendar_limits(self) -> None:
        window = date_window("0001-03-15")
        assert window.start == date(1, 1, 15)
        assert window.end == date(1, 5, 15)
