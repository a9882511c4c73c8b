"""Unit tests for metrics.time_utils."""

import math

import pytest

from metrics import WorkCalendar, format_minutes_to_time, parse_time_to_minutes


class TestParseTimeToMinutes:
    """Tests for parse_time_to_minutes."""

    @pytest.mark.parametrize(
        "text, minutes",
        [
            ("30 minutes", 30),
            ("45 min", 45),
            ("2 hours", 120),
            ("2h", 120),
            ("1.5 hours", 90),
            ("2 hours 30 minutes", 150),
            ("1-2 hours", 90),
            ("10 to 20 minutes", 15),
            ("(15 minutes)", 15),
            ("1 day", 480),
            ("3 working days", 1440),
            ("2-3 days", 1200),
            ("1 week", 2400),
            ("1-2 weeks", 3600),
            ("0 minutes", 0),
        ],
    )
    def test_known_formats(self, text, minutes):
        assert parse_time_to_minutes(text) == minutes

    @pytest.mark.parametrize("text", [None, "", "Unknown", "TBD", "n/a", "soon", 42])
    def test_unknown_durations(self, text):
        assert parse_time_to_minutes(text) is None

    def test_whole_results_are_ints(self):
        assert isinstance(parse_time_to_minutes("1.5 hours"), int)
        assert parse_time_to_minutes("0.25 hours") == 15
        assert parse_time_to_minutes("1.25 minutes") == 1.25

    def test_calendar_sets_day_length(self):
        calendar = WorkCalendar(hours_per_day=6, days_per_week=4)

        assert parse_time_to_minutes("1 day", calendar) == 360
        assert parse_time_to_minutes("1 week", calendar) == 1440


class TestFormatMinutesToTime:
    """Tests for format_minutes_to_time."""

    @pytest.mark.parametrize(
        "minutes, text",
        [
            (0, "0 minutes"),
            (1, "1 minute"),
            (45, "45 minutes"),
            (60, "1 hour"),
            (150, "2 hours 30 minutes"),
            (89.5, "1 hour 30 minutes"),
            (1440, "3 days"),
            (1500, "3 days 1 hour"),
            (1681, "3 days 4 hours 1 minute"),
        ],
    )
    def test_formatting(self, minutes, text):
        assert format_minutes_to_time(minutes) == text

    @pytest.mark.parametrize("minutes", [None, -5, math.nan, math.inf, "abc"])
    def test_unknown(self, minutes):
        assert format_minutes_to_time(minutes) == "Unknown"

    def test_calendar_sets_day_length(self):
        assert format_minutes_to_time(1440, WorkCalendar(hours_per_day=6)) == "4 days"
