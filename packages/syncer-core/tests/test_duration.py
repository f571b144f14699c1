"""Tests for Go-style duration parsing and formatting."""

from datetime import timedelta

import pytest

from syncer_core.duration import format_duration, parse_duration
from syncer_core.exceptions import InvalidDurationFormat, SyncerConfigError


class TestParseDuration:
    """Tests for parse_duration."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("30s", timedelta(seconds=30)),
            ("1m30s", timedelta(seconds=90)),
            ("250ms", timedelta(milliseconds=250)),
            ("1h", timedelta(hours=1)),
            ("2h45m", timedelta(hours=2, minutes=45)),
            ("1.5h", timedelta(minutes=90)),
            (".5s", timedelta(milliseconds=500)),
            ("10us", timedelta(microseconds=10)),
            ("10µs", timedelta(microseconds=10)),
            ("0", timedelta(0)),
            ("-1.5s", timedelta(seconds=-1.5)),
            ("+3s", timedelta(seconds=3)),
        ],
    )
    def test_valid_text(self, text, expected):
        """Valid duration text parses to the expected timedelta."""
        assert parse_duration(text) == expected

    def test_nanoseconds_truncated_to_microseconds(self):
        """Sub-microsecond precision is dropped."""
        assert parse_duration("1500ns") == timedelta(microseconds=1)
        assert parse_duration("999ns") == timedelta(0)

    @pytest.mark.parametrize("text", ["", "abc", "s", "1x", "-", "1.s5", "3 s"])
    def test_malformed_text(self, text):
        """Malformed text raises InvalidDurationFormat carrying the input."""
        with pytest.raises(InvalidDurationFormat) as exc_info:
            parse_duration(text)
        assert exc_info.value.text == text

    def test_missing_unit(self):
        """A bare number other than 0 is rejected with a missing unit message."""
        with pytest.raises(InvalidDurationFormat, match="missing unit"):
            parse_duration("30")

    @pytest.mark.parametrize("text", ["9999999999999h", "2562048h", "-9999999999999999999s"])
    def test_out_of_range(self, text):
        """Durations beyond int64 nanoseconds are rejected."""
        with pytest.raises(InvalidDurationFormat, match="out of range"):
            parse_duration(text)

    def test_is_startup_error(self):
        """InvalidDurationFormat is treated as a fatal startup error."""
        with pytest.raises(SyncerConfigError):
            parse_duration("forever")


class TestFormatDuration:
    """Tests for format_duration."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (timedelta(0), "0s"),
            (timedelta(seconds=30), "30s"),
            (timedelta(seconds=1.5), "1.5s"),
            (timedelta(minutes=90), "1h30m0s"),
            (timedelta(seconds=90), "1m30s"),
            (timedelta(milliseconds=250), "250ms"),
            (timedelta(microseconds=1500), "1.5ms"),
            (timedelta(microseconds=7), "7µs"),
            (timedelta(seconds=-2), "-2s"),
        ],
    )
    def test_canonical_text(self, value, expected):
        """Durations render as canonical Go-style text."""
        assert format_duration(value) == expected

    def test_formatted_text_parses_back(self):
        """Formatting then parsing yields the original value."""
        value = timedelta(hours=26, minutes=3, seconds=4, microseconds=500)
        assert parse_duration(format_duration(value)) == value
