"""Tests for seconds/timestamp conversions."""

from __future__ import annotations

import pytest

from reelsmith.core.timecode import (
    format_clock,
    parse_clock,
    seconds_to_srt_time,
    srt_time_to_seconds,
)


class TestSecondsToSrtTime:

    def test_zero(self):
        assert seconds_to_srt_time(0) == "00:00:00,000"

    def test_hours_minutes_seconds_millis(self):
        assert seconds_to_srt_time(3661.5) == "01:01:01,500"

    def test_rounding_rolls_over_into_next_second(self):
        assert seconds_to_srt_time(59.9996) == "00:01:00,000"

    def test_negative_clamps_to_zero(self):
        assert seconds_to_srt_time(-2.5) == "00:00:00,000"

    def test_millis_are_three_digits(self):
        assert seconds_to_srt_time(1.25) == "00:00:01,250"


class TestSrtTimeToSeconds:

    def test_parses_comma_separator(self):
        assert srt_time_to_seconds("01:01:01,500") == pytest.approx(3661.5)

    def test_parses_dot_separator_and_short_fraction(self):
        assert srt_time_to_seconds("00:00:01.5") == pytest.approx(1.5)

    @pytest.mark.parametrize("value", ["", "1:2:3", "00:61:00,000", "abc"])
    def test_rejects_malformed(self, value):
        with pytest.raises(ValueError):
            srt_time_to_seconds(value)

    @pytest.mark.parametrize("seconds", [0.0, 0.0004, 12.3456, 4000.999])
    def test_inverse_within_one_millisecond(self, seconds):
        assert srt_time_to_seconds(seconds_to_srt_time(seconds)) == pytest.approx(seconds, abs=0.001)


class TestClock:

    def test_format_clock(self):
        assert format_clock(65.5) == "1:05.50"
        assert format_clock(0) == "0:00.00"

    def test_parse_minutes_and_decimal_fraction(self):
        assert parse_clock("1:05.5") == pytest.approx(65.5)
        assert parse_clock("0:07.25") == pytest.approx(7.25)

    def test_parse_bare_seconds(self):
        assert parse_clock("12.5") == pytest.approx(12.5)

    def test_parse_inverts_format(self):
        assert parse_clock(format_clock(123.45)) == pytest.approx(123.45)

    @pytest.mark.parametrize("value", ["1:75", "abc", "-3", "inf", "1:2:3"])
    def test_parse_rejects_invalid(self, value):
        with pytest.raises(ValueError):
            parse_clock(value)
