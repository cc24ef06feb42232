"""Conversions between float seconds and textual timestamps.

WHY: Internally every time is a float number of seconds. Two text forms
exist at the edges: SRT cue timestamps ("HH:MM:SS,mmm") written into the
subtitle file the renderer burns in, and the compact "M:SS.cc" form used
when a person edits scene boundaries by hand.

HOW: Formatting works on a rounded total-millisecond (or centisecond)
count, then splits it into fields, so a value like 59.9996 rolls over
into the next second instead of producing a four-digit millisecond field.
Parsing is the exact inverse and raises ValueError on malformed input.

RULES:
- Negative seconds are clamped to zero
- seconds_to_srt_time output always matches HH:MM:SS,mmm (hours may exceed 99)
- srt_time_to_seconds(seconds_to_srt_time(x)) is within 1 ms of x
- parse_clock accepts "M:SS.cc" or bare seconds ("12.5")
"""

from __future__ import annotations

import math
import re

_SRT_TIME_RE = re.compile(r"^\s*(\d+):([0-5]\d):([0-5]\d)[,.](\d{1,3})\s*$")
_CLOCK_RE = re.compile(r"^\s*(\d+):(\d{1,2}(?:\.\d*)?)\s*$")


def seconds_to_srt_time(seconds: float) -> str:
    """Convert seconds to SRT timestamp format: HH:MM:SS,mmm"""
    total_ms = int(round(max(seconds, 0.0) * 1000))
    hours, rest = divmod(total_ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    secs, millis = divmod(rest, 1000)
    return "{:02d}:{:02d}:{:02d},{:03d}".format(hours, minutes, secs, millis)


def srt_time_to_seconds(timestamp: str) -> float:
    """Parse an SRT timestamp ("HH:MM:SS,mmm" or "HH:MM:SS.mmm") into seconds."""
    match = _SRT_TIME_RE.match(timestamp)
    if match is None:
        raise ValueError("Invalid SRT timestamp: {!r}".format(timestamp))
    hours, minutes, secs, millis = match.groups()
    return (
        int(hours) * 3600
        + int(minutes) * 60
        + int(secs)
        + int(millis.ljust(3, "0")) / 1000.0
    )


def format_clock(seconds: float) -> str:
    """Format seconds as "M:SS.cc" for timeline editing."""
    total_cs = int(round(max(seconds, 0.0) * 100))
    minutes, rest = divmod(total_cs, 6000)
    secs, centis = divmod(rest, 100)
    return "{}:{:02d}.{:02d}".format(minutes, secs, centis)


def parse_clock(text: str) -> float:
    """Parse "M:SS.cc" or a bare number of seconds.

    The fractional part is a decimal fraction of a second, so "1:05.5"
    is 65.5 seconds.
    """
    match = _CLOCK_RE.match(text)
    if match is not None:
        minutes, secs = match.groups()
        seconds = float(secs)
        if seconds >= 60:
            raise ValueError("Seconds field out of range: {!r}".format(text))
        return int(minutes) * 60 + seconds

    try:
        value = float(text)
    except ValueError:
        raise ValueError("Invalid time value: {!r}".format(text)) from None
    if value < 0 or not math.isfinite(value):
        raise ValueError("Invalid time value: {!r}".format(text))
    return value
