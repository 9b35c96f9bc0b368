# src/dayroute/core/timeutil.py

"""
Wall-clock helpers.

Task windows are local "HH:mm" strings (24h, zero-padded, no date component),
so lexicographic comparison is chronological within a single day.
"""

from __future__ import annotations

import re
from datetime import UTC, date, datetime

MINUTES_PER_DAY = 24 * 60

_HHMM_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_hhmm(value: str) -> int:
    """Return minutes since midnight for an "HH:mm" string."""
    m = _HHMM_RE.match((value or "").strip())
    if not m:
        raise ValueError(f"invalid HH:mm time: {value!r}")
    return int(m.group(1)) * 60 + int(m.group(2))


def format_hhmm(minutes: int) -> str:
    minutes = int(minutes) % MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def add_minutes(value: str, minutes: int) -> str:
    """Shift an "HH:mm" time, wrapping modulo 24h."""
    return format_hhmm(parse_hhmm(value) + int(minutes))


def is_valid_hhmm(value: str) -> bool:
    return bool(_HHMM_RE.match(value or ""))


def minutes_since_midnight(now: datetime) -> int:
    return now.hour * 60 + now.minute


def seconds_since_midnight(now: datetime) -> int:
    return now.hour * 3600 + now.minute * 60 + now.second


def utc_now() -> datetime:
    return datetime.now(UTC)


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD date (ValueError on bad input)."""
    return date.fromisoformat((value or "").strip())


class SystemClock:
    """Local wall clock (single timezone, the machine's own)."""

    def now(self) -> datetime:
        return datetime.now().astimezone()

    def today(self) -> date:
        return self.now().date()
