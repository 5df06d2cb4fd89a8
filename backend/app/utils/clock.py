"""HH:MM clock helpers used by the itinerary trimmer."""

import re

_CLOCK_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})")

MINUTES_PER_DAY = 24 * 60


def parse_clock(value: str | None) -> int | None:
    """Parse an ``HH:MM`` string into minutes after midnight.

    Trailing text is tolerated (``"09:30 (approx)"``). Returns None when the
    value cannot be read as a clock time.
    """
    if not value:
        return None
    match = _CLOCK_RE.match(value)
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def format_clock(minutes: int) -> str:
    """Format minutes after midnight as ``HH:MM``, clamped to the same day."""
    minutes = max(0, min(MINUTES_PER_DAY - 1, minutes))
    return f"{minutes // 60:02d}:{minutes % 60:02d}"
