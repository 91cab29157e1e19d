"""Small text helpers shared by the parser and the store."""

import re

DURATION_PATTERN = re.compile(
    r"P(?:\d+D)?T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+(?:\.\d+)?)S)?"
)


def lower_ascii(text: str | None) -> str:
    """Lowercase text and drop everything but ASCII letters and digits."""
    if not text:
        return ""
    return re.sub(r"[^a-z0-9]", "", text.lower())


def parse_duration(value: str | None) -> int | None:
    """Parse an ISO 8601 duration such as PT3M45S into whole seconds.

    Returns None when the value is empty or not a duration.
    """
    if not value:
        return None
    match = DURATION_PATTERN.search(value.strip())
    if not match:
        return None
    hours = int(match.group("hours") or 0)
    minutes = int(match.group("minutes") or 0)
    seconds = float(match.group("seconds") or 0)
    return hours * 3600 + minutes * 60 + int(seconds)
