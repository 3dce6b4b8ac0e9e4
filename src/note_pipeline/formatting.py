"""Deterministic formatting helpers for durations and time ranges."""

import re

_ISO_DURATION = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")


def format_duration(seconds: int) -> str:
    """Format seconds as H:MM:SS or M:SS for video duration display.

    Args:
        seconds: Duration in seconds.

    Returns:
        Formatted duration string. Hours are shown only when non-zero.

    Examples:
        >>> format_duration(125)
        "2:05"
        >>> format_duration(3723)
        "1:02:03"
    """
    seconds = max(0, int(seconds))
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def _iso_components(encoded: str) -> tuple[int, int, int] | None:
    match = _ISO_DURATION.search(encoded or "")
    if not match:
        return None
    hours, minutes, seconds = (int(group or 0) for group in match.groups())
    return hours, minutes, seconds


def parse_iso_duration(encoded: str) -> str:
    """Convert an ISO-8601 duration (PT#H#M#S) into H:MM:SS or M:SS.

    Examples:
        >>> parse_iso_duration("PT1H2M3S")
        "1:02:03"
        >>> parse_iso_duration("PT5M")
        "5:00"
        >>> parse_iso_duration("garbage")
        "0:00"
    """
    components = _iso_components(encoded)
    if components is None:
        return "0:00"

    hours, minutes, seconds = components
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def iso_duration_to_seconds(encoded: str) -> int:
    """Total seconds of an ISO-8601 duration, 0 when it does not parse."""
    components = _iso_components(encoded)
    if components is None:
        return 0
    hours, minutes, seconds = components
    return hours * 3600 + minutes * 60 + seconds


def format_clock(seconds: float) -> str:
    """Render a timeline position as M:SS (minutes not zero-padded)."""
    total = max(0, int(seconds))
    return f"{total // 60}:{total % 60:02d}"


def format_time_range(start_seconds: float, end_seconds: float) -> str:
    """Render a window as "M:SS-M:SS"."""
    return f"{format_clock(start_seconds)}-{format_clock(end_seconds)}"
