import re

ISO8601_DURATION_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")


def _duration_parts(duration) -> tuple[int, int, int] | None:
    if not isinstance(duration, str) or not duration:
        return None
    match = ISO8601_DURATION_RE.match(duration)
    if not match:
        return None
    hours = int(match.group(1) or 0)
    minutes = int(match.group(2) or 0)
    seconds = int(match.group(3) or 0)
    return hours, minutes, seconds


def iso8601_duration_to_seconds(duration: str | None) -> int:
    parts = _duration_parts(duration)
    if parts is None:
        return 0
    hours, minutes, seconds = parts
    return hours * 3600 + minutes * 60 + seconds


def format_duration(duration: str | None) -> str:
    """
    Player-style label: H:MM:SS when there is an hour component, else M:SS.
    Unparseable input gives an empty label rather than "0:00".
    """
    parts = _duration_parts(duration)
    if parts is None:
        return ""
    hours, minutes, seconds = parts
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def describe_duration(duration: str | None) -> tuple[int, str]:
    return iso8601_duration_to_seconds(duration), format_duration(duration)
