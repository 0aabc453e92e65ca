"""Human-readable formatting helpers for result objects."""

from datetime import datetime, timezone

_UNIT = 1024
_PREFIXES = "KMGTPE"


def format_bytes(size: int) -> str:
    """Format a byte count using binary units (e.g. ``1.5 KB``).

    Counts below 1024 are printed as whole bytes.
    """
    if size < _UNIT:
        return f"{size} B"
    div, exp = _UNIT, 0
    n = size // _UNIT
    while n >= _UNIT:
        div *= _UNIT
        exp += 1
        n //= _UNIT
    return f"{size / div:.1f} {_PREFIXES[exp]}B"


def format_time(value: datetime | None) -> str:
    """Render a datetime as RFC 3339. Naive datetimes are treated as UTC."""
    if value is None:
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat(timespec="seconds")


def format_duration(seconds: float) -> str:
    """Render an elapsed duration compactly (``850ms``, ``2.418s``, ``3m12.5s``)."""
    if seconds < 0:
        seconds = 0.0
    if seconds < 0.001:
        return f"{seconds * 1_000_000:.0f}µs"
    if seconds < 1:
        return f"{seconds * 1000:.1f}ms"
    if seconds < 60:
        return f"{seconds:.3f}s"
    minutes, rest = divmod(seconds, 60)
    hours, minutes = divmod(int(minutes), 60)
    if hours:
        return f"{hours}h{minutes}m{rest:.1f}s"
    return f"{minutes}m{rest:.1f}s"


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)
