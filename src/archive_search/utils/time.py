from datetime import datetime, timezone

WIRE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def utc_now() -> datetime:
    """Get the current UTC time, truncated to whole seconds."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def to_wire(ts: datetime) -> str:
    """Format a timestamp the way the search API expects it."""
    return ts.astimezone(timezone.utc).strftime(WIRE_FORMAT)
