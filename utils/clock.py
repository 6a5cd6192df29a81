from datetime import datetime, timezone


def utcnow() -> datetime:
    # Naive UTC, matching how DateTime columns are stored
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime):
    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def isoformat_utc(value: datetime):
    """Render a stored (naive UTC) or aware instant as ``YYYY-MM-DDTHH:MM:SSZ``."""
    if value is None:
        return None
    return to_naive_utc(value).replace(microsecond=0).isoformat() + "Z"
