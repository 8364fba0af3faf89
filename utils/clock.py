from datetime import datetime, timezone


def utcnow():
    """Naive UTC timestamp; the database columns carry no tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value):
    if value is None:
        return None
    return value.replace(microsecond=0).isoformat() + "Z"
