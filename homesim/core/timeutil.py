from datetime import datetime, timezone


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def now_ms() -> int:
    """Epoch milliseconds, the timestamp unit stored in every history entry."""
    return int(now_utc().timestamp() * 1000)
