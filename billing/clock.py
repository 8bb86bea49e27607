from datetime import datetime


def now() -> datetime:
    """Current local wall-clock time, naive."""
    return datetime.now()


def to_local(value: datetime) -> datetime:
    """Normalise a stored timestamp to naive local time for comparisons.

    Documents written by other tools may carry UTC offsets (``...Z``);
    everything in this service compares against naive local time.
    """
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value
