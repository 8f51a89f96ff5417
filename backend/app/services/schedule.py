"""Second-of-minute scheduling helpers."""

from datetime import datetime, timedelta


def seconds_until(now: datetime, second: int) -> float:
    """Seconds from ``now`` until the next wall-clock time at ``second`` past the minute.

    Exactly on the mark returns a full minute, so a loop that just ran
    does not fire twice.
    """
    target = now.replace(second=second, microsecond=0)
    if target <= now:
        target += timedelta(minutes=1)
    return (target - now).total_seconds()
