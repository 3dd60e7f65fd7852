import time
from typing import Optional, Tuple

SECONDS_PER_HOUR = 3600


def seconds_until_next_hour(now: Optional[float] = None) -> float:
    """Seconds from now (epoch seconds) until the next top of the hour."""
    if now is None:
        now = time.time()
    return SECONDS_PER_HOUR - (now % SECONDS_PER_HOUR)


def time_until_next_hour(now: Optional[float] = None) -> Tuple[int, int]:
    """
    Whole minutes and remaining whole seconds until the next top of the hour.

    At xx:47:00 this returns (13, 0).
    """
    remaining_ms = int(round(seconds_until_next_hour(now) * 1000))
    minutes = remaining_ms // 60_000
    seconds = (remaining_ms % 60_000) // 1000
    return minutes, seconds
