from .math_utils import HOURS_PER_YEAR, annualize_funding_rate
from .time_utils import SECONDS_PER_HOUR, seconds_until_next_hour, time_until_next_hour
from .task_utils import TimerKey, TimerManager, TimerPurpose, safe_close_connection

__all__ = [
    "HOURS_PER_YEAR",
    "annualize_funding_rate",
    "SECONDS_PER_HOUR",
    "seconds_until_next_hour",
    "time_until_next_hour",
    "TimerKey",
    "TimerManager",
    "TimerPurpose",
    "safe_close_connection",
]
