from .stop_time import ScheduledStopTime
from .stop_times import StopTimes

__all__ = [
    ScheduledStopTime.__name__,
    StopTimes.__name__,
]
