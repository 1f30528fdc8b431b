from .models import ScheduledStopTime, StopTimes
from .interpolation import (
    Gap,
    find_gaps,
    find_unresolved,
    interpolate,
    interpolate_lf,
    interpolate_stop_times,
    interpolate_stop_times_by_shape_dist,
)

__all__ = [
    "ScheduledStopTime",
    "StopTimes",
    "Gap",
    "find_gaps",
    "find_unresolved",
    "interpolate",
    "interpolate_lf",
    "interpolate_stop_times",
    "interpolate_stop_times_by_shape_dist",
]
