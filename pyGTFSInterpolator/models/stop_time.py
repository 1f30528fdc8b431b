from datetime import timedelta
from typing import Optional

from ..utils import format_gtfs_time


class ScheduledStopTime:
    """
    One stop's scheduled timing within one trip.

    Attributes:
        stop_sequence (int): Position of the stop within the trip.
        arrival_time (Optional[timedelta]): Time since the start of the service day,
            or None when the feed does not provide it.
        departure_time (Optional[timedelta]): Same as `arrival_time`.
        exact_times (bool): True when the time is a schedule-exact timepoint.
        shape_dist_traveled (Optional[float]): Cumulative distance along the trip's shape.
        trip_id (Optional[str]): Trip the stop time belongs to.
        stop_id (Optional[str]): Stop served at this position.
    """

    __slots__ = (
        "stop_sequence",
        "arrival_time",
        "departure_time",
        "exact_times",
        "shape_dist_traveled",
        "trip_id",
        "stop_id",
    )

    def __init__(
        self,
        stop_sequence: int,
        arrival_time: Optional[timedelta] = None,
        departure_time: Optional[timedelta] = None,
        exact_times: bool = False,
        shape_dist_traveled: Optional[float] = None,
        trip_id: Optional[str] = None,
        stop_id: Optional[str] = None,
    ):
        self.stop_sequence = stop_sequence
        self.arrival_time = arrival_time
        self.departure_time = departure_time
        self.exact_times = exact_times
        self.shape_dist_traveled = shape_dist_traveled
        self.trip_id = trip_id
        self.stop_id = stop_id

    def copy(self) -> "ScheduledStopTime":
        return ScheduledStopTime(**{k: getattr(self, k) for k in self.__slots__})

    def to_dict(self) -> dict:
        return {k: getattr(self, k) for k in self.__slots__}

    def __eq__(self, other):
        if not isinstance(other, ScheduledStopTime):
            return NotImplemented
        return all(getattr(self, k) == getattr(other, k) for k in self.__slots__)

    def __repr__(self):
        return (
            f"ScheduledStopTime(stop_sequence={self.stop_sequence}, "
            f"arrival_time={format_gtfs_time(self.arrival_time) or None}, "
            f"departure_time={format_gtfs_time(self.departure_time) or None}, "
            f"exact_times={self.exact_times}, shape_dist_traveled={self.shape_dist_traveled})"
        )
