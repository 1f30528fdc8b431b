import logging
import warnings
from datetime import timedelta
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple

import polars as pl

from .models.stop_time import ScheduledStopTime

"""
Stop Time Interpolation Module

Fills arrival and departure times that a GTFS feed left unspecified, so every
stop of a trip ends up with a usable time.

What is performed by this module:
---------------------------------
1.  **Gap scanning**: For one time channel (`arrival_time` or `departure_time`) it
    finds every maximal run of unknown values together with the nearest known
    value before and after the run. A run at the start or the end of a trip has
    no boundary on that side.

2.  **Uniform interpolation**: The duration between the two boundaries is split
    evenly over the number of steps between them.

3.  **Distance-weighted interpolation**: Each interior stop gets a time proportional
    to its position along the shape (`shape_dist_traveled`) between the boundaries.

4.  **Frame-level interpolation**: The same two policies applied to a whole
    `stop_times` Polars LazyFrame with window expressions over `trip_id`.

Both policies are best-effort and never raise on data: a gap without a boundary,
with non-increasing boundary times, or (distance-weighted) with a missing or
non-increasing boundary distance is left unresolved. Callers that need every
time filled check the result with `find_unresolved`.

The input sequence is never modified; a new list of new records is returned.
"""

logger = logging.getLogger(__name__)

TIME_CHANNELS: Tuple[str, str] = ("arrival_time", "departure_time")
INTERPOLATION_METHODS: Tuple[str, str] = ("uniform", "shape_dist")
ZERO_TIME = timedelta(0)


class Gap(NamedTuple):
    """
    A maximal run of unknown values in one time channel.

    Attributes:
        first (int): Index of the first unknown value of the run.
        last (int): Index of the last unknown value of the run.
        before (Optional[int]): Index of the nearest known value before the run.
        after (Optional[int]): Index of the nearest known value after the run.
    """

    first: int
    last: int
    before: Optional[int]
    after: Optional[int]

    @property
    def intervals(self) -> int:
        """Number of steps between the two boundaries, 0 if one of them is missing."""
        if self.before is None or self.after is None:
            return 0
        return self.after - self.before


Strategy = Callable[[Sequence[ScheduledStopTime], Gap, str], Dict[int, timedelta]]


def is_missing(value: Optional[timedelta], zero_is_missing: bool = True) -> bool:
    """True if `value` means "time not provided by the feed"."""
    if value is None:
        return True
    return zero_is_missing and value == ZERO_TIME


def _check_channel(channel: str):
    if channel not in TIME_CHANNELS:
        raise ValueError(f"Unknown time channel '{channel}'. Use one of {TIME_CHANNELS}")


# -------------------------
# Gap Scanner
# -------------------------
def find_gaps(
    stop_times: Sequence[ScheduledStopTime],
    channel: str,
    zero_is_missing: bool = True,
) -> List[Gap]:
    """
    Finds every run of unknown times in one channel, in sequence order.

    Args:
        stop_times (Sequence[ScheduledStopTime]): One trip's stop times sorted by `stop_sequence`.
        channel (str): `arrival_time` or `departure_time`.
        zero_is_missing (bool): Treat a zero duration as unknown.

    Returns:
        List[Gap]: The runs with their boundary indexes.
    """
    _check_channel(channel)
    gaps: List[Gap] = []
    n = len(stop_times)
    i = 0
    while i < n:
        if not is_missing(getattr(stop_times[i], channel), zero_is_missing):
            i += 1
            continue

        first = i
        while i < n and is_missing(getattr(stop_times[i], channel), zero_is_missing):
            i += 1

        gaps.append(
            Gap(
                first=first,
                last=i - 1,
                before=first - 1 if first > 0 else None,
                after=i if i < n else None,
            )
        )
    return gaps


def _boundary_times(
    stop_times: Sequence[ScheduledStopTime], gap: Gap, channel: str
) -> Optional[Tuple[timedelta, timedelta]]:
    if gap.intervals <= 0:
        return None
    start_time = getattr(stop_times[gap.before], channel)
    end_time = getattr(stop_times[gap.after], channel)
    if end_time <= start_time:
        return None
    return start_time, end_time


# -------------------------
# Synthesizers
# -------------------------
def uniform_times(
    stop_times: Sequence[ScheduledStopTime], gap: Gap, channel: str
) -> Dict[int, timedelta]:
    """
    Evenly spaced times for the interior of a gap.

    Slot `j` between the boundaries gets `start + j * (end - start) / intervals`.
    Returns an empty dict when the gap cannot be filled.
    """
    bounds = _boundary_times(stop_times, gap, channel)
    if bounds is None:
        return {}
    start_time, end_time = bounds

    delta = (end_time - start_time) / gap.intervals
    return {gap.before + j: start_time + j * delta for j in range(1, gap.intervals)}


def shape_dist_times(
    stop_times: Sequence[ScheduledStopTime], gap: Gap, channel: str
) -> Dict[int, timedelta]:
    """
    Times for the interior of a gap weighted by `shape_dist_traveled`.

    Both boundary records need a distance and the distance has to increase
    between them. A boundary without a distance skips the whole gap; an interior
    record without a distance is skipped on its own.
    """
    bounds = _boundary_times(stop_times, gap, channel)
    if bounds is None:
        return {}
    start_time, end_time = bounds

    start_dist = stop_times[gap.before].shape_dist_traveled
    end_dist = stop_times[gap.after].shape_dist_traveled
    if start_dist is None or end_dist is None or end_dist <= start_dist:
        return {}

    times: Dict[int, timedelta] = {}
    for j in range(1, gap.intervals):
        dist = stop_times[gap.before + j].shape_dist_traveled
        if dist is None:
            continue
        w = (dist - start_dist) / (end_dist - start_dist)
        times[gap.before + j] = start_time + (end_time - start_time) * w
    return times


STRATEGIES: Dict[str, Strategy] = {
    "uniform": uniform_times,
    "shape_dist": shape_dist_times,
}


# -------------------------
# Entry points
# -------------------------
def _fill_times(
    stop_times: Sequence[ScheduledStopTime],
    strategy: Strategy,
    zero_is_missing: bool = True,
) -> List[ScheduledStopTime]:
    result = [st.copy() for st in stop_times]

    for channel in TIME_CHANNELS:
        for gap in find_gaps(result, channel, zero_is_missing):
            filled = strategy(result, gap, channel)
            if not filled:
                logger.debug(
                    f"{channel}: gap {gap.first}-{gap.last} left unresolved "
                    f"(before={gap.before}, after={gap.after})"
                )
            for idx, value in filled.items():
                setattr(result[idx], channel, value)

    return result


def interpolate_stop_times(
    stop_times: Sequence[ScheduledStopTime], zero_is_missing: bool = True
) -> List[ScheduledStopTime]:
    """
    Fills unknown arrival and departure times evenly between known ones.

    Args:
        stop_times (Sequence[ScheduledStopTime]): One trip's stop times sorted by `stop_sequence`.
        zero_is_missing (bool): Treat a zero duration as unknown.

    Returns:
        List[ScheduledStopTime]: New records, same length and order as the input.
    """
    return _fill_times(stop_times, uniform_times, zero_is_missing)


def interpolate_stop_times_by_shape_dist(
    stop_times: Sequence[ScheduledStopTime], zero_is_missing: bool = True
) -> List[ScheduledStopTime]:
    """
    Fills unknown arrival and departure times proportionally to `shape_dist_traveled`.

    Args:
        stop_times (Sequence[ScheduledStopTime]): One trip's stop times sorted by `stop_sequence`.
        zero_is_missing (bool): Treat a zero duration as unknown.

    Returns:
        List[ScheduledStopTime]: New records, same length and order as the input.
    """
    return _fill_times(stop_times, shape_dist_times, zero_is_missing)


def interpolate(
    stop_times: Sequence[ScheduledStopTime],
    method: str = "uniform",
    zero_is_missing: bool = True,
) -> List[ScheduledStopTime]:
    """Runs the interpolation policy named by `method` ('uniform' or 'shape_dist')."""
    if method not in STRATEGIES:
        raise ValueError(
            f"Unknown interpolation method '{method}'. Use one of {INTERPOLATION_METHODS}"
        )
    return _fill_times(stop_times, STRATEGIES[method], zero_is_missing)


def find_unresolved(
    stop_times: Sequence[ScheduledStopTime], zero_is_missing: bool = True
) -> List[Tuple[int, str]]:
    """Returns `(index, channel)` for every time that is still unknown."""
    return [
        (i, channel)
        for i, st in enumerate(stop_times)
        for channel in TIME_CHANNELS
        if is_missing(getattr(st, channel), zero_is_missing)
    ]


# -------------------------
# Frame-level interpolation
# -------------------------
HELPER_COLS = [
    "_idx",
    "_prev_idx",
    "_next_idx",
    "_prev_time",
    "_next_time",
    "_prev_dist",
    "_next_dist",
]


def _interpolate_channel_expr(
    channel: str, method: str, zero_is_missing: bool
) -> Tuple[List[pl.Expr], pl.Expr]:
    known = pl.col(channel).is_not_null()
    if zero_is_missing:
        known = known & (pl.col(channel) != 0)

    context = [
        pl.when(known).then(pl.col("_idx")).forward_fill().over("trip_id").alias("_prev_idx"),
        pl.when(known).then(pl.col("_idx")).backward_fill().over("trip_id").alias("_next_idx"),
        pl.when(known).then(pl.col(channel)).forward_fill().over("trip_id").alias("_prev_time"),
        pl.when(known).then(pl.col(channel)).backward_fill().over("trip_id").alias("_next_time"),
    ]
    if method == "shape_dist":
        # NaN marks a known time without distance so the fill does not skip over it
        dist_at_known = pl.col("shape_dist_traveled").cast(pl.Float64).fill_null(float("nan"))
        context += [
            pl.when(known).then(dist_at_known).forward_fill().over("trip_id").alias("_prev_dist"),
            pl.when(known).then(dist_at_known).backward_fill().over("trip_id").alias("_next_dist"),
        ]

    fillable = (
        ~known
        & pl.col("_prev_idx").is_not_null()
        & pl.col("_next_idx").is_not_null()
        & ((pl.col("_next_idx") - pl.col("_prev_idx")) > 0)
        & (pl.col("_next_time") > pl.col("_prev_time"))
    )
    span = pl.col("_next_time") - pl.col("_prev_time")

    if method == "uniform":
        w = (pl.col("_idx") - pl.col("_prev_idx")) / (pl.col("_next_idx") - pl.col("_prev_idx"))
    else:
        fillable = (
            fillable
            & pl.col("_prev_dist").is_not_nan()
            & pl.col("_next_dist").is_not_nan()
            & (pl.col("_next_dist") > pl.col("_prev_dist"))
            & pl.col("shape_dist_traveled").is_not_null()
        )
        w = (pl.col("shape_dist_traveled") - pl.col("_prev_dist")) / (
            pl.col("_next_dist") - pl.col("_prev_dist")
        )

    value = (pl.col("_prev_time") + w * span).round(0).cast(pl.Int64, strict=False)
    filled = pl.when(fillable).then(value).otherwise(pl.col(channel)).alias(channel)
    return context, filled


def interpolate_lf(
    lf: pl.LazyFrame,
    method: str = "uniform",
    zero_is_missing: bool = True,
) -> pl.LazyFrame:
    """
    Interpolates unknown times of a whole `stop_times` frame, trip by trip.

    Times are integer seconds since the start of the service day and unknown
    times are null (or 0 with `zero_is_missing`). Synthesized times are rounded
    to the nearest second. Cells that cannot be filled keep their value.

    Args:
        lf (pl.LazyFrame): Stop times with `trip_id`, `stop_sequence`, `arrival_time`,
                           `departure_time` and, for 'shape_dist', `shape_dist_traveled`.
        method (str): 'uniform' or 'shape_dist'.
        zero_is_missing (bool): Treat 0 seconds as unknown.

    Returns:
        pl.LazyFrame: Interpolated stop times sorted by `trip_id` and `stop_sequence`.
    """
    if method not in INTERPOLATION_METHODS:
        raise ValueError(
            f"Unknown interpolation method '{method}'. Use one of {INTERPOLATION_METHODS}"
        )

    lf = lf.sort("trip_id", "stop_sequence")

    if method == "shape_dist" and "shape_dist_traveled" not in lf.collect_schema().names():
        warnings.warn(
            "No shape_dist_traveled column. Distance weighted interpolation needs it, "
            "stop times are left as they are.",
            UserWarning,
        )
        return lf

    lf = lf.with_columns(pl.int_range(0, pl.len()).over("trip_id").alias("_idx"))

    for channel in TIME_CHANNELS:
        context, filled = _interpolate_channel_expr(channel, method, zero_is_missing)
        lf = lf.with_columns(context).with_columns(filled)

    existing = lf.collect_schema().names()
    return lf.drop([c for c in HELPER_COLS if c in existing])
