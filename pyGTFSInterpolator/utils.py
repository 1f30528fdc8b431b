import os
import warnings
from datetime import datetime, time, timedelta
from typing import List, Optional, Dict, Union

import polars as pl

from . import gtfs_checker

import logging
logger = logging.getLogger(__name__)

# Constants
ID_COLS = ["trip_id", "stop_id"]
MANDATORY_COLS = ["trip_id"]


# -------------------------
# Date and Time Utilities
# -------------------------
def time_to_seconds(t: Union[datetime, time, timedelta, str]) -> int:
    """Convert datetime/time/timedelta or a GTFS time string to seconds since the service day start."""
    if isinstance(t, timedelta):
        return timedelta_to_seconds(t)
    if isinstance(t, str):
        h, m, s = map(int, gtfs_checker.parse_time(t).split(":"))
        return h * 3600 + m * 60 + s
    if isinstance(t, datetime):
        t = t.time()
    return t.hour * 3600 + t.minute * 60 + t.second


def seconds_to_timedelta(seconds: Optional[float]) -> Optional[timedelta]:
    """Seconds since the service day start to timedelta, None stays None."""
    if seconds is None:
        return None
    return timedelta(seconds=seconds)


def timedelta_to_seconds(td: Optional[timedelta]) -> Optional[int]:
    """Timedelta to whole seconds rounded to the nearest second, None stays None."""
    if td is None:
        return None
    return round(td.total_seconds())


def format_gtfs_time(t: Union[timedelta, int, None]) -> str:
    """Format a duration as a GTFS HH:MM:SS string (hours may exceed 23). None gives ''."""
    if t is None:
        return ""
    seconds = timedelta_to_seconds(t) if isinstance(t, timedelta) else int(t)
    h, rest = divmod(seconds, 3600)
    m, s = divmod(rest, 60)
    return f"{h:02}:{m:02}:{s:02}"


def parse_gtfs_time_or_none(t: Optional[str]) -> Optional[int]:
    """
    Parse a GTFS time cell to seconds. Empty cells give None; cells that cannot
    be parsed give None and a warning.
    """
    if t is None or str(t).strip() == "":
        return None
    try:
        return time_to_seconds(str(t))
    except ValueError as e:
        warnings.warn(f"Unreadable stop time '{t}' is treated as unknown: {e}", UserWarning)
        return None


# -------------------------
# CSV / GTFS Utilities
# -------------------------
def read_csv_lazy(
    path: str,
    schema_overrides: Optional[Dict[str, pl.DataType]] = None,
    mandatory_cols: List[str] = MANDATORY_COLS,
    id_cols: List[str] = ID_COLS
) -> Optional[pl.LazyFrame]:
    """Lazily read a CSV (GTFS) file into a Polars LazyFrame."""
    if not path or not os.path.isfile(path):
        return None

    try:
        lf = pl.scan_csv(path, infer_schema=False, raise_if_empty=False, truncate_ragged_lines=True)
    except Exception as e:
        warnings.warn(f"scan_csv failed ({e}). Falling back to read_csv.")
        lf = pl.read_csv(path, infer_schema=False, truncate_ragged_lines=True).lazy()

    lf = gtfs_checker.normalize_df(lf)

    if schema_overrides:
        for col, dtype in schema_overrides.items():
            if dtype == "time|None":
                # Parsed later, cells may need the flexible GTFS time parser
                dtype = str
            elif dtype == "int|bool":
                dtype = int

            if col in lf.collect_schema().names():
                lf = lf.with_columns(pl.col(col).cast(dtype, strict=False))

    columns = lf.collect_schema().names()
    for col in id_cols:
        if col in columns:
            lf = lf.with_columns(
                pl.when(pl.col(col) == "")
                .then(pl.lit(None))
                .otherwise(pl.col(col))
                .alias(col)
            )
            if col in mandatory_cols:
                lf = lf.filter(pl.col(col).is_not_null())

    return lf


# -------------------------
# Polars Utilities
# -------------------------
def filter_by_id_column(lf, column, ids: list | None = []):
    if ids is None:
        ids = []

    if lf is None:
        return None

    if len(ids) > 0:
        ids_df = pl.LazyFrame({column: ids})
        lf = lf.join(ids_df, on=column, how="semi")

    return lf
