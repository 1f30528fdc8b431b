# -*- coding: utf-8 -*-
import polars as pl
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple, Union
from .. import utils, gtfs_checker, interpolation
from .stop_time import ScheduledStopTime
import logging
import warnings

"""
GTFS StopTimes Loading Module

This module provides the `StopTimes` class, which reads `stop_times.txt` into a
Polars LazyFrame and hands it, trip by trip, to the interpolation functions.

What is performed by this module:
---------------------------------
1.  **Data Loading**: It reads one or more `stop_times.txt` files from GTFS directories,
    optionally keeping only some `trip_id`s.

2.  **Time Normalization**: GTFS time strings ('8:05:00', '0805', '25:10:00') are converted
    to integer seconds since the start of the service day. Empty or unreadable cells become
    null, the "unknown" marker. Times of exactly '00:00:00' are kept as 0; interpolation
    treats them as unknown unless `zero_is_missing=False` and leaves them as they are
    when they cannot be filled.

3.  **Timepoints**: The GTFS `timepoint` column becomes the boolean `exact_times`
    (empty or 1 means exact when the stop has a time, 0 means approximate). On writing,
    stops that were interpolated get `timepoint=0`.

4.  **Interpolation**: Unknown times are filled either on the whole frame at once
    (`engine='frame'`) or trip by trip through `ScheduledStopTime` records (`engine='records'`).

5.  **Writing**: The result is written back as a GTFS `stop_times.txt` with HH:MM:SS times.
"""

logger = logging.getLogger(__name__)

TIME_COLS = list(interpolation.TIME_CHANNELS)
RECORD_COLS = ["trip_id", "stop_id", "stop_sequence", "arrival_time", "departure_time",
               "shape_dist_traveled", "exact_times"]
ENGINES = ["frame", "records"]


class StopTimes:
    """
    GTFS stop times as a Polars LazyFrame.

    Attributes:
        lf (pl.LazyFrame): Stop times with `arrival_time`/`departure_time` in seconds
                           (null when unknown), `stop_sequence`, `shape_dist_traveled`
                           and `exact_times`.
    """

    def __init__(self, lf: Optional[pl.LazyFrame] = None) -> None:
        self.lf = lf

    def load(
        self,
        path: Union[str, Path, List[Union[str, Path]]],
        trip_ids: Optional[List[str]] = None,
        zero_is_missing: bool = True,
    ) -> "StopTimes":
        """
        Reads the stop times of one or more GTFS folders.

        Args:
            path (str | Path | list[str | Path]): One or more GTFS directories.
            trip_ids (list[str], optional): Only keep these trips.
            zero_is_missing (bool): Read '00:00:00' as an unknown time.

        Returns:
            StopTimes: self, for chaining.

        Raises:
            FileNotFoundError: If no `stop_times.txt` is found in any of the paths.
        """
        if isinstance(path, (str, Path)):
            paths = [Path(path)]
        else:
            paths = [Path(p) for p in path]

        self.lf = self.__read_stop_times(paths, trip_ids, zero_is_missing)
        return self

    def __read_stop_times(
        self,
        paths: List[Path],
        trip_ids: Optional[List[str]],
        zero_is_missing: bool,
    ) -> pl.LazyFrame:
        stop_times_paths = []
        for p in paths:
            new_p = gtfs_checker.search_file(p, file=gtfs_checker.STOP_TIMES_FILE)
            if new_p is None:
                warnings.warn(f"File {gtfs_checker.STOP_TIMES_FILE} does not exist in {p}", UserWarning)
            else:
                stop_times_paths.append(new_p)

        if not stop_times_paths:
            raise FileNotFoundError("No stop_times.txt files found in given paths.")

        schema_dict, _ = gtfs_checker.get_df_schema_dict(gtfs_checker.STOP_TIMES_FILE)
        file_lfs = [
            lf for p in stop_times_paths
            if (lf := utils.read_csv_lazy(p, schema_overrides=schema_dict)) is not None
        ]
        stop_times = pl.concat(file_lfs, how="diagonal_relaxed")
        stop_times = utils.filter_by_id_column(stop_times, "trip_id", trip_ids)

        columns = stop_times.collect_schema().names()
        if "stop_sequence" not in columns:
            # File order is the only order left
            stop_times = stop_times.with_columns(
                pl.int_range(0, pl.len()).over("trip_id").cast(pl.Int64).alias("stop_sequence")
            )
        if "stop_id" not in columns:
            stop_times = stop_times.with_columns(pl.lit(None, dtype=pl.Utf8).alias("stop_id"))
        for col in TIME_COLS:
            if col not in columns:
                stop_times = stop_times.with_columns(pl.lit(None, dtype=pl.Utf8).alias(col))

        n_no_sequence = stop_times.select(pl.col("stop_sequence").is_null().sum()).collect().item()
        if n_no_sequence > 0:
            warnings.warn(f"{n_no_sequence} stop times without a valid stop_sequence are dropped", UserWarning)
            stop_times = stop_times.filter(pl.col("stop_sequence").is_not_null())

        stop_times = stop_times.with_columns(
            [
                pl.col(col)
                .map_elements(utils.parse_gtfs_time_or_none, return_dtype=pl.Int64)
                .alias(col)
                for col in TIME_COLS
            ]
        )

        has_time = pl.lit(False)
        for col in TIME_COLS:
            known = pl.col(col).is_not_null()
            if zero_is_missing:
                known = known & (pl.col(col) != 0)
            has_time = has_time | known

        if "timepoint" in columns:
            timepoint = pl.col("timepoint").fill_null(1) != 0
        else:
            timepoint = pl.lit(True)

        stop_times = stop_times.with_columns((timepoint & has_time).alias("exact_times"))

        return stop_times.sort("trip_id", "stop_sequence")

    @classmethod
    def from_records(cls, records: Sequence[ScheduledStopTime]) -> "StopTimes":
        """Builds a StopTimes frame from `ScheduledStopTime` records."""
        return cls(records_to_lf(records))

    def trips(self) -> Iterator[Tuple[str, List[ScheduledStopTime]]]:
        """
        Iterates over the trips as `(trip_id, [ScheduledStopTime, ...])`, each list sorted
        by `stop_sequence`.
        """
        lf = self.lf
        if "shape_dist_traveled" not in lf.collect_schema().names():
            lf = lf.with_columns(pl.lit(None, dtype=pl.Float64).alias("shape_dist_traveled"))
        df = lf.select(RECORD_COLS).sort("trip_id", "stop_sequence").collect()
        for (trip_id,), trip_df in df.partition_by("trip_id", maintain_order=True, as_dict=True).items():
            yield trip_id, lf_rows_to_records(trip_df.iter_rows(named=True))

    def interpolate(
        self,
        method: str = "uniform",
        engine: str = "frame",
        zero_is_missing: bool = True,
    ) -> "StopTimes":
        """
        Fills unknown arrival and departure times.

        Args:
            method (str): 'uniform' (even spacing between known times) or 'shape_dist'
                          (spacing proportional to `shape_dist_traveled`).
            engine (str): 'frame' runs Polars window expressions on the whole frame,
                          'records' runs the record functions trip by trip.
            zero_is_missing (bool): Treat 0 seconds as unknown.

        Returns:
            StopTimes: A new StopTimes instance; this one is left untouched.
        """
        if engine not in ENGINES:
            raise ValueError(f"Unknown engine '{engine}'. Use one of {ENGINES}")

        if engine == "frame":
            lf = interpolation.interpolate_lf(self.lf, method=method, zero_is_missing=zero_is_missing)
        else:
            records = []
            for _, trip_records in self.trips():
                records += interpolation.interpolate(trip_records, method=method, zero_is_missing=zero_is_missing)
            columns = self.lf.collect_schema().names()
            extra_cols = [c for c in columns if c not in RECORD_COLS]
            lf = records_to_lf(records)
            if "shape_dist_traveled" not in columns:
                lf = lf.drop("shape_dist_traveled")
            if extra_cols:
                lf = lf.join(
                    self.lf.select(["trip_id", "stop_sequence"] + extra_cols),
                    on=["trip_id", "stop_sequence"],
                    how="left",
                )

        result = StopTimes(lf.collect().lazy())
        n_unresolved = result.unresolved_count(zero_is_missing=zero_is_missing)
        if n_unresolved > 0:
            warnings.warn(
                f"Some stop times could not be interpolated: {n_unresolved} arrival/departure "
                "values are still unknown",
                UserWarning,
            )
        return result

    def unresolved_count(self, zero_is_missing: bool = True) -> int:
        """Number of arrival/departure cells that are still unknown."""
        exprs = []
        for col in TIME_COLS:
            missing = pl.col(col).is_null()
            if zero_is_missing:
                missing = missing | (pl.col(col) == 0)
            exprs.append(missing.sum().alias(col))
        counts = self.lf.select(exprs).collect()
        return int(sum(counts.row(0)))

    def to_hhmmss(self, field: str, new_field: str) -> pl.Expr:
        """
        Creates a Polars expression to convert seconds since midnight to a HH:MM:SS string.
        Null stays null.

        Args:
            field (str): The name of the column containing seconds (integer).
            new_field (str): The desired name for the new HH:MM:SS string column.

        Returns:
            pl.Expr: A Polars expression that performs the conversion.
        """
        seconds_expr = pl.col(field)
        hours = (seconds_expr // 3600).cast(pl.Int32)
        minutes = ((seconds_expr % 3600) // 60).cast(pl.Int32)
        seconds = (seconds_expr % 60).cast(pl.Int32)
        return (
            pl.when(seconds_expr.is_null())
            .then(None)
            .otherwise(
                pl.concat_str(
                    [
                        hours.cast(pl.Utf8).str.zfill(2),
                        minutes.cast(pl.Utf8).str.zfill(2),
                        seconds.cast(pl.Utf8).str.zfill(2),
                    ],
                    separator=":",
                )
            )
            .alias(new_field)
        )

    def write(self, path: Union[str, Path]) -> Path:
        """
        Writes the stop times as a GTFS `stop_times.txt`.

        Args:
            path (str | Path): Output directory or file path.

        Returns:
            Path: The written file.
        """
        path = Path(path)
        if path.suffix != ".txt":
            path.mkdir(parents=True, exist_ok=True)
            path = path / gtfs_checker.STOP_TIMES_FILE

        lf = self.lf
        # A time that is not exact is an interpolated one, GTFS marks it with timepoint=0
        approximate = (
            (pl.col("arrival_time").is_not_null() | pl.col("departure_time").is_not_null())
            & ~pl.col("exact_times")
        )
        if "timepoint" in lf.collect_schema().names():
            lf = lf.with_columns(
                pl.when(approximate).then(0).otherwise(pl.col("timepoint")).cast(pl.Int64).alias("timepoint")
            )
        elif lf.select(approximate.any()).collect().item():
            lf = lf.with_columns(
                pl.when(approximate).then(0)
                .when(pl.col("exact_times")).then(1)
                .otherwise(None)
                .cast(pl.Int64)
                .alias("timepoint")
            )

        lf = lf.with_columns([self.to_hhmmss(col, col) for col in TIME_COLS])
        lf = lf.drop("exact_times")

        lf.collect().write_csv(path)
        logger.info(f"Stop times written to {path}")
        return path


def lf_rows_to_records(rows) -> List[ScheduledStopTime]:
    """Dict rows (seconds as int) to `ScheduledStopTime` records."""
    return [
        ScheduledStopTime(
            stop_sequence=row["stop_sequence"],
            arrival_time=utils.seconds_to_timedelta(row["arrival_time"]),
            departure_time=utils.seconds_to_timedelta(row["departure_time"]),
            exact_times=bool(row["exact_times"]),
            shape_dist_traveled=row["shape_dist_traveled"],
            trip_id=row["trip_id"],
            stop_id=row["stop_id"],
        )
        for row in rows
    ]


def records_to_lf(records: Sequence[ScheduledStopTime]) -> pl.LazyFrame:
    """`ScheduledStopTime` records to a LazyFrame with times in whole seconds."""
    return pl.LazyFrame(
        {
            "trip_id": [r.trip_id for r in records],
            "stop_id": [r.stop_id for r in records],
            "stop_sequence": [r.stop_sequence for r in records],
            "arrival_time": [utils.timedelta_to_seconds(r.arrival_time) for r in records],
            "departure_time": [utils.timedelta_to_seconds(r.departure_time) for r in records],
            "shape_dist_traveled": [r.shape_dist_traveled for r in records],
            "exact_times": [r.exact_times for r in records],
        },
        schema={
            "trip_id": pl.Utf8,
            "stop_id": pl.Utf8,
            "stop_sequence": pl.Int64,
            "arrival_time": pl.Int64,
            "departure_time": pl.Int64,
            "shape_dist_traveled": pl.Float64,
            "exact_times": pl.Boolean,
        },
    )
