import polars as pl
import pytest
from pyGTFSInterpolator.interpolation import interpolate_lf
from pyGTFSInterpolator.models.stop_times import records_to_lf


def _collect(lf, col="arrival_time"):
    return lf.collect()[col].to_list()


def test_frame_uniform(normal_trip):

    out = interpolate_lf(records_to_lf(normal_trip), method="uniform")

    assert _collect(out) == [28800, 29400, 30000, 30600]
    assert _collect(out, "departure_time") == [29100, 29700, 30300, 30900]


def test_frame_shape_dist(uneven_shape_trip):

    out = interpolate_lf(records_to_lf(uneven_shape_trip), method="shape_dist")

    # 08:05:43 and 08:25:43
    assert _collect(out) == [28800, 29143, 30343, 30600]


def test_frame_leaves_open_gaps():

    lf = pl.LazyFrame(
        {
            "trip_id": ["t"] * 5,
            "stop_sequence": [1, 2, 3, 4, 5],
            "arrival_time": [None, 100, None, 200, None],
            "departure_time": [None, 100, None, 200, None],
            "shape_dist_traveled": [0.0, 1.0, 2.0, 3.0, 4.0],
        },
        schema_overrides={"arrival_time": pl.Int64, "departure_time": pl.Int64},
    )

    assert _collect(interpolate_lf(lf, "uniform")) == [None, 100, 150, 200, None]
    assert _collect(interpolate_lf(lf, "shape_dist")) == [None, 100, 150, 200, None]


def test_frame_trips_do_not_mix():

    lf = pl.LazyFrame(
        {
            "trip_id": ["b", "a", "a", "b", "a", "b"],
            "stop_sequence": [2, 3, 1, 1, 2, 3],
            "arrival_time": [None, 300, 100, 1000, None, 3000],
            "departure_time": [None, 300, 100, 1000, None, 3000],
        },
        schema_overrides={"arrival_time": pl.Int64, "departure_time": pl.Int64},
    )
    out = interpolate_lf(lf).collect()

    assert out["trip_id"].to_list() == ["a", "a", "a", "b", "b", "b"]
    assert out["arrival_time"].to_list() == [100, 200, 300, 1000, 2000, 3000]


def test_frame_shape_dist_guards():

    lf = pl.LazyFrame(
        {
            "trip_id": ["dec"] * 3 + ["nodist"] * 3 + ["interior"] * 4,
            "stop_sequence": [1, 2, 3] * 2 + [1, 2, 3, 4],
            "arrival_time": [0, None, 60, 0, None, 60, 0, None, None, 90],
            "departure_time": [0, None, 60, 0, None, 60, 0, None, None, 90],
            "shape_dist_traveled": [5.0, 6.0, 5.0, None, 1.0, 2.0, 0.0, None, 2.0, 3.0],
        },
        schema_overrides={"arrival_time": pl.Int64, "departure_time": pl.Int64},
    )
    out = interpolate_lf(lf, "shape_dist", zero_is_missing=False).collect()

    assert out.filter(pl.col("trip_id") == "dec")["arrival_time"].to_list() == [0, None, 60]
    assert out.filter(pl.col("trip_id") == "nodist")["arrival_time"].to_list() == [0, None, 60]
    assert out.filter(pl.col("trip_id") == "interior")["arrival_time"].to_list() == [0, None, 60, 90]


def test_frame_zero_sentinel_kept_when_unresolved():

    lf = pl.LazyFrame(
        {
            "trip_id": ["t"] * 3,
            "stop_sequence": [1, 2, 3],
            "arrival_time": [0, None, 600],
            "departure_time": [0, None, 600],
        },
        schema_overrides={"arrival_time": pl.Int64, "departure_time": pl.Int64},
    )

    assert _collect(interpolate_lf(lf)) == [0, None, 600]
    assert _collect(interpolate_lf(lf, zero_is_missing=False)) == [0, 300, 600]


def test_frame_matches_records(uneven_shape_trip):

    from pyGTFSInterpolator.interpolation import interpolate_stop_times_by_shape_dist

    from_records = records_to_lf(interpolate_stop_times_by_shape_dist(uneven_shape_trip)).collect()
    from_frame = interpolate_lf(records_to_lf(uneven_shape_trip), "shape_dist").collect()

    assert from_records.equals(from_frame)


def test_frame_no_helper_columns_left(normal_trip):

    lf = records_to_lf(normal_trip)
    out = interpolate_lf(lf, "shape_dist")

    assert out.collect_schema().names() == lf.collect_schema().names()


def test_frame_shape_dist_without_column():

    lf = pl.LazyFrame(
        {"trip_id": ["t"] * 3, "stop_sequence": [1, 2, 3], "arrival_time": [10, None, 30], "departure_time": [10, None, 30]}
    )
    with pytest.warns(UserWarning):
        out = interpolate_lf(lf, "shape_dist")
    assert _collect(out) == [10, None, 30]


def test_frame_unknown_method(normal_trip):

    with pytest.raises(ValueError):
        interpolate_lf(records_to_lf(normal_trip), "spline")
