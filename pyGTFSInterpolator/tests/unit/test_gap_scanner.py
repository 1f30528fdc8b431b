from datetime import timedelta

import pytest
from pyGTFSInterpolator.interpolation import Gap, find_gaps, find_unresolved, is_missing
from pyGTFSInterpolator.models import ScheduledStopTime


def _trip(arrivals, departures=None):
    departures = departures if departures is not None else arrivals
    return [
        ScheduledStopTime(i + 1, None if a is None else timedelta(minutes=a),
                          None if d is None else timedelta(minutes=d))
        for i, (a, d) in enumerate(zip(arrivals, departures))
    ]


def test_is_missing():

    assert is_missing(None)
    assert is_missing(timedelta(0))
    assert not is_missing(timedelta(0), zero_is_missing=False)
    assert not is_missing(timedelta(seconds=1))


def test_find_gaps_interior(normal_trip):

    gaps = find_gaps(normal_trip, "arrival_time")
    assert gaps == [Gap(first=1, last=2, before=0, after=3)]
    assert gaps[0].intervals == 3


def test_find_gaps_leading_and_trailing():

    trip = _trip([None, None, 480, None, 500, None])
    gaps = find_gaps(trip, "arrival_time")

    assert gaps == [
        Gap(first=0, last=1, before=None, after=2),
        Gap(first=3, last=3, before=2, after=4),
        Gap(first=5, last=5, before=4, after=None),
    ]
    assert [g.intervals for g in gaps] == [0, 2, 0]


def test_find_gaps_channels_are_independent():

    trip = _trip([480, None, 500], [481, 490, 501])

    assert find_gaps(trip, "arrival_time") == [Gap(1, 1, 0, 2)]
    assert find_gaps(trip, "departure_time") == []


def test_find_gaps_zero_sentinel():

    trip = _trip([480, 0, 500])

    assert find_gaps(trip, "arrival_time") == [Gap(1, 1, 0, 2)]
    assert find_gaps(trip, "arrival_time", zero_is_missing=False) == []


def test_find_gaps_all_unknown_and_empty():

    assert find_gaps(_trip([None, None]), "arrival_time") == [Gap(0, 1, None, None)]
    assert find_gaps([], "arrival_time") == []


def test_find_gaps_does_not_touch_input(normal_trip):

    before = [st.copy() for st in normal_trip]
    find_gaps(normal_trip, "departure_time")
    assert normal_trip == before


def test_find_gaps_unknown_channel(normal_trip):

    with pytest.raises(ValueError):
        find_gaps(normal_trip, "stop_sequence")


def test_find_unresolved():

    trip = _trip([None, 480, 0], [None, 480, 490])

    assert find_unresolved(trip) == [(0, "arrival_time"), (0, "departure_time"), (2, "arrival_time")]
    assert find_unresolved(trip, zero_is_missing=False) == [(0, "arrival_time"), (0, "departure_time")]
