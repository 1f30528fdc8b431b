# place for fixtures: ie setup for tests

from datetime import timedelta
from pathlib import Path

import pytest
from pyGTFSInterpolator.models import ScheduledStopTime


HERE = Path(__file__).parent


def hms(s):
    """'08:30:00' -> timedelta"""
    h, m, sec = map(int, s.split(":"))
    return timedelta(hours=h, minutes=m, seconds=sec)


@pytest.fixture
def to_td():
    return hms


@pytest.fixture
def normal_trip():

    return [
        ScheduledStopTime(1, hms("08:00:00"), hms("08:05:00"), exact_times=True, trip_id="t1", stop_id="a"),
        ScheduledStopTime(2, trip_id="t1", stop_id="b"),
        ScheduledStopTime(3, trip_id="t1", stop_id="c"),
        ScheduledStopTime(4, hms("08:30:00"), hms("08:35:00"), exact_times=True, trip_id="t1", stop_id="d"),
    ]


@pytest.fixture
def shape_trip(normal_trip):

    for st, dist in zip(normal_trip, [0.0, 3.5, 7.0, 10.5]):
        st.shape_dist_traveled = dist
    return normal_trip


@pytest.fixture
def uneven_shape_trip(normal_trip):

    for st, dist in zip(normal_trip, [0.0, 2.0, 9.0, 10.5]):
        st.shape_dist_traveled = dist
    return normal_trip


STOP_TIMES_TXT = """\ufefftrip_id,arrival_time,departure_time,stop_id,stop_sequence,shape_dist_traveled,timepoint
t1,08:00:00,08:00:00,a,1,0.0,1
t1,,,b,2,2.0,0
t1,,,c,3,9.0,0
t1,8:30:00,08:30:00,d,4,10.5,1
t2,25:00:00,25:00:00,a,1,0,
t2,,,b,2,,
t2,26:00:00,26:00:00,c,3,5,
t3,,,a,1,,
t3,09:00:00,09:00:00,b,2,,
t3,,,c,3,,
"""


@pytest.fixture
def gtfs_folder(tmp_path):
    d = tmp_path / 'gtfs'
    d.mkdir()
    (d / 'stop_times.txt').write_text(STOP_TIMES_TXT, encoding='utf-8')
    return d
