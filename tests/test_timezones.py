from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from dailyhi.errors import InvalidTimezone
from dailyhi.timezones import (as_utc, bucket_for, buckets_for, local_time,
                               timezone_identifier_for, validate_offset)


def utc(hour, day=4):
    return datetime(2024, 3, day, hour, 0, tzinfo=timezone.utc)


def test_afternoon_utc_serves_pacific():
    assert bucket_for(utc(14)) == -8


def test_early_utc_serves_east_of_greenwich():
    assert bucket_for(utc(2)) == 4


@pytest.mark.parametrize("hour", range(24))
def test_bucket_matches_six_am_formula(hour):
    raw = hour - 6
    expected = -raw if raw < 12 else 24 - raw
    assert bucket_for(utc(hour)) == expected


@pytest.mark.parametrize("hour", range(24))
def test_bucket_local_hour_is_six(hour):
    offset = bucket_for(utc(hour))
    assert -12 <= offset <= 14
    assert (hour + offset) % 24 == 6


def test_offset_decreases_as_utc_hour_advances():
    for hour in range(24):
        current = bucket_for(utc(hour))
        following = bucket_for(utc(hour) + timedelta(hours=1))
        if current == -11:
            assert following == 12  # wrap
        else:
            assert following == current - 1


def test_bucket_ignores_minutes():
    assert bucket_for(utc(14) + timedelta(minutes=59)) == -8


def test_naive_instant_is_utc():
    assert bucket_for(datetime(2024, 3, 4, 14)) == -8
    assert as_utc(datetime(2024, 3, 4, 14)).tzinfo == timezone.utc


def test_aware_non_utc_instant_is_converted():
    # 06:00 in Tokyo is 21:00 UTC the day before
    tokyo = datetime(2024, 3, 5, 6, tzinfo=ZoneInfo("Asia/Tokyo"))
    assert bucket_for(tokyo) == 9


@pytest.mark.parametrize("hour,expected", [
    (14, [-8]),
    (16, [-10, 14]),
    (17, [-11, 13]),
    (18, [12, -12]),
    (2, [4]),
])
def test_buckets_include_wrapped_offsets(hour, expected):
    assert buckets_for(utc(hour)) == expected


def test_every_real_offset_is_served_once_a_day():
    served = [offset for hour in range(24) for offset in buckets_for(utc(hour))]
    assert sorted(served) == list(range(-12, 15))


@pytest.mark.parametrize("offset", [-8, 0, 4, 12])
def test_identifier_has_the_requested_offset(offset):
    instant = utc(14)
    name = timezone_identifier_for(offset, instant)
    assert name is not None
    assert instant.astimezone(ZoneInfo(name)).utcoffset() == timedelta(hours=offset)


def test_identifier_missing_for_impossible_offset():
    assert timezone_identifier_for(20, utc(14)) is None


def test_local_time_is_six_am_in_bucket_zone():
    instant = utc(14)
    name = timezone_identifier_for(bucket_for(instant), instant)
    assert local_time(instant, name).hour == 6


@pytest.mark.parametrize("value,expected", [(5, 5), ("-8", -8), (14, 14), (-12, -12), (3.0, 3)])
def test_validate_offset_accepts(value, expected):
    assert validate_offset(value) == expected


@pytest.mark.parametrize("value", [15, -13, "abc", None, True, 2.5, float("inf"), float("nan")])
def test_validate_offset_rejects(value):
    with pytest.raises(InvalidTimezone):
        validate_offset(value)
