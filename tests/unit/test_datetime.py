# tests/unit/test_datetime.py

import datetime

import pytest

from geofeature import configured
from geofeature import datetime_codec as codec
from geofeature.datetime_codec import DateTimeParts

# Positions in the all_types_defn fixture
DAY, CLOCK, STAMP, TEXT, INT32 = 7, 8, 9, 4, 0

UTC = datetime.timezone.utc

# --- Codec ---

def test_encode_naive_uses_default_flag():
    parts = codec.encode(datetime.datetime(2024, 3, 15, 10, 30, 45, 500000))
    assert parts == DateTimeParts(2024, 3, 15, 10, 30, 45.0, codec.TZ_LOCAL)

def test_encode_fractional_keeps_microseconds():
    parts = codec.encode(datetime.datetime(2024, 3, 15, 10, 30, 45, 250000), fractional=True)
    assert parts.second == 45.25

def test_encode_aware_derives_flag():
    assert codec.encode(datetime.datetime(2020, 1, 1, tzinfo=UTC)).tz_flag == codec.TZ_UTC
    plus_530 = datetime.timezone(datetime.timedelta(hours=5, minutes=30))
    assert codec.encode(datetime.datetime(2020, 1, 1, tzinfo=plus_530)).tz_flag == 122
    minus_8 = datetime.timezone(datetime.timedelta(hours=-8))
    assert codec.encode(datetime.datetime(2020, 1, 1, tzinfo=minus_8)).tz_flag == 68

def test_encode_off_grid_offset_converts_to_utc():
    odd = datetime.timezone(datetime.timedelta(minutes=7))
    parts = codec.encode(datetime.datetime(2020, 1, 1, 12, 7, tzinfo=odd))
    assert parts.tz_flag == codec.TZ_UTC
    assert (parts.hour, parts.minute) == (12, 0)

def test_encode_explicit_flag_keeps_wall_clock():
    value = datetime.datetime(2020, 6, 1, 8, 0, tzinfo=UTC)
    parts = codec.encode(value, tz_flag=codec.TZ_UNKNOWN)
    assert parts.tz_flag == codec.TZ_UNKNOWN
    assert parts.hour == 8

def test_encode_date_is_midnight():
    parts = codec.encode(datetime.date(1999, 12, 31))
    assert (parts.year, parts.month, parts.day, parts.hour, parts.second) == (1999, 12, 31, 0, 0.0)

def test_encode_rejects_bad_input():
    with pytest.raises(TypeError):
        codec.encode("2020-01-01")
    with pytest.raises(ValueError):
        codec.encode(datetime.datetime(2020, 1, 1), tz_flag=256)

def test_decode_time_only_record():
    value = codec.decode(DateTimeParts(0, 0, 0, 23, 59, 1.0, codec.TZ_UNKNOWN))
    assert value == datetime.datetime(1, 1, 1, 23, 59, 1)

def test_decode_tz_flags():
    assert codec.decode(DateTimeParts(2020, 1, 1, 0, 0, 0.0, codec.TZ_LOCAL)).tzinfo is None
    assert codec.decode(DateTimeParts(2020, 1, 1, 0, 0, 0.0, codec.TZ_UTC)).tzinfo == UTC
    shifted = codec.decode(DateTimeParts(2020, 1, 1, 0, 0, 0.0, 96))
    assert shifted.utcoffset() == datetime.timedelta(hours=-1)

def test_decode_fraction_rounding():
    parts = DateTimeParts(2020, 1, 1, 0, 0, 5.9996, codec.TZ_UNKNOWN)
    assert codec.decode(parts).second == 5
    rounded = codec.decode(parts, fractional=True)
    assert (rounded.second, rounded.microsecond) == (6, 0)

def test_decode_leap_second_clamps():
    value = codec.decode(DateTimeParts(2016, 12, 31, 23, 59, 60.0, codec.TZ_UTC))
    assert value.second == 59

def test_decode_invalid_components():
    with pytest.raises(ValueError):
        codec.decode(DateTimeParts(2021, 2, 30, 0, 0, 0.0, codec.TZ_UNKNOWN))

# --- Feature Round Trips ---

def test_datetime_round_trip_whole_seconds(typed_feature):
    value = datetime.datetime(2024, 3, 15, 10, 30, 45)
    typed_feature.set_field_datetime(STAMP, value)
    result, ok = typed_feature.field_as_datetime(STAMP)
    assert ok
    assert result == value

def test_datetime_ex_keeps_milliseconds(typed_feature):
    value = datetime.datetime(2024, 3, 15, 10, 30, 45, 123000)
    typed_feature.set_field_datetime_ex(STAMP, value)
    result, ok = typed_feature.field_as_datetime_ex(STAMP)
    assert ok
    assert result == value

    truncated, ok = typed_feature.field_as_datetime(STAMP)
    assert ok
    assert truncated == value.replace(microsecond=0)

def test_aware_datetime_round_trip(typed_feature):
    tz = datetime.timezone(datetime.timedelta(hours=-3, minutes=-30))
    value = datetime.datetime(2023, 7, 1, 18, 5, 0, tzinfo=tz)
    typed_feature.set_field_datetime(STAMP, value)
    result, ok = typed_feature.field_as_datetime(STAMP)
    assert ok
    assert result == value
    assert result.utcoffset() == tz.utcoffset(None)

def test_explicit_tz_flag_is_stored(typed_feature):
    typed_feature.set_field_datetime(STAMP, datetime.datetime(2024, 1, 2, 3, 4, 5), tz_flag=codec.TZ_UTC)
    assert typed_feature.field_as_datetime_parts(STAMP).tz_flag == codec.TZ_UTC
    assert typed_feature.field_as_string(STAMP) == "2024/01/02 03:04:05+00"

def test_default_flag_comes_from_config(typed_feature):
    with configured(default_tz_flag=codec.TZ_UNKNOWN):
        typed_feature.set_field_datetime(STAMP, datetime.datetime(2024, 1, 1))
    assert typed_feature.field_as_datetime_parts(STAMP).tz_flag == codec.TZ_UNKNOWN

def test_date_field_drops_time(typed_feature):
    typed_feature.set_field_datetime(DAY, datetime.datetime(2024, 3, 15, 10, 30, 45))
    result, ok = typed_feature.field_as_datetime(DAY)
    assert ok
    assert result == datetime.datetime(2024, 3, 15)
    assert typed_feature.field_as_string(DAY) == "2024/03/15"

def test_time_field_drops_date(typed_feature):
    typed_feature.set_field_datetime(CLOCK, datetime.datetime(2024, 3, 15, 10, 30, 45))
    result, ok = typed_feature.field_as_datetime(CLOCK)
    assert ok
    assert result.time() == datetime.time(10, 30, 45)
    assert result.date() == datetime.date(1, 1, 1)
    assert typed_feature.field_as_string(CLOCK) == "10:30:45"

def test_datetime_into_string_field(typed_feature):
    typed_feature.set_field_datetime(TEXT, datetime.datetime(2024, 3, 15, 10, 30, 45))
    assert typed_feature.field_as_string(TEXT) == "2024/03/15 10:30:45"

def test_datetime_getter_failure_cases(typed_feature):
    assert typed_feature.field_as_datetime(STAMP) == (None, False)
    typed_feature.set_field_null(STAMP)
    assert typed_feature.field_as_datetime(STAMP) == (None, False)
    typed_feature.set_field_integer(INT32, 5)
    assert typed_feature.field_as_datetime(INT32) == (None, False)
    assert typed_feature.field_as_datetime_parts(INT32) is None

def test_parse_iso_text_into_datetime_field(typed_feature):
    typed_feature.set_field_string(STAMP, "2024-03-15T10:30:45.5Z")
    result, ok = typed_feature.field_as_datetime_ex(STAMP)
    assert ok
    assert result == datetime.datetime(2024, 3, 15, 10, 30, 45, 500000, tzinfo=UTC)

# --- Timezone Flag Range ---

@pytest.mark.parametrize("flag", [0, 1, 5, 100, 195])
def test_storable_flags_read_back(typed_feature, flag):
    typed_feature.set_field_datetime(STAMP, datetime.datetime(2024, 1, 2, 3, 4, 5), tz_flag=flag)
    result, ok = typed_feature.field_as_datetime(STAMP)
    assert ok
    assert result.replace(tzinfo=None) == datetime.datetime(2024, 1, 2, 3, 4, 5)
    assert typed_feature.field_as_datetime_parts(STAMP).tz_flag == flag

@pytest.mark.parametrize("flag", [-1, 2, 4, 196, 255, 256])
def test_out_of_range_flags_rejected(typed_feature, flag):
    with pytest.raises(ValueError):
        typed_feature.set_field_datetime(STAMP, datetime.datetime(2024, 1, 2), tz_flag=flag)
    assert not typed_feature.is_field_set(STAMP)

@pytest.mark.parametrize("flag", [2, 196, 255])
def test_out_of_range_default_flag_rejected(flag):
    with pytest.raises(ValueError):
        with configured(default_tz_flag=flag):
            pass

def test_extreme_aware_offsets(typed_feature):
    east = datetime.timezone(datetime.timedelta(hours=23, minutes=45))
    typed_feature.set_field_datetime(STAMP, datetime.datetime(2024, 1, 2, 3, 4, 5, tzinfo=east))
    assert typed_feature.field_as_datetime_parts(STAMP).tz_flag == 195
    result, ok = typed_feature.field_as_datetime(STAMP)
    assert ok
    assert result.utcoffset() == datetime.timedelta(hours=23, minutes=45)

@pytest.mark.parametrize("text, flag", [
    ("2020/01/01 00:00:00+23:45", 195),
    ("2020/01/01 00:00:00-2345", 5),
    ("2020/01/01 00:00:00+05:30", 122)
])
def test_text_offsets_within_a_day(typed_feature, text, flag):
    typed_feature.set_field_string(STAMP, text)
    assert typed_feature.field_as_datetime_parts(STAMP).tz_flag == flag
    assert typed_feature.field_as_datetime(STAMP)[1]

@pytest.mark.parametrize("text", [
    "2020/01/01 00:00:00+99",
    "2020/01/01 00:00:00-24",
    "2020/01/01 00:00:00+05:75",
    "12:00:00+30"
])
def test_text_offsets_out_of_range_leave_field_untouched(typed_feature, text):
    typed_feature.set_field_string(STAMP, text)
    assert not typed_feature.is_field_set(STAMP)

    typed_feature.set_field_datetime(STAMP, datetime.datetime(2021, 6, 1, 12, 0))
    typed_feature.set_field_string(STAMP, text)
    result, ok = typed_feature.field_as_datetime(STAMP)
    assert ok
    assert result == datetime.datetime(2021, 6, 1, 12, 0)
