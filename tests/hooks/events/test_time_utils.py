from datetime import datetime, timedelta, timezone

import pytest

from hooks.shared.time_utils import is_earlier, to_utc_datetime


class TestToUtcDatetime:
    def test_naive_datetime_is_utc(self):
        assert to_utc_datetime(datetime(2024, 1, 15)) == datetime(2024, 1, 15, tzinfo=timezone.utc)

    def test_offset_converted(self):
        kst = timezone(timedelta(hours=9))
        value = to_utc_datetime(datetime(2024, 1, 15, 9, tzinfo=kst))

        assert value == datetime(2024, 1, 15, tzinfo=timezone.utc)
        assert value.tzinfo == timezone.utc

    def test_iso_string_with_z(self):
        assert to_utc_datetime("2024-01-15T10:00:00Z") == datetime(2024, 1, 15, 10, tzinfo=timezone.utc)

    def test_unix_timestamp(self):
        assert to_utc_datetime(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", ["not a date", True, [2024]])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            to_utc_datetime(value)


class TestIsEarlier:
    def test_strictly_earlier(self):
        assert is_earlier("2024-01-15", "2024-03-01") is True
        assert is_earlier("2024-03-01", "2024-03-01T00:00:00Z") is False

    @pytest.mark.parametrize("candidate, reference", [(None, "2024-01-01"), ("2024-01-01", None)])
    def test_missing_value(self, candidate, reference):
        assert is_earlier(candidate, reference) is False
