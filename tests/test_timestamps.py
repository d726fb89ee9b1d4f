"""Tests for timestamp coercion of record-store values."""

import math
from datetime import date, datetime, timezone

import pytest

from conftest import SAO_PAULO, T0

from workorder_sla.sla.domain.timestamps import get_zone, to_datetime


class ServerTimestamp:
    """Stand-in for a document-store timestamp object."""

    def __init__(self, value):
        self._value = value

    def to_datetime(self):
        return self._value


class ProtoTimestamp:
    """Protobuf-style timestamp returning naive UTC."""

    def __init__(self, value):
        self._value = value

    def ToDatetime(self):
        return self._value


class TestToDatetime:

    @pytest.mark.parametrize("value", [None, True, False, "", "   ", "not a date", math.nan, object(), {"foo": 1}])
    def test_unreadable_values_become_none(self, value):
        assert to_datetime(value) is None

    def test_aware_datetime_passes_through(self):
        assert to_datetime(T0) is T0

    def test_naive_datetime_gets_zone(self):
        assert to_datetime(datetime(2024, 3, 4, 9, 0)) == T0.replace(hour=9)
        assert to_datetime(datetime(2024, 3, 4, 9, 0), SAO_PAULO) == T0

    def test_date_is_local_midnight(self):
        value = to_datetime(date(2024, 3, 4), SAO_PAULO)
        assert value == datetime(2024, 3, 4, 3, 0, tzinfo=timezone.utc)

    def test_epoch_milliseconds(self):
        assert to_datetime(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)
        assert to_datetime(T0.timestamp() * 1000) == T0

    def test_iso_strings(self):
        assert to_datetime("2024-03-04T12:00:00Z") == T0
        assert to_datetime("2024-03-04T09:00:00-03:00") == T0
        assert to_datetime("2024-03-04T09:00:00", SAO_PAULO) == T0

    def test_serialized_server_timestamp(self):
        assert to_datetime({"seconds": 1709553600, "nanoseconds": 500_000_000}) == T0.replace(microsecond=500_000)
        assert to_datetime({"_seconds": 1709553600, "_nanoseconds": 0}) == T0

    def test_timestamp_objects(self):
        assert to_datetime(ServerTimestamp(T0)) == T0
        assert to_datetime(ServerTimestamp("nope")) is None

    def test_protobuf_naive_result_is_utc(self):
        naive = datetime(2024, 3, 4, 12, 0)
        assert to_datetime(ProtoTimestamp(naive), SAO_PAULO) == T0


def test_get_zone_falls_back_to_utc():
    assert get_zone("Nowhere/Atlantis") is timezone.utc
    assert str(get_zone("America/Sao_Paulo")) == "America/Sao_Paulo"
