# taskflow/test/utils/test_datetime_utils.py

# Para Rodar o Script:
# pytest taskflow/test/utils/test_datetime_utils.py -v

from datetime import datetime, timedelta, timezone

from taskflow.shared.utils.datetime_utils import DateTimeUtil


class TestDateTimeUtil:
    """Test suite for DateTimeUtil class."""

    def test_utcnow(self):
        """Test utcnow() method generates timezone-aware UTC time."""
        dt = DateTimeUtil.utcnow()
        assert dt.tzinfo == timezone.utc

    def test_utcnow_naive(self):
        dt = DateTimeUtil.utcnow_naive()
        assert dt.tzinfo is None

    def test_for_storage_converts_aware_to_naive_utc(self):
        aware = datetime(2025, 1, 1, 9, 0, tzinfo=timezone(timedelta(hours=-3)))
        assert DateTimeUtil.for_storage(aware) == datetime(2025, 1, 1, 12, 0)

    def test_timestamp_round_trip_treats_naive_as_utc(self):
        naive = datetime(2025, 1, 1, 12, 0)
        ts = DateTimeUtil.datetime_to_timestamp(naive)
        assert DateTimeUtil.timestamp_to_datetime(ts) == naive.replace(tzinfo=timezone.utc)

    def test_seconds_until_is_clamped_at_zero(self):
        now = datetime(2025, 1, 1, 12, 0)
        assert DateTimeUtil.seconds_until(now + timedelta(seconds=90), now) == 90
        assert DateTimeUtil.seconds_until(now - timedelta(seconds=1), now) == 0
