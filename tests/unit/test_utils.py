"""
Tests for lifesprint/utils (datetime helpers and retry with backoff).
"""

import pytest
from datetime import date, datetime
import pytz

from lifesprint.utils.datetime_utils import get_utc_now, get_utc_today, to_naive_utc, to_utc_date
from lifesprint.utils.retry import RetryExhausted, retry_with_backoff


class TestDatetimeUtils:

    def test_get_utc_now_is_naive(self):
        now = get_utc_now()
        assert isinstance(now, datetime)
        assert now.tzinfo is None

    def test_get_utc_today(self):
        assert isinstance(get_utc_today(), date)

    def test_to_naive_utc_none(self):
        assert to_naive_utc(None) is None

    def test_to_naive_utc_keeps_naive(self):
        dt = datetime(2026, 1, 7, 12, 0)
        assert to_naive_utc(dt) == dt

    def test_to_naive_utc_converts_aware(self):
        tokyo = pytz.timezone("Asia/Tokyo")
        dt = tokyo.localize(datetime(2026, 1, 7, 8, 0))
        assert to_naive_utc(dt) == datetime(2026, 1, 6, 23, 0)

    def test_to_utc_date_passes_dates_through(self):
        assert to_utc_date(date(2026, 1, 7)) == date(2026, 1, 7)

    def test_to_utc_date_from_aware_datetime(self):
        dt = pytz.timezone("Asia/Tokyo").localize(datetime(2026, 1, 1, 3, 0))
        assert to_utc_date(dt) == date(2025, 12, 31)


class TransientError(Exception):
    pass


class FatalError(Exception):
    pass


class TestRetryWithBackoff:

    @pytest.mark.asyncio
    async def test_success_first_try(self):
        calls = []

        async def op(value):
            calls.append(value)
            return value * 2

        assert await retry_with_backoff(op, 21, base_delay=0) == 42
        assert calls == [21]

    @pytest.mark.asyncio
    async def test_retries_until_success(self):
        attempts = {"n": 0}

        async def flaky():
            attempts["n"] += 1
            if attempts["n"] < 3:
                raise TransientError("busy")
            return "ok"

        result = await retry_with_backoff(
            flaky, max_retries=3, base_delay=0, jitter=False, retry_on=(TransientError,)
        )

        assert result == "ok"
        assert attempts["n"] == 3

    @pytest.mark.asyncio
    async def test_exhausted(self):
        async def always_fails():
            raise TransientError("still busy")

        with pytest.raises(RetryExhausted) as exc:
            await retry_with_backoff(
                always_fails, max_retries=2, base_delay=0, jitter=False, retry_on=(TransientError,)
            )

        assert isinstance(exc.value.__cause__, TransientError)
        assert "3 attempts" in str(exc.value)

    @pytest.mark.asyncio
    async def test_skip_on_raises_immediately(self):
        attempts = {"n": 0}

        async def op():
            attempts["n"] += 1
            raise FatalError("bad input")

        with pytest.raises(FatalError):
            await retry_with_backoff(op, max_retries=5, base_delay=0, skip_on=(FatalError,))

        assert attempts["n"] == 1

    @pytest.mark.asyncio
    async def test_unlisted_exception_propagates(self):
        async def op():
            raise FatalError("not retryable")

        with pytest.raises(FatalError):
            await retry_with_backoff(op, max_retries=5, base_delay=0, retry_on=(TransientError,))

    @pytest.mark.asyncio
    async def test_plain_function(self):
        assert await retry_with_backoff(lambda: "sync", base_delay=0) == "sync"
