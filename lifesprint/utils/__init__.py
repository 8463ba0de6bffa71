"""Shared helpers: UTC clock handling and retry logic."""

from .datetime_utils import get_utc_now, get_utc_today, to_naive_utc, to_utc_date
from .retry import RetryExhausted, retry_with_backoff

__all__ = [
    "get_utc_now",
    "get_utc_today",
    "to_naive_utc",
    "to_utc_date",
    "RetryExhausted",
    "retry_with_backoff",
]
