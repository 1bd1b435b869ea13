"""Utility functions and helpers."""

from fleetplan.utils.datetime_utils import ensure_utc, to_api_timezone, to_business_timezone
from fleetplan.utils.retry import RetryConfig, get_retrying

__all__ = [
    "RetryConfig",
    "get_retrying",
    "ensure_utc",
    "to_api_timezone",
    "to_business_timezone",
]
