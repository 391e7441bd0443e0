"""Retry an operation until it succeeds, is cancelled or runs out of time."""

from .cancellation import CancellationToken, RetryCancelledError
from .errors import ErrorCode, MulliganError
from .models import Attempt, RetryHistory
from .retry import (
    DEFAULT_INTERVAL_SECONDS,
    INFINITE,
    RetryPolicy,
    retry_action,
    retry_call,
    retry_until,
    retry_while,
)

__all__ = [
    "DEFAULT_INTERVAL_SECONDS",
    "INFINITE",
    "Attempt",
    "CancellationToken",
    "ErrorCode",
    "MulliganError",
    "RetryCancelledError",
    "RetryHistory",
    "RetryPolicy",
    "retry_action",
    "retry_call",
    "retry_until",
    "retry_while",
]
