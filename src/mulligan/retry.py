"""Retry control loop and its operation-shape variants."""

from __future__ import annotations

import logging as py_logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar, Union

from mulligan.cancellation import CancellationToken, RetryCancelledError
from mulligan.errors import ErrorCode, MulliganError
from mulligan.models import Attempt, RetryHistory

T = TypeVar("T")

logger = py_logging.getLogger(__name__)

INFINITE = math.inf
DEFAULT_TIMEOUT_SECONDS = 1.0
DEFAULT_INTERVAL_SECONDS = 0.2

RetryOn = Union[
    type[Exception],
    tuple[type[Exception], ...],
    Callable[[Exception], bool],
]


@dataclass(frozen=True)
class RetryPolicy:
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    interval_seconds: float = DEFAULT_INTERVAL_SECONDS

    def __post_init__(self) -> None:
        _validate_seconds("timeout_seconds", self.timeout_seconds, allow_infinite=True)
        _validate_seconds("interval_seconds", self.interval_seconds, allow_infinite=False)

    @property
    def infinite(self) -> bool:
        return math.isinf(self.timeout_seconds)

    def timed_out(self, started: float, now: float) -> bool:
        if self.infinite:
            return False
        return now - started >= self.timeout_seconds


def _validate_seconds(name: str, value: object, *, allow_infinite: bool) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MulliganError(
            f"{name} must be a number of seconds.",
            code=ErrorCode.INVALID_POLICY,
            hint=f"Got {type(value).__name__}.",
        )
    if math.isnan(value) or value < 0:
        raise MulliganError(
            f"{name} must be zero or positive.",
            code=ErrorCode.INVALID_POLICY,
            hint=f"Got {value!r}.",
        )
    if math.isinf(value) and not allow_infinite:
        raise MulliganError(f"{name} must be finite.", code=ErrorCode.INVALID_POLICY)


def _require_callable(value: object, name: str) -> None:
    if not callable(value):
        raise MulliganError(
            f"{name} must be callable.",
            code=ErrorCode.INVALID_OPERATION,
            hint=f"Got {type(value).__name__}.",
        )


def _is_exception_type(value: object) -> bool:
    return isinstance(value, type) and issubclass(value, Exception)


def _retry_filter(retry_on: RetryOn) -> Callable[[Exception], bool]:
    if _is_exception_type(retry_on) or (
        isinstance(retry_on, tuple) and retry_on and all(_is_exception_type(item) for item in retry_on)
    ):
        exception_types = retry_on

        def matches(exc: Exception) -> bool:
            return isinstance(exc, exception_types)  # type: ignore[arg-type]

        return matches
    if callable(retry_on) and not isinstance(retry_on, type):
        return retry_on
    raise MulliganError(
        "retry_on must be an exception type, a tuple of exception types or a callable.",
        code=ErrorCode.INVALID_POLICY,
    )


def retry_while(
    operation: Callable[[], T],
    *,
    policy: RetryPolicy,
    predicate: Callable[[T], bool] | None = None,
    token: CancellationToken | None = None,
    retry_on: RetryOn = Exception,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> RetryHistory[T]:
    """Run ``operation`` until a terminal condition and return every attempt.

    Terminal conditions are checked in order: success (the operation returned
    and ``predicate`` is absent or returned False), cancellation, a failure
    rejected by ``retry_on``, then the aggregate timeout. Operation errors are
    recorded on the attempt and never raised. Only invalid arguments raise
    :class:`MulliganError`, before the first attempt runs.

    Cancellation is polled before each attempt and after each unsuccessful
    one. An operation already running is not interrupted; it can observe the
    token itself through :meth:`CancellationToken.raise_if_cancelled`.
    """
    _require_callable(operation, "operation")
    if predicate is not None:
        _require_callable(predicate, "predicate")
    if not isinstance(policy, RetryPolicy):
        raise MulliganError("policy must be a RetryPolicy.", code=ErrorCode.INVALID_POLICY)
    if token is not None and not isinstance(token, CancellationToken):
        raise MulliganError("token must be a CancellationToken.", code=ErrorCode.INVALID_OPERATION)
    is_retryable = _retry_filter(retry_on)

    attempts: list[Attempt[T]] = []
    loop_start = clock()
    while True:
        number = len(attempts) + 1
        started = clock()

        if token is not None and token.cancelled:
            attempts.append(
                Attempt(number, started, clock(), failure=RetryCancelledError(), canceled=True)
            )
            logger.info("Retry cancelled before attempt=%s", number)
            return RetryHistory(tuple(attempts))

        logger.debug("Running attempt=%s", number)
        value: T | None = None
        failure: Exception | None = None
        try:
            value = operation()
            done = predicate is None or not predicate(value)
        except RetryCancelledError as exc:
            attempts.append(Attempt(number, started, clock(), value=value, failure=exc, canceled=True))
            logger.info("Retry cancelled by operation attempt=%s", number)
            return RetryHistory(tuple(attempts))
        except Exception as exc:
            failure = exc
            done = False
        finished = clock()

        if done:
            attempts.append(
                Attempt(number, started, finished, value=value, completed_successfully=True)
            )
            logger.info("Retry succeeded attempt=%s", number)
            return RetryHistory(tuple(attempts))

        if token is not None and token.cancelled:
            cancelled = RetryCancelledError(f"Retry was cancelled during attempt {number}.")
            cancelled.__cause__ = failure
            attempts.append(
                Attempt(number, started, finished, value=value, failure=cancelled, canceled=True)
            )
            logger.info("Retry cancelled during attempt=%s", number)
            return RetryHistory(tuple(attempts))

        attempts.append(Attempt(number, started, finished, value=value, failure=failure))

        if failure is not None:
            if not is_retryable(failure):
                logger.warning(
                    "Retry stopped on non-retryable failure attempt=%s error=%r", number, failure
                )
                return RetryHistory(tuple(attempts))
            logger.warning("Attempt failed attempt=%s error=%r", number, failure)
        else:
            logger.debug("Predicate requested another attempt attempt=%s value=%r", number, value)

        if policy.timed_out(loop_start, clock()):
            logger.info(
                "Retry timed out after attempts=%s timeout_seconds=%s",
                number,
                policy.timeout_seconds,
            )
            return RetryHistory(tuple(attempts))

        sleep(policy.interval_seconds)


def _policy(timeout_seconds: float, interval_seconds: float | None) -> RetryPolicy:
    if interval_seconds is None:
        interval_seconds = DEFAULT_INTERVAL_SECONDS
    return RetryPolicy(timeout_seconds=timeout_seconds, interval_seconds=interval_seconds)


def retry_action(
    action: Callable[[], object],
    timeout_seconds: float,
    *,
    interval_seconds: float | None = None,
    token: CancellationToken | None = None,
    retry_on: RetryOn = Exception,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> RetryHistory[None]:
    """Retry an action whose return value is ignored."""
    _require_callable(action, "action")

    def run() -> None:
        action()

    return retry_while(
        run,
        policy=_policy(timeout_seconds, interval_seconds),
        token=token,
        retry_on=retry_on,
        clock=clock,
        sleep=sleep,
    )


def retry_call(
    function: Callable[[], T],
    timeout_seconds: float,
    *,
    interval_seconds: float | None = None,
    token: CancellationToken | None = None,
    retry_on: RetryOn = Exception,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> RetryHistory[T]:
    """Retry a function until it returns without raising."""
    return retry_while(
        function,
        policy=_policy(timeout_seconds, interval_seconds),
        token=token,
        retry_on=retry_on,
        clock=clock,
        sleep=sleep,
    )


def retry_until(
    predicate: Callable[[T], bool],
    function: Callable[[], T],
    timeout_seconds: float,
    *,
    interval_seconds: float | None = None,
    token: CancellationToken | None = None,
    retry_on: RetryOn = Exception,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> RetryHistory[T]:
    """Retry a function while ``predicate(value)`` asks for another attempt."""
    return retry_while(
        function,
        policy=_policy(timeout_seconds, interval_seconds),
        predicate=predicate,
        token=token,
        retry_on=retry_on,
        clock=clock,
        sleep=sleep,
    )
