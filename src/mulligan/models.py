"""Attempt records and the history returned by every retry loop."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from mulligan.errors import ErrorCode, MulliganError

T = TypeVar("T")


def _describe_failure(failure: BaseException | None) -> str | None:
    if failure is None:
        return None
    message = str(failure)
    if message:
        return f"{type(failure).__name__}: {message}"
    return type(failure).__name__


@dataclass(frozen=True)
class Attempt(Generic[T]):
    """One execution of the operation.

    ``start`` and ``finish`` are readings of the loop's clock in seconds. The
    default clock is ``time.monotonic``, whose readings only mean something
    relative to each other inside one process; pass ``clock=time.time`` to
    the retry functions to record wall-clock timestamps instead.
    ``value`` is only meaningful when the operation returned normally.
    """

    number: int
    start: float
    finish: float
    value: T | None = None
    failure: BaseException | None = None
    completed_successfully: bool = False
    canceled: bool = False

    @property
    def duration(self) -> float:
        return max(0.0, self.finish - self.start)

    @property
    def faulted(self) -> bool:
        return self.failure is not None

    def to_dict(self) -> dict[str, object]:
        return {
            "number": self.number,
            "start": self.start,
            "finish": self.finish,
            "duration": self.duration,
            "value": self.value,
            "failure": _describe_failure(self.failure),
            "completed_successfully": self.completed_successfully,
            "canceled": self.canceled,
        }


@dataclass(frozen=True)
class RetryHistory(Generic[T]):
    """Chronological attempt log with derived summary queries."""

    attempts: tuple[Attempt[T], ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "attempts", tuple(self.attempts))
        if not self.attempts:
            raise MulliganError(
                "Retry history must contain at least one attempt.",
                code=ErrorCode.INVALID_HISTORY,
            )
        successes = 0
        for attempt in self.attempts:
            if attempt.canceled and attempt.completed_successfully:
                raise MulliganError(
                    f"Attempt {attempt.number} cannot be both canceled and successful.",
                    code=ErrorCode.INVALID_HISTORY,
                )
            if attempt.failure is not None and attempt.completed_successfully:
                raise MulliganError(
                    f"Attempt {attempt.number} cannot carry a failure and be successful.",
                    code=ErrorCode.INVALID_HISTORY,
                )
            if attempt.completed_successfully:
                successes += 1
        if successes > 1:
            raise MulliganError(
                "Retry history cannot contain more than one successful attempt.",
                code=ErrorCode.INVALID_HISTORY,
            )

    def __len__(self) -> int:
        return len(self.attempts)

    def __iter__(self) -> Iterator[Attempt[T]]:
        return iter(self.attempts)

    def __getitem__(self, index: int) -> Attempt[T]:
        return self.attempts[index]

    @property
    def count(self) -> int:
        return len(self.attempts)

    @property
    def total_duration(self) -> float:
        return sum(attempt.duration for attempt in self.attempts)

    @property
    def elapsed(self) -> float:
        """Time from the first attempt's start to the last attempt's finish."""
        return max(0.0, self.attempts[-1].finish - self.attempts[0].start)

    @property
    def last_attempt(self) -> Attempt[T]:
        return self.attempts[-1]

    @property
    def value(self) -> T | None:
        return self.last_attempt.value

    @property
    def is_completed_successfully(self) -> bool:
        return self.last_attempt.completed_successfully

    @property
    def is_canceled(self) -> bool:
        return self.last_attempt.canceled

    @property
    def failures(self) -> tuple[Attempt[T], ...]:
        return tuple(attempt for attempt in self.attempts if not attempt.completed_successfully)

    @property
    def success_attempt(self) -> Attempt[T] | None:
        for attempt in self.attempts:
            if attempt.completed_successfully:
                return attempt
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "total_duration": self.total_duration,
            "completed_successfully": self.is_completed_successfully,
            "canceled": self.is_canceled,
            "attempts": [attempt.to_dict() for attempt in self.attempts],
        }
