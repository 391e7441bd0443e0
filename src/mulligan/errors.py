"""Deterministic error model for caller contract violations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ErrorCode(IntEnum):
    INVALID_OPERATION = 2
    INVALID_POLICY = 3
    INVALID_HISTORY = 4
    CONFIG_ERROR = 5


@dataclass
class MulliganError(Exception):
    message: str
    code: ErrorCode = ErrorCode.INVALID_OPERATION
    hint: str = ""

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message} Hint: {self.hint}"
        return self.message
