from __future__ import annotations

from mulligan.errors import ErrorCode, MulliganError


def test_error_code_values() -> None:
    assert int(ErrorCode.INVALID_OPERATION) == 2
    assert int(ErrorCode.INVALID_POLICY) == 3
    assert int(ErrorCode.INVALID_HISTORY) == 4
    assert int(ErrorCode.CONFIG_ERROR) == 5


def test_mulligan_error_defaults_to_invalid_operation() -> None:
    error = MulliganError("msg")
    assert error.code == ErrorCode.INVALID_OPERATION


def test_mulligan_error_str_with_hint() -> None:
    error = MulliganError("msg", hint="hint")
    assert str(error) == "msg Hint: hint"


def test_mulligan_error_str_without_hint() -> None:
    error = MulliganError("msg")
    assert str(error) == "msg"
