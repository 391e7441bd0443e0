"""Retry settings loading from TOML and the environment."""

from __future__ import annotations

import logging as py_logging
import math
import os
import sys
from pathlib import Path
from typing import Literal, TextIO, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator

if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover
    import tomli as tomllib

from mulligan.logging import configure_logging, normalize_level
from mulligan.retry import DEFAULT_INTERVAL_SECONDS, DEFAULT_TIMEOUT_SECONDS, INFINITE, RetryPolicy

TIMEOUT_ENV = "MULLIGAN_RETRY_TIMEOUT"
INTERVAL_ENV = "MULLIGAN_RETRY_INTERVAL"
DEFAULT_LOG_LEVEL: Literal["DEBUG", "INFO", "WARN", "ERROR"] = "INFO"

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARN", "ERROR"}
_INFINITE_MARKERS = {"inf", "infinite", "infinity", "-1"}


class RetrySettings(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, ge=0)
    interval_seconds: float = Field(default=DEFAULT_INTERVAL_SECONDS, ge=0)
    log_level: Literal["DEBUG", "INFO", "WARN", "ERROR"] = DEFAULT_LOG_LEVEL
    log_file: str = ""

    @field_validator("interval_seconds")
    @classmethod
    def _validate_interval(cls, value: float) -> float:
        if math.isinf(value):
            raise ValueError("interval_seconds must be finite")
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _validate_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            return normalize_level(value)
        return value

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            timeout_seconds=self.timeout_seconds,
            interval_seconds=self.interval_seconds,
        )

    def configure_logging(self, stream: TextIO | None = None) -> py_logging.Logger:
        return configure_logging(self.log_level, stream, log_file=self.log_file or None)


def _parse_seconds(value: object, *, allow_infinite: bool) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        text = value.strip().lower()
        if allow_infinite and text in _INFINITE_MARKERS:
            return INFINITE
        try:
            value = float(text)
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    seconds = float(value)
    if allow_infinite and seconds == -1:
        return INFINITE
    if math.isnan(seconds) or seconds < 0:
        return None
    if math.isinf(seconds) and not allow_infinite:
        return None
    return seconds


def _sanitize(raw: dict[str, object]) -> RetrySettings:
    settings = RetrySettings()

    timeout = _parse_seconds(raw.get("timeout_seconds"), allow_infinite=True)
    if timeout is not None:
        settings.timeout_seconds = timeout

    interval = _parse_seconds(raw.get("interval_seconds"), allow_infinite=False)
    if interval is not None:
        settings.interval_seconds = interval

    log_level = raw.get("log_level", settings.log_level)
    if isinstance(log_level, str) and normalize_level(log_level) in _VALID_LOG_LEVELS:
        settings.log_level = cast(
            Literal["DEBUG", "INFO", "WARN", "ERROR"], normalize_level(log_level)
        )

    log_file = raw.get("log_file", settings.log_file)
    if isinstance(log_file, str):
        settings.log_file = log_file.strip()

    return settings


def _apply_env(settings: RetrySettings) -> RetrySettings:
    env_timeout = _parse_seconds(os.getenv(TIMEOUT_ENV, ""), allow_infinite=True)
    if env_timeout is not None:
        settings.timeout_seconds = env_timeout
    env_interval = _parse_seconds(os.getenv(INTERVAL_ENV, ""), allow_infinite=False)
    if env_interval is not None:
        settings.interval_seconds = env_interval
    return settings


def _read_section(path: str | Path | None) -> dict[str, object] | None:
    if path is None:
        return None
    resolved = Path(path).expanduser()
    if not resolved.exists():
        return None
    try:
        with resolved.open("rb") as handle:
            raw = tomllib.load(handle)
    except (tomllib.TOMLDecodeError, OSError):
        return None
    section = raw.get("retry", {})
    if not isinstance(section, dict):
        return None
    return section


def load_settings(
    path: str | Path | None = None,
    *,
    configure: bool = False,
    stream: TextIO | None = None,
) -> RetrySettings:
    """Read the ``[retry]`` table of a TOML file, falling back to defaults.

    Unreadable files and invalid values never fail; the affected fields keep
    their defaults. Environment variables override the file. With
    ``configure=True`` the ``mulligan`` logger is set up from ``log_level``
    and ``log_file``, which raises ``MulliganError`` if the file cannot be
    opened.
    """
    section = _read_section(path)
    settings = _sanitize(section) if section is not None else RetrySettings()
    settings = _apply_env(settings)
    if configure:
        settings.configure_logging(stream)
    return settings
