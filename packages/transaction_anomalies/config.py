"""Runtime settings resolved from environment variables.

The API credential is only ever read from the environment (the CLI loads a
local ``.env`` first). Numeric tunables fall back to their defaults when the
environment holds something unparseable.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .logging_setup import get_logger
from .prompting import DEFAULT_MAX_RECORDS

DEFAULT_MODEL: str = "gpt-5"

_logger = get_logger("transaction_anomalies.config")


def _env_positive_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        value = 0
    if value <= 0:
        _logger.warning("config:invalid_env name=%s value=%r using=%d", name, raw, default)
        return default
    return value


def _env_positive_float(name: str) -> float | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError:
        _logger.warning("config:invalid_env name=%s value=%r using=default", name, raw)
        return None
    return value if value > 0 else None


@dataclass(frozen=True, slots=True)
class Settings:
    """Settings for one analysis cycle.

    Attributes
    ----------
    api_key:
        Credential for the OpenAI API. ``None`` means not configured.
    model:
        Model name passed to the Responses API.
    max_records:
        Cap on how many records are sent to the service per cycle.
    timeout_sec:
        Deadline for the single service call; ``None`` keeps the SDK default.
    """

    api_key: str | None = None
    model: str = DEFAULT_MODEL
    max_records: int = DEFAULT_MAX_RECORDS
    timeout_sec: float | None = None

    def __post_init__(self) -> None:
        # Booleans are ints; disallow them explicitly.
        if (
            isinstance(self.max_records, bool)
            or not isinstance(self.max_records, int)
            or self.max_records <= 0
        ):
            raise ValueError("Settings.max_records must be a positive integer")
        if self.timeout_sec is not None and self.timeout_sec <= 0:
            raise ValueError("Settings.timeout_sec must be positive when set")

    def __repr__(self) -> str:
        masked = "***" if self.api_key else None
        return (
            f"Settings(api_key={masked!r}, model={self.model!r}, "
            f"max_records={self.max_records!r}, timeout_sec={self.timeout_sec!r})"
        )

    @classmethod
    def from_env(cls) -> Settings:
        api_key = (os.getenv("OPENAI_API_KEY") or "").strip() or None
        model = (os.getenv("TA_MODEL") or "").strip() or DEFAULT_MODEL
        return cls(
            api_key=api_key,
            model=model,
            max_records=_env_positive_int("TA_MAX_RECORDS", DEFAULT_MAX_RECORDS),
            timeout_sec=_env_positive_float("TA_TIMEOUT_SEC"),
        )


__all__ = ["DEFAULT_MODEL", "Settings"]
