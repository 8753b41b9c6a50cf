"""Pytest configuration for test isolation.

Settings are resolved from the environment (``OPENAI_API_KEY`` and the
``TA_*`` tunables), and a developer's shell or ``.env`` may have them set.
To keep tests hermetic, an autouse fixture clears them for every test; tests
that need a credential set it explicitly.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

# Make sure the workspace `packages/` dir is on sys.path so `transaction_anomalies`
# is importable without installation, and the repo root for `tests.helpers`.
_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
sys.path[:0] = [p for p in [str(_PKG_DIR), str(_ROOT)] if p not in sys.path]

_ENV_VARS = (
    "OPENAI_API_KEY",
    "TA_MODEL",
    "TA_MAX_RECORDS",
    "TA_TIMEOUT_SEC",
    "TRANSACTION_ANOMALIES_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def package_logs(caplog: pytest.LogCaptureFixture):
    """Capture package log records even after the CLI stopped propagation."""

    logger = logging.getLogger("transaction_anomalies")
    logger.addHandler(caplog.handler)
    try:
        yield caplog
    finally:
        logger.removeHandler(caplog.handler)
