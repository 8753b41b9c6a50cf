"""End-to-end analysis cycle.

ingest → build request → invoke service → clean/validate → reconcile, as one
async sequence whose only suspension point is the service call. The cycle's
loading state is tracked through :mod:`transaction_anomalies.state`; any
failure records ``Failed`` and re-raises the specific error.
"""

from __future__ import annotations

import asyncio

from .analysis import request_analysis
from .config import Settings
from .errors import AnalysisServiceError, AnomalyDetectorError, ServiceErrorKind
from .logging_setup import get_logger
from .normalizers import normalize_csv
from .prompting import build_analysis_request
from .reconcile import reconcile_anomalies
from .state import (
    Analyzing,
    Completed,
    Failed,
    Idle,
    LoadingPhase,
    LoadingState,
    Parsing,
    transition,
)
from .validation import parse_analysis_result

_logger = get_logger("transaction_anomalies.pipeline")


class AnomalyAnalysis:
    """Runs analysis cycles and exposes the current loading state.

    One instance handles one cycle at a time. Starting a new cycle after a
    finished one discards the previous results; starting while a cycle is in
    flight raises :class:`~transaction_anomalies.errors.IllegalTransitionError`.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings if settings is not None else Settings.from_env()
        self._state: LoadingState = Idle()

    @property
    def state(self) -> LoadingState:
        return self._state

    def _advance(self, target: LoadingState) -> None:
        _logger.debug("state:%s->%s", self._state.phase, target.phase)
        self._state = transition(self._state, target)

    def reset(self) -> None:
        if self._state.phase is not LoadingPhase.IDLE:
            self._advance(Idle())

    def _fail(self, error: AnomalyDetectorError) -> None:
        _logger.warning("cycle:failed error=%s", error.__class__.__name__)
        self._advance(Failed(error))

    async def run(self, csv_text: str, *, sort_by_period: bool = False) -> Completed:
        """Run one full cycle over ``csv_text`` and return the completed state.

        Whatever ends the cycle early leaves the session in ``Failed``. A
        cancelled cycle (for example under ``asyncio.wait_for``) is recorded
        as a timeout and the cancellation itself is re-raised.
        """

        self.reset()
        self._advance(Parsing())
        try:
            ingest = normalize_csv(csv_text, sort_by_period=sort_by_period)
            self._advance(Analyzing(ingest.transactions))
            request = build_analysis_request(
                ingest.transactions, max_records=self.settings.max_records
            )
            text = await request_analysis(request, settings=self.settings)
            result = parse_analysis_result(text)
            completed = Completed(
                transactions=ingest.transactions,
                result=result,
                flagged=reconcile_anomalies(ingest.transactions, result),
                dropped_rows=ingest.dropped_rows,
            )
        except AnomalyDetectorError as e:
            self._fail(e)
            raise
        except (asyncio.CancelledError, TimeoutError):
            self._fail(
                AnalysisServiceError(
                    "analysis was cancelled before a reply arrived",
                    kind=ServiceErrorKind.TIMEOUT,
                )
            )
            raise
        except Exception as e:
            self._fail(AnalysisServiceError(f"analysis failed unexpectedly: {e}"))
            raise

        self._advance(completed)
        return completed


async def analyze_csv_text(
    csv_text: str,
    *,
    settings: Settings | None = None,
    sort_by_period: bool = False,
) -> Completed:
    """Run a single analysis cycle without keeping the session around."""

    return await AnomalyAnalysis(settings).run(csv_text, sort_by_period=sort_by_period)


__all__ = ["AnomalyAnalysis", "analyze_csv_text"]
