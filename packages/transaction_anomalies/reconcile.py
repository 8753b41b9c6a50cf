"""Join findings back onto the transactions they reference.

Findings that reference an id with no matching transaction are dropped, not
treated as errors: the service only ever saw the truncated window of records
and may still name ids outside it.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .logging_setup import get_logger
from .models import AnalysisResult, AnomalyFinding, ChartPoint, FlaggedTransaction, Transaction

_logger = get_logger("transaction_anomalies.reconcile")


def reconcile_anomalies(
    transactions: Sequence[Transaction], result: AnalysisResult
) -> list[FlaggedTransaction]:
    """Pair each finding with its transaction, preserving finding order."""

    by_id: dict[int, Transaction] = {t.id: t for t in transactions}

    flagged: list[FlaggedTransaction] = []
    unmatched = 0
    for finding in result.anomalies:
        tx = by_id.get(finding.transaction_id)
        if tx is None:
            unmatched += 1
            _logger.debug("reconcile:unmatched transaction_id=%s", finding.transaction_id)
            continue
        flagged.append(FlaggedTransaction(finding=finding, transaction=tx))

    _logger.info(
        "reconcile:done findings=%d matched=%d unmatched=%d",
        len(result.anomalies),
        len(flagged),
        unmatched,
    )
    return flagged


def build_chart_points(
    transactions: Sequence[Transaction], findings: Iterable[AnomalyFinding]
) -> list[ChartPoint]:
    """Project transactions to plot points, marking those named by a finding.

    ``index`` is the position in the given (display) order, which differs
    from ``id`` once the records have been sorted by period.
    """

    flagged_ids = {f.transaction_id for f in findings}
    return [
        ChartPoint(index=i, transaction=t, is_anomaly=t.id in flagged_ids)
        for i, t in enumerate(transactions)
    ]


__all__ = ["build_chart_points", "reconcile_anomalies"]
