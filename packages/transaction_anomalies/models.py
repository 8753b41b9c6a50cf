"""Data models for ``transaction_anomalies``.

Two families live here:

- Plain frozen dataclasses for records produced locally (``Transaction``,
  ``FlaggedTransaction``, ``ChartPoint``) and the ``IngestResult`` tuple.
- Pydantic models for data received from the analysis service
  (``AnomalyFinding``, ``AnalysisResult``). The service is asked for a strict
  schema but its reply is still validated here on receipt.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr

# ---------------------------------------------------------------------------
# Ingested records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Transaction:
    """One CSV row after normalization.

    Attributes
    ----------
    id:
        Zero-based position among the rows that survived amount parsing.
        Assigned before any presentation sort and used as the join key for
        findings.
    business_area:
        ``BA`` column; empty when the column is absent.
    period:
        ``monthly`` column; compared lexicographically when sorting.
    activity_code:
        ``actCode`` column; the dimension outliers are grouped by.
    amount:
        Parsed amount with thousands separators removed.
    raw_amount_text:
        The amount cell exactly as it appeared in the file.
    """

    id: int
    business_area: str
    period: str
    activity_code: str
    amount: float
    raw_amount_text: str


class IngestResult(NamedTuple):
    transactions: list[Transaction]
    """Kept rows, in presentation order."""

    dropped_rows: int
    """Rows skipped because their amount did not parse to a finite number."""


# ---------------------------------------------------------------------------
# Analysis service reply
# ---------------------------------------------------------------------------


class Severity(StrEnum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        """Urgency rank; higher is more urgent."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK: dict[Severity, int] = {
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
}


class AnomalyFinding(BaseModel):
    """A single flagged transaction as returned by the service.

    Field names on the wire are camelCase (``transactionId``). Strict scalar
    types keep a stringified id or a boolean from slipping through.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    transaction_id: StrictInt | StrictFloat = Field(alias="transactionId")
    reason: StrictStr
    severity: Severity


class AnalysisResult(BaseModel):
    """Top-level reply: a summary plus findings in the order returned."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    summary: StrictStr
    anomalies: list[AnomalyFinding]


# ---------------------------------------------------------------------------
# Display view models
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FlaggedTransaction:
    """A finding joined to the transaction it references."""

    finding: AnomalyFinding
    transaction: Transaction

    @property
    def severity(self) -> Severity:
        return self.finding.severity

    @property
    def reason(self) -> str:
        return self.finding.reason


@dataclass(frozen=True, slots=True)
class ChartPoint:
    index: int
    transaction: Transaction
    is_anomaly: bool


__all__ = [
    "AnalysisResult",
    "AnomalyFinding",
    "ChartPoint",
    "FlaggedTransaction",
    "IngestResult",
    "Severity",
    "Transaction",
]
