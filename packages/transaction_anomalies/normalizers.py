"""CSV → ``Transaction`` normalization.

Parsing follows RFC 4180 rules via the stdlib :mod:`csv` module (quoted
fields with embedded commas and newlines, doubled quotes). The reader runs in
strict mode so unbalanced quoting is reported instead of silently absorbed.

Expected header columns are ``BA``, ``monthly``, ``actCode`` and ``amount``.
Other columns are ignored; missing ones yield empty strings. Rows whose amount
does not parse to a finite number are dropped and counted, and ids are dense
over the rows that remain.
"""

from __future__ import annotations

import csv
import math
from decimal import Decimal, InvalidOperation
from io import StringIO
from os import PathLike
from pathlib import Path

from .errors import ParseError
from .logging_setup import get_logger
from .models import IngestResult, Transaction

COLUMN_BUSINESS_AREA = "BA"
COLUMN_PERIOD = "monthly"
COLUMN_ACTIVITY_CODE = "actCode"
COLUMN_AMOUNT = "amount"

EXPECTED_COLUMNS: tuple[str, ...] = (
    COLUMN_BUSINESS_AREA,
    COLUMN_PERIOD,
    COLUMN_ACTIVITY_CODE,
    COLUMN_AMOUNT,
)

_logger = get_logger("transaction_anomalies.normalizers")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def parse_amount(raw: str | None) -> float | None:
    """Parse an amount cell, returning ``None`` when it is not a finite number.

    Every comma is treated as a thousands separator and removed; the period
    is the only decimal separator. No currency symbols or locale rules apply.
    """

    if raw is None:
        return None
    s = raw.replace(",", "").strip()
    if not s:
        return None
    try:
        d = Decimal(s)
    except InvalidOperation:
        return None
    # Decimal accepts "NaN"/"Infinity"; neither is a usable amount.
    if not d.is_finite():
        return None
    value = float(d)
    # Values beyond float range overflow to inf.
    return value if math.isfinite(value) else None


def _read_csv_rows(csv_text: str) -> list[dict[str, str]]:
    with StringIO(csv_text, newline="") as f:
        reader = csv.DictReader(f, strict=True)
        rows: list[dict[str, str]] = []
        try:
            if not reader.fieldnames:
                raise ParseError("the file has no header row")
            missing = [c for c in EXPECTED_COLUMNS if c not in reader.fieldnames]
            if missing:
                _logger.warning("ingest:missing_columns columns=%s", ",".join(missing))
            for row in reader:
                # DictReader may include a None key aggregating extra columns
                # and None values for short rows; keep a flat str -> str shape.
                normalized = {
                    k: (v if v is not None else "") for k, v in row.items() if k is not None
                }
                rows.append(normalized)
        except csv.Error as exc:
            raise ParseError(f"malformed CSV near line {reader.line_num}: {exc}") from exc
        return rows


def _is_blank(row: dict[str, str]) -> bool:
    return not any(v.strip() for v in row.values())


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def normalize_csv(csv_text: str, *, sort_by_period: bool = False) -> IngestResult:
    """Normalize CSV text into transactions.

    Parameters
    ----------
    csv_text:
        Full file content; the first row is the header.
    sort_by_period:
        When True, stable-sort the kept rows by ``period`` (plain string
        comparison). Ids keep the values assigned in file order.

    Raises
    ------
    ParseError
        When there is no header, the CSV is structurally malformed, or no row
        has a usable amount. Nothing partial is returned in that case.
    """

    # A leading UTF-8 BOM would otherwise stick to the first header name.
    rows = _read_csv_rows(csv_text.removeprefix("\ufeff"))

    transactions: list[Transaction] = []
    dropped = 0
    for row in rows:
        if _is_blank(row):
            continue
        raw_amount = row.get(COLUMN_AMOUNT, "")
        amount = parse_amount(raw_amount)
        if amount is None:
            dropped += 1
            continue
        transactions.append(
            Transaction(
                id=len(transactions),
                business_area=row.get(COLUMN_BUSINESS_AREA, ""),
                period=row.get(COLUMN_PERIOD, ""),
                activity_code=row.get(COLUMN_ACTIVITY_CODE, ""),
                amount=amount,
                raw_amount_text=raw_amount,
            )
        )

    if not transactions:
        raise ParseError(
            f"no valid data rows found ({dropped} row(s) had an unparseable amount)"
            if dropped
            else "no valid data rows found"
        )

    if sort_by_period:
        transactions.sort(key=lambda t: t.period)

    _logger.info("ingest:done kept=%d dropped=%d", len(transactions), dropped)
    return IngestResult(transactions=transactions, dropped_rows=dropped)


def read_csv_text(csv_path: str | PathLike[str]) -> str:
    """Return the text of ``csv_path`` read with the platform's default decoding.

    ``OSError`` subclasses (missing file, permissions, a directory) propagate
    unchanged; content that cannot be decoded is reported as :class:`ParseError`.
    """

    p = Path(csv_path)
    try:
        with p.open(newline="") as f:
            return f.read()
    except UnicodeDecodeError as exc:
        raise ParseError(f"could not decode {p.name}: {exc.reason}") from exc


def read_transactions_file(
    csv_path: str | PathLike[str], *, sort_by_period: bool = False
) -> IngestResult:
    return normalize_csv(read_csv_text(csv_path), sort_by_period=sort_by_period)


__all__ = [
    "EXPECTED_COLUMNS",
    "normalize_csv",
    "parse_amount",
    "read_csv_text",
    "read_transactions_file",
]
