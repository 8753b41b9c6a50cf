"""CLI for the ``transaction_anomalies`` package.

Typer-based console interface. Environment variables (notably
``OPENAI_API_KEY``) are loaded from a local ``.env`` using ``python-dotenv``
before delegating to command logic. Business logic lives in
``transaction_anomalies.pipeline`` and related modules; the ``cmd_*``
handlers here only do I/O and return a process exit code.
"""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from .config import Settings
from .errors import AnomalyDetectorError, user_message
from .logging_setup import configure_logging
from .models import FlaggedTransaction, Severity, Transaction
from .reconcile import build_chart_points
from .state import Completed

app = typer.Typer(
    add_completion=False,
    help="Flag anomalous amounts in a transactions CSV using an LLM.",
)

_SEVERITY_COLORS: dict[Severity, str] = {
    Severity.HIGH: typer.colors.RED,
    Severity.MEDIUM: typer.colors.YELLOW,
    Severity.LOW: typer.colors.GREEN,
}


# ---- Formatting helpers ------------------------------------------------------


def _fmt_amount(amount: float) -> str:
    return f"{amount:,.2f}"


def _format_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> list[str]:
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))
    lines = ["  ".join(h.ljust(widths[i]) for i, h in enumerate(headers))]
    lines.append("  ".join("-" * w for w in widths))
    for row in rows:
        lines.append("  ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)))
    return lines


def _flagged_rows(flagged: Sequence[FlaggedTransaction]) -> list[list[str]]:
    return [
        [
            f.severity.value,
            f.transaction.activity_code,
            f.transaction.period,
            _fmt_amount(f.transaction.amount),
            f.reason,
        ]
        for f in flagged
    ]


def _by_urgency(flagged: Sequence[FlaggedTransaction]) -> list[FlaggedTransaction]:
    # Stable, so equal severities keep the service order.
    return sorted(flagged, key=lambda f: -f.severity.rank)


def _completed_to_json(completed: Completed) -> dict[str, Any]:
    return {
        "summary": completed.result.summary,
        "transactions": len(completed.transactions),
        "dropped_rows": completed.dropped_rows,
        "anomalies": [
            {
                "transactionId": f.transaction.id,
                "severity": f.severity.value,
                "reason": f.reason,
                "businessArea": f.transaction.business_area,
                "period": f.transaction.period,
                "activityCode": f.transaction.activity_code,
                "amount": f.transaction.amount,
                "rawAmountText": f.transaction.raw_amount_text,
            }
            for f in completed.flagged
        ],
        "chart": [
            {
                "index": p.index,
                "transactionId": p.transaction.id,
                "amount": p.transaction.amount,
                "isAnomaly": p.is_anomaly,
            }
            for p in build_chart_points(completed.transactions, completed.result.anomalies)
        ],
    }


def _echo_completed(completed: Completed) -> None:
    typer.echo("Analysis complete")
    typer.echo(completed.result.summary)
    typer.echo("")
    typer.echo(
        f"Transactions analyzed: {len(completed.transactions)} "
        f"(dropped rows: {completed.dropped_rows})"
    )
    if not completed.flagged:
        typer.echo("No anomalies detected.")
        return

    typer.echo("Top anomalies detected:")
    flagged = _by_urgency(completed.flagged)
    headers = ("Severity", "ActCode", "Monthly", "Amount", "AI Reasoning")
    lines = _format_table(headers, _flagged_rows(flagged))
    typer.echo(lines[0])
    typer.echo(lines[1])
    for f, line in zip(flagged, lines[2:], strict=True):
        typer.secho(line, fg=_SEVERITY_COLORS[f.severity])


# ---- Command handlers --------------------------------------------------------


def cmd_analyze(
    csv_path: str,
    *,
    max_records: int | None = None,
    sort_by_period: bool = False,
    as_json: bool = False,
) -> int:
    """Analyze a CSV file and print the summary and flagged transactions.

    Errors are written to stderr using the user-facing messages from
    :func:`transaction_anomalies.errors.user_message`; the function returns
    ``1`` in that case and ``0`` on success.
    """

    # Local imports keep CLI startup fast
    from .normalizers import read_csv_text
    from .pipeline import AnomalyAnalysis

    try:
        csv_text = read_csv_text(csv_path)
    except FileNotFoundError:
        print(f"Error: File not found: {csv_path}", file=sys.stderr)
        return 1
    except PermissionError:
        print(f"Error: Permission denied: {csv_path}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: Could not read {csv_path}: {e.strerror or e}", file=sys.stderr)
        return 1
    except AnomalyDetectorError as e:
        print(f"Error: {user_message(e)}", file=sys.stderr)
        return 1

    try:
        settings = Settings.from_env()
        if max_records is not None:
            settings = replace(settings, max_records=max_records)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    session = AnomalyAnalysis(settings)
    try:
        completed = asyncio.run(session.run(csv_text, sort_by_period=sort_by_period))
    except AnomalyDetectorError as e:
        print(f"Error: {user_message(e)}", file=sys.stderr)
        return 1

    if as_json:
        typer.echo(json.dumps(_completed_to_json(completed), ensure_ascii=False, indent=2))
    else:
        _echo_completed(completed)
    return 0


def cmd_normalize(csv_path: str, *, sort_by_period: bool = False) -> int:
    """Normalize a CSV file and print the resulting records (no analysis)."""

    from .normalizers import read_transactions_file

    try:
        ingest = read_transactions_file(csv_path, sort_by_period=sort_by_period)
    except FileNotFoundError:
        print(f"Error: File not found: {csv_path}", file=sys.stderr)
        return 1
    except PermissionError:
        print(f"Error: Permission denied: {csv_path}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: Could not read {csv_path}: {e.strerror or e}", file=sys.stderr)
        return 1
    except AnomalyDetectorError as e:
        print(f"Error: {user_message(e)}", file=sys.stderr)
        return 1

    rows = [_transaction_row(t) for t in ingest.transactions]
    for line in _format_table(("Id", "BA", "Monthly", "ActCode", "Amount"), rows):
        typer.echo(line)
    typer.echo(f"Rows: {len(ingest.transactions)} (dropped: {ingest.dropped_rows})")
    return 0


def _transaction_row(t: Transaction) -> list[str]:
    return [str(t.id), t.business_area, t.period, t.activity_code, _fmt_amount(t.amount)]


# Module-level option object to satisfy ruff B008 (no calls in parameter
# defaults). Typer will inspect this when used as a default value below.
CSV_PATH_OPTION: OptionInfo = typer.Option(
    ...,  # required
    "--csv-path",
    help="Path to a CSV file with BA, monthly, actCode and amount columns",
    dir_okay=False,
    file_okay=True,
    exists=False,  # allow non-existent here; the handler will report nice errors
    readable=True,
)


@app.command("analyze")
def analyze_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    *,
    max_records: int | None = typer.Option(
        None, min=1, help="Cap on records sent for analysis (overrides TA_MAX_RECORDS)."
    ),
    sort_by_period: bool = typer.Option(
        False, help="Sort records by the monthly column before display and analysis."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON."),
) -> None:
    code = cmd_analyze(
        str(csv_path),
        max_records=max_records,
        sort_by_period=sort_by_period,
        as_json=as_json,
    )
    if code:
        raise typer.Exit(code)


@app.command("normalize")
def normalize_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    *,
    sort_by_period: bool = typer.Option(False, help="Sort records by the monthly column."),
) -> None:
    code = cmd_normalize(str(csv_path), sort_by_period=sort_by_period)
    if code:
        raise typer.Exit(code)


@app.callback(invoke_without_command=True)
def _root(ctx: typer.Context) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    # Central logging setup so child loggers inherit configuration
    configure_logging()

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m transaction_anomalies.cli`
    app()
