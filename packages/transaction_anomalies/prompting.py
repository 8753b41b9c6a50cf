"""Request construction for anomaly analysis.

This module builds:
- A minimized, deterministic JSON projection of transactions with a fixed
  field order (``id, activityCode, period, amount``).
- The system instructions and user content for the detection task.
- The strict ``text.format`` (JSON Schema) object for the OpenAI Responses
  API.

Nothing here performs I/O.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any, NamedTuple

from openai.types.responses.response_format_text_json_schema_config_param import (
    ResponseFormatTextJSONSchemaConfigParam,
)

from .models import Severity, Transaction

# Tunable cap on records sent per request to bound payload size. Overridable
# through ``Settings.max_records`` (env ``TA_MAX_RECORDS``).
DEFAULT_MAX_RECORDS: int = 500

MAX_FINDINGS: int = 10

PAYLOAD_FIELD_ORDER: tuple[str, ...] = (
    "id",
    "activityCode",
    "period",
    "amount",
)

BEGIN_MARKER = "BEGIN_TRANSACTIONS_JSON"
END_MARKER = "END_TRANSACTIONS_JSON"


class AnalysisRequest(NamedTuple):
    instructions: str
    user_input: str
    response_format: ResponseFormatTextJSONSchemaConfigParam
    records_sent: int


def project_transactions(
    transactions: Sequence[Transaction], *, max_records: int = DEFAULT_MAX_RECORDS
) -> list[dict[str, Any]]:
    """Keep the first ``max_records`` transactions and project the detector fields.

    Truncation keeps the earliest records in the sequence's current order.
    Business area and the raw amount text are left out of the payload.
    """

    if isinstance(max_records, bool) or not isinstance(max_records, int) or max_records <= 0:
        raise ValueError("max_records must be a positive integer")

    out: list[dict[str, Any]] = []
    for t in transactions[:max_records]:
        out.append(
            {
                "id": t.id,
                "activityCode": t.activity_code,
                "period": t.period,
                "amount": t.amount,
            }
        )
    return out


def serialize_payload_to_json(items: Sequence[dict[str, Any]]) -> str:
    """Serialize projected items to a compact JSON array with a fixed field order."""

    arr = [{key: item.get(key) for key in PAYLOAD_FIELD_ORDER} for item in items]
    return json.dumps(arr, ensure_ascii=False, separators=(",", ":"))


def build_system_instructions() -> str:
    return (
        "You are a financial data analyst who detects anomalous transaction amounts. "
        "Only reference transaction ids that appear in the provided data. "
        "Output JSON only that conforms to the specified schema."
    )


def build_user_content(payload_json: str) -> str:
    """Build the task text followed by the delimited transactions JSON."""

    severities = ", ".join(f'"{s.value}"' for s in Severity)
    return (
        "Analyze the provided financial transaction JSON data and detect anomalies in "
        "the 'amount' field.\n"
        "\n"
        "Look for:\n"
        "1. Outliers: amounts significantly higher or lower than the typical amount for "
        "the same 'activityCode'.\n"
        "2. Irregularities: unusual spikes or drops across 'period' values.\n"
        "\n"
        "Return a JSON object containing:\n"
        f'- "anomalies": at most the {MAX_FINDINGS} most significant findings. Each item '
        "must have:\n"
        "  - \"transactionId\": the exact 'id' from the input.\n"
        '  - "reason": a short, clear explanation of why the amount is anomalous.\n'
        f'  - "severity": one of {severities}.\n'
        '- "summary": a brief paragraph summarizing overall data quality and key findings.\n'
        "\n"
        f"{BEGIN_MARKER}\n"
        f"{payload_json}\n"
        f"{END_MARKER}"
    )


def build_response_format() -> ResponseFormatTextJSONSchemaConfigParam:
    """Return the strict JSON Schema format object for the analysis reply.

    Schema shape::

        {"summary": str,
         "anomalies": [{"transactionId": number, "reason": str,
                        "severity": "HIGH" | "MEDIUM" | "LOW"}]}
    """

    result: ResponseFormatTextJSONSchemaConfigParam = {
        "type": "json_schema",
        "name": "transaction_anomalies",
        "schema": {
            "type": "object",
            "properties": {
                "summary": {"type": "string"},
                "anomalies": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "transactionId": {"type": "number"},
                            "reason": {"type": "string"},
                            "severity": {
                                "type": "string",
                                "enum": [s.value for s in Severity],
                            },
                        },
                        "required": ["transactionId", "reason", "severity"],
                        "additionalProperties": False,
                    },
                },
            },
            "required": ["summary", "anomalies"],
            "additionalProperties": False,
        },
        "strict": True,
    }
    return result


def build_analysis_request(
    transactions: Sequence[Transaction], *, max_records: int = DEFAULT_MAX_RECORDS
) -> AnalysisRequest:
    """Assemble instructions, user input and response format for one cycle."""

    items = project_transactions(transactions, max_records=max_records)
    return AnalysisRequest(
        instructions=build_system_instructions(),
        user_input=build_user_content(serialize_payload_to_json(items)),
        response_format=build_response_format(),
        records_sent=len(items),
    )


__all__ = [
    "AnalysisRequest",
    "DEFAULT_MAX_RECORDS",
    "build_analysis_request",
    "build_response_format",
    "build_system_instructions",
    "build_user_content",
    "project_transactions",
    "serialize_payload_to_json",
]
