"""Cleaning and validation of the analysis service reply.

The service is asked for bare JSON but sometimes wraps it in a Markdown code
fence, so fences are stripped before decoding. Shape validation is delegated
to the Pydantic models in :mod:`transaction_anomalies.models` and is
all-or-nothing: one malformed finding rejects the whole reply.
"""

from __future__ import annotations

import json
import re

from pydantic import ValidationError

from .errors import ResponseFormatError
from .models import AnalysisResult

# Leading fence with an optional language hint (```json, ```JSON, ```).
_FENCE_OPEN_RE = re.compile(r"^```[A-Za-z0-9_+.-]*[ \t]*(?:\r?\n)?")
_FENCE_CLOSE_RE = re.compile(r"(?:\r?\n)?[ \t]*```$")


def strip_code_fences(text: str) -> str:
    """Remove a surrounding Markdown code fence, if any, and trim whitespace."""

    s = text.strip()
    s = _FENCE_OPEN_RE.sub("", s, count=1)
    s = _FENCE_CLOSE_RE.sub("", s, count=1)
    return s.strip()


def _summarize_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    loc = ".".join(str(p) for p in first.get("loc", ())) or "<root>"
    return f"{loc}: {first.get('msg', 'invalid value')}"


def parse_analysis_result(text: str) -> AnalysisResult:
    """Parse and validate the reply text into an :class:`AnalysisResult`.

    Raises
    ------
    ResponseFormatError
        When the cleaned text is not JSON, is not a JSON object, or does not
        match the expected shape.
    """

    cleaned = strip_code_fences(text)
    try:
        decoded = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ResponseFormatError("model output was not valid JSON") from e

    if not isinstance(decoded, dict):
        raise ResponseFormatError("invalid response: expected a JSON object at top level")

    try:
        return AnalysisResult.model_validate(decoded)
    except ValidationError as e:
        raise ResponseFormatError(
            f"invalid response: {_summarize_validation_error(e)}"
        ) from e


__all__ = ["parse_analysis_result", "strip_code_fences"]
