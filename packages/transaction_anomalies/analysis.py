"""Single call to the OpenAI Responses API for anomaly analysis.

Exactly one request per cycle: the SDK's built-in retries are disabled and
nothing here loops. The requested JSON schema is only a hint to the service,
so the returned text is handed back for independent validation.
"""

from __future__ import annotations

import time
from typing import Any

import openai
from openai import AsyncOpenAI
from openai.types.responses import ResponseTextConfigParam

from .config import Settings
from .errors import AnalysisServiceError, ServiceErrorKind
from .logging_setup import get_logger
from .prompting import AnalysisRequest

_logger = get_logger("transaction_anomalies.analysis")


def _extract_response_text(resp: Any) -> str | None:
    """Locate the text output on a Responses SDK result.

    Prefer ``resp.output_text``; fall back to ``resp.output[0].content[0].text``.
    """

    text: str | None = getattr(resp, "output_text", None)
    if text:
        return text
    output = getattr(resp, "output", None)
    if not output:
        return None
    content = getattr(output[0], "content", None)
    if not content:
        return None
    txt_obj = getattr(content[0], "text", None)
    if isinstance(txt_obj, str):
        return txt_obj
    # Some SDKs expose text as an object with a ``value`` string.
    maybe_val = getattr(txt_obj, "value", None)
    return maybe_val if isinstance(maybe_val, str) else None


def _create_client(settings: Settings) -> AsyncOpenAI:
    kwargs: dict[str, Any] = {"api_key": settings.api_key, "max_retries": 0}
    if settings.timeout_sec is not None:
        kwargs["timeout"] = settings.timeout_sec
    return AsyncOpenAI(**kwargs)


def _translate_error(exc: openai.OpenAIError) -> AnalysisServiceError:
    # APITimeoutError subclasses APIConnectionError; check it first.
    if isinstance(exc, openai.APITimeoutError):
        return AnalysisServiceError(
            "analysis request timed out", kind=ServiceErrorKind.TIMEOUT
        )
    if isinstance(exc, openai.AuthenticationError | openai.PermissionDeniedError):
        return AnalysisServiceError(
            f"credential rejected by analysis service: {exc.status_code}",
            kind=ServiceErrorKind.CREDENTIAL_REJECTED,
            status_code=exc.status_code,
        )
    if isinstance(exc, openai.APIStatusError):
        return AnalysisServiceError(
            f"analysis service returned status {exc.status_code}",
            status_code=exc.status_code,
        )
    if isinstance(exc, openai.APIConnectionError):
        return AnalysisServiceError(f"could not reach analysis service: {exc}")
    return AnalysisServiceError(f"analysis request failed: {exc}")


async def request_analysis(request: AnalysisRequest, *, settings: Settings) -> str:
    """Send ``request`` to the service and return the raw reply text.

    Raises
    ------
    AnalysisServiceError
        When no credential is configured, the credential is rejected, the
        call times out, the transport or status fails, or the reply is empty.
    """

    if not settings.api_key:
        raise AnalysisServiceError(
            "OPENAI_API_KEY environment variable is required for analysis",
            kind=ServiceErrorKind.MISSING_CREDENTIAL,
        )

    text_cfg = ResponseTextConfigParam(format=request.response_format)

    _logger.info(
        "analyze:request records_sent=%d model=%s",
        request.records_sent,
        settings.model,
    )
    t0 = time.perf_counter()
    try:
        async with _create_client(settings) as client:
            resp = await client.responses.create(
                model=settings.model,
                instructions=request.instructions,
                input=request.user_input,
                text=text_cfg,
            )
    except openai.OpenAIError as e:
        dt_ms = (time.perf_counter() - t0) * 1000.0
        err = _translate_error(e)
        _logger.error(
            "analyze:failed kind=%s latency_ms=%.2f error=%s",
            err.kind,
            dt_ms,
            e.__class__.__name__,
        )
        raise err from e

    dt_ms = (time.perf_counter() - t0) * 1000.0
    text = _extract_response_text(resp)
    if not text or not text.strip():
        _logger.error("analyze:empty_response latency_ms=%.2f", dt_ms)
        raise AnalysisServiceError("empty response from analysis service")

    _logger.info("analyze:done latency_ms=%.2f chars=%d", dt_ms, len(text))
    return text


__all__ = ["request_analysis"]
