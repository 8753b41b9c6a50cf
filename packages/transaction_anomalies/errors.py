"""Error taxonomy for the analysis cycle.

Every error is terminal for the current cycle; nothing here is retried.
``user_message`` turns an error into the text shown to the person who
uploaded the file.
"""

from __future__ import annotations

from enum import StrEnum


class AnomalyDetectorError(Exception):
    """Base class for every failure surfaced by ``transaction_anomalies``."""


class ParseError(AnomalyDetectorError, ValueError):
    """The CSV was unreadable or produced zero usable rows."""


class ResponseFormatError(AnomalyDetectorError, ValueError):
    """The service reply was not parseable JSON or failed shape validation."""


class ServiceErrorKind(StrEnum):
    MISSING_CREDENTIAL = "missing_credential"
    CREDENTIAL_REJECTED = "credential_rejected"
    TIMEOUT = "timeout"
    FAILED = "failed"


class AnalysisServiceError(AnomalyDetectorError, RuntimeError):
    """Transport failure, non-success status or empty reply from the service.

    ``kind`` separates credential problems (which need a different fix from
    the user) from everything else.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: ServiceErrorKind = ServiceErrorKind.FAILED,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code

    @property
    def is_credential_error(self) -> bool:
        return self.kind in (
            ServiceErrorKind.MISSING_CREDENTIAL,
            ServiceErrorKind.CREDENTIAL_REJECTED,
        )


class IllegalTransitionError(AnomalyDetectorError, RuntimeError):
    """A loading-state change that the state machine does not allow."""


def user_message(error: BaseException) -> str:
    """Return the user-facing message for ``error``."""

    if isinstance(error, ParseError):
        return f"The file produced no usable data: {error}"
    if isinstance(error, AnalysisServiceError):
        if error.kind is ServiceErrorKind.MISSING_CREDENTIAL:
            return "No API key is configured. Set OPENAI_API_KEY and try again."
        if error.kind is ServiceErrorKind.CREDENTIAL_REJECTED:
            return (
                "The analysis service rejected the API key. "
                "Check that OPENAI_API_KEY is valid and try again."
            )
        if error.kind is ServiceErrorKind.TIMEOUT:
            return "The analysis service did not answer in time. Please try again."
        return f"Failed to analyze data: {error}. Please try again."
    if isinstance(error, ResponseFormatError):
        return (
            "Failed to analyze data: the service returned an unexpected response "
            f"({error}). Please try again."
        )
    return f"Unexpected failure: {error}"


__all__ = [
    "AnalysisServiceError",
    "AnomalyDetectorError",
    "IllegalTransitionError",
    "ParseError",
    "ResponseFormatError",
    "ServiceErrorKind",
    "user_message",
]
