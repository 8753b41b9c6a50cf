"""Public interface for the ``transaction_anomalies`` package.

This module re-exports the package's API functions and public models/types as
the stable import surface. There is no runtime logic here.
"""

from .config import Settings
from .errors import (
    AnalysisServiceError,
    AnomalyDetectorError,
    IllegalTransitionError,
    ParseError,
    ResponseFormatError,
    ServiceErrorKind,
    user_message,
)
from .models import (
    AnalysisResult,
    AnomalyFinding,
    ChartPoint,
    FlaggedTransaction,
    IngestResult,
    Severity,
    Transaction,
)
from .normalizers import normalize_csv, read_csv_text, read_transactions_file
from .pipeline import AnomalyAnalysis, analyze_csv_text
from .prompting import DEFAULT_MAX_RECORDS, AnalysisRequest, build_analysis_request
from .reconcile import build_chart_points, reconcile_anomalies
from .state import LoadingPhase
from .validation import parse_analysis_result, strip_code_fences

__all__ = [
    # API
    "analyze_csv_text",
    "build_analysis_request",
    "build_chart_points",
    "normalize_csv",
    "parse_analysis_result",
    "read_csv_text",
    "read_transactions_file",
    "reconcile_anomalies",
    "strip_code_fences",
    "user_message",
    "AnomalyAnalysis",
    "Settings",
    "DEFAULT_MAX_RECORDS",
    # Models / types
    "AnalysisRequest",
    "AnalysisResult",
    "AnomalyFinding",
    "ChartPoint",
    "FlaggedTransaction",
    "IngestResult",
    "LoadingPhase",
    "Severity",
    "Transaction",
    # Errors
    "AnalysisServiceError",
    "AnomalyDetectorError",
    "IllegalTransitionError",
    "ParseError",
    "ResponseFormatError",
    "ServiceErrorKind",
]
