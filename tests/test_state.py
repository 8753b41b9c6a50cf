import pytest

from transaction_anomalies import AnalysisResult, IllegalTransitionError, ParseError
from transaction_anomalies.state import (
    Analyzing,
    Completed,
    Failed,
    Idle,
    LoadingPhase,
    Parsing,
    is_busy,
    transition,
)

_RESULT = AnalysisResult.model_validate({"summary": "s", "anomalies": []})

IDLE = Idle()
PARSING = Parsing()
ANALYZING = Analyzing(transactions=[])
COMPLETED = Completed(transactions=[], result=_RESULT, flagged=[])
FAILED = Failed(error=ParseError("empty"))


@pytest.mark.parametrize(
    ("current", "target"),
    [
        (IDLE, PARSING),
        (PARSING, ANALYZING),
        (PARSING, FAILED),
        (ANALYZING, COMPLETED),
        (ANALYZING, FAILED),
        (COMPLETED, IDLE),
        (FAILED, IDLE),
    ],
)
def test_allowed_transitions(current, target):
    assert transition(current, target) is target


@pytest.mark.parametrize(
    ("current", "target"),
    [
        (IDLE, ANALYZING),
        (IDLE, COMPLETED),
        (PARSING, COMPLETED),
        (PARSING, IDLE),
        (ANALYZING, IDLE),
        (ANALYZING, PARSING),
        (COMPLETED, PARSING),
        (COMPLETED, FAILED),
        (FAILED, ANALYZING),
    ],
)
def test_illegal_transitions_raise(current, target):
    with pytest.raises(IllegalTransitionError):
        transition(current, target)


def test_phases_and_busy_flag():
    assert [s.phase for s in (IDLE, PARSING, ANALYZING, COMPLETED, FAILED)] == list(LoadingPhase)
    assert [is_busy(s) for s in (IDLE, PARSING, ANALYZING, COMPLETED, FAILED)] == [
        False,
        True,
        True,
        False,
        False,
    ]


def test_failed_state_exposes_user_message():
    assert "no usable data" in FAILED.message
