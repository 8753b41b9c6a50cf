"""Loading state of an analysis cycle as tagged variants.

Each phase is its own frozen dataclass carrying only the data that exists in
that phase, so a ``Completed`` state always has a result and a ``Failed``
state always has an error. Allowed moves:

    IDLE -> PARSING -> ANALYZING -> COMPLETED | ERROR
    PARSING -> ERROR
    COMPLETED | ERROR -> IDLE   (reset)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar

from .errors import AnomalyDetectorError, IllegalTransitionError, user_message
from .models import AnalysisResult, FlaggedTransaction, Transaction


class LoadingPhase(StrEnum):
    IDLE = "IDLE"
    PARSING = "PARSING"
    ANALYZING = "ANALYZING"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"


@dataclass(frozen=True, slots=True)
class Idle:
    phase: ClassVar[LoadingPhase] = LoadingPhase.IDLE


@dataclass(frozen=True, slots=True)
class Parsing:
    phase: ClassVar[LoadingPhase] = LoadingPhase.PARSING


@dataclass(frozen=True, slots=True)
class Analyzing:
    phase: ClassVar[LoadingPhase] = LoadingPhase.ANALYZING

    transactions: list[Transaction]


@dataclass(frozen=True, slots=True)
class Completed:
    phase: ClassVar[LoadingPhase] = LoadingPhase.COMPLETED

    transactions: list[Transaction]
    result: AnalysisResult
    flagged: list[FlaggedTransaction]
    dropped_rows: int = 0


@dataclass(frozen=True, slots=True)
class Failed:
    phase: ClassVar[LoadingPhase] = LoadingPhase.ERROR

    error: AnomalyDetectorError

    @property
    def message(self) -> str:
        return user_message(self.error)


type LoadingState = Idle | Parsing | Analyzing | Completed | Failed

_ALLOWED: dict[LoadingPhase, frozenset[LoadingPhase]] = {
    LoadingPhase.IDLE: frozenset({LoadingPhase.PARSING}),
    LoadingPhase.PARSING: frozenset({LoadingPhase.ANALYZING, LoadingPhase.ERROR}),
    LoadingPhase.ANALYZING: frozenset({LoadingPhase.COMPLETED, LoadingPhase.ERROR}),
    LoadingPhase.COMPLETED: frozenset({LoadingPhase.IDLE}),
    LoadingPhase.ERROR: frozenset({LoadingPhase.IDLE}),
}


def can_transition(current: LoadingState, target: LoadingState) -> bool:
    return target.phase in _ALLOWED[current.phase]


def transition(current: LoadingState, target: LoadingState) -> LoadingState:
    """Return ``target`` when moving there from ``current`` is allowed."""

    if not can_transition(current, target):
        raise IllegalTransitionError(
            f"illegal loading-state transition {current.phase} -> {target.phase}"
        )
    return target


def is_busy(state: LoadingState) -> bool:
    """True while a cycle is in flight and a new upload must be refused."""
    return state.phase in (LoadingPhase.PARSING, LoadingPhase.ANALYZING)


__all__ = [
    "Analyzing",
    "Completed",
    "Failed",
    "Idle",
    "LoadingPhase",
    "LoadingState",
    "can_transition",
    "is_busy",
    "transition",
]
