from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .settings import ModeKind


@dataclass(frozen=True, slots=True)
class AnswerRecord:
    """One committed answer, with the problem it answered."""

    index: int
    problem_id: str
    num1: int
    num2: int
    op: str
    answer: int
    user_answer: str
    correct: bool
    time_s: float


@dataclass(frozen=True, slots=True)
class SessionSummary:
    """Persistable aggregate for one finished session.

    ``timestamp`` is wall-clock epoch seconds at summarization.
    """

    mode: str
    score: int
    total_questions: int
    avg_time_s: float
    timestamp: float


def summarize(
    mode: ModeKind | str,
    results: Sequence[AnswerRecord],
    *,
    timestamp: float,
) -> SessionSummary | None:
    """Reduce a finished session's answers; ``None`` when nothing was answered."""

    if not results:
        return None
    correct = sum(1 for r in results if r.correct)
    return SessionSummary(
        mode=ModeKind(mode).value,
        score=correct,
        total_questions=len(results),
        avg_time_s=total_time_s(results) / len(results),
        timestamp=float(timestamp),
    )


def total_time_s(results: Sequence[AnswerRecord]) -> float:
    return float(sum(r.time_s for r in results))


def avg_time_trend(history: Sequence[SessionSummary], *, limit: int = 10) -> list[float]:
    # A single point is not a trend.
    if len(history) < 2:
        return []
    return [s.avg_time_s for s in history[-limit:]]
