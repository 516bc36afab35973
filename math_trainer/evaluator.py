from __future__ import annotations

import math
import re
from enum import Enum

from .problems import Problem
from .settings import ModeKind

_NUMBER_RE = re.compile(r"[-+]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)", re.ASCII)


class AnswerStatus(str, Enum):
    PENDING = "pending"
    CORRECT = "correct"
    WRONG = "wrong"


def parse_answer(raw: str) -> float | None:
    """Parse typed input as a real number; ``None`` while it is incomplete."""

    s = raw.strip()
    if _NUMBER_RE.fullmatch(s) is None:
        return None
    value = float(s)
    if not math.isfinite(value):
        return None
    return value


def evaluate(
    problem: Problem,
    raw: str,
    mode: ModeKind | str,
    *,
    submitted: bool = False,
) -> AnswerStatus:
    """Classify ``raw`` against ``problem`` without committing anything.

    Equality is checked before anything else.  Survival resolves a miss as
    soon as the input is as long as the answer's decimal form; other modes
    only resolve a miss on an explicit submit.
    """

    if raw == "":
        return AnswerStatus.PENDING

    value = parse_answer(raw)
    if value is not None and value == problem.answer:
        return AnswerStatus.CORRECT

    if ModeKind(mode) is ModeKind.SURVIVAL and len(raw) >= len(str(problem.answer)):
        return AnswerStatus.WRONG

    if submitted and value is not None:
        return AnswerStatus.WRONG

    return AnswerStatus.PENDING
