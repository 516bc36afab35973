"""Quiz configuration and game-mode policies.

``QuizSettings`` carries the user-facing options (operation, operand digit
counts, marathon problem count, sprint duration).  A game mode is a small
tagged variant: ``Marathon``, ``Sprint`` or ``Survival``.  Each variant
answers the three questions the session engine asks about termination:
how many problems to deal, whether a wall-clock limit applies, and whether
the first mistake ends the run.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path

HISTORY_PATH_ENV = "MATH_TRAINER_HISTORY_PATH"
LOG_LEVEL_ENV = "MATH_TRAINER_LOG_LEVEL"

MIN_DIGITS = 1
MAX_DIGITS = 3
MIN_COUNT = 5
MAX_COUNT = 50
COUNT_STEP = 5
MIN_DURATION_S = 10
MAX_DURATION_S = 600
DURATION_STEP_S = 10

# Sprint and survival end on time or on a mistake; the batch only has to
# outlast any realistic run.
UNBOUNDED_PROBLEM_COUNT = 999


class Operation(str, Enum):
    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    MIXED = "mixed"

    @classmethod
    def concrete(cls) -> tuple["Operation", ...]:
        return (cls.ADD, cls.SUBTRACT, cls.MULTIPLY, cls.DIVIDE)


class ModeKind(str, Enum):
    MARATHON = "marathon"
    SPRINT = "sprint"
    SURVIVAL = "survival"


@dataclass(frozen=True, slots=True)
class QuizSettings:
    operation: Operation = Operation.ADD
    first_digits: int = 2
    second_digits: int = 2
    count: int = 10
    duration_s: int = 60

    def normalized(self) -> "QuizSettings":
        """Return a copy with every option clamped into its supported range."""

        count = _clamp_int(int(self.count), MIN_COUNT, MAX_COUNT)
        count = int(round(count / COUNT_STEP)) * COUNT_STEP
        return QuizSettings(
            operation=Operation(self.operation),
            first_digits=_clamp_int(int(self.first_digits), MIN_DIGITS, MAX_DIGITS),
            second_digits=_clamp_int(int(self.second_digits), MIN_DIGITS, MAX_DIGITS),
            count=_clamp_int(count, MIN_COUNT, MAX_COUNT),
            duration_s=_clamp_int(int(self.duration_s), MIN_DURATION_S, MAX_DURATION_S),
        )

    def step_operation(self, delta: int) -> "QuizSettings":
        options = list(Operation)
        idx = (options.index(Operation(self.operation)) + delta) % len(options)
        return replace(self, operation=options[idx]).normalized()

    def step_first_digits(self, delta: int) -> "QuizSettings":
        return replace(self, first_digits=self.first_digits + delta).normalized()

    def step_second_digits(self, delta: int) -> "QuizSettings":
        return replace(self, second_digits=self.second_digits + delta).normalized()

    def step_count(self, delta: int) -> "QuizSettings":
        return replace(self, count=self.count + delta * COUNT_STEP).normalized()

    def step_duration(self, delta: int) -> "QuizSettings":
        return replace(self, duration_s=self.duration_s + delta * DURATION_STEP_S).normalized()


@dataclass(frozen=True, slots=True)
class Marathon:
    count: int

    @property
    def kind(self) -> ModeKind:
        return ModeKind.MARATHON

    @property
    def problem_count(self) -> int:
        return self.count

    @property
    def time_limit_s(self) -> float | None:
        return None

    @property
    def fail_fast(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class Sprint:
    duration_s: float

    @property
    def kind(self) -> ModeKind:
        return ModeKind.SPRINT

    @property
    def problem_count(self) -> int:
        return UNBOUNDED_PROBLEM_COUNT

    @property
    def time_limit_s(self) -> float | None:
        return float(self.duration_s)

    @property
    def fail_fast(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class Survival:
    @property
    def kind(self) -> ModeKind:
        return ModeKind.SURVIVAL

    @property
    def problem_count(self) -> int:
        return UNBOUNDED_PROBLEM_COUNT

    @property
    def time_limit_s(self) -> float | None:
        return None

    @property
    def fail_fast(self) -> bool:
        return True


GameMode = Marathon | Sprint | Survival


def mode_for(kind: ModeKind | str, settings: QuizSettings) -> GameMode:
    """Build the mode variant for ``kind`` from the (normalized) settings."""

    try:
        kind = ModeKind(kind)
    except ValueError:
        raise ValueError(f"unknown game mode: {kind!r}") from None
    settings = settings.normalized()
    if kind is ModeKind.MARATHON:
        return Marathon(count=settings.count)
    if kind is ModeKind.SPRINT:
        return Sprint(duration_s=float(settings.duration_s))
    return Survival()


def default_history_path() -> Path:
    explicit = os.environ.get(HISTORY_PATH_ENV)
    if explicit:
        return Path(explicit).expanduser()
    return Path.home() / ".math_trainer_history.sqlite3"


def log_level_name() -> str:
    return os.environ.get(LOG_LEVEL_ENV, "WARNING").strip().upper() or "WARNING"


def _clamp_int(value: int, lo: int, hi: int) -> int:
    if value < lo:
        return lo
    if value > hi:
        return hi
    return value
