"""Quiz session state machine.

    IDLE -> ACTIVE -> FINISHED
              |
              +----> ABORTED

One engine serves all three game modes; the mode variant decides how a run
ends (problem count, sprint countdown, first mistake).  Time comes only from
the injected ``Clock`` and problems only from a seeded generator, so a run is
deterministic given (seed, scripted inputs, fake clock).

Once a session leaves ACTIVE it ignores every further signal, which keeps a
stale tick or keystroke from touching a session the UI already replaced.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum

from .clock import Clock, SystemWallClock, WallClock
from .evaluator import AnswerStatus, evaluate
from .problems import Problem, ProblemGenerator
from .results import AnswerRecord, SessionSummary, summarize
from .settings import GameMode, ModeKind, QuizSettings, mode_for

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    FINISHED = "finished"
    ABORTED = "aborted"


@dataclass(frozen=True, slots=True)
class QuizSnapshot:
    """View model for the UI (pure data)."""

    state: SessionState
    mode: ModeKind
    problem: Problem | None
    question_number: int
    total_questions: int | None
    time_remaining_s: float | None
    time_limit_s: float | None
    score: int
    attempted: int
    progress: float


class QuizSession:
    def __init__(
        self,
        *,
        mode: GameMode,
        settings: QuizSettings,
        clock: Clock,
        seed: int,
        wall_clock: WallClock | None = None,
    ) -> None:
        self._mode = mode
        self._settings = settings.normalized()
        self._clock = clock
        self._wall_clock: WallClock = wall_clock if wall_clock is not None else SystemWallClock()
        self._seed = int(seed)
        self._generator = ProblemGenerator(random.Random(self._seed))

        self._state = SessionState.IDLE
        self._problems: list[Problem] = []
        self._index = 0
        self._results: list[AnswerRecord] = []

        self._started_at_s: float | None = None
        self._presented_at_s: float | None = None
        self._time_remaining_s: float | None = mode.time_limit_s
        self._summary: SessionSummary | None = None

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def mode(self) -> GameMode:
        return self._mode

    @property
    def settings(self) -> QuizSettings:
        return self._settings

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def problems(self) -> tuple[Problem, ...]:
        return tuple(self._problems)

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def current_problem(self) -> Problem | None:
        if self._state is not SessionState.ACTIVE:
            return None
        return self._problems[self._index]

    @property
    def results(self) -> tuple[AnswerRecord, ...]:
        return tuple(self._results)

    @property
    def score(self) -> int:
        return sum(1 for r in self._results if r.correct)

    @property
    def time_remaining_s(self) -> float | None:
        """Seconds left on the sprint countdown as of the last tick."""

        return self._time_remaining_s

    def start(self) -> None:
        if self._state is not SessionState.IDLE:
            return
        self._problems = self._generator.generate_batch(self._mode, self._settings)
        self._index = 0
        self._started_at_s = self._clock.now()
        self._presented_at_s = self._started_at_s
        self._state = SessionState.ACTIVE
        logger.debug(
            "session started: mode=%s problems=%d seed=%d",
            self._mode.kind.value,
            len(self._problems),
            self._seed,
        )

    def tick(self, now: float | None = None) -> None:
        """Recompute the sprint countdown and end the run when it hits zero.

        Safe to call redundantly; a repeated ``now`` yields the same state.
        """

        if self._state is not SessionState.ACTIVE:
            return
        limit = self._mode.time_limit_s
        if limit is None:
            return
        assert self._started_at_s is not None
        if now is None:
            now = self._clock.now()
        remaining = limit - (now - self._started_at_s)
        self._time_remaining_s = max(0.0, remaining)
        if remaining <= 0.0:
            self._finish("time expired")

    def input_changed(self, raw: str) -> AnswerStatus:
        """Live check while the user types; commits once the answer resolves."""

        return self._resolve(raw, submitted=False)

    def submit_answer(self, raw: str) -> AnswerStatus:
        """Explicit submit; unparseable input stays pending and commits nothing."""

        return self._resolve(raw, submitted=True)

    def abort(self) -> None:
        if self._state is not SessionState.ACTIVE:
            return
        self._state = SessionState.ABORTED
        self._presented_at_s = None
        logger.debug("session aborted after %d answers", len(self._results))

    def finalize(self, timestamp: float | None = None) -> SessionSummary | None:
        """Summary of a finished run; ``None`` if aborted, unfinished or empty."""

        if self._state is not SessionState.FINISHED:
            return None
        if self._summary is None:
            if timestamp is None:
                timestamp = self._wall_clock.timestamp()
            self._summary = summarize(self._mode.kind, self._results, timestamp=timestamp)
        return self._summary

    def snapshot(self) -> QuizSnapshot:
        problem = self.current_problem
        total = self._mode.problem_count if self._mode.kind is ModeKind.MARATHON else None
        limit = self._mode.time_limit_s
        if limit is not None and self._time_remaining_s is not None:
            progress = self._time_remaining_s / limit if limit > 0 else 0.0
        elif total:
            progress = len(self._results) / total
        else:
            progress = 0.0
        return QuizSnapshot(
            state=self._state,
            mode=self._mode.kind,
            problem=problem,
            question_number=self._index + 1,
            total_questions=total,
            time_remaining_s=self._time_remaining_s,
            time_limit_s=limit,
            score=self.score,
            attempted=len(self._results),
            progress=progress,
        )

    def _resolve(self, raw: str, *, submitted: bool) -> AnswerStatus:
        # A late answer after the countdown ran out must not be committed.
        self.tick()
        if self._state is not SessionState.ACTIVE:
            return AnswerStatus.PENDING

        problem = self._problems[self._index]
        status = evaluate(problem, raw, self._mode.kind, submitted=submitted)
        if status is not AnswerStatus.PENDING:
            self._commit(problem, raw, correct=status is AnswerStatus.CORRECT)
        return status

    def _commit(self, problem: Problem, raw: str, *, correct: bool) -> None:
        assert self._presented_at_s is not None
        answered_at_s = self._clock.now()
        self._results.append(
            AnswerRecord(
                index=len(self._results),
                problem_id=problem.id,
                num1=problem.num1,
                num2=problem.num2,
                op=problem.op,
                answer=problem.answer,
                user_answer=raw,
                correct=correct,
                time_s=max(0.0, answered_at_s - self._presented_at_s),
            )
        )

        if self._mode.fail_fast and not correct:
            self._finish("first mistake")
            return
        if self._index + 1 >= len(self._problems):
            self._finish("all problems answered")
            return

        self._index += 1
        self._presented_at_s = answered_at_s

    def _finish(self, reason: str) -> None:
        self._state = SessionState.FINISHED
        self._presented_at_s = None
        logger.debug(
            "session finished (%s): score=%d/%d",
            reason,
            self.score,
            len(self._results),
        )


def build_quiz_session(
    kind: ModeKind | str,
    settings: QuizSettings,
    *,
    clock: Clock,
    seed: int | None = None,
    wall_clock: WallClock | None = None,
) -> QuizSession:
    """Fresh idle session; call again with the same arguments to retry."""

    if seed is None:
        seed = random.SystemRandom().randint(1, 2**31 - 1)
    return QuizSession(
        mode=mode_for(kind, settings),
        settings=settings,
        clock=clock,
        seed=seed,
        wall_clock=wall_clock,
    )
