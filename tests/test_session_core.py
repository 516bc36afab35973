from __future__ import annotations

import math
from dataclasses import dataclass

import pytest

from math_trainer.evaluator import AnswerStatus
from math_trainer.session import SessionState, build_quiz_session
from math_trainer.settings import ModeKind, Operation, QuizSettings


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += dt


@dataclass
class FakeWallClock:
    t: float = 1_700_000_000.0

    def timestamp(self) -> float:
        return self.t


SETTINGS = QuizSettings(operation=Operation.ADD, first_digits=1, second_digits=1, count=5, duration_s=60)


def _wrong(answer: int) -> str:
    return str(answer + 1)


def test_session_starts_idle_and_start_deals_first_problem() -> None:
    clock = FakeClock()
    session = build_quiz_session(ModeKind.MARATHON, SETTINGS, clock=clock, seed=1)

    assert session.state is SessionState.IDLE
    assert session.current_problem is None
    assert session.submit_answer("1") is AnswerStatus.PENDING

    session.start()
    assert session.state is SessionState.ACTIVE
    assert session.current_index == 0
    assert session.current_problem == session.problems[0]


def test_start_twice_is_ignored() -> None:
    session = build_quiz_session(ModeKind.MARATHON, SETTINGS, clock=FakeClock(), seed=1)
    session.start()
    first = session.problems
    session.start()
    assert session.problems == first


def test_same_seed_same_problems() -> None:
    a = build_quiz_session(ModeKind.MARATHON, SETTINGS, clock=FakeClock(), seed=77)
    b = build_quiz_session(ModeKind.MARATHON, SETTINGS, clock=FakeClock(), seed=77)
    a.start()
    b.start()
    assert a.problems == b.problems


def test_marathon_five_correct_finishes_with_full_score() -> None:
    clock = FakeClock()
    session = build_quiz_session(ModeKind.MARATHON, SETTINGS, clock=clock, seed=42)
    session.start()

    assert len(session.problems) == 5
    for problem in session.problems:
        assert session.current_problem == problem
        clock.advance(1.0)
        assert session.submit_answer(str(problem.answer)) is AnswerStatus.CORRECT

    assert session.state is SessionState.FINISHED
    assert session.score == 5
    assert len(session.results) == 5
    assert session.current_problem is None


def test_marathon_wrong_submit_is_recorded_and_advances() -> None:
    clock = FakeClock()
    session = build_quiz_session(ModeKind.MARATHON, SETTINGS, clock=clock, seed=3)
    session.start()
    p0 = session.current_problem
    assert p0 is not None

    assert session.submit_answer(_wrong(p0.answer)) is AnswerStatus.WRONG
    assert session.state is SessionState.ACTIVE
    assert session.current_index == 1
    assert session.results[0].correct is False
    assert session.results[0].user_answer == _wrong(p0.answer)
    assert session.score == 0


def test_marathon_live_input_commits_only_when_correct() -> None:
    clock = FakeClock()
    session = build_quiz_session(ModeKind.MARATHON, SETTINGS, clock=clock, seed=3)
    session.start()
    p0 = session.current_problem
    assert p0 is not None

    assert session.input_changed(_wrong(p0.answer)) is AnswerStatus.PENDING
    assert session.results == ()
    assert session.input_changed(str(p0.answer)) is AnswerStatus.CORRECT
    assert len(session.results) == 1


def test_unparseable_submit_commits_nothing() -> None:
    session = build_quiz_session(ModeKind.MARATHON, SETTINGS, clock=FakeClock(), seed=3)
    session.start()
    assert session.submit_answer("") is AnswerStatus.PENDING
    assert session.submit_answer("-") is AnswerStatus.PENDING
    assert session.results == ()
    assert session.current_index == 0


def test_answer_time_is_measured_from_presentation() -> None:
    clock = FakeClock(t=100.0)
    session = build_quiz_session(ModeKind.MARATHON, SETTINGS, clock=clock, seed=9)
    session.start()

    clock.advance(1.5)
    p0 = session.current_problem
    assert p0 is not None
    session.submit_answer(str(p0.answer))

    clock.advance(0.25)
    p1 = session.current_problem
    assert p1 is not None
    session.submit_answer(str(p1.answer))

    times = [r.time_s for r in session.results]
    assert math.isclose(times[0], 1.5)
    assert math.isclose(times[1], 0.25)


def test_answer_record_embeds_problem_fields() -> None:
    session = build_quiz_session(ModeKind.MARATHON, SETTINGS, clock=FakeClock(), seed=10)
    session.start()
    p0 = session.current_problem
    assert p0 is not None
    session.submit_answer(str(p0.answer))

    r = session.results[0]
    assert (r.num1, r.num2, r.op, r.answer, r.problem_id) == (p0.num1, p0.num2, p0.op, p0.answer, p0.id)
    assert r.index == 0
    assert r.correct is True


def test_survival_ends_on_first_mistake() -> None:
    clock = FakeClock()
    session = build_quiz_session(ModeKind.SURVIVAL, SETTINGS, clock=clock, seed=5)
    session.start()

    for _ in range(2):
        p = session.current_problem
        assert p is not None
        clock.advance(0.5)
        assert session.submit_answer(str(p.answer)) is AnswerStatus.CORRECT

    p = session.current_problem
    assert p is not None
    assert session.submit_answer(_wrong(p.answer)) is AnswerStatus.WRONG

    assert session.state is SessionState.FINISHED
    assert len(session.results) == 3
    assert session.results[2].correct is False
    assert session.current_problem is None
    assert session.current_index == 2


def test_survival_live_input_fails_without_submit() -> None:
    session = build_quiz_session(ModeKind.SURVIVAL, SETTINGS, clock=FakeClock(), seed=5)
    session.start()
    p = session.current_problem
    assert p is not None

    # 1-digit addition answers are >= 2, so zeros of the same length never match.
    wrong = "0" * len(str(p.answer))
    assert session.input_changed(wrong[:-1]) is AnswerStatus.PENDING
    assert session.input_changed(wrong) is AnswerStatus.WRONG
    assert session.state is SessionState.FINISHED


def test_sprint_tick_past_duration_finishes() -> None:
    clock = FakeClock(t=10.0)
    session = build_quiz_session(ModeKind.SPRINT, SETTINGS, clock=clock, seed=8)
    session.start()
    assert session.time_remaining_s == 60.0

    p = session.current_problem
    assert p is not None
    clock.advance(2.0)
    session.submit_answer(str(p.answer))

    session.tick(now=10.0 + 61.0)
    assert session.state is SessionState.FINISHED
    assert session.time_remaining_s == 0.0
    # The unanswered in-progress problem is not counted.
    assert len(session.results) == 1


def test_sprint_finishes_exactly_at_zero() -> None:
    session = build_quiz_session(ModeKind.SPRINT, SETTINGS, clock=FakeClock(), seed=8)
    session.start()
    session.tick(now=59.9)
    assert session.state is SessionState.ACTIVE
    session.tick(now=60.0)
    assert session.state is SessionState.FINISHED


def test_sprint_tick_is_idempotent_for_same_now() -> None:
    session = build_quiz_session(ModeKind.SPRINT, SETTINGS, clock=FakeClock(), seed=8)
    session.start()

    session.tick(now=12.5)
    first = session.time_remaining_s
    session.tick(now=12.5)
    session.tick(now=12.5)
    assert session.time_remaining_s == first == pytest.approx(47.5)
    assert session.state is SessionState.ACTIVE


def test_sprint_uses_injected_clock_when_now_omitted() -> None:
    clock = FakeClock()
    session = build_quiz_session(ModeKind.SPRINT, SETTINGS, clock=clock, seed=8)
    session.start()
    clock.advance(20.0)
    session.tick()
    assert session.time_remaining_s == pytest.approx(40.0)


def test_sprint_late_submit_is_not_committed() -> None:
    clock = FakeClock()
    session = build_quiz_session(ModeKind.SPRINT, SETTINGS, clock=clock, seed=8)
    session.start()
    p = session.current_problem
    assert p is not None

    clock.advance(60.5)
    assert session.submit_answer(str(p.answer)) is AnswerStatus.PENDING
    assert session.state is SessionState.FINISHED
    assert session.results == ()


def test_sprint_answers_do_not_affect_countdown() -> None:
    clock = FakeClock()
    session = build_quiz_session(ModeKind.SPRINT, SETTINGS, clock=clock, seed=8)
    session.start()
    for _ in range(4):
        p = session.current_problem
        assert p is not None
        clock.advance(1.0)
        session.submit_answer(str(p.answer))
    session.tick()
    assert session.time_remaining_s == pytest.approx(56.0)
    assert session.current_index == 4


@pytest.mark.parametrize("kind", [ModeKind.MARATHON, ModeKind.SURVIVAL])
def test_tick_is_noop_outside_sprint(kind: ModeKind) -> None:
    session = build_quiz_session(kind, SETTINGS, clock=FakeClock(), seed=8)
    session.start()
    session.tick(now=10_000.0)
    assert session.state is SessionState.ACTIVE
    assert session.time_remaining_s is None


def test_abort_discards_session_and_blocks_later_signals() -> None:
    clock = FakeClock()
    session = build_quiz_session(ModeKind.SPRINT, SETTINGS, clock=clock, seed=4)
    session.start()
    p = session.current_problem
    assert p is not None
    session.submit_answer(str(p.answer))

    session.abort()
    assert session.state is SessionState.ABORTED
    assert session.current_problem is None
    assert session.finalize() is None

    # Stale callbacks on the superseded instance change nothing.
    session.tick(now=1_000.0)
    assert session.state is SessionState.ABORTED
    assert session.submit_answer("1") is AnswerStatus.PENDING
    assert len(session.results) == 1


def test_abort_outside_active_is_ignored() -> None:
    session = build_quiz_session(ModeKind.MARATHON, SETTINGS, clock=FakeClock(), seed=4)
    session.abort()
    assert session.state is SessionState.IDLE


def test_finalize_with_no_results_yields_nothing() -> None:
    session = build_quiz_session(ModeKind.SPRINT, SETTINGS, clock=FakeClock(), seed=4)
    session.start()
    session.tick(now=61.0)
    assert session.state is SessionState.FINISHED
    assert session.finalize() is None


def test_finalize_before_finish_yields_nothing() -> None:
    session = build_quiz_session(ModeKind.MARATHON, SETTINGS, clock=FakeClock(), seed=4)
    session.start()
    assert session.finalize() is None


def test_finalize_builds_summary_once() -> None:
    clock = FakeClock()
    wall = FakeWallClock()
    session = build_quiz_session(ModeKind.MARATHON, SETTINGS, clock=clock, seed=42, wall_clock=wall)
    session.start()
    for i, problem in enumerate(session.problems):
        clock.advance(2.0)
        session.submit_answer(str(problem.answer) if i != 1 else _wrong(problem.answer))

    summary = session.finalize()
    assert summary is not None
    assert summary.mode == "marathon"
    assert summary.score == 4
    assert summary.total_questions == 5
    assert summary.avg_time_s == pytest.approx(2.0)
    assert summary.timestamp == wall.t

    wall.t += 100.0
    assert session.finalize() is summary


def test_settings_are_normalized_on_build() -> None:
    raw = QuizSettings(operation=Operation.ADD, first_digits=9, second_digits=0, count=7)
    session = build_quiz_session(ModeKind.MARATHON, raw, clock=FakeClock(), seed=1)
    assert session.settings.first_digits == 3
    assert session.settings.second_digits == 1
    assert session.settings.count == 5
    session.start()
    assert len(session.problems) == 5


def test_snapshot_reports_progress() -> None:
    clock = FakeClock()
    session = build_quiz_session(ModeKind.MARATHON, SETTINGS, clock=clock, seed=2)
    session.start()
    p = session.current_problem
    assert p is not None
    session.submit_answer(str(p.answer))

    snap = session.snapshot()
    assert snap.state is SessionState.ACTIVE
    assert snap.mode is ModeKind.MARATHON
    assert snap.problem == session.current_problem
    assert snap.question_number == 2
    assert snap.total_questions == 5
    assert snap.time_remaining_s is None
    assert snap.score == 1
    assert snap.attempted == 1
    assert snap.progress == pytest.approx(0.2)

    sprint = build_quiz_session(ModeKind.SPRINT, SETTINGS, clock=clock, seed=2)
    sprint.start()
    sprint.tick(now=clock.t + 15.0)
    snap = sprint.snapshot()
    assert snap.total_questions is None
    assert snap.time_limit_s == 60.0
    assert snap.progress == pytest.approx(0.75)
