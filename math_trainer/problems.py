"""Arithmetic problem generation.

Operands are sampled by digit count: an n-digit operand is drawn uniformly
from ``[10**(n-1), 10**n - 1]`` so it always has exactly n digits.
Subtraction reorders operands to keep the result non-negative, and division
is built backwards from divisor and quotient so every answer is an exact
integer and the divisor is never 0 or 1.
"""

from __future__ import annotations

import random
import string
from dataclasses import dataclass

from .settings import MAX_DIGITS, MIN_DIGITS, GameMode, Operation, QuizSettings

_ID_ALPHABET = string.digits + string.ascii_lowercase
_ID_LENGTH = 9


@dataclass(frozen=True, slots=True)
class Problem:
    num1: int
    num2: int
    op: str
    answer: int
    id: str

    @property
    def text(self) -> str:
        return f"{self.num1} {self.op} {self.num2}"


def random_operand(rng: random.Random, digits: int) -> int:
    """Uniform integer with exactly ``digits`` decimal digits."""

    digits = _clamp_digits(digits)
    return rng.randint(10 ** (digits - 1), 10**digits - 1)


class ProblemGenerator:
    """Seedable source of problems.

    Pass ``rng`` to share a stream, or ``seed`` to get a reproducible one.
    """

    def __init__(self, rng: random.Random | None = None, *, seed: int | None = None) -> None:
        self._rng = rng if rng is not None else random.Random(seed)

    def generate(self, operation: Operation | str, digits1: int, digits2: int) -> Problem:
        op = Operation(operation)
        if op is Operation.MIXED:
            op = self._rng.choice(Operation.concrete())

        num1 = random_operand(self._rng, digits1)
        num2 = random_operand(self._rng, digits2)

        if op is Operation.ADD:
            answer = num1 + num2
        elif op is Operation.SUBTRACT:
            if num1 < num2:
                num1, num2 = num2, num1
            answer = num1 - num2
        elif op is Operation.MULTIPLY:
            answer = num1 * num2
        else:
            num2 = max(2, random_operand(self._rng, min(_clamp_digits(digits2), 2)))
            quotient = random_operand(self._rng, max(1, _clamp_digits(digits1) - 1))
            num1 = num2 * quotient
            answer = quotient

        return Problem(num1=num1, num2=num2, op=op.value, answer=answer, id=self._new_id())

    def generate_batch(self, mode: GameMode, settings: QuizSettings) -> list[Problem]:
        settings = settings.normalized()
        return [
            self.generate(settings.operation, settings.first_digits, settings.second_digits)
            for _ in range(mode.problem_count)
        ]

    def _new_id(self) -> str:
        return "".join(self._rng.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))


def _clamp_digits(digits: int) -> int:
    return max(MIN_DIGITS, min(MAX_DIGITS, int(digits)))
