"""Scoring of submitted test answers.

One point per exact match between the submitted option index and the
correct option index. Unanswered questions (``None``) score nothing and
there is no negative marking.
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from lms_portal.core.config import DEFAULT_PASSING_SCORE
from lms_portal.core.errors import ValidationFailedError


@dataclass(frozen=True)
class ScoreResult:
    score: int
    total_questions: int
    correct_answers: int
    incorrect_answers: int
    unanswered: int
    percentage: int
    passed: bool


def round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; 62.5 must become 63
    return int(math.floor(value + 0.5))


def percentage_of(score: int, total: int) -> int:
    if total <= 0:
        return 0
    return round_half_up(score / total * 100)


def score_answers(
    answers: Sequence[Optional[int]],
    correct_answers: Sequence[int],
    passing_score: int = DEFAULT_PASSING_SCORE,
) -> ScoreResult:
    """
    Score ``answers`` against ``correct_answers`` (both in question order).

    Raises ValidationFailedError when the two lists differ in length.
    """
    if len(answers) != len(correct_answers):
        raise ValidationFailedError(
            f"Answer count ({len(answers)}) does not match question count ({len(correct_answers)})"
        )

    correct = 0
    incorrect = 0
    unanswered = 0
    for given, expected in zip(answers, correct_answers):
        if given is None:
            unanswered += 1
        elif given == expected:
            correct += 1
        else:
            incorrect += 1

    total = len(correct_answers)
    percentage = percentage_of(correct, total)

    return ScoreResult(
        score=correct,
        total_questions=total,
        correct_answers=correct,
        incorrect_answers=incorrect,
        unanswered=unanswered,
        percentage=percentage,
        passed=percentage >= passing_score,
    )
