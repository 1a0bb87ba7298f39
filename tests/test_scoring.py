import pytest

from lms_portal.core.errors import ValidationFailedError
from lms_portal.services.scoring import percentage_of, round_half_up, score_answers


def test_three_of_four_is_75_percent_and_fails_at_80():
    result = score_answers([1, 0, 2, 0], [1, 0, 2, 1], passing_score=80)

    assert result.score == 3
    assert result.total_questions == 4
    assert result.percentage == 75
    assert result.passed is False
    assert result.correct_answers == 3
    assert result.incorrect_answers == 1
    assert result.unanswered == 0


def test_all_correct_passes():
    result = score_answers([1, 0, 2, 1], [1, 0, 2, 1])
    assert result.percentage == 100
    assert result.passed is True


def test_passing_score_is_inclusive():
    result = score_answers([1, 0, 2, 1, 0], [1, 0, 2, 1, 1], passing_score=80)
    assert result.percentage == 80
    assert result.passed is True


def test_unanswered_questions_score_nothing():
    result = score_answers([None, 0, None, 1], [1, 0, 2, 1])

    assert result.score == 2
    assert result.unanswered == 2
    assert result.incorrect_answers == 0
    assert result.percentage == 50


def test_percentage_rounds_half_up():
    # 5/8 = 62.5
    assert percentage_of(5, 8) == 63
    # 1/3 = 33.33
    assert percentage_of(1, 3) == 33
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3


def test_zero_questions_gives_zero_percent():
    result = score_answers([], [])
    assert result.percentage == 0
    assert result.passed is False


def test_answer_count_must_match_question_count():
    with pytest.raises(ValidationFailedError):
        score_answers([1, 0], [1, 0, 2])
