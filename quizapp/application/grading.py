"""
Scoring of attempts against their test definition.

`grade` is pure: it reads the definition and the attempt's answers and
returns a GradingResult without touching either. `apply_grading` is the only
place where grading fields are written onto an attempt.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict

from quizapp.domain.models import (
    Answer,
    Attempt,
    AttemptStatus,
    ChoiceQuestion,
    ChoiceResponse,
    NumericQuestion,
    NumericResponse,
    Question,
    QuestionType,
    TestDefinition,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuestionGrade:
    is_correct: bool
    points_awarded: int


@dataclass(frozen=True)
class GradingResult:
    total_points: int
    earned_points: int
    score: float
    per_question: Dict[str, QuestionGrade] = field(default_factory=dict)


def _first_choice_is_correct(question: ChoiceQuestion, answer: Answer) -> bool:
    response = answer.response
    if not isinstance(response, ChoiceResponse) or not response.selected_choices:
        return False
    selected = response.selected_choices[0]
    return any(c.id == selected and c.is_correct for c in question.choices)


def _exact_choice_set(question: ChoiceQuestion, answer: Answer) -> bool:
    response = answer.response
    if not isinstance(response, ChoiceResponse):
        return False
    correct = question.correct_choice_ids
    # No partial credit: same size and same members
    return len(response.selected_choices) == len(correct) and set(response.selected_choices) == set(correct)


def _numeric_matches(question: NumericQuestion, answer: Answer) -> bool:
    response = answer.response
    if not isinstance(response, NumericResponse) or response.value is None:
        return False
    if question.correct_answer is None:
        return False
    return response.value.strip() == question.correct_answer.strip()


def _never_correct(question: Question, answer: Answer) -> bool:
    return False


_CHECKERS: Dict[QuestionType, Callable[[Question, Answer], bool]] = {
    QuestionType.SINGLE: _first_choice_is_correct,
    QuestionType.TRUEFALSE: _first_choice_is_correct,
    QuestionType.MULTIPLE: _exact_choice_set,
    QuestionType.NUMERIC: _numeric_matches,
    QuestionType.OPEN: _never_correct,
}


def check_answer(question: Question, answer: Answer) -> bool:
    return _CHECKERS.get(question.type, _never_correct)(question, answer)


def grade(test: TestDefinition, attempt: Attempt) -> GradingResult:
    """
    Grade every question of `test` against the answers held by `attempt`.

    Unanswered questions add to total points but get no entry in
    `per_question`. Each answered question earns its full point value or 0.
    """
    answers = {a.question_id: a for a in attempt.answers}
    total_points = 0
    earned_points = 0
    per_question: Dict[str, QuestionGrade] = {}

    for question in test.questions:
        total_points += question.points
        answer = answers.get(question.id)
        if answer is None:
            continue

        is_correct = check_answer(question, answer)
        points = question.points if is_correct else 0
        per_question[question.id] = QuestionGrade(is_correct=is_correct, points_awarded=points)
        earned_points += points

    score = earned_points / total_points * 100 if total_points > 0 else 0.0
    return GradingResult(
        total_points=total_points,
        earned_points=earned_points,
        score=float(score),
        per_question=per_question,
    )


def apply_grading(attempt: Attempt, result: GradingResult) -> Attempt:
    """Write `result` onto `attempt` and move it to GRADED."""
    if attempt.status == AttemptStatus.GRADED:
        raise ValueError(f"Attempt {attempt.id} is already graded")

    for answer in attempt.answers:
        question_grade = result.per_question.get(answer.question_id)
        if question_grade is None:
            # Answer to a question no longer on the test
            continue
        answer.is_correct = question_grade.is_correct
        answer.points_awarded = question_grade.points_awarded

    attempt.total_points = result.total_points
    attempt.earned_points = result.earned_points
    attempt.score = result.score
    attempt.advance_to(AttemptStatus.GRADED)
    logger.debug(
        f"Graded attempt {attempt.id}: {result.earned_points}/{result.total_points} ({result.score:.1f}%)"
    )
    return attempt
