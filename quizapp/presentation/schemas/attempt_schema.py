from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from quizapp.domain.models import (
    Answer,
    AnswerInput,
    Attempt,
    AttemptStatus,
    ChoiceResponse,
    NumericResponse,
    TextResponse,
)


class AnswerRequest(BaseModel):
    question_id: str
    selected_choices: Optional[List[str]] = None
    text_answer: Optional[str] = None
    numeric_answer: Optional[str] = None

    def to_input(self) -> AnswerInput:
        return AnswerInput(
            question_id=self.question_id,
            selected_choices=self.selected_choices,
            text_answer=self.text_answer,
            numeric_answer=self.numeric_answer,
        )


class AnswerOut(BaseModel):
    question_id: str
    selected_choices: Optional[List[str]] = None
    text_answer: Optional[str] = None
    numeric_answer: Optional[str] = None
    is_correct: Optional[bool] = None
    points_awarded: Optional[int] = None

    @classmethod
    def from_domain(cls, answer: Answer) -> "AnswerOut":
        out = cls(
            question_id=answer.question_id,
            is_correct=answer.is_correct,
            points_awarded=answer.points_awarded,
        )
        response = answer.response
        if isinstance(response, ChoiceResponse):
            out.selected_choices = list(response.selected_choices)
        elif isinstance(response, NumericResponse):
            out.numeric_answer = response.value
        elif isinstance(response, TextResponse):
            out.text_answer = response.text
        return out


class AttemptOut(BaseModel):
    id: str
    test_id: str
    user_id: str
    status: AttemptStatus
    started_at: datetime
    submitted_at: Optional[datetime] = None
    answers: List[AnswerOut] = []
    total_points: Optional[int] = None
    earned_points: Optional[int] = None
    score: Optional[float] = None

    @classmethod
    def from_domain(cls, attempt: Attempt) -> "AttemptOut":
        return cls(
            id=attempt.id,
            test_id=attempt.test_id,
            user_id=attempt.user_id,
            status=attempt.status,
            started_at=attempt.started_at,
            submitted_at=attempt.submitted_at,
            answers=[AnswerOut.from_domain(a) for a in attempt.answers],
            total_points=attempt.total_points,
            earned_points=attempt.earned_points,
            score=attempt.score,
        )


class AttemptsInfoResponse(BaseModel):
    completed_attempts: int
    max_attempts: int
    can_start: bool


class LeaderboardEntry(BaseModel):
    user_id: str
    avg_score: float
    best_score: float
    tests_completed: int
    total_points: int
    attempts_count: int
