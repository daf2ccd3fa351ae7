from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import List, Optional, Tuple, Union


def utcnow() -> datetime:
    # Naive UTC, matching the DateTime columns of the attempt tables
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return uuid.uuid4().hex


class QuestionType(str, Enum):
    SINGLE = "SINGLE"
    MULTIPLE = "MULTIPLE"
    TRUEFALSE = "TRUEFALSE"
    OPEN = "OPEN"
    NUMERIC = "NUMERIC"


CHOICE_QUESTION_TYPES = (QuestionType.SINGLE, QuestionType.MULTIPLE, QuestionType.TRUEFALSE)


class AttemptStatus(str, Enum):
    IN_PROGRESS = "IN_PROGRESS"
    SUBMITTED = "SUBMITTED"
    GRADED = "GRADED"


_STATUS_ORDER = {
    AttemptStatus.IN_PROGRESS: 0,
    AttemptStatus.SUBMITTED: 1,
    AttemptStatus.GRADED: 2,
}

COMPLETED_STATUSES = (AttemptStatus.SUBMITTED, AttemptStatus.GRADED)


# ---------------------------
# Test definitions
# ---------------------------

@dataclass(frozen=True)
class Choice:
    id: str
    text: str
    is_correct: bool = False


@dataclass(frozen=True)
class ChoiceQuestion:
    """SINGLE, MULTIPLE or TRUEFALSE question answered by picking choice ids."""
    id: str
    type: QuestionType
    text: str
    points: int
    choices: Tuple[Choice, ...] = ()

    def __post_init__(self):
        if self.type not in CHOICE_QUESTION_TYPES:
            raise ValueError(f"{self.type.value} is not a choice-based question type")

    @property
    def correct_choice_ids(self) -> List[str]:
        return [c.id for c in self.choices if c.is_correct]


@dataclass(frozen=True)
class NumericQuestion:
    id: str
    text: str
    points: int
    correct_answer: Optional[str] = None

    @property
    def type(self) -> QuestionType:
        return QuestionType.NUMERIC


@dataclass(frozen=True)
class OpenQuestion:
    """Free-text question. Carries no answer key and is never auto-graded."""
    id: str
    text: str
    points: int

    @property
    def type(self) -> QuestionType:
        return QuestionType.OPEN


Question = Union[ChoiceQuestion, NumericQuestion, OpenQuestion]


@dataclass(frozen=True)
class TestDefinition:
    id: str
    title: str
    questions: Tuple[Question, ...] = ()
    description: Optional[str] = None
    duration_minutes: Optional[int] = None
    passing_score: int = 0
    max_attempts: Optional[int] = None
    published: bool = False

    __test__ = False  # keep pytest from collecting this as a test class

    def question(self, question_id: str) -> Optional[Question]:
        return next((q for q in self.questions if q.id == question_id), None)

    def deadline_for(self, started_at: datetime) -> Optional[datetime]:
        """Return when an attempt started at `started_at` runs out of time, or None if untimed."""
        if self.duration_minutes is None or started_at is None:
            return None
        return started_at + timedelta(minutes=self.duration_minutes)


# ---------------------------
# Attempts
# ---------------------------

@dataclass(frozen=True)
class ChoiceResponse:
    selected_choices: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TextResponse:
    text: str = ""


@dataclass(frozen=True)
class NumericResponse:
    value: Optional[str]


Response = Union[ChoiceResponse, TextResponse, NumericResponse]


@dataclass
class AnswerInput:
    """Answer as submitted by a client, before it is narrowed to a single response kind."""
    question_id: str
    selected_choices: Optional[List[str]] = None
    text_answer: Optional[str] = None
    numeric_answer: Optional[str] = None

    def to_response(self, question_type: Optional[QuestionType] = None) -> Response:
        """
        Narrow to the payload the question type grades on; other fields are dropped.

        Without a type (question not on the test) the first field set wins.
        """
        if question_type in CHOICE_QUESTION_TYPES:
            return ChoiceResponse(tuple(self.selected_choices or ()))
        if question_type == QuestionType.NUMERIC:
            return NumericResponse(self.numeric_answer)
        if question_type == QuestionType.OPEN:
            return TextResponse(self.text_answer or "")

        if self.selected_choices is not None:
            return ChoiceResponse(tuple(self.selected_choices))
        if self.numeric_answer is not None:
            return NumericResponse(self.numeric_answer)
        return TextResponse(self.text_answer or "")


@dataclass
class Answer:
    question_id: str
    response: Response
    is_correct: Optional[bool] = None
    points_awarded: Optional[int] = None


@dataclass
class Attempt:
    test_id: str
    user_id: str
    started_at: datetime
    id: Optional[str] = None
    status: AttemptStatus = AttemptStatus.IN_PROGRESS
    submitted_at: Optional[datetime] = None
    answers: List[Answer] = field(default_factory=list)
    total_points: Optional[int] = None
    earned_points: Optional[int] = None
    score: Optional[float] = None

    @property
    def is_completed(self) -> bool:
        return self.status in COMPLETED_STATUSES

    def answer_for(self, question_id: str) -> Optional[Answer]:
        return next((a for a in self.answers if a.question_id == question_id), None)

    def record_answer(self, answer: Answer) -> None:
        """Store `answer`, replacing any earlier answer to the same question."""
        if self.status != AttemptStatus.IN_PROGRESS:
            raise ValueError(f"Attempt {self.id} is {self.status.value}; answers are frozen")
        self.answers = [a for a in self.answers if a.question_id != answer.question_id]
        self.answers.append(answer)

    def advance_to(self, status: AttemptStatus) -> None:
        if _STATUS_ORDER[status] < _STATUS_ORDER[self.status]:
            raise ValueError(
                f"Attempt {self.id} cannot move from {self.status.value} back to {status.value}"
            )
        self.status = status
