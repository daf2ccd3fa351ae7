from typing import Callable, List, Optional
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quizapp.domain.errors import ConcurrentStartConflictError
from quizapp.domain.models import (
    Answer,
    Attempt,
    AttemptStatus,
    ChoiceResponse,
    NumericResponse,
    TextResponse,
    new_id,
)
from quizapp.infrastructure.db.models.attempt_model import AnswerModel, AttemptModel

logger = logging.getLogger(__name__)

KIND_CHOICE = "choice"
KIND_TEXT = "text"
KIND_NUMERIC = "numeric"


def _to_answer(row: AnswerModel) -> Answer:
    if row.kind == KIND_CHOICE:
        response = ChoiceResponse(tuple(row.selected_choices or ()))
    elif row.kind == KIND_NUMERIC:
        response = NumericResponse(row.numeric_answer)
    else:
        response = TextResponse(row.text_answer or "")
    return Answer(
        question_id=row.question_id,
        response=response,
        is_correct=row.is_correct,
        points_awarded=row.points_awarded,
    )


def to_attempt(model: AttemptModel) -> Attempt:
    return Attempt(
        id=model.id,
        test_id=model.test_id,
        user_id=model.user_id,
        status=AttemptStatus(model.status),
        started_at=model.started_at,
        submitted_at=model.submitted_at,
        answers=[_to_answer(a) for a in model.answers],
        total_points=model.total_points,
        earned_points=model.earned_points,
        score=model.score,
    )


def _fill_answer_row(row: AnswerModel, answer: Answer, position: int) -> None:
    response = answer.response
    row.position = position
    row.selected_choices = None
    row.text_answer = None
    row.numeric_answer = None
    if isinstance(response, ChoiceResponse):
        row.kind = KIND_CHOICE
        row.selected_choices = list(response.selected_choices)
    elif isinstance(response, NumericResponse):
        row.kind = KIND_NUMERIC
        row.numeric_answer = response.value
    else:
        row.kind = KIND_TEXT
        row.text_answer = response.text
    row.is_correct = answer.is_correct
    row.points_awarded = answer.points_awarded


class SqlAttemptStore:
    """
    Attempt records in the `test_attempts` tables.

    Every call returns detached domain objects; changes only reach the
    database through `save`.
    """

    def __init__(self, db: Session, id_factory: Callable[[], str] = new_id):
        self.db = db
        self._new_id = id_factory

    def save(self, attempt: Attempt) -> Attempt:
        model = None
        if attempt.id is not None:
            model = self.db.query(AttemptModel).filter(AttemptModel.id == attempt.id).first()
        is_new = model is None

        try:
            if is_new:
                model = AttemptModel(id=attempt.id or self._new_id())
                self.db.add(model)
            self._fill(model, attempt)
            self.db.commit()
            self.db.refresh(model)
        except IntegrityError as e:
            self.db.rollback()
            if is_new and attempt.status == AttemptStatus.IN_PROGRESS:
                logger.warning(
                    f"Concurrent start detected for user {attempt.user_id} on test {attempt.test_id}: {e}"
                )
                raise ConcurrentStartConflictError(attempt.test_id, attempt.user_id)
            logger.error(f"Database integrity error saving attempt {attempt.id}: {e}")
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Unexpected error saving attempt {attempt.id}: {e}", exc_info=True)
            raise

        if is_new:
            logger.info(f"Inserted attempt {model.id} for user {model.user_id} on test {model.test_id}")
        else:
            logger.debug(f"Updated attempt {model.id} (status={model.status})")
        return to_attempt(model)

    def find_by_id(self, attempt_id: str) -> Optional[Attempt]:
        model = self.db.query(AttemptModel).filter(AttemptModel.id == attempt_id).first()
        if not model:
            logger.warning(f"Attempt not found: attempt_id={attempt_id}")
            return None
        return to_attempt(model)

    def find_by_user_and_test(self, user_id: str, test_id: str) -> List[Attempt]:
        rows = (
            self.db.query(AttemptModel)
            .filter(AttemptModel.user_id == user_id, AttemptModel.test_id == test_id)
            .order_by(AttemptModel.started_at)
            .all()
        )
        return [to_attempt(r) for r in rows]

    def find_by_user(self, user_id: str) -> List[Attempt]:
        rows = (
            self.db.query(AttemptModel)
            .filter(AttemptModel.user_id == user_id)
            .order_by(AttemptModel.started_at.desc())
            .all()
        )
        return [to_attempt(r) for r in rows]

    def find_by_test(self, test_id: str) -> List[Attempt]:
        rows = (
            self.db.query(AttemptModel)
            .filter(AttemptModel.test_id == test_id)
            .order_by(AttemptModel.started_at.desc())
            .all()
        )
        return [to_attempt(r) for r in rows]

    def find_by_status(self, status: AttemptStatus) -> List[Attempt]:
        rows = (
            self.db.query(AttemptModel)
            .filter(AttemptModel.status == status.value)
            .order_by(AttemptModel.started_at)
            .all()
        )
        return [to_attempt(r) for r in rows]

    def _fill(self, model: AttemptModel, attempt: Attempt) -> None:
        model.test_id = attempt.test_id
        model.user_id = attempt.user_id
        model.status = attempt.status.value
        model.started_at = attempt.started_at
        model.submitted_at = attempt.submitted_at
        model.total_points = attempt.total_points
        model.earned_points = attempt.earned_points
        model.score = attempt.score

        # Reuse rows per question so the (attempt_id, question_id) constraint holds mid-flush
        existing = {row.question_id: row for row in model.answers}
        rows = []
        for position, answer in enumerate(attempt.answers):
            row = existing.pop(answer.question_id, None) or AnswerModel(question_id=answer.question_id)
            _fill_answer_row(row, answer, position)
            rows.append(row)
        model.answers = rows
