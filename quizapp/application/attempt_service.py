from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, List

from quizapp.application.grading import apply_grading, grade
from quizapp.domain.errors import (
    AlreadySubmittedError,
    AttemptClosedError,
    MaxAttemptsReachedError,
    NotFoundError,
    TimeExpiredError,
)
from quizapp.domain.models import (
    Answer,
    AnswerInput,
    Attempt,
    AttemptStatus,
    TestDefinition,
    utcnow,
)
from quizapp.domain.repositories import AttemptStore, TestCatalog

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
SUBMIT_GRACE_SECONDS = 30


class TestAttemptService:
    """
    Lifecycle of a user's attempt at a test: start or resume, record answers,
    submit, and grade.

    Timeouts are detected lazily, on the next call that touches an attempt.
    Nothing in here runs in the background; `expire_overdue_attempts` exists
    for a separately scheduled job.
    """

    __test__ = False

    def __init__(
        self,
        *,
        tests: TestCatalog,
        attempts: AttemptStore,
        clock: Callable[[], datetime] = utcnow,
        default_max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        submit_grace_seconds: int = SUBMIT_GRACE_SECONDS,
    ):
        self._tests = tests
        self._attempts = attempts
        self._clock = clock
        self._default_max_attempts = default_max_attempts
        self._grace = timedelta(seconds=submit_grace_seconds)

    # ---------------------------
    # Public API
    # ---------------------------

    def start_attempt(self, test_id: str, user_id: str) -> Attempt:
        """
        Starts a new attempt, or returns the user's open one if it is still within time.
        """
        test = self._tests.get_test_by_id(test_id)
        max_attempts = self._max_attempts(test)

        attempts = self._attempts.find_by_user_and_test(user_id, test_id)
        completed = sum(1 for a in attempts if a.is_completed)
        if completed >= max_attempts:
            logger.info(f"User {user_id} has {completed}/{max_attempts} attempts on test {test_id}")
            raise MaxAttemptsReachedError(test_id, max_attempts)

        existing = next((a for a in attempts if a.status == AttemptStatus.IN_PROGRESS), None)
        if existing is not None:
            if not self._is_timed_out(existing, test):
                logger.info(f"Resuming attempt {existing.id} for user {user_id} on test {test_id}")
                return existing

            self._close_and_grade(existing, test)
            logger.info(f"Auto-submitted timed-out attempt {existing.id} for user {user_id}")
            if completed + 1 >= max_attempts:
                raise MaxAttemptsReachedError(test_id, max_attempts)

        attempt = Attempt(test_id=test_id, user_id=user_id, started_at=self._clock())
        attempt = self._attempts.save(attempt)
        logger.info(f"Started attempt {attempt.id} for user {user_id} on test {test_id}")
        return attempt

    def save_answer(self, attempt_id: str, answer_input: AnswerInput) -> Attempt:
        attempt = self.get_attempt_by_id(attempt_id)
        if attempt.status != AttemptStatus.IN_PROGRESS:
            raise AttemptClosedError(attempt_id)

        test = self._tests.get_test_by_id(attempt.test_id)
        if self._is_timed_out(attempt, test):
            graded = self._close_and_grade(attempt, test)
            logger.info(
                f"Attempt {attempt_id} timed out while saving question {answer_input.question_id}; "
                f"auto-submitted with score {graded.score:.1f}"
            )
            raise TimeExpiredError(graded)

        question = test.question(answer_input.question_id)
        if question is None:
            logger.warning(
                f"Attempt {attempt_id} answered question {answer_input.question_id}, "
                f"which is not on test {test.id}"
            )
        response = answer_input.to_response(question.type if question is not None else None)
        attempt.record_answer(Answer(question_id=answer_input.question_id, response=response))
        logger.debug(f"Saved answer to question {answer_input.question_id} on attempt {attempt_id}")
        return self._attempts.save(attempt)

    def submit_attempt(self, attempt_id: str) -> Attempt:
        attempt = self.get_attempt_by_id(attempt_id)
        if attempt.status != AttemptStatus.IN_PROGRESS:
            raise AlreadySubmittedError(attempt_id)

        test = self._tests.get_test_by_id(attempt.test_id)
        deadline = test.deadline_for(attempt.started_at)
        if deadline is not None and self._clock() > deadline + self._grace:
            logger.warning(
                f"Attempt {attempt_id} submitted after deadline, auto-grading with current answers"
            )

        attempt = self._close_and_grade(attempt, test)
        logger.info(
            f"Attempt {attempt_id} submitted: {attempt.earned_points}/{attempt.total_points} "
            f"({attempt.score:.1f}%)"
        )
        return attempt

    def get_attempt_by_id(self, attempt_id: str) -> Attempt:
        attempt = self._attempts.find_by_id(attempt_id)
        if attempt is None:
            raise NotFoundError("Attempt", attempt_id)
        return attempt

    def get_user_attempts(self, user_id: str) -> List[Attempt]:
        return self._attempts.find_by_user(user_id)

    def get_test_attempts(self, test_id: str) -> List[Attempt]:
        return self._attempts.find_by_test(test_id)

    def get_graded_attempts(self) -> List[Attempt]:
        return self._attempts.find_by_status(AttemptStatus.GRADED)

    def get_completed_attempts_count(self, user_id: str, test_id: str) -> int:
        return sum(1 for a in self._attempts.find_by_user_and_test(user_id, test_id) if a.is_completed)

    def get_attempts_info(self, test_id: str, user_id: str) -> Dict:
        test = self._tests.get_test_by_id(test_id)
        completed = self.get_completed_attempts_count(user_id, test_id)
        max_attempts = self._max_attempts(test)
        return {
            "completed_attempts": completed,
            "max_attempts": max_attempts,
            "can_start": completed < max_attempts,
        }

    def expire_overdue_attempts(self) -> List[Attempt]:
        """
        Grades every open attempt whose time has run out.

        Meant to be run as its own scheduled job; the request path never calls it.
        """
        tests: Dict[str, TestDefinition] = {}
        expired: List[Attempt] = []

        for attempt in self._attempts.find_by_status(AttemptStatus.IN_PROGRESS):
            test = tests.get(attempt.test_id)
            if test is None:
                try:
                    test = self._tests.get_test_by_id(attempt.test_id)
                except NotFoundError:
                    logger.warning(f"Skipping attempt {attempt.id}: test {attempt.test_id} no longer exists")
                    continue
                tests[test.id] = test

            if self._is_timed_out(attempt, test):
                expired.append(self._close_and_grade(attempt, test))

        logger.info(f"Expired {len(expired)} overdue attempts")
        return expired

    # ---------------------------
    # Internal helpers
    # ---------------------------

    def _max_attempts(self, test: TestDefinition) -> int:
        return test.max_attempts if test.max_attempts is not None else self._default_max_attempts

    def _is_timed_out(self, attempt: Attempt, test: TestDefinition) -> bool:
        deadline = test.deadline_for(attempt.started_at)
        return deadline is not None and self._clock() > deadline

    def _close_and_grade(self, attempt: Attempt, test: TestDefinition) -> Attempt:
        attempt.submitted_at = self._clock()
        attempt.advance_to(AttemptStatus.SUBMITTED)
        apply_grading(attempt, grade(test, attempt))
        return self._attempts.save(attempt)
