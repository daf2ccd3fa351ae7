import copy
import os
from datetime import datetime, timedelta

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite://")

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from quizapp.application.attempt_service import TestAttemptService
from quizapp.domain.errors import NotFoundError
from quizapp.domain.models import (
    Attempt,
    AttemptStatus,
    Choice,
    ChoiceQuestion,
    QuestionType,
    TestDefinition,
)
from quizapp.infrastructure.db.base import Base
from quizapp.infrastructure.db.models import attempt_model, test_model  # noqa: F401

T0 = datetime(2024, 3, 1, 9, 0, 0)


class FakeClock:
    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class InMemoryTestCatalog:
    def __init__(self, *tests):
        self.tests = {t.id: t for t in tests}

    def add(self, test):
        self.tests[test.id] = test

    def get_test_by_id(self, test_id):
        if test_id not in self.tests:
            raise NotFoundError("Test", test_id)
        return self.tests[test_id]


class InMemoryAttemptStore:
    """Keeps copies, so unsaved changes to a returned attempt are never visible."""

    def __init__(self):
        self.rows = {}
        self.saves = 0
        self._counter = 0

    def save(self, attempt):
        self.saves += 1
        stored = copy.deepcopy(attempt)
        if stored.id is None:
            self._counter += 1
            stored.id = f"attempt-{self._counter}"
        self.rows[stored.id] = stored
        return copy.deepcopy(stored)

    def find_by_id(self, attempt_id):
        row = self.rows.get(attempt_id)
        return copy.deepcopy(row) if row else None

    def _select(self, predicate):
        return [copy.deepcopy(a) for a in self.rows.values() if predicate(a)]

    def find_by_user_and_test(self, user_id, test_id):
        return self._select(lambda a: a.user_id == user_id and a.test_id == test_id)

    def find_by_user(self, user_id):
        return self._select(lambda a: a.user_id == user_id)

    def find_by_test(self, test_id):
        return self._select(lambda a: a.test_id == test_id)

    def find_by_status(self, status):
        return self._select(lambda a: a.status == status)


def single_question_test(**overrides) -> TestDefinition:
    fields = dict(
        id="test-1",
        title="Sample Test",
        duration_minutes=30,
        passing_score=70,
        max_attempts=3,
        published=True,
        questions=(
            ChoiceQuestion(
                id="q1",
                type=QuestionType.SINGLE,
                text="Question 1",
                points=10,
                choices=(
                    Choice(id="c1", text="Correct", is_correct=True),
                    Choice(id="c2", text="Wrong", is_correct=False),
                ),
            ),
        ),
    )
    fields.update(overrides)
    return TestDefinition(**fields)


def completed_attempt(attempt_id, status=AttemptStatus.GRADED, user_id="user-1", test_id="test-1"):
    return Attempt(
        id=attempt_id,
        test_id=test_id,
        user_id=user_id,
        started_at=T0 - timedelta(days=1),
        submitted_at=T0 - timedelta(days=1) + timedelta(minutes=10),
        status=status,
        total_points=10,
        earned_points=10 if status == AttemptStatus.GRADED else None,
        score=100.0 if status == AttemptStatus.GRADED else None,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sample_test():
    return single_question_test()


@pytest.fixture
def catalog(sample_test):
    return InMemoryTestCatalog(sample_test)


@pytest.fixture
def store():
    return InMemoryAttemptStore()


@pytest.fixture
def service(catalog, store, clock):
    return TestAttemptService(tests=catalog, attempts=store, clock=clock)


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()
