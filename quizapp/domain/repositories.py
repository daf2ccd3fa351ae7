from typing import List, Optional, Protocol

from quizapp.domain.models import Attempt, AttemptStatus, TestDefinition


class TestCatalog(Protocol):
    def get_test_by_id(self, test_id: str) -> TestDefinition:
        """
        Returns the test definition, raising NotFoundError if it does not exist.
        """
        ...


class AttemptStore(Protocol):
    def save(self, attempt: Attempt) -> Attempt:
        """
        Inserts or updates an attempt. An id is assigned on first insert.
        """
        ...

    def find_by_id(self, attempt_id: str) -> Optional[Attempt]:
        ...

    def find_by_user_and_test(self, user_id: str, test_id: str) -> List[Attempt]:
        ...

    def find_by_user(self, user_id: str) -> List[Attempt]:
        ...

    def find_by_test(self, test_id: str) -> List[Attempt]:
        ...

    def find_by_status(self, status: AttemptStatus) -> List[Attempt]:
        ...
