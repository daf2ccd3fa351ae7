"""
Failure kinds raised by the attempt lifecycle.

Each error carries a stable `code` that the HTTP layer hands to clients,
so callers can tell a business-rule rejection apart from a server fault.
"""


class AttemptError(Exception):
    code = "ATTEMPT_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(AttemptError, LookupError):
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class MaxAttemptsReachedError(AttemptError):
    code = "MAX_ATTEMPTS_REACHED"

    def __init__(self, test_id: str, max_attempts: int):
        super().__init__(
            f"You have reached the maximum number of attempts ({max_attempts}) for test {test_id}"
        )
        self.test_id = test_id
        self.max_attempts = max_attempts


class AttemptClosedError(AttemptError):
    code = "ATTEMPT_CLOSED"

    def __init__(self, attempt_id: str):
        super().__init__(f"Cannot modify submitted attempt {attempt_id}")
        self.attempt_id = attempt_id


class AlreadySubmittedError(AttemptError):
    code = "ALREADY_SUBMITTED"

    def __init__(self, attempt_id: str):
        super().__init__(f"Attempt {attempt_id} already submitted")
        self.attempt_id = attempt_id


class TimeExpiredError(AttemptError):
    """The attempt ran out of time and was graded; the answer that triggered the check was dropped."""

    code = "TIME_EXPIRED"

    def __init__(self, attempt):
        super().__init__("Time has expired. Your test has been auto-submitted.")
        self.attempt = attempt


class ConcurrentStartConflictError(AttemptError):
    code = "CONCURRENT_START_CONFLICT"

    def __init__(self, test_id: str, user_id: str):
        super().__init__(
            f"Another attempt on test {test_id} was started for user {user_id} at the same time"
        )
        self.test_id = test_id
        self.user_id = user_id
