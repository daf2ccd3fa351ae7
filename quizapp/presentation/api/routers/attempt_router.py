import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from quizapp.application.attempt_service import TestAttemptService
from quizapp.application.reports import build_leaderboard
from quizapp.domain.errors import (
    AlreadySubmittedError,
    AttemptClosedError,
    AttemptError,
    ConcurrentStartConflictError,
    MaxAttemptsReachedError,
    NotFoundError,
    TimeExpiredError,
)
from quizapp.domain.models import Attempt
from quizapp.presentation.dependencies import get_attempt_service, get_current_user
from quizapp.presentation.schemas.attempt_schema import (
    AnswerRequest,
    AttemptOut,
    AttemptsInfoResponse,
    LeaderboardEntry,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tests", tags=["Test Attempts"])


def _error_body(exc: AttemptError) -> dict:
    return {"error": exc.code, "message": exc.message}


def _owned_attempt(
    service: TestAttemptService, attempt_id: str, user_id: str, test_id: Optional[str] = None
) -> Attempt:
    attempt = service.get_attempt_by_id(attempt_id)
    if attempt.user_id != user_id:
        logger.warning(f"User {user_id} requested attempt {attempt_id} owned by another user")
        raise NotFoundError("Attempt", attempt_id)
    if test_id is not None and attempt.test_id != test_id:
        logger.warning(f"Attempt {attempt_id} belongs to test {attempt.test_id}, not {test_id}")
        raise NotFoundError("Attempt", attempt_id)
    return attempt


def _internal_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An unexpected error occurred.",
    )


# --------------------------------------------------
# Listing endpoints
# --------------------------------------------------
@router.get("/my-attempts", response_model=List[AttemptOut])
def get_my_attempts(
    current_user: dict = Depends(get_current_user),
    service: TestAttemptService = Depends(get_attempt_service),
):
    user_id = current_user["user_id"]
    logger.debug(f"Fetching attempts for user: {user_id}")
    return [AttemptOut.from_domain(a) for a in service.get_user_attempts(user_id)]


@router.get("/leaderboard", response_model=List[LeaderboardEntry])
def get_leaderboard(
    current_user: dict = Depends(get_current_user),
    service: TestAttemptService = Depends(get_attempt_service),
):
    try:
        return build_leaderboard(service.get_graded_attempts())
    except Exception as e:
        logger.error(f"Unexpected error building leaderboard: {e}", exc_info=True)
        raise _internal_error()


@router.get("/attempts/{attempt_id}", response_model=AttemptOut)
def get_attempt(
    attempt_id: str,
    current_user: dict = Depends(get_current_user),
    service: TestAttemptService = Depends(get_attempt_service),
):
    try:
        return AttemptOut.from_domain(_owned_attempt(service, attempt_id, current_user["user_id"]))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/{test_id}/attempts-info", response_model=AttemptsInfoResponse)
def get_attempts_info(
    test_id: str,
    current_user: dict = Depends(get_current_user),
    service: TestAttemptService = Depends(get_attempt_service),
):
    try:
        return service.get_attempts_info(test_id, current_user["user_id"])
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


# --------------------------------------------------
# 1. Start / resume attempt
# --------------------------------------------------
@router.post("/{test_id}/start", response_model=AttemptOut)
def start_attempt(
    test_id: str,
    current_user: dict = Depends(get_current_user),
    service: TestAttemptService = Depends(get_attempt_service),
):
    """
    Starts a new attempt or resumes the user's open one.
    """
    user_id = current_user["user_id"]
    logger.info(f"User {user_id} starting test {test_id}")
    try:
        attempt = service.start_attempt(test_id, user_id)
        logger.info(f"Test {test_id} started by user {user_id}, attempt_id: {attempt.id}")
        return AttemptOut.from_domain(attempt)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except MaxAttemptsReachedError as e:
        logger.warning(f"User {user_id} blocked from test {test_id}: max attempts reached")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=_error_body(e))
    except ConcurrentStartConflictError as e:
        logger.warning(f"Concurrent start for user {user_id} on test {test_id}")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=_error_body(e))
    except Exception as e:
        logger.error(
            f"Unexpected error starting test {test_id} for user {user_id}: {e}", exc_info=True
        )
        raise _internal_error()


# --------------------------------------------------
# 2. Save / update an answer
# --------------------------------------------------
@router.post("/{test_id}/attempts/{attempt_id}/answer", response_model=AttemptOut)
def save_answer(
    test_id: str,
    attempt_id: str,
    answer: AnswerRequest,
    current_user: dict = Depends(get_current_user),
    service: TestAttemptService = Depends(get_attempt_service),
):
    logger.debug(f"Saving answer for attempt {attempt_id}, question {answer.question_id}")
    try:
        _owned_attempt(service, attempt_id, current_user["user_id"], test_id)
        return AttemptOut.from_domain(service.save_answer(attempt_id, answer.to_input()))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except TimeExpiredError as e:
        logger.warning(f"Answer save blocked for attempt {attempt_id}: time expired, auto-submitted")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=_error_body(e))
    except AttemptClosedError as e:
        logger.warning(f"Answer save rejected for closed attempt {attempt_id}")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=_error_body(e))
    except Exception as e:
        logger.error(f"Unexpected error saving answer for attempt {attempt_id}: {e}", exc_info=True)
        raise _internal_error()


# --------------------------------------------------
# 3. Final submission
# --------------------------------------------------
@router.post("/{test_id}/attempts/{attempt_id}/submit", response_model=AttemptOut)
def submit_attempt(
    test_id: str,
    attempt_id: str,
    current_user: dict = Depends(get_current_user),
    service: TestAttemptService = Depends(get_attempt_service),
):
    logger.info(f"Submitting attempt {attempt_id} for test {test_id}")
    try:
        _owned_attempt(service, attempt_id, current_user["user_id"], test_id)
        result = service.submit_attempt(attempt_id)
        logger.info(
            f"Attempt {attempt_id} submitted, score: {result.score:.1f}%, status: {result.status.value}"
        )
        return AttemptOut.from_domain(result)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except AlreadySubmittedError as e:
        logger.warning(f"Attempt {attempt_id} already submitted")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=_error_body(e))
    except Exception as e:
        logger.error(f"Unexpected error submitting attempt {attempt_id}: {e}", exc_info=True)
        raise _internal_error()
