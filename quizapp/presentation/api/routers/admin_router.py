import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from quizapp.application.attempt_service import TestAttemptService
from quizapp.application.reports import build_test_report
from quizapp.domain.errors import NotFoundError
from quizapp.infrastructure.repositories.test_repo_impl import SqlTestCatalog
from quizapp.presentation.dependencies import admin_required, get_attempt_service, get_test_catalog
from quizapp.presentation.schemas.attempt_schema import AttemptOut
from quizapp.presentation.schemas.test_schema import TestCreate, TestOut, TestReportOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin (Tests)"])


@router.post("/tests", response_model=TestOut, status_code=status.HTTP_201_CREATED)
def add_test(
    data: TestCreate,
    catalog: SqlTestCatalog = Depends(get_test_catalog),
    admin: dict = Depends(admin_required),
):
    try:
        logger.info(f"Admin {admin['user_id']} is creating a test: {data.title}")
        return TestOut.from_domain(catalog.create_test(data, admin["user_id"]))
    except ValueError as e:
        logger.warning(f"Validation error during test creation by admin {admin['user_id']}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error during test creation by admin {admin['user_id']}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.put("/tests/{test_id}", response_model=TestOut)
def edit_test(
    test_id: str,
    data: TestCreate,
    catalog: SqlTestCatalog = Depends(get_test_catalog),
    admin: dict = Depends(admin_required),
):
    try:
        logger.info(f"Admin {admin['user_id']} is updating test {test_id}")
        return TestOut.from_domain(catalog.update_test(test_id, data))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        logger.warning(f"Validation error updating test {test_id}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error updating test {test_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.get("/tests", response_model=List[TestOut])
def list_tests(
    catalog: SqlTestCatalog = Depends(get_test_catalog),
    admin: dict = Depends(admin_required),
):
    return [TestOut.from_domain(t) for t in catalog.list_tests()]


@router.get("/tests/{test_id}/attempts", response_model=List[AttemptOut])
def list_test_attempts(
    test_id: str,
    service: TestAttemptService = Depends(get_attempt_service),
    admin: dict = Depends(admin_required),
):
    return [AttemptOut.from_domain(a) for a in service.get_test_attempts(test_id)]


@router.get("/reports/tests/{test_id}", response_model=TestReportOut)
def get_test_report(
    test_id: str,
    catalog: SqlTestCatalog = Depends(get_test_catalog),
    service: TestAttemptService = Depends(get_attempt_service),
    admin: dict = Depends(admin_required),
):
    try:
        test = catalog.get_test_by_id(test_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return build_test_report(test, service.get_test_attempts(test_id))
