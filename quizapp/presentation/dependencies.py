import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from quizapp.application.attempt_service import TestAttemptService
from quizapp.config import get_settings
from quizapp.infrastructure.db.session import SessionLocal
from quizapp.infrastructure.repositories.attempt_repo_impl import SqlAttemptStore
from quizapp.infrastructure.repositories.test_repo_impl import SqlTestCatalog

logger = logging.getLogger(__name__)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    x_user_id: Optional[str] = Header(None),
    x_user_role: str = Header("USER"),
) -> dict:
    # Identity is resolved upstream; this service only trusts the forwarded headers
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return {"user_id": x_user_id, "role": x_user_role.upper()}


def admin_required(current_user: dict = Depends(get_current_user)) -> dict:
    if current_user.get("role") != "ADMIN":
        logger.warning(
            f"Access denied for non-admin user_id: {current_user.get('user_id')}"
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrative privileges required",
        )
    logger.info(f"Admin access granted for user_id: {current_user.get('user_id')}")
    return current_user


def get_test_catalog(db: Session = Depends(get_db)) -> SqlTestCatalog:
    return SqlTestCatalog(db)


def get_attempt_service(db: Session = Depends(get_db)) -> TestAttemptService:
    settings = get_settings()
    return TestAttemptService(
        tests=SqlTestCatalog(db),
        attempts=SqlAttemptStore(db),
        default_max_attempts=settings.default_max_attempts,
        submit_grace_seconds=settings.submit_grace_seconds,
    )
