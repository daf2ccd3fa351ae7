"""
One-shot job that grades every attempt whose time ran out without being touched again.

Run it from a scheduler (cron, a k8s CronJob, ...):

    python -m quizapp.application.expire_attempts
"""

import logging
import sys

from quizapp.application.attempt_service import TestAttemptService
from quizapp.config import get_settings
from quizapp.infrastructure.db.session import SessionLocal
from quizapp.infrastructure.repositories.attempt_repo_impl import SqlAttemptStore
from quizapp.infrastructure.repositories.test_repo_impl import SqlTestCatalog

logger = logging.getLogger(__name__)


def run_expiry(db) -> int:
    settings = get_settings()
    service = TestAttemptService(
        tests=SqlTestCatalog(db),
        attempts=SqlAttemptStore(db),
        default_max_attempts=settings.default_max_attempts,
        submit_grace_seconds=settings.submit_grace_seconds,
    )
    expired = service.expire_overdue_attempts()
    for attempt in expired:
        logger.info(f"Auto-graded attempt {attempt.id} for user {attempt.user_id}: {attempt.score:.1f}%")
    return len(expired)


def main() -> int:
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    db = SessionLocal()
    try:
        run_expiry(db)
        return 0
    except Exception as e:
        logger.error(f"Expiry job failed: {e}", exc_info=True)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
