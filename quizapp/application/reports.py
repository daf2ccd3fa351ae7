"""
Aggregate views over attempts: the per-test admin report and the leaderboard.
"""

from typing import Dict, List
import logging

import pandas as pd

from quizapp.domain.models import Attempt, TestDefinition

logger = logging.getLogger(__name__)

_COLUMNS = ["user_id", "test_id", "score", "earned_points"]


def _attempts_frame(attempts: List[Attempt]) -> pd.DataFrame:
    frame = pd.DataFrame.from_records(
        [
            {
                "user_id": a.user_id,
                "test_id": a.test_id,
                "score": a.score,
                "earned_points": a.earned_points,
            }
            for a in attempts
        ],
        columns=_COLUMNS,
    )
    frame["score"] = pd.to_numeric(frame["score"], errors="coerce")
    frame["earned_points"] = pd.to_numeric(frame["earned_points"], errors="coerce")
    return frame


def build_test_report(test: TestDefinition, attempts: List[Attempt]) -> Dict:
    """
    Summarise every attempt at `test`.

    Average score only covers attempts that have been graded; pass rate is
    taken over all attempts, so open attempts count as not passed.
    """
    report = {"test_id": test.id, "title": test.title, "total_attempts": len(attempts)}
    if not attempts:
        return report

    scores = _attempts_frame(attempts)["score"].dropna()
    passed = int((scores >= test.passing_score).sum())

    report["average_score"] = float(scores.mean()) if not scores.empty else 0.0
    report["passed_count"] = passed
    report["pass_rate"] = passed / len(attempts) * 100
    logger.info(
        f"Report for test {test.id}: {len(attempts)} attempts, {passed} passed"
    )
    return report


def build_leaderboard(attempts: List[Attempt]) -> List[Dict]:
    """
    Rank users by total earned points, then by average score.
    """
    frame = _attempts_frame(attempts)
    if frame.empty:
        return []

    grouped = frame.groupby("user_id")
    table = pd.DataFrame(
        {
            "avg_score": grouped["score"].mean().fillna(0.0).round(1),
            "best_score": grouped["score"].max().fillna(0.0).round(1),
            "tests_completed": grouped["test_id"].nunique(),
            "total_points": grouped["earned_points"].sum().astype(int),
            "attempts_count": grouped.size(),
        }
    )
    table = table.sort_values(
        ["total_points", "avg_score"], ascending=[False, False], kind="mergesort"
    ).reset_index()

    return [
        {
            "user_id": str(row.user_id),
            "avg_score": float(row.avg_score),
            "best_score": float(row.best_score),
            "tests_completed": int(row.tests_completed),
            "total_points": int(row.total_points),
            "attempts_count": int(row.attempts_count),
        }
        for row in table.itertuples(index=False)
    ]
