"""
Histogram aggregation service
Server-side count of how many submissions chose each adjective for a profile
"""
from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import List, Dict, Any
import logging

from models import Adjective, Submission, SubmissionAdjective

logger = logging.getLogger(__name__)


class HistogramService:
    """
    Aggregates SubmissionAdjective rows per adjective.

    No ordering is promised to callers; the top-3 cache imposes its own.
    """

    def get_profile_histogram(self, db: Session, profile_id: str) -> List[Dict[str, Any]]:
        """
        Returns one row per adjective chosen in at least one submission:
        {adjective_id, word, category, count}
        """
        rows = (
            db.query(
                Adjective.id.label("adjective_id"),
                Adjective.word,
                Adjective.category,
                func.count(SubmissionAdjective.submission_id).label("count"),
            )
            .join(SubmissionAdjective, SubmissionAdjective.adjective_id == Adjective.id)
            .join(Submission, Submission.id == SubmissionAdjective.submission_id)
            .filter(Submission.profile_id == profile_id)
            .group_by(Adjective.id, Adjective.word, Adjective.category)
            .all()
        )

        return [
            {
                "adjective_id": row.adjective_id,
                "word": row.word,
                "category": row.category,
                "count": int(row.count),
            }
            for row in rows
        ]


# Singleton instance
histogram_service = HistogramService()
