"""
Submission gate
Validates and records one anonymous vote of three distinct adjectives
"""
from sqlalchemy.orm import Session
from sqlalchemy import and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from typing import Any, List, Optional, Tuple
from datetime import datetime, timedelta
import uuid
import logging

from models import Submission, SubmissionAdjective
from config import settings
from services.adjective_service import adjective_service
from services.profile_service import profile_service
from services.fingerprint import compute_fingerprint
from services.errors import ValidationError, ConflictError, ThrottledError, UpstreamError, describe_db_error

logger = logging.getLogger(__name__)

ADJECTIVES_PER_SUBMISSION = 3


class SubmissionService:
    """
    Records submissions.

    A submission owns either zero link rows (in flight) or exactly three.
    If linking fails the submission row is deleted before the error is raised.
    """

    def __init__(self):
        self.throttle_seconds = settings.SUBMISSION_THROTTLE_SECONDS

    def validate_payload(self, profile_id: Any, adjective_ids: Any) -> Tuple[str, List[str]]:
        """Shape checks that never touch the store"""
        if not isinstance(profile_id, str) or not profile_id.strip():
            raise ValidationError("profileId required")

        if not isinstance(adjective_ids, list) or len(adjective_ids) != ADJECTIVES_PER_SUBMISSION:
            raise ValidationError("Pick exactly 3 adjectives")

        ids = [str(a) for a in adjective_ids]
        if len(set(ids)) != ADJECTIVES_PER_SUBMISSION:
            raise ValidationError("Adjectives must be distinct")

        return profile_id.strip(), ids

    def count_submissions(self, db: Session, profile_id: str) -> int:
        """Exact live submission count for a profile"""
        return db.query(Submission).filter(Submission.profile_id == profile_id).count()

    def is_throttled(self, db: Session, profile_id: str, fingerprint: str, now: datetime) -> bool:
        """True if the same fingerprint submitted for this profile within the sliding window"""
        window_start = now - timedelta(seconds=self.throttle_seconds)
        recent = db.query(Submission.id).filter(
            and_(
                Submission.profile_id == profile_id,
                Submission.fingerprint == fingerprint,
                Submission.created_at >= window_start,
            )
        ).first()
        return recent is not None

    def submit(
        self,
        db: Session,
        profile_id: Any,
        adjective_ids: Any,
        client_ip: str,
        user_agent: str,
        now: Optional[datetime] = None,
    ) -> str:
        """
        Validate and persist one vote.

        Returns:
            The new submission id

        Raises:
            ValidationError, ThrottledError, ConflictError, UpstreamError
        """
        profile_id, ids = self.validate_payload(profile_id, adjective_ids)

        if db is None:
            raise UpstreamError("Database not available")

        try:
            found = adjective_service.find_existing_ids(db, ids)
            if len(found) != ADJECTIVES_PER_SUBMISSION:
                raise ValidationError("One or more adjectiveIds invalid")

            if not profile_service.exists(db, profile_id):
                raise ValidationError("Unknown profileId")

            fingerprint = compute_fingerprint(client_ip, user_agent)
            now = now or datetime.utcnow()

            if self.is_throttled(db, profile_id, fingerprint, now):
                logger.info(f"[SUBMIT] Throttled profile={profile_id} fp={fingerprint[:8]}")
                raise ThrottledError("Too many submissions, try again shortly")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"[SUBMIT] Pre-insert checks failed for profile={profile_id}: {describe_db_error(e)}")
            raise UpstreamError("Failed to validate submission")

        submission_id = self._insert_submission(db, profile_id, fingerprint, now)

        try:
            self._insert_links(db, submission_id, ids)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"[SUBMIT] Link insert failed for {submission_id}: {describe_db_error(e)}")
            self._compensate(db, submission_id)
            raise UpstreamError("Failed to record adjectives")

        logger.info(f"[SUBMIT] Recorded submission {submission_id} for profile={profile_id}")
        return submission_id

    def _insert_submission(self, db: Session, profile_id: str, fingerprint: str, now: datetime) -> str:
        submission_id = str(uuid.uuid4())
        db.add(Submission(
            id=submission_id,
            profile_id=profile_id,
            fingerprint=fingerprint,
            created_at=now,
        ))
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            logger.warning(f"[SUBMIT] Duplicate submission blocked for profile={profile_id}: {describe_db_error(e)}")
            raise ConflictError("Duplicate submission blocked")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"[SUBMIT] Insert failed for profile={profile_id}: {describe_db_error(e)}")
            raise UpstreamError("Failed to create submission")
        return submission_id

    def _insert_links(self, db: Session, submission_id: str, adjective_ids: List[str]):
        db.add_all([
            SubmissionAdjective(submission_id=submission_id, adjective_id=adjective_id)
            for adjective_id in adjective_ids
        ])
        db.commit()

    def _compensate(self, db: Session, submission_id: str):
        """Delete a submission whose links failed, so none persists with a partial link set"""
        try:
            db.query(SubmissionAdjective).filter(
                SubmissionAdjective.submission_id == submission_id
            ).delete(synchronize_session=False)
            db.query(Submission).filter(Submission.id == submission_id).delete(synchronize_session=False)
            db.commit()
            logger.warning(f"[SUBMIT] Rolled back submission {submission_id} after link failure")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"[SUBMIT] Compensating delete failed for {submission_id}: {describe_db_error(e)}")


# Singleton instance
submission_service = SubmissionService()
