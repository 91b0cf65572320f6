"""
Profile creation and slug lookup
"""
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from typing import Any, Optional
import random
import re
import uuid
import logging

from models import Profile
from config import settings
from services.errors import ValidationError, ConflictError, UpstreamError, describe_db_error

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 255


def build_slug(name: str, suffix: Optional[int] = None) -> str:
    """Lower-case the name, collapse whitespace runs to '-', append '-<0..999>'."""
    if suffix is None:
        suffix = random.randint(0, 999)
    base = re.sub(r"\s+", "-", name.strip().lower())
    return f"{base}-{suffix}"


class ProfileService:
    """Service for profile creation and lookup"""

    def __init__(self):
        self.max_attempts = settings.SLUG_MAX_ATTEMPTS

    def create_profile(self, db: Session, name: Any) -> Profile:
        """
        Create a profile with a fresh shareable slug.

        Retries with a new random suffix when the slug is already taken.

        Raises:
            ValidationError: name missing, blank or too long
            ConflictError: no free slug after SLUG_MAX_ATTEMPTS tries
            UpstreamError: store failure
        """
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Name required")
        name = name.strip()
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationError(f"Name must be at most {MAX_NAME_LENGTH} characters")
        if db is None:
            raise UpstreamError("Database not available")

        for attempt in range(self.max_attempts):
            slug = build_slug(name)
            profile = Profile(id=str(uuid.uuid4()), name=name, slug=slug)
            db.add(profile)
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                if not self._slug_taken(db, slug):
                    logger.error(f"[PROFILE] Insert failed: {describe_db_error(e)}")
                    raise UpstreamError("Failed to create profile")
                logger.info(f"[PROFILE] Slug collision on {slug} (attempt {attempt + 1})")
                continue
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"[PROFILE] Insert failed: {describe_db_error(e)}")
                raise UpstreamError("Failed to create profile")

            db.refresh(profile)
            logger.info(f"[PROFILE] Created {profile.slug}")
            return profile

        raise ConflictError("Could not allocate a unique slug, try again")

    def _slug_taken(self, db: Session, slug: str) -> bool:
        return db.query(Profile.id).filter(Profile.slug == slug).first() is not None

    def get_by_slug(self, db: Session, slug: str) -> Optional[Profile]:
        return db.query(Profile).filter(Profile.slug == slug).first()

    def exists(self, db: Session, profile_id: str) -> bool:
        return db.query(Profile.id).filter(Profile.id == profile_id).first() is not None


# Singleton instance
profile_service = ProfileService()
