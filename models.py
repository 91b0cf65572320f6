"""
SQLAlchemy database models
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from database import Base


class Profile(Base):
    """Shareable profile that collects anonymous adjective votes"""
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(300), unique=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    submissions = relationship("Submission", back_populates="profile", cascade="all, delete-orphan")
    top3_cache = relationship("ProfileTop3Cache", back_populates="profile", uselist=False, cascade="all, delete-orphan")

    def to_dict(self):
        return {"id": self.id, "name": self.name, "slug": self.slug}


class Adjective(Base):
    """Static reference vocabulary"""
    __tablename__ = "adjectives"

    id = Column(String(36), primary_key=True)
    word = Column(String(100), unique=True, nullable=False)
    category = Column(String(50))  # e.g. "warmth", "drive", "mind"

    def to_dict(self):
        return {"id": self.id, "word": self.word, "category": self.category}


class Submission(Base):
    """One anonymous vote of exactly three adjectives"""
    __tablename__ = "submissions"

    id = Column(String(36), primary_key=True)
    profile_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    fingerprint = Column(String(64), nullable=False)  # sha256(ip|user-agent)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    profile = relationship("Profile", back_populates="submissions")
    adjectives = relationship("SubmissionAdjective", back_populates="submission", cascade="all, delete-orphan")

    __table_args__ = (
        Index('ix_submissions_profile_id', 'profile_id'),
        Index('ix_submissions_throttle', 'profile_id', 'fingerprint', 'created_at'),
    )


class SubmissionAdjective(Base):
    """Join row: which adjectives a submission chose (0 or 3 per submission)"""
    __tablename__ = "submission_adjectives"

    submission_id = Column(String(36), ForeignKey("submissions.id", ondelete="CASCADE"), primary_key=True)
    adjective_id = Column(String(36), ForeignKey("adjectives.id", ondelete="CASCADE"), primary_key=True)

    submission = relationship("Submission", back_populates="adjectives")

    __table_args__ = (
        Index('ix_submission_adjectives_adjective_id', 'adjective_id'),
    )


class ProfileTop3Cache(Base):
    """Cached top-3 summary, trusted only while submission_count_at_compute matches the live count"""
    __tablename__ = "profile_top3_cache"

    id = Column(Integer, primary_key=True, autoincrement=True)
    profile_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), unique=True, nullable=False)

    top3_ids = Column(JSON, nullable=False)  # ordered list of 3 adjective ids
    submission_count_at_compute = Column(Integer, nullable=False)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    profile = relationship("Profile", back_populates="top3_cache")
