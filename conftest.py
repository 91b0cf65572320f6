"""
Shared pytest fixtures: in-memory SQLite store, seeded vocabulary, stub oracles
"""
import os

# Must be set before config/database are imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DATABASE_SERVICE_URL"] = "sqlite://"
os.environ["OPENAI_API_KEY"] = ""
os.environ["DEBUG"] = "false"

import asyncio
from typing import Any, Dict, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base
from models import Adjective, Profile, Submission, SubmissionAdjective
from services.errors import OracleError
from services.oracle_service import SummarizerOracle


ADJECTIVES = [
    ("adj-brave", "brave", "drive"),
    ("adj-calm", "calm", "character"),
    ("adj-curious", "curious", "mind"),
    ("adj-funny", "funny", "energy"),
    ("adj-kind", "kind", "warmth"),
    ("adj-loyal", "loyal", "warmth"),
]


class StubOracle(SummarizerOracle):
    """Returns queued responses; an Exception instance in the queue is raised instead"""

    def __init__(self, responses: Optional[List[Any]] = None, delay: float = 0.0):
        self.responses = list(responses or [])
        self.delay = delay
        self.calls: List[Dict[str, Any]] = []

    async def select_top3(self, candidates, total_submissions):
        self.calls.append({"candidates": candidates, "total": total_submissions})
        if self.delay:
            await asyncio.sleep(self.delay)
        response = self.responses.pop(0) if self.responses else OracleError("no response queued")
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def service_db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def adjectives(db):
    rows = [Adjective(id=adj_id, word=word, category=category) for adj_id, word, category in ADJECTIVES]
    db.add_all(rows)
    db.commit()
    return {row.word: row.id for row in rows}


@pytest.fixture
def profile(db):
    row = Profile(id="profile-1", name="Ada Lovelace", slug="ada-lovelace-42")
    db.add(row)
    db.commit()
    return row


@pytest.fixture
def add_vote(db):
    """Insert a fully linked submission directly, bypassing the gate"""
    counter = {"n": 0}

    def _add_vote(profile_id: str, adjective_ids: List[str], fingerprint: Optional[str] = None) -> str:
        counter["n"] += 1
        submission_id = f"sub-{counter['n']}"
        db.add(Submission(id=submission_id, profile_id=profile_id, fingerprint=fingerprint or submission_id))
        db.add_all([SubmissionAdjective(submission_id=submission_id, adjective_id=a) for a in adjective_ids])
        db.commit()
        return submission_id

    return _add_vote
