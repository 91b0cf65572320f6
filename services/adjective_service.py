"""
Adjective vocabulary access (read-only to the voting flow)
"""
from sqlalchemy.orm import Session
from typing import Iterable, List, Dict, Set, Tuple
import uuid
import logging

from models import Adjective

logger = logging.getLogger(__name__)


class AdjectiveService:
    """Lookups over the static adjective vocabulary"""

    def list_adjectives(self, db: Session) -> List[Adjective]:
        """All adjectives ordered by word ascending"""
        return db.query(Adjective).order_by(Adjective.word.asc()).all()

    def find_existing_ids(self, db: Session, adjective_ids: Iterable[str]) -> Set[str]:
        ids = list(adjective_ids)
        if not ids:
            return set()
        rows = db.query(Adjective.id).filter(Adjective.id.in_(ids)).all()
        return {row.id for row in rows}

    def get_by_ids(self, db: Session, adjective_ids: List[str]) -> List[Adjective]:
        """
        Resolve ids to Adjective rows in the order of the input ids.
        Unknown ids are dropped.
        """
        if not adjective_ids:
            return []
        rows = db.query(Adjective).filter(Adjective.id.in_(list(adjective_ids))).all()
        by_id: Dict[str, Adjective] = {row.id: row for row in rows}
        return [by_id[i] for i in adjective_ids if i in by_id]

    def seed(self, db: Session, entries: Iterable[Tuple[str, str]]) -> int:
        """
        Insert (word, category) pairs whose word is not present yet.

        Returns:
            Number of adjectives inserted
        """
        existing = {word for (word,) in db.query(Adjective.word).all()}
        created = 0
        for word, category in entries:
            word = word.strip().lower()
            if not word or word in existing:
                continue
            db.add(Adjective(id=str(uuid.uuid4()), word=word, category=category))
            existing.add(word)
            created += 1
        db.commit()
        logger.info(f"[SEED] Inserted {created} adjectives")
        return created


# Singleton instance
adjective_service = AdjectiveService()
