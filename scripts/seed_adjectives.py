#!/usr/bin/env python3
"""
Seed script to load the default adjective vocabulary.
Safe to re-run: words that already exist are left untouched.

Usage:
    python scripts/seed_adjectives.py
"""
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import SessionLocal, ServiceSessionLocal, DATABASE_AVAILABLE, init_db
from services.adjective_service import adjective_service


DEFAULT_ADJECTIVES = [
    # warmth
    ("kind", "warmth"),
    ("caring", "warmth"),
    ("generous", "warmth"),
    ("patient", "warmth"),
    ("loyal", "warmth"),
    ("empathetic", "warmth"),
    ("supportive", "warmth"),
    ("gentle", "warmth"),
    # energy
    ("funny", "energy"),
    ("outgoing", "energy"),
    ("playful", "energy"),
    ("adventurous", "energy"),
    ("energetic", "energy"),
    ("spontaneous", "energy"),
    ("cheerful", "energy"),
    # drive
    ("ambitious", "drive"),
    ("determined", "drive"),
    ("reliable", "drive"),
    ("hardworking", "drive"),
    ("organized", "drive"),
    ("resilient", "drive"),
    ("confident", "drive"),
    ("brave", "drive"),
    # mind
    ("curious", "mind"),
    ("creative", "mind"),
    ("thoughtful", "mind"),
    ("insightful", "mind"),
    ("witty", "mind"),
    ("clever", "mind"),
    ("wise", "mind"),
    ("imaginative", "mind"),
    # character
    ("honest", "character"),
    ("humble", "character"),
    ("calm", "character"),
    ("authentic", "character"),
    ("fair", "character"),
    ("respectful", "character"),
    ("principled", "character"),
]


def main() -> int:
    if not DATABASE_AVAILABLE:
        print("[ERROR] Database not available")
        return 1

    session_factory = ServiceSessionLocal or SessionLocal
    init_db()
    db = session_factory()
    try:
        created = adjective_service.seed(db, DEFAULT_ADJECTIVES)
        print(f"[OK] {created} adjectives inserted ({len(DEFAULT_ADJECTIVES)} in vocabulary)")
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
