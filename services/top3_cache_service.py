"""
Top-3 cache service
Recomputes the oracle summary only when the live submission count moved
"""
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from typing import Any, Dict, List, Optional, Set, Tuple
from datetime import datetime
import asyncio
import json
import logging

from models import Profile, Adjective, ProfileTop3Cache
from config import settings
from services.adjective_service import adjective_service
from services.histogram_service import histogram_service
from services.oracle_service import SummarizerOracle, openai_summarizer
from services.profile_service import profile_service
from services.submission_service import submission_service
from services.errors import ValidationError, NotFoundError, UpstreamError, ConfigurationError, describe_db_error

logger = logging.getLogger(__name__)

TOP_N = 3


class Top3CacheService:
    """
    Service for the cached per-profile top-3 summary.

    The cache row is keyed by profile and versioned by the submission count it
    was computed against. Any new submission advances the live count, so the
    row is stale from then on even if the true top-3 did not change.

    Oracle output is never trusted: it must name exactly 3 distinct ids from
    the candidate set, otherwise the top 3 candidates by count are used.
    """

    def __init__(self, oracle: Optional[SummarizerOracle] = None):
        self.oracle = oracle or openai_summarizer
        self.candidate_limit = settings.TOP3_CANDIDATE_LIMIT
        self.single_flight = settings.TOP3_SINGLE_FLIGHT
        self._inflight: Dict[Tuple[str, int], asyncio.Future] = {}

    @staticmethod
    def is_cache_valid(cache: Optional[ProfileTop3Cache], total_submissions: int) -> bool:
        return cache is not None and cache.submission_count_at_compute == total_submissions

    def build_candidates(self, histogram: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Map histogram rows to candidates ordered by count desc, word asc, id asc,
        truncated to TOP3_CANDIDATE_LIMIT.
        """
        candidates = [
            {
                "id": str(row["adjective_id"]),
                "word": str(row["word"]),
                "category": row.get("category"),
                "count": int(row["count"]),
            }
            for row in histogram
        ]
        candidates.sort(key=lambda c: (-c["count"], c["word"], c["id"]))
        return candidates[:self.candidate_limit]

    @staticmethod
    def fallback_top3(candidates: List[Dict[str, Any]]) -> List[str]:
        """Deterministic selection: first 3 candidates in build_candidates order"""
        return [c["id"] for c in candidates[:TOP_N]]

    @staticmethod
    def sanitize_selection(content: Any, candidate_ids: Set[str]) -> Tuple[Optional[List[str]], List[str]]:
        """
        Validate raw oracle output.

        Returns:
            (ids, errors); ids is None when the output cannot be used
        """
        errors = []

        if isinstance(content, (bytes, str)):
            try:
                payload = json.loads(content)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                return None, [f"JSON parse error: {e}"]
        else:
            payload = content

        if not isinstance(payload, dict) or "selected" not in payload:
            return None, ["Missing 'selected' field"]

        selected = payload["selected"]
        if not isinstance(selected, list):
            return None, ["'selected' must be an array"]

        ids: List[str] = []
        for item in selected:
            if not isinstance(item, (str, int)) or isinstance(item, bool):
                errors.append(f"Non-scalar id {item!r}")
                continue
            value = str(item)
            if value not in candidate_ids:
                errors.append(f"Id '{value}' not in candidate set")
            elif value not in ids:
                ids.append(value)

        if errors:
            return None, errors
        if len(ids) != TOP_N:
            return None, [f"Expected {TOP_N} unique ids, got {len(ids)}"]
        return ids, []

    async def get_top3(self, db: Session, service_db: Optional[Session], slug: str) -> Dict[str, Any]:
        """
        Resolve a profile's top-3 adjectives.

        Returns:
            {profile, totalSubmissions, top3, cached}

        Raises:
            ValidationError: missing slug
            NotFoundError: unknown slug
            ConfigurationError: cache miss with data but no privileged session
            UpstreamError: store unavailable
        """
        if not slug or not slug.strip():
            raise ValidationError("Missing slug")
        if db is None:
            raise UpstreamError("Database not available")

        profile = profile_service.get_by_slug(db, slug.strip())
        if not profile:
            raise NotFoundError("Profile not found")

        total = submission_service.count_submissions(db, profile.id)
        # populate_existing: the row may have been rewritten through the service session
        cache = (
            db.query(ProfileTop3Cache)
            .populate_existing()
            .filter(ProfileTop3Cache.profile_id == profile.id)
            .first()
        )

        if self.is_cache_valid(cache, total):
            logger.info(f"[TOP3] Cache hit profile={profile.slug} n={total}")
            top3 = adjective_service.get_by_ids(db, list(cache.top3_ids or []))
            return self._build_result(profile, total, top3, cached=True)

        if total == 0:
            return self._build_result(profile, total, [], cached=False)

        if service_db is None:
            raise ConfigurationError("DATABASE_SERVICE_URL is required to write the top-3 cache")

        logger.info(f"[TOP3] Cache miss profile={profile.slug} n={total} "
                    f"cached_n={cache.submission_count_at_compute if cache else None}")

        top3_ids = await self._compute_shared(db, service_db, profile.id, total)
        top3 = adjective_service.get_by_ids(db, top3_ids)
        return self._build_result(profile, total, top3, cached=False)

    async def _compute_shared(self, db: Session, service_db: Session, profile_id: str, total: int) -> List[str]:
        """Let concurrent misses for the same (profile, count) in this process await one computation"""
        if not self.single_flight:
            return await self._compute(db, service_db, profile_id, total)

        key = (profile_id, total)
        pending = self._inflight.get(key)
        if pending is not None:
            logger.info(f"[TOP3] Joining in-flight computation profile={profile_id} n={total}")
            return list(await asyncio.shield(pending))

        future = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            top3_ids = await self._compute(db, service_db, profile_id, total)
            future.set_result(top3_ids)
            return top3_ids
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # consumed here; there may be no waiter to read it
            future.exception()
            raise
        finally:
            self._inflight.pop(key, None)

    async def _compute(self, db: Session, service_db: Session, profile_id: str, total: int) -> List[str]:
        histogram = histogram_service.get_profile_histogram(db, profile_id)
        candidates = self.build_candidates(histogram)

        if not candidates:
            logger.warning(f"[TOP3] Empty histogram with {total} submissions for profile={profile_id}")
            return []

        top3_ids = await self._select(candidates, total)
        if len(top3_ids) == TOP_N:
            self._write_cache(service_db, profile_id, top3_ids, total)
        else:
            # cache rows always hold exactly TOP_N ids
            logger.info(f"[TOP3] Only {len(top3_ids)} candidates for profile={profile_id}, not caching")
        return top3_ids

    async def _select(self, candidates: List[Dict[str, Any]], total: int) -> List[str]:
        fallback = self.fallback_top3(candidates)
        if len(candidates) < TOP_N:
            return fallback

        try:
            content = await self.oracle.select_top3(candidates, total)
        except Exception as e:
            logger.warning(f"[TOP3] Oracle failed, using fallback: {e}")
            return fallback

        selected, errors = self.sanitize_selection(content, {c["id"] for c in candidates})
        if selected is None:
            logger.warning(f"[TOP3] Oracle output rejected, using fallback: {'; '.join(errors)}")
            return fallback
        return selected

    def _write_cache(self, service_db: Session, profile_id: str, top3_ids: List[str], total: int):
        """Upsert by profile id; last writer wins"""
        for attempt in range(2):
            try:
                existing = service_db.query(ProfileTop3Cache).filter(
                    ProfileTop3Cache.profile_id == profile_id
                ).first()

                if existing:
                    existing.top3_ids = list(top3_ids)
                    existing.submission_count_at_compute = total
                    existing.updated_at = datetime.utcnow()
                else:
                    service_db.add(ProfileTop3Cache(
                        profile_id=profile_id,
                        top3_ids=list(top3_ids),
                        submission_count_at_compute=total,
                        updated_at=datetime.utcnow(),
                    ))

                service_db.commit()
                return

            except IntegrityError as e:
                service_db.rollback()
                if attempt == 1:
                    logger.error(f"[TOP3] Cache write failed for profile={profile_id}: {describe_db_error(e)}")
                    raise UpstreamError("Failed to write top-3 cache")
                logger.info(f"[TOP3] Concurrent cache insert for profile={profile_id}, overwriting")

            except SQLAlchemyError as e:
                service_db.rollback()
                logger.error(f"[TOP3] Cache write failed for profile={profile_id}: {describe_db_error(e)}")
                raise UpstreamError("Failed to write top-3 cache")

    @staticmethod
    def _build_result(profile: Profile, total: int, top3: List[Adjective], cached: bool) -> Dict[str, Any]:
        return {
            "profile": profile.to_dict(),
            "totalSubmissions": total,
            "top3": [a.to_dict() for a in top3],
            "cached": cached,
        }


# Singleton instance
top3_cache_service = Top3CacheService()
