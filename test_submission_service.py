"""
Tests for the submission gate: validation order, throttle window, compensation
"""
import hashlib
import logging
from datetime import datetime, timedelta

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from starlette.requests import Request

from models import Submission, SubmissionAdjective
from database import _build_engine
from services.errors import ConflictError, ThrottledError, UpstreamError, ValidationError
from services.fingerprint import compute_fingerprint, get_client_ip, get_user_agent
from services.submission_service import SubmissionService, submission_service


def make_request(headers=None, client=("10.0.0.1", 5555)):
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/api/submit",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


class TestFingerprint:

    def test_fingerprint_is_sha256_of_ip_and_agent(self):
        expected = hashlib.sha256(b"1.2.3.4|Mozilla/5.0").hexdigest()
        assert compute_fingerprint("1.2.3.4", "Mozilla/5.0") == expected

    def test_forwarded_for_wins(self):
        request = make_request({"X-Forwarded-For": "1.2.3.4, 5.6.7.8", "X-Real-IP": "9.9.9.9"})
        assert get_client_ip(request) == "1.2.3.4"

    def test_real_ip_then_peer(self):
        assert get_client_ip(make_request({"X-Real-IP": " 9.9.9.9 "})) == "9.9.9.9"
        assert get_client_ip(make_request()) == "10.0.0.1"
        assert get_client_ip(make_request(client=None)) == "unknown"

    def test_user_agent_default(self):
        assert get_user_agent(make_request()) == "unknown"
        assert get_user_agent(make_request({"User-Agent": "curl/8"})) == "curl/8"


class TestValidation:
    """Shape checks run before any store access (db=None would fail otherwise)"""

    @pytest.mark.parametrize("profile_id", [None, "", "   ", 42])
    def test_profile_id_required(self, profile_id):
        with pytest.raises(ValidationError, match="profileId"):
            submission_service.submit(None, profile_id, ["a", "b", "c"], "ip", "ua")

    @pytest.mark.parametrize("adjective_ids", [None, "abc", [], ["a", "b"], ["a", "b", "c", "d"]])
    def test_exactly_three(self, adjective_ids):
        with pytest.raises(ValidationError, match="exactly 3"):
            submission_service.submit(None, "profile-1", adjective_ids, "ip", "ua")

    def test_distinct_ids(self):
        with pytest.raises(ValidationError, match="distinct"):
            submission_service.submit(None, "profile-1", ["a", "a", "b"], "ip", "ua")

    def test_distinct_after_stringification(self):
        with pytest.raises(ValidationError, match="distinct"):
            submission_service.submit(None, "profile-1", [1, "1", 2], "ip", "ua")


class TestSubmit:

    def test_records_submission_with_three_links(self, db, profile, adjectives):
        ids = [adjectives["kind"], adjectives["brave"], adjectives["calm"]]

        submission_id = submission_service.submit(db, profile.id, ids, "1.2.3.4", "ua")

        submission = db.query(Submission).filter(Submission.id == submission_id).one()
        assert submission.profile_id == profile.id
        assert submission.fingerprint == compute_fingerprint("1.2.3.4", "ua")
        links = db.query(SubmissionAdjective).filter(SubmissionAdjective.submission_id == submission_id).all()
        assert sorted(link.adjective_id for link in links) == sorted(ids)
        assert submission_service.count_submissions(db, profile.id) == 1

    def test_unknown_adjective(self, db, profile, adjectives):
        with pytest.raises(ValidationError, match="invalid"):
            submission_service.submit(db, profile.id, [adjectives["kind"], adjectives["brave"], "nope"], "ip", "ua")
        assert db.query(Submission).count() == 0

    def test_unknown_profile(self, db, adjectives):
        ids = [adjectives["kind"], adjectives["brave"], adjectives["calm"]]
        with pytest.raises(ValidationError, match="profileId"):
            submission_service.submit(db, "missing-profile", ids, "ip", "ua")

    def test_missing_store(self):
        with pytest.raises(UpstreamError):
            submission_service.submit(None, "profile-1", ["a", "b", "c"], "ip", "ua")


class TestThrottle:

    def test_same_fingerprint_within_window_is_throttled(self, db, profile, adjectives):
        ids = [adjectives["kind"], adjectives["brave"], adjectives["calm"]]
        start = datetime(2026, 1, 1, 12, 0, 0)
        submission_service.submit(db, profile.id, ids, "1.2.3.4", "ua", now=start)

        with pytest.raises(ThrottledError):
            submission_service.submit(db, profile.id, ids, "1.2.3.4", "ua", now=start + timedelta(seconds=10))
        with pytest.raises(ThrottledError):
            submission_service.submit(db, profile.id, ids, "1.2.3.4", "ua", now=start + timedelta(seconds=30))

        assert submission_service.count_submissions(db, profile.id) == 1

    def test_window_slides(self, db, profile, adjectives):
        ids = [adjectives["kind"], adjectives["brave"], adjectives["calm"]]
        start = datetime(2026, 1, 1, 12, 0, 0)
        submission_service.submit(db, profile.id, ids, "1.2.3.4", "ua", now=start)

        submission_service.submit(db, profile.id, ids, "1.2.3.4", "ua", now=start + timedelta(seconds=31))

        assert submission_service.count_submissions(db, profile.id) == 2

    def test_other_fingerprint_is_not_throttled(self, db, profile, adjectives):
        ids = [adjectives["kind"], adjectives["brave"], adjectives["calm"]]
        now = datetime(2026, 1, 1, 12, 0, 0)
        submission_service.submit(db, profile.id, ids, "1.2.3.4", "ua", now=now)
        submission_service.submit(db, profile.id, ids, "1.2.3.4", "other-agent", now=now)
        submission_service.submit(db, profile.id, ids, "5.6.7.8", "ua", now=now)

        assert submission_service.count_submissions(db, profile.id) == 3


class TestCompensation:

    def test_link_failure_removes_submission(self, db, profile, adjectives, monkeypatch):
        def fail_links(self, db, submission_id, adjective_ids):
            raise SQLAlchemyError("link insert failed")

        monkeypatch.setattr(SubmissionService, "_insert_links", fail_links)
        ids = [adjectives["kind"], adjectives["brave"], adjectives["calm"]]

        with pytest.raises(UpstreamError, match="Failed to record adjectives"):
            submission_service.submit(db, profile.id, ids, "1.2.3.4", "ua")

        assert submission_service.count_submissions(db, profile.id) == 0
        assert db.query(SubmissionAdjective).count() == 0

    def test_failed_vote_does_not_consume_throttle(self, db, profile, adjectives, monkeypatch):
        ids = [adjectives["kind"], adjectives["brave"], adjectives["calm"]]
        original = SubmissionService._insert_links

        def fail_links(self, db, submission_id, adjective_ids):
            raise SQLAlchemyError("link insert failed")

        monkeypatch.setattr(SubmissionService, "_insert_links", fail_links)
        with pytest.raises(UpstreamError):
            submission_service.submit(db, profile.id, ids, "1.2.3.4", "ua")

        monkeypatch.setattr(SubmissionService, "_insert_links", original)
        submission_service.submit(db, profile.id, ids, "1.2.3.4", "ua")

        assert submission_service.count_submissions(db, profile.id) == 1


class TestStoreErrors:

    def test_duplicate_insert_is_a_conflict(self, db, profile, adjectives, caplog):
        caplog.set_level(logging.INFO)
        db.execute(text("CREATE UNIQUE INDEX ux_submissions_profile_fp ON submissions (profile_id, fingerprint)"))
        db.commit()
        ids = [adjectives["kind"], adjectives["brave"], adjectives["calm"]]
        start = datetime(2026, 1, 1, 12, 0, 0)
        submission_service.submit(db, profile.id, ids, "1.2.3.4", "ua", now=start)

        with pytest.raises(ConflictError) as exc_info:
            submission_service.submit(db, profile.id, ids, "1.2.3.4", "ua", now=start + timedelta(seconds=60))

        fingerprint = compute_fingerprint("1.2.3.4", "ua")
        assert fingerprint not in exc_info.value.message
        assert fingerprint not in caplog.text
        assert "IntegrityError" in caplog.text
        assert submission_service.count_submissions(db, profile.id) == 1

    def test_read_failure_hides_bound_parameters(self, db, profile, adjectives, monkeypatch, caplog):
        caplog.set_level(logging.INFO)

        def broken_throttle(self, db, profile_id, fingerprint, now):
            raise OperationalError(
                "SELECT submissions.id FROM submissions WHERE profile_id = ? AND fingerprint = ?",
                (profile_id, fingerprint),
                Exception("database is locked"),
            )

        monkeypatch.setattr(SubmissionService, "is_throttled", broken_throttle)
        ids = [adjectives["kind"], adjectives["brave"], adjectives["calm"]]

        with pytest.raises(UpstreamError) as exc_info:
            submission_service.submit(db, profile.id, ids, "1.2.3.4", "ua")

        fingerprint = compute_fingerprint("1.2.3.4", "ua")
        assert fingerprint not in exc_info.value.message
        assert fingerprint not in caplog.text
        assert submission_service.count_submissions(db, profile.id) == 0

    def test_engines_hide_parameters(self):
        engine = _build_engine("sqlite://")
        try:
            assert engine.hide_parameters is True
        finally:
            engine.dispose()
