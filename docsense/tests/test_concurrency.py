"""Racing callers against a shared file-backed database, one session per thread."""
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from fastapi import HTTPException
from sqlalchemy.orm import sessionmaker

from conftest import make_admin, make_document, make_user
from docsense.db.init_db import seed_roles
from docsense.models import DownloadRequest, DownloadStatus
from docsense.services import download_request_service as ledger
from docsense.services import download_token_service as tokens

WORKERS = 6


@pytest.fixture()
def sessions(file_engine):
    factory = sessionmaker(bind=file_engine, autoflush=False, autocommit=False, expire_on_commit=False)
    db = factory()
    seed_roles(db)
    db.close()
    return factory


def race(sessions, fn, workers=WORKERS):
    barrier = threading.Barrier(workers)

    def attempt(_):
        db = sessions()
        try:
            barrier.wait()
            return "ok", fn(db)
        except HTTPException as exc:
            return "error", exc
        finally:
            db.close()

    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(attempt, range(workers)))


def seed(sessions, upload_dir):
    db = sessions()
    try:
        owner = make_user(db, "owner")
        requester = make_user(db, "reader")
        admin = make_admin(db)
        document = make_document(db, owner, upload_dir)
        return document.id, requester.id, admin
    finally:
        db.close()


def test_concurrent_create_yields_one_request(sessions, upload_dir):
    document_id, requester_id, _ = seed(sessions, upload_dir)

    results = race(sessions, lambda db: ledger.create_request(db, document_id, requester_id, "audit").id)

    successes = [value for outcome, value in results if outcome == "ok"]
    failures = [value for outcome, value in results if outcome == "error"]
    assert len(successes) == 1
    assert all(exc.status_code == 409 for exc in failures)

    db = sessions()
    try:
        active = (
            db.query(DownloadRequest)
            .filter(DownloadRequest.document_id == document_id, DownloadRequest.requester_id == requester_id)
            .all()
        )
        assert [r.id for r in active] == successes
    finally:
        db.close()


def test_concurrent_decisions_have_one_winner(sessions, upload_dir):
    document_id, requester_id, admin = seed(sessions, upload_dir)
    db = sessions()
    request_id = ledger.create_request(db, document_id, requester_id, "audit").id
    db.close()

    def decide(db):
        return ledger.decide(db, request_id, admin, "approve", max_downloads=2).status

    results = race(sessions, decide)
    assert sum(1 for outcome, _ in results if outcome == "ok") == 1
    assert all(exc.code == "invalid_state" for outcome, exc in results if outcome == "error")


@pytest.mark.parametrize("max_downloads", [1, 3])
def test_concurrent_downloads_never_overconsume(sessions, upload_dir, max_downloads):
    document_id, requester_id, admin = seed(sessions, upload_dir)
    db = sessions()
    request_id = ledger.create_request(db, document_id, requester_id, "audit").id
    token = ledger.decide(db, request_id, admin, "approve", max_downloads=max_downloads).download_token
    db.close()

    results = race(sessions, lambda db: tokens.validate_and_consume(db, token)[0].download_count)

    successes = sorted(value for outcome, value in results if outcome == "ok")
    assert successes == list(range(1, max_downloads + 1))
    assert all(exc.code == "limit_exceeded" for outcome, exc in results if outcome == "error")

    db = sessions()
    try:
        stored = ledger.get_request(db, request_id)
        assert stored.download_count == max_downloads
        assert stored.status == DownloadStatus.EXPIRED
    finally:
        db.close()
