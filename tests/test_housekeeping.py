"""Housekeeping job tests."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from app.jobs import housekeeping
from app.jobs.scheduler import JOBS, register_jobs, scheduler
from app.services.auth_service import AuthService
from app.utils.time import now_utc, to_iso


@pytest.fixture
def service_db(db, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(housekeeping, "get_service_client", lambda: db)
    return db


def test_purge_expired_sessions_job(service_db) -> None:
    past = to_iso(now_utc() - timedelta(minutes=1))
    future = to_iso(now_utc() + timedelta(hours=1))
    service_db.rows("sessions").extend(
        [
            {"id": "old", "user_id": "u", "data": {}, "expires_at": past},
            {"id": "live", "user_id": "u", "data": {}, "expires_at": future},
        ]
    )

    asyncio.run(housekeeping.purge_expired_sessions())
    assert [row["id"] for row in service_db.rows("sessions")] == ["live"]


def test_purge_expired_reset_tokens_job(service_db) -> None:
    stale = service_db.add_user(
        reset_token_hash="a" * 64,
        reset_token_expires_at=to_iso(now_utc() - timedelta(minutes=1)),
    )
    live = service_db.add_user(
        reset_token_hash="b" * 64,
        reset_token_expires_at=to_iso(now_utc() + timedelta(minutes=30)),
    )

    asyncio.run(housekeeping.purge_expired_reset_tokens())
    assert service_db.user(stale["id"])["reset_token_hash"] is None
    assert service_db.user(stale["id"])["reset_token_expires_at"] is None
    assert service_db.user(live["id"])["reset_token_hash"] == "b" * 64


def test_purge_reset_tokens_counts_cleared_rows(db) -> None:
    db.add_user(
        reset_token_hash="c" * 64,
        reset_token_expires_at=to_iso(now_utc() - timedelta(seconds=5)),
    )
    assert AuthService(db).purge_expired_reset_tokens() == 1
    assert AuthService(db).purge_expired_reset_tokens() == 0


def test_register_jobs_is_idempotent() -> None:
    try:
        register_jobs()
        register_jobs()
        assert sorted(job.id for job in scheduler.get_jobs()) == sorted(JOBS)
    finally:
        scheduler.remove_all_jobs()
