from typing import Any

import psycopg
import pytest

from app.database.connection import get_connection
from app.database.models import JobRecord, ReceiptRecord
from app.database.repositories.job_repository import JobRepository


def _job_row(job_id: str) -> tuple[Any, ...]:
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(
                "SELECT status, attempts_made, error_message, locked_at FROM receipt_jobs WHERE id = %s",
                (job_id,),
            )
            row = cur.fetchone()
    assert row is not None
    return row


@pytest.mark.integration
class TestJobRepositoryEnqueue:
    def test_enqueue_is_idempotent(self, seed_job: JobRecord, seed_receipt: ReceiptRecord) -> None:
        again = JobRepository().enqueue(
            job_id=seed_job.id,
            receipt_id=seed_receipt.id,
            document_type="RECEIPT_IMAGE",
            payload={"storage_key": "other"},
            priority=5,
            max_attempts=9,
            timeout_ms=1,
        )

        assert again.id == seed_job.id
        assert again.max_attempts == 3
        assert again.payload["storage_key"] == seed_receipt.storage_key


@pytest.mark.integration
class TestJobRepositoryClaimNextJob:
    def test_claim_marks_job_active(
        self, seed_job: JobRecord, db_conn: psycopg.Connection[Any]
    ) -> None:
        job = JobRepository().claim_next_job(db_conn)

        assert job is not None
        assert job.id == seed_job.id
        assert job.status == "active"
        status, _attempts, _error, locked_at = _job_row(seed_job.id)
        assert status == "active"
        assert locked_at is not None
        assert job.locked_at == locked_at

    def test_delayed_job_is_not_due(
        self, seed_job: JobRecord, db_conn: psycopg.Connection[Any]
    ) -> None:
        repo = JobRepository()
        job = repo.claim_next_job(db_conn)
        assert job is not None
        assert repo.schedule_retry(job.id, "OCR failed: blurry", 3600, job.locked_at)

        assert repo.claim_next_job(db_conn) is None
        status, attempts, error, _locked = _job_row(seed_job.id)
        assert (status, attempts, error) == ("delayed", 1, "OCR failed: blurry")


@pytest.mark.integration
class TestJobRepositoryFinish:
    def test_finish_requires_an_active_claim(self, seed_job: JobRecord) -> None:
        repo = JobRepository()

        assert repo.mark_completed(seed_job.id, None) is False
        status, attempts, _error, _locked = _job_row(seed_job.id)
        assert (status, attempts) == ("waiting", 0)

    def test_mark_completed(
        self, seed_job: JobRecord, db_conn: psycopg.Connection[Any]
    ) -> None:
        repo = JobRepository()
        claimed = repo.claim_next_job(db_conn)
        assert claimed is not None

        assert repo.mark_completed(seed_job.id, claimed.locked_at) is True

        job = repo.find_by_id(seed_job.id)
        assert job is not None
        assert job.status == "completed"
        assert job.progress == 100
        assert job.finished_at is not None

    def test_mark_failed_keeps_message(
        self, seed_job: JobRecord, db_conn: psycopg.Connection[Any]
    ) -> None:
        repo = JobRepository()
        claimed = repo.claim_next_job(db_conn)
        assert claimed is not None

        assert repo.mark_failed(seed_job.id, "OCR failed: third", claimed.locked_at) is True

        status, attempts, error, _locked = _job_row(seed_job.id)
        assert (status, attempts, error) == ("failed", 1, "OCR failed: third")

    def test_cancel_only_before_start(
        self, seed_job: JobRecord, db_conn: psycopg.Connection[Any]
    ) -> None:
        repo = JobRepository()
        repo.claim_next_job(db_conn)

        assert repo.cancel(seed_job.id) is False
        assert repo.find_by_id(seed_job.id) is not None


@pytest.mark.integration
class TestJobRepositoryRecoverStaleJobs:
    def test_expired_active_job_is_released(
        self, seed_job: JobRecord, db_conn: psycopg.Connection[Any]
    ) -> None:
        repo = JobRepository()
        repo.claim_next_job(db_conn)
        db_conn.execute(
            "UPDATE receipt_jobs SET locked_at = NOW() - INTERVAL '1 hour' WHERE id = %s",
            (seed_job.id,),
        )
        db_conn.commit()

        failed = repo.recover_stale_jobs(db_conn, grace_seconds=30)

        assert failed == []
        status, attempts, error, locked_at = _job_row(seed_job.id)
        assert (status, attempts) == ("delayed", 1)
        assert error == "Job timed out or its worker stopped"
        assert locked_at is None

    def test_late_result_from_released_claim_is_dropped(
        self, seed_job: JobRecord, db_conn: psycopg.Connection[Any]
    ) -> None:
        repo = JobRepository()
        first = repo.claim_next_job(db_conn)
        assert first is not None
        db_conn.execute(
            "UPDATE receipt_jobs SET locked_at = NOW() - INTERVAL '1 hour' WHERE id = %s",
            (seed_job.id,),
        )
        db_conn.commit()
        stale_claim = _job_row(seed_job.id)[3]
        repo.recover_stale_jobs(db_conn, grace_seconds=30)
        second = repo.claim_next_job(db_conn)
        assert second is not None

        assert repo.mark_completed(seed_job.id, stale_claim) is False
        assert repo.schedule_retry(seed_job.id, "late", 1, stale_claim) is False

        status, attempts, _error, locked_at = _job_row(seed_job.id)
        assert (status, attempts) == ("active", 1)
        assert locked_at == second.locked_at
        assert repo.mark_completed(seed_job.id, second.locked_at) is True
