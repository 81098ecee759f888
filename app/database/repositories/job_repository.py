from datetime import datetime
from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from app.database.connection import get_connection
from app.database.models import JobRecord

_JOB_COLUMNS = """
    id, receipt_id, document_type, status, priority, attempts_made, max_attempts,
    timeout_ms, progress, payload, error_message, run_at, locked_at, finished_at,
    created_at, updated_at
"""


class JobRepository:
    """Database operations for the receipt_jobs table."""

    def claim_next_job(self, conn: psycopg.Connection[Any]) -> JobRecord | None:
        """Claim the next due job using SELECT FOR UPDATE SKIP LOCKED.

        Lower priority numbers run first; within a priority, the earliest due job wins.
        """
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                SELECT {_JOB_COLUMNS}
                FROM receipt_jobs
                WHERE status IN ('waiting', 'delayed')
                  AND run_at <= NOW()
                ORDER BY priority, run_at, created_at
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """
            )
            row = cur.fetchone()

        if row is None:
            conn.commit()
            return None

        claimed = conn.execute(
            """
            UPDATE receipt_jobs
            SET status = 'active', locked_at = clock_timestamp(), updated_at = NOW()
            WHERE id = %s
            RETURNING locked_at
            """,
            (row["id"],),
        ).fetchone()
        conn.commit()

        job = _to_record(row)
        job.status = "active"
        # the lock timestamp identifies this claim; finishing calls must present it
        job.locked_at = claimed[0] if claimed else None
        return job

    def enqueue(
        self,
        *,
        job_id: str,
        receipt_id: str,
        document_type: str,
        payload: dict[str, Any],
        priority: int,
        max_attempts: int,
        timeout_ms: int,
    ) -> JobRecord:
        """Insert a waiting job. An existing job with the same id is returned unchanged."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO receipt_jobs
                        (id, receipt_id, document_type, payload, priority, max_attempts, timeout_ms)
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (id) DO NOTHING
                    RETURNING {_JOB_COLUMNS}
                    """,
                    (job_id, receipt_id, document_type, Jsonb(payload), priority, max_attempts, timeout_ms),
                )
                row = cur.fetchone()
                if row is None:
                    cur.execute(
                        f"SELECT {_JOB_COLUMNS} FROM receipt_jobs WHERE id = %s",
                        (job_id,),
                    )
                    row = cur.fetchone()
            conn.commit()

        if row is None:
            raise RuntimeError(f"Job {job_id} could not be enqueued")
        return _to_record(row)

    def update_progress(self, job_id: str, progress: int) -> None:
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE receipt_jobs
                SET progress = %s, updated_at = NOW()
                WHERE id = %s
                """,
                (progress, job_id),
            )
            conn.commit()

    def mark_completed(self, job_id: str, locked_at: datetime | None) -> bool:
        """Complete a job claimed at ``locked_at``. Returns False if the claim was lost."""
        return self._finish(
            """
            UPDATE receipt_jobs
            SET status = 'completed', progress = 100, attempts_made = attempts_made + 1,
                error_message = NULL, locked_at = NULL, finished_at = NOW(), updated_at = NOW()
            WHERE id = %s AND status = 'active' AND locked_at = %s
            """,
            (job_id, locked_at),
        )

    def mark_failed(self, job_id: str, error: str, locked_at: datetime | None) -> bool:
        """Mark a job as permanently failed."""
        return self._finish(
            """
            UPDATE receipt_jobs
            SET status = 'failed', attempts_made = attempts_made + 1, error_message = %s,
                locked_at = NULL, finished_at = NOW(), updated_at = NOW()
            WHERE id = %s AND status = 'active' AND locked_at = %s
            """,
            (error, job_id, locked_at),
        )

    def schedule_retry(
        self, job_id: str, error: str, delay_seconds: float, locked_at: datetime | None
    ) -> bool:
        """Count the failed attempt and park the job until its backoff has elapsed."""
        return self._finish(
            """
            UPDATE receipt_jobs
            SET status = 'delayed', attempts_made = attempts_made + 1, error_message = %s,
                run_at = NOW() + make_interval(secs => %s), locked_at = NULL,
                updated_at = NOW()
            WHERE id = %s AND status = 'active' AND locked_at = %s
            """,
            (error, delay_seconds, job_id, locked_at),
        )

    def _finish(self, sql: str, params: tuple[Any, ...]) -> bool:
        # Stale-job recovery may have released the row and another worker re-claimed it;
        # the locked_at match keeps a late result from overwriting that claim.
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                owned = cur.rowcount == 1
            conn.commit()
        return owned

    def recover_stale_jobs(
        self, conn: psycopg.Connection[Any], grace_seconds: int
    ) -> list[JobRecord]:
        """Release active jobs whose worker exceeded the job timeout plus grace.

        Jobs with attempts left go back to 'delayed'; the others become 'failed'.
        Returns the jobs that were failed so their receipts can be closed.
        """
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                UPDATE receipt_jobs
                SET attempts_made = attempts_made + 1,
                    status = CASE WHEN attempts_made + 1 >= max_attempts
                                  THEN 'failed' ELSE 'delayed' END,
                    finished_at = CASE WHEN attempts_made + 1 >= max_attempts
                                       THEN NOW() ELSE NULL END,
                    error_message = 'Job timed out or its worker stopped',
                    run_at = NOW(), locked_at = NULL, updated_at = NOW()
                WHERE status = 'active'
                  AND locked_at < NOW() - make_interval(secs => timeout_ms / 1000.0 + %s)
                RETURNING {_JOB_COLUMNS}
                """,
                (grace_seconds,),
            )
            rows = cur.fetchall()
        conn.commit()
        return [_to_record(row) for row in rows if row["status"] == "failed"]

    def cancel(self, job_id: str) -> bool:
        """Remove a job that has not started yet. Returns False if it is running or done."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    DELETE FROM receipt_jobs
                    WHERE id = %s AND status IN ('waiting', 'delayed')
                    RETURNING id
                    """,
                    (job_id,),
                )
                deleted = cur.fetchone() is not None
            conn.commit()
        return deleted

    def count_by_status(self) -> dict[str, int]:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT status, COUNT(*) FROM receipt_jobs GROUP BY status")
                rows = cur.fetchall()
        return {status: int(count) for status, count in rows}

    def delete_finished_before(self, status: str, older_than_seconds: int) -> int:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    DELETE FROM receipt_jobs
                    WHERE status = %s
                      AND finished_at < NOW() - make_interval(secs => %s)
                    """,
                    (status, older_than_seconds),
                )
                deleted = cur.rowcount
            conn.commit()
        return deleted

    def find_for_user(self, user_id: str, limit: int = 20) -> list[JobRecord]:
        prefixed = ", ".join(f"j.{c.strip()}" for c in _JOB_COLUMNS.split(","))
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {prefixed}
                    FROM receipt_jobs j
                    JOIN receipts r ON r.id = j.receipt_id
                    WHERE r.user_id = %s
                    ORDER BY j.created_at DESC
                    LIMIT %s
                    """,
                    (user_id, limit),
                )
                rows = cur.fetchall()
        return [_to_record(row) for row in rows]

    def find_by_id(self, job_id: str) -> JobRecord | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_JOB_COLUMNS} FROM receipt_jobs WHERE id = %s",
                    (job_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return _to_record(row)


def _to_record(row: dict[str, Any]) -> JobRecord:
    return JobRecord(
        id=row["id"],
        receipt_id=row["receipt_id"],
        document_type=row["document_type"],
        status=row["status"],
        priority=row["priority"],
        attempts_made=row["attempts_made"],
        max_attempts=row["max_attempts"],
        timeout_ms=row["timeout_ms"],
        progress=row["progress"],
        payload=row["payload"] or {},
        error_message=row["error_message"],
        run_at=row["run_at"],
        locked_at=row["locked_at"],
        finished_at=row["finished_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
