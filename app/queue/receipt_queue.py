from dataclasses import dataclass
from typing import Any

from app.database.models import JobRecord
from app.database.repositories.job_repository import JobRepository
from app.logging.logger import Log
from app.ocr.models import DocumentType
from app.queue.policy import policy_for

_FINISHED_STATUSES = ("completed", "failed")


def job_id_for(receipt_id: str) -> str:
    """Job id derived from the receipt; enqueueing twice yields the same job."""
    return f"receipt-{receipt_id}"


@dataclass(frozen=True)
class QueueStats:
    waiting: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0
    delayed: int = 0

    @property
    def total(self) -> int:
        return self.waiting + self.active + self.completed + self.failed + self.delayed


class ReceiptQueue:
    """Receipt processing queue stored in the receipt_jobs table."""

    def __init__(self, job_repo: JobRepository) -> None:
        self._job_repo = job_repo

    def enqueue(
        self,
        receipt_id: str,
        document_type: DocumentType,
        payload: dict[str, Any],
    ) -> JobRecord:
        policy = policy_for(document_type)
        job = self._job_repo.enqueue(
            job_id=job_id_for(receipt_id),
            receipt_id=receipt_id,
            document_type=DocumentType(document_type).value,
            payload=payload,
            priority=policy.priority,
            max_attempts=policy.max_attempts,
            timeout_ms=policy.timeout_ms,
        )
        Log.info(
            "Job enqueued",
            job_id=job.id,
            receipt_id=receipt_id,
            document_type=job.document_type,
            priority=job.priority,
        )
        return job

    def get_status(self, job_id: str) -> JobRecord | None:
        return self._job_repo.find_by_id(job_id)

    def cancel(self, job_id: str) -> bool:
        """Cancel a job that has not started. Running and finished jobs are left alone."""
        cancelled = self._job_repo.cancel(job_id)
        if cancelled:
            Log.info("Job cancelled", job_id=job_id)
        else:
            Log.warning("Job could not be cancelled", job_id=job_id)
        return cancelled

    def stats(self) -> QueueStats:
        counts = self._job_repo.count_by_status()
        return QueueStats(
            waiting=counts.get("waiting", 0),
            active=counts.get("active", 0),
            completed=counts.get("completed", 0),
            failed=counts.get("failed", 0),
            delayed=counts.get("delayed", 0),
        )

    def clean_old_jobs(self, older_than_seconds: int = 24 * 3600) -> int:
        """Delete completed and failed jobs that finished more than ``older_than_seconds`` ago."""
        removed = sum(
            self._job_repo.delete_finished_before(status, older_than_seconds)
            for status in _FINISHED_STATUSES
        )
        Log.info("Old jobs cleaned", removed=removed)
        return removed

    def user_jobs(self, user_id: str, limit: int = 20) -> list[JobRecord]:
        return self._job_repo.find_for_user(user_id, limit)
