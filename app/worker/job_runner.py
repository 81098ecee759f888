from datetime import UTC, datetime, timedelta

from app.database.models import JobRecord
from app.database.repositories.job_repository import JobRepository
from app.logging.logger import Log
from app.ocr.models import DocumentType
from app.processor.pipeline import PipelineContext
from app.processor.processor import Processor
from app.queue.policy import policy_for


class JobRunner:
    """Run one job, catch exceptions, and apply retry logic."""

    def __init__(self, processor: Processor, job_repo: JobRepository) -> None:
        self._processor = processor
        self._job_repo = job_repo

    def run(self, job: JobRecord) -> None:
        """Execute a single job with error handling."""
        attempt = job.attempts_made + 1
        Log.info(
            f"Running job (attempt {attempt}/{job.max_attempts})",
            job_id=job.id,
            receipt_id=job.receipt_id,
        )
        try:
            self._processor.process(self._build_context(job))
            completed = self._job_repo.mark_completed(job.id, job.locked_at)
        except Exception as exc:
            self._handle_failure(job, exc)
            return

        if completed:
            Log.info("Job completed successfully", job_id=job.id)
        else:
            _log_lost_claim(job)

    def _build_context(self, job: JobRecord) -> PipelineContext:
        return PipelineContext(
            receipt_id=job.receipt_id,
            job_id=job.id,
            document_type=DocumentType(job.document_type),
            storage_key=str(job.payload.get("storage_key", "")),
            user_id=str(job.payload.get("user_id", "")),
            deadline=datetime.now(UTC) + timedelta(milliseconds=job.timeout_ms),
            final_attempt=job.is_final_attempt,
        )

    def _handle_failure(self, job: JobRecord, exc: Exception) -> None:
        """Count the attempt; fail the job once the budget is spent, otherwise delay it."""
        attempt = job.attempts_made + 1
        Log.error(f"Job failed: {exc}", job_id=job.id, attempt=attempt)
        if job.is_final_attempt:
            if not self._job_repo.mark_failed(job.id, str(exc), job.locked_at):
                _log_lost_claim(job)
                return
            Log.error(f"Job permanently failed after {attempt} attempts", job_id=job.id)
            return
        delay = policy_for(job.document_type).backoff_delay_seconds(attempt)
        if not self._job_repo.schedule_retry(job.id, str(exc), delay, job.locked_at):
            _log_lost_claim(job)
            return
        Log.warning(f"Job will be retried in {delay:g}s", job_id=job.id, attempt=attempt)


def _log_lost_claim(job: JobRecord) -> None:
    Log.warning(
        "Job is no longer owned by this worker; result dropped",
        job_id=job.id,
        locked_at=job.locked_at,
    )
