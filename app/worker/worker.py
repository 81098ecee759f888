import threading

from app.config.settings import Settings
from app.database.connection import get_connection
from app.database.models import JobRecord
from app.database.repositories.job_repository import JobRepository
from app.database.repositories.receipt_repository import ReceiptRepository
from app.logging.logger import Log
from app.receipts.status import ReceiptStatus, sources_of
from app.worker.job_runner import JobRunner


class Worker:
    """Poll loop: recover stale jobs -> claim -> dispatch -> sleep when idle."""

    def __init__(
        self,
        job_repo: JobRepository,
        job_runner: JobRunner,
        settings: Settings,
        receipt_repo: ReceiptRepository | None = None,
        stop_event: threading.Event | None = None,
    ) -> None:
        self._job_repo = job_repo
        self._job_runner = job_runner
        self._settings = settings
        self._receipt_repo = receipt_repo if receipt_repo is not None else ReceiptRepository()
        self._stop_event = stop_event if stop_event is not None else threading.Event()

    def stop(self) -> None:
        self._stop_event.set()

    def run(self, max_jobs: int | None = None) -> None:
        """Main poll loop. Runs until stopped or interrupted.

        If max_jobs is set, stop after processing that many jobs (for testing).
        """
        Log.info("Worker started, polling for jobs")
        jobs_done = 0
        try:
            while not self._stop_event.is_set():
                if max_jobs is not None and jobs_done >= max_jobs:
                    break
                job = self._try_claim_job()
                if job:
                    self._job_runner.run(job)
                    jobs_done += 1
                else:
                    Log.debug("No jobs available, sleeping")
                    self._stop_event.wait(self._settings.job_poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")
        Log.info("Worker stopped", jobs_done=jobs_done)

    def _try_claim_job(self) -> JobRecord | None:
        """Attempt to claim the next due job. Gracefully handle DB errors."""
        try:
            with get_connection() as conn:
                expired = self._job_repo.recover_stale_jobs(
                    conn, self._settings.stale_job_grace_seconds
                )
                job = self._job_repo.claim_next_job(conn)
        except Exception as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return None
        for stale in expired:
            self._fail_receipt(stale)
        return job

    def _fail_receipt(self, job: JobRecord) -> None:
        message = job.error_message or "Job timed out"
        try:
            self._receipt_repo.update_status(
                job.receipt_id,
                ReceiptStatus.FAILED.value,
                allowed_from=sources_of(ReceiptStatus.FAILED),
                error_message=message,
            )
        except Exception as exc:
            Log.warning(f"Could not fail receipt of stale job: {exc}", job_id=job.id)
            return
        Log.error(f"Stale job failed: {message}", job_id=job.id, receipt_id=job.receipt_id)
