import signal
import threading
from types import FrameType

from app.config.settings import Settings
from app.database.connection import close_pool, init_pool
from app.database.repositories.job_repository import JobRepository
from app.logging.logger import Log
from app.processor.processor import build_processor
from app.storage.factory import StorageFactory
from app.worker.job_runner import JobRunner
from app.worker.worker import Worker


def main() -> None:
    """Entry point: initialize pool -> build dependencies -> run worker threads."""
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)
    stop_event = threading.Event()

    def _request_stop(signum: int, _frame: FrameType | None) -> None:
        Log.info(f"Received signal {signum}, stopping workers")
        stop_event.set()

    signal.signal(signal.SIGTERM, _request_stop)

    try:
        job_repo = JobRepository()
        processor = build_processor(
            settings, storage=StorageFactory.create(settings), job_repo=job_repo
        )
        job_runner = JobRunner(processor, job_repo)
        threads = [
            threading.Thread(
                target=Worker(job_repo, job_runner, settings, stop_event=stop_event).run,
                name=f"worker-{index}",
            )
            for index in range(settings.worker_concurrency)
        ]
        for thread in threads:
            thread.start()
        Log.info(f"Started {len(threads)} worker threads")
        try:
            while any(thread.is_alive() for thread in threads):
                for thread in threads:
                    thread.join(timeout=1.0)
        except KeyboardInterrupt:
            Log.info("Interrupted, stopping workers")
            stop_event.set()
        for thread in threads:
            thread.join()
    finally:
        close_pool()


if __name__ == "__main__":
    main()
