from pathlib import Path

import pytest

from app.config.settings import Settings
from app.database.repositories.job_repository import JobRepository
from app.processor.processor import build_processor
from app.receipts.service import build_receipt_service
from app.storage.factory import StorageFactory
from app.worker.job_runner import JobRunner
from app.worker.worker import Worker


@pytest.mark.integration
class TestWorkerIntegration:
    def test_html_invoice_is_processed_end_to_end(
        self,
        integration_cleanup: None,
        user_id: str,
        test_settings: Settings,
        tmp_path: Path,
        invoice_html_bytes: bytes,
    ) -> None:
        settings = test_settings.model_copy(update={"files_root": str(tmp_path)})
        storage = StorageFactory.create(settings)
        service = build_receipt_service(settings, storage=storage)
        submitted = service.submit_document(user_id, "INVOICE_HTML", invoice_html_bytes, "commande.html")

        job_repo = JobRepository()
        processor = build_processor(settings, storage=storage, job_repo=job_repo)
        worker = Worker(job_repo, JobRunner(processor, job_repo), settings)
        worker.run(max_jobs=1)

        assert service.get_status(submitted.receipt_id, user_id).status == "COMPLETED"
        results = service.get_results(submitted.receipt_id, user_id)
        assert results.receipt.ocr_provider == "pdf-text"
        assert results.items[0].detected_name == "lait entier bio 1l"
        assert results.items[0].product_code == "3263859672014"
        job = job_repo.find_by_id(submitted.job_id)
        assert job is not None
        assert job.status == "completed"
