from collections.abc import Callable
from datetime import UTC, datetime

from app.analysis.analyzer import ReceiptAnalyzer
from app.config.settings import Settings
from app.database.repositories.catalog_repository import CatalogRepository
from app.database.repositories.job_repository import JobRepository
from app.database.repositories.receipt_repository import ReceiptRepository
from app.logging.logger import Log
from app.matching.matcher import ProductMatcher
from app.ocr.factory import OcrRegistryFactory
from app.processor.exceptions import JobTimeoutError
from app.processor.pipeline import PipelineContext, PipelineStep
from app.processor.steps import (
    AnalyzeStep,
    LoadDocumentStep,
    MarkCompletedStep,
    MarkProcessingStep,
    MatchProductsStep,
    OcrStep,
    PersistResultsStep,
    RecordFailureStep,
)
from app.storage.base import BaseStorage
from app.storage.factory import StorageFactory

ProgressReporter = Callable[[str, int], None]


class Processor:
    """Runs a receipt through the pipeline steps in order.

    Pipeline: mark processing -> load -> OCR -> analyze -> match -> persist -> complete.
    Progress is reported before each step that declares one, and after a step whose
    progress only holds once it succeeded (completion). The job deadline is checked
    between steps. Any step error runs ``failed_step`` and is re-raised so
    the job runner can decide between retry and failure.
    """

    def __init__(
        self,
        steps: list[PipelineStep],
        failed_step: PipelineStep,
        progress_reporter: ProgressReporter | None = None,
    ) -> None:
        self._steps = steps
        self._failed_step = failed_step
        self._progress_reporter = progress_reporter

    def process(self, context: PipelineContext) -> PipelineContext:
        Log.info(
            "Processing receipt",
            receipt_id=context.receipt_id,
            job_id=context.job_id,
            document_type=context.document_type.value,
        )
        try:
            for step in self._steps:
                _check_deadline(context, step)
                self._report(context, step.progress)
                context = step.run(context)
                self._report(context, step.progress_after)
        except Exception as exc:
            context.error_message = str(exc)
            try:
                self._failed_step.run(context)
            except Exception as failure_exc:
                Log.error(
                    f"Failure step raised: {failure_exc}",
                    receipt_id=context.receipt_id,
                    job_id=context.job_id,
                )
            raise
        return context

    def _report(self, context: PipelineContext, progress: int | None) -> None:
        if progress is not None and self._progress_reporter is not None:
            self._progress_reporter(context.job_id, progress)


def _check_deadline(context: PipelineContext, step: PipelineStep) -> None:
    if context.deadline is not None and datetime.now(UTC) >= context.deadline:
        raise JobTimeoutError(f"Job {context.job_id} timed out before {step.name}")


def build_processor(
    settings: Settings,
    storage: BaseStorage | None = None,
    job_repo: JobRepository | None = None,
) -> Processor:
    """Build a Processor with all required adapters."""
    storage = storage if storage is not None else StorageFactory.create(settings)
    job_repo = job_repo if job_repo is not None else JobRepository()
    receipt_repo = ReceiptRepository()
    registry = OcrRegistryFactory.create(settings)
    matcher = ProductMatcher(CatalogRepository())
    steps: list[PipelineStep] = [
        MarkProcessingStep(receipt_repo),
        LoadDocumentStep(storage),
        OcrStep(registry),
        AnalyzeStep(ReceiptAnalyzer()),
        MatchProductsStep(matcher),
        PersistResultsStep(receipt_repo),
        MarkCompletedStep(receipt_repo),
    ]
    return Processor(
        steps=steps,
        failed_step=RecordFailureStep(receipt_repo),
        progress_reporter=job_repo.update_progress,
    )
