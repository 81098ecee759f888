from app.analysis.analyzer import ReceiptAnalyzer, analysis_stats
from app.analysis.models import AnalysisResult, AnalyzedLineItem
from app.database.models import NewReceiptItem, ReceiptExtraction
from app.database.repositories.receipt_repository import ReceiptRepository
from app.logging.logger import Log
from app.matching.matcher import ProductMatcher, matching_stats
from app.matching.models import ProductMatchResult
from app.matching.policy import should_auto_validate, should_link_product
from app.ocr.registry import OcrProviderRegistry
from app.processor.exceptions import OcrFailedError, ReceiptNotFoundError
from app.processor.pipeline import PipelineContext, PipelineStep
from app.receipts.exceptions import InvalidStatusTransitionError
from app.receipts.status import ReceiptStatus, ensure_transition, sources_of
from app.storage.base import BaseStorage


class MarkProcessingStep(PipelineStep):
    progress = 0

    def __init__(self, receipt_repo: ReceiptRepository) -> None:
        self._receipt_repo = receipt_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        receipt = self._receipt_repo.find_by_id(context.receipt_id)
        if receipt is None:
            raise ReceiptNotFoundError(f"Receipt {context.receipt_id} not found")
        ensure_transition(receipt.status, ReceiptStatus.PROCESSING)
        self._receipt_repo.update_status(
            context.receipt_id,
            ReceiptStatus.PROCESSING.value,
            allowed_from=sources_of(ReceiptStatus.PROCESSING),
        )
        context.receipt = receipt
        context.user_id = receipt.user_id
        Log.info("Receipt marked as processing", receipt_id=context.receipt_id, job_id=context.job_id)
        return context


class LoadDocumentStep(PipelineStep):
    def __init__(self, storage: BaseStorage) -> None:
        self._storage = storage

    def run(self, context: PipelineContext) -> PipelineContext:
        context.raw_bytes = self._storage.load(context.storage_key)
        Log.info(
            f"Loaded {len(context.raw_bytes)} bytes",
            receipt_id=context.receipt_id,
            storage_key=context.storage_key,
        )
        return context


class OcrStep(PipelineStep):
    progress = 25

    def __init__(self, registry: OcrProviderRegistry) -> None:
        self._registry = registry

    def run(self, context: PipelineContext) -> PipelineContext:
        result = self._registry.process_document(context.raw_bytes, context.document_type)
        if not result.success or result.data is None:
            raise OcrFailedError(result.error)
        context.ocr_result = result
        Log.info(
            f"OCR produced {len(result.data.line_items)} line items",
            receipt_id=context.receipt_id,
            provider=result.provider_name,
            confidence=result.data.confidence,
            ms=result.processing_time_ms,
        )
        return context


class AnalyzeStep(PipelineStep):
    progress = 50

    def __init__(self, analyzer: ReceiptAnalyzer) -> None:
        self._analyzer = analyzer

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.ocr_result is None or context.ocr_result.data is None:
            raise ValueError("PipelineContext.ocr_result must be set before analysis")
        context.analysis = self._analyzer.analyze(context.ocr_result.data)
        Log.info("Receipt analyzed", receipt_id=context.receipt_id, **analysis_stats(context.analysis))
        return context


class MatchProductsStep(PipelineStep):
    progress = 75

    def __init__(self, matcher: ProductMatcher) -> None:
        self._matcher = matcher

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.analysis is None:
            raise ValueError("PipelineContext.analysis must be set before matching")
        context.match_results = self._matcher.match_items(list(context.analysis.line_items))
        Log.info("Products matched", receipt_id=context.receipt_id, **matching_stats(context.match_results))
        return context


class PersistResultsStep(PipelineStep):
    progress = 90

    def __init__(self, receipt_repo: ReceiptRepository) -> None:
        self._receipt_repo = receipt_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.ocr_result is None or context.analysis is None:
            raise ValueError("PipelineContext.analysis must be set before persist")
        if len(context.match_results) != len(context.analysis.line_items):
            raise ValueError("PipelineContext.match_results must cover every analyzed item")

        analysis = context.analysis
        data = analysis.receipt_data
        extraction = ReceiptExtraction(
            merchant_name=data.merchant_name,
            merchant_address=data.merchant_address,
            total_amount=data.total_amount,
            tax_amount=data.tax_amount,
            currency=data.currency,
            purchase_date=data.purchase_date,
            invoice_number=data.invoice_number,
            order_number=data.order_number,
            ocr_provider=context.ocr_result.provider_name,
            ocr_confidence=data.confidence,
            processing_time_ms=context.ocr_result.processing_time_ms,
            raw_ocr_data={
                "provider": context.ocr_result.provider_name,
                "payload": data.raw_provider_payload,
            },
            analysis_metadata=analysis.metadata.to_payload(),
        )
        items = build_receipt_items(analysis, context.match_results)
        self._receipt_repo.save_results(context.receipt_id, extraction, items)
        Log.info(
            f"Persisted {len(items)} items",
            receipt_id=context.receipt_id,
            linked=sum(1 for item in items if item.product_id),
            validated=sum(1 for item in items if item.validated),
        )
        return context


class MarkCompletedStep(PipelineStep):
    progress_after = 100

    def __init__(self, receipt_repo: ReceiptRepository) -> None:
        self._receipt_repo = receipt_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        updated = self._receipt_repo.update_status(
            context.receipt_id,
            ReceiptStatus.COMPLETED.value,
            allowed_from=sources_of(ReceiptStatus.COMPLETED),
        )
        if not updated:
            raise InvalidStatusTransitionError(
                f"Receipt {context.receipt_id} is no longer processing"
            )
        Log.info("Receipt completed", receipt_id=context.receipt_id, job_id=context.job_id)
        return context


class RecordFailureStep(PipelineStep):
    """Record the error on the receipt; fail the receipt once no attempts remain."""

    def __init__(self, receipt_repo: ReceiptRepository) -> None:
        self._receipt_repo = receipt_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.final_attempt:
            self._receipt_repo.update_status(
                context.receipt_id,
                ReceiptStatus.FAILED.value,
                allowed_from=sources_of(ReceiptStatus.FAILED),
                error_message=context.error_message,
            )
            Log.error(
                f"Receipt failed: {context.error_message}",
                receipt_id=context.receipt_id,
                job_id=context.job_id,
            )
        else:
            self._receipt_repo.record_error(context.receipt_id, context.error_message)
            Log.warning(
                f"Receipt processing error: {context.error_message}",
                receipt_id=context.receipt_id,
                job_id=context.job_id,
            )
        return context


def build_receipt_items(
    analysis: AnalysisResult, match_results: list[ProductMatchResult]
) -> list[NewReceiptItem]:
    """Pair analyzed items with their match results into rows for receipt_items."""
    suspicious = analysis.metadata.suspicious_positions
    return [
        _receipt_item(item, result, item.position in suspicious)
        for item, result in zip(analysis.line_items, match_results)
    ]


def _receipt_item(
    item: AnalyzedLineItem, result: ProductMatchResult, suspicious: bool
) -> NewReceiptItem:
    best = result.best_match
    score = best.score if best else None
    return NewReceiptItem(
        position=item.position,
        detected_name=item.description,
        quantity=item.quantity or 1,
        confidence=item.confidence,
        unit_price=item.unit_price,
        total_price=item.total_price,
        product_code=item.product_code,
        category=result.suggested_category,
        discount=item.discount,
        product_id=best.candidate_product_id if best and should_link_product(best.score) else None,
        validated=bool(best and should_auto_validate(best.score)),
        suspicious=suspicious,
        match_status=result.status.value,
        match_score=score,
        match_type=best.match_type.value if best else None,
    )
