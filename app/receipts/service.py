from datetime import UTC, datetime

from app.config.settings import Settings
from app.database.models import ReceiptItemRecord, ReceiptRecord
from app.database.repositories.budget_repository import BudgetRepository
from app.database.repositories.catalog_repository import CatalogRepository
from app.database.repositories.inventory_repository import InventoryRepository
from app.database.repositories.job_repository import JobRepository
from app.database.repositories.receipt_repository import ReceiptRepository
from app.inventory.committer import ReceiptToInventoryService
from app.inventory.models import CommitOptions, ReceiptToInventoryResult, ValidatedReceiptItem
from app.logging.logger import Log
from app.ocr.models import DocumentType
from app.queue.receipt_queue import ReceiptQueue, job_id_for
from app.receipts.exceptions import (
    InvalidDocumentError,
    InvalidStatusTransitionError,
    ItemNotFoundError,
    ReceiptNotFoundError,
    ReceiptNotReadyError,
)
from app.receipts.models import (
    ItemCorrections,
    ReceiptResults,
    ReceiptStats,
    ReceiptStatusSummary,
    SubmissionResult,
    ValidationStats,
)
from app.receipts.status import ReceiptStatus, ensure_transition, sources_of
from app.storage.base import BaseStorage
from app.storage.factory import StorageFactory

CANCELLED_MESSAGE = "Processing cancelled by user"


def has_valid_signature(data: bytes, document_type: DocumentType) -> bool:
    """Check the leading bytes match the declared document type."""
    if document_type == DocumentType.RECEIPT_IMAGE:
        return (
            data.startswith(b"\xff\xd8\xff")
            or data.startswith(b"\x89PNG\r\n\x1a\n")
            or (data[:4] == b"RIFF" and data[8:12] == b"WEBP")
            or data[4:8] == b"ftyp"
        )
    if document_type == DocumentType.INVOICE_PDF:
        return data.startswith(b"%PDF")
    return data.lstrip(b"\xef\xbb\xbf \t\r\n").startswith(b"<")


class ReceiptService:
    """Receipt operations offered to the rest of the backend."""

    def __init__(
        self,
        receipt_repo: ReceiptRepository,
        queue: ReceiptQueue,
        storage: BaseStorage,
        inventory: ReceiptToInventoryService,
        settings: Settings,
    ) -> None:
        self._receipt_repo = receipt_repo
        self._queue = queue
        self._storage = storage
        self._inventory = inventory
        self._settings = settings

    def submit_document(
        self,
        user_id: str,
        document_type: DocumentType | str,
        data: bytes,
        file_name: str | None = None,
    ) -> SubmissionResult:
        """Validate and store a document, create its receipt and queue processing.

        Raises:
            InvalidDocumentError: for an unknown type, an empty or oversized file,
                or content that does not match the declared type.
        """
        doc_type = self._validate_document(document_type, data)
        stored = self._storage.upload(data, user_id, doc_type, file_name)
        is_image = doc_type == DocumentType.RECEIPT_IMAGE
        receipt = self._receipt_repo.create(
            user_id=user_id,
            document_type=doc_type.value,
            storage_key=stored.key,
            image_url=stored.url if is_image else None,
            pdf_url=None if is_image else stored.url,
        )
        try:
            job = self._queue.enqueue(
                receipt.id,
                doc_type,
                {"storage_key": stored.key, "user_id": user_id, "file_name": file_name},
            )
        except Exception as exc:
            self._receipt_repo.update_status(
                receipt.id,
                ReceiptStatus.FAILED.value,
                allowed_from=sources_of(ReceiptStatus.FAILED),
                error_message=f"Could not queue processing: {exc}",
            )
            raise
        Log.info("Receipt submitted", receipt_id=receipt.id, user_id=user_id, job_id=job.id)
        return SubmissionResult(
            receipt_id=receipt.id,
            job_id=job.id,
            status=receipt.status,
            document_type=doc_type,
            file_url=stored.url,
            estimated_seconds=self._settings.processing_estimate_seconds,
        )

    def get_status(self, receipt_id: str, user_id: str) -> ReceiptStatusSummary:
        receipt = self._owned_receipt(receipt_id, user_id)
        stats = ValidationStats.from_items(self._receipt_repo.find_items(receipt_id))
        job = self._queue.get_status(job_id_for(receipt_id))
        failed = receipt.status == ReceiptStatus.FAILED.value
        return ReceiptStatusSummary(
            receipt_id=receipt.id,
            status=receipt.status,
            total_items=stats.total_items,
            validated_items=stats.validated_items,
            validation_progress=stats.validation_progress,
            ready_for_inventory=stats.ready_for_inventory,
            job_status=job.status if job else None,
            job_progress=job.progress if job else 0,
            attempts_made=job.attempts_made if job else 0,
            max_attempts=job.max_attempts if job else 0,
            estimated_seconds_remaining=self._estimate_remaining(receipt),
            error_message=(receipt.error_message or "Receipt processing failed") if failed else None,
        )

    def get_results(self, receipt_id: str, user_id: str) -> ReceiptResults:
        receipt = self._owned_receipt(receipt_id, user_id)
        if receipt.status in (ReceiptStatus.PROCESSING.value, ReceiptStatus.FAILED.value):
            raise ReceiptNotReadyError(
                f"Receipt {receipt_id} has no results while {receipt.status}"
            )
        items = self._receipt_repo.find_items(receipt_id)
        return ReceiptResults(receipt=receipt, items=items, stats=ValidationStats.from_items(items))

    def update_item(
        self,
        receipt_id: str,
        item_id: str,
        user_id: str,
        corrections: ItemCorrections,
    ) -> ReceiptItemRecord:
        receipt = self._owned_receipt(receipt_id, user_id)
        if receipt.status == ReceiptStatus.PROCESSING.value:
            raise ReceiptNotReadyError(f"Receipt {receipt_id} is still processing")
        changes = corrections.to_changes()
        if changes and not self._receipt_repo.update_item(receipt_id, item_id, changes):
            raise ItemNotFoundError(f"Item {item_id} not found on receipt {receipt_id}")
        item = next(
            (i for i in self._receipt_repo.find_items(receipt_id) if i.id == item_id), None
        )
        if item is None:
            raise ItemNotFoundError(f"Item {item_id} not found on receipt {receipt_id}")
        Log.info("Receipt item updated", receipt_id=receipt_id, item_id=item_id, fields=",".join(changes))
        return item

    def validate_receipt(self, receipt_id: str, user_id: str) -> ReceiptRecord:
        """Move a COMPLETED receipt to VALIDATED."""
        receipt = self._owned_receipt(receipt_id, user_id)
        ensure_transition(receipt.status, ReceiptStatus.VALIDATED)
        updated = self._receipt_repo.update_status(
            receipt_id,
            ReceiptStatus.VALIDATED.value,
            allowed_from=sources_of(ReceiptStatus.VALIDATED),
        )
        if not updated:
            raise InvalidStatusTransitionError(f"Receipt {receipt_id} changed status concurrently")
        Log.info("Receipt validated", receipt_id=receipt_id)
        return self._owned_receipt(receipt_id, user_id)

    def cancel_processing(self, receipt_id: str, user_id: str) -> ReceiptRecord:
        """Cancel a receipt whose job has not started yet and mark it FAILED."""
        receipt = self._owned_receipt(receipt_id, user_id)
        ensure_transition(receipt.status, ReceiptStatus.FAILED)
        if not self._queue.cancel(job_id_for(receipt_id)):
            raise InvalidStatusTransitionError(
                f"Receipt {receipt_id} is already being processed and cannot be cancelled"
            )
        self._receipt_repo.update_status(
            receipt_id,
            ReceiptStatus.FAILED.value,
            allowed_from=sources_of(ReceiptStatus.FAILED),
            error_message=CANCELLED_MESSAGE,
        )
        Log.info("Receipt processing cancelled", receipt_id=receipt_id)
        return self._owned_receipt(receipt_id, user_id)

    def delete_receipt(self, receipt_id: str, user_id: str) -> None:
        """Delete the stored document and the receipt; its items and job go with it."""
        receipt = self._owned_receipt(receipt_id, user_id)
        if not self._storage.delete(receipt.storage_key):
            Log.warning("Stored document already missing", receipt_id=receipt_id, key=receipt.storage_key)
        self._receipt_repo.delete(receipt_id)
        Log.info("Receipt deleted", receipt_id=receipt_id)

    def list_receipts(
        self,
        user_id: str,
        status: ReceiptStatus | None = None,
        document_type: DocumentType | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[ReceiptRecord]:
        return self._receipt_repo.list_for_user(
            user_id,
            status=ReceiptStatus(status).value if status else None,
            document_type=DocumentType(document_type).value if document_type else None,
            limit=limit,
            offset=offset,
        )

    def receipt_stats(self, user_id: str) -> ReceiptStats:
        counts = self._receipt_repo.count_by_status(user_id)
        return ReceiptStats(
            total=sum(counts.values()),
            processing=counts.get(ReceiptStatus.PROCESSING.value, 0),
            completed=counts.get(ReceiptStatus.COMPLETED.value, 0),
            failed=counts.get(ReceiptStatus.FAILED.value, 0),
            validated=counts.get(ReceiptStatus.VALIDATED.value, 0),
        )

    def commit_to_inventory(
        self,
        user_id: str,
        items: list[ValidatedReceiptItem],
        options: CommitOptions | None = None,
    ) -> ReceiptToInventoryResult:
        if options is not None and options.receipt_id is not None:
            self._owned_receipt(options.receipt_id, user_id)
        return self._inventory.commit(user_id, items, options)

    def _owned_receipt(self, receipt_id: str, user_id: str) -> ReceiptRecord:
        receipt = self._receipt_repo.find_by_id(receipt_id)
        if receipt is None or receipt.user_id != user_id:
            raise ReceiptNotFoundError(f"Receipt {receipt_id} not found")
        return receipt

    def _validate_document(self, document_type: DocumentType | str, data: bytes) -> DocumentType:
        try:
            doc_type = DocumentType(document_type)
        except ValueError as exc:
            raise InvalidDocumentError(f"Invalid document type: {document_type}") from exc
        if not data:
            raise InvalidDocumentError("Document is empty")
        if len(data) > self._settings.max_upload_bytes:
            raise InvalidDocumentError(
                f"Document is {len(data)} bytes, limit is {self._settings.max_upload_bytes}"
            )
        if not has_valid_signature(data, doc_type):
            raise InvalidDocumentError(f"Content does not look like {doc_type.value}")
        return doc_type

    def _estimate_remaining(self, receipt: ReceiptRecord) -> int | None:
        if receipt.status != ReceiptStatus.PROCESSING.value:
            return None
        estimate = self._settings.processing_estimate_seconds
        if receipt.created_at is None:
            return estimate
        elapsed = int((datetime.now(UTC) - receipt.created_at).total_seconds())
        return max(0, estimate - elapsed)


def build_receipt_service(settings: Settings, storage: BaseStorage | None = None) -> ReceiptService:
    """Build a ReceiptService over the PostgreSQL repositories. The pool must be initialized."""
    return ReceiptService(
        receipt_repo=ReceiptRepository(),
        queue=ReceiptQueue(JobRepository()),
        storage=storage if storage is not None else StorageFactory.create(settings),
        inventory=ReceiptToInventoryService(
            CatalogRepository(), InventoryRepository(), BudgetRepository()
        ),
        settings=settings,
    )
