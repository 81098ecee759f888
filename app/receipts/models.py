from dataclasses import asdict, dataclass
from typing import Any

from app.database.models import ReceiptItemRecord, ReceiptRecord
from app.ocr.models import DocumentType


@dataclass(frozen=True)
class SubmissionResult:
    receipt_id: str
    job_id: str
    status: str
    document_type: DocumentType
    file_url: str
    estimated_seconds: int


@dataclass(frozen=True)
class ValidationStats:
    total_items: int
    validated_items: int
    validation_progress: int
    items_with_products: int
    items_needing_new_products: int
    average_confidence: float
    ready_for_inventory: bool

    @classmethod
    def from_items(cls, items: list[ReceiptItemRecord]) -> "ValidationStats":
        total = len(items)
        validated = sum(1 for item in items if item.validated)
        with_products = sum(1 for item in items if item.product_id)
        confidence = sum(item.confidence or 0.0 for item in items)
        return cls(
            total_items=total,
            validated_items=validated,
            validation_progress=round(validated / total * 100) if total else 0,
            items_with_products=with_products,
            items_needing_new_products=total - with_products,
            average_confidence=round(confidence / total, 3) if total else 0.0,
            ready_for_inventory=total > 0 and validated == total,
        )


@dataclass(frozen=True)
class ReceiptStatusSummary:
    receipt_id: str
    status: str
    total_items: int
    validated_items: int
    validation_progress: int
    ready_for_inventory: bool
    job_status: str | None = None
    job_progress: int = 0
    attempts_made: int = 0
    max_attempts: int = 0
    estimated_seconds_remaining: int | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class ReceiptResults:
    receipt: ReceiptRecord
    items: list[ReceiptItemRecord]
    stats: ValidationStats


@dataclass(frozen=True)
class ReceiptStats:
    total: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0
    validated: int = 0


@dataclass(frozen=True)
class ItemCorrections:
    """User corrections for one receipt item. Fields left as None are not changed."""

    detected_name: str | None = None
    quantity: float | None = None
    unit_price: float | None = None
    total_price: float | None = None
    product_id: str | None = None
    category: str | None = None
    validated: bool | None = None

    def to_changes(self) -> dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}

