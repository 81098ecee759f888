from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any


@dataclass
class JobRecord:
    """Represents a row from the receipt_jobs table."""

    id: str
    receipt_id: str
    document_type: str
    status: str
    attempts_made: int
    max_attempts: int
    timeout_ms: int
    priority: int = 0
    progress: int = 0
    payload: dict[str, Any] = field(default_factory=dict)
    error_message: str | None = None
    run_at: datetime | None = None
    locked_at: datetime | None = None
    finished_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_final_attempt(self) -> bool:
        return self.attempts_made + 1 >= self.max_attempts


@dataclass
class ReceiptRecord:
    """Represents a row from the receipts table."""

    id: str
    user_id: str
    document_type: str
    status: str
    storage_key: str
    image_url: str | None = None
    pdf_url: str | None = None
    merchant_name: str | None = None
    merchant_address: str | None = None
    total_amount: float | None = None
    tax_amount: float | None = None
    currency: str | None = None
    purchase_date: datetime | None = None
    invoice_number: str | None = None
    order_number: str | None = None
    ocr_provider: str | None = None
    ocr_confidence: float | None = None
    processing_time_ms: int | None = None
    analysis_metadata: dict[str, Any] | None = None
    error_message: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class ReceiptItemRecord:
    """Represents a row from the receipt_items table, with its product when linked."""

    id: str
    receipt_id: str
    position: int
    detected_name: str
    quantity: float
    confidence: float
    validated: bool = False
    suspicious: bool = False
    product_id: str | None = None
    unit_price: float | None = None
    total_price: float | None = None
    product_code: str | None = None
    category: str | None = None
    discount: float | None = None
    match_status: str | None = None
    match_score: float | None = None
    match_type: str | None = None
    product_name: str | None = None
    product_brand: str | None = None
    product_image_url: str | None = None


@dataclass
class NewReceiptItem:
    """Values for one receipt_items insert."""

    position: int
    detected_name: str
    quantity: float
    confidence: float
    unit_price: float | None = None
    total_price: float | None = None
    product_code: str | None = None
    category: str | None = None
    discount: float | None = None
    product_id: str | None = None
    validated: bool = False
    suspicious: bool = False
    match_status: str | None = None
    match_score: float | None = None
    match_type: str | None = None


@dataclass
class BudgetRecord:
    """Represents a row from the budgets table."""

    id: str
    user_id: str
    amount: float
    period_start: datetime
    period_end: datetime
    is_active: bool = True


@dataclass
class ReceiptExtraction:
    """Receipt-level values written once processing succeeds."""

    merchant_name: str | None
    merchant_address: str | None
    total_amount: float | None
    tax_amount: float | None
    currency: str | None
    purchase_date: date | None
    invoice_number: str | None
    order_number: str | None
    ocr_provider: str
    ocr_confidence: float
    processing_time_ms: int
    raw_ocr_data: dict[str, Any] | None = None
    analysis_metadata: dict[str, Any] | None = None
