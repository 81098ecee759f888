from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any


class DocumentType(str, Enum):
    """Kinds of purchase documents the pipeline accepts."""

    RECEIPT_IMAGE = "RECEIPT_IMAGE"
    INVOICE_PDF = "INVOICE_PDF"
    INVOICE_HTML = "INVOICE_HTML"


@dataclass(frozen=True)
class LineItem:
    """One purchased line as detected by a provider. Numeric fields may be missing."""

    description: str
    quantity: float | None = None
    unit_price: float | None = None
    total_price: float | None = None
    confidence: float = 0.0
    product_code: str | None = None
    category_hint: str | None = None
    discount: float | None = None


@dataclass(frozen=True)
class ReceiptData:
    """Structured content of a receipt or invoice.

    ``confidence`` is the provider's own estimate for the whole document.
    ``line_items`` keep the order in which they were detected.
    """

    merchant_name: str | None = None
    merchant_address: str | None = None
    total_amount: float | None = None
    tax_amount: float | None = None
    purchase_date: date | None = None
    currency: str | None = None
    line_items: list[LineItem] = field(default_factory=list)
    confidence: float = 0.0
    invoice_number: str | None = None
    order_number: str | None = None
    raw_provider_payload: dict[str, Any] | None = None


@dataclass(frozen=True)
class OcrProcessingResult:
    """Outcome of one provider run over one document."""

    success: bool
    provider_name: str
    document_type: DocumentType
    processing_time_ms: int = 0
    data: ReceiptData | None = None
    error: str | None = None
