from dataclasses import dataclass, field
from enum import Enum

from app.ocr.models import LineItem, ReceiptData


class DocumentFormat(str, Enum):
    SUPERMARKET = "SUPERMARKET"
    GROCERY = "GROCERY"
    RESTAURANT = "RESTAURANT"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class AnalyzedLineItem(LineItem):
    """A line item after cleaning, with its detection position on the receipt."""

    position: int = 0
    raw_description: str = ""


@dataclass(frozen=True)
class AnalysisMetadata:
    item_count: int
    overall_confidence: float
    document_format: DocumentFormat
    data_consistency_score: float
    low_confidence_items: list[AnalyzedLineItem] = field(default_factory=list)
    suspicious_items: list[AnalyzedLineItem] = field(default_factory=list)

    @property
    def suspicious_positions(self) -> set[int]:
        return {item.position for item in self.suspicious_items}

    def to_payload(self) -> dict[str, object]:
        """JSON-ready summary stored alongside the receipt."""
        return {
            "item_count": self.item_count,
            "overall_confidence": round(self.overall_confidence, 4),
            "document_format": self.document_format.value,
            "data_consistency_score": self.data_consistency_score,
            "low_confidence_positions": [item.position for item in self.low_confidence_items],
            "suspicious_positions": sorted(self.suspicious_positions),
        }


@dataclass(frozen=True)
class AnalysisResult:
    receipt_data: ReceiptData
    line_items: list[AnalyzedLineItem]
    metadata: AnalysisMetadata
