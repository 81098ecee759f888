"""Cleans provider output and scores how trustworthy a receipt reading is."""

import math
import re
from dataclasses import replace

from app.analysis.models import (
    AnalysisMetadata,
    AnalysisResult,
    AnalyzedLineItem,
)
from app.analysis.patterns import detect_document_format
from app.logging.logger import Log
from app.ocr.models import LineItem, ReceiptData

_WHITESPACE = re.compile(r"\s+")
_MERCHANT_SYMBOLS = re.compile(r"[^\w\s-]")
_DESCRIPTION_SYMBOLS = re.compile(r"[^\w\s\-()]")
_QUANTITY_PREFIX = re.compile(r"^\s*(\d+(?:[.,]\d+)?)\s*[x×]\s+", re.IGNORECASE)

MAX_QUANTITY = 1000
TOTAL_TOLERANCE_RATIO = 0.05
TOTAL_MISMATCH_PENALTY = 0.3
LINE_TOLERANCE = 0.10
LINE_MISMATCH_PENALTY = 0.1
LOW_CONFIDENCE_THRESHOLD = 0.7
SUSPICIOUS_CONFIDENCE = 0.5
SUSPICIOUS_MAX_PRICE = 1000
SUSPICIOUS_MAX_QUANTITY = 100


class ReceiptAnalyzer:
    """Pure post-processing of ReceiptData: cleaning, format detection, scoring."""

    def analyze(self, receipt: ReceiptData) -> AnalysisResult:
        items = [self._analyze_item(item, position) for position, item in enumerate(receipt.line_items)]
        total_amount = normalize_amount(receipt.total_amount)
        merchant_name = clean_merchant_name(receipt.merchant_name)

        cleaned = replace(
            receipt,
            merchant_name=merchant_name,
            merchant_address=clean_address(receipt.merchant_address),
            total_amount=total_amount,
            tax_amount=normalize_amount(receipt.tax_amount),
            line_items=list(items),
        )
        metadata = AnalysisMetadata(
            item_count=len(items),
            overall_confidence=self._overall_confidence(items),
            document_format=detect_document_format(merchant_name),
            data_consistency_score=self._consistency_score(total_amount, items),
            low_confidence_items=[i for i in items if i.confidence < LOW_CONFIDENCE_THRESHOLD],
            suspicious_items=[i for i in items if is_suspicious(i)],
        )
        Log.info(
            f"Analysis complete: {metadata.item_count} items, "
            f"confidence {metadata.overall_confidence:.2f}",
            document_format=metadata.document_format.value,
            consistency=metadata.data_consistency_score,
            suspicious=len(metadata.suspicious_items),
        )
        return AnalysisResult(receipt_data=cleaned, line_items=items, metadata=metadata)

    def _analyze_item(self, item: LineItem, position: int) -> AnalyzedLineItem:
        quantity = normalize_quantity(item.quantity)
        if quantity is None:
            quantity = normalize_quantity(quantity_from_description(item.description))
        total_price = normalize_amount(item.total_price)
        unit_price = normalize_amount(item.unit_price)
        if unit_price is None and total_price is not None and quantity:
            unit_price = round(total_price / quantity, 2)

        return AnalyzedLineItem(
            description=clean_description(item.description),
            quantity=quantity,
            unit_price=unit_price,
            total_price=total_price,
            confidence=max(0.0, min(1.0, item.confidence or 0.0)),
            product_code=item.product_code,
            category_hint=item.category_hint,
            discount=normalize_amount(item.discount),
            position=position,
            raw_description=item.description,
        )

    @staticmethod
    def _overall_confidence(items: list[AnalyzedLineItem]) -> float:
        if not items:
            return 0.0
        return sum(item.confidence for item in items) / len(items)

    @staticmethod
    def _consistency_score(total_amount: float | None, items: list[AnalyzedLineItem]) -> float:
        score = 1.0
        items_total = sum(item.total_price or 0.0 for item in items)
        if total_amount and items_total > 0:
            if abs(total_amount - items_total) > total_amount * TOTAL_TOLERANCE_RATIO:
                score -= TOTAL_MISMATCH_PENALTY

        for item in items:
            if item.unit_price is None or item.quantity is None or item.total_price is None:
                continue
            # 1e-9 absorbs float noise so an exact 10 cent gap is still tolerated
            if abs(item.unit_price * item.quantity - item.total_price) > LINE_TOLERANCE + 1e-9:
                score -= LINE_MISMATCH_PENALTY

        return round(max(0.0, min(1.0, score)), 4)


def analysis_stats(result: AnalysisResult) -> dict[str, object]:
    """Flat summary of an analysis run, for logs and status payloads."""
    metadata = result.metadata
    return {
        "item_count": metadata.item_count,
        "overall_confidence": metadata.overall_confidence,
        "low_confidence_count": len(metadata.low_confidence_items),
        "suspicious_count": len(metadata.suspicious_items),
        "document_format": metadata.document_format.value,
        "data_consistency_score": metadata.data_consistency_score,
        "total_amount": result.receipt_data.total_amount,
        "merchant_name": result.receipt_data.merchant_name,
    }


def clean_merchant_name(name: str | None) -> str | None:
    if not name:
        return None
    collapsed = _WHITESPACE.sub(" ", name.strip())
    cleaned = _MERCHANT_SYMBOLS.sub("", collapsed).strip().lower()
    return cleaned or None


def clean_address(address: str | None) -> str | None:
    if not address:
        return None
    lines = (_WHITESPACE.sub(" ", line).strip() for line in address.strip().splitlines())
    joined = ", ".join(line for line in lines if line)
    return joined or None


def clean_description(description: str) -> str:
    collapsed = _WHITESPACE.sub(" ", description.strip())
    return _WHITESPACE.sub(" ", _DESCRIPTION_SYMBOLS.sub("", collapsed)).strip().lower()


def normalize_amount(amount: float | None) -> float | None:
    if amount is None or not math.isfinite(amount):
        return None
    return round(amount, 2)


def normalize_quantity(quantity: float | None) -> float | None:
    if quantity is None or not math.isfinite(quantity):
        return None
    if quantity <= 0 or quantity > MAX_QUANTITY:
        return None
    return round(quantity, 2)


def quantity_from_description(description: str) -> float | None:
    match = _QUANTITY_PREFIX.match(description)
    if match is None:
        return None
    return float(match.group(1).replace(",", "."))


def is_suspicious(item: AnalyzedLineItem) -> bool:
    if item.confidence < SUSPICIOUS_CONFIDENCE:
        return True
    if item.total_price is not None and (
        item.total_price < 0 or item.total_price > SUSPICIOUS_MAX_PRICE
    ):
        return True
    if item.quantity is not None and (
        item.quantity < 0 or item.quantity > SUSPICIOUS_MAX_QUANTITY
    ):
        return True
    return len(item.description.strip()) < 2

