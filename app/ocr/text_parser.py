"""Heuristic parser turning plain receipt/invoice text into ReceiptData.

Works on French till receipts and drive-order invoices: the merchant is one of
the first lines, prices use a comma or dot with two decimals, dates are
day-first.
"""

import re
from datetime import date

from app.ocr.models import LineItem, ReceiptData

_PRICE = re.compile(r"(\d+[.,]\d{2})\s*€?")
_DATE = re.compile(r"(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{2,4})")
_TOTAL = re.compile(r"total\s*(?:ttc)?\s*:?\s*(\d+[.,]\d{2})", re.IGNORECASE)
_TAX = re.compile(r"^tva\b.*?(\d+[.,]\d{2})\s*€?\s*$", re.IGNORECASE)
_NON_ITEM_PREFIX = re.compile(
    r"^(total|sous-total|tva|remise|paiement|carte|cb\b|esp[eè]ces|rendu|montant)",
    re.IGNORECASE,
)
_MERCHANT_REJECT = re.compile(r"^(\d|tel)", re.IGNORECASE)
_PRODUCT_CODE = re.compile(r"\b(\d{13}|\d{8})\b")
_INVOICE_NUMBER = re.compile(
    r"(?:facture|invoice)\s*(?:n[°o]|no|#|num[ée]ro)?\s*:?\s*([A-Z0-9][A-Z0-9\-/]{2,})",
    re.IGNORECASE,
)
_ORDER_NUMBER = re.compile(
    r"(?:commande|order)\s*(?:n[°o]|no|#|num[ée]ro)?\s*:?\s*([A-Z0-9][A-Z0-9\-/]{2,})",
    re.IGNORECASE,
)

_BASE_CONFIDENCE = 0.5


def parse_receipt_text(
    text: str,
    *,
    item_confidence: float = 0.6,
    invoice: bool = False,
) -> ReceiptData:
    """Parse receipt text line by line.

    Args:
        text: Plain text produced by OCR or document text extraction.
        item_confidence: Confidence assigned to every detected line item.
        invoice: Also look for EAN product codes and invoice/order numbers.
    """
    lines = [line.strip() for line in text.splitlines() if line.strip()]

    merchant_name: str | None = None
    total_amount: float | None = None
    tax_amount: float | None = None
    purchase_date: date | None = None
    invoice_number: str | None = None
    order_number: str | None = None
    items: list[LineItem] = []

    for index, line in enumerate(lines):
        if index < 3 and merchant_name is None and _looks_like_merchant(line):
            merchant_name = line

        total_match = _TOTAL.search(line)
        if total_match:
            total_amount = _to_amount(total_match.group(1))
            continue

        tax_match = _TAX.search(line)
        if tax_match:
            tax_amount = _to_amount(tax_match.group(1))
            continue

        date_match = _DATE.search(line)
        if date_match:
            if purchase_date is None:
                purchase_date = _to_date(*date_match.groups())
            continue

        if invoice:
            if invoice_number is None and (match := _INVOICE_NUMBER.search(line)):
                invoice_number = match.group(1)
                continue
            if order_number is None and (match := _ORDER_NUMBER.search(line)):
                order_number = match.group(1)
                continue

        item = _parse_item_line(line, item_confidence, invoice)
        if item is not None:
            items.append(item)

    confidence = _BASE_CONFIDENCE
    if merchant_name:
        confidence += 0.15
    if total_amount is not None:
        confidence += 0.15
    if purchase_date is not None:
        confidence += 0.1
    if items:
        confidence += 0.1

    return ReceiptData(
        merchant_name=merchant_name,
        total_amount=total_amount,
        tax_amount=tax_amount,
        purchase_date=purchase_date,
        currency="EUR",
        line_items=items,
        confidence=round(min(confidence, 1.0), 2),
        invoice_number=invoice_number,
        order_number=order_number,
        raw_provider_payload={"extracted_text": text},
    )


def _looks_like_merchant(line: str) -> bool:
    return 3 < len(line) < 50 and not _MERCHANT_REJECT.match(line)


def _parse_item_line(line: str, confidence: float, invoice: bool) -> LineItem | None:
    prices = list(_PRICE.finditer(line))
    if not prices:
        return None
    last = prices[-1]
    description = line[: last.start()].strip()

    product_code = None
    if invoice and (code_match := _PRODUCT_CODE.search(description)):
        product_code = code_match.group(1)
        description = (description[: code_match.start()] + description[code_match.end() :]).strip()

    if len(description) <= 2 or _NON_ITEM_PREFIX.match(description):
        return None

    return LineItem(
        description=description,
        total_price=_to_amount(last.group(1)),
        confidence=confidence,
        product_code=product_code,
    )


def _to_amount(raw: str) -> float:
    return float(raw.replace(",", "."))


def _to_date(day: str, month: str, year: str) -> date | None:
    full_year = int(year)
    if full_year < 100:
        full_year += 2000
    try:
        return date(full_year, int(month), int(day))
    except ValueError:
        return None
