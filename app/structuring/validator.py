"""Validates the model's parsed JSON and builds ReceiptData from it."""

from datetime import date
from typing import Any

from app.ocr.models import LineItem, ReceiptData
from app.structuring.exceptions import StructuringValidationError

_MAX_LINE_ITEMS = 200
_REQUIRED_FIELDS = ("merchant_name", "total_amount", "line_items")


def validate_and_build(data: dict[str, Any]) -> ReceiptData:
    """Validate raw model JSON and build ReceiptData.

    Raises:
        StructuringValidationError: on any validation failure.
    """
    for field in _REQUIRED_FIELDS:
        if field not in data:
            raise StructuringValidationError(f"Missing required top-level field: {field}")

    return ReceiptData(
        merchant_name=_optional_str(data, "merchant_name"),
        merchant_address=_optional_str(data, "merchant_address"),
        purchase_date=_build_date(data.get("purchase_date")),
        total_amount=_optional_number(data, "total_amount"),
        tax_amount=_optional_number(data, "tax_amount"),
        currency=_optional_str(data, "currency") or "EUR",
        invoice_number=_optional_str(data, "invoice_number"),
        order_number=_optional_str(data, "order_number"),
        confidence=_build_confidence(data.get("confidence", 0.0), "confidence"),
        line_items=_build_line_items(data["line_items"]),
        raw_provider_payload=data,
    )


def _optional_str(raw: dict[str, Any], key: str) -> str | None:
    value = raw.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise StructuringValidationError(f"'{key}' must be a string or null")
    return value.strip() or None


def _optional_number(raw: dict[str, Any], key: str, where: str = "") -> float | None:
    value = raw.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise StructuringValidationError(f"{where}'{key}' must be a number or null")
    return float(value)


def _build_confidence(raw: Any, label: str) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise StructuringValidationError(f"'{label}' must be a number")
    return max(0.0, min(1.0, float(raw)))


def _build_date(raw: Any) -> date | None:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise StructuringValidationError("'purchase_date' must be a string or null")
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        return None


def _build_line_items(raw: Any) -> list[LineItem]:
    if not isinstance(raw, list):
        raise StructuringValidationError("'line_items' must be a list")
    if len(raw) > _MAX_LINE_ITEMS:
        raise StructuringValidationError(
            f"Too many line items: {len(raw)} (max {_MAX_LINE_ITEMS})"
        )
    return [_build_line_item(item, i) for i, item in enumerate(raw)]


def _build_line_item(raw: Any, index: int) -> LineItem:
    where = f"Line item at index {index}: "
    if not isinstance(raw, dict):
        raise StructuringValidationError(f"Line item at index {index} must be an object")
    description = raw.get("description")
    if not description or not isinstance(description, str):
        raise StructuringValidationError(f"{where}'description' must be a non-empty string")
    product_code = raw.get("product_code")
    if product_code is not None and not isinstance(product_code, str):
        raise StructuringValidationError(f"{where}'product_code' must be a string or null")
    return LineItem(
        description=description,
        quantity=_optional_number(raw, "quantity", where),
        unit_price=_optional_number(raw, "unit_price", where),
        total_price=_optional_number(raw, "total_price", where),
        confidence=_build_confidence(raw.get("confidence", 0.0), f"line_items[{index}].confidence"),
        product_code=product_code or None,
    )
