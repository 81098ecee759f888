"""Offline structuring client.

Returns a fixed two-line Carrefour receipt. Used for local development
(``LLM_PROVIDER=example``) and tests; no network calls.
"""

import json
from typing import ClassVar

from app.structuring.client_base import BaseStructuringClient, ChatRequest


class ExampleClientAdapter(BaseStructuringClient):
    """Adapter returning a canned receipt JSON that satisfies the receipt schema."""

    DEFAULT_RESPONSE: ClassVar[dict[str, object]] = {
        "merchant_name": "CARREFOUR MARKET",
        "merchant_address": None,
        "purchase_date": None,
        "total_amount": 2.79,
        "tax_amount": None,
        "currency": "EUR",
        "invoice_number": None,
        "order_number": None,
        "confidence": 0.8,
        "line_items": [
            {
                "description": "LAIT DEMI ECREME 1L",
                "quantity": 1,
                "unit_price": 1.29,
                "total_price": 1.29,
                "confidence": 0.9,
                "product_code": None,
            },
            {
                "description": "BAGUETTE",
                "quantity": 1,
                "unit_price": 1.5,
                "total_price": 1.5,
                "confidence": 0.9,
                "product_code": None,
            },
        ],
    }

    def complete(self, request: ChatRequest) -> str:
        _ = request
        return json.dumps(self.DEFAULT_RESPONSE)
