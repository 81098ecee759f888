from datetime import date

import pytest

from app.ocr.text_parser import parse_receipt_text

RECEIPT_TEXT = """
CARREFOUR MARKET
12 RUE DE LA PAIX
LAIT DEMI ECREME 1L      1,29
BAGUETTE TRADITION       1,50
TOTAL TTC                2,79
TVA 5,5%                 0,15
CB                       2,79
14/03/2025 18:42
"""

INVOICE_TEXT = """
Auchan Drive
Facture N° FA-2025-0042
Commande n° CMD778899
3263859672014 Lait entier bio 1L 1,45 €
3017620422003 Pâte à tartiner 3,99 €
Total : 5,44 €
"""


class TestParseReceiptText:
    def test_merchant_is_first_plausible_line(self) -> None:
        data = parse_receipt_text(RECEIPT_TEXT)
        assert data.merchant_name == "CARREFOUR MARKET"

    def test_detects_items_in_order(self) -> None:
        data = parse_receipt_text(RECEIPT_TEXT)
        assert [item.description for item in data.line_items] == [
            "LAIT DEMI ECREME 1L",
            "BAGUETTE TRADITION",
        ]
        assert [item.total_price for item in data.line_items] == [1.29, 1.50]

    def test_items_carry_given_confidence_and_no_quantity(self) -> None:
        data = parse_receipt_text(RECEIPT_TEXT, item_confidence=0.6)
        assert all(item.confidence == 0.6 for item in data.line_items)
        assert all(item.quantity is None for item in data.line_items)

    def test_total_tax_and_date(self) -> None:
        data = parse_receipt_text(RECEIPT_TEXT)
        assert data.total_amount == pytest.approx(2.79)
        assert data.tax_amount == pytest.approx(0.15)
        assert data.purchase_date == date(2025, 3, 14)

    def test_payment_lines_are_not_items(self) -> None:
        data = parse_receipt_text(RECEIPT_TEXT)
        assert not any(item.description.startswith("CB") for item in data.line_items)

    def test_confidence_rewards_found_fields(self) -> None:
        data = parse_receipt_text(RECEIPT_TEXT)
        assert data.confidence == pytest.approx(1.0)

    def test_empty_text_yields_base_confidence(self) -> None:
        data = parse_receipt_text("")
        assert data.line_items == []
        assert data.merchant_name is None
        assert data.confidence == pytest.approx(0.5)

    def test_currency_is_euro(self) -> None:
        assert parse_receipt_text(RECEIPT_TEXT).currency == "EUR"


class TestParseInvoiceText:
    def test_reads_invoice_and_order_numbers(self) -> None:
        data = parse_receipt_text(INVOICE_TEXT, invoice=True)
        assert data.invoice_number == "FA-2025-0042"
        assert data.order_number == "CMD778899"

    def test_extracts_ean_codes_from_lines(self) -> None:
        data = parse_receipt_text(INVOICE_TEXT, invoice=True)
        assert [item.product_code for item in data.line_items] == [
            "3263859672014",
            "3017620422003",
        ]
        assert data.line_items[0].description == "Lait entier bio 1L"

    def test_receipt_mode_ignores_codes(self) -> None:
        data = parse_receipt_text(INVOICE_TEXT)
        assert all(item.product_code is None for item in data.line_items)
        assert data.invoice_number is None

    def test_total_with_colon(self) -> None:
        data = parse_receipt_text(INVOICE_TEXT, invoice=True)
        assert data.total_amount == pytest.approx(5.44)
